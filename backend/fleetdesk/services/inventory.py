"""Spare parts inventory: lookups, maintenance and stock consumption.

``consume`` is the only code path that decrements ``balance_on_sap``. It checks
every line before applying any of them and is always called inside the
issuing transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func, or_, select

from fleetdesk.errors import EntityNotFound, InsufficientStock, ValidationError
from fleetdesk.models.spare_part import SparePart
from fleetdesk.models.ticket import PartRequest
from fleetdesk.utils.clock import utcnow
from fleetdesk.utils.validation import validate_non_blank, validate_non_negative_int

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ('material_description', 'description_ar', 'location', 'dept', 'uom')


class InventoryService:
    def __init__(self, session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    # Queries -----------------------------------------------------------
    def get_part(self, sap_code: str) -> SparePart:
        part = self.session.get(SparePart, sap_code) if sap_code else None
        if part is None:
            raise EntityNotFound(f'Spare part {sap_code} not found')
        return part

    def find_by_code_ci(self, sap_code: str) -> Optional[SparePart]:
        return (
            self.session.query(SparePart)
            .filter(func.lower(SparePart.sap_code) == sap_code.strip().lower())
            .first()
        )

    def list_parts(self, search: Optional[str] = None) -> List[SparePart]:
        q = self.session.query(SparePart)
        if search and search.strip():
            like = f'%{search.strip().lower()}%'
            q = q.filter(or_(
                func.lower(SparePart.sap_code).like(like),
                func.lower(SparePart.material_description).like(like),
                func.lower(SparePart.description_ar).like(like),
            ))
        return q.order_by(SparePart.sap_code.asc()).all()

    def low_stock(self, threshold: int) -> List[SparePart]:
        return (
            self.session.query(SparePart)
            .filter(SparePart.balance_on_sap <= threshold)
            .order_by(SparePart.balance_on_sap.asc(), SparePart.sap_code.asc())
            .all()
        )

    def unknown_codes(self, codes: Iterable[str]) -> List[str]:
        codes = list(codes)
        if not codes:
            return []
        known = set(self.session.execute(select(SparePart.sap_code).where(SparePart.sap_code.in_(codes))).scalars())
        return [c for c in codes if c not in known]

    # Maintenance -------------------------------------------------------
    def _clean_row(self, data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if not partial or 'material_description' in data:
            out['material_description'] = validate_non_blank(data.get('material_description'), 'material_description')
        for key in ('description_ar', 'location', 'dept', 'uom'):
            if key in data and data[key] is not None:
                if not isinstance(data[key], str):
                    raise ValidationError(f'{key} must be a string')
                out[key] = data[key].strip()
        if not partial or 'balance_on_sap' in data:
            out['balance_on_sap'] = validate_non_negative_int(data.get('balance_on_sap', 0), 'balance_on_sap')
        return out

    def add_part(self, data: Mapping[str, Any]) -> SparePart:
        code = validate_non_blank(data.get('sap_code'), 'sap_code')
        if self.find_by_code_ci(code) is not None:
            raise ValidationError(f'Spare part {code} already exists')
        part = SparePart(sap_code=code, updated_at=self.clock(), **self._clean_row(data))
        self.session.add(part)
        return part

    def update_part(self, sap_code: str, data: Mapping[str, Any]) -> SparePart:
        part = self.get_part(sap_code)
        if 'sap_code' in data and data['sap_code'] != part.sap_code:
            raise ValidationError('sap_code cannot be changed')
        for key, value in self._clean_row(data, partial=True).items():
            setattr(part, key, value)
        part.updated_at = self.clock()
        return part

    def import_parts(self, rows: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
        """Upsert rows keyed on sap_code; the whole batch is validated first."""
        cleaned = []
        seen = set()
        for idx, row in enumerate(rows):
            if not isinstance(row, Mapping):
                raise ValidationError(f'row {idx}: expected an object')
            try:
                code = validate_non_blank(row.get('sap_code'), 'sap_code')
                values = self._clean_row(row)
            except ValidationError as e:
                raise ValidationError(f'row {idx}: {e.description}')
            if code.lower() in seen:
                raise ValidationError(f'row {idx}: duplicate sap_code {code}')
            seen.add(code.lower())
            cleaned.append((code, values))
        created = updated = 0
        now = self.clock()
        for code, values in cleaned:
            part = self.find_by_code_ci(code)
            if part is None:
                self.session.add(SparePart(sap_code=code, updated_at=now, **values))
                created += 1
            else:
                for key, value in values.items():
                    setattr(part, key, value)
                part.updated_at = now
                updated += 1
        return {'created': created, 'updated': updated}

    # Stock -------------------------------------------------------------
    def consume(self, parts: Mapping[str, int]) -> List[Dict[str, Any]]:
        """Decrement stock for every line or for none of them.

        Raises InsufficientStock listing every short line (unknown codes count
        as zero on hand).
        """
        codes = list(parts)
        rows = {
            p.sap_code: p
            for p in self.session.execute(
                select(SparePart).where(SparePart.sap_code.in_(codes)).with_for_update()
            ).scalars()
        }
        shortages = []
        for code in codes:
            on_hand = rows[code].balance_on_sap if code in rows else 0
            if on_hand < parts[code]:
                shortages.append({'sap_code': code, 'requested': parts[code], 'on_hand': on_hand})
        if shortages:
            raise InsufficientStock(shortages)
        now = self.clock()
        changes = []
        for code in codes:
            part = rows[code]
            before = part.balance_on_sap
            part.balance_on_sap = before - parts[code]
            part.updated_at = now
            changes.append({'sap_code': code, 'quantity': parts[code], 'before': before, 'after': part.balance_on_sap})
        return changes

    def replenishment_report(self, year: int, month: int) -> List[Dict[str, Any]]:
        """Quantities issued per part in the given calendar month."""
        if not 1 <= month <= 12:
            raise ValidationError('month must be between 1 and 12')
        start = datetime(year, month, 1)
        end = datetime(year + (month == 12), month % 12 + 1, 1)
        requests = (
            self.session.query(PartRequest)
            .filter(
                PartRequest.status.in_((PartRequest.STATUS_ISSUED, PartRequest.STATUS_WAREHOUSE_COMPLETED)),
                PartRequest.warehouse_resolved_at >= start,
                PartRequest.warehouse_resolved_at < end,
            )
            .all()
        )
        totals: Dict[str, Dict[str, Any]] = {}
        for pr in requests:
            for code, qty in pr.parts.items():
                entry = totals.setdefault(code, {'sap_code': code, 'issued_quantity': 0, 'tickets': set()})
                entry['issued_quantity'] += qty
                entry['tickets'].add(pr.ticket_id)
        parts = {p.sap_code: p for p in self.session.query(SparePart).filter(SparePart.sap_code.in_(list(totals))).all()}
        out = []
        for code in sorted(totals):
            entry = totals[code]
            part = parts.get(code)
            out.append({
                'sap_code': code,
                'material_description': part.material_description if part else None,
                'uom': part.uom if part else None,
                'issued_quantity': entry['issued_quantity'],
                'ticket_count': len(entry['tickets']),
                'balance_on_sap': part.balance_on_sap if part else 0,
            })
        return out


__all__ = ['InventoryService']
