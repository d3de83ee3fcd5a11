"""Demo records for a fresh database: one user per role, the fleet, and a
starter spare parts catalogue. Every ``ensure_*`` helper is idempotent and
leaves commit to the caller.
"""
from __future__ import annotations
from typing import Dict
from sqlalchemy import select

from fleetdesk.models.spare_part import SparePart
from fleetdesk.models.user import User
from fleetdesk.models.vehicle import Vehicle

USERS = [
    ('superadmin01', 'Super Admin User', User.ROLE_SUPER_ADMIN),
    ('admin01', 'Admin User', User.ROLE_ADMIN),
    ('ops01', 'Fleet Operations User', User.ROLE_OPERATIONS),
    ('maint01', 'Maintenance User', User.ROLE_MAINTENANCE),
    ('insp01', 'Vehicle Inspector User', User.ROLE_INSPECTION),
    ('spares01', 'Spares Admin User', User.ROLE_SPARES_ADMIN),
    ('wh01', 'Warehouse User', User.ROLE_WAREHOUSE),
]

VEHICLE_IDS = (
    [f'HD-{n}' for n in range(101, 143)]
    + [f'TP-{n}' for n in (401, 402, 403, 404, 405, 406, 407, 408, 409, 410, 411)]
    + [f'TP-{n}' for n in range(414, 426)]
    + [f'FB-{n}' for n in range(501, 534) if n not in (512, 529)]
    + [f'SL-{n}' for n in range(301, 306)]
)

# (location, sap_code, material_description, description_ar, dept, uom, balance_on_sap)
SPARE_PARTS = [
    ('A1-01', 'BP-001', 'Brake Pad Set', 'طقم تيل فرامل', 'HD Series', 'SET', 25),
    ('A1-02', 'OF-002', 'Oil Filter', 'فلتر زيت', 'General', 'PCS', 50),
    ('B2-05', 'ACR-003', 'AC Refrigerant (Can)', 'فريون تكييف (علبة)', 'General', 'CAN', 30),
    ('C3-11', 'ACC-004', 'AC Compressor', 'كمبروسر تكييف', 'HD Series', 'PCS', 10),
    ('D1-01', 'WSH-005', 'Windshield (HD Series)', 'زجاج أمامي (HD)', 'HD Series', 'PCS', 5),
    ('E2-07', 'TR-006', 'Tire (Standard)', 'إطار (قياسي)', 'Trailers', 'PCS', 40),
    ('A1-03', 'HLB-007', 'Headlight Bulb', 'لمبة أمامية', 'General', 'PCS', 100),
    ('A1-04', 'AF-008', 'Air Filter', 'فلتر هواء', 'General', 'PCS', 60),
    ('B2-06', 'WB-009', 'Wiper Blade Set', 'طقم مساحات', 'General', 'SET', 35),
    ('C3-12', 'ALT-010', 'Alternator', 'دينامو', 'HD Series', 'PCS', 8),
    ('D1-02', 'GS-011', 'Engine Gasket Set', 'طقم جوانات محرك', 'HD Series', 'SET', 15),
    ('E2-08', 'FF-012', 'Fuel Filter', 'فلتر وقود', 'General', 'PCS', 75),
]


def ensure_users(session) -> int:
    existing = set(session.execute(select(User.id)).scalars().all())
    created = 0
    for uid, name, role in USERS:
        if uid not in existing:
            session.add(User(id=uid, name=name, role=role))
            created += 1
    return created


def ensure_vehicles(session) -> int:
    existing = set(session.execute(select(Vehicle.id)).scalars().all())
    created = 0
    for vid in VEHICLE_IDS:
        if vid not in existing:
            session.add(Vehicle(id=vid, current_kilometers=0, last_engine_service_km=0, last_transmission_service_km=0))
            created += 1
    return created


def ensure_spare_parts(session) -> int:
    existing = set(session.execute(select(SparePart.sap_code)).scalars().all())
    created = 0
    for location, code, desc, desc_ar, dept, uom, balance in SPARE_PARTS:
        if code not in existing:
            session.add(SparePart(
                sap_code=code, material_description=desc, description_ar=desc_ar,
                location=location, dept=dept, uom=uom, balance_on_sap=balance,
            ))
            created += 1
    return created


def seed_demo_data(session) -> Dict[str, int]:
    counts = {
        'users': ensure_users(session),
        'vehicles': ensure_vehicles(session),
        'spare_parts': ensure_spare_parts(session),
    }
    session.flush()
    return counts
