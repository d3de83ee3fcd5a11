from __future__ import annotations
from typing import Callable, Sequence, Tuple
from flask import request
from fleetdesk.config.pagination import normalize_pagination


def paginate_items(items: Sequence) -> Tuple[list, int, int, int]:
    """Apply limit/offset from request args to an already filtered list."""
    limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    return list(items[offset:offset + limit]), len(items), limit, offset

def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }

def list_response(items: Sequence, to_json: Callable):
    page, total, limit, offset = paginate_items(items)
    return build_list_payload([to_json(i) for i in page], total, limit, offset)
