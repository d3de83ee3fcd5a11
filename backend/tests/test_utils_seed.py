"""Test seeding utilities to reduce duplication.

These helpers put the demo users, vehicles and parts catalogue in place and
let individual tests adjust stock or add one-off records.
"""
from typing import Optional
from fleetdesk import get_db
from fleetdesk.models import User, Vehicle, SparePart
from fleetdesk.seeds.demo_data import seed_demo_data


def seed_reference_data():
    session = get_db()
    counts = seed_demo_data(session)
    session.commit()
    return counts


def ensure_user(user_id: str, role: str, name: Optional[str] = None) -> User:
    session = get_db()
    u = session.get(User, user_id)
    if not u:
        u = User(id=user_id, name=name or user_id, role=role)
        session.add(u); session.commit()
    return u


def ensure_vehicle(vehicle_id: str, kilometers: int = 0) -> Vehicle:
    session = get_db()
    v = session.get(Vehicle, vehicle_id)
    if not v:
        v = Vehicle(id=vehicle_id, current_kilometers=kilometers)
        session.add(v); session.commit()
    return v


def set_stock(sap_code: str, balance: int) -> SparePart:
    session = get_db()
    part = session.get(SparePart, sap_code)
    if not part:
        part = SparePart(sap_code=sap_code, material_description=sap_code, balance_on_sap=balance)
        session.add(part)
    part.balance_on_sap = balance
    session.commit()
    return part
