#!/usr/bin/env python
"""Idempotent seed script for demo users, vehicles and spare parts.

Usage:
    python backend/scripts/seed_demo.py               # seed normally
    python backend/scripts/seed_demo.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/seed_demo.py --show-users  # print the seeded user ids and roles
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from fleetdesk import create_app, get_db  # type: ignore
from fleetdesk.models import Base, User
from fleetdesk.seeds.demo_data import seed_demo_data


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed demo fleet data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_demo.py\n  dry run: seed_demo.py --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--show-users', action='store_true', help='Print user id -> role after seeding')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM users LIMIT 1'))
        except Exception:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())
        try:
            counts = seed_demo_data(session)
            summary = ', '.join(f'{k}: {v}' for k, v in counts.items())
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Would create {summary}")
            else:
                session.commit()
                print(f"[DONE] Created {summary}")
            if args.show_users:
                for user in session.execute(select(User).order_by(User.id)).scalars():
                    print(f"{user.id.ljust(14)} {user.role}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
