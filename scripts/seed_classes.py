"""Seed the built-in class catalogue, owned by the first admin profile."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enclave.database import ProfileRecord, init_db, session_scope
from enclave.models.enums import Role
from enclave.resources.classes import seed_builtin_classes


def seed_classes():
    init_db()
    with session_scope() as session:
        admin = session.query(ProfileRecord).filter_by(role=Role.ADMIN.value).order_by(ProfileRecord.id).first()
        if admin is None:
            raise SystemExit("No admin profile found. Run scripts/make_admin.py first.")
        return [record.name for record in seed_builtin_classes(session, admin.id)]


if __name__ == "__main__":
    added = seed_classes()
    for name in added:
        print(f"Seeded class: {name}")
    print(f"Class seeding completed, {len(added)} added.")
