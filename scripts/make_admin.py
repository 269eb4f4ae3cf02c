"""Give a profile the admin role."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from enclave.database import ProfileRecord, get_session, init_db
from enclave.models.enums import Role


def make_admin(name: str) -> bool:
    init_db()
    session = get_session()
    try:
        profile = session.query(ProfileRecord).filter_by(name=name).first()
        if profile is None:
            return False
        profile.role = Role.ADMIN.value
        session.commit()
        return True
    finally:
        session.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: make_admin.py <profile name>")
        sys.exit(2)
    if make_admin(sys.argv[1]):
        print(f"{sys.argv[1]} is now an admin.")
    else:
        print(f"No profile named {sys.argv[1]!r}.")
        sys.exit(1)
