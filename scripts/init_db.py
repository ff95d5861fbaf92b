"""
Seed the first admin account.

Idempotent: an existing account with ADMIN_PHONE is promoted to admin but its
password is left alone.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bizadmin.models import Base, User  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

DEFAULT_DB_URL = "sqlite:///bizadmin.db"


def admin_from_env() -> dict[str, str | None]:
    return {
        "name": (os.environ.get("ADMIN_NAME") or "Administrator").strip(),
        "phone_number": (os.environ.get("ADMIN_PHONE") or "0000000000").strip(),
        "email": (os.environ.get("ADMIN_EMAIL") or "").strip().lower() or None,
        "password": os.environ.get("ADMIN_PASSWORD") or "change-me",
    }


def seed_only(*, database_url: str | None = None) -> None:
    db_url = (database_url or os.environ.get("DATABASE_URL") or DEFAULT_DB_URL).strip()
    admin = admin_from_env()

    with script_session(db_url) as s:
        existing = s.query(User).filter(User.phone_number == admin["phone_number"]).one_or_none()
        if existing is None:
            s.add(
                User(
                    name=admin["name"],
                    phone_number=admin["phone_number"],
                    email=admin["email"],
                    password_hash=generate_password_hash(admin["password"] or ""),
                    role="admin",
                    is_active=True,
                )
            )
            print(f"Created admin {admin['phone_number']}")
        elif existing.role != "admin":
            existing.role = "admin"
            print(f"Promoted {admin['phone_number']} to admin")
        else:
            print(f"Admin {admin['phone_number']} already present")


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or DEFAULT_DB_URL).strip()
    if db_url.startswith("sqlite"):
        # local development: no migration step, create the tables directly
        from app.bizadmin.db import make_engine

        engine = make_engine(db_url)
        Base.metadata.create_all(engine)
        engine.dispose()
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
