"""
Bootstrap script: create the first admin account.

Usage:
    python scripts/bootstrap.py

Prompts for name, email and password.
Idempotent: safe to re-run; an existing account with the same email is left alone.
"""

import os
import sys

# Ensure the project root is on the path when run directly
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from getpass import getpass

from sqlalchemy.exc import SQLAlchemyError

from marketadmin.database import SessionLocal
from marketadmin.models.audit import AuditSeverity, EntityType, ImpactLevel
from marketadmin.models.user import User, UserRole
from marketadmin.security import hash_password
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.onboarding import MIN_PASSWORD_LENGTH
from marketadmin.services.transaction import atomic


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def main() -> None:
    print("\n=== Marketplace Admin: Bootstrap ===\n")

    name = prompt("Admin name", "Platform Admin")
    email = prompt("Admin email").lower()
    if not email:
        print("ERROR: email is required.")
        sys.exit(1)

    password = getpass(f"Admin password (min {MIN_PASSWORD_LENGTH} chars): ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"ERROR: password must be at least {MIN_PASSWORD_LENGTH} characters.")
        sys.exit(1)
    if getpass("Confirm password: ") != password:
        print("ERROR: passwords do not match.")
        sys.exit(1)

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"\nUser '{email}' already exists (role={existing.role}); skipping.")
            return

        with atomic(db):
            user = User(
                name=name,
                email=email,
                hashed_password=hash_password(password),
                role=UserRole.ADMIN,
            )
            db.add(user)
            db.flush()
            audit.log_action(
                db,
                Actor.system(),
                "user_created",
                EntityType.USER,
                user.id,
                description=f"Bootstrapped admin account {email}",
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.SIGNIFICANT,
                metadata={"role": UserRole.ADMIN, "source": "bootstrap"},
            )
        print(f"\nAdmin user '{email}' created. You can now log in at /auth/token\n")

    except SQLAlchemyError as e:
        print(f"\nERROR: database error: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
