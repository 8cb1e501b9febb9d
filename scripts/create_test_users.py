"""
Create a test member, a staff user and an admin (password login, no email step).
Use when you need accounts to try bookings, the cafe queue and the admin endpoints.

Run from project root:
  python scripts/create_test_users.py

Credentials are printed at the end.
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import SessionLocal, Base, engine
import app.models  # noqa: F401
from app.models.user import User, UserRole
from app.services.auth import get_password_hash

PASSWORD = "Password123!"

TEST_USERS = [
    ("member@citizenspace.demo", "Test Member", UserRole.user),
    ("staff@citizenspace.demo", "Test Barista", UserRole.staff),
    ("admin@citizenspace.demo", "Test Admin", UserRole.admin),
]


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for email, full_name, role in TEST_USERS:
            if db.query(User).filter(User.email == email).first():
                print(f"{role.value.title()} already exists: {email}")
                continue
            db.add(User(
                email=email,
                hashed_password=get_password_hash(PASSWORD),
                role=role,
                full_name=full_name,
            ))
            print(f"Created {role.value}: {email}")

        db.commit()

        print("\n--- Test users ---")
        for email, _, role in TEST_USERS:
            print(f"{role.value.title()}:")
            print(f"  Email:    {email}")
            print(f"  Password: {PASSWORD}")
        print("\nDone.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
