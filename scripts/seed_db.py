"""Standalone script to create DB tables and seed plans, workspaces, menu and blog categories."""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import engine, SessionLocal, Base
import app.models  # noqa: F401
from app.seed import seed_all

if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_all(db)
        print("Seeded: membership plans, workspaces, menu items, blog categories.")
    finally:
        db.close()
