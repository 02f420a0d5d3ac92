"""
Bootstrap the first admin account (and optionally a department).

Accounts are provisioned, not self-registered; run this once against a
fresh database:

    ADMIN_PASSWORD=... python create_admin.py
"""
import os
import logging

from db import SessionLocal, engine
from models import Base, Department, User
from auth import hash_password, normalize_username

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("create_admin")

ADMIN_USERNAME = normalize_username(os.getenv("ADMIN_USERNAME", "admin"))
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@company.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin12345")
ADMIN_DEPARTMENT = os.getenv("ADMIN_DEPARTMENT")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.username == ADMIN_USERNAME).first()
        if existing:
            logger.info(f"Admin user already exists: {ADMIN_USERNAME}")
            return

        department = None
        if ADMIN_DEPARTMENT:
            department = db.query(Department).filter(Department.name == ADMIN_DEPARTMENT).first()
            if not department:
                department = Department(name=ADMIN_DEPARTMENT)
                db.add(department)
                db.flush()

        admin_user = User(
            username=ADMIN_USERNAME,
            email=ADMIN_EMAIL,
            full_name="System Administrator",
            hashed_password=hash_password(ADMIN_PASSWORD),
            role="admin",
            department_id=department.id if department else None,
        )
        db.add(admin_user)
        db.commit()

        logger.info(f"Admin user created: {ADMIN_USERNAME}")
        logger.info("Change password after first login!")
    except Exception:
        db.rollback()
        logger.exception("Admin bootstrap failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
