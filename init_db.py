"""
Create the schema and seed the first admin.

    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=... python init_db.py
"""

import logging
import os

from sqlalchemy import select

from main import app
from spa_admin.extensions import db
from spa_admin.models import Admins, Base
from spa_admin.utils.auth import hash_password

logger = logging.getLogger("init_db")


def init_db(email, password, name="Admin"):
    Base.metadata.create_all(bind=db.engine)
    logger.info("Tables created")

    email = email.strip().lower()
    existing = db.session.scalar(select(Admins).where(Admins.email == email))
    if existing is not None:
        logger.info("Admin %s already exists", email)
        return existing

    admin = Admins(name=name, email=email, password_hash=hash_password(password))
    db.session.add(admin)
    db.session.commit()
    logger.info("Admin %s created", email)
    return admin


if __name__ == "__main__":
    admin_email = os.environ.get("ADMIN_EMAIL")
    admin_password = os.environ.get("ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        raise SystemExit("ADMIN_EMAIL and ADMIN_PASSWORD are required")

    with app.app_context():
        init_db(admin_email, admin_password, os.environ.get("ADMIN_NAME", "Admin"))
