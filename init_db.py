#!/usr/bin/env python3
"""
Initialize the database with tables and a demo user.
"""

from roundcaddy.database import engine, SessionLocal, Base
from roundcaddy.models import notification, preferences, range_session, round as round_model, user  # noqa: F401
from roundcaddy.models.user import User
from roundcaddy.services.round_preferences import RoundPreferences, save_round_preferences
import structlog

logger = structlog.get_logger()

DEMO_USER_ID = "demo_user"


def init_database():
    """Initialize the database with tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

        create_sample_data()

    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise


def create_sample_data():
    """Create a demo user with default round preferences."""
    db = SessionLocal()

    try:
        if db.query(User).filter(User.id == DEMO_USER_ID).first():
            logger.info("Sample data already exists, skipping creation")
            return

        db.add(User(id=DEMO_USER_ID, email="demo@roundcaddy.app", first_name="Demo"))
        db.flush()
        save_round_preferences(db, DEMO_USER_ID, RoundPreferences())

        logger.info("Sample data created successfully", user_id=DEMO_USER_ID)

    except Exception as e:
        db.rollback()
        logger.error("Failed to create sample data", error=str(e))
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_database()
    print("Database initialized successfully!")
