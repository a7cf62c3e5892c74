import structlog
from sqlalchemy.orm import Session

from roundcaddy.models.user import User

logger = structlog.get_logger()


def ensure_user(db: Session, user_id: str) -> User:
    """Return the user row, creating a bare one keyed by the token subject on first write"""
    user = db.query(User).filter(User.id == user_id).first()
    if user is not None:
        return user

    user = User(id=user_id)
    db.add(user)
    db.flush()

    logger.info("Created user record", user_id=user_id)
    return user
