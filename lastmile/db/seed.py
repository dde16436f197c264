"""Database seeding helpers."""

import logging

from sqlalchemy.orm import Session

from lastmile.core.config import settings
from lastmile.core.security import get_password_hash
from lastmile.services.user_service import create_user, get_user_by_email

logger = logging.getLogger(__name__)


def ensure_admin_user(session: Session) -> bool:
    """Ensure a default admin user exists in development only.

    Returns:
        bool: True when an admin account was created by this call.
    """
    if settings.app_env != "dev":
        return False

    existing_user = get_user_by_email(db=session, email=settings.admin_email)
    if existing_user is not None:
        if existing_user.role != "admin":
            logger.warning("[BOOTSTRAP] %s exists with role=%s; not promoting", settings.admin_email, existing_user.role)
        return False

    create_user(
        db=session,
        email=settings.admin_email,
        name="Administrator",
        hashed_password=get_password_hash(settings.admin_password),
        role="admin",
    )
    logger.warning("[SECURITY] Default admin account created: %s. Change the password immediately.", settings.admin_email)
    return True
