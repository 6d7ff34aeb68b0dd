from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from campus_portal.config import Settings, get_settings
from campus_portal.db.repositories import Repository

logger = logging.getLogger(__name__)


def seed_admin_account(session: Session, settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    if not settings.admin_email or not settings.admin_password:
        return 0

    repo = Repository(session)
    if repo.get_user_by_email(settings.admin_email):
        return 0

    repo.create_admin(email=settings.admin_email, password=settings.admin_password, name=settings.admin_name)
    logger.info("Seeded admin account email=%s", settings.admin_email)
    return 1
