from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.engine import make_url

from campus_portal.config import Settings, get_settings
from campus_portal.db import models  # noqa: F401
from campus_portal.db.base import Base
from campus_portal.db.seed import seed_admin_account
from campus_portal.db.session import SessionLocal, engine

logger = logging.getLogger(__name__)


def _sqlite_parent(settings: Settings) -> Path | None:
    url = make_url(settings.database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database).parent


def ensure_data_directories(settings: Settings | None = None) -> list[Path]:
    settings = settings or get_settings()
    wanted = [settings.data_dir, settings.resume_dir, _sqlite_parent(settings)]
    created = []
    for path in wanted:
        if path is None or path.is_dir():
            continue
        path.mkdir(parents=True, exist_ok=True)
        created.append(path)
    return created


def init_database() -> dict[str, int]:
    """Create missing tables and the configured admin; safe to run repeatedly."""
    for path in ensure_data_directories():
        logger.info("Created directory %s", path)
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        seeded = seed_admin_account(session)
    return {"seeded_admins": seeded}
