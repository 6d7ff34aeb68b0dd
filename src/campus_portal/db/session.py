from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from campus_portal.config import get_settings


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # the request threadpool shares connections across threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def build_engine(url: str) -> Engine:
    built = create_engine(url, **_engine_options(url))
    if built.dialect.name == "sqlite":
        event.listen(built, "connect", _enable_sqlite_foreign_keys)
    return built


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE RESTRICT/CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db_session() -> Iterator[Session]:
    with SessionLocal() as session:
        yield session
