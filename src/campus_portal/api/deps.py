from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from campus_portal.config import get_settings
from campus_portal.db.repositories import Repository
from campus_portal.db.session import get_db_session
from campus_portal.errors import Forbidden, Unauthorized
from campus_portal.types import CurrentUser


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_session_token(request: Request) -> str | None:
    return request.cookies.get(get_settings().session_cookie_name)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser | None:
    token = get_session_token(request)
    if not token:
        return None

    repo = Repository(db)
    user = repo.get_session_user(token)
    if user is None:
        return None

    student = repo.get_student_by_user_id(user.id) if user.role == "student" else None
    return CurrentUser(
        id=user.id,
        role=user.role,
        email=user.email,
        student_id=student.id if student else None,
    )


def get_current_user(user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise Unauthorized("Not authenticated")
    return user


def require_student(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "student":
        raise Forbidden("Student access required")
    if user.student_id is None:
        raise Forbidden("Student profile not found")
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != "admin":
        raise Forbidden("Admin access required")
    return user
