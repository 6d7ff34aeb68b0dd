from __future__ import annotations

import hashlib
import secrets

import bcrypt

from campus_portal.config import get_settings


def hash_password(password: str, rounds: int | None = None) -> str:
    cost = rounds or get_settings().password_hash_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash or a secret bcrypt refuses (over 72 bytes)
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
