"""Client-side persisted state: the auth token and the user-progress object.

Both live in cookies under fixed keys. Access is best-effort: anything that
cannot be read back is treated as absent.
"""

import json
import logging

from cryptography.fernet import InvalidToken
from fastapi import Request, Response

from coderush.crypto import decrypt_value, encrypt_value
from coderush.models import User

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "auth_token"
USER_STORAGE_KEY = "coderush_user"
COOKIE_MAX_AGE = 60 * 60 * 24 * 7


def get_auth_token(request: Request) -> str | None:
    return request.cookies.get(AUTH_TOKEN_KEY) or None


def set_auth_token(response: Response, token: str | None) -> None:
    if token:
        response.set_cookie(
            AUTH_TOKEN_KEY, token, httponly=True, samesite="lax", max_age=COOKIE_MAX_AGE
        )
    else:
        response.delete_cookie(AUTH_TOKEN_KEY)


def load_user(request: Request) -> User | None:
    raw = request.cookies.get(USER_STORAGE_KEY)
    if not raw:
        return None
    try:
        return User.from_dict(json.loads(decrypt_value(raw)))
    except (InvalidToken, ValueError, KeyError, TypeError, AttributeError):
        logger.debug("Ignoring unreadable progress cookie")
        return None


def save_user(response: Response, user: User | None) -> None:
    if user is None:
        response.delete_cookie(USER_STORAGE_KEY)
        return
    response.set_cookie(
        USER_STORAGE_KEY,
        encrypt_value(json.dumps(user.to_dict())),
        httponly=True,
        samesite="lax",
        max_age=COOKIE_MAX_AGE,
    )
