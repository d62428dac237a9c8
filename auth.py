import datetime

import jwt
from fastapi import Depends, Header, Request
from loguru import logger
from werkzeug.security import generate_password_hash, check_password_hash

from config import Settings, get_settings
from errors import Unauthenticated, InvalidCredential

BEARER_PREFIX = "Bearer "


# ------------------------------------------------------------
# Passwords and token issuing
# ------------------------------------------------------------

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def require_secret(settings: Settings) -> str:
    if not settings.jwt_secret_key:
        raise RuntimeError("JWT_SECRET_KEY is not configured")
    return settings.jwt_secret_key


def create_access_token(user: dict, settings: Settings) -> str:
    # the claims act as the session state, signed with the shared secret
    token_data = {
        "id": str(user["_id"]),
        "email": user["email"],
        "username": user["username"],
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(minutes=settings.token_expire_minutes),
    }
    return jwt.encode(token_data, require_secret(settings), algorithm=settings.jwt_algorithm)


# ------------------------------------------------------------
# Auth gate
# ------------------------------------------------------------

def authenticate(authorization: str | None, secret: str, algorithm: str = "HS256") -> dict:
    """
    Validate an Authorization header value and return the decoded claims.

    Raises Unauthenticated when the header is missing or does not use the
    case-sensitive "Bearer " scheme, and InvalidCredential when the token
    fails verification (malformed, expired or wrongly signed).
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated()

    token = authorization[len(BEARER_PREFIX):]
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise InvalidCredential("Token has expired")
    except jwt.InvalidTokenError:
        raise InvalidCredential()


# reads the bearer token from the Authorization header and attaches the claims to the request
def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> dict:
    try:
        claims = authenticate(authorization, require_secret(settings), settings.jwt_algorithm)
    except (Unauthenticated, InvalidCredential) as e:
        logger.info(f"Rejected credential on {request.url.path}: {e.message}")
        raise

    request.state.user = claims
    return claims  # includes id, email, username
