"""JWT verification.

Tokens are issued by the external identity provider and signed with the
shared JWT_SECRET (HS256). This service only verifies them; the `sub` claim
is the player's user id.

create_access_token exists for local development and tests, where there is
no identity provider to mint a token.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_DEV_EXPIRE = timedelta(minutes=60)


def create_access_token(user_id: str, expires_in: timedelta = _DEV_EXPIRE) -> str:
    now = datetime.now(UTC)
    payload: dict[str, object] = {
        "sub": user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate a JWT token.

    Returns:
        Decoded payload dict with at minimum {"sub": ...}.

    Raises:
        InvalidCredentialsError: Token invalid, expired, or missing `sub`.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
