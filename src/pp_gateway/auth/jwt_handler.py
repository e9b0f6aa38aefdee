"""Bearer token creation and verification.

Tokens are HS256 (symmetric HMAC) and shared with the wallet login service,
which verifies wallet ownership and then issues an access token whose `sub`
is the participant address. The resolver process gets a token with
role="resolver".
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pp_common.enums import PrincipalRole
from src.pp_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(
    user_id: str,
    role: PrincipalRole = PrincipalRole.PARTICIPANT,
    expires_in: timedelta | None = None,
) -> str:
    """Issue a short-lived access token (default: JWT_EXPIRE_MINUTES)."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "role": role.value,
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature invalid, token expired, wrong type,
            or unknown role.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    if payload.get("role", PrincipalRole.PARTICIPANT.value) not in {r.value for r in PrincipalRole}:
        raise InvalidCredentialsError()
    return payload
