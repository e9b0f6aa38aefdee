"""FastAPI dependencies: get_current_principal, require_resolver, resolve_permission.

Usage in any protected router:
    from src.pp_gateway.auth.dependencies import get_current_principal

    @router.get("/protected")
    async def protected(principal: Principal = Depends(get_current_principal)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings
from src.pp_common.enums import PrincipalRole
from src.pp_common.errors import InvalidCredentialsError, ResolverRoleRequiredError
from src.pp_gateway.auth.jwt_handler import decode_token

# Tokens are issued by the wallet login service; tokenUrl is informational only
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

# bets.user_id and accounts.user_id are VARCHAR(64)
MAX_USER_ID_LENGTH = 64

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: PrincipalRole

    @property
    def is_resolver(self) -> bool:
        return self.role is PrincipalRole.RESOLVER


async def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    """Validate the bearer token and return the caller's identity.

    Raises HTTP 401 if the token is missing, invalid or expired, or carries
    a subject that does not fit the user_id column.
    """
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not 0 < len(user_id) <= MAX_USER_ID_LENGTH:
        raise _CREDENTIALS_EXCEPTION
    role = PrincipalRole(payload.get("role", PrincipalRole.PARTICIPANT.value))
    return Principal(user_id=user_id, role=role)


async def require_resolver(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Operator-only endpoints always need the resolver role."""
    if not principal.is_resolver:
        raise ResolverRoleRequiredError()
    return principal


async def resolve_permission(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Gate for round resolution; restricted only when RESOLVER_ROLE_REQUIRED is on."""
    if settings.RESOLVER_ROLE_REQUIRED and not principal.is_resolver:
        raise ResolverRoleRequiredError()
    return principal
