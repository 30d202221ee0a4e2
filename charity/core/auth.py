"""
Principal resolution

Bearer tokens are minted by the identity provider (signup/login live there);
this service only verifies them and turns the claims into a Principal.
"""
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from datetime import datetime, timedelta
from dataclasses import dataclass
from typing import Optional
import structlog

from charity.core.config import get_settings
from charity.core.exceptions import AuthError, AuthorizationError

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"
USER_ROLE = "user"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller"""
    id: str
    role: str = USER_ROLE
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


# ============================================================================
# JWT TOKEN HANDLING
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(seconds=settings.jwt_expiration)

    to_encode.update({"exp": expire, "iat": datetime.utcnow()})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def resolve_principal(token: Optional[str]) -> Principal:
    """Validate a bearer token and return the caller it identifies"""
    if not token:
        raise AuthError("Authentication required")

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError as e:
        logger.warning("JWT decode error", error=str(e))
        raise AuthError("Invalid token")

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token")

    role = str(payload.get("role") or USER_ROLE).lower()
    return Principal(id=str(user_id), role=role, email=payload.get("email"))


# ============================================================================
# FASTAPI DEPENDENCIES
# ============================================================================

async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Principal:
    """Get current principal (required)"""
    token = credentials.credentials if credentials else None
    return resolve_principal(token)


async def require_admin(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Require admin role"""
    if not principal.is_admin:
        logger.warning("Blocked non-admin", user_id=principal.id, role=principal.role)
        raise AuthorizationError("Admin access required")
    return principal
