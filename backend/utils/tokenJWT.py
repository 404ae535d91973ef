# utils/tokenJWT.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import settings
from errors import ErrorType
from exceptions import AppException

# Roles allowed to mutate catalog, stock and coupons
STAFF_ROLES = frozenset({"admin", "staff"})

# Authorization scheme
bearer_scheme = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """Caller identity as asserted by the external identity provider."""
    user_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def ensure_staff(principal: Optional[Principal]) -> None:
    if principal is None or not principal.is_staff:
        raise AppException(ErrorType.FORBIDDEN, "Forbidden")


# Issue a token the same way the identity provider does (local development and tests)
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# Resolve the caller from the bearer token
def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> Principal:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception

    subject = payload.get("sub")
    # Ensure the subject is present in the token payload
    if subject is None:
        raise credentials_exception

    role = (payload.get("role") or "customer").lower()
    return Principal(user_id=str(subject), role=role)


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if allowed_roles and current_user.role not in allowed_roles:
            raise AppException(ErrorType.FORBIDDEN, "Forbidden")
        return current_user
    return _checker


staff_required = role_required(*sorted(STAFF_ROLES))


optional_bearer_scheme = HTTPBearer(auto_error=False)


# Storefront reads work anonymously; a valid token unlocks admin-only filters
def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
) -> Optional[Principal]:
    if credentials is None:
        return None
    return get_current_user(credentials)


def sees_inactive(principal: Optional[Principal]) -> bool:
    """Deactivated catalog rows are only visible to staff."""
    return principal is not None and principal.is_staff
