from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from telecare.core.config import settings

ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLES = (ROLE_PATIENT, ROLE_DOCTOR)


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {"sub": str(subject), "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> tuple[str | None, str | None]:
    """Returns (uid, role) or (None, None)."""
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm]
        )
        if payload.get("type") != "access":
            return None, None
        sub = payload.get("sub")
        role = payload.get("role")
        if not sub or role not in ROLES:
            return None, None
        return str(sub), role
    except JWTError:
        return None, None
