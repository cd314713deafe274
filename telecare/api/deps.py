from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from telecare.core.db import get_session
from telecare.core.security import ROLE_DOCTOR, ROLE_PATIENT, decode_access_token

__all__ = ["Principal", "get_current_principal", "get_current_patient", "get_current_doctor", "get_session"]

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    uid: str
    role: str

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    uid, role = decode_access_token(credentials.credentials)
    if not uid or not role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(uid=uid, role=role)


async def get_current_patient(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != ROLE_PATIENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patients only")
    return principal


async def get_current_doctor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != ROLE_DOCTOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Doctors only")
    return principal
