# Bearer token guard. Tokens are issued elsewhere; we only verify them.
from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from pydantic import BaseModel

from codetrack.core import config

STAFF_ROLES = {"supervisor", "admin"}


class Principal(BaseModel):
    member_id: str
    role: str = "student"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def decode_token(token: str, secret: Optional[str] = None, algorithm: Optional[str] = None) -> dict:
    secret = secret or config.JWT_SECRET_KEY
    if not secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET_KEY is not configured")
    try:
        return jwt.decode(token, secret, algorithms=[algorithm or config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def get_principal(authorization: str = Header(None)) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = decode_token(authorization.split(" ", 1)[1])
    member_id = payload.get("sub")
    if not member_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return Principal(member_id=member_id, role=payload.get("role") or "student")


def get_current_member_id(principal: Principal = Depends(get_principal)) -> str:
    return principal.member_id


def require_staff(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_staff:
        raise HTTPException(status_code=403, detail="Supervisor or admin access required")
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if principal.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal
