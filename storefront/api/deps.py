from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.application.service import OrderService
from storefront.infrastructure.db import get_db

STAFF_ROLES = {"ADMIN", "SELLER", "DELIVERY"}
STATUS_EDITOR_ROLES = {"ADMIN", "SELLER"}


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    """Identity forwarded by the gateway after it verified the session token."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized. Please log in.")
    return Caller(user_id=x_user_id, role=(x_user_role or "CUSTOMER").upper())


def require_roles(*roles: str):
    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"Unauthorized. {', '.join(sorted(roles))} access required.",
            )
        return caller
    return dependency


def get_order_service(request: Request, db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db, track_stock=request.app.state.settings.TRACK_STOCK)
