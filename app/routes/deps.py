"""Request-scoped helpers shared by the compliance routers.

Authentication happens upstream; the gateway forwards the caller's identity
in ``X-User-Id`` / ``X-User-Role`` headers.
"""

from __future__ import annotations

from typing import Any

from fastapi import Depends, Header
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.errors import ComplianceValidationError, PermissionDeniedError
from app.types.compliance_contract import CallerRole, PageMeta


class Caller(BaseModel):
    user_id: str
    role: CallerRole


async def get_caller(
    x_user_id: str = Header(..., min_length=1, max_length=64),
    x_user_role: str = Header(CallerRole.EMPLOYER.value),
) -> Caller:
    try:
        role = CallerRole(x_user_role.strip().lower())
    except ValueError:
        raise ComplianceValidationError(f"Unknown caller role {x_user_role!r}")
    return Caller(user_id=x_user_id.strip(), role=role)


async def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if caller.role is not CallerRole.ADMIN:
        raise PermissionDeniedError("Admin access required")
    return caller


def envelope(data: Any, message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status_code": status_code, "data": jsonable_encoder(data), "message": message},
    )


def paged(items: list, meta: PageMeta) -> dict:
    return {"result": items, "pagination": meta}
