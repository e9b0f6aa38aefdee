"""Admin REST API. Every endpoint requires the resolver role."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_admin.application.service import AdminService
from src.pp_common.amounts import MAX_PRICE
from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, success_response
from src.pp_gateway.auth.dependencies import Principal, require_resolver

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class BootstrapRequest(BaseModel):
    start_price: int = Field(..., gt=0, le=MAX_PRICE)


@router.post("/rounds/bootstrap")
async def bootstrap_round(
    body: BootstrapRequest,
    principal: Annotated[Principal, Depends(require_resolver)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.bootstrap_round(body.start_price, db)
    return success_response(data.model_dump(), request)


@router.get("/invariants")
async def verify_invariants(
    principal: Annotated[Principal, Depends(require_resolver)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return success_response(result, request)
