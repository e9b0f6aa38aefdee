"""pp_round REST API.

Reads are public. Placing a bet needs a bearer token; resolving needs one too,
and additionally the resolver role when RESOLVER_ROLE_REQUIRED is set.
Static paths are declared before /{round_id} so they are matched first.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, success_response
from src.pp_gateway.auth.dependencies import (
    MAX_USER_ID_LENGTH,
    Principal,
    get_current_principal,
    resolve_permission,
)
from src.pp_round.application.schemas import PlaceBetRequest, ResolveRoundRequest
from src.pp_round.application.service import RoundApplicationService

router = APIRouter(prefix="/rounds", tags=["rounds"])

_service = RoundApplicationService()


@router.get("/current")
async def get_current_round(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_round_details(db)
    return success_response(data.model_dump(), request)


@router.get("/config")
async def get_config(request: Request) -> ApiResponse:
    data = _service.get_config()
    return success_response(data.model_dump(), request)


@router.get("/me")
async def get_my_rounds(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_user_rounds(db, principal.user_id)
    return success_response(data.model_dump(), request)


@router.get("/users/{user_id}")
async def get_user_rounds(
    user_id: Annotated[str, Path(max_length=MAX_USER_ID_LENGTH)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_user_rounds(db, user_id)
    return success_response(data.model_dump(), request)


@router.post("/current/bets", status_code=201)
async def place_bet(
    body: PlaceBetRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.place_bet(db, principal.user_id, body)
    return success_response(data.model_dump(), request)


@router.post("/current/resolve")
async def resolve_round(
    body: ResolveRoundRequest,
    principal: Annotated[Principal, Depends(resolve_permission)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.resolve_round(db, body)
    return success_response(data.model_dump(), request)


@router.get("/{round_id}")
async def get_round(
    round_id: Annotated[int, Path(ge=1)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_round(db, round_id)
    return success_response(data.model_dump(), request)
