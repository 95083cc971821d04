"""Search Routes (Engine Layer)

HTTP Layer가 Engine Layer로 요청을 위임하는 단순한 Translator 역할만 수행합니다.
"""

from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.core.config import get_search_config
from src.core.exceptions import (
    BudgetExhaustedException,
    ConfigurationException,
    InvalidQueryException,
    PrivacyBlockedException,
    SearchRouterException,
    TierExhaustedException,
    ValidationException,
)
from src.core.logging import logger
from src.core.security import SecurityValidator
from src.engine import SearchOrchestrator, ToolPayload
from src.schemas.search_schema import ErrorResponse, SearchRequest, SearchToolResponse

router = APIRouter(prefix="/api/v1", tags=["search"])

# 싱글톤 오케스트레이터 (캐시/회로차단기/일일 예산을 프로세스 단위로 공유)
_orchestrator: Optional[SearchOrchestrator] = None


def get_orchestrator() -> SearchOrchestrator:
    """SearchOrchestrator 싱글톤

    Engine Layer의 진입점을 제공합니다.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator(get_search_config())
    return _orchestrator


ERROR_STATUS = (
    (ValidationException, 400),
    (ConfigurationException, 400),
    (PrivacyBlockedException, 403),
    (BudgetExhaustedException, 429),
    (TierExhaustedException, 502),
)


def error_response(error: SearchRouterException) -> JSONResponse:
    """도메인 예외 → JSON 오류 응답"""
    status_code = 500
    for exc_type, code in ERROR_STATUS:
        if isinstance(error, exc_type):
            status_code = code
            break
    body = ErrorResponse(error_code=error.error_code, message=error.message, details=error.details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _dispatch(
    handler: Callable[[SearchRequest], Awaitable[ToolPayload]],
    request: SearchRequest,
    route: str,
):
    try:
        SecurityValidator.validate_query(request.query)
    except ValueError as e:
        logger.warning(f"[API] Input validation failed: {e}")
        return error_response(InvalidQueryException(str(e)))

    logger.info(f"[API] {route} request: query_hash={SecurityValidator.hash_input(request.query)} (length: {len(request.query)})")

    try:
        payload = await handler(request)
    except SearchRouterException as e:
        logger.warning(f"[API] {route} failed: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"[API] {route} unexpected error: {type(e).__name__}: {e}", exc_info=True)
        body = ErrorResponse(error_code="INTERNAL_ERROR", message="Internal server error")
        return JSONResponse(status_code=500, content=body.model_dump())

    return SearchToolResponse(**payload.to_dict())


@router.post("/search", response_model=SearchToolResponse, responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})
async def search_auto(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """자동 라우팅 검색 (Basic → 필요 시 AI 승급)"""
    return await _dispatch(orchestrator.search_auto, request, "search")


@router.post("/search/basic", response_model=SearchToolResponse, responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})
async def search_basic(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """Basic 티어 검색 (searxng / brave)"""
    return await _dispatch(orchestrator.search_basic, request, "search/basic")


@router.post(
    "/search/ai",
    response_model=SearchToolResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def search_ai(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """AI 티어 검색 (tavily / perplexity)"""
    return await _dispatch(orchestrator.search_ai, request, "search/ai")
