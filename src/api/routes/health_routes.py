"""헬스 체크 엔드포인트"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from src import __version__
from src.api.routes.search_routes import get_orchestrator
from src.engine import SearchOrchestrator
from src.schemas.search_schema import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: SearchOrchestrator = Depends(get_orchestrator)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - provider별 회로차단기 상태 (하나라도 열려 있으면 degraded)
    - 일일 호출 예산 사용량
    """
    breakers = orchestrator.breaker.snapshot()
    status = "degraded" if any(b["status"] == "open" for b in breakers.values()) else "ok"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        circuit_breakers=breakers,
        daily_budget=orchestrator.budget.get_report(),
    )


@router.get("/")
async def root():
    """서비스 안내 (버전, 검색 엔드포인트 목록)"""
    return {
        "service": "web-search-router",
        "version": __version__,
        "endpoints": {
            "auto": "/api/v1/search",
            "basic": "/api/v1/search/basic",
            "ai": "/api/v1/search/ai",
        },
        "docs": "/docs",
    }
