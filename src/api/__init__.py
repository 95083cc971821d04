"""API 엔드포인트 패키지 - export only."""

from .routes import get_orchestrator, health_router, search_router

__all__ = ["health_router", "search_router", "get_orchestrator"]
