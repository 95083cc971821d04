"""FastAPI 앱 팩토리"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from src.core.config import get_search_config, settings
from src.core.logging import logger, mask_secret
from src.api import health_router, search_router
from src.providers import shutdown_shared_http_client
from src.schemas.search_schema import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기"""
    logger.info("Starting application...")
    config = get_search_config()
    logger.info(
        f"[CONFIG] searxng={config.basic.searxng.base_url or '[unset]'}, "
        f"brave={mask_secret(config.basic.brave.api_key)}, "
        f"tavily={mask_secret(config.ai.tavily.api_key)}, "
        f"perplexity={mask_secret(config.ai.perplexity.api_key)}, "
        f"preset={config.router.provider_preset}, default_mode={config.router.default_mode}"
    )
    yield
    logger.info("Shutting down application...")
    await shutdown_shared_http_client()


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """요청 본문 검증 실패 → 400"""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "body"
        logger.warning(f"[API] Request validation failed: {request.url.path} {field}")
        body = ErrorResponse(
            error_code="VALIDATION_ERROR",
            message=f"Validation failed for '{field}': {first.get('msg', 'invalid request')}",
        )
        return JSONResponse(status_code=400, content=body.model_dump())

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(search_router)

    return app

# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
