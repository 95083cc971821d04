"""로깅 설정 (Security Enhanced)

검색어와 provider 자격 증명이 로그에 그대로 남지 않도록
마스킹 헬퍼를 함께 제공합니다.
"""
import logging
import os
import re
import sys
from typing import Optional

from src.core.config import settings


LOGGER_NAME = "search_router"

# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"

PRODUCTION_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEVELOPMENT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """로거 초기화 및 설정

    Args:
        level: 로그 레벨 (기본값: settings.log_level)

    Returns:
        "search_router" 로거
    """
    logger = logging.getLogger(LOGGER_NAME)

    log_level = (level or settings.log_level).upper()
    if IS_PRODUCTION and log_level == "DEBUG":
        log_level = "INFO"
    resolved = getattr(logging, log_level, logging.INFO)
    logger.setLevel(resolved)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            fmt=PRODUCTION_FORMAT if IS_PRODUCTION else DEVELOPMENT_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(resolved)

    return logger


logger = setup_logging()


# 값 전체를 가리는 키워드
_MASK_ALL_KEYWORDS = ("password", "passwd", "token", "api_key", "apikey", "secret")

# 부분 마스킹 (provider 키 형태, Bearer 헤더, URL 쿼리의 키, 이메일)
_PARTIAL_MASKS = (
    (re.compile(r"\b(?:sk|rk|pplx|tvly)-[A-Za-z0-9_-]{16,}\b"), "***"),
    (re.compile(r"\bBearer\s+\S+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"([?&](?:api_key|key|token)=)[^&\s]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE), "***@***"),
)


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """민감 정보 제거 후 로깅용 문자열 반환

    Args:
        value: 로깅할 문자열 (검색어, 캐시 키 등)
        max_length: 최대 길이

    Returns:
        마스킹/절단된 문자열
    """
    if not value:
        return "[empty]"

    lowered = value.lower()
    if any(keyword in lowered for keyword in _MASK_ALL_KEYWORDS):
        return "***"

    result = value
    for pattern, replacement in _PARTIAL_MASKS:
        result = pattern.sub(replacement, result)

    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result


def mask_secret(secret: str, visible: int = 4) -> str:
    """자격 증명 표시용 마스킹 (끝 몇 글자만 노출)"""
    if not secret:
        return "[unset]"
    if len(secret) <= visible * 2:
        return "***"
    return f"***{secret[-visible:]}"
