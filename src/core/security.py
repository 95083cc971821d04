"""
입력 보안 검증 및 개인정보 보호 가드
"""

import hashlib
import re

from src.core.logging import logger, sanitize_for_log


# 민감 정보로 의심되는 검색어 패턴 (\b는 ASCII 기준: "010-1234-5678로"처럼 한글 조사가 붙어도 매칭)
SENSITIVE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(sk|rk)-[A-Za-z0-9]{16,}\b", re.ASCII),
    re.compile(r"\b(?:password|passwd|secret|token|apikey|api_key)\b", re.IGNORECASE | re.ASCII),
    re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE | re.ASCII),
    re.compile(r"\b\d{2,4}[-.\s]?\d{3,4}[-.\s]?\d{4}\b", re.ASCII),
)


def is_sensitive_query(query: str) -> bool:
    """검색어가 민감 정보(API 키, 비밀번호, 이메일, 전화번호 등)를 포함하는지 판단

    외부 AI provider로 전송하면 안 되는 검색어를 걸러내는 휴리스틱입니다.

    Args:
        query: 검색어

    Returns:
        민감 정보 패턴이 하나라도 매칭되면 True
    """
    if not query:
        return False
    return any(pattern.search(query) for pattern in SENSITIVE_PATTERNS)


class SecurityValidator:
    """입력 보안 검증"""

    MAX_QUERY_LENGTH = 500

    @staticmethod
    def validate_query(query: str) -> bool:
        """검색어 검증

        Args:
            query: 검색어

        Returns:
            유효성 여부

        Raises:
            ValueError: 유효하지 않은 입력
        """
        if not query or not query.strip():
            raise ValueError("query is required")

        if len(query) > SecurityValidator.MAX_QUERY_LENGTH:
            raise ValueError(f"query must be at most {SecurityValidator.MAX_QUERY_LENGTH} characters")

        if "\0" in query:
            logger.warning(f"Null byte in query: {sanitize_for_log(query)}")
            raise ValueError("query contains a null byte")

        return True

    @staticmethod
    def hash_input(input_str: str) -> str:
        """입력값 해시 (로깅용)

        Args:
            input_str: 입력 문자열

        Returns:
            SHA256 해시값
        """
        return hashlib.sha256(input_str.encode()).hexdigest()[:16]
