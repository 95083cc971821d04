"""URL 정규화 및 결과 중복 제거 유틸리티"""
import math
from dataclasses import replace
from typing import Any, List
from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

from src.providers.result import BasicResult


MIN_RESULTS = 1
MAX_RESULTS = 20
DEFAULT_MAX_RESULTS = 5

# 트래킹 파라미터 (캐시/중복 판정에서 제외)
TRACKING_PARAMS = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "ref",
})

# scheme별 기본 포트 (정규화 시 생략)
DEFAULT_PORTS = {"http": 80, "https": 443}


def clamp_result_count(requested: Any, fallback: int = DEFAULT_MAX_RESULTS) -> int:
    """요청 결과 수를 [1, 20] 범위로 보정

    provider 요청의 결과 수(count / max_results)는 정수여야 하므로
    소수 요청은 범위 보정 후 버림으로 정수화합니다 (2.9 -> 2).

    Examples:
        >>> clamp_result_count(0)
        1
        >>> clamp_result_count(50)
        20
        >>> clamp_result_count(2.9)
        2
        >>> clamp_result_count(None)
        5
        >>> clamp_result_count(float("nan"), fallback=7)
        7

    Args:
        requested: 요청 값 (숫자가 아니거나 유한하지 않으면 fallback 사용)
        fallback: 기본값

    Returns:
        보정된 결과 수 (정수, 소수점 이하는 버림)
    """
    value = fallback
    if isinstance(requested, (int, float)) and not isinstance(requested, bool):
        if math.isfinite(requested):
            value = requested
    return int(max(MIN_RESULTS, min(MAX_RESULTS, value)))


def canonicalize_url(raw: str) -> str:
    """트래킹 파라미터를 제거한 정규 URL 반환

    - 절대 URL(scheme + host)만 정규화 대상
    - scheme/호스트 소문자화, 기본 포트(http 80, https 443) 제거
    - utm_* / ref 파라미터 제거, 나머지 파라미터 순서 유지
    - 경로가 비어있으면 "/" 로 통일
    - 파싱할 수 없으면 원본 그대로 반환
    - 멱등: canonicalize_url(canonicalize_url(x)) == canonicalize_url(x)

    Examples:
        >>> canonicalize_url("https://example.com/a?utm_source=x&id=3")
        'https://example.com/a?id=3'
        >>> canonicalize_url("not a url")
        'not a url'

    Args:
        raw: 원본 URL

    Returns:
        정규화된 URL 또는 원본
    """
    if not raw:
        return raw

    try:
        parts = urlsplit(raw.strip())
    except ValueError:
        return raw

    if not parts.scheme or not parts.netloc:
        return raw

    try:
        netloc = _normalize_netloc(parts.scheme.lower(), parts)
    except ValueError:
        return raw

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    query = urlencode(params)
    path = parts.path or "/"

    return urlunsplit((parts.scheme.lower(), netloc, path, query, parts.fragment))


def _normalize_netloc(scheme: str, parts: SplitResult) -> str:
    """호스트 소문자화 + scheme 기본 포트 제거 (userinfo 유지)

    Raises:
        ValueError: 호스트가 없거나 포트가 숫자가 아니거나 범위를 벗어난 경우
    """
    host = parts.hostname
    if not host:
        raise ValueError("missing host")
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"

    userinfo, sep, _ = parts.netloc.rpartition("@")
    return f"{userinfo}@{host}" if sep else host


def deduplicate_results(results: List[BasicResult]) -> List[BasicResult]:
    """정규 URL 기준 중복 제거 (먼저 나온 결과 유지)

    Args:
        results: 검색 결과 목록

    Returns:
        중복이 제거된 목록. 남은 결과의 url은 정규 URL로 교체됩니다.
    """
    seen: set[str] = set()
    output: List[BasicResult] = []
    for item in results:
        normalized = canonicalize_url(item.url)
        if normalized in seen:
            continue
        seen.add(normalized)
        output.append(replace(item, url=normalized))
    return output
