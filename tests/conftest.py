"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (시계, provider 어댑터)
- 오케스트레이터 조립 헬퍼

금지:
- 실제 provider 호출 (네트워크)
- sleep 기반 시간 진행 (FakeClock.advance 사용)
"""

from __future__ import annotations

import asyncio
import copy
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.config import SearchConfig, merge_config  # noqa: E402
from src.engine import SearchOrchestrator  # noqa: E402
from src.providers.executor import ProviderInput  # noqa: E402
from src.providers.result import AiSearchResult, BasicResult  # noqa: E402
from src.schemas.search_schema import SearchRequest  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


# 2026-03-01T12:00:00Z
DEFAULT_EPOCH = 1772366400.0


class FakeClock:
    """테스트용 시계 (수동 진행)"""

    def __init__(self, start: float = DEFAULT_EPOCH):
        self.current = start

    def now(self) -> float:
        return self.current

    def day_key(self) -> str:
        return datetime.fromtimestamp(self.current, tz=timezone.utc).date().isoformat()

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeAdapter:
    """provider 어댑터 Fake

    - 호출 입력을 calls에 기록
    - error가 있으면 예외, hang이면 타임아웃까지 대기, 아니면 response 사본 반환
    """

    def __init__(
        self,
        name: str,
        tier: str,
        response: Any = None,
        error: Optional[BaseException] = None,
        hang: bool = False,
        timeout_ms: int = 1000,
        configured: bool = True,
    ):
        self.name = name
        self.tier = tier
        self.response = response
        self.error = error
        self.hang = hang
        self.timeout_ms = timeout_ms
        self.configured = configured
        self.calls: List[ProviderInput] = []

    def is_configured(self) -> bool:
        return self.configured

    async def search(self, params: ProviderInput) -> Any:
        self.calls.append(params)
        if self.hang:
            await asyncio.sleep(3600)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.response)


def basic_results(prefix: str, count: int) -> List[BasicResult]:
    return [
        BasicResult(
            title=f"{prefix} result {i}",
            url=f"https://{prefix}.example.com/page/{i}",
            snippet=f"{prefix} snippet {i}",
            site_name=prefix,
        )
        for i in range(count)
    ]


def ai_result(prefix: str = "tavily") -> AiSearchResult:
    return AiSearchResult(
        answer=f"{prefix} answer",
        citations=[f"https://{prefix}.example.com/source"],
        results=basic_results(prefix, 2),
    )


def make_request(query: str = "python asyncio", **kwargs: Any) -> SearchRequest:
    return SearchRequest(query=query, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def search_config() -> SearchConfig:
    """모든 provider에 자격 증명이 설정된 검색 설정"""
    return merge_config(
        SearchConfig(),
        {
            "basic": {
                "searxng": {"base_url": "http://searxng.test"},
                "brave": {"api_key": "brave-test-key"},
            },
            "ai": {
                "tavily": {"api_key": "tavily-test-key"},
                "perplexity": {"api_key": "perplexity-test-key"},
            },
        },
    )


@pytest.fixture
def adapters() -> Dict[str, FakeAdapter]:
    """정상 응답하는 4개 provider Fake"""
    return {
        "searxng": FakeAdapter("searxng", "basic", response=basic_results("searxng", 5)),
        "brave": FakeAdapter("brave", "basic", response=basic_results("brave", 5)),
        "tavily": FakeAdapter("tavily", "ai", response=ai_result("tavily")),
        "perplexity": FakeAdapter("perplexity", "ai", response=ai_result("perplexity")),
    }


@pytest.fixture
def make_orchestrator(search_config, adapters, clock):
    """오케스트레이터 팩토리 (설정 오버라이드 지원)"""

    def _make(overrides: Optional[Dict[str, Any]] = None) -> SearchOrchestrator:
        config = merge_config(search_config, overrides)
        return SearchOrchestrator(config, adapters=adapters, clock=clock)

    return _make
