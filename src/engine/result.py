"""Search Envelope - Standardized Result Format

Provides a standardized format for search results across both tiers.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from src.core.clock import Clock, SystemClock, iso_timestamp
from src.providers.result import AiSearchResult, BasicResult


class SearchTier(str, Enum):
    """검색 티어"""

    BASIC = "basic"  # 검색엔진 (searxng, brave)
    AI = "ai"  # 답변 합성 검색 (tavily, perplexity)


@dataclass
class DebugEvent:
    """디버그 trace 이벤트 1건"""

    step: str
    at: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"step": self.step, "at": self.at}
        if self.details is not None:
            data["details"] = dict(self.details)
        return data


class DebugTrace:
    """요청 1건의 디버그 trace

    debug 플래그와 무관하게 항상 전부 기록하고, 출력 경계에서만 비웁니다.

    Usage:
        trace = DebugTrace(clock)
        trace.record("start_basic")
        trace.record("provider_error", provider="brave", message="HTTP 500")
    """

    def __init__(self, clock: Optional[Clock] = None, events: Optional[List[DebugEvent]] = None):
        self._clock = clock or SystemClock()
        self.events: List[DebugEvent] = list(events or [])

    def record(self, step: str, **details: Any) -> DebugEvent:
        event = DebugEvent(
            step=step,
            at=iso_timestamp(self._clock.now()),
            details=details or None,
        )
        self.events.append(event)
        return event

    def snapshot(self) -> List[DebugEvent]:
        """현재까지의 이벤트 복사본"""
        return list(self.events)

    def steps(self) -> List[str]:
        return [e.step for e in self.events]

    def __len__(self) -> int:
        return len(self.events)


SearchData = Union[List[BasicResult], AiSearchResult]


@dataclass
class SearchEnvelope:
    """검색 결과 표준 포맷 (두 티어 공통)

    Attributes:
        mode: 실제 사용된 티어
        provider: 실제 사용된 provider
        query: 원본 검색어
        data: Basic 결과 목록 또는 AI 결과
        debug_trace: 디버그 trace (출력 시 debug 요청이 아니면 비움)
    """

    mode: SearchTier
    provider: str
    query: str
    data: SearchData
    debug_trace: List[DebugEvent] = field(default_factory=list)

    @property
    def result_count(self) -> int:
        """결과 수 (AI 결과는 근거 결과 수)"""
        if isinstance(self.data, AiSearchResult):
            return len(self.data.results)
        return len(self.data)

    def with_trace(self, events: List[DebugEvent]) -> "SearchEnvelope":
        """trace만 교체한 사본 (캐시된 원본은 변경하지 않음)"""
        return SearchEnvelope(
            mode=self.mode,
            provider=self.provider,
            query=self.query,
            data=copy.deepcopy(self.data),
            debug_trace=list(events),
        )

    def to_dict(self, include_trace: bool = True) -> Dict[str, Any]:
        if isinstance(self.data, AiSearchResult):
            data: Any = self.data.to_dict()
        else:
            data = [r.to_dict() for r in self.data]
        return {
            "mode": self.mode.value,
            "provider": self.provider,
            "query": self.query,
            "data": data,
            "debug_trace": [e.to_dict() for e in self.debug_trace] if include_trace else [],
        }

    @classmethod
    def basic(
        cls, provider: str, query: str, results: List[BasicResult], trace: List[DebugEvent]
    ) -> "SearchEnvelope":
        """Basic 티어 결과 생성"""
        return cls(mode=SearchTier.BASIC, provider=provider, query=query, data=results, debug_trace=trace)

    @classmethod
    def ai(
        cls, provider: str, query: str, result: AiSearchResult, trace: List[DebugEvent]
    ) -> "SearchEnvelope":
        """AI 티어 결과 생성"""
        return cls(mode=SearchTier.AI, provider=provider, query=query, data=result, debug_trace=trace)


def serialize_output(data: Any) -> str:
    """호스트에 전달할 텍스트 직렬화 (JSON, 2칸 들여쓰기)"""
    return json.dumps(data, indent=2, ensure_ascii=False)


@dataclass
class ToolPayload:
    """호스트 레이어로 전달하는 최종 응답

    같은 데이터를 텍스트(JSON)와 구조화된 값 두 가지로 제공합니다.
    """

    content: List[Dict[str, str]]
    structured_content: Dict[str, Any]

    @classmethod
    def from_envelope(cls, envelope: SearchEnvelope, debug: bool) -> "ToolPayload":
        data = envelope.to_dict(include_trace=debug)
        return cls(
            content=[{"type": "text", "text": serialize_output(data)}],
            structured_content=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "structured_content": self.structured_content}
