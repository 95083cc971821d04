"""Daily Budget Manager - Per-day provider call caps

일일 호출 예산:
- brave: Basic 티어 중 유료(rate-limited) provider 호출 수
- ai: AI 티어 provider 호출 수 (tavily + perplexity 합산)

날짜 키(UTC YYYY-MM-DD)가 바뀌는 순간 모든 카운터가 0으로 초기화됩니다.
프로세스 메모리에만 존재하므로 재시작 시에도 초기화됩니다.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Optional

from src.core.clock import Clock, SystemClock
from src.core.logging import logger


BRAVE_COUNTER = "brave"
AI_COUNTER = "ai"


@dataclass
class BudgetConfig:
    """일일 한도 설정"""

    limits: Dict[str, int] = field(default_factory=lambda: {BRAVE_COUNTER: 100, AI_COUNTER: 100})

    def __post_init__(self):
        """설정 검증"""
        for name, limit in self.limits.items():
            if limit <= 0:
                raise ValueError(f"Daily limit for '{name}' must be positive (got {limit})")


class DailyBudget:
    """일일 호출 예산 관리자

    Usage:
        budget = DailyBudget(BudgetConfig(limits={"brave": 100, "ai": 50}))

        budget.reset_if_needed()
        if budget.try_reserve("brave"):
            try:
                ...  # provider 호출
            except Exception:
                budget.release("brave")
                raise

        report = budget.get_report()
    """

    def __init__(self, config: Optional[BudgetConfig] = None, clock: Optional[Clock] = None):
        self.config = config or BudgetConfig()
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self.day = self._clock.day_key()
        self._counts: Dict[str, int] = {name: 0 for name in self.config.limits}

    def reset_if_needed(self) -> bool:
        """날짜가 바뀌었으면 카운터 초기화

        Returns:
            bool: 초기화가 일어났는지 여부
        """
        with self._lock:
            return self._reset_if_needed_locked()

    def count(self, name: str) -> int:
        """오늘 호출 수"""
        with self._lock:
            self._reset_if_needed_locked()
            return self._counts.get(name, 0)

    def limit(self, name: str) -> Optional[int]:
        return self.config.limits.get(name)

    def is_exhausted(self, name: str) -> bool:
        """오늘 호출 수가 한도 이상인가? (한도가 없는 카운터는 항상 False)"""
        with self._lock:
            self._reset_if_needed_locked()
            limit = self.config.limits.get(name)
            if limit is None:
                return False
            return self._counts.get(name, 0) >= limit

    def increment(self, name: str) -> int:
        """호출 수 1 증가

        Returns:
            int: 증가 후 호출 수
        """
        with self._lock:
            self._reset_if_needed_locked()
            self._counts[name] = self._counts.get(name, 0) + 1
            return self._counts[name]

    def try_reserve(self, name: str) -> bool:
        """한도 확인과 증가를 한 번에 수행 (동시 요청 간 초과 방지)

        provider 호출 전에 호출 1건을 선점합니다. 호출이 실패하면
        release로 되돌립니다.

        Returns:
            bool: 선점 성공 여부 (한도에 도달했으면 False)
        """
        with self._lock:
            self._reset_if_needed_locked()
            used = self._counts.get(name, 0)
            limit = self.config.limits.get(name)
            if limit is not None and used >= limit:
                return False
            self._counts[name] = used + 1
            return True

    def release(self, name: str) -> int:
        """선점한 호출 1건 반환 (0 미만으로 내려가지 않음)

        Returns:
            int: 반환 후 호출 수
        """
        with self._lock:
            self._reset_if_needed_locked()
            self._counts[name] = max(0, self._counts.get(name, 0) - 1)
            return self._counts[name]

    def get_report(self) -> dict:
        """예산 사용 리포트 생성

        Returns:
            dict: 날짜, 카운터별 사용량/한도/잔여량
        """
        with self._lock:
            self._reset_if_needed_locked()
            return {
                "day": self.day,
                "counters": {
                    name: {
                        "used": self._counts.get(name, 0),
                        "limit": limit,
                        "remaining": max(0, limit - self._counts.get(name, 0)),
                    }
                    for name, limit in self.config.limits.items()
                },
            }

    def _reset_if_needed_locked(self) -> bool:
        today = self._clock.day_key()
        if today == self.day:
            return False
        logger.info(f"[BUDGET] Day changed {self.day} -> {today}, counters reset")
        self.day = today
        self._counts = {name: 0 for name in self.config.limits}
        return True
