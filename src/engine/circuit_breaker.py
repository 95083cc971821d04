"""Circuit Breaker + Metrics tracking per search provider."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Optional

from src.core.clock import Clock, SystemClock
from src.core.logging import logger


@dataclass
class CircuitBreakerMetrics:
    """Provider별 호출 메트릭 추적."""

    successes: int = 0
    failures: int = 0

    def record_success(self) -> None:
        self.successes += 1

    def record_failure(self) -> None:
        self.failures += 1

    @property
    def success_rate(self) -> float:
        """성공률 (0.0~1.0)."""
        total = self.successes + self.failures
        return self.successes / total if total > 0 else 0.0

    def __repr__(self) -> str:
        return f"Metrics({self.successes}S/{self.failures}F={self.success_rate:.1%})"


@dataclass
class BreakerState:
    """Provider 하나의 회로 상태 (open_until=0 이면 닫힘)."""

    failures: int = 0
    open_until: float = 0.0


class CircuitBreakerRegistry:
    """Provider별 Circuit Breaker (fail-open/fail-close).

    - 연속 실패가 임계값에 도달하면 회로 개방 (쿨다운 동안 후보에서 제외)
    - 쿨다운이 지나면 다시 사용 가능 (half-open 단계 없음)
    - 성공 시 즉시 회로 닫기 + 실패 카운트 초기화
    - 실패 카운트는 개방 시 초기화하지 않으므로, 쿨다운 후 첫 실패에 바로 재개방
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        cooldown_ms: int = 10 * 60 * 1000,
        clock: Optional[Clock] = None,
    ) -> None:
        """초기화.

        Args:
            failure_threshold: 회로 개방 임계값 (연속 실패 횟수, 최소 1)
            cooldown_ms: 개방 상태 유지 시간 (ms, 최소 1000)
            clock: 시계 (기본값: SystemClock)
        """
        self.failure_threshold = max(1, int(failure_threshold))
        self.cooldown_ms = max(1000, int(cooldown_ms))
        self._clock = clock or SystemClock()
        self._states: Dict[str, BreakerState] = {}
        self._metrics: Dict[str, CircuitBreakerMetrics] = {}
        self._lock = threading.Lock()

    def is_available(self, provider: str) -> bool:
        """현재 시각이 open_until 이후인가? (처음 보는 provider는 항상 사용 가능)"""
        with self._lock:
            state = self._states.get(provider)
            if state is None:
                return True
            return self._clock.now() >= state.open_until

    def record_success(self, provider: str) -> None:
        """성공 기록 → 회로 닫기."""
        with self._lock:
            self._states[provider] = BreakerState(failures=0, open_until=0.0)
            self._metrics_for(provider).record_success()

    def record_failure(self, provider: str) -> None:
        """실패 기록 → 임계값 도달 시 회로 개방."""
        with self._lock:
            prev = self._states.get(provider) or BreakerState()
            failures = prev.failures + 1
            open_until = 0.0
            if failures >= self.failure_threshold:
                open_until = self._clock.now() + self.cooldown_ms / 1000
                logger.warning(
                    f"[CIRCUIT_BREAKER] OPEN provider={provider} "
                    f"(fail_count={failures} >= {self.failure_threshold}). "
                    f"Blocked for {self.cooldown_ms / 1000:.0f}s"
                )
            self._states[provider] = BreakerState(failures=failures, open_until=open_until)
            self._metrics_for(provider).record_failure()

    def status(self, provider: str) -> str:
        """"open" 또는 "closed"."""
        return "closed" if self.is_available(provider) else "open"

    def failure_count(self, provider: str) -> int:
        with self._lock:
            state = self._states.get(provider)
            return state.failures if state else 0

    def get_remaining_open_time(self, provider: str) -> float:
        """회로 개방 남은 시간 (초)."""
        with self._lock:
            state = self._states.get(provider)
            if state is None or state.open_until <= 0.0:
                return 0.0
            return max(0.0, state.open_until - self._clock.now())

    def metrics(self, provider: str) -> CircuitBreakerMetrics:
        with self._lock:
            return self._metrics_for(provider)

    def snapshot(self) -> Dict[str, dict]:
        """관찰된 모든 provider의 상태 리포트 (헬스 체크용)."""
        with self._lock:
            providers = list(self._states)
        return {
            provider: {
                "status": self.status(provider),
                "failures": self.failure_count(provider),
                "remaining_open_s": round(self.get_remaining_open_time(provider), 1),
                "metrics": repr(self.metrics(provider)),
            }
            for provider in providers
        }

    def _metrics_for(self, provider: str) -> CircuitBreakerMetrics:
        # caller holds self._lock
        metrics = self._metrics.get(provider)
        if metrics is None:
            metrics = CircuitBreakerMetrics()
            self._metrics[provider] = metrics
        return metrics

    def __repr__(self) -> str:
        return f"CircuitBreakerRegistry(threshold={self.failure_threshold}, cooldown_ms={self.cooldown_ms}, providers={len(self._states)})"
