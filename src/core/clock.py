"""Clock abstraction

캐시 만료, 회로차단 쿨다운, 일일 예산 리셋이 모두 이 시계를 통해 시간을 읽습니다.
테스트에서는 FakeClock을 주입해 sleep 없이 시간을 진행시킵니다.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """시계 프로토콜"""

    def now(self) -> float:
        """현재 시각 (epoch 초)"""
        ...

    def day_key(self) -> str:
        """현재 날짜 키 (UTC, YYYY-MM-DD)"""
        ...


class SystemClock:
    """실제 시스템 시계"""

    def now(self) -> float:
        return time.time()

    def day_key(self) -> str:
        return datetime.now(timezone.utc).date().isoformat()


def iso_timestamp(epoch_seconds: float) -> str:
    """epoch 초 → ISO-8601 (UTC, 밀리초)"""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
