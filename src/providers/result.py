"""Provider Result Standard Format

모든 provider 어댑터가 반환하는 정규화된 결과 형식을 정의합니다.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class BasicResult:
    """검색 결과 1건

    Attributes:
        title: 제목 (필수, 빈 값이면 어댑터에서 버림)
        url: 결과 URL (필수, 빈 값이면 어댑터에서 버림)
        snippet: 요약 문장
        site_name: 출처 라벨 (선택사항)
    """

    title: str
    url: str
    snippet: str = ""
    site_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.site_name is None:
            data.pop("site_name")
        return data


@dataclass
class AiSearchResult:
    """AI 티어 검색 결과

    Attributes:
        answer: 합성된 답변
        citations: 인용 URL (순서 유지)
        results: 근거 검색 결과
    """

    answer: str
    citations: List[str] = field(default_factory=list)
    results: List[BasicResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "citations": list(self.citations),
            "results": [r.to_dict() for r in self.results],
        }
