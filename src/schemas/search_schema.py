"""Pydantic 스키마 정의 (Validation Enhanced)"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ProviderChoice = Literal["auto", "searxng", "brave", "tavily", "perplexity"]
ModeChoice = Literal["auto", "basic", "ai"]


class SearchRequest(BaseModel):
    """검색 요청

    호스트 레이어의 camelCase 필드(maxResults, searchDepth)도 허용합니다.
    max_results는 사용 시점에 [1, 20] 범위로 보정됩니다.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    query: str = Field(..., min_length=1, max_length=500, description="검색어")
    provider: Optional[ProviderChoice] = Field(None, description="provider 강제 지정 (auto = 지정 안 함)")
    mode: Optional[ModeChoice] = Field(None, description="라우팅 모드 (없으면 설정의 default_mode)")
    language: Optional[str] = Field(None, description="언어 필터")
    country: Optional[str] = Field(None, description="국가/지역 필터")
    category: Optional[str] = Field(None, description="카테고리 필터 (searxng)")
    safesearch: Optional[Literal["off", "moderate", "strict"]] = Field(None, description="세이프서치 (brave)")
    freshness: Optional[str] = Field(None, description="최신성 필터 (brave)")
    max_results: Optional[float] = Field(None, alias="maxResults", description="요청 결과 수")
    search_depth: Optional[Literal["basic", "advanced"]] = Field(None, alias="searchDepth", description="검색 깊이 (tavily)")
    debug: bool = Field(False, description="응답에 debug trace 포함 여부")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """검색어 검증: 공백만으로 구성 불가"""
        if not v or not v.strip():
            raise ValueError("query is required")
        if "\0" in v:
            raise ValueError("query contains a null byte")
        return v

    @field_validator("language", "country", "category", "freshness")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class SearchToolResponse(BaseModel):
    """검색 응답 (텍스트 + 구조화된 값)"""
    content: List[Dict[str, str]] = Field(..., description='[{"type": "text", "text": "<JSON>"}]')
    structured_content: Dict[str, Any] = Field(..., description="Search Envelope")


class ErrorResponse(BaseModel):
    """오류 응답"""
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    circuit_breakers: Dict[str, Any] = Field(default_factory=dict)
    daily_budget: Dict[str, Any] = Field(default_factory=dict)
