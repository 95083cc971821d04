"""설정 관리 - 환경 변수 로드 및 검증"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BasicProviderName = Literal["searxng", "brave"]
AiProviderName = Literal["tavily", "perplexity"]
SearchModeName = Literal["auto", "basic", "ai"]
ProviderPresetName = Literal["free", "quality", "custom"]
SafeSearchLevel = Literal["off", "moderate", "strict"]

BASIC_PROVIDERS: tuple[str, ...] = ("searxng", "brave")
AI_PROVIDERS: tuple[str, ...] = ("tavily", "perplexity")

DEFAULT_UPGRADE_KEYWORDS = [
    "비교", "정리", "근거", "출처", "최신", "요약", "today", "latest", "compare",
]


def _require_positive(name: str, v: float) -> float:
    if v <= 0:
        raise ValueError(f"{name} must be positive")
    return v


def _validate_priority(v: list[str], known: tuple[str, ...], tier: str) -> list[str]:
    unknown = [p for p in v if p not in known]
    if unknown:
        raise ValueError(f"Unknown {tier} provider(s) in priority: {unknown}")
    if len(set(v)) != len(v):
        raise ValueError(f"{tier} priority must not contain duplicates: {v}")
    return v


class SearxngConfig(BaseModel):
    """SearXNG 인스턴스 설정"""
    base_url: str = "http://localhost:8888"
    timeout_ms: int = 8000

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return int(_require_positive("timeout_ms", v))


class BraveConfig(BaseModel):
    """Brave Search API 설정"""
    api_key: str = ""
    safesearch: SafeSearchLevel = "moderate"
    timeout_ms: int = 8000

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return int(_require_positive("timeout_ms", v))


class TavilyConfig(BaseModel):
    """Tavily API 설정"""
    api_key: str = ""
    timeout_ms: int = 12000

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return int(_require_positive("timeout_ms", v))


class PerplexityConfig(BaseModel):
    """Perplexity API 설정"""
    api_key: str = ""
    model: str = "sonar-pro"
    timeout_ms: int = 15000

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        return int(_require_positive("timeout_ms", v))


class BasicTierConfig(BaseModel):
    """Basic 티어 (검색엔진) 설정"""
    priority: list[BasicProviderName] = Field(default_factory=lambda: ["searxng", "brave"])
    searxng: SearxngConfig = Field(default_factory=SearxngConfig)
    brave: BraveConfig = Field(default_factory=BraveConfig)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: list[str]) -> list[str]:
        return _validate_priority(v, BASIC_PROVIDERS, "basic")


class AiTierConfig(BaseModel):
    """AI 티어 (답변 합성 검색) 설정"""
    priority: list[AiProviderName] = Field(default_factory=lambda: ["tavily", "perplexity"])
    tavily: TavilyConfig = Field(default_factory=TavilyConfig)
    perplexity: PerplexityConfig = Field(default_factory=PerplexityConfig)

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: list[str]) -> list[str]:
        return _validate_priority(v, AI_PROVIDERS, "ai")


class RouterConfig(BaseModel):
    """라우터 정책 설정 (모드, 프리셋, 승급 조건, 일일 호출 한도)"""
    default_mode: SearchModeName = "auto"
    provider_preset: ProviderPresetName = "free"
    min_results_before_upgrade: int = 3
    upgrade_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_UPGRADE_KEYWORDS))
    max_brave_calls_per_day: int = 100
    max_ai_calls_per_day: int = 100
    enable_privacy_guard: bool = True

    @field_validator("max_brave_calls_per_day", "max_ai_calls_per_day")
    @classmethod
    def validate_caps(cls, v: int) -> int:
        return int(_require_positive("daily call cap", v))


class CacheConfig(BaseModel):
    """인메모리 캐시 설정"""
    enabled: bool = True
    max_entries: int = 512
    ttl_seconds_basic: int = 900
    ttl_seconds_brave: int = 1800
    ttl_seconds_ai: int = 7200

    @field_validator("max_entries", "ttl_seconds_basic", "ttl_seconds_brave", "ttl_seconds_ai")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        return int(_require_positive("cache setting", v))


class CircuitBreakerConfig(BaseModel):
    """Provider 회로차단 설정"""
    failure_threshold: int = 3
    cooldown_ms: int = 10 * 60 * 1000

    @field_validator("failure_threshold", "cooldown_ms")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        return int(_require_positive("circuit breaker setting", v))


class SearchConfig(BaseModel):
    """라우팅 엔진 전체 설정"""
    basic: BasicTierConfig = Field(default_factory=BasicTierConfig)
    ai: AiTierConfig = Field(default_factory=AiTierConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider 자격 증명 (평탄한 환경 변수 이름 유지)
    searxng_base_url: str = "http://localhost:8888"
    brave_api_key: str = ""
    tavily_api_key: str = ""
    perplexity_api_key: str = ""
    perplexity_model: str = "sonar-pro"

    # 중첩 설정 (예: SEARCH__ROUTER__PROVIDER_PRESET=quality)
    search: SearchConfig = Field(default_factory=SearchConfig)

    # HTTP 클라이언트
    http_impersonate: Optional[str] = None
    http_max_clients: int = 20

    # API
    api_title: str = "Web Search Router"
    api_version: str = "1.0.0"
    api_description: str = "Basic → AI 자동 승급 라우팅 웹 검색 서비스"

    # 로깅
    log_level: str = "INFO"

    @field_validator("http_max_clients")
    @classmethod
    def validate_max_clients(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("http_max_clients must be positive")
        return v

    def build_search_config(self) -> SearchConfig:
        """환경 변수 자격 증명을 반영한 SearchConfig 생성

        중첩 설정에 값이 비어있는 경우에만 평탄한 환경 변수 값으로 채웁니다.
        """
        config = self.search.model_copy(deep=True)
        if self.searxng_base_url and config.basic.searxng.base_url == SearxngConfig().base_url:
            config.basic.searxng.base_url = self.searxng_base_url
        if not config.basic.brave.api_key:
            config.basic.brave.api_key = self.brave_api_key
        if not config.ai.tavily.api_key:
            config.ai.tavily.api_key = self.tavily_api_key
        if not config.ai.perplexity.api_key:
            config.ai.perplexity.api_key = self.perplexity_api_key
        if config.ai.perplexity.model == PerplexityConfig().model:
            config.ai.perplexity.model = self.perplexity_model
        return config


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_config(base: SearchConfig, overrides: Optional[dict[str, Any]] = None) -> SearchConfig:
    """부분 설정(dict)을 기본 설정 위에 병합

    - dict는 재귀적으로 병합
    - list(priority, upgrade_keywords)는 통째로 교체
    - 병합 결과는 다시 검증됩니다.

    Args:
        base: 기본 설정
        overrides: 호스트가 전달한 부분 설정

    Returns:
        검증된 SearchConfig

    Raises:
        pydantic.ValidationError: 병합 결과가 유효하지 않은 경우
    """
    if not overrides:
        return base
    merged = _deep_merge(base.model_dump(), overrides)
    return SearchConfig.model_validate(merged)


settings = Settings()


def get_search_config(overrides: Optional[dict[str, Any]] = None) -> SearchConfig:
    """프로세스 설정 + 선택적 오버라이드로 SearchConfig 생성"""
    return merge_config(settings.build_search_config(), overrides)
