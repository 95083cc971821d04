"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class SearchRouterException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 설정 관련 예외 (재시도 불가)
class ConfigurationException(SearchRouterException):
    """설정 오류 - 항상 치명적, 재시도하지 않음"""
    def __init__(self, message: str, error_code: str = "CONFIGURATION_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CONFIGURATION_ERROR", details)


class ProviderNotConfiguredException(ConfigurationException):
    """명시적으로 요청한 provider에 자격 증명/엔드포인트가 없음"""
    def __init__(self, tier: str, provider: str, details: Optional[dict[str, Any]] = None):
        label = "AI" if tier == "ai" else tier
        message = f"Requested {label} provider is not configured: {provider}"
        super().__init__(message, "PROVIDER_NOT_CONFIGURED",
                         details or {"tier": tier, "provider": provider})


class NoProviderConfiguredException(ConfigurationException):
    """해당 티어에 사용할 수 있는 provider가 하나도 없음"""
    def __init__(self, tier: str, details: Optional[dict[str, Any]] = None):
        label = "AI" if tier == "ai" else tier
        message = f"No {label} provider configured"
        super().__init__(message, "NO_PROVIDER_CONFIGURED", details or {"tier": tier})


# 예산 관련 예외
class BudgetExhaustedException(SearchRouterException):
    """일일 호출 예산 소진"""
    def __init__(self, counter: str, limit: int, details: Optional[dict[str, Any]] = None):
        label = "AI" if counter == "ai" else counter
        message = f"Daily {label} call budget reached"
        super().__init__(message, "DAILY_BUDGET_EXHAUSTED",
                         details or {"counter": counter, "limit": limit})


# Provider 호출 관련 예외 (일시적 - 다음 provider로 폴백)
class ProviderException(SearchRouterException):
    """Provider 호출 실패의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "PROVIDER_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "PROVIDER_ERROR", details)


class ProviderTimeoutException(ProviderException):
    """Provider 응답 타임아웃"""
    def __init__(self, provider: str, timeout_ms: int, details: Optional[dict[str, Any]] = None):
        message = f"{provider} timed out after {timeout_ms}ms"
        super().__init__(message, "PROVIDER_TIMEOUT",
                         details or {"provider": provider, "timeout_ms": timeout_ms})


class ProviderHTTPException(ProviderException):
    """Provider가 2xx가 아닌 응답을 반환"""
    def __init__(self, status_code: int, reason: str, body: str, details: Optional[dict[str, Any]] = None):
        message = f"HTTP {status_code} {reason}: {body[:400]}".rstrip()
        super().__init__(message, "PROVIDER_HTTP_ERROR",
                         details or {"status_code": status_code})
        self.status_code = status_code


class ParsingException(ProviderException):
    """Provider 응답 파싱 오류"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to parse response: {reason}"
        super().__init__(message, "PARSING_ERROR", details or {"reason": reason})


class MissingCredentialsException(ProviderException):
    """API 키/엔드포인트 누락"""
    def __init__(self, provider: str, what: str = "API key", details: Optional[dict[str, Any]] = None):
        message = f"Missing {provider} {what}"
        super().__init__(message, "MISSING_CREDENTIALS",
                         details or {"provider": provider})


class TierExhaustedException(SearchRouterException):
    """티어 내 모든 provider 실패"""
    def __init__(self, tier: str, last_error: Optional[str], details: Optional[dict[str, Any]] = None):
        label = "AI" if tier == "ai" else tier
        message = f"All {label} providers failed: {last_error or 'unknown error'}"
        super().__init__(message, "ALL_PROVIDERS_FAILED",
                         details or {"tier": tier, "last_error": last_error})
        self.tier = tier


class PrivacyBlockedException(SearchRouterException):
    """개인정보 보호 가드가 AI 검색을 차단"""
    def __init__(self, details: Optional[dict[str, Any]] = None):
        message = "Privacy guard blocked AI search for potentially sensitive query"
        super().__init__(message, "PRIVACY_BLOCKED", details)


# 유효성 검증 관련 예외
class ValidationException(SearchRouterException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                         details or {"field": field, "reason": reason})


class InvalidQueryException(ValidationException):
    """유효하지 않은 검색어"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("query", reason, details)


def error_message(error: BaseException) -> str:
    """trace/집계용 오류 메시지 (error_code 접두어 제외)"""
    if isinstance(error, SearchRouterException):
        return error.message
    return str(error) or type(error).__name__
