"""Search Orchestrator - Main Engine Entry Point

Coordinates the tiered search pipeline:
1. Provider candidate selection (preset / priority / explicit provider)
2. Per-candidate circuit breaker and daily budget checks
3. Cache lookup
4. Provider call with timeout, fallback to the next candidate on failure
5. Automatic basic → ai escalation (auto mode)
"""

import asyncio
import time
from typing import Dict, Optional

from src.core.clock import Clock, SystemClock
from src.core.config import SearchConfig
from src.core.exceptions import (
    BudgetExhaustedException,
    PrivacyBlockedException,
    ProviderTimeoutException,
    TierExhaustedException,
    error_message,
)
from src.core.logging import logger, sanitize_for_log
from src.providers import build_adapters
from src.providers.executor import ProviderAdapter, ProviderInput
from src.providers.result import AiSearchResult
from src.schemas.search_schema import SearchRequest
from src.utils.url_utils import clamp_result_count, deduplicate_results

from .budget import AI_COUNTER, BRAVE_COUNTER, BudgetConfig, DailyBudget
from .cache import TtlLruCache
from .cache_adapter import CacheAdapter, build_cache_key
from .circuit_breaker import CircuitBreakerRegistry
from .result import DebugTrace, SearchEnvelope, SearchTier, ToolPayload
from .strategy import EscalationPolicy, ProviderSelector, SearchMode


RATE_LIMITED_PROVIDERS: Dict[str, str] = {"brave": BRAVE_COUNTER}


class SearchOrchestrator:
    """검색 엔진 오케스트레이터

    Basic 티어(searxng/brave)와 AI 티어(tavily/perplexity)의 fallback 루프를 실행하고,
    auto 모드에서는 Basic 결과를 평가해 AI 티어로 승급합니다.

    캐시, 회로차단기, 일일 예산은 인스턴스가 소유하며 요청 간에 공유됩니다.
    """

    def __init__(
        self,
        config: SearchConfig,
        adapters: Optional[Dict[str, ProviderAdapter]] = None,
        cache: Optional[CacheAdapter] = None,
        breaker: Optional[CircuitBreakerRegistry] = None,
        budget: Optional[DailyBudget] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            config: 검색 설정
            adapters: provider 이름 → 어댑터 (기본값: build_adapters(config))
            cache: 캐시 어댑터 (기본값: 설정 기반 생성)
            breaker: 회로차단기 (기본값: 설정 기반 생성)
            budget: 일일 예산 (기본값: 설정 기반 생성)
            clock: 시계 (기본값: SystemClock)
        """
        if config is None:
            raise ValueError("config must not be None")

        self.config = config
        self.clock = clock or SystemClock()
        self.adapters = adapters if adapters is not None else build_adapters(config)
        self.cache = cache or CacheAdapter(
            config.cache, TtlLruCache(config.cache.max_entries, self.clock)
        )
        self.breaker = breaker or CircuitBreakerRegistry(
            failure_threshold=config.circuit_breaker.failure_threshold,
            cooldown_ms=config.circuit_breaker.cooldown_ms,
            clock=self.clock,
        )
        self.budget = budget or DailyBudget(
            BudgetConfig(
                limits={
                    BRAVE_COUNTER: config.router.max_brave_calls_per_day,
                    AI_COUNTER: config.router.max_ai_calls_per_day,
                }
            ),
            clock=self.clock,
        )
        self.selector = ProviderSelector(config)
        self.escalation = EscalationPolicy(config)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def search_basic(self, request: SearchRequest) -> ToolPayload:
        """Basic 티어 검색

        Raises:
            ConfigurationException: 사용 가능한 provider가 없는 경우
            TierExhaustedException: 모든 provider 실패
        """
        trace = self._new_trace("start_basic")
        envelope = await self._run_basic(request, trace)
        return ToolPayload.from_envelope(envelope, request.debug)

    async def search_ai(self, request: SearchRequest) -> ToolPayload:
        """AI 티어 검색

        Raises:
            PrivacyBlockedException: 민감한 검색어 (privacy guard 활성화 시)
            ConfigurationException: 사용 가능한 provider가 없는 경우
            BudgetExhaustedException: 일일 AI 호출 한도 도달
            TierExhaustedException: 모든 provider 실패
        """
        trace = self._new_trace("start_ai")
        if self.escalation.is_blocked_by_privacy_guard(request.query):
            logger.warning(f"[ORCHESTRATOR] AI search blocked by privacy guard: query='{sanitize_for_log(request.query)}'")
            raise PrivacyBlockedException()
        envelope = await self._run_ai(request, trace)
        return ToolPayload.from_envelope(envelope, request.debug)

    async def search_auto(self, request: SearchRequest) -> ToolPayload:
        """자동 라우팅 검색

        mode가 basic/ai로 지정되면 해당 티어로 위임하고,
        auto이면 Basic 실행 후 승급 여부를 판단합니다.
        AI 승급 실패는 호출자에게 전파하지 않고 Basic 결과로 대체합니다.
        """
        mode = SearchMode(request.mode or self.config.router.default_mode)
        if mode == SearchMode.BASIC:
            return await self.search_basic(request)
        if mode == SearchMode.AI:
            return await self.search_ai(request)

        trace = self._new_trace("start_auto")
        basic = await self._run_basic(request, trace)

        decision = self.escalation.evaluate(request.query, basic.result_count)
        trace.record(
            "auto_evaluate_upgrade",
            basic_result_count=decision.basic_result_count,
            basic_insufficient=decision.basic_insufficient,
            intent_requires_ai=decision.intent_requires_ai,
        )

        if not decision.should_escalate:
            return ToolPayload.from_envelope(basic.with_trace(trace.snapshot()), request.debug)

        if self.escalation.is_blocked_by_privacy_guard(request.query):
            trace.record("ai_upgrade_blocked_by_privacy_guard")
            logger.info("[ORCHESTRATOR] AI upgrade blocked by privacy guard")
            return ToolPayload.from_envelope(basic.with_trace(trace.snapshot()), request.debug)

        try:
            envelope = await self._run_ai(request, trace)
        except Exception as e:
            message = error_message(e)
            trace.record("ai_upgrade_failed_fallback_to_basic", message=message)
            logger.warning(f"[ORCHESTRATOR] AI upgrade failed, falling back to basic: {type(e).__name__}: {message}")
            return ToolPayload.from_envelope(basic.with_trace(trace.snapshot()), request.debug)

        return ToolPayload.from_envelope(envelope, request.debug)

    async def execute(self, request: SearchRequest) -> ToolPayload:
        """통합 검색 실행 (search_auto와 동일)"""
        return await self.search_auto(request)

    # ------------------------------------------------------------------
    # Tier loops
    # ------------------------------------------------------------------

    async def _run_basic(self, request: SearchRequest, trace: DebugTrace) -> SearchEnvelope:
        self.budget.reset_if_needed()
        candidates = self.selector.candidates(SearchTier.BASIC, request)
        return await self._run_tier(SearchTier.BASIC, candidates, request, trace)

    async def _run_ai(self, request: SearchRequest, trace: DebugTrace) -> SearchEnvelope:
        self.budget.reset_if_needed()
        if self.budget.is_exhausted(AI_COUNTER):
            logger.warning(f"[ORCHESTRATOR] Daily AI budget exhausted ({self.budget.count(AI_COUNTER)} calls)")
            raise BudgetExhaustedException(AI_COUNTER, self.config.router.max_ai_calls_per_day)
        candidates = self.selector.candidates(SearchTier.AI, request)
        return await self._run_tier(SearchTier.AI, candidates, request, trace)

    async def _run_tier(
        self,
        tier: SearchTier,
        candidates: list,
        request: SearchRequest,
        trace: DebugTrace,
    ) -> SearchEnvelope:
        """후보 provider를 순서대로 시도

        Raises:
            TierExhaustedException: 모든 후보가 건너뛰어졌거나 실패한 경우
        """
        last_error: Optional[str] = None

        for provider in candidates:
            if not self.breaker.is_available(provider):
                trace.record("provider_skipped_circuit_open", provider=provider)
                logger.debug(f"[ORCHESTRATOR] Skip {provider}: circuit open")
                continue

            counter = RATE_LIMITED_PROVIDERS.get(provider) if tier == SearchTier.BASIC else None
            if counter and self.budget.is_exhausted(counter):
                trace.record("provider_skipped_budget", provider=provider)
                logger.debug(f"[ORCHESTRATOR] Skip {provider}: daily budget reached")
                continue

            key = build_cache_key(tier, provider, request)
            cached = self.cache.get(key, trace)
            if cached is not None:
                return cached

            reserved = AI_COUNTER if tier == SearchTier.AI else counter
            if reserved and not self.budget.try_reserve(reserved):
                if tier == SearchTier.AI:
                    logger.warning(f"[ORCHESTRATOR] Daily AI budget exhausted before calling {provider}")
                    raise BudgetExhaustedException(AI_COUNTER, self.config.router.max_ai_calls_per_day)
                trace.record("provider_skipped_budget", provider=provider)
                logger.debug(f"[ORCHESTRATOR] Skip {provider}: daily budget reached")
                continue

            adapter = self.adapters[provider]
            started = time.perf_counter()
            try:
                data = await self._call_adapter(adapter, request)
            except asyncio.CancelledError:
                if reserved:
                    self.budget.release(reserved)
                raise
            except Exception as e:
                if reserved:
                    self.budget.release(reserved)
                message = error_message(e)
                self.breaker.record_failure(provider)
                trace.record("provider_error", provider=provider, message=message)
                logger.warning(f"[ORCHESTRATOR] {provider} failed: {type(e).__name__}: {message}")
                last_error = message
                continue

            latency_ms = int((time.perf_counter() - started) * 1000)
            self.breaker.record_success(provider)
            trace.record("provider_success", provider=provider, latency_ms=latency_ms)

            if isinstance(data, AiSearchResult):
                data.results = deduplicate_results(data.results)
                envelope = SearchEnvelope.ai(provider, request.query, data, [])
            else:
                envelope = SearchEnvelope.basic(provider, request.query, deduplicate_results(data), [])

            self.cache.set(key, envelope, trace)
            envelope = envelope.with_trace(trace.snapshot())
            logger.info(
                f"[ORCHESTRATOR] {tier.value} served by {provider}: "
                f"results={envelope.result_count}, latency={latency_ms}ms, "
                f"query='{sanitize_for_log(request.query)}'"
            )
            return envelope

        logger.warning(f"[ORCHESTRATOR] All {tier.value} providers failed: {last_error or 'unknown error'}")
        raise TierExhaustedException(tier.value, last_error)

    async def _call_adapter(self, adapter: ProviderAdapter, request: SearchRequest):
        params = ProviderInput(
            query=request.query,
            max_results=clamp_result_count(request.max_results),
            timeout_ms=adapter.timeout_ms,
            language=request.language,
            country=request.country,
            category=request.category,
            freshness=request.freshness,
            safesearch=request.safesearch,
            search_depth=request.search_depth,
        )
        try:
            return await asyncio.wait_for(adapter.search(params), timeout=adapter.timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutException(adapter.name, adapter.timeout_ms) from e

    def _new_trace(self, step: str) -> DebugTrace:
        trace = DebugTrace(self.clock)
        trace.record(step)
        return trace
