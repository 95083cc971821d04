"""SearchOrchestrator 단위 테스트."""

from __future__ import annotations

import asyncio

import pytest

from src.core.exceptions import (
    BudgetExhaustedException,
    NoProviderConfiguredException,
    PrivacyBlockedException,
    ProviderHTTPException,
    TierExhaustedException,
)
from src.engine.budget import AI_COUNTER, BRAVE_COUNTER
from src.providers.result import BasicResult
from src.schemas.search_schema import SearchRequest


def steps(payload) -> list[str]:
    return [e["step"] for e in payload.structured_content["debug_trace"]]


def trace_event(payload, step: str) -> dict:
    return next(e for e in payload.structured_content["debug_trace"] if e["step"] == step)


def fail(adapter, status: int = 500) -> None:
    adapter.error = ProviderHTTPException(status, "Internal Server Error", "upstream down")


class TestBasicTier:
    """Basic 티어 fallback 루프"""

    @pytest.mark.asyncio
    async def test_first_candidate_serves(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="python asyncio", debug=True))

        data = payload.structured_content
        assert data["mode"] == "basic"
        assert data["provider"] == "searxng"
        assert data["query"] == "python asyncio"
        assert len(data["data"]) == 5
        assert steps(payload) == ["start_basic", "provider_success", "cache_set"]
        assert "latency_ms" in trace_event(payload, "provider_success")["details"]
        assert adapters["brave"].calls == []

    @pytest.mark.asyncio
    async def test_adapter_input(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        await orchestrator.search_basic(
            SearchRequest(query="q", language="ko", category="news", maxResults=99, safesearch="strict")
        )

        params = adapters["searxng"].calls[0]
        assert params.query == "q"
        assert params.max_results == 20
        assert params.language == "ko"
        assert params.category == "news"
        assert params.safesearch == "strict"
        assert params.timeout_ms == adapters["searxng"].timeout_ms

    @pytest.mark.asyncio
    async def test_falls_back_on_provider_error(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q", debug=True))

        assert payload.structured_content["provider"] == "brave"
        assert steps(payload) == ["start_basic", "provider_error", "provider_success", "cache_set"]
        error = trace_event(payload, "provider_error")["details"]
        assert error["provider"] == "searxng"
        assert error["message"] == "HTTP 500 Internal Server Error: upstream down"
        assert orchestrator.breaker.failure_count("searxng") == 1

    @pytest.mark.asyncio
    async def test_unexpected_adapter_exception_is_transient(self, make_orchestrator, adapters):
        adapters["searxng"].error = KeyError("results")
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q"))

        assert payload.structured_content["provider"] == "brave"

    @pytest.mark.asyncio
    async def test_skips_provider_with_open_breaker(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()
        for _ in range(orchestrator.breaker.failure_threshold):
            orchestrator.breaker.record_failure("searxng")

        payload = await orchestrator.search_basic(SearchRequest(query="q", debug=True))

        assert payload.structured_content["provider"] == "brave"
        assert steps(payload)[1] == "provider_skipped_circuit_open"
        assert trace_event(payload, "provider_skipped_circuit_open")["details"] == {"provider": "searxng"}
        assert adapters["searxng"].calls == []

    @pytest.mark.asyncio
    async def test_breaker_opens_after_repeated_failures(self, make_orchestrator, adapters, clock):
        fail(adapters["searxng"])
        orchestrator = make_orchestrator({"circuit_breaker": {"failure_threshold": 2, "cooldown_ms": 60_000}})

        await orchestrator.search_basic(SearchRequest(query="a"))
        await orchestrator.search_basic(SearchRequest(query="b"))
        await orchestrator.search_basic(SearchRequest(query="c"))
        assert len(adapters["searxng"].calls) == 2

        clock.advance(60)
        adapters["searxng"].error = None
        payload = await orchestrator.search_basic(SearchRequest(query="d"))
        assert payload.structured_content["provider"] == "searxng"
        assert orchestrator.breaker.failure_count("searxng") == 0

    @pytest.mark.asyncio
    async def test_brave_skipped_when_daily_cap_reached(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        orchestrator = make_orchestrator({"router": {"max_brave_calls_per_day": 1}})

        first = await orchestrator.search_basic(SearchRequest(query="first"))
        assert first.structured_content["provider"] == "brave"
        assert orchestrator.budget.count(BRAVE_COUNTER) == 1

        with pytest.raises(TierExhaustedException) as exc_info:
            await orchestrator.search_basic(SearchRequest(query="second"))

        assert len(adapters["brave"].calls) == 1
        assert exc_info.value.message == "All basic providers failed: HTTP 500 Internal Server Error: upstream down"

    @pytest.mark.asyncio
    async def test_brave_budget_resets_next_day(self, make_orchestrator, adapters, clock):
        orchestrator = make_orchestrator({"router": {"max_brave_calls_per_day": 1}})

        await orchestrator.search_basic(SearchRequest(query="one", provider="brave"))
        with pytest.raises(TierExhaustedException):
            await orchestrator.search_basic(SearchRequest(query="two", provider="brave"))

        clock.advance(24 * 60 * 60)
        payload = await orchestrator.search_basic(SearchRequest(query="two", provider="brave"))
        assert payload.structured_content["provider"] == "brave"

    @pytest.mark.asyncio
    async def test_failed_brave_call_does_not_consume_budget(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        fail(adapters["brave"], status=429)
        orchestrator = make_orchestrator()

        with pytest.raises(TierExhaustedException):
            await orchestrator.search_basic(SearchRequest(query="q"))

        assert orchestrator.budget.count(BRAVE_COUNTER) == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_do_not_overrun_brave_cap(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        orchestrator = make_orchestrator({
            "router": {"max_brave_calls_per_day": 1},
            "cache": {"enabled": False},
        })

        outcomes = await asyncio.gather(
            *(orchestrator.search_basic(SearchRequest(query=f"q{i}")) for i in range(5)),
            return_exceptions=True,
        )

        served = [o for o in outcomes if not isinstance(o, BaseException)]
        assert len(served) == 1
        assert all(isinstance(o, TierExhaustedException) for o in outcomes if isinstance(o, BaseException))
        assert len(adapters["brave"].calls) == 1
        assert orchestrator.budget.count(BRAVE_COUNTER) == 1

    @pytest.mark.asyncio
    async def test_cancelled_brave_call_releases_budget(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        adapters["brave"].hang = True
        orchestrator = make_orchestrator({"router": {"max_brave_calls_per_day": 1}})

        task = asyncio.create_task(orchestrator.search_basic(SearchRequest(query="slow")))
        while not adapters["brave"].calls:
            await asyncio.sleep(0)
        assert orchestrator.budget.count(BRAVE_COUNTER) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.budget.count(BRAVE_COUNTER) == 0

    @pytest.mark.asyncio
    async def test_all_providers_fail(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        adapters["brave"].error = RuntimeError("connection reset")
        orchestrator = make_orchestrator()

        with pytest.raises(TierExhaustedException) as exc_info:
            await orchestrator.search_basic(SearchRequest(query="q"))

        assert exc_info.value.tier == "basic"
        assert exc_info.value.message == "All basic providers failed: connection reset"

    @pytest.mark.asyncio
    async def test_all_candidates_skipped_reports_unknown_error(self, make_orchestrator):
        orchestrator = make_orchestrator()
        for provider in ("searxng", "brave"):
            for _ in range(orchestrator.breaker.failure_threshold):
                orchestrator.breaker.record_failure(provider)

        with pytest.raises(TierExhaustedException) as exc_info:
            await orchestrator.search_basic(SearchRequest(query="q"))

        assert exc_info.value.message == "All basic providers failed: unknown error"

    @pytest.mark.asyncio
    async def test_timeout_is_provider_failure(self, make_orchestrator, adapters):
        adapters["searxng"].hang = True
        adapters["searxng"].timeout_ms = 20
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q", debug=True))

        assert payload.structured_content["provider"] == "brave"
        message = trace_event(payload, "provider_error")["details"]["message"]
        assert message == "searxng timed out after 20ms"

    @pytest.mark.asyncio
    async def test_results_deduplicated(self, make_orchestrator, adapters):
        adapters["searxng"].response = [
            BasicResult(title="A", url="https://a.example/page?utm_source=x"),
            BasicResult(title="A again", url="https://a.example/page"),
            BasicResult(title="B", url="https://b.example/"),
        ]
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q"))

        data = payload.structured_content["data"]
        assert [r["title"] for r in data] == ["A", "B"]
        assert data[0]["url"] == "https://a.example/page"

    @pytest.mark.asyncio
    async def test_explicit_provider(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q", provider="brave"))

        assert payload.structured_content["provider"] == "brave"
        assert adapters["searxng"].calls == []

    @pytest.mark.asyncio
    async def test_no_provider_configured(self, make_orchestrator):
        orchestrator = make_orchestrator({"basic": {"searxng": {"base_url": ""}, "brave": {"api_key": ""}}})

        with pytest.raises(NoProviderConfiguredException):
            await orchestrator.search_basic(SearchRequest(query="q"))

    @pytest.mark.asyncio
    async def test_trace_hidden_without_debug(self, make_orchestrator):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_basic(SearchRequest(query="q"))

        assert payload.structured_content["debug_trace"] == []


class TestCache:
    """결과 캐시"""

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        await orchestrator.search_basic(SearchRequest(query="Python AsyncIO"))
        payload = await orchestrator.search_basic(SearchRequest(query="  python asyncio ", debug=True))

        assert len(adapters["searxng"].calls) == 1
        assert steps(payload) == ["start_basic", "cache_hit"]
        assert payload.structured_content["provider"] == "searxng"

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self, make_orchestrator, adapters, clock):
        orchestrator = make_orchestrator()

        await orchestrator.search_basic(SearchRequest(query="q"))
        clock.advance(900)
        await orchestrator.search_basic(SearchRequest(query="q"))

        assert len(adapters["searxng"].calls) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({"cache": {"enabled": False}})

        await orchestrator.search_basic(SearchRequest(query="q"))
        await orchestrator.search_basic(SearchRequest(query="q"))

        assert len(adapters["searxng"].calls) == 2

    @pytest.mark.asyncio
    async def test_cache_hit_skips_budget_increment(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        await orchestrator.search_ai(SearchRequest(query="q"))
        await orchestrator.search_ai(SearchRequest(query="q"))

        assert orchestrator.budget.count(AI_COUNTER) == 1
        assert len(adapters["tavily"].calls) == 1


class TestAiTier:
    """AI 티어"""

    @pytest.mark.asyncio
    async def test_ai_success(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_ai(SearchRequest(query="q", searchDepth="basic", debug=True))

        data = payload.structured_content
        assert data["mode"] == "ai"
        assert data["provider"] == "tavily"
        assert data["data"]["answer"] == "tavily answer"
        assert data["data"]["citations"] == ["https://tavily.example.com/source"]
        assert steps(payload)[0] == "start_ai"
        assert adapters["tavily"].calls[0].search_depth == "basic"
        assert orchestrator.budget.count(AI_COUNTER) == 1

    @pytest.mark.asyncio
    async def test_ai_fallback_counts_only_success(self, make_orchestrator, adapters):
        fail(adapters["tavily"])
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_ai(SearchRequest(query="q"))

        assert payload.structured_content["provider"] == "perplexity"
        assert orchestrator.budget.count(AI_COUNTER) == 1

    @pytest.mark.asyncio
    async def test_daily_ai_budget_is_fatal(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({"router": {"max_ai_calls_per_day": 1}})

        await orchestrator.search_ai(SearchRequest(query="first"))
        with pytest.raises(BudgetExhaustedException) as exc_info:
            await orchestrator.search_ai(SearchRequest(query="second"))

        assert exc_info.value.message == "Daily AI call budget reached"
        assert len(adapters["tavily"].calls) == 1
        assert adapters["perplexity"].calls == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_do_not_overrun_ai_cap(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({
            "router": {"max_ai_calls_per_day": 2},
            "cache": {"enabled": False},
        })

        outcomes = await asyncio.gather(
            *(orchestrator.search_ai(SearchRequest(query=f"q{i}")) for i in range(6)),
            return_exceptions=True,
        )

        served = [o for o in outcomes if not isinstance(o, BaseException)]
        assert len(served) == 2
        assert all(isinstance(o, BudgetExhaustedException) for o in outcomes if isinstance(o, BaseException))
        assert len(adapters["tavily"].calls) + len(adapters["perplexity"].calls) == 2
        assert orchestrator.budget.count(AI_COUNTER) == 2

    @pytest.mark.asyncio
    async def test_privacy_guard_blocks_explicit_ai(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        with pytest.raises(PrivacyBlockedException):
            await orchestrator.search_ai(SearchRequest(query="my api_key sk-abcdefghijklmnop1234"))

        assert adapters["tavily"].calls == []

    @pytest.mark.asyncio
    async def test_privacy_guard_disabled_allows_ai(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({"router": {"enable_privacy_guard": False}})

        payload = await orchestrator.search_ai(SearchRequest(query="reset password"))

        assert payload.structured_content["provider"] == "tavily"

    @pytest.mark.asyncio
    async def test_all_ai_providers_fail(self, make_orchestrator, adapters):
        fail(adapters["tavily"])
        adapters["perplexity"].error = RuntimeError("bad gateway")
        orchestrator = make_orchestrator()

        with pytest.raises(TierExhaustedException) as exc_info:
            await orchestrator.search_ai(SearchRequest(query="q"))

        assert exc_info.value.tier == "ai"
        assert exc_info.value.message == "All AI providers failed: bad gateway"


class TestAutoMode:
    """자동 승급 정책"""

    @pytest.mark.asyncio
    async def test_enough_results_stay_basic(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query="python asyncio", debug=True))

        assert payload.structured_content["mode"] == "basic"
        assert adapters["tavily"].calls == []
        assert adapters["perplexity"].calls == []
        evaluation = trace_event(payload, "auto_evaluate_upgrade")["details"]
        assert evaluation == {"basic_result_count": 5, "basic_insufficient": False, "intent_requires_ai": False}
        assert steps(payload)[0] == "start_auto"

    @pytest.mark.asyncio
    async def test_keyword_with_few_results_escalates(self, make_orchestrator, adapters):
        adapters["searxng"].response = adapters["searxng"].response[:1]
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query="latest python release", debug=True))

        assert payload.structured_content["mode"] == "ai"
        assert payload.structured_content["provider"] == "tavily"
        assert len(adapters["tavily"].calls) == 1
        evaluation = trace_event(payload, "auto_evaluate_upgrade")["details"]
        assert evaluation["basic_insufficient"] is True
        assert evaluation["intent_requires_ai"] is True

    @pytest.mark.asyncio
    async def test_keyword_alone_escalates(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query="아이폰 16 비교"))

        assert payload.structured_content["mode"] == "ai"

    @pytest.mark.asyncio
    async def test_privacy_guard_blocks_escalation(self, make_orchestrator, adapters):
        adapters["searxng"].response = []
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query="latest leak john@example.com", debug=True))

        assert payload.structured_content["mode"] == "basic"
        assert "ai_upgrade_blocked_by_privacy_guard" in steps(payload)
        assert adapters["tavily"].calls == []
        assert adapters["perplexity"].calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["010-1234-5678로 최신 요약", "foo@bar.com으로 온 메일 요약"])
    async def test_privacy_guard_blocks_escalation_with_korean_suffix(self, make_orchestrator, adapters, query):
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query=query, debug=True))

        assert payload.structured_content["mode"] == "basic"
        assert "ai_upgrade_blocked_by_privacy_guard" in steps(payload)
        assert adapters["tavily"].calls == []
        assert adapters["perplexity"].calls == []

    @pytest.mark.asyncio
    async def test_ai_failure_degrades_to_basic(self, make_orchestrator, adapters):
        fail(adapters["tavily"])
        fail(adapters["perplexity"])
        orchestrator = make_orchestrator()

        payload = await orchestrator.search_auto(SearchRequest(query="compare python web frameworks", debug=True))

        data = payload.structured_content
        assert data["mode"] == "basic"
        assert data["provider"] == "searxng"
        assert len(adapters["searxng"].calls) == 1
        trace_steps = steps(payload)
        assert trace_steps.count("provider_error") == 2
        assert trace_steps[-1] == "ai_upgrade_failed_fallback_to_basic"
        fallback = trace_event(payload, "ai_upgrade_failed_fallback_to_basic")["details"]
        assert fallback["message"].startswith("All AI providers failed")

    @pytest.mark.asyncio
    async def test_ai_budget_exhaustion_degrades_to_basic(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({"router": {"max_ai_calls_per_day": 1}})

        await orchestrator.search_ai(SearchRequest(query="warm up"))
        payload = await orchestrator.search_auto(SearchRequest(query="latest news", debug=True))

        assert payload.structured_content["mode"] == "basic"
        fallback = trace_event(payload, "ai_upgrade_failed_fallback_to_basic")["details"]
        assert fallback["message"] == "Daily AI call budget reached"

    @pytest.mark.asyncio
    async def test_basic_failure_propagates(self, make_orchestrator, adapters):
        fail(adapters["searxng"])
        fail(adapters["brave"])
        orchestrator = make_orchestrator()

        with pytest.raises(TierExhaustedException):
            await orchestrator.search_auto(SearchRequest(query="latest"))

        assert adapters["tavily"].calls == []

    @pytest.mark.asyncio
    async def test_explicit_mode_bypasses_policy(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        basic = await orchestrator.search_auto(SearchRequest(query="latest news", mode="basic", debug=True))
        ai = await orchestrator.search_auto(SearchRequest(query="python", mode="ai", debug=True))

        assert basic.structured_content["mode"] == "basic"
        assert steps(basic)[0] == "start_basic"
        assert ai.structured_content["mode"] == "ai"
        assert steps(ai)[0] == "start_ai"
        assert len(adapters["tavily"].calls) == 1

    @pytest.mark.asyncio
    async def test_default_mode_from_config(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator({"router": {"default_mode": "basic"}})

        payload = await orchestrator.execute(SearchRequest(query="latest news"))

        assert payload.structured_content["mode"] == "basic"
        assert adapters["tavily"].calls == []

    @pytest.mark.asyncio
    async def test_execute_is_auto(self, make_orchestrator, adapters):
        orchestrator = make_orchestrator()

        payload = await orchestrator.execute(SearchRequest(query="compare"))

        assert payload.structured_content["mode"] == "ai"
