"""Perplexity Adapter - Chat completions with web citations (ai tier)"""

from typing import Optional

from src.core.config import PerplexityConfig
from src.core.exceptions import MissingCredentialsException

from .executor import ProviderInput, as_text
from .http_client import SharedHttpClient, get_shared_http_client
from .result import AiSearchResult, BasicResult


PERPLEXITY_API = "https://api.perplexity.ai/chat/completions"
SYSTEM_PROMPT = "Provide a concise answer with citations."


class PerplexityAdapter:
    """Perplexity Chat Completions API 어댑터

    max_results/search_depth는 API가 지원하지 않아 무시합니다.
    """

    name = "perplexity"
    tier = "ai"

    def __init__(self, config: PerplexityConfig, http_client: Optional[SharedHttpClient] = None):
        self.config = config
        self.http = http_client or get_shared_http_client()

    @property
    def timeout_ms(self) -> int:
        return self.config.timeout_ms

    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def search(self, params: ProviderInput) -> AiSearchResult:
        if not self.config.api_key:
            raise MissingCredentialsException("Perplexity")

        raw = await self.http.post_json(
            PERPLEXITY_API,
            provider=self.name,
            timeout_ms=params.timeout_ms,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.config.api_key}",
            },
            json_body={
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": params.query},
                ],
            },
        )
        if not isinstance(raw, dict):
            raw = {}

        answer = ""
        choices = raw.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                answer = as_text(message.get("content"))

        citations = raw.get("citations")
        rows = raw.get("search_results")
        if not isinstance(rows, list):
            rows = []

        results = [
            BasicResult(
                title=as_text(r.get("title")),
                url=as_text(r.get("url")),
                snippet=as_text(r.get("snippet") or r.get("content")),
            )
            for r in rows
            if isinstance(r, dict)
        ]
        return AiSearchResult(
            answer=answer,
            citations=[as_text(c) for c in citations] if isinstance(citations, list) else [],
            results=[r for r in results if r.title and r.url],
        )
