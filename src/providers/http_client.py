"""공유 HTTP 클라이언트 (curl_cffi)

- 요청마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 세션을 재사용합니다.
- 앱 종료 시 close()로 정리합니다.
- 모든 provider 어댑터가 JSON API 호출에 사용합니다.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import Timeout as CurlTimeout

from src.core.config import settings
from src.core.exceptions import ParsingException, ProviderHTTPException, ProviderTimeoutException
from src.core.logging import logger


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            kwargs: Dict[str, Any] = {
                "headers": self.default_headers(),
                "allow_redirects": True,
                "max_clients": int(settings.http_max_clients),
                "trust_env": False,
            }
            if settings.http_impersonate:
                kwargs["impersonate"] = settings.http_impersonate
            self._session = AsyncSession(**kwargs)
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": f"web-search-router/{settings.api_version}",
            "Accept": "application/json",
        }

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        provider: str,
        timeout_ms: int,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """JSON API 호출

        Args:
            method: HTTP 메서드
            url: 요청 URL
            provider: provider 이름 (오류 메시지용)
            timeout_ms: 타임아웃 (ms)
            params: 쿼리 파라미터
            headers: 추가 헤더
            json_body: JSON 본문

        Returns:
            파싱된 JSON

        Raises:
            ProviderTimeoutException: 타임아웃
            ProviderHTTPException: 2xx가 아닌 응답
            ParsingException: JSON이 아닌 응답
        """
        sess = await self._ensure_session()
        timeout_s = timeout_ms / 1000
        try:
            resp = await asyncio.wait_for(
                sess.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    json=json_body,
                    timeout=timeout_s,
                ),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, CurlTimeout) as e:
            logger.info(f"[HTTP_CLIENT] {method} timeout: provider={provider}, {type(e).__name__}")
            raise ProviderTimeoutException(provider, timeout_ms) from e

        status = getattr(resp, "status_code", 0) or 0
        text = getattr(resp, "text", "") or ""
        if status < 200 or status >= 300:
            reason = getattr(resp, "reason", "") or ""
            raise ProviderHTTPException(status, reason, text)

        try:
            return json.loads(text)
        except (json.JSONDecodeError, ValueError) as e:
            raise ParsingException(f"{provider} returned non-JSON body") from e

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        return await self.request_json("GET", url, **kwargs)

    async def post_json(self, url: str, **kwargs: Any) -> Any:
        return await self.request_json("POST", url, **kwargs)

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.warning(f"[HTTP_CLIENT] Session close failed: {type(e).__name__}: {e}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
