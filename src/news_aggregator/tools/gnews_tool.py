"""GNews gateway: cache-aside reads with a rate-limit fallback.

Both operations follow the same protocol. Look the key up in the cache,
call the provider on a miss and store what it returns. When the provider
answers 429 the cache is read once more for the same key; a hit there is
served as a fallback, otherwise the call fails with ``RateLimitExhausted``.
Nothing is retried against the network.
"""

from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..exceptions import RateLimitExhausted, UpstreamFetchFailed
from ..logging_config import get_logger
from ..models.news import NewsQuery, NewsResult, headlines_cache_key
from .cache import TTLCache


logger = get_logger("tools.gnews")

GNEWS_RATE_LIMIT_STATUS = 429


class GNewsConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: str = "https://gnews.io/api/v4"
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GNewsConfig":
        return cls(
            api_key=settings.gnews_api_key,
            base_url=settings.gnews_base_url,
            timeout_seconds=settings.gnews_timeout_seconds,
        )


def _upstream_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if body.get("message"):
        return str(body["message"])
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        return str(errors[0])
    if isinstance(errors, dict) and errors:
        return str(next(iter(errors.values())))
    return None


class GNewsClient:
    def __init__(
        self,
        config: GNewsConfig,
        cache: TTLCache[NewsResult],
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=config.timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def search(self, query: NewsQuery) -> NewsResult:
        return self._fetch(
            "search",
            query.cache_key(),
            query.to_params(),
            failure_message="Failed to fetch news from GNews API",
        )

    def top_headlines(
        self, lang: str = "en", country: Optional[str] = None, max_results: int = 10
    ) -> NewsResult:
        params: Dict[str, Any] = {"lang": lang, "max": max_results}
        if country:
            params["country"] = country
        return self._fetch(
            "top-headlines",
            headlines_cache_key(lang, country, max_results),
            params,
            failure_message="Failed to fetch headlines from GNews API",
        )

    def _fetch(
        self,
        endpoint: str,
        cache_key: str,
        params: Dict[str, Any],
        failure_message: str,
    ) -> NewsResult:
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("gnews_cache_hit", endpoint=endpoint, cache_key=cache_key)
            return cached

        if not self.config.api_key:
            raise UpstreamFetchFailed("GNEWS_API_KEY is not configured.")

        url = f"{self.config.base_url.rstrip('/')}/{endpoint}"
        try:
            response = self._http.get(
                url,
                params={**params, "token": self.config.api_key},
                timeout=self.config.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.warning("gnews_request_error", endpoint=endpoint, error=str(exc))
            raise UpstreamFetchFailed(f"{failure_message}: {exc}") from exc

        if response.status_code == GNEWS_RATE_LIMIT_STATUS:
            return self._rate_limit_fallback(endpoint, cache_key)

        if not response.is_success:
            message = _upstream_message(response) or failure_message
            logger.warning(
                "gnews_request_failed",
                endpoint=endpoint,
                status_code=response.status_code,
                error=message,
            )
            raise UpstreamFetchFailed(message, status_code=response.status_code)

        try:
            result = NewsResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("gnews_malformed_response", endpoint=endpoint, error=str(exc))
            raise UpstreamFetchFailed(
                f"{failure_message}: malformed response", status_code=response.status_code
            ) from exc

        self.cache.set(cache_key, result)
        logger.info(
            "gnews_fetched",
            endpoint=endpoint,
            cache_key=cache_key,
            total_articles=result.total_articles,
            results=len(result.articles),
        )
        return result

    def _rate_limit_fallback(self, endpoint: str, cache_key: str) -> NewsResult:
        # Without a grace period this is the same read as ``get``.
        fallback = self.cache.get_stale(cache_key)
        if fallback is not None:
            logger.warning("gnews_rate_limited_fallback", endpoint=endpoint, cache_key=cache_key)
            return fallback
        logger.warning("gnews_rate_limit_exhausted", endpoint=endpoint, cache_key=cache_key)
        raise RateLimitExhausted()
