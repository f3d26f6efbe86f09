from typing import Optional


class NewsAggregatorError(Exception):
    pass


class NewsFetchError(NewsAggregatorError):
    pass


class RateLimitExhausted(NewsFetchError):
    """Upstream rate-limited the request and nothing was cached for it."""

    def __init__(self, message: str = "Rate limit exceeded and no cached data available"):
        super().__init__(message)


class UpstreamFetchFailed(NewsFetchError):
    """Any other upstream failure: network, non-2xx, malformed body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
