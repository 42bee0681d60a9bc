"""Exceptions raised by the scraping pipeline."""

EXCERPT_CHARS = 300


class ScrapeError(Exception):
    """Base pipeline error."""


class ConfigurationError(ScrapeError):
    """Missing credential or input; raised before any source is processed."""


class UpstreamError(ScrapeError):
    """Browser, network or inference service failure for one source."""


class NoProviderError(UpstreamError):
    """No vision provider produced a usable reply."""

    def __init__(self, message="No vision provider available", attempts=None):
        super().__init__(message)
        self.attempts = list(attempts or [])


class RateLimitExceededError(UpstreamError):
    """Provider kept answering HTTP 429 after every retry."""

    def __init__(self, provider: str, attempts: int):
        super().__init__(f"{provider}: max retries exceeded ({attempts} attempts, rate limited)")
        self.provider = provider
        self.attempts = attempts


class MalformedResponseError(ScrapeError):
    """Provider reply could not be decoded as JSON."""

    def __init__(self, text: str):
        self.excerpt = (text or "")[:EXCERPT_CHARS]
        super().__init__(f"Cannot parse JSON: {self.excerpt}")
