"""Error kinds raised by the upstream sources."""


class HNFeedError(Exception):
    """Base class for recoverable feed errors."""


class FetchError(HNFeedError):
    """An id list or item could not be fetched (network error or non-200)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchError(HNFeedError):
    """The search backend failed to answer a query."""
