"""Error taxonomy shared by the harvesting stages."""


class HarvestError(Exception):
    """Base class for news-harvester errors."""


class InvalidQueryError(HarvestError, ValueError):
    """Raised when the top-level query or run parameters are unusable."""


class FeedError(HarvestError):
    """Raised when a single feed search cannot be fetched or parsed."""


class ExtractionError(HarvestError):
    """Raised when a publisher page cannot be fetched at all."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class PersistError(HarvestError):
    """Raised when an article or manifest file cannot be written."""


__all__ = [
    "ExtractionError",
    "FeedError",
    "HarvestError",
    "InvalidQueryError",
    "PersistError",
]
