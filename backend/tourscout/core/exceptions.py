"""Custom exception classes for the application."""


class TourScoutException(Exception):
    """Base exception for all TourScout errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(TourScoutException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScraperError(TourScoutException):
    """Raised when a scraper encounters an error."""

    def __init__(self, site: str, message: str):
        self.site = site
        super().__init__(f"Scraper error for {site}: {message}")


class ScraperConfigurationError(ScraperError):
    """Raised when a scraper cannot run at all (missing fetcher, limiter, ...)."""


class ExtractionError(TourScoutException):
    """Raised when the AI extraction service returns an unusable answer."""
