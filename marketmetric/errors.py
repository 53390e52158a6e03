"""
Error taxonomy for the analysis pipeline.

Every error carries the HTTP status the API layer answers with, so the
blueprint can turn any of them into the same JSON envelope.
"""
from typing import Any, Dict, Optional


class MarketMetricError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        # Pipeline stage the error escaped from, set by the API layer
        self.stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        if self.stage:
            body["stage"] = self.stage
        return body


class ValidationError(MarketMetricError):
    """Request is missing something the caller can fix."""
    status_code = 400


class StorageError(MarketMetricError):
    status_code = 500


class StorageNotFound(StorageError):
    status_code = 404


class ExtractionFailure(MarketMetricError):
    """Raised inside the extractor only; callers get fallback text instead."""


class ConfigurationError(MarketMetricError):
    pass


class NetworkError(MarketMetricError):
    pass


class ProviderError(MarketMetricError):

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message, details=body or None)
        self.status = status
        self.body = body


class AnalysisFormatError(MarketMetricError):
    pass
