"""Domain exceptions for the complaint engine.

These map to consistent HTTP responses when handled by the global exception handler.
"""


class ComplaintEngineError(Exception):
    """Base exception for complaint engine domain errors."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail or message


class ProcessingError(ComplaintEngineError):
    """Raised when a submission could not be processed; names the failing stage."""

    def __init__(self, message: str, stage: str, detail: str | None = None) -> None:
        super().__init__(message, status_code=500, detail=detail or message)
        self.stage = stage


class PersistenceError(ProcessingError):
    """Raised when the complaint store failed; the submission was rolled back."""


class EngineNotReadyError(ComplaintEngineError):
    """Raised when the pipeline or a dependency is not initialized."""

    def __init__(self, message: str = "Pipeline not initialized", detail: str | None = None) -> None:
        super().__init__(message, status_code=503, detail=detail or message)


class CatalogUnavailableError(ComplaintEngineError):
    """Raised when an explicit catalog reload cannot read its source."""

    def __init__(self, message: str = "Catalog unavailable", detail: str | None = None) -> None:
        super().__init__(message, status_code=503, detail=detail or message)


class ResourceNotFoundError(ComplaintEngineError):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message, status_code=404, detail=detail or message)
