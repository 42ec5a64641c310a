"""Error taxonomy for the categorizer.

``ValidationError`` and ``ModelNotReady`` are surfaced to callers as-is.
Lifecycle errors are raised for missing inputs and otherwise recovered into
a boolean result by :class:`~categorizer.lifecycle.ModelLifecycleManager`.
"""

from __future__ import annotations


class CategorizerError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(CategorizerError):
    """Malformed or empty required input, rejected before any model work."""


class ModelNotReady(CategorizerError):
    """Inference attempted before both classifier slots are bound."""

    def __init__(self, message: str = "ML models are not ready for analysis", details: dict | None = None) -> None:
        super().__init__(message, details)


class DatasetNotFound(CategorizerError):
    def __init__(self, path, details: dict | None = None) -> None:
        self.path = str(path)
        super().__init__(f"Dataset file not found: {self.path}", details)


class ArtifactNotFound(CategorizerError):
    def __init__(self, path, details: dict | None = None) -> None:
        self.path = str(path)
        super().__init__(f"Model artifact not found: {self.path}", details)


class FitFailure(CategorizerError):
    """The classification library could not fit a model."""


class PersistFailure(CategorizerError):
    """A fitted model could not be written to the artifact directory."""


class UnclassifiedFailure(CategorizerError):
    """Anything else, wrapped with the context it happened in."""

    def __init__(self, context: str, cause: BaseException | None = None) -> None:
        self.context = context
        self.cause = cause
        message = context if cause is None else f"{context}: {cause}"
        super().__init__(message, {"context": context})


class OperationTimeout(UnclassifiedFailure):
    """A bounded lifecycle operation (fit, evaluate) ran past its deadline."""
