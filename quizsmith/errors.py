"""Exception taxonomy for the generation pipeline."""
from __future__ import annotations


class QuizsmithError(Exception):
    category = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ProviderError(QuizsmithError):
    category = "provider_error"


class ProviderConfigurationError(ProviderError):
    """Missing/invalid credential or unknown backend. Never retried."""

    category = "provider_configuration"


class ProviderTransportError(ProviderError):
    """Network failure or non-2xx upstream response."""

    category = "provider_transport"

    def __init__(self, message: str = "", status: int | None = None):
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"upstream {self.status}: {self.message}"
        return self.message


class RecoveryExhaustedError(QuizsmithError):
    category = "recovery_exhausted"


class SchemaValidationError(QuizsmithError):
    category = "schema_validation"


class InvalidResponseShape(SchemaValidationError):
    """The recovered document has no ``questions`` array at all."""

    category = "invalid_response_shape"


class PartialRecoveryWarning(UserWarning):
    category = "partial_recovery"

    def __init__(self, recovered: int, requested: int):
        self.recovered = recovered
        self.requested = requested
        super().__init__(
            f"Recovered {recovered} of {requested} questions; "
            f"{requested - recovered} placeholder questions appended"
        )


class InvalidRequest(QuizsmithError):
    """A caller-supplied request body failed validation."""

    category = "invalid_request"
