"""
Centralized exception hierarchy for telemetry errors.

Sensing errors are split into a fatal branch (permission) and a transient
branch that retry policies select on. Delivery failures are external
service errors and are always retried by the delivery buffer.
"""


class TelemetryError(Exception):
    """Base exception for all engine-specific errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(TelemetryError):
    """Exception raised when input data cannot be parsed."""


class ExternalServiceError(TelemetryError):
    """Exception raised when service calls fail."""


class DeliveryFailureError(ExternalServiceError):
    """Exception raised when a batch could not be delivered to the backend."""


class SensingError(TelemetryError):
    """Exception raised by the location sensing capability."""

    code = "sensing_error"


class PermissionDeniedError(SensingError):
    """Location permission was denied or revoked. Never retried."""

    code = "permission_denied"


class TransientSensingError(SensingError):
    """Sensing failure that is expected to clear on its own."""


class ProviderUnavailableError(TransientSensingError):
    """The platform could not produce a position."""

    code = "provider_unavailable"


class SensingTimeoutError(TransientSensingError):
    """No position arrived within the requested timeout."""

    code = "timeout"


class CalibrationFailedError(TelemetryError):
    """Every calibration attempt failed."""

    code = "calibration_failed"


class InvalidTransitionError(TelemetryError):
    """Exception raised for a lifecycle transition that is not allowed."""


ExternalServiceException = ExternalServiceError
