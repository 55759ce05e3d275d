"""Exception classes for panelswitch library."""

from __future__ import annotations


class PanelSwitchError(Exception):
    """Base exception for all panelswitch errors."""


class BackendError(PanelSwitchError):
    """Raised when a backend service cannot serve a request.

    Carries the service and operation so log lines stay useful without
    a traceback.
    """

    def __init__(
        self,
        message: str,
        service: str | None = None,
        operation: str | None = None,
        last_error: Exception | None = None,
    ) -> None:
        """Initialize backend error with context.

        Args:
            message: The error message
            service: Bus name or label of the service involved
            operation: Method, property or command that failed
            last_error: The underlying exception that caused this error
        """
        self.service = service
        self.operation = operation
        self.last_error = last_error
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with context."""
        context_parts = []
        if self.service:
            context_parts.append(f"service={self.service}")
        if self.operation:
            context_parts.append(f"operation={self.operation}")
        if self.last_error is not None:
            context_parts.append(f"cause={self.last_error}")

        if context_parts:
            return f"{super().__str__()} ({', '.join(context_parts)})"
        return super().__str__()


class BackendUnavailableError(BackendError):
    """Raised when a backend is not connected (never became ready)."""


class BackendCallError(BackendError):
    """Raised when a remote method call or property write fails."""


class MixerError(BackendError):
    """Raised when the audio mixer command fails or is missing."""


class SettingsUnavailableError(PanelSwitchError):
    """A settings schema cannot be loaded (not installed, or no GSettings support)."""

    def __init__(self, schema_id: str, reason: str | None = None) -> None:
        self.schema_id = schema_id
        self.reason = reason
        message = f"Settings schema {schema_id} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
