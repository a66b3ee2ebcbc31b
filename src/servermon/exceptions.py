"""servermon exceptions."""

import shlex
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from servermon.supervisor._models import Attempt


class ServerMonError(Exception):
    """Base exception for servermon errors."""


# =============================================================================
# Validation Exceptions
# =============================================================================


class ServiceValidationError(ServerMonError, ValueError):
    """Raised when a service record or manifest field is invalid.

    Attributes:
        field: The manifest field that failed validation, if known.
        service_name: The name of the offending service, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        service_name: str | None = None,
    ) -> None:
        """Initialize with error message and validation context.

        Args:
            message: Human-readable error message.
            field: The manifest field that failed validation.
            service_name: The name of the offending service.
        """
        super().__init__(message)
        self.field: str | None = field
        self.service_name: str | None = service_name


class MissingIdentifierError(ServiceValidationError):
    """Raised when a service record has no identifier to render."""


class MissingCommandError(ServiceValidationError):
    """Raised when a service command is absent or empty after tokenization."""


class DuplicateServiceError(ServiceValidationError):
    """Raised when a name or identifier already exists in the manifest."""


class ServiceNotFoundError(ServerMonError, KeyError):
    """Raised when a service cannot be resolved from the manifest.

    Attributes:
        query: The name or identifier fragment that did not resolve.
    """

    def __init__(self, message: str, *, query: str | None = None) -> None:
        """Initialize with error message and lookup context.

        Args:
            message: Human-readable error message.
            query: The name or identifier fragment that did not resolve.
        """
        super().__init__(message)
        self.query: str | None = query

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


# =============================================================================
# Manifest Exceptions
# =============================================================================


class ManifestError(ServerMonError):
    """Base exception for manifest file errors."""


class ManifestLoadError(ManifestError):
    """Raised when the manifest exists but cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.path: Path = path
        self.cause: Exception | None = cause


class ManifestIOError(ManifestError):
    """Raised when the manifest cannot be written."""

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.path: Path = path
        self.cause: Exception | None = cause


# =============================================================================
# Descriptor Exceptions
# =============================================================================


class DescriptorIOError(ServerMonError):
    """Raised when a descriptor file cannot be read, parsed, written or deleted.

    Attributes:
        path: Path to the descriptor file.
        operation: The operation that failed ("read", "parse", "write", "delete").
        cause: The underlying exception.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        operation: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and I/O context.

        Args:
            message: Human-readable error message.
            path: Path to the descriptor file.
            operation: The operation that failed.
            cause: The underlying exception.
        """
        super().__init__(message)
        self.path: Path = path
        self.operation: str = operation
        self.cause: Exception | None = cause


# =============================================================================
# Control Plane Exceptions
# =============================================================================


class ControlPlaneError(ServerMonError):
    """Raised when the supervisor control plane fails after every fallback.

    The message lists each attempted invocation so the operator can replay
    it by hand against the supervisor's own tool.

    Attributes:
        identifier: The supervisor label the operation targeted.
        verb: The last attempted control verb.
        attempts: Every attempt made, in order.
        cause: The underlying exception, if one was raised.
    """

    def __init__(
        self,
        message: str,
        *,
        identifier: str,
        verb: str | None = None,
        attempts: "tuple[Attempt, ...]" = (),  # noqa: UP037
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and control plane context.

        Args:
            message: Human-readable error message.
            identifier: The supervisor label the operation targeted.
            verb: The last attempted control verb.
            attempts: Every attempt made, in order.
            cause: The underlying exception, if one was raised.
        """
        super().__init__(message)
        self.identifier: str = identifier
        self.verb: str | None = verb
        self.attempts: tuple[Attempt, ...] = attempts
        self.cause: Exception | None = cause

    def __str__(self) -> str:
        message = super().__str__()
        if not self.attempts:
            return message
        lines = [message]
        for attempt in self.attempts:
            detail = attempt.detail or f"exit {attempt.exit_code}"
            lines.append(f"  {attempt.verb}: `{shlex.join(attempt.argv)}` -> {detail}")
        return "\n".join(lines)


class InstallFailedError(ControlPlaneError):
    """Raised when a descriptor cannot be registered with the supervisor."""
