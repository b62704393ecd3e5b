"""
Custom exceptions for modkeeper.

Every failure the engine can report has its own class so callers branch on the
kind of error rather than on message text. Errors raised per mod (resolution,
content acquisition) are collected into result objects by the orchestrating
code; document-structural errors propagate and end the operation.
"""

from typing import List, Sequence


class ModkeeperError(Exception):
    """
    Base exception for all modkeeper errors.

    All custom exceptions in modkeeper inherit from this class so that callers
    can catch every application-specific error at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ModkeeperError):
    """
    Exception raised when configuration is invalid or missing.

    This includes a missing install directory and an unreadable or malformed
    configuration file.
    """

    pass


# =============================================================================
# Catalog Document Errors
# =============================================================================


class FormatError(ModkeeperError):
    """Exception raised when a catalog or manifest document is malformed."""

    pass


class InsertionPointNotFoundError(ModkeeperError):
    """
    Exception raised when a catalog document has no manifest blocks at all.

    Without an existing block there is no known-good place to append a new
    manifest, so no write is attempted.
    """

    def __init__(self, name: str) -> None:
        super().__init__(
            f"publish {name!r}: cannot find insertion point for new manifest"
        )
        self.name = name


# =============================================================================
# Name Resolution Errors
# =============================================================================


class ResolutionError(ModkeeperError):
    """
    Base exception for name resolution failures.

    Attributes:
        requested_name: The name as supplied by the user.
    """

    def __init__(self, message: str, requested_name: str) -> None:
        super().__init__(message)
        self.requested_name = requested_name


class ModNotFoundError(ResolutionError):
    """Exception raised when a requested name matches no mods."""

    def __init__(self, requested_name: str) -> None:
        super().__init__(f"{requested_name!r} matches no mods", requested_name)


class AmbiguousModError(ResolutionError):
    """
    Exception raised when a requested name matches several mods.

    Attributes:
        candidates: The names the request could refer to, in catalog order.
    """

    def __init__(self, requested_name: str, candidates: Sequence[str]) -> None:
        super().__init__(
            f"{requested_name!r} is ambiguous: matches {', '.join(candidates)}",
            requested_name,
        )
        self.candidates: List[str] = list(candidates)


class DuplicateModError(ResolutionError):
    """
    Exception raised when the catalog holds several mods with the exact requested name.

    Attributes:
        count: How many catalog entries carry that exact name.
    """

    def __init__(self, requested_name: str, count: int) -> None:
        super().__init__(
            f"{requested_name!r} is ambiguous: {count} mods with that exact name exist",
            requested_name,
        )
        self.count = count


class MissingDependencyError(ModkeeperError):
    """
    Exception raised once per run for every required mod absent from the catalog.

    Attributes:
        missing: Sorted names of the mods that could not be found.
    """

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing: List[str] = sorted(missing)
        super().__init__(f"required mods do not exist: {', '.join(self.missing)}")


# =============================================================================
# Content Acquisition Errors
# =============================================================================


class ContentError(ModkeeperError):
    """Base exception for failures to produce verified mod content."""

    pass


class NoLinkForPlatformError(ContentError):
    """
    Exception raised when a manifest has no usable link for the current platform.

    Platforms outside the supported set are reported through this error as well.

    Attributes:
        name: The mod name.
        platform: The platform identifier that was looked up.
    """

    def __init__(self, name: str, platform: str, details: str | None = None) -> None:
        super().__init__(f"no link for {name} on platform {platform}", details)
        self.name = name
        self.platform = platform


class IntegrityError(ContentError):
    """
    Exception raised when content does not match the catalog's SHA-256 digest.

    Also raised when the catalog digest itself is not valid hexadecimal.

    Attributes:
        url: The link URL being verified, when known.
    """

    def __init__(
        self, message: str, url: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.url = url


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(ModkeeperError):
    """
    Base exception for failures to fetch bytes from a URL.

    Attributes:
        url: The URL that was being fetched.
    """

    def __init__(
        self, message: str, url: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.url = url


class NetworkError(TransportError):
    """
    Exception raised for connection-level failures.

    This includes timeouts, DNS failures, refused connections and TLS errors.
    """

    pass


class HTTPError(TransportError):
    """
    Exception raised when the server answers with a non-2xx status.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(ModkeeperError):
    """
    Exception raised for file system-related errors.

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self, message: str, path: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


class PathValidationError(FileSystemError):
    """Exception raised when a name or path fails security validation."""

    pass


class ExtractionError(FileSystemError):
    """Exception raised when writing a mod into the install tree fails."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ModkeeperError):
    """
    Exception raised when user-supplied input is invalid.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value
