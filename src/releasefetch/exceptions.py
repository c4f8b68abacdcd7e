"""
Custom exceptions for releasefetch.

This module defines domain-specific exceptions that give each failure of the
resolve/fetch/verify pipeline its own type and an actionable message.
"""

from releasefetch.constants import MISSING_TOKEN_HELP, TOKEN_ENV_VAR


class ReleaseFetchError(Exception):
    """
    Base exception for all releasefetch errors.

    All custom exceptions in releasefetch inherit from this class to allow for
    easy catching of all application-specific errors.

    Attributes:
        is_retryable: Whether repeating the whole operation might succeed.
    """

    is_retryable = False

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


class ConfigurationError(ReleaseFetchError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Invalid configuration values
    - Configuration file parsing errors
    """

    pass


class MissingCredentialError(ConfigurationError):
    """Exception raised when no bearer credential is available."""

    def __init__(self, env_var: str = TOKEN_ENV_VAR) -> None:
        """
        Initialize the exception.

        Args:
            env_var: Name of the environment variable that should hold the token.
        """
        super().__init__(
            f"{env_var} environment variable is required for private repository access.",
            details=None,
        )
        self.env_var = env_var
        self.help_text = MISSING_TOKEN_HELP.format(env_var=env_var)

    def __str__(self) -> str:
        return f"{self.message}\n\n{self.help_text}"


class ManifestError(ConfigurationError):
    """Exception raised when a release manifest cannot be read or is invalid."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class UnsupportedPlatformError(ManifestError):
    """Exception raised when a manifest entry has no artifact for a platform."""

    def __init__(self, tool: str, platform_key: str, supported: list[str]) -> None:
        super().__init__(
            f"{tool} has no release artifact for platform '{platform_key}'",
            details=f"Supported platforms: {', '.join(supported) or 'none'}",
        )
        self.tool = tool
        self.platform_key = platform_key
        self.supported = supported


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ReleaseFetchError):
    """
    Exception raised when caller-supplied input fails validation.

    Attributes:
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.value = value


class MalformedReferenceError(ValidationError):
    """Exception raised when a release-download URL does not match the expected pattern."""

    pass


class InvalidChecksumError(ValidationError):
    """Exception raised when an expected checksum is not a 64-character hex digest."""

    pass


# =============================================================================
# API Errors
# =============================================================================


class APIError(ReleaseFetchError):
    """
    Exception raised for release-host API failures.

    Attributes:
        endpoint: The API endpoint that was accessed.
        status_code: The HTTP status code returned, if any.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
        is_retryable: bool = False,
    ) -> None:
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code
        self.is_retryable = is_retryable


class ResolutionError(APIError):
    """Exception raised when release information cannot be obtained from the API."""

    pass


class AssetNotFoundError(APIError):
    """
    Exception raised when a release exists but does not contain the requested asset.

    Attributes:
        filename: The asset name that was requested.
        tag: The release tag that was searched.
        available: Names of the assets the release does contain.
    """

    def __init__(
        self,
        filename: str,
        tag: str,
        available: list[str] | None = None,
        endpoint: str | None = None,
    ) -> None:
        available = available or []
        super().__init__(
            f"Asset '{filename}' not found in release '{tag}'",
            endpoint=endpoint,
            details=(
                f"Available assets: {', '.join(available)}" if available else None
            ),
        )
        self.filename = filename
        self.tag = tag
        self.available = available


class AuthenticationError(APIError):
    """Exception raised when the remote host rejects the credential (401/403)."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(ReleaseFetchError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
        path: The destination path of the download.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.path = path


class TransferError(DownloadError):
    """
    Exception raised when the transfer fails or is interrupted mid-stream.

    Attributes:
        status_code: The HTTP status code returned by the server, if any.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
        is_retryable: bool = True,
    ) -> None:
        super().__init__(message, url, path, details)
        self.status_code = status_code
        self.is_retryable = is_retryable


class DestinationError(DownloadError):
    """Exception raised when the destination path cannot be created or written."""

    pass


class IntegrityCheckError(DownloadError):
    """
    Exception raised when a downloaded file does not match its expected digest.

    Attributes:
        expected: The expected SHA-256 hex digest.
        actual: The digest computed from the written file.
    """

    def __init__(
        self,
        path: str,
        expected: str,
        actual: str | None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            f"Checksum mismatch for {path}",
            url=url,
            path=path,
            details=f"expected sha256 {expected}, got {actual or 'unreadable file'}",
        )
        self.expected = expected
        self.actual = actual
