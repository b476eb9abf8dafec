"""Exception classes for the asset migration tool."""

from typing import Any

# Response bodies are truncated to this many characters in error messages
RESPONSE_PREVIEW_LENGTH = 200


class AssetMigrationError(Exception):
    """Base exception for asset migration errors."""

    pass


class AuthError(AssetMigrationError):
    """Raised when a UAA token exchange fails."""

    def __init__(
        self,
        message: str,
        tenant: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize authentication error.

        Args:
            message: Error message.
            tenant: Tenant label (origin/destination) if known.
            status_code: HTTP status code returned by the identity provider.
        """
        super().__init__(message)
        self.message = message
        self.tenant = tenant
        self.status_code = status_code

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.tenant:
            parts.append(f"Tenant: {self.tenant}")
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        return " | ".join(parts)


class TransportError(AssetMigrationError):
    """Raised when a read or write against the asset service fails."""

    def __init__(
        self,
        message: str,
        method: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize transport error.

        Args:
            message: Error message.
            method: HTTP method of the failed request.
            url: URL of the failed request.
            status_code: HTTP status code if a response was received.
            response_text: Response body text if available.
        """
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_text = response_text

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [self.message]
        if self.method and self.url:
            parts.append(f"{self.method} {self.url}")
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.response_text:
            response_preview = self.response_text[:RESPONSE_PREVIEW_LENGTH]
            if len(self.response_text) > RESPONSE_PREVIEW_LENGTH:
                response_preview += "..."
            parts.append(f"Response: {response_preview}")
        return " | ".join(parts)


class LinkHeaderError(TransportError):
    """Raised when a Link header is present but holds no <url>."""

    pass


class PaginationLimitError(TransportError):
    """Raised when a collection keeps returning continuation links."""

    pass


class AggregateUploadError(AssetMigrationError):
    """Raised when one or more chunk uploads of a collection fail."""

    def __init__(
        self,
        total_chunks: int,
        failures: dict[int, BaseException],
    ) -> None:
        """Initialize aggregate upload error.

        Args:
            total_chunks: Number of chunks submitted for the collection.
            failures: Mapping of failed chunk index to the error it raised.
        """
        self.total_chunks = total_chunks
        self.failures = failures
        super().__init__(
            f"{len(failures)} of {total_chunks} chunk uploads failed"
        )

    @property
    def failed_chunks(self) -> list[int]:
        """Sorted indexes of the chunks that failed."""
        return sorted(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "total_chunks": self.total_chunks,
            "failed_chunks": self.failed_chunks,
            "errors": {str(i): str(e) for i, e in sorted(self.failures.items())},
        }
