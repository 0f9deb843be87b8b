"""clabot exception classes."""


class ClaBotError(Exception):
    """Base exception for all clabot errors."""

    def __init__(
        self, code: str, message: str, request_id: str | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"[{code}] {message}")


class ConfigurationError(ClaBotError):
    """Raised when credentials, keys or settings are invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


ConfigError = ConfigurationError


class AuthError(ClaBotError):
    """Raised when an App token cannot be minted or exchanged.

    Fatal for the current operation of the affected installation; the next
    attempt mints again.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__("AUTH_ERROR", message, request_id)
        self.status = status


class UpstreamError(ClaBotError):
    """Raised on any unexpected GitHub response, timeout or connection error.

    ``status`` is ``None`` when no response was received.
    """

    code = "UPSTREAM_ERROR"

    def __init__(
        self,
        status: int | None,
        body: str,
        request_id: str | None = None,
    ) -> None:
        self.status = status
        self.body = body
        label = f"HTTP {status}" if status is not None else "no response"
        super().__init__(type(self).code, f"{label}: {body[:200]}", request_id)


class NotFoundError(UpstreamError):
    """Raised when GitHub answers 404 (missing resource or App not installed)."""

    code = "NOT_FOUND"


class WebhookVerificationError(ClaBotError):
    """Raised when a webhook delivery fails HMAC verification."""

    def __init__(self, message: str) -> None:
        super().__init__("WEBHOOK_VERIFICATION_FAILED", message)


class UnexpectedError(ClaBotError):
    """Wraps an exception raised outside clabot, e.g. by a signature store.

    Lets a batch report the failure on the affected pull request's result
    instead of aborting. The original exception is kept as ``cause``.
    """

    def __init__(self, cause: Exception) -> None:
        super().__init__("UNEXPECTED_ERROR", f"{type(cause).__name__}: {cause}")
        self.cause = cause
