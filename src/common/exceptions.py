"""Exception hierarchy shared by the translation pipeline."""

from typing import Optional


class TrxsrtError(Exception):
    """Base class for all translation pipeline errors."""

    pass


class SubtitleFileError(TrxsrtError):
    """Raised when the input subtitle file cannot be used."""

    pass


class NothingToTranslateError(TrxsrtError):
    """Raised when a subtitle document contains no content lines."""

    def __init__(self, message: str = "No translatable content found in SRT file"):
        super().__init__(message)


class CaptchaRequiredError(TrxsrtError):
    """Raised when a backend answers with a human verification challenge."""

    def __init__(self, url: str):
        super().__init__(
            "Google returned a CAPTCHA challenge (unusual traffic detected)"
        )
        self.url = url


class BackendHTTPError(TrxsrtError):
    """Raised when a backend responds with a non-success HTTP status."""

    def __init__(self, status_code: int, backend: Optional[str] = None):
        prefix = f"{backend}: " if backend else ""
        super().__init__(f"{prefix}HTTP error! status: {status_code}")
        self.status_code = status_code
        self.backend = backend


class BackendTransportError(TrxsrtError):
    """Raised when a request never produced an HTTP response."""

    pass


class BackendResponseError(TrxsrtError):
    """Raised when a backend response cannot be interpreted."""

    pass


class CircuitBreakerOpenError(TrxsrtError):
    """Raised when too many consecutive failures halt the whole run."""

    def __init__(self, consecutive_failures: int):
        super().__init__(
            f"CIRCUIT_BREAKER_HALT: {consecutive_failures} consecutive failures"
        )
        self.consecutive_failures = consecutive_failures


class RecoveryUnavailableError(TrxsrtError):
    """Raised when a CAPTCHA cannot be solved interactively."""

    def __init__(self, url: str, reason: Optional[str] = None):
        message = (
            "Google requires a CAPTCHA but no credential could be obtained. "
            f"Solve the CAPTCHA at: {url} "
            "then re-run with --cookie <GOOGLE_ABUSE_EXEMPTION=...>"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.url = url
        self.reason = reason
