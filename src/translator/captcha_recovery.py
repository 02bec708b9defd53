"""CAPTCHA detection before bulk translation and interactive cookie recovery."""

import logging
import sys
from enum import Enum
from typing import Optional, Protocol, TextIO

import typer

from common.exceptions import CaptchaRequiredError, RecoveryUnavailableError
from translator.backends import GoogleGtxBackend

logger = logging.getLogger(__name__)

COOKIE_NAME = "GOOGLE_ABUSE_EXEMPTION"
COOKIE_HELP_URL = "https://github.com/VasilisPlavos/trxsrt/blob/main/COOKIE.md"
PREFLIGHT_TEXT = "hello"


class RecoveryState(str, Enum):
    """States of the recovery protocol."""

    NORMAL = "normal"
    AWAITING_CREDENTIAL = "awaiting_credential"


class CredentialPrompt(Protocol):
    def request(self, challenge_url: str) -> str: ...


class CredentialSink(Protocol):
    def set(self, credential: str) -> None: ...


def normalize_cookie(value: str) -> str:
    """
    Turn user input into a Cookie header value.

    A bare token is prefixed with the exemption cookie name.

    Args:
        value: Pasted cookie, with or without the 'GOOGLE_ABUSE_EXEMPTION=' prefix

    Returns:
        Cookie header value, or an empty string for blank input
    """
    cookie = value.strip()
    if cookie.lower().startswith("cookie:"):
        cookie = cookie[len("cookie:") :].strip()
    if cookie and "=" not in cookie:
        cookie = f"{COOKIE_NAME}={cookie}"
    return cookie


class InteractivePrompt:
    """Asks the user on the terminal to solve the CAPTCHA and paste the cookie."""

    def __init__(
        self,
        interactive: bool = True,
        stdin: Optional[TextIO] = None,
    ):
        self.interactive = interactive
        self.stdin = stdin or sys.stdin

    def _is_tty(self) -> bool:
        isatty = getattr(self.stdin, "isatty", None)
        return bool(isatty and isatty())

    def request(self, challenge_url: str) -> str:
        """
        Collect an exemption cookie from the user.

        Args:
            challenge_url: Page the user has to open to solve the CAPTCHA

        Returns:
            Normalized cookie string

        Raises:
            RecoveryUnavailableError: If prompting is disabled, stdin is not a
                terminal, or nothing was entered
        """
        if not self.interactive:
            raise RecoveryUnavailableError(challenge_url, "--non-interactive is set")
        if not self._is_tty():
            raise RecoveryUnavailableError(challenge_url, "stdin is not interactive")

        banner = "═" * 62
        typer.echo("", err=True)
        typer.echo(f"╔{banner}╗", err=True)
        typer.echo("║  Google has detected unusual traffic and requires a CAPTCHA  ║", err=True)
        typer.echo(f"╚{banner}╝", err=True)
        typer.echo(f"\n  Blocked URL:\n  {challenge_url}\n", err=True)
        typer.echo("  1. Open the URL above in your browser", err=True)
        typer.echo("  2. Solve the CAPTCHA", err=True)
        typer.echo(f"  3. Copy the {COOKIE_NAME}=... cookie\n", err=True)
        typer.echo(f"  Read more at {COOKIE_HELP_URL}\n", err=True)

        cookie = normalize_cookie(typer.prompt("  Paste cookie", err=True))
        if not cookie:
            raise RecoveryUnavailableError(challenge_url, "no cookie entered")
        return cookie


class CaptchaRecovery:
    """
    Two-state protocol guarding bulk translation against a CAPTCHA block.

    A single "hello" request runs before any bulk request. If Google answers with
    a CAPTCHA the protocol waits for a new cookie, saves it and returns to
    NORMAL with the cookie attached to every later request of the run.
    """

    def __init__(
        self,
        backend: GoogleGtxBackend,
        prompt: CredentialPrompt,
        store: CredentialSink,
        credential: Optional[str] = None,
    ):
        self.backend = backend
        self.prompt = prompt
        self.store = store
        self.state = RecoveryState.NORMAL
        self._credential = credential

    @property
    def credential(self) -> Optional[str]:
        return self._credential

    def require_normal(self) -> None:
        """
        Guard bulk dispatch.

        Raises:
            RuntimeError: If a credential is still being awaited
        """
        if self.state is not RecoveryState.NORMAL:
            raise RuntimeError("Bulk translation cannot start while awaiting a credential")

    async def preflight(self, source_language: str, target_language: str) -> None:
        """
        Send one test translation and recover from a CAPTCHA block.

        Args:
            source_language: Source language code
            target_language: First target language code

        Raises:
            RecoveryUnavailableError: If the block cannot be solved
            Exception: Any non-CAPTCHA failure of that request
        """
        try:
            await self.backend.translate_text(
                PREFLIGHT_TEXT,
                source_language,
                target_language,
                credential=self._credential,
                detect_captcha=True,
            )
        except CaptchaRequiredError as e:
            logger.warning(f"⚠️  {e}")
            self.state = RecoveryState.AWAITING_CREDENTIAL
            self._recover(e.url)
            return

        logger.info("✅ API access OK")

    def _recover(self, challenge_url: str) -> None:
        try:
            credential = self.prompt.request(challenge_url)
        except RecoveryUnavailableError:
            raise
        except Exception as e:
            raise RecoveryUnavailableError(challenge_url, str(e) or type(e).__name__) from e

        if not credential:
            raise RecoveryUnavailableError(challenge_url, "no cookie entered")

        self._credential = credential
        self.state = RecoveryState.NORMAL

        try:
            self.store.set(credential)
            logger.info("💾 Cookie saved for future runs")
        except IOError as e:
            # The cookie still applies to this run
            logger.warning(f"⚠️  Could not save cookie for future runs: {e}")
