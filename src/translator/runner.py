"""Run driver: one document, many target languages, one after another."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional, TextIO, Union

import httpx
import typer

from common.config import settings
from common.exceptions import (
    CircuitBreakerOpenError,
    NothingToTranslateError,
    RecoveryUnavailableError,
)
from common.languages import Language
from common.retry_utils import CircuitBreaker, RetryPolicy
from common.subtitle_parser import SubtitleDocument, parse_srt
from translator.backends import BackendRotation, DeepLxBackend, GoogleGtxBackend
from translator.captcha_recovery import (
    CaptchaRecovery,
    CredentialPrompt,
    InteractivePrompt,
    normalize_cookie,
)
from translator.credential_store import CredentialStore
from translator.file_operations import (
    build_output_path,
    read_subtitle_file,
    save_translated_file,
)
from translator.schemas import LanguageResult, RunSummary
from translator.translation_orchestrator import ProgressReporter, translate_document

logger = logging.getLogger(__name__)

# Errors that abort the whole run instead of failing one language
FATAL_ERRORS = (CircuitBreakerOpenError, RecoveryUnavailableError)


class TranslationRunner:
    """Translates one subtitle file into each requested language."""

    def __init__(
        self,
        concurrency: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        credential_store: Optional[CredentialStore] = None,
        prompt: Optional[CredentialPrompt] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        language_delay: Optional[float] = None,
        progress_stream: Optional[TextIO] = None,
    ):
        """
        Initialize the runner.

        Args:
            concurrency: Maximum concurrent requests, defaults to settings.concurrency
            client: HTTP client shared by both backends. When omitted the runner
                creates and closes its own
            credential_store: Store for the CAPTCHA exemption cookie
            prompt: Collaborator that collects a cookie after a CAPTCHA
            circuit_breaker: Run-wide breaker, a fresh one by default
            language_delay: Pause in seconds between target languages
            progress_stream: Where progress lines are written, stderr by default
        """
        self.concurrency = (
            settings.concurrency if concurrency is None else concurrency
        )
        self.client = client
        self.credential_store = credential_store or CredentialStore()
        self.prompt = prompt or InteractivePrompt()
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.retry_policy = RetryPolicy(self.circuit_breaker)
        self.language_delay = (
            settings.language_delay if language_delay is None else language_delay
        )
        self.progress_stream = progress_stream

        if self.concurrency < 1:
            raise ValueError("Concurrency must be a positive number")

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
            return

        async with httpx.AsyncClient(
            timeout=settings.request_timeout, follow_redirects=True
        ) as client:
            yield client

    def _resolve_credential(self, cookie: Optional[str]) -> Optional[str]:
        # --cookie flag > stored cookie > none
        if cookie:
            return normalize_cookie(cookie)

        stored = self.credential_store.get()
        if stored:
            typer.echo("Using saved cookie from previous session")
        return stored

    async def run(
        self,
        subtitle_file_path: Union[str, Path],
        source_language: Language,
        target_languages: List[Language],
        output_dir: Optional[Union[str, Path]] = None,
        cookie: Optional[str] = None,
    ) -> RunSummary:
        """
        Translate a subtitle file into every target language.

        Args:
            subtitle_file_path: Input .srt file
            source_language: Language of the input file
            target_languages: Languages to produce, processed in order
            output_dir: Directory for output files, defaults to the input's directory
            cookie: CAPTCHA exemption cookie overriding the saved one

        Returns:
            RunSummary with one result per target language

        Raises:
            SubtitleFileError: If the input file cannot be read
            NothingToTranslateError: If the file has no caption text
            CircuitBreakerOpenError: If failures persisted across the run
            RecoveryUnavailableError: If a CAPTCHA block could not be solved
        """
        if not target_languages:
            raise ValueError("At least one target language is required")

        subtitle_path = Path(subtitle_file_path)
        document = parse_srt(read_subtitle_file(subtitle_path))
        if document.is_empty:
            raise NothingToTranslateError()

        typer.echo(
            f"Parsed {len(document.content_indices)} subtitle lines from {subtitle_path.name}"
        )
        typer.echo(
            f"Translating from {source_language} "
            f"to {len(target_languages)} language(s)\n"
        )

        credential = self._resolve_credential(cookie)
        summary = RunSummary()

        async with self._http_client() as client:
            gtx = GoogleGtxBackend(client)
            rotation = BackendRotation(gtx, DeepLxBackend(client))
            recovery = CaptchaRecovery(
                gtx, self.prompt, self.credential_store, credential=credential
            )

            typer.echo("Checking API access...")
            await recovery.preflight(source_language.code, target_languages[0].code)
            recovery.require_normal()

            for i, target in enumerate(target_languages):
                typer.echo(f"[{i + 1}/{len(target_languages)}] {target}")

                result = await self._translate_language(
                    document_path=subtitle_path,
                    document=document,
                    source_language=source_language,
                    target=target,
                    rotation=rotation,
                    credential=recovery.credential,
                    output_dir=output_dir,
                )
                summary.results.append(result)

                if i < len(target_languages) - 1 and self.language_delay > 0:
                    await asyncio.sleep(self.language_delay)

        return summary

    async def _translate_language(
        self,
        document_path: Path,
        document: SubtitleDocument,
        source_language: Language,
        target: Language,
        rotation: BackendRotation,
        credential: Optional[str],
        output_dir: Optional[Union[str, Path]],
    ) -> LanguageResult:
        try:
            translated = await translate_document(
                document,
                source_language.code,
                target.code,
                rotation=rotation,
                retry_policy=self.retry_policy,
                concurrency=self.concurrency,
                credential=credential,
                progress=ProgressReporter(target.code, self.progress_stream),
            )
            output_path = save_translated_file(
                translated, build_output_path(document_path, target.code, output_dir)
            )
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.error(f"❌ {target}: {e}")
            return LanguageResult(
                language_code=target.code,
                language_name=target.name,
                success=False,
                error=str(e) or type(e).__name__,
            )

        return LanguageResult(
            language_code=target.code,
            language_name=target.name,
            success=True,
            output_path=str(output_path),
        )
