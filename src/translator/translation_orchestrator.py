"""Concurrent line-by-line translation of one subtitle document."""

import asyncio
import logging
import sys
from typing import List, Optional, TextIO

from common.exceptions import CircuitBreakerOpenError
from common.retry_utils import RetryPolicy
from common.subtitle_parser import SubtitleDocument, rebuild_srt
from translator.backends import BackendRotation
from translator.schemas import TranslationUnit

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Writes a single self-overwriting progress line for one target language."""

    def __init__(self, label: str, stream: Optional[TextIO] = None):
        self.label = label
        self.stream = stream or sys.stderr

    def update(self, completed: int, total: int) -> None:
        self.stream.write(f"\r  [{self.label}] Translating... {completed}/{total} lines")
        self.stream.flush()

    def done(self, total: int) -> None:
        self.stream.write(f"\r  [{self.label}] Done: {total}/{total} lines         \n")
        self.stream.flush()

    def fail(self) -> None:
        self.stream.write("\n")
        self.stream.flush()


def create_translation_units(
    document: SubtitleDocument, rotation: BackendRotation
) -> List[TranslationUnit]:
    """
    Create one unit per content line, assigning backends in dispatch order.

    Args:
        document: Parsed subtitle document
        rotation: Shared backend rotation

    Returns:
        Units in document order
    """
    return [
        TranslationUnit(position=position, text=text, backend=rotation.next_backend())
        for position, text in enumerate(document.content_lines)
    ]


async def translate_document(
    document: SubtitleDocument,
    source_language: str,
    target_language: str,
    rotation: BackendRotation,
    retry_policy: RetryPolicy,
    concurrency: int = 10,
    credential: Optional[str] = None,
    progress: Optional[ProgressReporter] = None,
) -> str:
    """
    Translate every content line of a document and rebuild it.

    At most `concurrency` lines are in flight at once. The job resolves only
    after every line has either succeeded or failed; a single failed line
    fails the whole job. If the circuit breaker opens, the remaining lines
    are cancelled and the job fails immediately.

    Args:
        document: Parsed subtitle document
        source_language: Source language code
        target_language: Target language code
        rotation: Shared backend rotation
        retry_policy: Retry policy wrapping each line's request
        concurrency: Maximum number of concurrent requests
        credential: CAPTCHA exemption cookie attached to requests
        progress: Optional progress sink

    Returns:
        Rebuilt SRT content in the target language

    Raises:
        ValueError: If concurrency is less than 1
        CircuitBreakerOpenError: If the run-wide breaker tripped during the job
        Exception: The first line failure, if any line failed
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    units = create_translation_units(document, rotation)
    total = len(units)
    translated_lines: List[Optional[str]] = [None] * total
    completed = 0
    semaphore = asyncio.Semaphore(concurrency)

    if progress:
        progress.update(completed, total)

    async def _translate_unit(unit: TranslationUnit) -> None:
        nonlocal completed

        async with semaphore:
            translated_lines[unit.position] = await retry_policy.run(
                lambda: unit.backend.translate_text(
                    unit.text, source_language, target_language, credential
                )
            )

        completed += 1
        if progress:
            progress.update(completed, total)

    logger.debug(
        f"Dispatching {total} lines to {target_language} "
        f"with {concurrency} concurrent requests"
    )
    tasks = [asyncio.ensure_future(_translate_unit(unit)) for unit in units]
    pending = set(tasks)
    while pending:
        done, pending = await asyncio.wait(
            pending, return_when=asyncio.FIRST_EXCEPTION
        )
        breaker_errors = [
            task.exception()
            for task in done
            if isinstance(task.exception(), CircuitBreakerOpenError)
        ]
        if breaker_errors:
            # Halt now instead of waiting out backoff sleeps of other lines
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            if progress:
                progress.fail()
            raise breaker_errors[0]

    failures = [
        (unit, task.exception())
        for unit, task in zip(units, tasks)
        if task.exception() is not None
    ]
    if failures:
        if progress:
            progress.fail()

        first_unit, first_error = failures[0]
        logger.error(
            f"❌ {len(failures)}/{total} line(s) failed for {target_language}. "
            f"First failure at line {first_unit.position + 1} "
            f"({first_unit.backend.name}): {first_error}"
        )
        raise first_error

    if progress:
        progress.done(total)

    return rebuild_srt(document, translated_lines)
