"""Command-line entry point: translate an SRT file with Google GTX and DeepLX."""

import asyncio
from pathlib import Path
from typing import Annotated, List, Optional

import typer

from common.exceptions import TrxsrtError
from common.languages import (
    Language,
    all_languages_except,
    format_available_languages,
    resolve_language,
)
from common.logging_config import setup_service_logging
from translator.captcha_recovery import InteractivePrompt
from translator.runner import TranslationRunner

app = typer.Typer(
    name="trxsrt",
    help="Translate SRT subtitle files using Google Translate (GTX) and DeepLX.",
    add_completion=False,
)


def _fail(message: str, show_languages: bool = False) -> None:
    typer.echo(f"Error: {message}", err=True)
    if show_languages:
        typer.echo(f"Available languages: {format_available_languages()}", err=True)
    raise typer.Exit(code=1)


def _resolve_or_fail(value: str, role: str) -> Language:
    language = resolve_language(value)
    if language is None:
        _fail(f'Unknown {role} language "{value}"', show_languages=True)
    return language


@app.command()
def main(
    file: Annotated[Path, typer.Argument(help="SRT file to translate")],
    source: Annotated[
        str, typer.Option("--from", "-f", help="Source language (name or code)")
    ],
    target: Annotated[
        Optional[str], typer.Option("--to", "-t", help="Target language (name or code)")
    ] = None,
    all_languages: Annotated[
        bool,
        typer.Option("--all-languages", "-a", help="Translate to all supported languages"),
    ] = False,
    concurrency: Annotated[
        Optional[int],
        typer.Option(
            "--concurrency",
            "-c",
            help="Max concurrent requests (default: TRXSRT_CONCURRENCY or 10)",
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory (default: same as input)"),
    ] = None,
    cookie: Annotated[
        Optional[str],
        typer.Option(
            "--cookie", help="Google abuse exemption cookie (GOOGLE_ABUSE_EXEMPTION=...)"
        ),
    ] = None,
    non_interactive: Annotated[
        bool,
        typer.Option(
            "--non-interactive", help="Exit with error on CAPTCHA instead of prompting"
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
) -> None:
    """
    Translate FILE into one language (--to) or every supported one (--all-languages).
    """
    setup_service_logging(log_level="DEBUG" if verbose else None)

    if not target and not all_languages:
        _fail("Must specify --to <language> or --all-languages")

    source_language = _resolve_or_fail(source, "source")

    if concurrency is not None and concurrency < 1:
        _fail("Concurrency must be a positive number")

    targets: List[Language]
    if all_languages:
        targets = all_languages_except(source_language)
    else:
        targets = [_resolve_or_fail(target, "target")]

    runner = TranslationRunner(
        concurrency=concurrency,
        prompt=InteractivePrompt(interactive=not non_interactive),
    )

    try:
        summary = asyncio.run(
            runner.run(
                file,
                source_language,
                targets,
                output_dir=output,
                cookie=cookie,
            )
        )
    except TrxsrtError as e:
        _fail(str(e))

    typer.echo(f"\n{summary.format_report()}")
    if not summary.all_succeeded:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
