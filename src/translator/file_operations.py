"""File I/O operations for subtitle files."""

import logging
from pathlib import Path
from typing import Optional, Union

from common.exceptions import SubtitleFileError

logger = logging.getLogger(__name__)

SUBTITLE_EXTENSION = ".srt"


def validate_subtitle_path(subtitle_file_path: Union[str, Path]) -> Path:
    """
    Resolve and check the input subtitle path.

    Args:
        subtitle_file_path: Path given by the user

    Returns:
        Absolute path to the subtitle file

    Raises:
        SubtitleFileError: If the file is not an .srt file or doesn't exist
    """
    subtitle_path = Path(subtitle_file_path).resolve()

    if subtitle_path.suffix.lower() != SUBTITLE_EXTENSION:
        raise SubtitleFileError("Input file must be an .srt file")
    if not subtitle_path.is_file():
        raise SubtitleFileError(f"File not found: {subtitle_path}")

    return subtitle_path


def read_subtitle_file(subtitle_file_path: Union[str, Path]) -> str:
    """
    Read subtitle file from disk.

    Args:
        subtitle_file_path: Path to subtitle file

    Returns:
        File content decoded as UTF-8

    Raises:
        SubtitleFileError: If the file is invalid or cannot be decoded
    """
    subtitle_path = validate_subtitle_path(subtitle_file_path)
    logger.debug(f"Reading subtitle file: {subtitle_path}")

    try:
        # newline="" keeps CRLF line endings intact
        with subtitle_path.open(encoding="utf-8", newline="") as subtitle_file:
            content = subtitle_file.read()
    except UnicodeDecodeError as e:
        raise SubtitleFileError(f"File is not valid UTF-8: {subtitle_path}") from e

    logger.debug(f"Read {len(content)} characters from subtitle file")
    return content


def build_output_path(
    subtitle_file_path: Union[str, Path],
    target_language: str,
    output_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Generate the translated file path.

    Args:
        subtitle_file_path: Path to source subtitle file
        target_language: Target language code
        output_dir: Output directory, defaults to the source file's directory

    Returns:
        Path like '<output_dir>/<base>.<target_language>.srt'

    Example:
        >>> build_output_path("/media/movie.srt", "es")
        PosixPath('/media/movie.es.srt')
    """
    source_path = Path(subtitle_file_path)
    directory = Path(output_dir) if output_dir else source_path.parent
    return directory / f"{source_path.stem}.{target_language}{source_path.suffix}"


def save_translated_file(translated_srt: str, output_path: Path) -> Path:
    """
    Save translated content to file.

    Args:
        translated_srt: Rebuilt SRT content
        output_path: Destination path

    Returns:
        Path to saved translated file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as output_file:
        output_file.write(translated_srt)
    logger.info(f"✅ Saved translated subtitle to: {output_path}")

    return output_path
