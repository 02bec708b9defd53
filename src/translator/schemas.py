"""Data structures for translation task processing."""

from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from translator.backends import TranslationBackend


class TranslationUnit:
    """One content line bound to the backend chosen when it was dispatched."""

    def __init__(self, position: int, text: str, backend: "TranslationBackend"):
        self.position = position
        self.text = text
        self.backend = backend

    def __repr__(self) -> str:
        return f"TranslationUnit(position={self.position}, backend={self.backend.name})"


class LanguageResult(BaseModel):
    """Outcome of translating the document into one target language."""

    language_code: str = Field(..., description="Target language code (e.g., 'es')")
    language_name: str = Field(..., description="Target language name")
    success: bool
    output_path: Optional[str] = Field(None, description="Written file, on success")
    error: Optional[str] = Field(None, description="Failure reason, on failure")


class RunSummary(BaseModel):
    """Per-language results of a whole run."""

    results: List[LanguageResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def failures(self) -> List[LanguageResult]:
        return [result for result in self.results if not result.success]

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def format_report(self) -> str:
        """
        Render the final summary shown to the user.

        Returns:
            Multi-line report listing failed languages with their reason
        """
        lines = [f"Done! {self.succeeded} succeeded, {self.failed} failed."]
        if self.failures:
            lines.append("Failed languages:")
            for result in self.failures:
                lines.append(
                    f"  - {result.language_name} ({result.language_code}): {result.error}"
                )
        return "\n".join(lines)
