"""Supported languages and lookup by code or English name."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Language:
    """A supported language."""

    code: str
    name: str

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


LANGUAGES: List[Language] = [
    Language("en", "English"),
    Language("el", "Greek"),
    Language("zh", "Simplified Chinese"),
    Language("zh-hant", "Traditional Chinese"),
    Language("es", "Spanish"),
    Language("de", "German"),
    Language("pt-br", "Portuguese (Brazil)"),
    Language("pt-pt", "Portuguese (Portugal)"),
    Language("fr", "French"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
    Language("ru", "Russian"),
    Language("it", "Italian"),
    Language("ar", "Arabic"),
    Language("vi", "Vietnamese"),
    Language("hi", "Hindi"),
    Language("id", "Indonesian"),
    Language("yue", "Cantonese"),
    Language("nl", "Dutch"),
    Language("sv", "Swedish"),
    Language("da", "Danish"),
    Language("nb", "Norwegian"),
    Language("is", "Icelandic"),
    Language("af", "Afrikaans"),
    Language("ro", "Romanian"),
    Language("ca", "Catalan"),
    Language("uk", "Ukrainian"),
    Language("pl", "Polish"),
    Language("cs", "Czech"),
    Language("sk", "Slovak"),
    Language("bg", "Bulgarian"),
    Language("sr", "Serbian"),
    Language("hr", "Croatian"),
    Language("bs", "Bosnian"),
    Language("sl", "Slovenian"),
    Language("mk", "Macedonian"),
    Language("be", "Belarusian"),
    Language("hu", "Hungarian"),
    Language("fi", "Finnish"),
    Language("lt", "Lithuanian"),
    Language("lv", "Latvian"),
    Language("et", "Estonian"),
    Language("sq", "Albanian"),
    Language("mt", "Maltese"),
    Language("hy", "Armenian"),
    Language("ka", "Georgian"),
    Language("tr", "Turkish"),
    Language("he", "Hebrew"),
    Language("fa", "Persian"),
    Language("ur", "Urdu"),
    Language("uz", "Uzbek"),
    Language("kk", "Kazakh"),
    Language("ky", "Kyrgyz"),
    Language("tk", "Turkmen"),
    Language("az", "Azerbaijani"),
    Language("tg", "Tajik"),
    Language("mn", "Mongolian"),
    Language("bn", "Bengali"),
    Language("mr", "Marathi"),
    Language("ta", "Tamil"),
    Language("te", "Telugu"),
    Language("gu", "Gujarati"),
    Language("kn", "Kannada"),
    Language("ml", "Malayalam"),
    Language("pa", "Punjabi"),
    Language("ne", "Nepali"),
    Language("bho", "Bhojpuri"),
    Language("th", "Thai"),
    Language("lo", "Lao"),
    Language("my", "Burmese"),
    Language("ms", "Malay"),
    Language("fil", "Filipino (Tagalog)"),
    Language("jv", "Javanese"),
    Language("sw", "Swahili"),
    Language("ha", "Hausa"),
    Language("am", "Amharic"),
    Language("ug", "Uyghur"),
]


def resolve_language(value: str) -> Optional[Language]:
    """
    Find a supported language by code or English name, ignoring case.

    Args:
        value: User-supplied code (e.g., 'pt-br') or name (e.g., 'Spanish')

    Returns:
        Matching Language, or None if unresolved
    """
    lowered = value.strip().lower()
    for language in LANGUAGES:
        if language.code.lower() == lowered or language.name.lower() == lowered:
            return language
    return None


def all_languages_except(source: Language) -> List[Language]:
    """Every supported language other than the source."""
    return [language for language in LANGUAGES if language.code != source.code]


def format_available_languages() -> str:
    return ", ".join(str(language) for language in LANGUAGES)
