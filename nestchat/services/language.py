"""
Language Manager - Supported reply languages.

English and Spanish are enabled out of the box. Any code that is unknown
or disabled resolves to English, and the caller is told a fallback was
used. English itself can never be disabled.
"""
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str
    native_name: str
    is_enabled: bool = True
    is_experimental: bool = False


@dataclass(frozen=True)
class LanguageValidation:
    """Result of validate(): the code to use and whether it was substituted."""
    code: str
    used_fallback: bool


class LanguageManager:
    """
    Thread-safe registry of reply languages.

    Example:
        >>> LanguageManager().validate("fr")
        LanguageValidation(code='en', used_fallback=True)
    """

    def __init__(self):
        self._languages: Dict[str, LanguageInfo] = {
            "en": LanguageInfo("en", "English", "English"),
            "es": LanguageInfo("es", "Spanish", "Español"),
        }
        self._lock = threading.RLock()

    def is_supported(self, code: str) -> bool:
        with self._lock:
            info = self._languages.get(code)
            return info is not None and info.is_enabled

    def validate(self, code: Optional[str]) -> LanguageValidation:
        if code and self.is_supported(code):
            return LanguageValidation(code=code, used_fallback=False)
        return LanguageValidation(code=DEFAULT_LANGUAGE, used_fallback=True)

    def get_language_info(self, code: str) -> Optional[LanguageInfo]:
        with self._lock:
            return self._languages.get(code)

    def enable_language(self, code: str) -> None:
        with self._lock:
            info = self._languages.get(code)
            if info is not None:
                self._languages[code] = replace(info, is_enabled=True)

    def disable_language(self, code: str) -> None:
        """Disable a language; the default language is left untouched."""
        if code == DEFAULT_LANGUAGE:
            return
        with self._lock:
            info = self._languages.get(code)
            if info is not None:
                self._languages[code] = replace(info, is_enabled=False)

    def add_language(self, info: LanguageInfo) -> None:
        with self._lock:
            self._languages[info.code] = info

    def get_supported_languages(self) -> List[LanguageInfo]:
        """Enabled languages, sorted by code."""
        with self._lock:
            return [
                self._languages[code]
                for code in sorted(self._languages)
                if self._languages[code].is_enabled
            ]
