"""Machine translation seam.

The translation provider (DeepL in production) lives outside this package.
Anything with a matching ``translate`` method can be passed to
``TextService.machine_translate``. Implementations raise TranslationError
on provider failure.
"""

from typing import Protocol


# Provider language codes, keyed by our language codes.
PROVIDER_LANGUAGE_CODES = {"en": "EN", "fr": "FR"}


class Translator(Protocol):
    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate ``text``. Language codes use PROVIDER_LANGUAGE_CODES values."""
        ...
