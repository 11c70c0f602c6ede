"""Inline redaction markup for dual-audience texts.

Authors mark sensitive passages as ``~~text~~[Rationale]``. The internal
view shows the passage with the markup stripped; the open view replaces
each word with a block of ``■`` of the same length. The rationale is an
annotation for reviewers and never appears in either rendering.

Unterminated markup does not match and passes through untouched.
"""

import re

REDACTION_BLOCK = "■"

# ``text`` may span lines but never contains ``~~``, so an unterminated
# span cannot swallow the next one. The rationale is a single bracketed line.
REDACTION_SPAN = re.compile(r"~~(?P<text>(?:(?!~~)[\s\S])*?)~~\[(?P<rationale>[^\]\n]*)\]")



def redact_words(text: str) -> str:
    """Block out every word of ``text``, words separated by a single space."""
    return " ".join(REDACTION_BLOCK * len(word) for word in text.split())


def render(content: str, redact: bool) -> str:
    """Resolve every redaction span in ``content``.

    Args:
        content: Decrypted text, before any Markdown rendering.
        redact: True for the open (public) view, False for the internal view.
    """
    if redact:
        return REDACTION_SPAN.sub(lambda m: redact_words(m.group("text")), content)
    return REDACTION_SPAN.sub(lambda m: m.group("text"), content)
