"""Markdown to HTML for display-ready texts."""

import markdown

_TABLE_EXTENSIONS = ["tables"]


def to_html(content: str, tables_enabled: bool = True) -> str:
    """Render Markdown ``content`` as HTML.

    Pure function. Constructs Markdown cannot interpret are emitted as
    literal text.
    """
    extensions = _TABLE_EXTENSIONS if tables_enabled else []
    return markdown.markdown(content, extensions=extensions, output_format="html")
