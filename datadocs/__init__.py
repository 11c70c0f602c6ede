"""datadocs: versioned, encrypted, bilingual texts with redaction-aware rendering."""

__version__ = "1.0.0"
