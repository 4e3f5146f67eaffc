from __future__ import annotations


class EpubIOError(OSError):
    """Raised when the archive or one of its entries cannot be read."""


class EpubFormatError(ValueError):
    """Raised when the publication does not have the structure we need."""


class EpubLookupError(LookupError):
    """Raised when a chapter, manifest id or image reference does not resolve."""
