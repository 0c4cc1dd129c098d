"""
contentkit - declarative content-model import engine.

Plans and applies bundles, fields and cross-referenced content items
described by a single JSON document against a content storage backend,
with a preview mode that computes the same plan without writing.
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.errors import (
    ContentKitError,
    GrammarError,
    StorageError,
    ValidationError,
)
from .core.importer import ContentImporter, import_content

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "ContentImporter",
    "import_content",
    "ContentKitError",
    "GrammarError",
    "StorageError",
    "ValidationError",
]
