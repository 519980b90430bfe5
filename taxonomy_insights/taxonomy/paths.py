"""
Category Path Helpers

Normalization of delimiter-joined category strings extracted from product
feeds, display titles, and the stable node ids derived from them.
"""

import hashlib
import re
from typing import Sequence, Tuple

PATH_DELIMITERS = re.compile(r"\s*[>/|]+\s*")
CANONICAL_SEPARATOR = " > "
_SLUG_CHARS = re.compile(r"[\W_]+", re.UNICODE)
_WORD_BREAKS = re.compile(r"[-_\s]+")


def split_category_path(path: str) -> Tuple[str, ...]:
    """Split a raw category string on any of ``>``, ``/``, ``|``."""
    if not path:
        return ()
    segments = (re.sub(r"\s+", " ", s).strip() for s in PATH_DELIMITERS.split(path))
    return tuple(s for s in segments if s)


def normalize_category_path(path: str) -> str:
    """
    Canonical form of a category string.
    
    Example:
        >>> normalize_category_path("Electronics/ Phones ||Smartphones")
        'Electronics > Phones > Smartphones'
    """
    return CANONICAL_SEPARATOR.join(split_category_path(path))


def slugify(text: str) -> str:
    """Lowercase, non-word runs collapsed to single dashes. Keeps non-ASCII letters."""
    return _SLUG_CHARS.sub("-", text.lower()).strip("-")


def node_id_for(segments: Sequence[str]) -> str:
    """
    Stable node id for a normalized segment chain.
    
    Identical category strings always produce identical ids. Segments that
    slugify to nothing fall back to a content hash.
    """
    joined = "/".join(segments)
    slug = slugify(joined)
    if slug:
        return slug
    digest = hashlib.sha1(joined.encode("utf-8")).hexdigest()[:12]
    return f"node-{digest}"


def _capitalize_word(word: str) -> str:
    if word.isascii():
        return word[:1].upper() + word[1:].lower()
    # Lowercasing non-ASCII text can change its meaning, only touch the first code point
    return word[:1].upper() + word[1:]


def humanize_segment(segment: str) -> str:
    """Display title for a path segment: title-case each word."""
    words = [w for w in _WORD_BREAKS.split(segment) if w]
    return " ".join(_capitalize_word(w) for w in words)
