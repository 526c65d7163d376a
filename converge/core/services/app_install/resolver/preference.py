"""
L2 Resolver — Architecture preference policy.

Shared by every resolver so that all of them pick the same way:

    exact host arch  >  "universal"  >  "silicon"  >  "apple"  >  first found

Keywords are tried in order and, for each keyword, candidates are
scanned in discovery order.  The first keyword that matches anything
wins, so "app-universal-apple.dmg" is chosen for "universal", not for
some combined score.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar
from urllib.parse import urlsplit

from converge.core.models.artifact import Arch

T = TypeVar("T")

DISK_IMAGE_EXT = ".dmg"
ARCHIVE_EXT = ".zip"

_NEUTRAL_KEYWORDS = ("universal", "silicon", "apple")


def preference_keywords(arch: Arch) -> list[str]:
    """Ordered keywords for ``arch`` (no duplicates)."""
    keywords = [arch.value]
    keywords.extend(k for k in _NEUTRAL_KEYWORDS if k != arch.value)
    return keywords


def pick_preferred(
    candidates: Sequence[T],
    arch: Arch,
    key: Callable[[T], str] = str,
) -> tuple[T, str] | None:
    """Best keyword match among ``candidates``.

    Returns:
        ``(candidate, keyword)`` or None when no keyword matches at all.
    """
    for keyword in preference_keywords(arch):
        for candidate in candidates:
            if keyword in key(candidate).lower():
                return candidate, keyword
    return None


def select_candidate(
    candidates: Sequence[T],
    arch: Arch,
    key: Callable[[T], str] = str,
) -> tuple[T, str] | None:
    """Preference match, falling back to the first candidate."""
    picked = pick_preferred(candidates, arch, key=key)
    if picked is not None:
        return picked
    if candidates:
        return candidates[0], "first"
    return None


def url_has_extension(url: str, ext: str) -> bool:
    """Whether the URL's path (query and fragment ignored) ends in ``ext``.

    Malformed URLs (e.g. an unbalanced IPv6 bracket) never match.
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    return path.lower().endswith(ext)


def installer_filename(url: str, name: str, ext: str) -> str:
    """Local file name for a download.

    Query strings are dropped; when the last path segment does not end in
    ``ext`` the directive name is used instead (``<name><ext>``).
    """
    try:
        segment = urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]
    except ValueError:
        segment = ""
    if segment.lower().endswith(ext):
        return segment
    return f"{name}{ext}"
