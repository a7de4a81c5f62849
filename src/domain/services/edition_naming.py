from __future__ import annotations

import posixpath
import re

_VERSION_SUFFIX = re.compile(r"_v\d+(?:-\d+)?$")


def derive_edition_filename(
    source_file_name: str,
    version_number: int,
    *,
    source_is_original: bool = True,
    collision: int = 0,
) -> str:
    """File name for edition `version_number` derived from the edition it was edited from.

    Every derived edition of an asset is named ``<original stem>_v<n><ext>``:
    an original keeps its whole stem, a derived source has its ``_v<k>``
    suffix replaced. Deterministic, and unique per version number among the
    editions of one asset. Other assets or orphaned files can still occupy
    the name in a shared directory; pass ``collision=k`` to get the k-th
    alternative ``<stem>_v<n>-<k><ext>``.

    >>> derive_edition_filename("a.jpg", 2)
    'a_v2.jpg'
    >>> derive_edition_filename("a_v2.jpg", 3, source_is_original=False)
    'a_v3.jpg'
    >>> derive_edition_filename("a.jpg", 2, collision=1)
    'a_v2-1.jpg'
    """
    if version_number < 2:
        raise ValueError("derived editions start at version 2")
    if collision < 0:
        raise ValueError("collision index must not be negative")
    stem, ext = posixpath.splitext(source_file_name)
    if not source_is_original:
        stem = _VERSION_SUFFIX.sub("", stem)
    suffix = f"_v{version_number}-{collision}" if collision else f"_v{version_number}"
    return f"{stem}{suffix}{ext}"
