"""Bucket selection and deterministic storage path construction.

Layout: ``{issuer-slug}/{category}/{yyyy}/{mm}/{stem}.pdf``, in a bucket chosen
solely by lane.
"""

import re
from datetime import date

from certdocs.config.settings import Settings
from certdocs.storage.models import Lane, StorageLocation

_NON_SLUG = re.compile(r"[^a-z0-9]+")
HASH_STEM_LENGTH = 24
CERTIFIED_SUFFIX = "-certified"


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim dashes."""
    return _NON_SLUG.sub("-", value.strip().lower()).strip("-")


def bucket_for_lane(lane: Lane, settings: Settings) -> str:
    if lane is Lane.SANDBOX:
        return settings.sandbox_bucket
    return settings.production_bucket


def file_stem(natural_key: str | None, content_hash: str) -> str:
    """Prefer the slugified natural key; fall back to a hash-derived stem."""
    if natural_key:
        slug = slugify(natural_key)
        if slug:
            return slug
    return f"doc-{content_hash[:HASH_STEM_LENGTH]}"


def build_storage_path(
    issuer_slug: str,
    category: str,
    issued_on: date,
    stem: str,
) -> str:
    return (
        f"{slugify(issuer_slug)}/{slugify(category)}/"
        f"{issued_on.year:04d}/{issued_on.month:02d}/{stem}.pdf"
    )


def build_location(
    lane: Lane,
    settings: Settings,
    issuer_slug: str,
    category: str,
    issued_on: date,
    stem: str,
) -> StorageLocation:
    return StorageLocation(
        bucket=bucket_for_lane(lane, settings),
        path=build_storage_path(issuer_slug, category, issued_on, stem),
    )


def certified_path(original_path: str) -> str:
    """Derive the certified sibling path, e.g. ``a/b/inv-1.pdf`` -> ``a/b/inv-1-certified.pdf``.

    The result always differs from ``original_path``, even when the stem
    already contains the suffix.
    """
    path = original_path.strip()
    if not path:
        raise ValueError("original_path must not be empty")
    if path.lower().endswith(".pdf"):
        return path[:-4] + f"{CERTIFIED_SUFFIX}.pdf"
    return f"{path}{CERTIFIED_SUFFIX}.pdf"


def normalize_path(path: str) -> str:
    """Use forward slashes, collapse repeats, drop leading/trailing slashes."""
    return re.sub(r"/+", "/", path.replace("\\", "/")).strip("/")


def dir_of(path: str) -> str:
    head, _, _ = path.rpartition("/")
    return head


def base_of(path: str) -> str:
    return path.rpartition("/")[2]
