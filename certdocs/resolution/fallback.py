"""Read-time repair for artifacts whose recorded path no longer exists.

Objects drift: folders get renamed between singular/plural or lower/title
case, and finalized copies are re-uploaded under a ``-signed`` name. The
locator lists the recorded directory plus known alternates in the same
bucket and picks the best matching PDF.
"""

import re
from datetime import UTC, datetime

from certdocs.logging.logger import Log
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.exceptions import StorageError
from certdocs.storage.models import ListedObject
from certdocs.storage.paths import base_of, dir_of, normalize_path

_UUID_PREFIX = re.compile(
    r"^([0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12})",
    re.IGNORECASE,
)
_EXTENSION = ".pdf"
_FINALIZED_MARKER = "-signed"


def uuid_prefix(filename: str) -> str | None:
    match = _UUID_PREFIX.match(filename)
    return match.group(1).lower() if match else None


def _title_case(segment: str) -> str:
    words = re.split(r"[_-]+", segment)
    return "".join(word[:1].upper() + word[1:] for word in words if word)


def _segment_variants(segment: str, categories: list[str]) -> list[str]:
    lowered = segment.lower()
    for category in categories:
        forms = [category.lower()]
        if category.endswith("s"):
            forms.append(category[:-1].lower())
        if lowered in forms:
            return [form for base in forms for form in (base, _title_case(base))]
    return []


def alternate_directories(directory: str, categories: list[str]) -> list[str]:
    """The directory itself, then case and pluralization variants of its category segment."""
    normalized = normalize_path(directory)
    directories = [normalized]
    segments = normalized.split("/") if normalized else []
    for index, segment in enumerate(segments):
        for variant in _segment_variants(segment, categories):
            replaced = "/".join([*segments[:index], variant, *segments[index + 1:]])
            if replaced not in directories:
                directories.append(replaced)
    return directories


def select_candidate(listed: list[ListedObject], recorded_path: str) -> ListedObject | None:
    """Pick the best stand-in for ``recorded_path`` among listed objects.

    Only PDFs are considered. A recognizable UUID prefix on the recorded name
    must match exactly; otherwise the recorded stem must appear in the
    candidate name followed by ``-``, ``.`` or the end of the name, so
    ``inv-1`` never matches ``inv-10``. A ``-signed`` variant wins, else the
    newest object.
    """
    base = base_of(recorded_path).lower()
    pdfs = [item for item in listed if item.name.lower().endswith(_EXTENSION)]

    prefix = uuid_prefix(base)
    if prefix is not None:
        matches = [item for item in pdfs if base_of(item.name).lower().startswith(prefix)]
    else:
        stem = base[: -len(_EXTENSION)] if base.endswith(_EXTENSION) else base
        boundary = re.compile(re.escape(stem) + r"(?=[-.]|$)")
        matches = [item for item in pdfs if boundary.search(base_of(item.name).lower())]

    if not matches:
        return None
    newest_first = sorted(matches, key=_updated_key, reverse=True)
    for item in newest_first:
        if _FINALIZED_MARKER in base_of(item.name).lower():
            return item
    return newest_first[0]


def _updated_key(item: ListedObject) -> datetime:
    return item.updated_at or datetime.min.replace(tzinfo=UTC)


class FallbackLocator:
    """Searches one bucket for a replacement path; never crosses buckets."""

    def __init__(
        self,
        storage: BaseStorageClient,
        *,
        categories: list[str],
        listing_limit: int = 200,
    ) -> None:
        self._storage = storage
        self._categories = categories
        self._listing_limit = listing_limit

    def locate(self, bucket: str, recorded_path: str) -> str | None:
        path = normalize_path(recorded_path)
        listed: list[ListedObject] = []
        seen: set[str] = set()
        for directory in alternate_directories(dir_of(path), self._categories):
            try:
                entries = self._storage.list_directory(bucket, directory, self._listing_limit)
            except StorageError as exc:
                Log.warning(f"Listing {bucket}/{directory} failed, skipping: {exc}")
                continue
            for entry in entries:
                if entry.name not in seen:
                    seen.add(entry.name)
                    listed.append(entry)

        best = select_candidate(listed, path)
        if best is None:
            Log.info(f"No fallback candidate for {bucket}/{path} among {len(listed)} objects")
            return None
        return best.name
