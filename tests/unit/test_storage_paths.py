from datetime import date

import pytest

from certdocs.config.settings import Settings
from certdocs.storage.models import Lane
from certdocs.storage.paths import (
    base_of,
    bucket_for_lane,
    build_location,
    build_storage_path,
    certified_path,
    dir_of,
    file_stem,
    normalize_path,
    slugify,
)

HASH = "c0ffee" + "0" * 58


class TestSlugify:
    def test_lowercases_and_dashes(self) -> None:
        assert slugify("INV-2024/001 Final") == "inv-2024-001-final"

    def test_trims_edge_dashes(self) -> None:
        assert slugify("  --Hello__World--  ") == "hello-world"


class TestBuckets:
    def test_lane_picks_bucket(self, settings: Settings) -> None:
        assert bucket_for_lane(Lane.SANDBOX, settings) == "billing_sandbox"
        assert bucket_for_lane(Lane.PRODUCTION, settings) == "billing_truth"


class TestFileStem:
    def test_prefers_natural_key(self) -> None:
        assert file_stem("INV-2024-001", HASH) == "inv-2024-001"

    def test_falls_back_to_hash_prefix(self) -> None:
        assert file_stem(None, HASH) == f"doc-{HASH[:24]}"

    def test_unsluggable_key_falls_back_to_hash(self) -> None:
        assert file_stem("///", HASH) == f"doc-{HASH[:24]}"


class TestStoragePath:
    def test_layout(self) -> None:
        path = build_storage_path("oasis-intl", "billing", date(2024, 3, 15), "inv-2024-001")

        assert path == "oasis-intl/billing/2024/03/inv-2024-001.pdf"

    def test_same_inputs_same_location(self, settings: Settings) -> None:
        first = build_location(Lane.SANDBOX, settings, "oasis-intl", "billing", date(2024, 3, 15), "a")
        second = build_location(Lane.SANDBOX, settings, "oasis-intl", "billing", date(2024, 3, 15), "a")

        assert first == second

    def test_lanes_never_share_location(self, settings: Settings) -> None:
        sandbox = build_location(Lane.SANDBOX, settings, "oasis-intl", "billing", date(2024, 3, 15), "a")
        production = build_location(Lane.PRODUCTION, settings, "oasis-intl", "billing", date(2024, 3, 15), "a")

        assert sandbox.bucket != production.bucket


class TestCertifiedPath:
    def test_inserts_suffix_before_extension(self) -> None:
        assert certified_path("a/b/inv-1.pdf") == "a/b/inv-1-certified.pdf"

    def test_key_containing_suffix_gets_distinct_sibling(self) -> None:
        original = "oasis-intl/billing/2024/03/inv-certified-7.pdf"

        assert certified_path(original) == "oasis-intl/billing/2024/03/inv-certified-7-certified.pdf"

    def test_never_returns_the_original_path(self) -> None:
        original = "a/b/inv-1-certified.pdf"

        assert certified_path(original) != original

    def test_appends_extension_when_missing(self) -> None:
        assert certified_path("a/b/inv-1") == "a/b/inv-1-certified.pdf"

    def test_rejects_empty_path(self) -> None:
        with pytest.raises(ValueError):
            certified_path("  ")


class TestPathHelpers:
    def test_normalize_path(self) -> None:
        assert normalize_path("\\a//b\\c/") == "a/b/c"

    def test_dir_and_base(self) -> None:
        assert dir_of("a/b/c.pdf") == "a/b"
        assert base_of("a/b/c.pdf") == "c.pdf"
        assert dir_of("c.pdf") == ""
