import logging

import pytest

from certdocs.logging.logger import Log


class TestAudit:
    def test_formats_sorted_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="certdocs")

        Log.audit("hash_not_stabilized", iterations=4, content_hash="abc", document_id="d1")

        assert caplog.records[-1].getMessage() == (
            "AUDIT hash_not_stabilized content_hash=abc document_id=d1 iterations=4"
        )
        assert caplog.records[-1].levelno == logging.WARNING

    def test_event_without_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="certdocs")

        Log.audit("lane_switched")

        assert caplog.records[-1].getMessage() == "AUDIT lane_switched"


class TestConfigure:
    def test_sets_level_and_single_handler(self) -> None:
        Log.configure("debug")
        Log.configure("debug")

        logger = logging.getLogger("certdocs")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
