from __future__ import annotations

import logging

import pytest

from exponent_crawler.logging_conf import run_log_path, run_logger


@pytest.fixture(autouse=True)
def crawler_home(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXPONENT_CRAWLER_HOME", str(tmp_path))


def file_handlers() -> list[logging.FileHandler]:
    return [
        handler
        for handler in logging.getLogger("exponent_crawler").handlers
        if isinstance(handler, logging.FileHandler)
    ]


def test_run_handler_is_removed_when_the_run_ends() -> None:
    before = len(file_handlers())
    with run_logger("scoped") as log:
        assert len(file_handlers()) == before + 1
        log.info("inside_run")
    assert len(file_handlers()) == before
    assert "inside_run" in run_log_path("scoped").read_text(encoding="utf-8")


def test_later_runs_do_not_write_into_earlier_run_files() -> None:
    with run_logger("earlier") as log:
        log.info("earlier_event")
    with run_logger("later") as log:
        log.info("later_event")

    earlier = run_log_path("earlier").read_text(encoding="utf-8")
    later = run_log_path("later").read_text(encoding="utf-8")
    assert "earlier_event" in earlier
    assert "later_event" not in earlier
    assert "later_event" in later


def test_run_handler_is_removed_when_the_run_raises() -> None:
    before = len(file_handlers())
    with pytest.raises(RuntimeError):
        with run_logger("crashed"):
            raise RuntimeError("boom")
    assert len(file_handlers()) == before
