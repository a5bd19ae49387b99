"""Tests for storage.py - report persistence."""

import json
from datetime import date

import pytest

from debate_pipeline.exceptions import ReportStorageError
from debate_pipeline.storage import FilesystemReportSink

DAY = date(2026, 3, 2)


def test_save_writes_markdown_and_record(tmp_path):
    sink = FilesystemReportSink(tmp_path)
    path = sink.save("growth-fund", "morning", "# Report\n", {"fund_id": "growth-fund"}, report_date=DAY)

    assert path == tmp_path / "growth-fund" / "analysis" / "2026-03-02_morning_debate_pipeline.md"
    assert path.read_text() == "# Report\n"
    record = json.loads(path.with_suffix(".json").read_text())
    assert record == {"fund_id": "growth-fund"}


def test_record_with_non_json_values(tmp_path):
    sink = FilesystemReportSink(tmp_path)
    path = sink.save("f", "eod", "x", {"when": DAY}, report_date=DAY)
    assert json.loads(path.with_suffix(".json").read_text()) == {"when": "2026-03-02"}


def test_save_analyst_summary(tmp_path):
    sink = FilesystemReportSink(str(tmp_path))
    path = sink.save_analyst_summary("growth-fund", "morning", "# Summary\n", report_date=DAY)
    assert path.name == "2026-03-02_morning_subagents.md"
    assert path.parent == sink.analysis_dir("growth-fund")


def test_unwritable_location_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    sink = FilesystemReportSink(blocker)

    with pytest.raises(ReportStorageError) as exc_info:
        sink.save("growth-fund", "morning", "x", {}, report_date=DAY)
    assert "path" in exc_info.value.details
    assert isinstance(exc_info.value.cause, OSError)
