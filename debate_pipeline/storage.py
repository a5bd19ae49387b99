"""
Persistence of rendered reports.

Layout under the results directory:

    <results_dir>/<fund_id>/analysis/<YYYY-MM-DD>_<session_type>_debate_pipeline.md
    <results_dir>/<fund_id>/analysis/<YYYY-MM-DD>_<session_type>_debate_pipeline.json
    <results_dir>/<fund_id>/analysis/<YYYY-MM-DD>_<session_type>_subagents.md
"""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import structlog

from debate_pipeline.config import config
from debate_pipeline.exceptions import ReportStorageError

logger = structlog.get_logger(__name__)


class ReportSink(Protocol):
    """Destination for a finished run's markdown report and JSON record."""

    def save(
        self,
        fund_id: str,
        session_type: str,
        markdown: str,
        record: Dict[str, Any],
        report_date: Optional[date] = None
    ) -> Path:
        ...


class FilesystemReportSink:
    """Writes reports below `results_dir`, one analysis folder per fund."""

    def __init__(self, results_dir: Optional[Union[str, Path]] = None):
        self.results_dir = Path(results_dir) if results_dir is not None else Path(config.results_dir)

    def analysis_dir(self, fund_id: str) -> Path:
        return self.results_dir / fund_id / "analysis"

    def _stem(self, session_type: str, report_date: Optional[date]) -> str:
        day = (report_date or date.today()).isoformat()
        return f"{day}_{session_type}"

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ReportStorageError(f"Failed to write {path.name}", path=str(path), cause=e) from e

    def save(
        self,
        fund_id: str,
        session_type: str,
        markdown: str,
        record: Dict[str, Any],
        report_date: Optional[date] = None
    ) -> Path:
        """
        Save the markdown report and its JSON record side by side.

        Returns:
            Path of the markdown report

        Raises:
            ReportStorageError: If either file cannot be written
        """
        stem = self._stem(session_type, report_date)
        md_path = self.analysis_dir(fund_id) / f"{stem}_debate_pipeline.md"
        json_path = md_path.with_suffix(".json")

        self._write(md_path, markdown)
        self._write(json_path, json.dumps(record, indent=2, default=str))

        logger.info("report_saved", fund_id=fund_id, path=str(md_path), record=str(json_path))
        return md_path

    def save_analyst_summary(
        self,
        fund_id: str,
        session_type: str,
        markdown: str,
        report_date: Optional[date] = None
    ) -> Path:
        path = self.analysis_dir(fund_id) / f"{self._stem(session_type, report_date)}_subagents.md"
        self._write(path, markdown)
        logger.info("analyst_summary_saved", fund_id=fund_id, path=str(path))
        return path
