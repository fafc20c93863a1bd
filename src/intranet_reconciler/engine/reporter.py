"""
Reporter.

Renders a RunReport as stable, line-oriented text:

    already-satisfied  active_students
    failed             student_exams -- rpc:create_student_exams_table: HTTP 404 ...
    -- fallback: student_exams
    CREATE TABLE IF NOT EXISTS ...
    -- end fallback: student_exams
    summary: total=2 already-satisfied=1 corrected=0 failed=1

Every status line starts with the status so `grep ^failed` works.
"""

from pathlib import Path
from typing import List, Optional

from rich.console import Console

from intranet_reconciler.domain.enums import OutcomeStatus
from intranet_reconciler.domain.schemas import RunReport

STATUS_WIDTH = max(len(status.value) for status in OutcomeStatus) + 2


class Reporter:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False, soft_wrap=True)

    def render(self, report: RunReport) -> str:
        lines: List[str] = []

        for outcome in report.outcomes:
            line = f"{outcome.status.value:<{STATUS_WIDTH}}{outcome.target}"
            if outcome.detail:
                # detail may be a multi-line error body
                line += f" -- {' '.join(outcome.detail.split())}"
            lines.append(line)

        for outcome in report.outcomes:
            if outcome.fallback is None:
                continue
            lines.append("")
            lines.append(f"-- fallback: {outcome.target}")
            lines.append(outcome.fallback.strip("\n"))
            lines.append(f"-- end fallback: {outcome.target}")

        lines.append("")
        lines.append(
            f"summary: total={len(report.outcomes)}"
            f" already-satisfied={report.count(OutcomeStatus.ALREADY_SATISFIED)}"
            f" corrected={report.count(OutcomeStatus.CORRECTED)}"
            f" failed={report.count(OutcomeStatus.FAILED)}"
        )
        if report.aborted:
            lines.append(f"aborted: {report.abort_reason}")
            lines.append(f"skipped: {', '.join(report.skipped) or '-'}")
        return "\n".join(lines)

    def print(self, report: RunReport) -> None:
        self.console.print(self.render(report), markup=False, highlight=False)

    def write_json(self, report: RunReport, path: Path) -> None:
        path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
