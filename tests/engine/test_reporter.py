import json
from io import StringIO

from rich.console import Console

from intranet_reconciler.domain.enums import OutcomeStatus
from intranet_reconciler.domain.schemas import Outcome, RunReport
from intranet_reconciler.engine.reporter import Reporter

FALLBACK = "CREATE TABLE IF NOT EXISTS public.student_exams (\n  id UUID\n);\n"


def sample_report(**kwargs):
    return RunReport(
        outcomes=[
            Outcome(target="active_students", status=OutcomeStatus.ALREADY_SATISFIED),
            Outcome(
                target="active_students.has_completed",
                status=OutcomeStatus.CORRECTED,
                detail="via scaffold",
            ),
            Outcome(
                target="student_exams",
                status=OutcomeStatus.FAILED,
                detail="rejected (rpc:create_student_exams_table): HTTP 404",
                fallback=FALLBACK,
            ),
        ],
        **kwargs,
    )


def test_one_greppable_line_per_target():
    lines = Reporter().render(sample_report()).splitlines()

    assert lines[0] == "already-satisfied  active_students"
    assert lines[1] == "corrected          active_students.has_completed -- via scaffold"
    assert lines[2].startswith("failed             student_exams -- rejected")


def test_multiline_detail_stays_on_its_status_line():
    report = RunReport(
        outcomes=[
            Outcome(
                target="student_exams",
                status=OutcomeStatus.FAILED,
                detail="rejected (scaffold): HTTP 502: <html>\n<body>Bad gateway</body>\n</html>",
                fallback=FALLBACK,
            ),
            Outcome(target="quiz", status=OutcomeStatus.ALREADY_SATISFIED),
        ]
    )

    lines = Reporter().render(report).splitlines()

    assert lines[0] == (
        "failed             student_exams -- rejected (scaffold): HTTP 502: "
        "<html> <body>Bad gateway</body> </html>"
    )
    assert lines[1] == "already-satisfied  quiz"


def test_fallback_block_is_verbatim():
    text = Reporter().render(sample_report())

    block = text.split("-- fallback: student_exams\n", 1)[1]
    block = block.split("\n-- end fallback: student_exams", 1)[0]
    assert block == FALLBACK.strip("\n")


def test_summary_line():
    text = Reporter().render(sample_report())

    assert "summary: total=3 already-satisfied=1 corrected=1 failed=1" in text
    assert "aborted:" not in text


def test_aborted_run_lists_skipped_targets():
    report = sample_report(
        aborted=True,
        abort_reason="transport error at student_exams.exams: timed out",
        skipped=["student_exams.exams"],
    )

    text = Reporter().render(report)

    assert "aborted: transport error at student_exams.exams: timed out" in text
    assert text.endswith("skipped: student_exams.exams")


def test_print_does_not_interpret_markup():
    buffer = StringIO()
    console = Console(file=buffer, width=200, color_system=None)
    report = RunReport(
        outcomes=[
            Outcome(
                target="t",
                status=OutcomeStatus.FAILED,
                detail="x",
                fallback="SELECT '[bold]';",
            )
        ]
    )

    Reporter(console).print(report)

    assert "SELECT '[bold]';" in buffer.getvalue()


def test_write_json(tmp_path):
    path = tmp_path / "report.json"

    Reporter().write_json(sample_report(), path)

    payload = json.loads(path.read_text())
    assert payload["exit_code"] == 1
    assert payload["outcomes"][2]["status"] == "failed"
    assert payload["outcomes"][2]["fallback"] == FALLBACK
