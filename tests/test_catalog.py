from intranet_reconciler.catalog import (
    ACTIVE_STUDENTS_TABLE_SQL,
    HAS_COMPLETED_DDL,
    INTRANET_TARGETS,
    QUIZ_TABLES_SQL,
    RELOAD_SCHEMA,
    get_targets,
)
from intranet_reconciler.domain.enums import ActionKind, ProbeKind
from intranet_reconciler.engine.runner import order_targets, select_targets


def test_catalog_names_are_unique():
    names = [target.name for target in INTRANET_TARGETS]

    assert len(names) == len(set(names))


def test_catalog_dependencies_resolve_without_cycles():
    targets = select_targets(get_targets())

    assert [t.name for t in order_targets(targets)] == [t.name for t in targets]


def test_get_targets_returns_copies():
    targets = get_targets()
    targets[0].depends_on.append("mutated")

    assert "mutated" not in INTRANET_TARGETS[0].depends_on


def test_has_completed_target():
    target = next(t for t in get_targets() if t.name == "active_students.has_completed")

    assert target.probe.kind == ProbeKind.COLUMN
    assert target.probe.select == "has_completed"
    assert target.action.kind == ActionKind.SCAFFOLD
    assert target.action.row["has_completed"] is False
    assert target.fallback_sql.startswith(HAS_COMPLETED_DDL)
    assert HAS_COMPLETED_DDL == (
        "ALTER TABLE active_students ADD COLUMN IF NOT EXISTS has_completed "
        "BOOLEAN DEFAULT FALSE;"
    )


def test_ddl_reloads_postgrest_schema_cache():
    for target in get_targets():
        assert target.ddl.rstrip().endswith(RELOAD_SCHEMA)
        assert RELOAD_SCHEMA not in target.fallback_sql


def test_sql_is_rerunnable():
    for target in get_targets():
        for line in target.fallback_sql.splitlines():
            statement = line.strip().upper()
            if statement.startswith("CREATE TABLE") or statement.startswith("CREATE INDEX"):
                assert "IF NOT EXISTS" in statement
            if statement.startswith("CREATE POLICY"):
                policy = line.split()[2]
                assert f"DROP POLICY IF EXISTS {policy}" in target.fallback_sql


def test_quiz_tables_are_table_targets():
    targets = {t.name: t for t in get_targets()}

    for table in ("quiz", "quiz_questions", "quiz_results", "quiz_attempts", "quiz_results_temp"):
        target = targets[table]
        assert target.probe.kind == ProbeKind.TABLE
        assert target.probe.table == table
        assert target.fallback_sql == QUIZ_TABLES_SQL[table]
        assert f"CREATE TABLE IF NOT EXISTS public.{table} (" in target.fallback_sql


def test_exams_professors_relation_target():
    target = next(t for t in get_targets() if t.name == "exams.professors")

    assert target.probe.kind == ProbeKind.RELATION
    assert target.probe.table == "exams"
    assert "professors:professor_id(" in target.probe.select
    assert "FOREIGN KEY (professor_id)" in target.fallback_sql
    assert "DROP CONSTRAINT IF EXISTS fk_exams_professor_id" in target.fallback_sql


def test_active_students_joins_realtime_publication_once():
    assert "ALTER PUBLICATION supabase_realtime ADD TABLE public.active_students;" in (
        ACTIVE_STUDENTS_TABLE_SQL
    )
    assert "IF NOT EXISTS" in ACTIVE_STUDENTS_TABLE_SQL.split("ALTER PUBLICATION")[0]
    assert "pg_publication_tables" in ACTIVE_STUDENTS_TABLE_SQL
