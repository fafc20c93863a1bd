"""
Intranet Reconciliation Catalog.

Declarative table of the schema state the intranet front-end expects from its
Supabase project. Each entry is consumed by the generic runner; adding a new
check means adding a ReconciliationTarget here.

All DDL and fallback SQL is written to be re-runnable.
"""

from typing import List

from intranet_reconciler.domain.schemas import (
    CorrectiveAction,
    ProbeSpec,
    ReconciliationTarget,
)

# PostgREST caches the schema; DDL executed over RPC is invisible until reload.
RELOAD_SCHEMA = "NOTIFY pgrst, 'reload schema';"

# =============================================================================
# active_students (live exam monitoring)
# =============================================================================

ACTIVE_STUDENTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS public.active_students (
  id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
  student_id TEXT NOT NULL UNIQUE,
  student_name TEXT NOT NULL,
  status TEXT NOT NULL DEFAULT 'connected',
  has_completed BOOLEAN DEFAULT FALSE,
  cheating_attempts INTEGER NOT NULL DEFAULT 0,
  connected_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
  last_activity TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
);

ALTER TABLE public.active_students ENABLE ROW LEVEL SECURITY;

DROP POLICY IF EXISTS active_students_select ON public.active_students;
CREATE POLICY active_students_select ON public.active_students
  FOR SELECT USING (true);

DROP POLICY IF EXISTS active_students_insert ON public.active_students;
CREATE POLICY active_students_insert ON public.active_students
  FOR INSERT WITH CHECK (true);

DROP POLICY IF EXISTS active_students_update ON public.active_students;
CREATE POLICY active_students_update ON public.active_students
  FOR UPDATE USING (true);

DO $$
BEGIN
  IF NOT EXISTS (
    SELECT 1 FROM pg_publication_tables
    WHERE pubname = 'supabase_realtime'
      AND schemaname = 'public'
      AND tablename = 'active_students'
  ) THEN
    ALTER PUBLICATION supabase_realtime ADD TABLE public.active_students;
  END IF;
END
$$;
"""

HAS_COMPLETED_DDL = (
    "ALTER TABLE active_students ADD COLUMN IF NOT EXISTS has_completed BOOLEAN DEFAULT FALSE;"
)

HAS_COMPLETED_SQL = f"""\
{HAS_COMPLETED_DDL}

UPDATE active_students
SET has_completed = (status = 'completed')
WHERE has_completed IS NULL;

CREATE INDEX IF NOT EXISTS idx_active_students_has_completed
ON active_students(has_completed);
"""

# =============================================================================
# student_exams (exam seating and attendance)
# =============================================================================

STUDENT_EXAMS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS public.student_exams (
  id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
  student_id UUID NOT NULL REFERENCES auth.users(id),
  exam_id UUID NOT NULL REFERENCES public.exams(id) ON DELETE CASCADE,
  seat_number VARCHAR(10),
  attendance_status VARCHAR(20) DEFAULT 'pending',
  attempt_status VARCHAR(20) DEFAULT 'not_started',
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE,
  UNIQUE(student_id, exam_id)
);

ALTER TABLE public.student_exams ENABLE ROW LEVEL SECURITY;

DROP POLICY IF EXISTS student_exams_select_policy ON public.student_exams;
CREATE POLICY student_exams_select_policy ON public.student_exams
  FOR SELECT USING (auth.uid() = student_id);

DROP POLICY IF EXISTS professor_exams_select_policy ON public.student_exams;
CREATE POLICY professor_exams_select_policy ON public.student_exams
  FOR SELECT USING (
    EXISTS (
      SELECT 1 FROM public.exams e
      JOIN public.professors p ON e.professor_id = p.id
      WHERE e.id = student_exams.exam_id AND p.profile_id = auth.uid()
    )
  );

DROP POLICY IF EXISTS admin_exams_select_policy ON public.student_exams;
CREATE POLICY admin_exams_select_policy ON public.student_exams
  FOR SELECT USING (
    EXISTS (
      SELECT 1 FROM public.profiles
      WHERE id = auth.uid() AND role = 'admin'
    )
  );
"""

STUDENT_EXAMS_FK_SQL = """\
ALTER TABLE public.student_exams
DROP CONSTRAINT IF EXISTS fk_student_exams_exam_id;

ALTER TABLE public.student_exams
ADD CONSTRAINT fk_student_exams_exam_id
FOREIGN KEY (exam_id)
REFERENCES public.exams(id)
ON DELETE CASCADE;
"""

EXAMS_PROFESSORS_FK_SQL = """\
ALTER TABLE public.exams
DROP CONSTRAINT IF EXISTS fk_exams_professor_id;

ALTER TABLE public.exams
ADD CONSTRAINT fk_exams_professor_id
FOREIGN KEY (professor_id)
REFERENCES public.professors(id)
ON DELETE SET NULL;
"""

# =============================================================================
# quiz tables
# =============================================================================

QUIZ_TABLES_SQL = {
    "quiz": """\
CREATE TABLE IF NOT EXISTS public.quiz (
  id SERIAL PRIMARY KEY,
  title VARCHAR(255) NOT NULL,
  description TEXT,
  course_id INTEGER,
  professor_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
  time_limit INTEGER,
  passing_score INTEGER DEFAULT 60,
  is_active BOOLEAN DEFAULT true,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
""",
    "quiz_questions": """\
CREATE TABLE IF NOT EXISTS public.quiz_questions (
  id SERIAL PRIMARY KEY,
  quiz_id INTEGER NOT NULL,
  question TEXT NOT NULL,
  options JSONB NOT NULL,
  correct_answer TEXT NOT NULL,
  points INTEGER DEFAULT 1,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
""",
    "quiz_results": """\
CREATE TABLE IF NOT EXISTS public.quiz_results (
  id SERIAL PRIMARY KEY,
  user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
  quiz_id INTEGER NOT NULL,
  score INTEGER NOT NULL,
  total_questions INTEGER NOT NULL,
  completion_time INTEGER,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
""",
    "quiz_attempts": """\
CREATE TABLE IF NOT EXISTS public.quiz_attempts (
  id SERIAL PRIMARY KEY,
  user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
  quiz_id INTEGER,
  started_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  completed_at TIMESTAMP WITH TIME ZONE,
  is_completed BOOLEAN DEFAULT false,
  answers JSONB DEFAULT '{}',
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
""",
    "quiz_results_temp": """\
CREATE TABLE IF NOT EXISTS public.quiz_results_temp (
  id SERIAL PRIMARY KEY,
  user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
  quiz_id INTEGER NOT NULL,
  score INTEGER NOT NULL,
  total_questions INTEGER NOT NULL,
  completion_time INTEGER,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);
""",
}


def _with_reload(sql: str) -> str:
    return f"{sql.rstrip()}\n\n{RELOAD_SCHEMA}\n"


INTRANET_TARGETS: List[ReconciliationTarget] = [
    ReconciliationTarget(
        name="active_students",
        description="Live exam monitoring table is queryable",
        probe=ProbeSpec.table_exists("active_students"),
        action=CorrectiveAction.manual(),
        ddl=_with_reload(ACTIVE_STUDENTS_TABLE_SQL),
        fallback_sql=ACTIVE_STUDENTS_TABLE_SQL,
    ),
    ReconciliationTarget(
        name="active_students.has_completed",
        description="Completion flag used by the exam supervision dashboard",
        probe=ProbeSpec.column("active_students", "has_completed"),
        action=CorrectiveAction.scaffold(
            key_column="student_id",
            row={
                "student_name": "Reconciler Scaffold",
                "status": "connected",
                "has_completed": False,
                "cheating_attempts": 0,
            },
        ),
        ddl=_with_reload(HAS_COMPLETED_SQL),
        fallback_sql=HAS_COMPLETED_SQL,
        depends_on=["active_students"],
    ),
    ReconciliationTarget(
        name="student_exams",
        description="Per-student exam assignment table is queryable",
        probe=ProbeSpec.table_exists("student_exams"),
        action=CorrectiveAction.rpc("create_student_exams_table"),
        ddl=_with_reload(STUDENT_EXAMS_TABLE_SQL),
        fallback_sql=STUDENT_EXAMS_TABLE_SQL,
    ),
    ReconciliationTarget(
        name="student_exams.exams",
        description="student_exams.exam_id embeds its exam through a foreign key",
        probe=ProbeSpec.relation("student_exams", "id,exam_id,exams:exam_id(id,title)"),
        action=CorrectiveAction.manual(),
        ddl=_with_reload(STUDENT_EXAMS_FK_SQL),
        fallback_sql=STUDENT_EXAMS_FK_SQL,
        depends_on=["student_exams"],
    ),
    ReconciliationTarget(
        name="exams.professors",
        description="exams.professor_id embeds its professor through a foreign key",
        probe=ProbeSpec.relation(
            "exams", "id,professor_id,professors:professor_id(id,profile_id)"
        ),
        action=CorrectiveAction.manual(),
        ddl=_with_reload(EXAMS_PROFESSORS_FK_SQL),
        fallback_sql=EXAMS_PROFESSORS_FK_SQL,
    ),
] + [
    ReconciliationTarget(
        name=table,
        description=f"Quiz table {table} is queryable",
        probe=ProbeSpec.table_exists(table),
        action=CorrectiveAction.manual(),
        ddl=_with_reload(sql),
        fallback_sql=sql,
    )
    for table, sql in QUIZ_TABLES_SQL.items()
]


def get_targets() -> List[ReconciliationTarget]:
    """Return a fresh copy of the catalog so callers cannot mutate it."""
    return [target.model_copy(deep=True) for target in INTRANET_TARGETS]
