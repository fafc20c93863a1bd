"""
Data Schemas for the Intranet Reconciler.

Targets describe one expected piece of remote schema state together with the
way to correct it; outcomes and reports describe what a single run observed.
All models use Pydantic for validation and serialization.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

from intranet_reconciler.domain.enums import (
    ActionKind,
    OutcomeStatus,
    PatchStatus,
    ProbeKind,
)

# PostgREST identifiers the catalog is allowed to address
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(value: str, what: str) -> str:
    if not IDENTIFIER_PATTERN.match(value):
        raise ValueError(f"Invalid {what}: '{value}'")
    return value


# =============================================================================
# TARGET DESCRIPTORS
# =============================================================================


class ProbeSpec(BaseModel):
    """Read-only query whose success means the target condition holds."""

    kind: ProbeKind
    table: str = Field(..., description="Table (or view) queried by the probe")
    select: str = Field(
        default="*", description="PostgREST select expression sent with limit=1"
    )

    @model_validator(mode="after")
    def validate_table(self) -> "ProbeSpec":
        _check_identifier(self.table, "table name")
        return self

    @classmethod
    def column(cls, table: str, column: str) -> "ProbeSpec":
        return cls(
            kind=ProbeKind.COLUMN,
            table=table,
            select=_check_identifier(column, "column name"),
        )

    @classmethod
    def table_exists(cls, table: str) -> "ProbeSpec":
        return cls(kind=ProbeKind.TABLE, table=table, select="*")

    @classmethod
    def relation(cls, table: str, select: str) -> "ProbeSpec":
        return cls(kind=ProbeKind.RELATION, table=table, select=select)


class CorrectiveAction(BaseModel):
    """
    Declared correction for an unsatisfied target.

    - rpc: call `function` with `payload`
    - scaffold: upsert `row` under a synthetic key stored in `key_column`
    - manual: nothing can be done over REST, operators apply the fallback
    """

    kind: ActionKind
    function: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    row: Dict[str, Any] = Field(default_factory=dict)
    key_column: Optional[str] = None

    @model_validator(mode="after")
    def validate_kind_fields(self) -> "CorrectiveAction":
        if self.kind == ActionKind.RPC:
            if not self.function:
                raise ValueError("rpc action requires a function name")
            _check_identifier(self.function, "function name")
        if self.kind == ActionKind.SCAFFOLD:
            if not self.key_column:
                raise ValueError("scaffold action requires a key_column")
            _check_identifier(self.key_column, "key column")
            if self.key_column in self.row:
                raise ValueError(
                    "scaffold row must not set its key column; the key is generated"
                )
        return self

    @classmethod
    def rpc(cls, function: str, payload: Optional[Dict[str, Any]] = None):
        return cls(kind=ActionKind.RPC, function=function, payload=payload or {})

    @classmethod
    def scaffold(cls, key_column: str, row: Dict[str, Any]):
        return cls(kind=ActionKind.SCAFFOLD, key_column=key_column, row=row)

    @classmethod
    def manual(cls):
        return cls(kind=ActionKind.MANUAL)


class ReconciliationTarget(BaseModel):
    """One expected piece of remote schema/data state."""

    name: str = Field(..., min_length=1)
    description: str = ""
    probe: ProbeSpec
    action: CorrectiveAction
    ddl: Optional[str] = Field(
        default=None,
        description="Idempotent SQL run through the SQL-execution RPC when available",
    )
    fallback_sql: str = Field(
        ..., min_length=1, description="Statements printed for manual execution"
    )
    depends_on: List[str] = Field(default_factory=list)

    @property
    def slug(self) -> str:
        """Name reduced to characters safe inside a synthetic key."""
        return re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-")


# =============================================================================
# RUN RESULTS
# =============================================================================


class PatchResult(BaseModel):
    status: PatchStatus
    strategy: str
    detail: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status == PatchStatus.APPLIED


class Outcome(BaseModel):
    """Result of attempting one ReconciliationTarget."""

    target: str
    status: OutcomeStatus
    detail: Optional[str] = None
    fallback: Optional[str] = None

    @model_validator(mode="after")
    def fallback_only_on_failure(self) -> "Outcome":
        if self.status != OutcomeStatus.FAILED and self.fallback is not None:
            raise ValueError("fallback text is only attached to failed outcomes")
        return self

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED


class RunReport(BaseModel):
    """Everything one invocation produced, in processing order."""

    outcomes: List[Outcome] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None
    skipped: List[str] = Field(default_factory=list)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @computed_field
    @property
    def exit_code(self) -> int:
        if self.aborted:
            return 2
        if any(not outcome.ok for outcome in self.outcomes):
            return 1
        return 0
