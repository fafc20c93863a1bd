from enum import Enum


class ProbeKind(str, Enum):
    """What a probe checks for."""

    COLUMN = "column"
    TABLE = "table"
    RELATION = "relation"


class ActionKind(str, Enum):
    """Declared corrective action for an unsatisfied target."""

    RPC = "rpc"
    SCAFFOLD = "scaffold"
    MANUAL = "manual"


class PatchStatus(str, Enum):
    """Result of one Patch Applier attempt."""

    APPLIED = "applied"
    NOT_APPLICABLE = "not-applicable"
    REJECTED = "rejected"


class OutcomeStatus(str, Enum):
    """Final status of one target in a run."""

    ALREADY_SATISFIED = "already-satisfied"
    CORRECTED = "corrected"
    FAILED = "failed"
