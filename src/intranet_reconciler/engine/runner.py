"""
Reconciliation Runner.

Drives Probe -> Patch Applier -> Verifier for each target, sequentially, in
dependency order (leaves first, catalog order among peers). Outcomes are
collected into a RunReport for the Reporter.

Failure policy:
- A patch rejection or verification mismatch fails that target only.
- A TransportError at any step aborts the run. Outcomes already produced are
  kept; the interrupted target and all remaining ones are listed as skipped.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from intranet_reconciler.domain.enums import OutcomeStatus
from intranet_reconciler.domain.schemas import (
    Outcome,
    ReconciliationTarget,
    RunReport,
)
from intranet_reconciler.engine.patcher import PatchApplier
from intranet_reconciler.engine.probe import Probe
from intranet_reconciler.engine.verifier import Verifier
from intranet_reconciler.exceptions import (
    DependencyCycleError,
    TransportError,
    UnknownTargetError,
)


def select_targets(
    targets: Sequence[ReconciliationTarget],
    only: Optional[Iterable[str]] = None,
) -> List[ReconciliationTarget]:
    """
    Resolve the targets to process: everything, or `only` plus its dependencies.

    Raises:
        UnknownTargetError: If a selected name or a declared dependency is unknown.
    """
    by_name = {target.name: target for target in targets}
    for target in targets:
        for dep in target.depends_on:
            if dep not in by_name:
                raise UnknownTargetError(
                    f"{target.name} depends on unknown target '{dep}'"
                )

    if not only:
        return list(targets)

    wanted: Set[str] = set()
    pending = list(only)
    while pending:
        name = pending.pop()
        if name in wanted:
            continue
        if name not in by_name:
            raise UnknownTargetError(f"Unknown target '{name}'")
        wanted.add(name)
        pending.extend(by_name[name].depends_on)

    return [target for target in targets if target.name in wanted]


def order_targets(targets: Sequence[ReconciliationTarget]) -> List[ReconciliationTarget]:
    """
    Topologically sort targets so dependencies come first.

    Raises:
        DependencyCycleError: If the dependency graph has a cycle.
    """
    by_name = {target.name: target for target in targets}
    ordered: List[ReconciliationTarget] = []
    done: Set[str] = set()
    visiting: List[str] = []

    def visit(target: ReconciliationTarget) -> None:
        if target.name in done:
            return
        if target.name in visiting:
            cycle = visiting[visiting.index(target.name):] + [target.name]
            raise DependencyCycleError(
                f"Dependency cycle detected: {' -> '.join(cycle)}"
            )
        visiting.append(target.name)
        for dep in target.depends_on:
            if dep in by_name:
                visit(by_name[dep])
        visiting.pop()
        done.add(target.name)
        ordered.append(target)

    for target in targets:
        visit(target)
    return ordered


class ReconciliationRunner:
    def __init__(
        self,
        probe: Probe,
        patcher: PatchApplier,
        verifier: Optional[Verifier] = None,
    ):
        self.probe = probe
        self.patcher = patcher
        self.verifier = verifier or Verifier(probe)

    def run(self, targets: Sequence[ReconciliationTarget]) -> RunReport:
        ordered = order_targets(targets)
        report = RunReport()
        satisfied: Dict[str, bool] = {}

        for index, target in enumerate(ordered):
            try:
                outcome = self.reconcile(target, satisfied)
            except TransportError as e:
                logger.critical(f"Aborting run at {target.name}: {e}")
                report.aborted = True
                report.abort_reason = f"transport error at {target.name}: {e}"
                report.skipped = [t.name for t in ordered[index:]]
                break
            satisfied[target.name] = outcome.ok
            report.outcomes.append(outcome)

        return report

    def reconcile(
        self,
        target: ReconciliationTarget,
        satisfied: Optional[Dict[str, bool]] = None,
    ) -> Outcome:
        """Process one target through the full pipeline."""
        satisfied = satisfied or {}

        if self.probe.is_satisfied(target):
            return Outcome(target=target.name, status=OutcomeStatus.ALREADY_SATISFIED)

        blockers = [dep for dep in target.depends_on if not satisfied.get(dep, False)]
        if blockers:
            logger.warning(
                f"Not patching {target.name}: dependencies unsatisfied ({', '.join(blockers)})"
            )
            return Outcome(
                target=target.name,
                status=OutcomeStatus.FAILED,
                detail=f"blocked by unsatisfied dependency: {', '.join(blockers)}",
                fallback=target.fallback_sql,
            )

        result = self.patcher.apply(target)
        if not result.applied:
            return Outcome(
                target=target.name,
                status=OutcomeStatus.FAILED,
                detail=f"{result.status.value} ({result.strategy}): {result.detail}",
                fallback=target.fallback_sql,
            )

        if not self.verifier.confirm(target):
            return Outcome(
                target=target.name,
                status=OutcomeStatus.FAILED,
                detail=(
                    f"{result.strategy} applied but verification still unsatisfied; "
                    "manual intervention required"
                ),
                fallback=target.fallback_sql,
            )

        logger.success(f"Corrected {target.name} via {result.strategy}")
        return Outcome(
            target=target.name,
            status=OutcomeStatus.CORRECTED,
            detail=f"via {result.strategy}",
        )
