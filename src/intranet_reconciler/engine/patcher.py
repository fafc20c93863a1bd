"""
Patch Applier.

Issues the corrective operation for one unsatisfied target. Strategies are tried
in preference order:

1. SQL execution through the project's SQL RPC, when the target has DDL and the
   RPC is configured. This is the migration-privilege path.
2. The target's declared action (rpc, scaffold or manual).

Scaffold writes are a degraded mode: PostgREST has no DDL surface, so a row
carrying the new field is upserted under a synthetic key. Only rows whose key
carries the scaffold prefix are ever written.

Remote rejections are reported, never retried. Transport errors propagate.
"""

from typing import List

from loguru import logger

from intranet_reconciler.config import Settings
from intranet_reconciler.domain.enums import ActionKind, PatchStatus
from intranet_reconciler.domain.schemas import PatchResult, ReconciliationTarget
from intranet_reconciler.exceptions import StoreError
from intranet_reconciler.repository.supabase import SupabaseRestClient


class PatchApplier:
    def __init__(self, client: SupabaseRestClient, settings: Settings):
        self.client = client
        self.settings = settings

    def scaffold_key(self, target: ReconciliationTarget) -> str:
        """Deterministic synthetic key, so repeated runs overwrite the same row."""
        return f"{self.settings.SCAFFOLD_KEY_PREFIX}{target.slug}"

    def apply(self, target: ReconciliationTarget) -> PatchResult:
        attempts: List[PatchResult] = []

        if target.ddl and self.settings.has_sql_rpc:
            result = self._apply_sql(target)
            if result.applied:
                return result
            attempts.append(result)
            logger.warning(
                f"SQL execution unavailable for {target.name}, "
                f"falling back to declared action '{target.action.kind.value}'"
            )

        result = self._apply_declared(target)
        if result.applied or not attempts:
            return result

        attempts.append(result)
        status = (
            PatchStatus.REJECTED
            if any(a.status == PatchStatus.REJECTED for a in attempts)
            else PatchStatus.NOT_APPLICABLE
        )
        return PatchResult(
            status=status,
            strategy=result.strategy,
            detail="; ".join(f"{a.strategy}: {a.detail}" for a in attempts),
        )

    def _apply_declared(self, target: ReconciliationTarget) -> PatchResult:
        kind = target.action.kind
        if kind == ActionKind.RPC:
            return self._apply_rpc(target)
        if kind == ActionKind.SCAFFOLD:
            return self._apply_scaffold(target)
        return PatchResult(
            status=PatchStatus.NOT_APPLICABLE,
            strategy="manual",
            detail="no REST surface can apply this change",
        )

    def _apply_sql(self, target: ReconciliationTarget) -> PatchResult:
        function = self.settings.SUPABASE_SQL_RPC
        logger.info(f"Executing DDL for {target.name} via rpc/{function}")
        try:
            self.client.rpc(function, {self.settings.SUPABASE_SQL_RPC_ARG: target.ddl})
        except StoreError as e:
            logger.error(f"rpc/{function} rejected DDL for {target.name}: {e}")
            return PatchResult(
                status=PatchStatus.REJECTED, strategy=f"sql:{function}", detail=str(e)
            )
        return PatchResult(status=PatchStatus.APPLIED, strategy=f"sql:{function}")

    def _apply_rpc(self, target: ReconciliationTarget) -> PatchResult:
        function = target.action.function
        logger.info(f"Calling rpc/{function} for {target.name}")
        try:
            self.client.rpc(function, target.action.payload)
        except StoreError as e:
            logger.error(f"rpc/{function} rejected for {target.name}: {e}")
            return PatchResult(
                status=PatchStatus.REJECTED, strategy=f"rpc:{function}", detail=str(e)
            )
        return PatchResult(status=PatchStatus.APPLIED, strategy=f"rpc:{function}")

    def _apply_scaffold(self, target: ReconciliationTarget) -> PatchResult:
        if not self.settings.ALLOW_SCAFFOLD_WRITES:
            return PatchResult(
                status=PatchStatus.NOT_APPLICABLE,
                strategy="scaffold",
                detail="scaffold writes disabled (ALLOW_SCAFFOLD_WRITES=false)",
            )

        action = target.action
        key = self.scaffold_key(target)
        row = {**action.row, action.key_column: key}
        logger.warning(
            f"DEGRADED MODE: writing scaffold row {action.key_column}={key} "
            f"into {target.probe.table} for {target.name}"
        )
        try:
            self.client.upsert(target.probe.table, row, on_conflict=action.key_column)
        except StoreError as e:
            logger.error(f"Scaffold write rejected for {target.name}: {e}")
            return PatchResult(
                status=PatchStatus.REJECTED, strategy="scaffold", detail=str(e)
            )
        return PatchResult(
            status=PatchStatus.APPLIED,
            strategy="scaffold",
            detail=f"scaffold row {action.key_column}={key}",
        )
