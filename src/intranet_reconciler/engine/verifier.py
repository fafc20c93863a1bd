from loguru import logger

from intranet_reconciler.domain.schemas import ReconciliationTarget
from intranet_reconciler.engine.probe import Probe


class Verifier:
    """
    Re-runs the probe after a patch was applied.

    The store may accept a write without persisting the structural change, so an
    "applied" patch is never taken as proof on its own.
    """

    def __init__(self, probe: Probe):
        self.probe = probe

    def confirm(self, target: ReconciliationTarget) -> bool:
        confirmed = self.probe.is_satisfied(target)
        if not confirmed:
            logger.critical(
                f"Verification mismatch for {target.name}: "
                "patch reported applied but the probe is still unsatisfied"
            )
        return confirmed
