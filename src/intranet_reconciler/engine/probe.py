from loguru import logger

from intranet_reconciler.domain.schemas import ReconciliationTarget
from intranet_reconciler.exceptions import StoreError, TransportError
from intranet_reconciler.repository.supabase import SupabaseRestClient


class Probe:
    """
    Checks whether a target's condition holds, without side effects.

    Only a semantic-absence error (missing column/table/relation) counts as
    "unsatisfied". Any other failure means the store cannot be trusted and is
    raised as a TransportError.
    """

    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def is_satisfied(self, target: ReconciliationTarget) -> bool:
        spec = target.probe
        try:
            self.client.select(spec.table, columns=spec.select, limit=1)
        except StoreError as e:
            if e.is_absence:
                logger.info(f"Probe unsatisfied for {target.name}: {e}")
                return False
            raise TransportError(
                f"Unexpected response probing {target.name}: {e}"
            ) from e

        logger.info(f"Probe satisfied for {target.name}")
        return True
