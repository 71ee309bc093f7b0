# backend/shift_scheduler/services/cleanup_service.py
"""
Cleanup Service - removes generator-owned future shifts that should not exist.

Two cases:
- Orphans: shifts whose owning model was deleted or deactivated (or whose
  company was deactivated). Runs before generation so stale occurrences do not
  cause false overlap blocks.
- Reset: every future unlinked shift of one model, so an edited model is
  regenerated from scratch.

Both only ever touch shifts dated tomorrow or later that carry a model id and
are not linked. Manual shifts (null model id) and linked shifts survive.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..database.repository import RepositoryTransaction
from ..utils.time_utils import tomorrow_of
from .retry_handler import RetryHandler


@dataclass
class CleanupResult:
    orphaned_deleted: int = 0


class CleanupService:
    def __init__(self, retry_handler: RetryHandler) -> None:
        self.retry_handler = retry_handler

    async def cleanup(
        self,
        company_id: Optional[int],
        model_id: Optional[int],
        reference: datetime,
    ) -> CleanupResult:
        """
        Delete orphaned future shifts in scope.

        The set of valid models is every active model of the company scope;
        the model filter only narrows which shifts are candidates.
        """
        from_date = tomorrow_of(reference)

        async def unit_of_work(tx: RepositoryTransaction) -> int:
            active = await tx.load_active_models(company_id=company_id)
            return await tx.delete_orphaned_shifts(
                [model.id for model in active],
                from_date,
                company_id=company_id,
                model_id=model_id,
            )

        deleted = await self.retry_handler.execute(unit_of_work, "cleanup_orphans")
        return CleanupResult(orphaned_deleted=deleted)

    async def reset(self, model_id: int, reference: datetime) -> int:
        """Delete every future unlinked shift owned by ``model_id``."""
        from_date = tomorrow_of(reference)

        async def unit_of_work(tx: RepositoryTransaction) -> int:
            return await tx.delete_future_unlinked_shifts(model_id, from_date)

        return await self.retry_handler.execute(unit_of_work, "reset_model")
