from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.entities.edition import EditionEntity
from src.domain.errors import NotFoundError, StorageFailedError
from src.infrastructure.database.repositories.edition_repository import EditionRepository

logger = logging.getLogger(__name__)


@dataclass
class RestoreVersionUseCase:
    """
    Use case for making an earlier edition current again.

    This doesn't create or copy anything - it only moves the current pointer,
    so every edition and its edit history stay exactly as they were.
    """

    edition_repo: EditionRepository

    def execute(self, asset_id: str, version_number: int) -> EditionEntity:
        """
        Make `version_number` the asset's current edition.

        Restoring the edition that is already current changes nothing.

        Raises:
            NotFoundError: the asset has no such edition
        """
        target = self.edition_repo.get_edition(asset_id, version_number)
        if target is None:
            raise NotFoundError(f"Asset {asset_id} has no version {version_number}")
        if target.is_current:
            return target

        if not self.edition_repo.set_current(asset_id, version_number):
            raise StorageFailedError(
                f"Version {version_number} of asset {asset_id} disappeared during restore"
            )
        logger.info("Restored asset=%s to version=%s", asset_id, version_number)
        return target.with_current(True)
