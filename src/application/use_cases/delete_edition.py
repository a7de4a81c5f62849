from __future__ import annotations

import logging
from dataclasses import dataclass

from src.domain.errors import InvalidOperationError, NotFoundError
from src.infrastructure.database.repositories.edition_repository import EditionRepository

logger = logging.getLogger(__name__)


@dataclass
class DeleteEditionUseCase:
    edition_repo: EditionRepository

    def execute(self, asset_id: str, version_number: int) -> None:
        """
        Delete one superseded edition and its rendered file.

        Raises:
            NotFoundError: the asset has no such edition
            InvalidOperationError: the edition is the original, or is current
                (restore another edition first)
        """
        edition = self.edition_repo.get_edition(asset_id, version_number)
        if edition is None:
            raise NotFoundError(f"Asset {asset_id} has no version {version_number}")
        if edition.is_original:
            raise InvalidOperationError("The original edition cannot be deleted")
        if edition.is_current:
            raise InvalidOperationError(
                "The current edition cannot be deleted; restore another version first"
            )

        if not self.edition_repo.delete_edition(asset_id, version_number):
            raise NotFoundError(f"Asset {asset_id} has no version {version_number}")
        logger.info("Deleted asset=%s version=%s", asset_id, version_number)
