from __future__ import annotations

from dataclasses import dataclass

from src.application.use_cases.edition_writer import EditionWriter
from src.domain.entities.edition import EditionEntity
from src.domain.entities.transform import CropTransform, Transform
from src.domain.errors import NotFoundError
from src.infrastructure.database.repositories.edition_repository import EditionRepository


@dataclass
class ApplyEditUseCase:
    edition_repo: EditionRepository
    writer: EditionWriter

    def execute(self, asset_id: str, transform: Transform) -> EditionEntity:
        """
        Apply one validated transform to the asset's current edition.

        Structural edits always build on the current edition, so a crop after a
        rotate crops the rotated pixels. Use restore_version to edit from an
        earlier edition.

        Raises:
            NotFoundError: the asset has no current edition (never registered)
        """
        current = self.edition_repo.get_current(asset_id)
        if current is None:
            raise NotFoundError(f"Asset {asset_id} has no current edition")

        # the ledger knows the source size; reject before touching any bytes
        if isinstance(transform, CropTransform) and current.width and current.height:
            transform.check_bounds(current.width, current.height)

        return self.writer.process_and_save_version(current, transform)
