from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from src.domain.entities.edition import EditionEntity, join_location
from src.domain.errors import ConflictError, StorageFailedError
from src.domain.services.transform_adapter import TransformAdapter
from src.infrastructure.database.repositories.edition_repository import EditionRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class CreateOriginalVersionUseCase:
    storage: SupabaseStorage
    edition_repo: EditionRepository
    transforms: TransformAdapter

    def execute(self, asset_id: str, file_path: str, file_name: str) -> EditionEntity:
        """
        Register an ingested file as version 1 of the asset.

        The original is both the first and the current edition, with an empty
        edit history. If the file can't be read or decoded it is still
        registered, with unknown dimensions.

        Raises:
            ConflictError: the asset already has an original
        """
        if self.edition_repo.get_original(asset_id) is not None:
            raise ConflictError(f"Asset {asset_id} already has an original edition")

        location = join_location(file_path, file_name)
        byte_size = width = height = None
        mime_type = None
        try:
            data = self.storage.read_bytes(location)
        except StorageFailedError as exc:
            logger.warning("Registering %s without metadata: %s", location, exc)
        else:
            byte_size = len(data)
            probe = self.transforms.probe(data)
            if probe is None:
                logger.warning("Registering %s without dimensions: not a readable image", location)
            else:
                width, height, mime_type = probe.width, probe.height, probe.mime_type

        edition = self.edition_repo.insert_edition(
            EditionEntity(
                asset_id=asset_id,
                version_number=1,
                file_path=file_path,
                file_name=file_name,
                created_at=datetime.now(UTC),
                byte_size=byte_size,
                width=width,
                height=height,
                mime_type=mime_type,
                is_original=True,
                is_current=True,
                edits_applied=(),
            )
        )
        logger.info("Registered original asset=%s location=%s", asset_id, location)
        return edition
