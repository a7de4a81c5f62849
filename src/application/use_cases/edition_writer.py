from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from src.domain.entities.edition import EditionEntity, EditRecord, join_location
from src.domain.entities.transform import Transform
from src.domain.errors import StorageFailedError
from src.domain.services.edition_naming import derive_edition_filename
from src.domain.services.transform_adapter import TransformAdapter, format_for_filename
from src.infrastructure.database.repositories.edition_repository import EditionRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)


@dataclass
class EditionWriter:
    storage: SupabaseStorage
    edition_repo: EditionRepository
    transforms: TransformAdapter

    def process_and_save_version(
        self, current: EditionEntity, transform: Transform
    ) -> EditionEntity:
        """
        Render `transform` over the current edition and record the result as a new edition.

        The caller holds the asset's lock and has validated `transform`.

        WORKFLOW:
        1. Reserve the next version number n for the asset
        2. Derive the new file name from the current one and n, in the same directory,
           stepping to a suffixed alternative while the name is taken in storage
        3. Run the transform on the current edition's bytes
        4. Write the output to the derived location (never over an existing file)
        5. Extend the current edition's edit history by one record
        6. Insert the new edition row
        7. Move the current pointer to n, demoting the previous current edition

        If the transform fails nothing is written. If the ledger fails after the
        file was written, the file is left in place as an orphan and logged;
        cleaning those up belongs to a periodic sweep. A retry renders to the
        next free name, so an orphan never blocks later edits.

        Raises:
            InvalidParametersError: the transform does not fit the source image
            TransformFailedError: the engine rejected the input or timed out
            StorageFailedError: reading the source, writing the output, or a ledger write failed
        """
        asset_id = current.asset_id
        version_number = self.edition_repo.next_version_number(asset_id)
        file_name, location = self._free_location(current, version_number)

        source = self.storage.read_bytes(current.location)
        result = self.transforms.apply(source, transform, format_for_filename(current.file_name))

        self.storage.write_bytes(location, result.data, result.content_type)

        now = datetime.now(UTC)
        edition = EditionEntity(
            asset_id=asset_id,
            version_number=version_number,
            file_path=current.file_path,
            file_name=file_name,
            created_at=now,
            byte_size=result.size,
            width=result.width,
            height=result.height,
            mime_type=result.content_type,
            is_original=False,
            # inserted demoted; the flip below is the last step
            is_current=False,
            edits_applied=current.edits_applied
            + (EditRecord(type=transform.kind, timestamp=now, params=transform.params()),),
        )

        try:
            self.edition_repo.insert_edition(edition)
        except StorageFailedError:
            logger.error(
                "Orphaned file: ledger insert failed asset=%s version=%s location=%s",
                asset_id,
                version_number,
                location,
            )
            raise

        try:
            if not self.edition_repo.set_current(asset_id, version_number):
                raise StorageFailedError(
                    f"Edition {version_number} of asset {asset_id} vanished before it became current"
                )
        except StorageFailedError:
            # the previous edition stays current; the new one remains restorable
            logger.error(
                "Edition asset=%s version=%s inserted but could not be made current",
                asset_id,
                version_number,
            )
            raise

        logger.info(
            "Saved edition asset=%s version=%s op=%s size=%sx%s",
            asset_id,
            version_number,
            transform.kind,
            result.width,
            result.height,
        )
        return edition.with_current(True)

    def _free_location(self, current: EditionEntity, version_number: int) -> tuple[str, str]:
        """First derived name for `version_number` that nothing occupies in storage.

        No ledger row holds `version_number` yet, so an existing file under the
        plain name is an orphan of a failed insert or belongs to another asset.
        Neither may be overwritten.
        """
        collision = 0
        while True:
            file_name = derive_edition_filename(
                current.file_name,
                version_number,
                source_is_original=current.is_original,
                collision=collision,
            )
            location = join_location(current.file_path, file_name)
            if not self.storage.exists(location):
                return file_name, location
            logger.warning("Edition name %s already taken, trying another", location)
            collision += 1
