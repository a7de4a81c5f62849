"""Public API of the edition versioning core.

Every mutating operation runs under the asset's lock, so the
read-version / write-file / insert-row / flip-current sequence of one edit
never interleaves with another operation on the same asset. Parameter
validation happens before the lock is taken and before any I/O.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from src.application.asset_locks import AssetLockRegistry, get_asset_locks
from src.application.use_cases.apply_edit import ApplyEditUseCase
from src.application.use_cases.create_original_version import CreateOriginalVersionUseCase
from src.application.use_cases.delete_edition import DeleteEditionUseCase
from src.application.use_cases.edition_writer import EditionWriter
from src.application.use_cases.preview_edit import PreviewEditUseCase
from src.application.use_cases.restore_version import RestoreVersionUseCase
from src.domain.entities.edition import EditionEntity
from src.domain.entities.transform import (
    CropTransform,
    FlipTransform,
    ResizeTransform,
    RotateTransform,
    Transform,
)
from src.domain.errors import InvalidParametersError, NotFoundError
from src.domain.services.transform_adapter import TransformAdapter, TransformResult
from src.infrastructure.database.repositories.edition_repository import EditionRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidParametersError(f"{name} is required")
    return value


def _require_file_name(value: Any) -> str:
    _require_text("file_name", value)
    if "/" in value or "\\" in value or value.strip() in (".", ".."):
        raise InvalidParametersError("file_name must be a bare file name")
    return value


def _require_directory(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidParametersError("file_path must be a string")
    if ".." in re.split(r"[/\\]", value):
        raise InvalidParametersError("file_path must not contain '..' segments")
    return value


@dataclass
class EditionLifecycleController:
    storage: SupabaseStorage
    edition_repo: EditionRepository
    transforms: TransformAdapter
    locks: AssetLockRegistry = field(default_factory=get_asset_locks)

    # --------- registration ---------
    def create_original_version(
        self, asset_id: str, file_path: str, file_name: str
    ) -> EditionEntity:
        _require_text("asset_id", asset_id)
        _require_file_name(file_name)
        _require_directory(file_path)
        uc = CreateOriginalVersionUseCase(
            storage=self.storage, edition_repo=self.edition_repo, transforms=self.transforms
        )
        with self.locks.hold(asset_id):
            return uc.execute(asset_id, file_path, file_name)

    # --------- edits ---------
    def apply_edit(self, asset_id: str, transform: Transform) -> EditionEntity:
        _require_text("asset_id", asset_id)
        transform.validate()
        writer = EditionWriter(
            storage=self.storage, edition_repo=self.edition_repo, transforms=self.transforms
        )
        uc = ApplyEditUseCase(edition_repo=self.edition_repo, writer=writer)
        with self.locks.hold(asset_id):
            return uc.execute(asset_id, transform)

    def crop(self, asset_id: str, x: int, y: int, width: int, height: int) -> EditionEntity:
        return self.apply_edit(asset_id, CropTransform(x=x, y=y, width=width, height=height))

    def rotate(self, asset_id: str, degrees: int) -> EditionEntity:
        return self.apply_edit(asset_id, RotateTransform(degrees=degrees))

    def resize(
        self, asset_id: str, width: int, height: int, fit: str = "inside"
    ) -> EditionEntity:
        return self.apply_edit(asset_id, ResizeTransform(width=width, height=height, fit=fit))

    def flip(self, asset_id: str, direction: str) -> EditionEntity:
        return self.apply_edit(asset_id, FlipTransform(direction=direction))

    def preview_edit(self, asset_id: str, transform: Transform) -> TransformResult:
        """Render `transform` over the current edition without saving anything."""
        _require_text("asset_id", asset_id)
        transform.validate()
        uc = PreviewEditUseCase(
            storage=self.storage, edition_repo=self.edition_repo, transforms=self.transforms
        )
        with self.locks.hold(asset_id):
            return uc.execute(asset_id, transform)

    # --------- pointer moves and deletion ---------
    def restore_version(self, asset_id: str, version_number: int) -> EditionEntity:
        with self.locks.hold(asset_id):
            return RestoreVersionUseCase(edition_repo=self.edition_repo).execute(
                asset_id, version_number
            )

    def delete_edition(self, asset_id: str, version_number: int) -> None:
        with self.locks.hold(asset_id):
            DeleteEditionUseCase(edition_repo=self.edition_repo).execute(asset_id, version_number)

    # --------- queries ---------
    def get_current_version(self, asset_id: str) -> EditionEntity | None:
        with self.locks.hold(asset_id):
            return self.edition_repo.get_current(asset_id)

    def list_versions(self, asset_id: str) -> list[EditionEntity]:
        with self.locks.hold(asset_id):
            return self.edition_repo.list_editions(asset_id)

    def get_image_metadata(self, asset_id: str) -> dict[str, Any]:
        """Current edition plus what Pillow reads from its rendered bytes."""
        with self.locks.hold(asset_id):
            current = self.edition_repo.get_current(asset_id)
            if current is None:
                raise NotFoundError(f"Asset {asset_id} has no current edition")
            data = self.storage.read_bytes(current.location)
        probe = self.transforms.probe(data)
        return {
            "version_number": current.version_number,
            "location": current.location,
            "byte_size": len(data),
            "width": probe.width if probe else current.width,
            "height": probe.height if probe else current.height,
            "format": probe.format if probe else None,
            "mime_type": probe.mime_type if probe else current.mime_type,
            "mode": probe.mode if probe else None,
            "edit_count": len(current.edits_applied),
        }
