from __future__ import annotations

from dataclasses import dataclass

from src.domain.entities.transform import CropTransform, Transform
from src.domain.errors import NotFoundError
from src.domain.services.transform_adapter import (
    TransformAdapter,
    TransformResult,
    format_for_filename,
)
from src.infrastructure.database.repositories.edition_repository import EditionRepository
from src.infrastructure.storage.supabase_storage import SupabaseStorage


@dataclass
class PreviewEditUseCase:
    """
    Preview an edit without saving it.

    Applies a transform to the current edition and returns the rendered bytes
    WITHOUT writing a file or creating an edition. Perfect for:
    - Showing the result while the user adjusts a crop box or resize target
    - "Try before you save" workflow

    Workflow:
    1. User registers a photo (v1)
    2. User drags the crop box → PreviewEditUseCase renders it (temp)
    3. User clicks "Save" → ApplyEditUseCase creates v2 (permanent)
    """

    storage: SupabaseStorage
    edition_repo: EditionRepository
    transforms: TransformAdapter

    def execute(self, asset_id: str, transform: Transform) -> TransformResult:
        current = self.edition_repo.get_current(asset_id)
        if current is None:
            raise NotFoundError(f"Asset {asset_id} has no current edition")
        if isinstance(transform, CropTransform) and current.width and current.height:
            transform.check_bounds(current.width, current.height)

        source = self.storage.read_bytes(current.location)
        return self.transforms.apply(source, transform, format_for_filename(current.file_name))
