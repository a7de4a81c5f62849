from __future__ import annotations

from fastapi import Depends

from src.application.lifecycle_controller import EditionLifecycleController
from src.domain.services.transform_adapter import TransformAdapter
from src.infrastructure.database.repositories.edition_repository import EditionRepository
from src.infrastructure.database.supabase_client import get_supabase_client
from src.infrastructure.storage.supabase_storage import SupabaseStorage


def get_storage() -> SupabaseStorage:
    client = get_supabase_client()
    return SupabaseStorage(client)


def get_edition_repo(storage: SupabaseStorage = Depends(get_storage)) -> EditionRepository:
    return EditionRepository(get_supabase_client(), storage=storage)


def get_transform_adapter() -> TransformAdapter:
    return TransformAdapter()


def get_lifecycle_controller(
    storage: SupabaseStorage = Depends(get_storage),
    edition_repo: EditionRepository = Depends(get_edition_repo),
    transforms: TransformAdapter = Depends(get_transform_adapter),
) -> EditionLifecycleController:
    return EditionLifecycleController(
        storage=storage, edition_repo=edition_repo, transforms=transforms
    )
