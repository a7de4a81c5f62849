from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from src.application.dtos.common_dto import ErrorResponse
from src.application.dtos.edition_dto import (
    CropRequest,
    CurrentEditionResponse,
    DeleteEditionResponse,
    EditionMetadata,
    EditionResponse,
    FlipRequest,
    ImageMetadataResponse,
    ListEditionsResponse,
    PreviewRequest,
    RegisterOriginalRequest,
    ResizeRequest,
    RestoreRequest,
    RotateRequest,
)
from src.application.lifecycle_controller import EditionLifecycleController
from src.domain.entities.edition import EditionEntity
from src.domain.entities.transform import transform_from_params
from src.infrastructure.api.dependencies import get_lifecycle_controller, get_storage
from src.infrastructure.storage.supabase_storage import SupabaseStorage

# Handlers are plain `def` so FastAPI runs them in its threadpool; the
# controller blocks on per-asset locks and file I/O.
router = APIRouter(
    prefix="/photos",
    tags=["Photo Editions"],
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid transform parameters"},
        404: {"model": ErrorResponse, "description": "Not Found - Asset or edition does not exist"},
        409: {
            "model": ErrorResponse,
            "description": "Conflict - Operation not allowed in the asset's current state",
        },
        422: {"description": "Unprocessable - Request validation or transform failure"},
        500: {"model": ErrorResponse, "description": "Storage or ledger failure"},
    },
)


def _metadata(entity: EditionEntity, storage: SupabaseStorage) -> EditionMetadata:
    return EditionMetadata.from_entity(entity, url=storage.get_public_url(entity.location))


@router.post(
    "/{asset_id}/original",
    response_model=EditionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register Original",
    description="""
    Register an ingested file as version 1 of the asset.

    The original becomes the current edition, has an empty edit history and
    can never be deleted. An asset can only be registered once.
    """,
    responses={409: {"description": "The asset already has an original"}},
)
def register_original(
    asset_id: str,
    body: RegisterOriginalRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.create_original_version(asset_id, body.file_path, body.file_name)
    return EditionResponse(message="Original registered", version=_metadata(entity, storage))


@router.get(
    "/{asset_id}/versions",
    response_model=ListEditionsResponse,
    summary="List Editions",
    description="Every recorded edition of the asset, oldest first. Unknown assets return an empty list.",
)
def list_versions(
    asset_id: str,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    editions = controller.list_versions(asset_id)
    return ListEditionsResponse(
        asset_id=asset_id,
        versions=[_metadata(e, storage) for e in editions],
        total_versions=len(editions),
    )


@router.get(
    "/{asset_id}/current-version",
    response_model=CurrentEditionResponse,
    summary="Get Current Edition",
)
def get_current_version(
    asset_id: str,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.get_current_version(asset_id)
    return CurrentEditionResponse(
        asset_id=asset_id,
        version=_metadata(entity, storage) if entity is not None else None,
    )


@router.get(
    "/{asset_id}/metadata",
    response_model=ImageMetadataResponse,
    summary="Get Image Metadata",
    description="Dimensions, format and colour mode read from the current edition's file.",
)
def get_image_metadata(
    asset_id: str,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
):
    return ImageMetadataResponse(asset_id=asset_id, **controller.get_image_metadata(asset_id))


@router.post(
    "/{asset_id}/crop",
    response_model=EditionResponse,
    summary="Crop",
    description="Crop the current edition to a box. The box must lie inside the image.",
)
def crop(
    asset_id: str,
    body: CropRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.crop(asset_id, body.x, body.y, body.width, body.height)
    return EditionResponse(message="Image cropped successfully", version=_metadata(entity, storage))


@router.post(
    "/{asset_id}/rotate",
    response_model=EditionResponse,
    summary="Rotate",
    description="Rotate the current edition clockwise by 90, 180 or 270 degrees.",
)
def rotate(
    asset_id: str,
    body: RotateRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.rotate(asset_id, body.degrees)
    return EditionResponse(message="Image rotated successfully", version=_metadata(entity, storage))


@router.post(
    "/{asset_id}/resize",
    response_model=EditionResponse,
    summary="Resize",
    description="""
    Resize the current edition into a target box. Images are never enlarged.

    **Fit modes:**
    - `inside` - keep aspect ratio, fit within the box
    - `contain` - keep aspect ratio, pad to the box
    - `fill` - stretch to the box
    - `cover` - keep aspect ratio, fill the box and crop the overflow
    """,
)
def resize(
    asset_id: str,
    body: ResizeRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.resize(asset_id, body.width, body.height, body.fit)
    return EditionResponse(message="Image resized successfully", version=_metadata(entity, storage))


@router.post(
    "/{asset_id}/flip",
    response_model=EditionResponse,
    summary="Flip",
    description="Mirror the current edition horizontally or vertically.",
)
def flip(
    asset_id: str,
    body: FlipRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.flip(asset_id, body.direction)
    return EditionResponse(message="Image flipped successfully", version=_metadata(entity, storage))


@router.post(
    "/{asset_id}/preview/{kind}",
    summary="Preview Transform",
    description="""
    Render a transform over the current edition and return the image bytes
    WITHOUT creating a new edition.

    `kind` is one of `crop`, `rotate`, `resize`, `flip`; `params` takes the
    same fields as the matching edit endpoint.
    """,
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "image/jpeg": {}}}},
)
def preview(
    asset_id: str,
    kind: str,
    body: PreviewRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
):
    result = controller.preview_edit(asset_id, transform_from_params(kind, body.params))
    return Response(content=result.data, media_type=result.content_type)


@router.put(
    "/{asset_id}/restore",
    response_model=EditionResponse,
    summary="Restore Edition",
    description="""
    Make an earlier edition current again. Nothing is copied or deleted, so
    later editions stay available. Restoring the current edition is a no-op.
    """,
)
def restore_version(
    asset_id: str,
    body: RestoreRequest,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
    storage: SupabaseStorage = Depends(get_storage),
):
    entity = controller.restore_version(asset_id, body.version_number)
    return EditionResponse(
        message=f"Restored to version {entity.version_number}",
        version=_metadata(entity, storage),
    )


@router.delete(
    "/{asset_id}/versions/{version_number}",
    response_model=DeleteEditionResponse,
    summary="Delete Edition",
    description="Delete a superseded edition and its file. The original and the current edition cannot be deleted.",
)
def delete_edition(
    asset_id: str,
    version_number: int,
    controller: EditionLifecycleController = Depends(get_lifecycle_controller),
):
    controller.delete_edition(asset_id, version_number)
    return DeleteEditionResponse(ok=True, message=f"Version {version_number} deleted")
