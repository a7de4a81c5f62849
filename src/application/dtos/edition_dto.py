from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.domain.entities.edition import EditionEntity


class EditRecordItem(BaseModel):
    """One entry of an edition's cumulative edit history."""
    type: str = Field(..., description="Transform kind", example="crop")
    timestamp: datetime = Field(..., description="When the transform was applied")
    params: dict = Field(default_factory=dict, description="Transform parameters", example={"degrees": 90})


class EditionMetadata(BaseModel):
    """A recorded edition of an asset."""
    asset_id: str = Field(..., description="Identifier of the asset", example="photo_123")
    version_number: int = Field(..., description="Edition number, 1 is the original", example=2, ge=1)
    file_path: str = Field(..., description="Storage directory of the rendered file", example="albums/2024")
    file_name: str = Field(..., description="Rendered file name", example="beach_v2.jpg")
    location: str = Field(..., description="Full storage location of the file", example="albums/2024/beach_v2.jpg")
    url: Optional[str] = Field(None, description="Public URL of the rendered file")
    byte_size: Optional[int] = Field(None, description="Size of the rendered file in bytes", example=183422)
    width: Optional[int] = Field(None, description="Width in pixels", example=800)
    height: Optional[int] = Field(None, description="Height in pixels", example=600)
    mime_type: Optional[str] = Field(None, description="MIME type of the file", example="image/jpeg")
    is_original: bool = Field(..., description="Whether this is the ingested original")
    is_current: bool = Field(..., description="Whether this is the edition currently shown")
    created_at: datetime = Field(..., description="When the edition was recorded")
    edits_applied: list[EditRecordItem] = Field(
        default_factory=list, description="Transforms applied to the original, in order"
    )

    @classmethod
    def from_entity(cls, entity: EditionEntity, url: str | None = None) -> "EditionMetadata":
        return cls(
            asset_id=entity.asset_id,
            version_number=entity.version_number,
            file_path=entity.file_path,
            file_name=entity.file_name,
            location=entity.location,
            url=url,
            byte_size=entity.byte_size,
            width=entity.width,
            height=entity.height,
            mime_type=entity.mime_type,
            is_original=entity.is_original,
            is_current=entity.is_current,
            created_at=entity.created_at,
            edits_applied=[EditRecordItem(**record.to_dict()) for record in entity.edits_applied],
        )


# Requests
class RegisterOriginalRequest(BaseModel):
    """Request model for registering an ingested file as version 1."""
    file_path: str = Field("", description="Storage directory of the ingested file", example="albums/2024")
    file_name: str = Field(..., description="Name of the ingested file", example="beach.jpg", min_length=1)


class CropRequest(BaseModel):
    """Request model for cropping the current edition."""
    x: int = Field(..., description="Left edge of the crop box", example=10, ge=0)
    y: int = Field(..., description="Top edge of the crop box", example=20, ge=0)
    width: int = Field(..., description="Width of the crop box", example=400, gt=0)
    height: int = Field(..., description="Height of the crop box", example=300, gt=0)


class RotateRequest(BaseModel):
    """Request model for rotating the current edition clockwise."""
    degrees: int = Field(..., description="Clockwise rotation, one of 90, 180, 270", example=90)


class ResizeRequest(BaseModel):
    """Request model for resizing the current edition."""
    width: int = Field(..., description="Target box width", example=800, gt=0)
    height: int = Field(..., description="Target box height", example=600, gt=0)
    fit: str = Field(
        "inside",
        description="How the image fits the box",
        example="inside",
        pattern="^(cover|contain|fill|inside)$",
    )


class FlipRequest(BaseModel):
    """Request model for mirroring the current edition."""
    direction: str = Field(
        ..., description="Mirror axis", example="horizontal", pattern="^(horizontal|vertical)$"
    )


class PreviewRequest(BaseModel):
    """Request model for rendering a transform without saving it."""
    params: dict[str, Any] = Field(
        default_factory=dict, description="Transform parameters", example={"degrees": 180}
    )


class RestoreRequest(BaseModel):
    """Request model for making an earlier edition current."""
    version_number: int = Field(..., description="Edition to make current", example=1, ge=1)


# Responses
class EditionResponse(BaseModel):
    """Response model for operations that produce or select an edition."""
    message: str = Field(..., description="Human readable outcome", example="Image cropped successfully")
    version: EditionMetadata = Field(..., description="The resulting current edition")


class ListEditionsResponse(BaseModel):
    """Response model for listing an asset's editions."""
    asset_id: str = Field(..., description="Identifier of the asset")
    versions: list[EditionMetadata] = Field(..., description="Editions ordered by version number")
    total_versions: int = Field(..., description="Number of editions", example=3, ge=0)


class CurrentEditionResponse(BaseModel):
    """Response model for the asset's current edition."""
    asset_id: str = Field(..., description="Identifier of the asset")
    version: Optional[EditionMetadata] = Field(None, description="Current edition, null if none")


class ImageMetadataResponse(BaseModel):
    """Metadata read from the current edition's rendered file."""
    asset_id: str = Field(..., description="Identifier of the asset")
    version_number: int = Field(..., description="Current edition number", example=3)
    location: str = Field(..., description="Storage location of the current file")
    byte_size: int = Field(..., description="File size in bytes", example=183422)
    width: Optional[int] = Field(None, description="Width in pixels", example=800)
    height: Optional[int] = Field(None, description="Height in pixels", example=600)
    format: Optional[str] = Field(None, description="Image format as decoded", example="JPEG")
    mime_type: Optional[str] = Field(None, description="MIME type", example="image/jpeg")
    mode: Optional[str] = Field(None, description="Pillow colour mode", example="RGB")
    edit_count: int = Field(..., description="Number of transforms applied to the original", example=2)


class DeleteEditionResponse(BaseModel):
    """Response model for edition deletion."""
    ok: bool = Field(True, description="Indicates whether the deletion was successful")
    message: str = Field(..., description="Human readable outcome")
