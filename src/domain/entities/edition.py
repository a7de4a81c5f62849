from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class EditRecord:
    type: str  # crop | rotate | resize | flip
    timestamp: datetime
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "timestamp": self.timestamp.isoformat(), "params": self.params}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditRecord:
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(type=data["type"], timestamp=timestamp, params=dict(data.get("params") or {}))


@dataclass(frozen=True)
class EditionEntity:
    asset_id: str
    version_number: int  # 1 = original upload
    file_path: str  # directory the rendered bytes live in
    file_name: str
    created_at: datetime
    byte_size: int | None = None
    width: int | None = None  # None only when probing the ingested original failed
    height: int | None = None
    mime_type: str | None = None
    is_original: bool = False
    is_current: bool = False
    edits_applied: tuple[EditRecord, ...] = ()

    @property
    def location(self) -> str:
        return join_location(self.file_path, self.file_name)

    def with_current(self, is_current: bool) -> EditionEntity:
        return replace(self, is_current=is_current)


def join_location(file_path: str, file_name: str) -> str:
    """Storage key for a file: directory and name joined with a single slash."""
    directory = file_path.strip("/")
    return f"{directory}/{file_name}" if directory else file_name
