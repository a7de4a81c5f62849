from __future__ import annotations

import os
from pathlib import Path

from supabase import Client

from src.domain.errors import InvalidParametersError, StorageFailedError


class SupabaseStorage:
    """Byte blob storage on Supabase Storage with a local directory fallback.

    Locations are ``directory/filename`` keys. Writes never replace an existing
    object: every edition is rendered to a fresh name.
    """

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.bucket = os.getenv("SUPABASE_STORAGE_BUCKET", "images")
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.local_dir = Path(os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage"))
        if self._is_local:
            self.local_dir.mkdir(parents=True, exist_ok=True)

    @property
    def _is_local(self) -> bool:
        return self.disabled or self.client is None

    def _local_path(self, location: str) -> Path:
        root = self.local_dir.resolve()
        full_path = (root / location.lstrip("/")).resolve()
        if not full_path.is_relative_to(root):
            raise InvalidParametersError(f"Location escapes the storage root: {location}")
        return full_path

    def write_bytes(
        self, location: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> int:
        """Store `data` at `location`. Returns the number of bytes written."""
        if self._is_local:
            full_path = self._local_path(location)
            try:
                full_path.parent.mkdir(parents=True, exist_ok=True)
                # "xb" fails instead of truncating an existing file
                with full_path.open("xb") as fh:
                    fh.write(data)
            except FileExistsError as exc:
                raise StorageFailedError(f"Refusing to overwrite existing file: {location}") from exc
            except OSError as exc:
                raise StorageFailedError(f"Storage write failed: {exc}") from exc
            return len(data)
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).upload(  # type: ignore[attr-defined]
                path=location.lstrip("/"),
                file=data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
            return len(data)
        except Exception as exc:  # pragma: no cover
            raise StorageFailedError(f"Storage upload failed: {exc}") from exc

    def read_bytes(self, location: str) -> bytes:
        if self._is_local:
            try:
                return self._local_path(location).read_bytes()
            except OSError as exc:
                raise StorageFailedError(f"Storage read failed: {exc}") from exc
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).download(location.lstrip("/"))  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover
            raise StorageFailedError(f"Storage download failed: {exc}") from exc

    def exists(self, location: str) -> bool:
        if self._is_local:
            return self._local_path(location).exists()
        directory, _, name = location.lstrip("/").rpartition("/")
        try:  # pragma: no cover - network
            entries = self.client.storage.from_(self.bucket).list(  # type: ignore[attr-defined]
                directory, {"search": name}
            )
            return any(entry.get("name") == name for entry in entries or [])
        except Exception as exc:  # pragma: no cover
            raise StorageFailedError(f"Storage list failed: {exc}") from exc

    def delete(self, location: str) -> None:
        if self._is_local:
            full_path = self._local_path(location)
            try:
                if full_path.exists():
                    full_path.unlink()
            except OSError as exc:
                raise StorageFailedError(f"Storage delete failed: {exc}") from exc
            return
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).remove([location.lstrip("/")])  # type: ignore[attr-defined]
        except Exception as exc:
            raise StorageFailedError(f"Storage delete failed: {exc}") from exc

    def get_public_url(self, location: str) -> str:
        if self._is_local:
            return f"/local-storage/{location.lstrip('/')}"
        try:  # pragma: no cover - network
            return self.client.storage.from_(self.bucket).get_public_url(location.lstrip("/"))  # type: ignore[attr-defined]
        except Exception:
            return ""
