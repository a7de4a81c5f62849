from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime

from supabase import Client

from src.domain.entities.edition import EditionEntity, EditRecord
from src.domain.errors import StorageFailedError
from src.infrastructure.database.postgres_client import get_postgres_client
from src.infrastructure.storage.supabase_storage import SupabaseStorage

logger = logging.getLogger(__name__)

# module-level in-memory store for disabled mode: asset_id -> version_number -> edition
_MEM_EDITIONS: dict[str, dict[int, EditionEntity]] = {}
_MEM_LOCK = threading.Lock()


def reset_memory_store() -> None:
    with _MEM_LOCK:
        _MEM_EDITIONS.clear()


class EditionRepository:
    """Version ledger: one row per edition, keyed by (asset_id, version_number)."""

    def __init__(self, client: Client | None, storage: SupabaseStorage | None = None) -> None:
        self.client = client
        self.storage = storage
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    @property
    def _in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> EditionEntity:
        """Convert database row to EditionEntity."""
        # PostgreSQL returns datetime objects, Supabase returns ISO strings
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        # Handle JSONB edits from PostgreSQL
        edits = row.get("edits_applied") or []
        if isinstance(edits, str):
            edits = json.loads(edits)

        return EditionEntity(
            asset_id=row["asset_id"],
            version_number=row["version_number"],
            file_path=row["file_path"],
            file_name=row["file_name"],
            created_at=created_at,
            byte_size=row.get("byte_size"),
            width=row.get("width"),
            height=row.get("height"),
            mime_type=row.get("mime_type"),
            is_original=bool(row.get("is_original", False)),
            is_current=bool(row.get("is_current", False)),
            edits_applied=tuple(EditRecord.from_dict(e) for e in edits),
        )

    @staticmethod
    def _entity_to_row(edition: EditionEntity) -> dict:
        return {
            "asset_id": edition.asset_id,
            "version_number": edition.version_number,
            "file_path": edition.file_path,
            "file_name": edition.file_name,
            "byte_size": edition.byte_size,
            "width": edition.width,
            "height": edition.height,
            "mime_type": edition.mime_type,
            "is_original": edition.is_original,
            "is_current": edition.is_current,
            "edits_applied": [e.to_dict() for e in edition.edits_applied],
            "created_at": edition.created_at.isoformat(),
        }

    def list_editions(self, asset_id: str) -> list[EditionEntity]:
        """All editions of an asset, ascending by version number. Empty for unknown assets."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "SELECT * FROM editions WHERE asset_id = %s ORDER BY version_number"
            try:
                rows = self.pg_client.execute_many(query, (asset_id,))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL list editions failed: {exc}") from exc
            return [self._row_to_entity(row) for row in rows]

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                versions = _MEM_EDITIONS.get(asset_id, {})
                return [versions[v] for v in sorted(versions)]

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("editions")
                .select("*")
                .eq("asset_id", asset_id)
                .order("version_number")
                .execute()
            )
            return [self._row_to_entity(row) for row in res.data or []]
        except Exception as exc:
            raise StorageFailedError(f"DB list editions failed: {exc}") from exc

    def get_current(self, asset_id: str) -> EditionEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "SELECT * FROM editions WHERE asset_id = %s AND is_current LIMIT 1"
            try:
                row = self.pg_client.execute_one(query, (asset_id,))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL get current edition failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                for edition in _MEM_EDITIONS.get(asset_id, {}).values():
                    if edition.is_current:
                        return edition
                return None

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("editions")
                .select("*")
                .eq("asset_id", asset_id)
                .eq("is_current", True)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:
            raise StorageFailedError(f"DB get current edition failed: {exc}") from exc

    def get_edition(self, asset_id: str, version_number: int) -> EditionEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "SELECT * FROM editions WHERE asset_id = %s AND version_number = %s"
            try:
                row = self.pg_client.execute_one(query, (asset_id, version_number))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL get edition failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                return _MEM_EDITIONS.get(asset_id, {}).get(version_number)

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("editions")
                .select("*")
                .eq("asset_id", asset_id)
                .eq("version_number", version_number)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except Exception as exc:
            raise StorageFailedError(f"DB get edition failed: {exc}") from exc

    def get_original(self, asset_id: str) -> EditionEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "SELECT * FROM editions WHERE asset_id = %s AND is_original LIMIT 1"
            try:
                row = self.pg_client.execute_one(query, (asset_id,))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL get original failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory and Supabase modes share the listing path
        return next((e for e in self.list_editions(asset_id) if e.is_original), None)

    def next_version_number(self, asset_id: str) -> int:
        """One greater than the highest version number of the asset, or 1."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = (
                "SELECT COALESCE(MAX(version_number), 0) + 1 AS next_version "
                "FROM editions WHERE asset_id = %s"
            )
            try:
                row = self.pg_client.execute_one(query, (asset_id,))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL next version failed: {exc}") from exc
            return int(row["next_version"]) if row else 1

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                return max(_MEM_EDITIONS.get(asset_id, {}), default=0) + 1

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("editions")
                .select("version_number")
                .eq("asset_id", asset_id)
                .order("version_number", desc=True)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            return int(rows[0]["version_number"]) + 1 if rows else 1
        except Exception as exc:
            raise StorageFailedError(f"DB next version failed: {exc}") from exc

    def insert_edition(self, edition: EditionEntity) -> EditionEntity:
        """Append a row. The caller guarantees the version number is fresh."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = """
                INSERT INTO editions (
                    asset_id, version_number, file_path, file_name, byte_size,
                    width, height, mime_type, is_original, is_current,
                    edits_applied, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
            """
            try:
                row = self.pg_client.execute_insert(
                    query,
                    (
                        edition.asset_id, edition.version_number, edition.file_path,
                        edition.file_name, edition.byte_size, edition.width, edition.height,
                        edition.mime_type, edition.is_original, edition.is_current,
                        json.dumps([e.to_dict() for e in edition.edits_applied]),
                        edition.created_at,
                    ),
                )
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL insert edition failed: {exc}") from exc
            return self._row_to_entity(row)

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                versions = _MEM_EDITIONS.setdefault(edition.asset_id, {})
                if edition.version_number in versions:
                    raise StorageFailedError(
                        f"Edition {edition.asset_id} v{edition.version_number} already exists"
                    )
                versions[edition.version_number] = edition
            return edition

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("editions").insert(self._entity_to_row(edition)).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:
            raise StorageFailedError(f"DB insert edition failed: {exc}") from exc

    def set_current(self, asset_id: str, version_number: int) -> bool:
        """Move the current flag to one edition. Returns False if the target does not exist.

        Readers of `get_current` never observe zero or two current rows: PostgreSQL
        clears and sets inside one transaction, memory mode swaps under the store
        lock. The Supabase REST API has no multi-statement transaction, so there
        the controller's per-asset lock is what keeps readers out.
        """
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                with self.pg_client.transaction(dict_cursor=False) as cursor:
                    # lock the asset's rows so concurrent flips from other processes queue up
                    cursor.execute(
                        "SELECT version_number FROM editions WHERE asset_id = %s FOR UPDATE",
                        (asset_id,),
                    )
                    if version_number not in {row[0] for row in cursor.fetchall()}:
                        return False
                    # clear first: the one-current partial index is checked row by row
                    cursor.execute(
                        "UPDATE editions SET is_current = FALSE "
                        "WHERE asset_id = %s AND is_current AND version_number <> %s",
                        (asset_id, version_number),
                    )
                    cursor.execute(
                        "UPDATE editions SET is_current = TRUE "
                        "WHERE asset_id = %s AND version_number = %s",
                        (asset_id, version_number),
                    )
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL set current failed: {exc}") from exc
            return True

        # In-memory mode
        if self._in_memory:
            with _MEM_LOCK:
                versions = _MEM_EDITIONS.get(asset_id, {})
                if version_number not in versions:
                    return False
                for number, edition in versions.items():
                    flag = number == version_number
                    if edition.is_current != flag:
                        versions[number] = edition.with_current(flag)
            return True

        # Supabase mode
        try:  # pragma: no cover - network
            table = self.client.table("editions")
            exists = (
                table.select("version_number")
                .eq("asset_id", asset_id)
                .eq("version_number", version_number)
                .execute()
            )
            if not exists.data:
                return False
            table.update({"is_current": False}).eq("asset_id", asset_id).neq(
                "version_number", version_number
            ).execute()
            table.update({"is_current": True}).eq("asset_id", asset_id).eq(
                "version_number", version_number
            ).execute()
            return True
        except Exception as exc:
            raise StorageFailedError(f"DB set current failed: {exc}") from exc

    def delete_edition(self, asset_id: str, version_number: int) -> bool:
        """Remove one row and its rendered file. Returns False if no such row existed."""
        edition = self.get_edition(asset_id, version_number)
        if edition is None:
            return False

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "DELETE FROM editions WHERE asset_id = %s AND version_number = %s"
            try:
                affected = self.pg_client.execute_update(query, (asset_id, version_number))
            except Exception as exc:
                raise StorageFailedError(f"PostgreSQL delete edition failed: {exc}") from exc
            deleted = affected > 0

        # In-memory mode
        elif self._in_memory:
            with _MEM_LOCK:
                deleted = _MEM_EDITIONS.get(asset_id, {}).pop(version_number, None) is not None

        # Supabase mode
        else:
            try:  # pragma: no cover - network
                self.client.table("editions").delete().eq("asset_id", asset_id).eq(
                    "version_number", version_number
                ).execute()
                deleted = True
            except Exception as exc:
                raise StorageFailedError(f"DB delete edition failed: {exc}") from exc

        if deleted and self.storage is not None:
            # the row is gone; a file left behind is an orphan for the periodic sweep
            try:
                self.storage.delete(edition.location)
            except StorageFailedError:
                logger.error(
                    "Orphaned file after deleting edition asset=%s version=%s location=%s",
                    asset_id,
                    version_number,
                    edition.location,
                    exc_info=True,
                )
        return deleted
