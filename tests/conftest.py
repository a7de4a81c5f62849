import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage")


def make_image_bytes(w=8, h=6, fmt="PNG", mode="RGB") -> bytes:
    """Encoded test image whose pixels encode their own coordinates."""
    ys, xs = np.mgrid[0:h, 0:w]
    if mode == "L":
        arr = ((xs * 7 + ys * 13) % 256).astype(np.uint8)
    else:
        arr = np.zeros((h, w, 3), dtype=np.uint8)
        arr[..., 0] = (xs * 255 // max(w - 1, 1)).astype(np.uint8)
        arr[..., 1] = (ys * 255 // max(h - 1, 1)).astype(np.uint8)
        arr[..., 2] = 64
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def image_bytes():
    return make_image_bytes


@pytest.fixture(autouse=True)
def isolated_backends(tmp_path, monkeypatch):
    """Fresh in-memory ledger and an empty local storage directory for every test."""
    from src.infrastructure.database.repositories.edition_repository import reset_memory_store

    monkeypatch.setenv("SUPABASE_DISABLED", "1")
    monkeypatch.delenv("USE_LOCAL_DB", raising=False)
    monkeypatch.setenv("SUPABASE_STORAGE_LOCAL_DIR", str(tmp_path / "storage"))
    reset_memory_store()
    yield tmp_path / "storage"
    reset_memory_store()


@pytest.fixture()
def storage(isolated_backends):
    from src.infrastructure.storage.supabase_storage import SupabaseStorage

    return SupabaseStorage(None)


@pytest.fixture()
def edition_repo(storage):
    from src.infrastructure.database.repositories.edition_repository import EditionRepository

    return EditionRepository(None, storage=storage)


@pytest.fixture()
def transforms():
    from src.domain.services.transform_adapter import TransformAdapter

    return TransformAdapter(timeout_seconds=10)


@pytest.fixture()
def controller(storage, edition_repo, transforms):
    from src.application.asset_locks import AssetLockRegistry
    from src.application.lifecycle_controller import EditionLifecycleController

    return EditionLifecycleController(
        storage=storage,
        edition_repo=edition_repo,
        transforms=transforms,
        locks=AssetLockRegistry(),
    )


@pytest.fixture()
def ingested(storage):
    """Put an ingested upload into storage; returns (file_path, file_name)."""

    def _ingest(file_name="photo.png", file_path="albums/2024", **image_kwargs):
        location = f"{file_path}/{file_name}" if file_path else file_name
        storage.write_bytes(location, make_image_bytes(**image_kwargs))
        return file_path, file_name

    return _ingest


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)
