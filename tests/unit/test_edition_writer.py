"""
Tests for the edition writer's failure ordering.
"""
from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from src.application.use_cases.edition_writer import EditionWriter
from src.domain.entities.edition import EditionEntity, EditRecord
from src.domain.entities.transform import CropTransform, RotateTransform
from src.domain.errors import StorageFailedError, TransformFailedError
from src.domain.services.transform_adapter import TransformResult


@pytest.fixture
def mock_dependencies():
    storage = Mock()
    edition_repo = Mock()
    transforms = Mock()
    storage.read_bytes.return_value = b"source-bytes"
    storage.exists.return_value = False
    edition_repo.next_version_number.return_value = 3
    edition_repo.insert_edition.side_effect = lambda edition: edition
    edition_repo.set_current.return_value = True
    transforms.apply.return_value = TransformResult(
        data=b"rendered", width=6, height=8, content_type="image/png", size=8
    )
    return storage, edition_repo, transforms


def _current(**overrides):
    fields = dict(
        asset_id="asset-1",
        version_number=2,
        file_path="albums",
        file_name="beach_v2.png",
        created_at=datetime.now(UTC),
        width=8,
        height=6,
        is_original=False,
        is_current=True,
        edits_applied=(
            EditRecord(type="flip", timestamp=datetime.now(UTC), params={"direction": "vertical"}),
        ),
    )
    fields.update(overrides)
    return EditionEntity(**fields)


class TestEditionWriter:
    def test_success_writes_then_inserts_then_flips(self, mock_dependencies):
        storage, edition_repo, transforms = mock_dependencies
        calls = Mock()
        calls.attach_mock(storage.write_bytes, "write")
        calls.attach_mock(edition_repo.insert_edition, "insert")
        calls.attach_mock(edition_repo.set_current, "set_current")

        writer = EditionWriter(storage, edition_repo, transforms)
        edition = writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        assert [c[0] for c in calls.mock_calls] == ["write", "insert", "set_current"]
        storage.read_bytes.assert_called_once_with("albums/beach_v2.png")
        storage.write_bytes.assert_called_once_with("albums/beach_v3.png", b"rendered", "image/png")
        inserted = edition_repo.insert_edition.call_args[0][0]
        assert inserted.is_current is False
        edition_repo.set_current.assert_called_once_with("asset-1", 3)

        assert edition.version_number == 3
        assert edition.is_current is True
        assert edition.is_original is False
        assert (edition.width, edition.height) == (6, 8)
        assert [r.type for r in edition.edits_applied] == ["flip", "rotate"]
        assert edition.edits_applied[-1].params == {"degrees": 90}

    def test_original_source_keeps_full_stem(self, mock_dependencies):
        storage, edition_repo, transforms = mock_dependencies
        edition_repo.next_version_number.return_value = 2
        writer = EditionWriter(storage, edition_repo, transforms)
        current = _current(version_number=1, file_name="beach.png", is_original=True, edits_applied=())

        edition = writer.process_and_save_version(current, CropTransform(x=0, y=0, width=2, height=2))

        assert edition.file_name == "beach_v2.png"
        assert len(edition.edits_applied) == 1

    def test_transform_failure_writes_nothing(self, mock_dependencies):
        storage, edition_repo, transforms = mock_dependencies
        transforms.apply.side_effect = TransformFailedError("engine exploded")
        writer = EditionWriter(storage, edition_repo, transforms)

        with pytest.raises(TransformFailedError):
            writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        storage.write_bytes.assert_not_called()
        edition_repo.insert_edition.assert_not_called()
        edition_repo.set_current.assert_not_called()

    def test_storage_write_failure_leaves_ledger_untouched(self, mock_dependencies):
        storage, edition_repo, transforms = mock_dependencies
        storage.write_bytes.side_effect = StorageFailedError("bucket full")
        writer = EditionWriter(storage, edition_repo, transforms)

        with pytest.raises(StorageFailedError):
            writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        edition_repo.insert_edition.assert_not_called()
        edition_repo.set_current.assert_not_called()

    def test_ledger_insert_failure_logs_orphan(self, mock_dependencies, caplog):
        storage, edition_repo, transforms = mock_dependencies
        edition_repo.insert_edition.side_effect = StorageFailedError("db down")
        writer = EditionWriter(storage, edition_repo, transforms)

        with caplog.at_level("ERROR"):
            with pytest.raises(StorageFailedError):
                writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        assert "Orphaned file" in caplog.text
        assert "albums/beach_v3.png" in caplog.text
        storage.delete.assert_not_called()
        edition_repo.set_current.assert_not_called()

    def test_pointer_flip_failure_propagates(self, mock_dependencies, caplog):
        storage, edition_repo, transforms = mock_dependencies
        edition_repo.set_current.return_value = False
        writer = EditionWriter(storage, edition_repo, transforms)

        with caplog.at_level("ERROR"):
            with pytest.raises(StorageFailedError):
                writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        assert "could not be made current" in caplog.text

    def test_taken_name_skipped_instead_of_overwritten(self, mock_dependencies):
        storage, edition_repo, transforms = mock_dependencies
        taken = {"albums/beach_v3.png", "albums/beach_v3-1.png"}
        storage.exists.side_effect = lambda location: location in taken
        writer = EditionWriter(storage, edition_repo, transforms)

        edition = writer.process_and_save_version(_current(), RotateTransform(degrees=90))

        assert edition.version_number == 3
        assert edition.file_name == "beach_v3-2.png"
        storage.write_bytes.assert_called_once_with("albums/beach_v3-2.png", b"rendered", "image/png")
