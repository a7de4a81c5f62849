from __future__ import annotations


class EditionError(Exception):
    """Base class for every failure raised by the edition versioning core."""

    kind = "edition_error"


class InvalidParametersError(EditionError, ValueError):
    """Malformed or out-of-range request input. Always the caller's to fix."""

    kind = "invalid_parameters"


class NotFoundError(EditionError):
    kind = "not_found"


class ConflictError(EditionError):
    kind = "conflict"


class InvalidOperationError(EditionError):
    """Structurally disallowed action, e.g. deleting the original or current edition."""

    kind = "invalid_operation"


class TransformFailedError(EditionError):
    kind = "transform_failed"


class StorageFailedError(EditionError):
    kind = "storage_failed"
