from __future__ import annotations
"""Exceptions raised by the bucket helpers."""


class DeleteError(RuntimeError):
    """Raised when the store refuses to delete a single key."""

    def __init__(self, key: str, error: BaseException):
        super().__init__(f"Failed to remove {key}: {error}")
        self.key = key
        self.error = error


class BulkDeleteError(RuntimeError):
    """Raised once every delete of a bulk operation settled and some failed.

    The message is the one of the first failure in input order; ``errors``
    holds every failure and ``deleted`` the keys that were removed anyway.
    """

    def __init__(self, errors: list[DeleteError], deleted: list[str]):
        message = str(errors[0])
        if len(errors) > 1:
            message += f" (and {len(errors) - 1} more failure(s))"
        super().__init__(message)
        self.errors = errors
        self.deleted = deleted

    @property
    def failed_keys(self) -> list[str]:
        return [error.key for error in self.errors]


class ScanDirectoryNotFoundError(FileNotFoundError):
    """Raised by a directory-backed store when the bucket directory is missing."""


class InvalidBucketNameError(ValueError):
    """Raised when a bucket name cannot be mapped onto the local store."""
