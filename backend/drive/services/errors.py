"""Domain errors raised by the storage engine.

Each error carries the HTTP status the web layer renders it with, so routes
never translate domain outcomes by hand.
"""
from typing import Optional


class DriveError(Exception):
    """Base class for all engine errors."""
    status_code = 500

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"detail": self.message, **self.extra}


class NotFoundError(DriveError):
    """Folder, file, user or upload session absent, or not owned by the caller."""
    status_code = 404


class InvalidNameError(DriveError):
    status_code = 400


class InvalidPathError(DriveError):
    status_code = 400


class InvalidOperationError(DriveError):
    """Root mutation, self-parenting and other structurally invalid requests."""
    status_code = 400


class CycleDetectedError(DriveError):
    status_code = 409


class QuotaExceededError(DriveError):
    status_code = 413

    def __init__(self, usage: int, requested: int, quota: int):
        super().__init__(
            f"Storage quota exceeded: {usage} used + {requested} requested > {quota}",
            usage=usage, requested=requested, quota=quota,
        )


class AlreadyExistsError(DriveError):
    status_code = 409


class StorageIOError(DriveError):
    """Object store failure; not retried transparently."""
    status_code = 502


class UploadSessionError(StorageIOError):
    """Multipart upload failure reported by the object store."""
    pass


class CascadeDeleteError(StorageIOError):
    """A recursive folder delete finished with some items left behind.

    Nothing is rolled back: everything listed in deleted_* is gone, everything
    in failed still exists and can be deleted again by the caller. The
    response body uses the same camelCase keys as every other payload.
    """

    def __init__(
        self,
        folder_id: int,
        deleted_files: list[int],
        deleted_folders: list[int],
        failed: list[dict],
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"Folder {folder_id} was only partially deleted",
            folderId=folder_id,
            deletedFiles=deleted_files,
            deletedFolders=deleted_folders,
            failed=failed,
        )
        self.folder_id = folder_id
        self.deleted_files = deleted_files
        self.deleted_folders = deleted_folders
        self.failed = failed
