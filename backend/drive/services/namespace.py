"""Namespace tree: a user's folders and files, rooted at a single root folder.

Invariants kept here:
- every user has exactly one folder with parent_id NULL (the root), which is
  never renamed, moved or deleted;
- a folder's parent always belongs to the same user, and re-parenting never
  creates a cycle;
- a file always sits in a folder of its owner (the root when unspecified).

Nothing here holds a lock across calls. "check cycle, then re-parent" and the
cascading delete run as separate statements on the request's session.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from drive.models import FileRecord, Folder
from drive.services.errors import (
    CascadeDeleteError,
    CycleDetectedError,
    DriveError,
    InvalidOperationError,
    NotFoundError,
)
from drive.services.object_store import ObjectStoreGateway
from drive.services.pagination import Page, normalize, paginate_in_memory
from drive.services.paths import ROOT_NAME, join_path, split_path, validate_name
from drive.services.persistence import FileQuery, FolderQuery, PersistenceGateway

logger = logging.getLogger(__name__)

ITEM_TYPES = ("file", "folder")


@dataclass
class DeleteSummary:
    deleted_files: list[int] = field(default_factory=list)
    deleted_folders: list[int] = field(default_factory=list)


def children_index(folders: Iterable[Folder]) -> dict[Optional[int], list[Folder]]:
    index: dict[Optional[int], list[Folder]] = {}
    for folder in folders:
        index.setdefault(folder.parent_id, []).append(folder)
    return index


def collect_descendants(index: dict[Optional[int], list[Folder]], folder_id: int) -> set[int]:
    """Ids of every folder below folder_id (not including it).

    Walks the whole subtree with an explicit stack so depth is unbounded.
    """
    found: set[int] = set()
    stack = [folder_id]
    while stack:
        current = stack.pop()
        for child in index.get(current, []):
            if child.id not in found and child.id != folder_id:
                found.add(child.id)
                stack.append(child.id)
    return found


def materialized_paths(folders: Sequence[Folder]) -> dict[int, str]:
    """Map folder id -> '/'-joined path of names from the root. The root is '/'."""
    by_id = {f.id: f for f in folders}
    paths: dict[int, str] = {}
    for folder in folders:
        names: list[str] = []
        seen: set[int] = set()
        current: Optional[Folder] = folder
        while current is not None and current.parent_id is not None and current.id not in seen:
            seen.add(current.id)
            names.append(current.name)
            current = by_id.get(current.parent_id)
        paths[folder.id] = join_path(list(reversed(names)))
    return paths


class NamespaceTree:
    def __init__(self, store: PersistenceGateway, object_store: ObjectStoreGateway):
        self.store = store
        self.object_store = object_store

    # ── Lookup ───────────────────────────────────────────────────

    async def get_root(self, user_id: int) -> Folder:
        root = await self.store.get_root_folder(user_id)
        if not root:
            raise NotFoundError("Root folder not found")
        return root

    async def get_folder(self, user_id: int, folder_id: int) -> Folder:
        folder = await self.store.get_folder(user_id, folder_id)
        if not folder:
            raise NotFoundError("Folder not found")
        return folder

    async def resolve_folder(self, user_id: int, folder_id: Optional[int] = None) -> Folder:
        """The folder with folder_id, or the user's root when omitted."""
        if folder_id is None:
            return await self.get_root(user_id)
        return await self.get_folder(user_id, folder_id)

    async def resolve_path(self, user_id: int, path: str) -> Folder:
        """Walk a '/a/b' style path down from the root, one name at a time."""
        names = split_path(path)
        current = await self.get_root(user_id)
        for name in names:
            matches = await self.store.find_folders(
                FolderQuery(user_id, parent_id=current.id, name_equals=name)
            )
            if not matches:
                raise NotFoundError(f"Folder not found: {path}")
            current = matches[-1]
        return current

    async def descendant_ids(self, user_id: int, folder_id: int) -> set[int]:
        folders = await self.store.all_folders(user_id)
        return collect_descendants(children_index(folders), folder_id)

    # ── Folders ──────────────────────────────────────────────────

    async def create_root(self, user_id: int) -> Folder:
        """Add the root folder for a new user. Caller commits."""
        root = Folder(name=ROOT_NAME, parent_id=None, user_id=user_id)
        self.store.add(root)
        await self.store.flush()
        await self.store.refresh(root)
        return root

    async def create_folder(self, user_id: int, name: str, parent_id: Optional[int] = None) -> Folder:
        validate_name(name)
        parent = await self.resolve_folder(user_id, parent_id)
        folder = Folder(name=name, parent_id=parent.id, user_id=user_id)
        self.store.add(folder)
        await self.store.commit()
        await self.store.refresh(folder)
        logger.info(f"Created folder {folder.id} '{name}' under {parent.id} for user {user_id}")
        return folder

    async def rename_or_move_folder(
        self,
        user_id: int,
        folder_id: int,
        new_name: str,
        new_parent_id: Optional[int] = None,
    ) -> Folder:
        """Rename a folder and optionally re-parent it.

        The cycle check enumerates the full subtree of folder_id; listing
        filters in list_destinations are never relied on.
        """
        folder = await self.get_folder(user_id, folder_id)
        if folder.is_root:
            raise NotFoundError("Root folder cannot be modified")
        validate_name(new_name)

        if new_parent_id is not None and new_parent_id != folder.parent_id:
            if new_parent_id == folder.id:
                raise InvalidOperationError("A folder cannot be its own parent")
            new_parent = await self.get_folder(user_id, new_parent_id)
            if new_parent.id in await self.descendant_ids(user_id, folder.id):
                raise CycleDetectedError(
                    f"Folder {new_parent.id} is inside folder {folder.id}; moving would create a cycle"
                )
            folder.parent_id = new_parent.id

        folder.name = new_name
        await self.store.commit()
        await self.store.refresh(folder)
        logger.info(f"Updated folder {folder.id} -> name='{new_name}' parent={folder.parent_id}")
        return folder

    async def delete_folder(self, user_id: int, folder_id: int, bucket: str) -> DeleteSummary:
        """Delete a folder with every file and folder below it.

        Order per folder: its files (object first, then the row), then its
        subfolders depth-first, then the folder itself. Each deletion is
        committed on its own; nothing is rolled back. A file whose object
        cannot be deleted keeps its row, which also keeps every folder above
        it; the leftovers are reported through CascadeDeleteError.
        """
        folder = await self.get_folder(user_id, folder_id)
        if folder.is_root:
            raise InvalidOperationError("Root folder cannot be deleted")

        index = children_index(await self.store.all_folders(user_id))
        summary = DeleteSummary()
        failed: list[dict] = []
        blocked: set[int] = set()

        stack: list[tuple[Folder, bool]] = [(folder, False)]
        while stack:
            current, expanded = stack.pop()
            if not expanded:
                if not await self._delete_folder_files(user_id, current, bucket, summary, failed):
                    blocked.add(current.id)
                stack.append((current, True))
                for child in reversed(index.get(current.id, [])):
                    stack.append((child, False))
                continue

            if current.id in blocked:
                if current.parent_id is not None:
                    blocked.add(current.parent_id)
                failed.append({"type": "folder", "id": current.id, "error": "Folder not empty"})
                continue
            await self.store.delete(current)
            await self.store.commit()
            summary.deleted_folders.append(current.id)

        logger.info(
            f"Deleted folder {folder_id}: {len(summary.deleted_files)} files, "
            f"{len(summary.deleted_folders)} folders, {len(failed)} failures"
        )
        if failed:
            raise CascadeDeleteError(
                folder_id,
                deleted_files=summary.deleted_files,
                deleted_folders=summary.deleted_folders,
                failed=failed,
            )
        return summary

    async def _delete_folder_files(
        self,
        user_id: int,
        folder: Folder,
        bucket: str,
        summary: DeleteSummary,
        failed: list[dict],
    ) -> bool:
        """Delete the files directly inside folder. Returns False if any remain."""
        clean = True
        for file in await self.store.find_files(FileQuery(user_id, folder_id=folder.id)):
            try:
                await self.object_store.delete_object(bucket, file.object_key)
            except NotFoundError:
                pass
            except DriveError as e:
                logger.warning(f"Could not delete object {file.object_key} of file {file.id}: {e}")
                failed.append({"type": "file", "id": file.id, "objectKey": file.object_key, "error": str(e)})
                clean = False
                continue
            await self.store.delete(file)
            await self.store.commit()
            summary.deleted_files.append(file.id)
        return clean

    async def resolve_ancestry_path(self, user_id: int, folder_id: Optional[int] = None) -> list[Folder]:
        """Ancestors of a folder, root first, excluding the folder itself.

        The root (or no folder at all) has no ancestors.
        """
        if folder_id is None:
            return []
        folder = await self.get_folder(user_id, folder_id)
        ancestors: list[Folder] = []
        seen = {folder.id}
        parent_id = folder.parent_id
        while parent_id is not None and parent_id not in seen:
            parent = await self.get_folder(user_id, parent_id)
            ancestors.append(parent)
            seen.add(parent.id)
            parent_id = parent.parent_id
        ancestors.reverse()
        return ancestors

    async def list_children(self, user_id: int, folder_id: Optional[int] = None) -> Sequence[Folder]:
        parent = await self.resolve_folder(user_id, folder_id)
        return await self.store.find_folders(FolderQuery(user_id, parent_id=parent.id))

    async def list_folders(
        self, user_id: int, parent_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page[Folder]:
        parent = await self.resolve_folder(user_id, parent_id)
        page, limit, offset = normalize(page, limit)
        rows, total = await self.store.find_folders_page(
            FolderQuery(user_id, parent_id=parent.id), offset, limit
        )
        return Page(contents=rows, current_page=page, per_page=limit, total_elements=total)

    async def list_destinations(
        self, user_id: int, item_type: str, source_folder_id: Optional[int] = None
    ) -> list[tuple[Folder, str]]:
        """Folders an item may be moved into, with their paths, sorted by path.

        For folder moves the source and its whole subtree are left out.
        """
        if item_type not in ITEM_TYPES:
            raise InvalidOperationError(f"Item type must be one of {', '.join(ITEM_TYPES)}")
        folders = await self.store.all_folders(user_id)
        excluded: set[int] = set()
        if item_type == "folder" and source_folder_id is not None:
            if not any(f.id == source_folder_id for f in folders):
                raise NotFoundError("Folder not found")
            excluded = collect_descendants(children_index(folders), source_folder_id)
            excluded.add(source_folder_id)

        paths = materialized_paths(folders)
        destinations = [(f, paths[f.id]) for f in folders if f.id not in excluded]
        destinations.sort(key=lambda pair: (pair[1], pair[0].id))
        return destinations

    # ── Files ────────────────────────────────────────────────────

    async def get_file(self, user_id: int, file_id: int) -> FileRecord:
        file = await self.store.get_file(user_id, file_id)
        if not file:
            raise NotFoundError("File not found")
        return file

    async def get_file_by_object_key(self, user_id: int, object_key: str) -> FileRecord:
        file = await self.store.find_file_by_object_key(user_id, object_key)
        if not file:
            raise NotFoundError("File not found")
        return file

    async def create_file(
        self,
        user_id: int,
        name: str,
        object_key: str,
        size: int,
        folder_id: Optional[int] = None,
        mime_type: Optional[str] = None,
        path: Optional[str] = None,
    ) -> FileRecord:
        """Record a file. Quota must already be authorized by the caller."""
        validate_name(name, kind="file")
        if not object_key:
            raise InvalidOperationError("Object key must not be empty")
        if size < 0:
            raise InvalidOperationError("Size must not be negative")
        if path is not None and folder_id is not None:
            raise InvalidOperationError("Give either a folder id or a path, not both")
        if path is not None:
            folder = await self.resolve_path(user_id, path)
        else:
            folder = await self.resolve_folder(user_id, folder_id)

        file = FileRecord(
            name=name,
            object_key=object_key,
            size=size,
            folder_id=folder.id,
            mime_type=mime_type,
            user_id=user_id,
        )
        self.store.add(file)
        await self.store.commit()
        await self.store.refresh(file)
        logger.info(f"Created file {file.id} '{name}' ({size} bytes) in folder {folder.id}")
        return file

    async def rename_or_move_file(
        self,
        user_id: int,
        file_id: int,
        new_name: Optional[str] = None,
        new_folder_id: Optional[int] = None,
    ) -> FileRecord:
        file = await self.get_file(user_id, file_id)
        if new_name is not None:
            validate_name(new_name, kind="file")
        folder = await self.get_folder(user_id, new_folder_id) if new_folder_id is not None else None

        if new_name is not None:
            file.name = new_name
        if folder is not None:
            file.folder_id = folder.id
        await self.store.commit()
        await self.store.refresh(file)
        return file

    async def delete_file(self, user_id: int, file_id: int, bucket: str) -> None:
        """Delete the stored object, then the row. Object store errors propagate."""
        file = await self.get_file(user_id, file_id)
        object_key = file.object_key
        await self.object_store.delete_object(bucket, object_key)
        await self.store.delete(file)
        await self.store.commit()
        logger.info(f"Deleted file {file_id} ({object_key})")

    async def list_files(
        self, user_id: int, folder_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page[FileRecord]:
        folder = await self.resolve_folder(user_id, folder_id)
        page, limit, offset = normalize(page, limit)
        rows, total = await self.store.find_files_page(
            FileQuery(user_id, folder_id=folder.id), offset, limit
        )
        return Page(contents=rows, current_page=page, per_page=limit, total_elements=total)

    async def list_contents(
        self, user_id: int, folder_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page[Union[Folder, FileRecord]]:
        """Direct subfolders and files of a folder, newest first, paginated.

        Both child sets are loaded in full, merged and sorted in memory before
        the page is cut, so the cost grows with the folder's fan-out rather
        than with the page size.
        """
        folder = await self.resolve_folder(user_id, folder_id)
        return await self._contents_page(user_id, folder, page, limit)

    async def list_tree(self, user_id: int, path: str = "/", page: int = 1, limit: int = 20) -> Page:
        """list_contents addressed by path instead of id."""
        folder = await self.resolve_path(user_id, path)
        return await self._contents_page(user_id, folder, page, limit)

    async def _contents_page(self, user_id: int, folder: Folder, page: int, limit: int) -> Page:
        folders = await self.store.find_folders(FolderQuery(user_id, parent_id=folder.id))
        files = await self.store.find_files(FileQuery(user_id, folder_id=folder.id))
        items: list[Union[Folder, FileRecord]] = [*folders, *files]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return paginate_in_memory(items, page, limit)

    async def search(self, user_id: int, query: str, page: int = 1, limit: int = 20) -> Page[FileRecord]:
        """Case-insensitive substring match on file name, most recently updated first."""
        page, limit, offset = normalize(page, limit)
        rows, total = await self.store.find_files_page(
            FileQuery(user_id, name_contains=query), offset, limit, order_by_updated=True
        )
        return Page(contents=rows, current_page=page, per_page=limit, total_elements=total)
