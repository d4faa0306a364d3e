"""Folder/file tree behaviour: naming, moves, cycles, listings and cascading delete."""
import random

import pytest
from sqlalchemy import func, select

from drive.models import FileRecord, Folder
from drive.services.errors import (
    CascadeDeleteError,
    CycleDetectedError,
    InvalidNameError,
    InvalidOperationError,
    InvalidPathError,
    NotFoundError,
)


async def build_random_tree(service, user_id, size, seed):
    """Create `size` folders, each under a randomly chosen existing folder."""
    rng = random.Random(seed)
    root = await service.tree.get_root(user_id)
    folders = [root]
    for i in range(size):
        parent = rng.choice(folders)
        folders.append(await service.create_folder(user_id, f"f{i}", parent.id))
    return folders


# ── Root folder ──────────────────────────────────────────────────


async def test_registration_creates_exactly_one_root(db, user):
    count = await db.scalar(
        select(func.count()).select_from(Folder).where(
            Folder.user_id == user.id, Folder.parent_id.is_(None)
        )
    )
    assert count == 1
    root = (await db.execute(select(Folder).where(Folder.user_id == user.id))).scalar_one()
    assert root.name == "/"


async def test_root_cannot_be_deleted(service, user):
    root = await service.tree.get_root(user.id)
    with pytest.raises(InvalidOperationError):
        await service.delete_folder(user.id, root.id)


async def test_root_cannot_be_renamed_or_moved(service, user):
    root = await service.tree.get_root(user.id)
    child = await service.create_folder(user.id, "docs")
    with pytest.raises(NotFoundError):
        await service.update_folder(user.id, root.id, "renamed")
    with pytest.raises(NotFoundError):
        await service.update_folder(user.id, root.id, "root", child.id)


# ── Names ────────────────────────────────────────────────────────


@pytest.mark.parametrize("name", ["", "   ", "/", "a/b"])
async def test_create_folder_rejects_invalid_names(service, user, name):
    with pytest.raises(InvalidNameError):
        await service.create_folder(user.id, name)


async def test_create_folder_defaults_to_root(service, user):
    root = await service.tree.get_root(user.id)
    folder = await service.create_folder(user.id, "photos")
    assert folder.parent_id == root.id
    assert folder.user_id == user.id


async def test_create_folder_under_foreign_parent_is_not_found(service, make_user):
    alice = await make_user()
    bob = await make_user()
    alice_folder = await service.create_folder(alice.id, "private")
    with pytest.raises(NotFoundError):
        await service.create_folder(bob.id, "sneaky", alice_folder.id)


# ── Moves and cycles ─────────────────────────────────────────────


async def test_rename_keeps_parent(service, user):
    folder = await service.create_folder(user.id, "old")
    updated = await service.update_folder(user.id, folder.id, "new")
    assert updated.name == "new"
    assert updated.parent_id == folder.parent_id


async def test_move_to_self_is_invalid(service, user):
    folder = await service.create_folder(user.id, "a")
    with pytest.raises(InvalidOperationError):
        await service.update_folder(user.id, folder.id, "a", folder.id)


async def test_move_under_own_child_is_a_cycle(service, user):
    a = await service.create_folder(user.id, "a")
    b = await service.create_folder(user.id, "b", a.id)
    c = await service.create_folder(user.id, "c", b.id)
    with pytest.raises(CycleDetectedError):
        await service.update_folder(user.id, a.id, "a", c.id)
    refreshed = await service.get_folder(user.id, a.id)
    assert refreshed.parent_id != c.id


async def test_move_to_sibling_succeeds(service, user):
    a = await service.create_folder(user.id, "a")
    b = await service.create_folder(user.id, "b")
    moved = await service.update_folder(user.id, a.id, "a", b.id)
    assert moved.parent_id == b.id


async def test_move_to_foreign_parent_is_not_found(service, make_user):
    alice = await make_user()
    bob = await make_user()
    mine = await service.create_folder(alice.id, "mine")
    theirs = await service.create_folder(bob.id, "theirs")
    with pytest.raises(NotFoundError):
        await service.update_folder(alice.id, mine.id, "mine", theirs.id)


@pytest.mark.parametrize("seed", [1, 7, 42, 1234])
async def test_reparent_into_any_descendant_always_fails(service, user, seed):
    folders = await build_random_tree(service, user.id, 15, seed)
    for folder in folders[1:]:
        descendants = await service.tree.descendant_ids(user.id, folder.id)
        for descendant_id in descendants:
            with pytest.raises(CycleDetectedError):
                await service.update_folder(user.id, folder.id, folder.name, descendant_id)


async def test_deep_chain_cycle_detection(service, user):
    parent_id = None
    chain = []
    for i in range(60):
        folder = await service.create_folder(user.id, f"level{i}", parent_id)
        chain.append(folder)
        parent_id = folder.id
    with pytest.raises(CycleDetectedError):
        await service.update_folder(user.id, chain[0].id, "level0", chain[-1].id)


# ── Ancestry ─────────────────────────────────────────────────────


async def test_ancestry_of_root_or_none_is_empty(service, user):
    root = await service.tree.get_root(user.id)
    assert await service.parent_tree(user.id, root.id) == []
    assert await service.parent_tree(user.id, None) == []


async def test_ancestry_length_matches_depth(service, user):
    root = await service.tree.get_root(user.id)
    a = await service.create_folder(user.id, "a")
    b = await service.create_folder(user.id, "b", a.id)
    c = await service.create_folder(user.id, "c", b.id)
    path = await service.parent_tree(user.id, c.id)
    assert [f.id for f in path] == [root.id, a.id, b.id]
    assert path[-1].id == c.parent_id


# ── Listings ─────────────────────────────────────────────────────


async def test_list_children_is_direct_only(service, user):
    a = await service.create_folder(user.id, "a")
    await service.create_folder(user.id, "inner", a.id)
    b = await service.create_folder(user.id, "b")
    children = await service.list_children(user.id)
    assert {f.id for f in children} == {a.id, b.id}


async def test_list_folders_paginates(service, user):
    for i in range(5):
        await service.create_folder(user.id, f"f{i}")
    page = await service.list_folders(user.id, None, page=2, limit=2)
    assert page.total_elements == 5
    assert page.total_page == 3
    assert [f.name for f in page.contents] == ["f2", "f1"]


async def test_list_contents_mixes_and_orders_newest_first(service, user):
    first = await service.create_folder(user.id, "first")
    await service.create_file(user.id, "a.txt", "k/a.txt", 10)
    await service.create_folder(user.id, "second")
    await service.create_file(user.id, "b.txt", "k/b.txt", 10)
    await service.create_file(user.id, "nested.txt", "k/n.txt", 10, folder_id=first.id)

    page = await service.list_contents(user.id, None, page=1, limit=10)
    assert [item.name for item in page.contents] == ["b.txt", "second", "a.txt", "first"]
    assert page.total_elements == 4

    second_page = await service.list_contents(user.id, None, page=2, limit=3)
    assert [item.name for item in second_page.contents] == ["first"]
    assert second_page.total_page == 2


async def test_list_destinations_for_files_includes_every_folder(service, user):
    a = await service.create_folder(user.id, "b-folder")
    await service.create_folder(user.id, "a-folder", a.id)
    destinations = await service.move_destinations(user.id, "file")
    assert [path for _, path in destinations] == ["/", "/b-folder", "/b-folder/a-folder"]


@pytest.mark.parametrize("seed", [3, 11, 99])
async def test_list_destinations_never_offers_source_subtree(service, user, seed):
    folders = await build_random_tree(service, user.id, 12, seed)
    for folder in folders[1:]:
        subtree = await service.tree.descendant_ids(user.id, folder.id) | {folder.id}
        destinations = await service.move_destinations(user.id, "folder", folder.id)
        offered = {f.id for f, _ in destinations}
        assert offered.isdisjoint(subtree)
        assert len(offered) == len(folders) - len(subtree)
        paths = [p for _, p in destinations]
        assert paths == sorted(paths)


async def test_list_destinations_rejects_unknown_type(service, user):
    with pytest.raises(InvalidOperationError):
        await service.move_destinations(user.id, "symlink")


# ── Files ────────────────────────────────────────────────────────


async def test_create_file_defaults_to_root(service, user):
    root = await service.tree.get_root(user.id)
    file = await service.create_file(user.id, "a.txt", "obj/a", 5, mime_type="text/plain")
    assert file.folder_id == root.id
    assert file.size == 5


async def test_create_file_by_path(service, user):
    docs = await service.create_folder(user.id, "docs")
    work = await service.create_folder(user.id, "work", docs.id)
    file = await service.create_file(user.id, "cv.pdf", "obj/cv", 5, path="/docs/work")
    assert file.folder_id == work.id


async def test_create_file_with_folder_id_and_path_is_rejected(service, user):
    docs = await service.create_folder(user.id, "docs")
    with pytest.raises(InvalidOperationError):
        await service.create_file(user.id, "x", "obj/x", 1, folder_id=docs.id, path="/docs")
    assert await service.quota.current_usage(user.id) == 0


@pytest.mark.parametrize("path", ["docs", "/docs/../etc", "/docs//work"])
async def test_create_file_rejects_bad_paths(service, user, path):
    with pytest.raises(InvalidPathError):
        await service.create_file(user.id, "x", "obj/x", 1, path=path)


async def test_move_file_to_foreign_folder_is_not_found(service, make_user):
    alice = await make_user()
    bob = await make_user()
    file = await service.create_file(alice.id, "a.txt", "obj/a", 1)
    foreign = await service.create_folder(bob.id, "theirs")
    with pytest.raises(NotFoundError):
        await service.update_file(alice.id, file.id, folder_id=foreign.id)


async def test_rename_and_move_file(service, user):
    target = await service.create_folder(user.id, "target")
    file = await service.create_file(user.id, "a.txt", "obj/a", 1)
    updated = await service.update_file(user.id, file.id, name="b.txt", folder_id=target.id)
    assert (updated.name, updated.folder_id, updated.object_key) == ("b.txt", target.id, "obj/a")


async def test_search_is_case_insensitive_and_newest_update_first(service, user):
    older = await service.create_file(user.id, "Report-2023.pdf", "obj/1", 1)
    await service.create_file(user.id, "holiday.jpg", "obj/2", 1)
    await service.create_file(user.id, "monthly REPORT.xlsx", "obj/3", 1)
    await service.update_file(user.id, older.id, name="report-2023-final.pdf")

    page = await service.search_files(user.id, "report")
    assert [f.name for f in page.contents] == ["report-2023-final.pdf", "monthly REPORT.xlsx"]
    assert page.total_elements == 2


async def test_search_treats_wildcards_literally(service, user):
    await service.create_file(user.id, "100%.txt", "obj/1", 1)
    await service.create_file(user.id, "1000.txt", "obj/2", 1)
    page = await service.search_files(user.id, "0%")
    assert [f.name for f in page.contents] == ["100%.txt"]


async def test_delete_file_removes_object_then_row(service, object_store, user):
    file = await service.create_file(user.id, "a.txt", "obj/a", 1)
    await service.delete_file(user.id, file.id)
    assert object_store.deleted == [(user.bucket_name, "obj/a")]
    with pytest.raises(NotFoundError):
        await service.get_file(user.id, file.id)


# ── Cascading delete ─────────────────────────────────────────────


async def test_delete_folder_cascades(db, service, object_store, user):
    top = await service.create_folder(user.id, "top")
    sub = await service.create_folder(user.id, "sub", top.id)
    await service.create_file(user.id, "1", "obj/1", 1, folder_id=top.id)
    await service.create_file(user.id, "2", "obj/2", 1, folder_id=top.id)
    await service.create_file(user.id, "3", "obj/3", 1, folder_id=sub.id)

    summary = await service.delete_folder(user.id, top.id)

    assert sorted(summary.deleted_folders) == sorted([top.id, sub.id])
    assert len(summary.deleted_files) == 3
    assert sorted(k for _, k in object_store.deleted) == ["obj/1", "obj/2", "obj/3"]
    remaining_files = await db.scalar(select(func.count()).select_from(FileRecord))
    remaining_folders = await db.scalar(select(func.count()).select_from(Folder))
    assert remaining_files == 0
    assert remaining_folders == 1


async def test_delete_folder_partial_failure_reports_leftovers(db, service, object_store, user):
    top = await service.create_folder(user.id, "top")
    keep = await service.create_folder(user.id, "keep", top.id)
    gone = await service.create_folder(user.id, "gone", top.id)
    ok_file = await service.create_file(user.id, "ok", "obj/ok", 1, folder_id=gone.id)
    bad_file = await service.create_file(user.id, "bad", "obj/bad", 1, folder_id=keep.id)
    object_store.fail_delete_keys.add("obj/bad")

    with pytest.raises(CascadeDeleteError) as exc_info:
        await service.delete_folder(user.id, top.id)

    err = exc_info.value
    assert err.deleted_files == [ok_file.id]
    assert err.deleted_folders == [gone.id]
    assert err.to_dict()["deletedFiles"] == [ok_file.id]
    assert err.to_dict()["folderId"] == top.id
    assert {(f["type"], f["id"]) for f in err.failed} == {
        ("file", bad_file.id), ("folder", keep.id), ("folder", top.id)
    }
    assert await service.get_file(user.id, bad_file.id)
    assert await service.get_folder(user.id, keep.id)
    with pytest.raises(NotFoundError):
        await service.get_folder(user.id, gone.id)


async def test_delete_folder_of_other_user_is_not_found(service, make_user):
    alice = await make_user()
    bob = await make_user()
    folder = await service.create_folder(alice.id, "mine")
    with pytest.raises(NotFoundError):
        await service.delete_folder(bob.id, folder.id)
