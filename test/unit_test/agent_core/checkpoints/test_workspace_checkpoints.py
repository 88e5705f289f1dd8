from __future__ import annotations

from pathlib import Path

import pytest

from gatekeeper_ai.agent_core.checkpoints import CheckpointManager, WorkspaceSnapshotter
from gatekeeper_ai.agent_core.repos import InMemoryCheckpointRepository


def _workspace(root: Path) -> None:
    (root / "src").mkdir()
    (root / "src" / "app.py").write_text("print('v1')\n")
    (root / "README.md").write_text("# demo\n")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "logo.bin").write_bytes(b"\xff\xfe\x00\x01")


def test_capture_skips_ignored_and_binary_files(tmp_path: Path) -> None:
    _workspace(tmp_path)

    state = WorkspaceSnapshotter(tmp_path).capture()

    assert state["root"] == str(tmp_path.resolve())
    assert state["files"] == {"README.md": "# demo\n", "src/app.py": "print('v1')\n"}
    assert state["skipped"] == ["logo.bin"]


def test_capture_respects_size_and_count_limits(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("a")
    (tmp_path / "b.txt").write_text("b" * 100)
    (tmp_path / "c.txt").write_text("c")

    state = WorkspaceSnapshotter(tmp_path, max_file_bytes=10, max_files=1).capture()

    assert state["files"] == {"a.txt": "a"}
    assert sorted(state["skipped"]) == ["b.txt", "c.txt"]


def test_apply_restores_and_is_idempotent(tmp_path: Path) -> None:
    _workspace(tmp_path)
    snap = WorkspaceSnapshotter(tmp_path)
    state = snap.capture()

    (tmp_path / "src" / "app.py").write_text("print('v2')\n")
    (tmp_path / "README.md").unlink()
    (tmp_path / "src" / "new.py").write_text("x = 1\n")

    changed = snap.apply(state)

    assert sorted(changed) == ["README.md", "src/app.py", "src/new.py"]
    assert (tmp_path / "src" / "app.py").read_text() == "print('v1')\n"
    assert (tmp_path / "README.md").read_text() == "# demo\n"
    assert not (tmp_path / "src" / "new.py").exists()
    assert (tmp_path / "logo.bin").read_bytes() == b"\xff\xfe\x00\x01"
    assert (tmp_path / ".git" / "HEAD").exists()

    assert snap.apply(state) == []


def test_apply_rejects_snapshot_from_other_root(tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    state = WorkspaceSnapshotter(tmp_path / "a").capture()

    with pytest.raises(ValueError):
        WorkspaceSnapshotter(tmp_path / "b").apply(state)


@pytest.mark.asyncio
async def test_manager_create_restore_and_undo(tmp_path: Path) -> None:
    _workspace(tmp_path)
    repo = InMemoryCheckpointRepository()
    manager = CheckpointManager(repo, snapshotter=WorkspaceSnapshotter(tmp_path))

    first = await manager.create("s1", "before edit")
    assert first is not None
    (tmp_path / "src" / "app.py").write_text("print('v2')\n")
    second = await manager.create("s1", "after edit")
    (tmp_path / "src" / "app.py").write_text("print('v3')\n")

    listed = await manager.list("s1")
    assert [c.id for c in listed] == [first, second]
    assert (await manager.latest("s1")).id == second

    assert await manager.undo("s1") is True
    assert (tmp_path / "src" / "app.py").read_text() == "print('v2')\n"

    assert await manager.restore(first) is True
    assert (tmp_path / "src" / "app.py").read_text() == "print('v1')\n"

    # Checkpoints are never removed by restoring
    assert len(await manager.list()) == 2


@pytest.mark.asyncio
async def test_restore_of_unchanged_workspace_succeeds(tmp_path: Path) -> None:
    _workspace(tmp_path)
    manager = CheckpointManager(InMemoryCheckpointRepository(), snapshotter=WorkspaceSnapshotter(tmp_path))

    cp_id = await manager.create("s1")

    assert await manager.restore(cp_id) is True
    assert (tmp_path / "src" / "app.py").read_text() == "print('v1')\n"


@pytest.mark.asyncio
async def test_undo_refuses_checkpoint_from_another_session(tmp_path: Path) -> None:
    _workspace(tmp_path)
    manager = CheckpointManager(InMemoryCheckpointRepository(), snapshotter=WorkspaceSnapshotter(tmp_path))
    theirs = await manager.create("s1")
    (tmp_path / "src" / "app.py").write_text("print('v2')\n")

    assert await manager.undo("s2", theirs) is False
    assert (tmp_path / "src" / "app.py").read_text() == "print('v2')\n"
    assert await manager.undo("s1", theirs) is True
    assert (tmp_path / "src" / "app.py").read_text() == "print('v1')\n"


@pytest.mark.asyncio
async def test_manager_failures_are_reported_not_raised(tmp_path: Path) -> None:
    manager = CheckpointManager(InMemoryCheckpointRepository(), snapshotter=WorkspaceSnapshotter(tmp_path))

    assert await manager.restore("no-such-id") is False
    assert await manager.undo("unknown-session") is False


@pytest.mark.asyncio
async def test_manager_create_returns_none_when_store_fails(tmp_path: Path) -> None:
    class _BrokenRepo(InMemoryCheckpointRepository):
        async def save(self, checkpoint) -> None:
            raise RuntimeError("disk full")

    manager = CheckpointManager(_BrokenRepo(), snapshotter=WorkspaceSnapshotter(tmp_path))

    assert await manager.create("s1") is None
