"""Tests for the repository context tracker."""

import asyncio
from pathlib import Path

import pytest

from conftest import FakeGitBackend, entry
from gitpanel.errors import NotARepositoryError
from gitpanel.git.tracker import UNBOUND, RepositoryContextTracker, RepositoryStatus


async def settle() -> None:
    """Let pending tasks run until they block."""
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def tracker(backend: FakeGitBackend) -> RepositoryContextTracker:
    return RepositoryContextTracker(backend)


@pytest.fixture
def changes(tracker: RepositoryContextTracker) -> list[RepositoryStatus]:
    """Values emitted on repository_changed."""
    received: list[RepositoryStatus] = []
    tracker.repository_changed.connect(received.append)
    return received


class TestBinding:
    """Tests for binding to and leaving repositories."""

    @pytest.mark.asyncio
    async def test_starts_unbound(self, tracker):
        """Test a new tracker is unbound."""
        assert tracker.state == UNBOUND
        assert tracker.root_path is None
        assert tracker.current_branch is None
        assert not tracker.is_bound

    @pytest.mark.asyncio
    async def test_bind_to_subdirectory(self, tracker, changes, repo_root):
        """Test a directory inside a repository binds to its root."""
        await tracker.set_active_directory(repo_root / "src" / "pkg")

        assert tracker.root_path == repo_root
        assert tracker.current_branch == "main"
        assert changes == [RepositoryStatus(root_path=repo_root, current_branch="main")]

    @pytest.mark.asyncio
    async def test_same_directory_twice_emits_once(self, tracker, changes, repo_root):
        """Test re-resolving to the same root does not notify again."""
        await tracker.on_active_directory_changed(repo_root / "src")
        await tracker.on_active_directory_changed(repo_root / "docs")
        await tracker.on_active_directory_changed(repo_root / "docs")

        assert len(changes) == 1

    @pytest.mark.asyncio
    async def test_outside_repository_unbinds(self, tracker, changes, repo_root):
        """Test leaving the repository clears root and branch."""
        await tracker.set_active_directory(repo_root)
        await tracker.set_active_directory("/somewhere/else")

        assert tracker.state == UNBOUND
        assert tracker.files == ()
        assert changes[-1] == UNBOUND
        assert tracker.active_directory == Path("/somewhere/else")

    @pytest.mark.asyncio
    async def test_outside_repository_from_unbound_is_silent(self, tracker, changes):
        """Test no notification when staying unbound."""
        await tracker.set_active_directory("/somewhere/else")
        assert changes == []

    @pytest.mark.asyncio
    async def test_backend_failure_degrades_to_unbound(self, tracker, backend, changes, repo_root):
        """Test an unreachable backend unbinds without raising."""
        await tracker.set_active_directory(repo_root)
        backend.unreachable = True

        await tracker.set_active_directory(repo_root / "src")

        assert tracker.state == UNBOUND
        assert changes[-1] == UNBOUND

    @pytest.mark.asyncio
    async def test_file_path(self, tracker, repo_root):
        """Test repository-relative paths become absolute."""
        await tracker.set_active_directory(repo_root)
        assert tracker.file_path("src/a.py") == repo_root / "src" / "a.py"

    @pytest.mark.asyncio
    async def test_file_path_unbound(self, tracker):
        """Test file_path requires a repository."""
        with pytest.raises(NotARepositoryError):
            tracker.file_path("a.py")


class TestRefresh:
    """Tests for status refreshes."""

    @pytest.mark.asyncio
    async def test_file_change_refreshes_files(self, tracker, backend, repo_root):
        """Test a file change reloads status and notifies."""
        await tracker.set_active_directory(repo_root)
        received = []
        tracker.status_changed.connect(received.append)

        backend.set_files(repo_root, [entry("a.py", " M")])
        await tracker.on_file_changed()

        assert [f.path for f in tracker.files] == ["a.py"]
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_branch_switch_notifies(self, tracker, backend, changes, repo_root):
        """Test a branch change seen on refresh emits repository_changed."""
        await tracker.set_active_directory(repo_root)
        backend.set_branch(repo_root, "feature")

        await tracker.refresh_status()

        assert tracker.current_branch == "feature"
        assert changes[-1].current_branch == "feature"
        assert len(changes) == 2

    @pytest.mark.asyncio
    async def test_unchanged_refresh_is_silent(self, tracker, changes, repo_root):
        """Test nothing is emitted when nothing changed."""
        await tracker.set_active_directory(repo_root)
        await tracker.refresh_status()
        await tracker.refresh_status()
        assert len(changes) == 1

    @pytest.mark.asyncio
    async def test_refresh_when_unbound_does_nothing(self, tracker, backend):
        """Test refreshing without a repository makes no calls."""
        await tracker.refresh_status()
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_refresh_failure_unbinds(self, tracker, backend, changes, repo_root):
        """Test a failing refresh degrades to unbound."""
        await tracker.set_active_directory(repo_root)
        backend.unreachable = True

        await tracker.refresh_status()

        assert tracker.state == UNBOUND
        assert changes[-1] == UNBOUND

    @pytest.mark.asyncio
    async def test_same_directory_notification_refreshes(self, tracker, backend, repo_root):
        """Test re-announcing the active directory only refreshes status."""
        await tracker.on_active_directory_changed(repo_root)
        await tracker.on_active_directory_changed(repo_root)

        assert len(backend.calls_for("show_top_level")) == 1
        assert len(backend.calls_for("status")) == 2

    @pytest.mark.asyncio
    async def test_rebinds_after_backend_recovers(self, tracker, backend, changes, repo_root):
        """Test file and directory notifications rebind once the backend is back."""
        await tracker.set_active_directory(repo_root)
        backend.unreachable = True
        await tracker.on_file_changed()
        assert not tracker.is_bound

        backend.unreachable = False
        await tracker.on_file_changed()

        assert tracker.root_path == repo_root
        assert tracker.current_branch == "main"
        assert changes[-1] == RepositoryStatus(root_path=repo_root, current_branch="main")

    @pytest.mark.asyncio
    async def test_same_directory_notification_rebinds(self, tracker, backend, repo_root):
        """Test re-announcing the active directory rebinds an unbound tracker."""
        await tracker.on_active_directory_changed(repo_root)
        backend.unreachable = True
        await tracker.refresh_status()
        backend.unreachable = False

        await tracker.on_active_directory_changed(repo_root)

        assert tracker.is_bound
        assert len(backend.calls_for("show_top_level")) == 2


class TestOrdering:
    """Tests for overlapping requests."""

    @pytest.mark.asyncio
    async def test_latest_directory_wins(self, tracker, backend, repo_root):
        """Test a slow resolution of an older directory is discarded."""
        other = backend.add_repository("/work/other", branch="dev")
        slow_dir = repo_root / "src"
        backend.gates[slow_dir] = asyncio.Event()

        slow = asyncio.create_task(tracker.set_active_directory(slow_dir))
        await settle()
        await tracker.set_active_directory(other)
        backend.gates[slow_dir].set()
        await slow

        assert tracker.root_path == other
        assert tracker.current_branch == "dev"

    @pytest.mark.asyncio
    async def test_stale_refresh_is_dropped(self, tracker, backend, repo_root):
        """Test a status response for a previous root does not overwrite the current one."""
        other = backend.add_repository("/work/other", branch="dev")
        await tracker.set_active_directory(repo_root)
        backend.set_files(repo_root, [entry("stale.py", " M")])
        backend.status_gates[repo_root] = asyncio.Event()

        refresh = asyncio.create_task(tracker.refresh_status())
        await settle()
        await tracker.set_active_directory(other)
        backend.status_gates[repo_root].set()
        await refresh

        assert tracker.root_path == other
        assert tracker.files == ()

    @pytest.mark.asyncio
    async def test_refreshes_apply_in_arrival_order(self, tracker, backend, repo_root):
        """Test the refresh that completes last decides the file list."""
        await tracker.set_active_directory(repo_root)
        gate = asyncio.Event()
        backend.status_gates[repo_root] = gate

        first = asyncio.create_task(tracker.refresh_status())
        await settle()
        del backend.status_gates[repo_root]
        backend.set_files(repo_root, [entry("early.py", " M")])
        await tracker.refresh_status()
        assert [f.path for f in tracker.files] == ["early.py"]

        backend.set_files(repo_root, [entry("late.py", "M ")])
        gate.set()
        await first

        assert [f.path for f in tracker.files] == ["late.py"]
        assert tracker.root_path == repo_root


class TestLifecycle:
    """Tests for restore, initialize and dispose."""

    @pytest.mark.asyncio
    async def test_restored_fires_once(self, tracker, backend, repo_root):
        """Test only the first restore binds."""
        await tracker.on_restored(repo_root)
        await tracker.on_restored("/somewhere/else")

        assert tracker.root_path == repo_root
        assert len(backend.calls_for("show_top_level")) == 1

    @pytest.mark.asyncio
    async def test_initialize_binds_new_repository(self, tracker, backend):
        """Test initializing a directory makes it the active repository."""
        await tracker.initialize("/work/fresh")

        assert backend.calls_for("init") == [(Path("/work/fresh"),)]
        assert tracker.root_path == Path("/work/fresh")
        assert tracker.current_branch == "master"

    @pytest.mark.asyncio
    async def test_dispose_disconnects_subscribers(self, tracker, repo_root):
        """Test subscribers receive nothing after dispose."""
        received = []
        tracker.repository_changed.connect(received.append)
        tracker.dispose()

        await tracker.set_active_directory(repo_root)

        assert received == []
