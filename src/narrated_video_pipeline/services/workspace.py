"""Per-job scratch directories and their guaranteed removal.

``allocate`` hands out an exclusive, empty directory per job id and
``release`` removes it again. Release is idempotent; :class:`DeferredRelease`
wraps it so that a job's directory is reclaimed exactly once, either after a
grace delay or immediately.
"""

import asyncio
from pathlib import Path
from typing import Optional, Union

from ..config import get_settings
from ..logging_config import LoggerMixin
from ..utils.file_utils import ensure_directory, remove_tree


class WorkspaceError(Exception):
    """Raised for workspace allocation failures."""


class WorkspaceManager(LoggerMixin):
    """Allocate and reclaim isolated job directories under one root."""

    def __init__(self, root: Optional[Union[str, Path]] = None, settings=None):
        self.settings = settings or get_settings()
        self.root = ensure_directory(root or self.settings.workspace_root).resolve()

    def path_for(self, job_id: str) -> Path:
        """Directory a job id maps to (not created)."""
        if not job_id or "/" in job_id or "\\" in job_id or job_id in (".", ".."):
            raise WorkspaceError(f"Invalid job id: {job_id!r}")
        return self.root / job_id

    def allocate(self, job_id: str) -> Path:
        """Create an exclusive, empty directory for ``job_id``."""
        path = self.path_for(job_id)
        try:
            path.mkdir(parents=False, exist_ok=False)
        except FileExistsError as exc:
            raise WorkspaceError(f"Workspace already exists for job {job_id}") from exc

        self.logger.debug("Workspace allocated", job_id=job_id, path=str(path))
        return path

    def release(self, path: Union[str, Path]) -> bool:
        """
        Recursively remove a workspace directory.

        Returns:
            True if the directory was removed, False if it was already gone
        """
        path = Path(path).resolve()
        if path == self.root or self.root not in path.parents:
            raise WorkspaceError(f"Refusing to release path outside workspace root: {path}")

        removed = remove_tree(path)
        self.logger.debug("Workspace released", path=str(path), removed=removed)
        return removed

    def deferred(self, path: Union[str, Path], job_id: str = "") -> "DeferredRelease":
        """Create a cleanup handle for a workspace."""
        return DeferredRelease(self, Path(path), job_id=job_id)


class DeferredRelease(LoggerMixin):
    """Cancellable cleanup task that releases one workspace exactly once."""

    def __init__(self, manager: WorkspaceManager, path: Path, job_id: str = ""):
        self.manager = manager
        self.path = path
        self.job_id = job_id
        self._released = False
        self._task: Optional[asyncio.Task] = None

    @property
    def released(self) -> bool:
        return self._released

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def release_now(self) -> bool:
        """Release immediately, cancelling any scheduled release."""
        self.cancel()
        if self._released:
            return False
        self._released = True
        try:
            self.manager.release(self.path)
        except OSError as exc:
            self.logger.error("Workspace cleanup failed", job_id=self.job_id, path=str(self.path), error=str(exc))
            return False
        return True

    def schedule(self, delay: float) -> Optional[asyncio.Task]:
        """Release after ``delay`` seconds on the running event loop."""
        if self._released:
            return None
        if delay <= 0:
            self.release_now()
            return None
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._release_later(delay))
        return self._task

    def reschedule(self, delay: float) -> Optional[asyncio.Task]:
        """Replace a pending release with one due after ``delay`` seconds."""
        self.cancel()
        return self.schedule(delay)

    def cancel(self) -> None:
        """Cancel a scheduled release that has not started yet."""
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def wait(self) -> None:
        """Wait for a scheduled release to finish."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _release_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._released:
            return
        self._released = True
        try:
            self.manager.release(self.path)
            self.logger.info("Workspace reclaimed", job_id=self.job_id)
        except OSError as exc:
            self.logger.error("Workspace cleanup failed", job_id=self.job_id, path=str(self.path), error=str(exc))


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
