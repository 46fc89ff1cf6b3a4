"""Per-run scratch directory for temporary frame images and clips."""

import logging
import shutil
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class ScratchSpace:
    """A uniquely named temp directory plus the files created in it.

    Files are registered as soon as they are created, so ``cleanup`` removes
    everything produced up to the point of failure. Cleanup never raises.
    """

    def __init__(self, root: str | Path, prefix: str = "run"):
        self.path = Path(root) / f"{prefix}-{uuid.uuid4().hex}"
        self._files: list[Path] = []
        self._created = False

    def create(self) -> "ScratchSpace":
        self.path.mkdir(parents=True, exist_ok=False)
        self._created = True
        return self

    def file(self, name: str) -> Path:
        """Path for a new file inside the directory (not yet tracked)."""
        return self.path / name

    def track(self, path: str | Path) -> Path:
        path = Path(path)
        self._files.append(path)
        return path

    @property
    def files(self) -> list[Path]:
        return list(self._files)

    def cleanup(self) -> None:
        for path in self._files:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"[cleanup] Failed to delete {path}: {e}")
        self._files.clear()

        if self._created:
            try:
                shutil.rmtree(self.path, ignore_errors=False)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"[cleanup] Failed to delete {self.path}: {e}")
            self._created = False

    def __enter__(self) -> "ScratchSpace":
        return self.create()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
