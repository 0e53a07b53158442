"""
Document file storage on local disk.

Files land under <root>/<role>/<uuid><ext>; the locator handed back to callers
is the POSIX path relative to the root's parent, e.g. "uploads/student/ab12.pdf".
"""
import logging
import uuid
from pathlib import Path, PurePosixPath

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class DocumentFileStore:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path_for(self, locator: str) -> Path:
        parts = PurePosixPath(locator).parts
        if len(parts) != 3 or parts[0] != self.root.name or ".." in parts:
            raise ValueError(f"Locator outside upload root: {locator!r}")
        return self.root / parts[1] / parts[2]

    async def save(self, role: str, original_name: str | None, content: bytes) -> str:
        suffix = Path(original_name or "").suffix.lower()
        filename = f"{uuid.uuid4()}{suffix}"
        target = self.root / role / filename

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await run_in_threadpool(_write)
        return str(PurePosixPath(self.root.name, role, filename))

    async def remove(self, locator: str) -> None:
        try:
            path = self._path_for(locator)
            await run_in_threadpool(path.unlink, True)
        except (OSError, ValueError):
            logger.warning("Could not remove stored document %s", locator, exc_info=True)

    def resolve(self, locator: str) -> Path:
        return self._path_for(locator)
