import uuid
from pathlib import Path
from typing import List, Optional

from case_chat.exception.custom_exception import BlobStoreError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.thread_pool import run_sync


class LocalBlobStore:
    """
    A blob container backed by a directory: one file per object.

    Object names are flat; anything that would resolve outside the container
    directory (separators, "..") is rejected.
    """

    def __init__(self, root_dir: str | Path, container: str):
        self.container = container
        self.base_dir = (Path(root_dir) / container).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            raise BlobStoreError(f"Invalid blob name: {name!r}")
        return self.base_dir / name

    def _read(self, name: str) -> Optional[bytes]:
        path = self._path(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BlobStoreError(f"Failed to read blob {self.container}/{name}", e) from e

    def _write(self, name: str, data: bytes, overwrite: bool) -> None:
        path = self._path(name)
        if not overwrite and path.exists():
            raise BlobStoreError(f"Blob {self.container}/{name} already exists")
        # one temp file per writer; concurrent overwrites of a name race on replace only
        tmp_path = path.with_name(f".{name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise BlobStoreError(f"Failed to write blob {self.container}/{name}", e) from e
        log.debug("Blob written | container=%s | name=%s | bytes=%d", self.container, name, len(data))

    def _list(self, prefix: str) -> List[str]:
        try:
            return sorted(
                p.name
                for p in self.base_dir.iterdir()
                if p.is_file() and not p.name.startswith(".") and p.name.startswith(prefix)
            )
        except OSError as e:
            raise BlobStoreError(f"Failed to list container {self.container}", e) from e

    async def read(self, name: str) -> Optional[bytes]:
        return await run_sync(self._read, name)

    async def write(self, name: str, data: bytes, overwrite: bool = True) -> None:
        await run_sync(self._write, name, data, overwrite)

    async def exists(self, name: str) -> bool:
        return await run_sync(lambda: self._path(name).is_file())

    async def list_names(self, prefix: str = "") -> List[str]:
        return await run_sync(self._list, prefix)
