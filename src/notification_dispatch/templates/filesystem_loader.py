"""Load templates from a local directory.

Used for development and tests. The object key is resolved below
``base_dir`` and may not escape it.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..errors import TemplateNotFound
from .base import TemplateLoaderBase


class FilesystemTemplateLoader(TemplateLoaderBase):
    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir).expanduser().resolve()

    def _path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise TemplateNotFound(key, f"Template key '{key}' escapes the template directory")
        return path

    async def load(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise TemplateNotFound(key) from exc
        except OSError as exc:
            raise TemplateNotFound(key, f"Template '{key}' could not be read: {exc}") from exc
