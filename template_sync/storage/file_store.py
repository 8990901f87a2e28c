"""
Filesystem boundary used by the apply stage.
"""

import logging
import os
import shutil
import tempfile

from pathlib import Path

from ..interfaces import FileStoreInterface


class LocalFileStore(FileStoreInterface):
    """
    Reads and writes template files on the local filesystem.

    Writes go to a temporary file in the target directory that is then
    renamed over the destination, so a failed write never leaves a
    half-written template behind.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.logger = logging.getLogger(__name__)
        self.encoding = encoding

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def read(self, path: str) -> str:
        with open(path, "r", encoding=self.encoding, errors="replace") as file:
            return file.read()

    def write(self, path: str, text: str) -> None:
        target = Path(path)
        if target.exists() and not os.access(str(target), os.W_OK):
            raise PermissionError(f"Template file is not writable: {path}")

        fd, temp_path = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding=self.encoding) as file:
                file.write(text)
            if target.exists():
                shutil.copymode(str(target), temp_path)
            os.replace(temp_path, str(target))
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
        self.logger.debug(f"Wrote {len(text)} characters to {path}")

    def copy(self, path: str, backup_path: str) -> None:
        shutil.copy2(path, backup_path)

    def ensure_directory(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def remove(self, path: str) -> None:
        Path(path).unlink()
