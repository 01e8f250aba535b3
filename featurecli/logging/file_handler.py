"""
File Handler - size-based rotating log file used when `output: file` is configured

Usage:
    from featurecli.logging.file_handler import RotatingFileHandler

    with RotatingFileHandler("logs/compile.log", max_bytes=1048576, backup_count=3) as handler:
        handler.write('{"message": "Feature parsed"}\n')
"""

from pathlib import Path
from threading import Lock


class RotatingFileHandler:
    """
    Stream-like object that appends to a file and rotates it by size.

    Rotation pattern (backup_count=3):
        compile.log   -> compile.log.1
        compile.log.1 -> compile.log.2
        compile.log.2 -> compile.log.3
        compile.log.3 -> deleted
    """

    def __init__(self, filepath: str, max_bytes: int = 10485760, backup_count: int = 5, encoding: str = "utf-8"):
        self.filepath = Path(filepath)
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.encoding = encoding
        self._file = None
        self._lock = Lock()
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def write(self, content: str):
        with self._lock:
            if self._should_rotate():
                self._rotate()
            if self._file is None or self._file.closed:
                self._file = open(self.filepath, "a", encoding=self.encoding)
            self._file.write(content)
            self._file.flush()

    def _should_rotate(self) -> bool:
        try:
            return self.filepath.exists() and self.filepath.stat().st_size >= self.max_bytes
        except OSError:
            return False

    def _backup_path(self, index: int) -> Path:
        return self.filepath.with_name(f"{self.filepath.name}.{index}")

    def _rotate(self):
        if self._file and not self._file.closed:
            self._file.close()
        self._file = None

        if self.backup_count <= 0:
            self.filepath.unlink(missing_ok=True)
            return

        self._backup_path(self.backup_count).unlink(missing_ok=True)
        for index in range(self.backup_count - 1, 0, -1):
            source = self._backup_path(index)
            if source.exists():
                source.replace(self._backup_path(index + 1))
        if self.filepath.exists():
            self.filepath.replace(self._backup_path(1))

    def flush(self):
        with self._lock:
            if self._file and not self._file.closed:
                self._file.flush()

    def close(self):
        with self._lock:
            if self._file and not self._file.closed:
                self._file.flush()
                self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
