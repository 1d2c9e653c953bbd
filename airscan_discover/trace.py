"""
Raw protocol trace.

Every traced message becomes one member of a tar archive, named
NNN-<name>.xml in the order it was recorded, so a capture can be unpacked
and read with any XML viewer.
"""
from __future__ import annotations
import io
import logging
import tarfile
import threading
import time
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class ProtocolTrace:
    """Thread-safe tar sink for raw protocol messages.

    The archive is opened on the first record. If it cannot be written,
    the error is logged once and tracing is switched off.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._file: Optional[BinaryIO] = None
        self._tar: Optional[tarfile.TarFile] = None
        self._index = 0
        self._closed = False
        self._failed = False

    def record(self, name: str, data: bytes) -> None:
        with self._lock:
            if self._failed or self._closed:
                return
            try:
                if self._tar is None:
                    self._file = open(self.path, 'wb')
                    self._tar = tarfile.open(fileobj=self._file, mode='w')

                info = tarfile.TarInfo(name=f"{self._index:03d}-{name}.xml")
                info.size = len(data)
                info.mode = 0o644
                info.mtime = int(time.time())
                self._index += 1

                self._tar.addfile(info, io.BytesIO(data))
                self._file.flush()
            except OSError as e:
                logger.error(f"Protocol trace disabled, cannot write '{self.path}': {e}")
                self._failed = True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._tar is not None:
                self._tar.close()
                self._tar = None
            if self._file is not None:
                self._file.close()
                self._file = None
