"""
Protocol file writer.

Each payload is encoded, written to a hidden sibling file and renamed
over the published path, so a reader always sees a complete payload.
"""

import os
import threading
from pathlib import Path

from ..logging import get_logger
from ..models.payload import Payload, ProtocolVersion
from ..protocol import Codec, choose_protocol


logger = get_logger("plugin.writer")


class WriterClosedError(ValueError):
    """Raised when writing through a closed writer."""


class WriterHandle:
    """
    An open output channel bound to one path and one codec.

    close() may be called any number of times; a close that races with
    a write waits for the write to finish and then removes the file.
    """

    def __init__(self, path: Path, codec: Codec):
        self.path = path
        self.codec = codec
        self._staging = path.with_name(f".{path.name}.tmp")
        self._lock = threading.Lock()
        self._closed = False
        self.payloads_written = 0

    @classmethod
    def open(cls, path: str | Path, protocol: ProtocolVersion) -> "WriterHandle":
        """
        Create the output directory and bind the protocol's codec.

        Raises:
            OSError: If the directory or file cannot be created
        """
        path = Path(path)
        path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)

        handle = cls(path, choose_protocol(protocol))
        # Fail now rather than on the first write
        handle._staging.touch()
        logger.debug(f"Opened {path} with {handle.codec!r}")
        return handle

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, payload: Payload) -> None:
        """
        Encode and publish one payload.

        Raises:
            WriterClosedError: If the writer was closed
            OSError: If the file cannot be written
        """
        data = self.codec.encode(payload)

        with self._lock:
            if self._closed:
                raise WriterClosedError(f"Writer for {self.path} is closed")

            with open(self._staging, "wb") as f:
                f.write(data)
                f.flush()
            os.replace(self._staging, self.path)
            self.payloads_written += 1

    def close(self) -> None:
        """Remove the published file and release the channel."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

            for path in (self.path, self._staging):
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass

        logger.debug(f"Closed writer for {self.path}")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"WriterHandle({self.path}, {self.codec!r}, {state})"


def open_writer(path: str | Path, protocol: ProtocolVersion) -> WriterHandle:
    """Open a writer for a daemon-assigned path."""
    return WriterHandle.open(path, protocol)
