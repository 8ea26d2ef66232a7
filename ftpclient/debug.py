"""Wrappers that copy connection traffic to a debug writer."""

from typing import Any, Protocol


class _Writer(Protocol):
    def write(self, data: bytes, /) -> Any: ...


class DebugConnection:
    """A socket-like connection that copies all traffic to ``output``.

    Bytes received from the peer and bytes sent to it are both written to
    ``output`` before being handed on.
    """

    def __init__(self, conn: Any, output: _Writer) -> None:
        self._conn = conn
        self._output = output

    def recv(self, bufsize: int) -> bytes:
        """Receive up to ``bufsize`` bytes and copy them to the debug output."""
        data = self._conn.recv(bufsize)
        if data:
            self._output.write(data)
        return data

    def sendall(self, data: bytes) -> None:
        """Copy ``data`` to the debug output, then send all of it."""
        self._output.write(data)
        self._conn.sendall(data)

    def settimeout(self, timeout: float | None) -> None:
        """Set the timeout of the wrapped connection."""
        self._conn.settimeout(timeout)

    def close(self) -> None:
        """Close the wrapped connection."""
        self._conn.close()


class DebugStream:
    """A readable stream that copies everything read to ``output``."""

    def __init__(self, stream: Any, output: _Writer) -> None:
        self._stream = stream
        self._output = output

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all when negative) and copy them out."""
        data = self._stream.read(size)
        if data:
            self._output.write(data)
        return data

    def close(self) -> None:
        """Close the wrapped stream."""
        self._stream.close()