"""Readable data connection returned by file retrieval."""

from typing import Any, Protocol

_CHUNK_SIZE = 65536


class _DataShutChecker(Protocol):
    def check_data_shut(self) -> None: ...


class Response:
    """An open FTP data connection.

    ``conn`` is the socket-like data connection and ``client`` the server
    connection whose control channel reports the end of the transfer. The
    response must be closed, which also reads that final status.
    """

    def __init__(self, conn: Any, client: _DataShutChecker) -> None:
        self._conn = conn
        self._client = client
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has completed."""
        return self._closed

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes; read until the end when ``size`` is negative."""
        if size is not None and size >= 0:
            return self._conn.recv(size)
        chunks = []
        while chunk := self._conn.recv(_CHUNK_SIZE):
            chunks.append(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        """Close the data connection and read the transfer status.

        Calls after the first one do nothing. A single failure is raised as
        is; several are raised together as an :class:`ExceptionGroup`.
        """
        if self._closed:
            return
        errors: list[Exception] = []
        try:
            self._conn.close()
        except Exception as exc:
            errors.append(exc)
        try:
            self._client.check_data_shut()
        except Exception as exc:
            errors.append(exc)
        self._closed = True
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise ExceptionGroup("closing data connection failed", errors)

    def set_timeout(self, timeout: float | None) -> None:
        """Set the timeout for reads on the data connection."""
        self._conn.settimeout(timeout)

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()