"""Line-based reply handling for the FTP control connection."""

from typing import Any

_CHUNK_SIZE = 4096
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class FTPError(Exception):
    """An error reply from the server."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code:03d} {self.message}"


def _parse_code_line(line: str) -> tuple[int, bool, str]:
    """Split a reply line into its code, continuation flag and text."""
    if len(line) < 4 or line[3] not in (" ", "-"):
        raise ValueError(f"short response: {line}")
    digits = line[:3]
    if not (digits.isascii() and digits.isdigit()) or int(digits) < 100:
        raise ValueError(f"invalid response code: {line}")
    return int(digits), line[3] == "-", line[4:]


def _code_matches(code: int, expected: int) -> bool:
    if 1 <= expected < 10:
        return code // 100 == expected
    if 10 <= expected < 100:
        return code // 10 == expected
    if 100 <= expected < 1000:
        return code == expected
    return True


class ControlConnection:
    """Sends command lines and reads (possibly multi-line) replies.

    ``conn`` is any socket-like object with ``recv``, ``sendall`` and ``close``.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._buffer = bytearray()

    def send(self, line: str) -> None:
        """Send one command line, terminated by CRLF."""
        self._conn.sendall((line + "\r\n").encode(_ENCODING, _ERRORS))

    def _read_line(self) -> str:
        while True:
            index = self._buffer.find(b"\n")
            if index >= 0:
                raw = bytes(self._buffer[:index])
                del self._buffer[: index + 1]
                break
            chunk = self._conn.recv(_CHUNK_SIZE)
            if not chunk:
                if not self._buffer:
                    raise EOFError("control connection closed")
                raw = bytes(self._buffer)
                self._buffer.clear()
                break
            self._buffer.extend(chunk)
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode(_ENCODING, _ERRORS)

    def read_response(self, expected: int = -1) -> tuple[int, str]:
        """Read one reply and return its code and text.

        The lines of a multi-line reply are joined with newlines. ``expected``
        may be a full code, its first two digits or its first digit; a reply
        that does not match raises :class:`FTPError`. Zero or a negative value
        accepts any reply.
        """
        code, continued, message = _parse_code_line(self._read_line())
        while continued:
            line = self._read_line()
            try:
                next_code, continued, more = _parse_code_line(line)
            except ValueError:
                next_code = None
            if next_code != code:
                message += "\n" + line.rstrip("\r\n")
                continued = True
                continue
            message += "\n" + more
        if not _code_matches(code, expected):
            raise FTPError(code, message)
        return code, message

    def command(self, expected: int, line: str) -> tuple[int, str]:
        """Send a command and read its reply."""
        self.send(line)
        return self.read_response(expected)

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()