"""Settings that control how a server connection is made and used."""

import ssl
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Any, BinaryIO, Callable

from ftpclient.debug import DebugConnection, DebugStream

DEFAULT_DIAL_TIMEOUT = 30.0


@dataclass
class DialOptions:
    """Options for opening and using a connection to an FTP server.

    ``timeout`` bounds each connection attempt; the control connection is
    additionally bounded by ``DEFAULT_DIAL_TIMEOUT``. ``shut_timeout`` bounds
    the wait for the closing status after a transfer. ``dial_func`` takes a
    network name and a ``host:port`` address and returns a socket-like object;
    it is used for both control and data connections. ``location`` is the
    server's time zone for listing dates. Everything read from and written to
    the server is copied to ``debug_output`` when it is set.
    """

    timeout: float | None = None
    shut_timeout: float | None = None
    source_address: tuple[str, int] | None = None
    tls_context: ssl.SSLContext | None = None
    explicit_tls: bool = False
    disable_epsv: bool = False
    disable_utf8: bool = False
    disable_mlsd: bool = False
    writing_mdtm: bool = False
    force_list_hidden: bool = False
    location: tzinfo | None = timezone.utc
    debug_output: BinaryIO | None = None
    dial_func: Callable[[str, str], Any] | None = None

    def __post_init__(self) -> None:
        if self.location is None:
            self.location = timezone.utc

    def wrap_conn(self, conn: Any) -> Any:
        """Return ``conn``, copying its traffic to the debug output if set."""
        if self.debug_output is None:
            return conn
        return DebugConnection(conn, self.debug_output)

    def wrap_stream(self, stream: Any) -> Any:
        """Return ``stream``, copying what is read to the debug output if set."""
        if self.debug_output is None:
            return stream
        return DebugStream(stream, self.debug_output)