"""Client for a remote FTP server (RFC 959)."""

import re
import socket
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable

from ftpclient.entry import Entry, EntryType, TransferType
from ftpclient.options import DEFAULT_DIAL_TIMEOUT, DialOptions
from ftpclient.parse import (
    parse_list_line,
    parse_next_rfc3659_list_line,
    parse_rfc3659_list_line,
)
from ftpclient.passive import is_bogus_data_ip, parse_epsv_response, parse_pasv_response
from ftpclient.protocol import ControlConnection, FTPError
from ftpclient.response import Response
from ftpclient.status import (
    STATUS_ABOUT_TO_SEND,
    STATUS_ALREADY_OPEN,
    STATUS_AUTH_OK,
    STATUS_BAD_ARGUMENTS,
    STATUS_CLOSING_DATA_CONNECTION,
    STATUS_COMMAND_NOT_IMPLEMENTED,
    STATUS_COMMAND_OK,
    STATUS_EXTENDED_PASSIVE_MODE,
    STATUS_FILE,
    STATUS_LOGGED_IN,
    STATUS_NOT_IMPLEMENTED,
    STATUS_NOT_IMPLEMENTED_PARAMETER,
    STATUS_PASSIVE_MODE,
    STATUS_PATH_CREATED,
    STATUS_READY,
    STATUS_REQUEST_FILE_PENDING,
    STATUS_REQUESTED_FILE_ACTION_OK,
    STATUS_SYSTEM,
    STATUS_USER_OK,
    status_text,
)
from ftpclient.walker import Walker

_TIME_FORMAT = "%Y%m%d%H%M%S"
_INTEGER = re.compile(r"[+-]?[0-9]+")
_COPY_CHUNK = 65536


def _raise_collected(errors: list[Exception], message: str) -> None:
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ExceptionGroup(message, errors)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def _join_host_port(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


def _split_lines(data: bytes) -> list[str]:
    lines = data.decode("utf-8", "surrogateescape").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


class ServerConn:
    """A connection to a remote FTP server.

    Only one data transfer may be in flight at a time; not thread safe.
    """

    def __init__(self, options: DialOptions, control: ControlConnection, sock: Any, host: str) -> None:
        self.options = options
        self._control = control
        self._sock = sock
        self.host = host
        self.features: dict[str, str] = {}
        self._skip_epsv = False
        self._mlst_supported = False
        self._mfmt_supported = False
        self._mdtm_supported = False
        self._mdtm_can_write = False
        self._use_pret = False

    # -- session ---------------------------------------------------------

    def login(self, user: str, password: str) -> None:
        """Authenticate, probe server features and switch to binary mode."""
        code, message = self._control.command(-1, f"USER {user}")
        if code == STATUS_USER_OK:
            self._control.command(STATUS_LOGGED_IN, f"PASS {password}")
        elif code != STATUS_LOGGED_IN:
            raise FTPError(code, message)

        self._feat()
        self._mlst_supported = "MLST" in self.features and not self.options.disable_mlsd
        self._use_pret = "PRET" in self.features
        self._mfmt_supported = "MFMT" in self.features
        self._mdtm_supported = "MDTM" in self.features
        self._mdtm_can_write = self._mdtm_supported and self.options.writing_mdtm

        self.type(TransferType.BINARY)

        utf8_error: Exception | None = None
        if not self.options.disable_utf8:
            try:
                self._set_utf8()
            except FTPError as exc:
                utf8_error = exc

        if self.options.tls_context is not None:
            self._control.command(STATUS_COMMAND_OK, "PBSZ 0")
            self._control.command(STATUS_COMMAND_OK, "PROT P")
            return
        if utf8_error is not None:
            raise utf8_error

    def _feat(self) -> None:
        code, message = self._control.command(-1, "FEAT")
        if code != STATUS_SYSTEM:
            return
        for line in message.split("\n"):
            if not line.startswith(" "):
                continue
            command, _, desc = line.strip().partition(" ")
            self.features[command] = desc

    def _set_utf8(self) -> None:
        if "UTF8" not in self.features:
            return
        code, message = self._control.command(-1, "OPTS UTF8 ON")
        if code in (STATUS_BAD_ARGUMENTS, STATUS_NOT_IMPLEMENTED_PARAMETER, STATUS_COMMAND_NOT_IMPLEMENTED):
            return
        if code != STATUS_COMMAND_OK:
            raise FTPError(code, message)

    def type(self, transfer_type: TransferType) -> None:
        """Set the transfer representation type."""
        self._control.command(STATUS_COMMAND_OK, f"TYPE {TransferType(transfer_type).value}")

    # -- data connections -----------------------------------------------

    def _epsv(self) -> int:
        _, line = self._control.command(STATUS_EXTENDED_PASSIVE_MODE, "EPSV")
        return parse_epsv_response(line)

    def _pasv(self) -> tuple[str, int]:
        _, line = self._control.command(STATUS_PASSIVE_MODE, "PASV")
        host, port = parse_pasv_response(line)
        if host != self.host:
            try:
                if is_bogus_data_ip(self.host, host):
                    return self.host, port
            except ValueError:
                pass
        return host, port

    def _data_conn_port(self) -> tuple[str, int]:
        if not self.options.disable_epsv and not self._skip_epsv:
            try:
                return self.host, self._epsv()
            except (FTPError, ValueError):
                self._skip_epsv = True
        return self._pasv()

    def _open_data_conn(self) -> Any:
        host, port = self._data_conn_port()
        if self.options.dial_func is not None:
            return self.options.dial_func("tcp", _join_host_port(host, port))
        sock = socket.create_connection(
            (host, port), timeout=self.options.timeout, source_address=self.options.source_address
        )
        if self.options.tls_context is not None:
            return self.options.tls_context.wrap_socket(sock, server_hostname=self.host)
        return sock

    def _cmd_data_conn_from(self, offset: int, line: str) -> Any:
        if self._use_pret:
            self._control.command(-1, f"PRET {line}")
        conn = self._open_data_conn()
        try:
            if offset:
                self._control.command(STATUS_REQUEST_FILE_PENDING, f"REST {offset}")
            self._control.send(line)
            code, message = self._control.read_response(-1)
            if code not in (STATUS_ALREADY_OPEN, STATUS_ABOUT_TO_SEND):
                raise FTPError(code, message)
        except BaseException:
            conn.close()
            raise
        return conn

    def _read_data_lines(self, line: str) -> list[str]:
        conn = self._cmd_data_conn_from(0, line)
        response = Response(conn, self)
        errors: list[Exception] = []
        data = b""
        try:
            data = self.options.wrap_stream(response).read(-1)
        except Exception as exc:
            errors.append(exc)
        try:
            response.close()
        except Exception as exc:
            errors.append(exc)
        _raise_collected(errors, "listing failed")
        return _split_lines(data)

    def check_data_shut(self) -> None:
        """Read the closing-data-connection status from the control channel."""
        if self.options.shut_timeout:
            self._sock.settimeout(self.options.shut_timeout)
        self._control.read_response(STATUS_CLOSING_DATA_CONNECTION)

    # -- listings --------------------------------------------------------

    def name_list(self, path: str = "") -> list[str]:
        """Return the names listed by NLST."""
        return self._read_data_lines(f"NLST {path}" if path else "NLST")

    def list(self, path: str = "") -> list[Entry]:
        """Return the entries of a directory, via MLSD when available."""
        if self._mlst_supported and not self.options.force_list_hidden:
            cmd, parser = "MLSD", parse_rfc3659_list_line
        else:
            cmd = "LIST -a" if self.options.force_list_hidden else "LIST"
            parser = parse_list_line
        lines = self._read_data_lines(f"{cmd} {path}" if path else cmd)
        now = datetime.now().astimezone()
        entries: list[Entry] = []
        for line in lines:
            try:
                entries.append(parser(line, now, self.options.location))
            except ValueError:
                continue
        return entries

    def get_entry(self, path: str = "") -> Entry:
        """Describe one path with MLST over the control connection."""
        if not self._mlst_supported:
            raise FTPError(STATUS_NOT_IMPLEMENTED, status_text(STATUS_NOT_IMPLEMENTED))
        _, message = self._control.command(
            STATUS_REQUESTED_FILE_ACTION_OK, f"MLST {path}" if path else "MLST"
        )
        lines = message.split("\n")
        if len(lines) < 3:
            raise ValueError("invalid response")
        entry = Entry()
        for line in lines[1:-1]:
            line = line.removeprefix(" ")
            if not line:
                continue
            entry = parse_next_rfc3659_list_line(line, self.options.location, entry)
        return entry

    def is_time_precise_in_list(self) -> bool:
        """Whether listings carry times with one-second precision."""
        return self._mlst_supported

    # -- directories -----------------------------------------------------

    def change_dir(self, path: str) -> None:
        """Change the current directory."""
        self._control.command(STATUS_REQUESTED_FILE_ACTION_OK, f"CWD {path}")

    def change_dir_to_parent(self) -> None:
        """Change to the parent directory."""
        self._control.command(STATUS_REQUESTED_FILE_ACTION_OK, "CDUP")

    def current_dir(self) -> str:
        """Return the current directory."""
        _, message = self._control.command(STATUS_PATH_CREATED, "PWD")
        start = message.find('"')
        end = message.rfind('"')
        if start == -1 or end == -1:
            raise ValueError("unsupported PWD response format")
        return message[start + 1:end]

    def make_dir(self, path: str) -> None:
        """Create a directory."""
        self._control.command(STATUS_PATH_CREATED, f"MKD {path}")

    def remove_dir(self, path: str) -> None:
        """Remove an empty directory."""
        self._control.command(STATUS_REQUESTED_FILE_ACTION_OK, f"RMD {path}")

    def remove_dir_recur(self, path: str) -> None:
        """Remove a directory and everything below it."""
        self.change_dir(path)
        current = self.current_dir()
        for entry in self.list(current):
            if entry.name in (".", ".."):
                continue
            if entry.type == EntryType.FOLDER:
                self.remove_dir_recur(f"{current}/{entry.name}")
            else:
                self.delete(entry.name)
        self.change_dir_to_parent()
        self.remove_dir(current)

    def walk(self, root: str) -> Walker:
        """Return a walker over the tree below ``root``."""
        return Walker(self, root)

    # -- files -----------------------------------------------------------

    def file_size(self, path: str) -> int:
        """Return the size of a file."""
        _, message = self._control.command(STATUS_FILE, f"SIZE {path}")
        if _INTEGER.fullmatch(message) is None:
            raise ValueError(f"invalid size: {message!r}")
        return int(message)

    def get_time(self, path: str) -> datetime:
        """Return the modification time of a file, in UTC."""
        if not self._mdtm_supported:
            raise FTPError(STATUS_NOT_IMPLEMENTED, "get_time is not supported")
        _, message = self._control.command(STATUS_FILE, f"MDTM {path}")
        return datetime.strptime(message, _TIME_FORMAT).replace(tzinfo=timezone.utc)

    def is_get_time_supported(self) -> bool:
        """Whether :meth:`get_time` can be used."""
        return self._mdtm_supported

    def set_time(self, path: str, when: datetime) -> None:
        """Set the modification time of a file with MFMT or writing MDTM."""
        utime = when.astimezone(timezone.utc).strftime(_TIME_FORMAT)
        if self._mfmt_supported:
            self._control.command(STATUS_FILE, f"MFMT {utime} {path}")
        elif self._mdtm_can_write:
            self._control.command(STATUS_FILE, f"MDTM {utime} {path}")
        else:
            raise FTPError(STATUS_NOT_IMPLEMENTED, "set_time is not supported")

    def is_set_time_supported(self) -> bool:
        """Whether :meth:`set_time` can be used."""
        return self._mfmt_supported or self._mdtm_can_write

    def retr(self, path: str) -> Response:
        """Start downloading a file; the response must be closed."""
        return self.retr_from(path, 0)

    def retr_from(self, path: str, offset: int) -> Response:
        """Start downloading a file, skipping its first ``offset`` bytes."""
        return Response(self._cmd_data_conn_from(offset, f"RETR {path}"), self)

    def _upload(self, line: str, reader: BinaryIO, offset: int) -> None:
        conn = self._cmd_data_conn_from(offset, line)
        errors: list[Exception] = []
        try:
            while chunk := reader.read(_COPY_CHUNK):
                conn.sendall(chunk)
        except Exception as exc:
            errors.append(exc)
        try:
            conn.close()
        except Exception as exc:
            errors.append(exc)
        try:
            self.check_data_shut()
        except Exception as exc:
            errors.append(exc)
        _raise_collected(errors, "upload failed")

    def stor(self, path: str, reader: BinaryIO) -> None:
        """Store the content of ``reader`` as a file."""
        self.stor_from(path, reader, 0)

    def stor_from(self, path: str, reader: BinaryIO, offset: int) -> None:
        """Store the content of ``reader`` starting at ``offset`` in the file."""
        self._upload(f"STOR {path}", reader, offset)

    def append(self, path: str, reader: BinaryIO) -> None:
        """Append the content of ``reader`` to a file, creating it if needed."""
        self._upload(f"APPE {path}", reader, 0)

    def rename(self, from_path: str, to_path: str) -> None:
        """Rename a file."""
        self._control.command(STATUS_REQUEST_FILE_PENDING, f"RNFR {from_path}")
        self._control.command(STATUS_REQUESTED_FILE_ACTION_OK, f"RNTO {to_path}")

    def delete(self, path: str) -> None:
        """Delete a file."""
        self._control.command(STATUS_REQUESTED_FILE_ACTION_OK, f"DELE {path}")

    # -- misc ------------------------------------------------------------

    def noop(self) -> None:
        """Send NOOP, keeping an idle connection alive."""
        self._control.command(STATUS_COMMAND_OK, "NOOP")

    def logout(self) -> None:
        """Log the current user out with REIN."""
        self._control.command(STATUS_READY, "REIN")

    def quit(self) -> None:
        """Send QUIT and close the control connection."""
        errors: list[Exception] = []
        try:
            self._control.send("QUIT")
        except Exception as exc:
            errors.append(exc)
        try:
            self._control.close()
        except Exception as exc:
            errors.append(exc)
        _raise_collected(errors, "quit failed")

    def __enter__(self) -> "ServerConn":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.quit()


def dial(addr: str, options: DialOptions | None = None) -> ServerConn:
    """Connect to the FTP server at ``host:port`` and read its greeting."""
    options = options or DialOptions()
    dial_func: Callable[[str, str], Any] | None = options.dial_func
    host, port = _split_addr(addr) if dial_func is None else (addr, 0)

    if dial_func is not None:
        sock = dial_func("tcp", addr)
    else:
        timeout = options.timeout if options.timeout else DEFAULT_DIAL_TIMEOUT
        timeout = min(timeout, DEFAULT_DIAL_TIMEOUT)
        sock = socket.create_connection((host, port), timeout=timeout, source_address=options.source_address)
        sock.settimeout(None)
        if options.tls_context is not None and not options.explicit_tls:
            sock = options.tls_context.wrap_socket(sock, server_hostname=host)

    try:
        remote_host = sock.getpeername()[0]
    except (OSError, AttributeError, TypeError, IndexError):
        remote_host = host

    client = ServerConn(options, ControlConnection(options.wrap_conn(sock)), sock, remote_host)
    try:
        client._control.read_response(STATUS_READY)
        if options.explicit_tls:
            client._control.command(STATUS_AUTH_OK, "AUTH TLS")
            sock = options.tls_context.wrap_socket(sock, server_hostname=host)
            client._sock = sock
            client._control = ControlConnection(options.wrap_conn(sock))
    except BaseException:
        try:
            client.quit()
        except Exception:
            pass
        raise
    return client


def connect(addr: str) -> ServerConn:
    """Connect with default options."""
    return dial(addr)


def dial_timeout(addr: str, timeout: float) -> ServerConn:
    """Connect, bounding the connection attempt by ``timeout`` seconds."""
    return dial(addr, DialOptions(timeout=timeout))