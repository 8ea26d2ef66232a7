import io
import socket
import threading
from datetime import datetime, timezone

import pytest

from ftpclient.client import connect, dial, dial_timeout
from ftpclient.entry import EntryType
from ftpclient.options import DialOptions
from ftpclient.protocol import FTPError

TEST_DATA = b"Just some text"


class _DataConn:
    def __init__(self):
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.port = self.listener.getsockname()[1]
        self.conn = None
        self.ready = threading.Event()
        threading.Thread(target=self._accept, daemon=True).start()

    def _accept(self):
        try:
            self.conn, _ = self.listener.accept()
        except OSError:
            return
        self.ready.set()

    def wait(self):
        self.ready.wait(5)

    def close(self):
        self.listener.close()
        if self.conn is not None:
            self.conn.close()


class FtpMock:
    def __init__(self, modtime="no-time"):
        self.modtime = modtime
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.commands = []
        self.last_full = ""
        self.rest = 0
        self.file_cont = b""
        self.data = None
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    @property
    def addr(self):
        host, port = self.listener.getsockname()[:2]
        return f"{host}:{port}"

    def wait(self):
        self.thread.join(5)

    def _send(self, text):
        try:
            self.conn.sendall((text + "\r\n").encode())
        except OSError:
            pass

    def _close_data(self):
        if self.data is not None:
            self.data.close()
            self.data = None

    def _serve(self):
        self.conn, _ = self.listener.accept()
        self.listener.close()
        reader = self.conn.makefile("rb")
        with self.conn:
            self._send("220 FTP Server ready.")
            while True:
                raw = reader.readline()
                if not raw:
                    return
                full = raw.decode().rstrip("\r\n")
                self.last_full = full
                parts = full.split(" ")
                self.commands.append(parts[0])
                if self._handle(parts) is False:
                    return

    def _send_data(self, payload):
        if self.data is None:
            self._send("425 Unable to build data connection")
            return
        self.data.wait()
        self._send("150 Opening data connection")
        self.data.conn.sendall(payload)
        self._send("226 Transfer complete")
        self._close_data()

    def _recv_data(self, append):
        if self.data is None:
            self._send("425 Unable to build data connection")
            return
        self._send("150 please send")
        self.data.wait()
        if not append:
            self.file_cont = b""
        while chunk := self.data.conn.recv(4096):
            self.file_cont += chunk
        self._send("226 Transfer Complete")
        self._close_data()

    def _valid_time(self, text):
        try:
            datetime.strptime(text, "%Y%m%d%H%M%S")
            return True
        except ValueError:
            return False

    def _handle(self, parts):
        cmd = parts[0]
        arg = parts[1] if len(parts) > 1 else ""
        if cmd == "FEAT":
            feats = "211-Features:\r\n FEAT\r\n PASV\r\n EPSV\r\n UTF8\r\n SIZE\r\n MLST\r\n"
            if self.modtime == "std-time":
                feats += " MDTM\r\n MFMT\r\n"
            elif self.modtime == "vsftpd":
                feats += " MDTM\r\n"
            self._send(feats + "211 End")
        elif cmd == "USER":
            self._send("331 Please send your password" if arg == "anonymous" else "530 This FTP server is anonymous only")
        elif cmd == "PASS":
            self._send("230-Hey,\r\nWelcome to my FTP\r\n230 Access granted")
        elif cmd == "TYPE":
            self._send("200 Type set ok")
        elif cmd == "CWD":
            self._send("550 No such file or directory" if arg == "missing-dir" else "250 Directory successfully changed.")
        elif cmd == "DELE":
            self._send("250 File successfully removed.")
        elif cmd == "MKD":
            self._send("257 Directory successfully created.")
        elif cmd == "RMD":
            self._send("550 No such file or directory" if arg == "missing-dir" else "250 Directory successfully removed.")
        elif cmd == "PWD":
            self._send('257 "/incoming"')
        elif cmd == "CDUP":
            self._send("250 CDUP command successful")
        elif cmd == "SIZE":
            self._send("213 42" if arg == "magic-file" else "550 Could not get file size.")
        elif cmd in ("PASV", "EPSV"):
            self._close_data()
            self.data = _DataConn()
            p = self.data.port
            if cmd == "PASV":
                self._send(f"227 Entering Passive Mode (127,0,0,1,{p // 256},{p % 256}).")
            else:
                self._send(f"229 Entering Extended Passive Mode (|||{p}|)")
        elif cmd == "STOR":
            self._recv_data(False)
        elif cmd == "APPE":
            self._recv_data(True)
        elif cmd == "LIST":
            self._send_data(b"-rw-r--r--   1 ftp      wheel           0 Jan 29 10:29 lo\r\ntotal 1")
        elif cmd == "MLSD":
            self._send_data(b"Type=file;Size=0;Modify=20201213202400; lo\r\n")
        elif cmd == "MLST":
            if arg == "multiline-dir":
                self._send("250-File data\r\n Type=dir;Size=0; multiline-dir\r\n Modify=20201213202400; multiline-dir\r\n250 End")
            else:
                self._send("250-File data\r\n Type=file;Size=42;Modify=20201213202400; magic-file\r\n \r\n250 End")
        elif cmd == "NLST":
            self._send_data(b"/incoming")
        elif cmd == "RETR":
            payload = self.file_cont[self.rest:]
            self.rest = 0
            self._send_data(payload)
        elif cmd == "RNFR":
            self._send("350 File or directory exists, ready for destination name")
        elif cmd == "RNTO":
            self._send("250 Rename successful")
        elif cmd == "REST":
            self.rest = int(arg)
            self._send(f"350 Restarting at {arg}.")
        elif cmd == "MDTM":
            if self.modtime == "no-time":
                self._send("500 Unknown command MDTM")
            elif len(parts) == 3 and self.modtime == "vsftpd":
                self._send("213 UTIME OK" if self._valid_time(parts[1]) else "501 Can't get a time stamp")
            elif len(parts) == 2:
                self._send("213 20201213202400")
            else:
                self._send("500 wrong number of arguments")
        elif cmd == "MFMT":
            if self.modtime == "std-time" and len(parts) == 3:
                self._send("213 UTIME OK" if self._valid_time(parts[1]) else "501 Can't get a time stamp")
            else:
                self._send("500 Unknown command MFMT")
        elif cmd == "NOOP":
            self._send("200 NOOP ok.")
        elif cmd == "OPTS":
            self._send("200 OK, UTF-8 enabled" if parts[1:] == ["UTF8", "ON"] else "500 wrong number of arguments")
        elif cmd == "REIN":
            self._send("220 Logged out")
        elif cmd == "QUIT":
            self._send("221 Goodbye.")
            return False
        else:
            self._send(f"500 Unknown command {cmd}.")
        return True


def open_conn(modtime="no-time", **options):
    mock = FtpMock(modtime)
    client = dial(mock.addr, DialOptions(timeout=5, **options))
    client.login("anonymous", "anonymous")
    return mock, client


@pytest.mark.parametrize("disable_epsv", [True, False])
def test_full_session(disable_epsv):
    mock, c = open_conn(disable_epsv=disable_epsv)
    c.noop()
    c.change_dir("incoming")
    assert c.current_dir() == "/incoming"
    c.stor("test", io.BytesIO(TEST_DATA))
    names = [e.name for e in c.list(".")]
    assert names == ["lo"]
    c.rename("test", "tset")

    r = c.retr("tset")
    assert r.read() == TEST_DATA
    r.close()
    r.close()
    assert r.closed

    with c.retr_from("tset", 5) as r:
        assert r.read() == TEST_DATA[5:]

    c.append("tset", io.BytesIO(TEST_DATA))
    with c.retr("tset") as r:
        assert r.read() == TEST_DATA + TEST_DATA

    assert c.file_size("magic-file") == 42
    with pytest.raises(FTPError) as info:
        c.file_size("not-found")
    assert info.value.code == 550

    entry = c.get_entry("magic-file")
    assert (entry.name, entry.size, entry.type) == ("magic-file", 42, EntryType.FILE)
    entry = c.get_entry("multiline-dir")
    assert (entry.name, entry.size, entry.type) == ("multiline-dir", 0, EntryType.FOLDER)
    assert entry.time == datetime(2020, 12, 13, 20, 24, tzinfo=timezone.utc)

    c.delete("tset")
    c.make_dir("mydir")
    c.change_dir("mydir")
    c.change_dir_to_parent()
    assert c.name_list("/") == ["/incoming"]
    c.remove_dir("mydir")
    c.logout()
    c.quit()
    mock.wait()
    with pytest.raises(OSError):
        c.noop()


def test_command_sequence():
    mock, c = open_conn()
    c.quit()
    mock.wait()
    assert mock.commands == ["USER", "PASS", "FEAT", "TYPE", "OPTS", "QUIT"]


def test_connect_and_quit():
    mock = FtpMock()
    c = connect(mock.addr)
    c.quit()
    mock.wait()
    assert mock.commands == ["QUIT"]


def test_wrong_login():
    mock = FtpMock()
    with dial_timeout(mock.addr, 5) as c:
        with pytest.raises(FTPError) as info:
            c.login("zoo2Shia", "password")
    assert info.value.code == 530


def test_timeout_on_closed_port():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(OSError):
        dial_timeout(f"127.0.0.1:{port}", 1)


def test_remove_dir_recur():
    mock, c = open_conn()
    c.remove_dir_recur("testDir")
    c.quit()
    mock.wait()
    assert mock.commands[-5:] == ["DELE", "CDUP", "RMD", "QUIT"][-5:] or "RMD" in mock.commands
    assert mock.commands[-3:] == ["CDUP", "RMD", "QUIT"]


def test_remove_missing_dir_recur():
    mock, c = open_conn()
    with pytest.raises(FTPError):
        c.remove_dir_recur("missing-dir")
    c.quit()
    mock.wait()


def test_list_current_dir_without_trailing_space():
    mock, c = open_conn(disable_mlsd=True)
    entries = c.list("")
    assert mock.last_full == "LIST"
    assert [e.name for e in entries] == ["lo"]
    c.name_list("")
    assert mock.last_full == "NLST"
    c.quit()
    mock.wait()


def test_list_force_hidden():
    mock, c = open_conn(disable_mlsd=True, force_list_hidden=True)
    c.list("")
    assert mock.last_full == "LIST -a"
    c.quit()
    mock.wait()


def test_time_unsupported():
    mock, c = open_conn("no-time")
    assert not c.is_get_time_supported()
    assert not c.is_set_time_supported()
    with pytest.raises(FTPError):
        c.get_time("file1")
    with pytest.raises(FTPError):
        c.set_time("file1", datetime.now(timezone.utc))
    c.quit()
    mock.wait()


def test_time_standard():
    mock, c = open_conn("std-time")
    assert c.is_get_time_supported() and c.is_set_time_supported()
    assert c.get_time("file1") == datetime(2020, 12, 13, 20, 24, tzinfo=timezone.utc)
    c.set_time("file1", datetime.now(timezone.utc))
    assert mock.last_full.startswith("MFMT ")
    c.quit()
    mock.wait()


def test_time_vsftpd_partial():
    mock, c = open_conn("vsftpd")
    assert c.is_get_time_supported()
    assert not c.is_set_time_supported()
    assert c.get_time("file1").year == 2020
    with pytest.raises(FTPError):
        c.set_time("file1", datetime.now(timezone.utc))
    c.quit()
    mock.wait()


def test_time_vsftpd_full():
    mock, c = open_conn("vsftpd", writing_mdtm=True)
    assert c.is_set_time_supported()
    c.set_time("file1", datetime(2021, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    assert mock.last_full == "MDTM 20210102030405 file1"
    c.quit()
    mock.wait()


def test_dial_func_error_propagates():
    error = ConnectionError("dial function was called")

    def failing(network, address):
        raise error

    with pytest.raises(ConnectionError) as info:
        dial("bogus-address", DialOptions(dial_func=failing))
    assert info.value is error


def test_walk_lists_root():
    mock = FtpMock()
    c = connect(mock.addr)
    w = c.walk("/root")
    assert w.root == "/root/"
    assert w.next() is True
    assert w.path() == "/root/lo"
    c.quit()


def test_debug_output_records_traffic():
    buf = io.BytesIO()
    mock, c = open_conn(debug_output=buf)
    c.quit()
    mock.wait()
    text = buf.getvalue()
    assert b"220 FTP Server ready." in text
    assert b"USER anonymous" in text