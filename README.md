# ftpclient

A client library for FTP servers (RFC 959). It logs in, lists and walks
directories, downloads and uploads files (including resumed transfers),
renames and deletes, and reads or sets file modification times.

After login the client asks the server what it supports (`FEAT`) and uses
the best command for each job:

- `MLSD`/`MLST` listings (RFC 3659) when the server offers `MLST`, otherwise
  `LIST`, whose lines are understood in UNIX `ls -l`, MS-DOS `DIR` and a few
  other common layouts;
- `EPSV` passive mode, falling back to `PASV` for the rest of the session
  once `EPSV` fails;
- `MDTM` to read file times, and `MFMT` (or vsftpd's writing form of `MDTM`)
  to set them;
- `PRET` when advertised, `OPTS UTF8 ON`, and `PBSZ 0`/`PROT P` when a TLS
  context is given.

It has no dependencies outside the standard library and needs Python 3.11 or
later.

## Installing

```
pip install .
```

## Using it

```python
import io

from ftpclient.client import connect
from ftpclient.entry import EntryType

password = "password"

with connect("ftp.example.com:21") as conn:
    conn.login("anonymous", password)

    conn.change_dir("incoming")
    print(conn.current_dir())

    # Upload, then read it back
    conn.stor("notes.txt", io.BytesIO(b"Just some text"))
    with conn.retr("notes.txt") as response:
        print(response.read())

    # Resume a download from byte 5
    with conn.retr_from("notes.txt", 5) as response:
        print(response.read())

    conn.append("notes.txt", io.BytesIO(b" and more"))
    print(conn.file_size("notes.txt"))

    for entry in conn.list("."):
        kind = "dir " if entry.type is EntryType.FOLDER else "file"
        print(kind, entry.name, entry.size, entry.time)

    print(conn.name_list())

    conn.rename("notes.txt", "old-notes.txt")
    conn.delete("old-notes.txt")
```

Leaving the `with` block sends `QUIT` and closes the connection; `quit()`
does the same by hand. A `Response` from `retr()`/`retr_from()` must be
closed (the `with` block does it), which also reads the end-of-transfer
status from the server.

Other operations on `ServerConn`: `make_dir`, `remove_dir`,
`remove_dir_recur`, `change_dir_to_parent`, `get_entry` (one entry via
`MLST`), `type`, `noop` and `logout`.

### Connection options

`dial(addr, options)` takes a `DialOptions` from `ftpclient.options`:

```python
import ssl
import sys

from ftpclient.client import dial
from ftpclient.options import DialOptions

options = DialOptions(
    timeout=10.0,                       # bound on each connection attempt
    tls_context=ssl.create_default_context(),
    explicit_tls=True,                  # AUTH TLS after the greeting
    disable_epsv=False,
    disable_mlsd=False,
    force_list_hidden=False,            # use "LIST -a"
    writing_mdtm=False,                 # set times with vsftpd's MDTM form
    debug_output=sys.stdout.buffer,     # copy all traffic here
)
conn = dial("ftp.example.com:21", options)
```

Without `explicit_tls`, a `tls_context` makes the control connection TLS from
the start. `location` is the server's time zone for listing dates (UTC by
default), `shut_timeout` bounds the wait for the closing status after a
transfer, and `dial_func(network, address)` replaces the way control and data
connections are opened. `dial_timeout(addr, timeout)` is a shortcut for the
timeout alone.

### Walking a tree

`walk()` returns a `Walker` that visits every file and directory below a
root, depth first. Iterating it yields `(path, entry)` pairs and raises a
listing error, if one happened, at the end. `skip_dir()` keeps it from
descending into the directory just yielded.

```python
for path, entry in conn.walk("/pub"):
    if entry.name == "private":
        conn_walker_skip = True
    print(path)
```

To use `skip_dir()`, drive the walker by hand:

```python
walker = conn.walk("/pub")
while walker.next():
    if walker.stat().name == "private":
        walker.skip_dir()
        continue
    print(walker.path())
if walker.err() is not None:
    raise walker.err()
```

### File times

```python
from datetime import datetime, timezone

if conn.is_get_time_supported():
    print(conn.get_time("notes.txt"))        # aware datetime in UTC

if conn.is_set_time_supported():
    conn.set_time("notes.txt", datetime(2024, 1, 1, tzinfo=timezone.utc))
```

### Errors

A server reply with an unexpected status code raises
`ftpclient.protocol.FTPError`, carrying `code` and `message`. Replies the
client cannot make sense of (a malformed `PASV`, `PWD` or `SIZE` reply)
raise `ValueError`. Where a transfer fails in more than one step (sending,
closing, reading the final status), the failures are raised together as an
`ExceptionGroup`. `ftpclient.status.status_text(code)` gives the RFC 959
wording for a status code.

### Parsing listings yourself

The listing parsers in `ftpclient.parse` work on their own, for example on
saved `LIST` output:

```python
from datetime import datetime, timezone

from ftpclient.parse import parse_list_line

entry = parse_list_line(
    "-rw-r--r--   1 ftp  wheel  718 Aug  7  2015 report.dat",
    datetime.now(timezone.utc),
    timezone.utc,
)
print(entry.name, entry.size, entry.time)
```

Lines that match no known layout raise a subclass of
`ftpclient.parse.ListParseError` (itself a `ValueError`).

## What it does not do

Data connections are passive only; there is no active mode (`PORT`/`EPRT`).
The package is a library: it has no command-line program and no server.

## Running the tests

```
pip install -e ".[test]"
pytest
```