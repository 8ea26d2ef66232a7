"""Parsers for the many formats of directory listing lines."""

import re
from datetime import datetime, timedelta, tzinfo

from ftpclient.entry import Entry, EntryType
from ftpclient.scanner import FieldScanner

_UINT64_LIMIT = 1 << 64


class ListParseError(ValueError):
    """A listing line could not be understood."""

    default_message = "invalid LIST line"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class UnsupportedListLine(ListParseError):
    """The line is in none of the known listing formats."""

    default_message = "unsupported LIST line"


class UnsupportedListDate(ListParseError):
    """The date of an ls-style line is malformed."""

    default_message = "unsupported LIST date"


class UnknownListEntryType(ListParseError):
    """The type character of an ls-style line is unknown."""

    default_message = "unknown entry type"


_DIGITS = {
    2: frozenset("01"),
    8: frozenset("01234567"),
    10: frozenset("0123456789"),
    16: frozenset("0123456789abcdefABCDEF"),
}

_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}

_MONTHS = {
    abbr: number
    for number, abbr in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}

_DAY_RE = re.compile(r"[0-9]{1,2}")
_YEAR_RE = re.compile(r"[0-9]{4}")
_CLOCK_RE = re.compile(r"([0-9]{1,2}):([0-9]{2})")
_TIMESTAMP_RE = re.compile(
    r"([0-9]{4})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})(?:[.,]([0-9]+))?"
)

_DIR_TIME_FORMATS = (
    (
        17,
        re.compile(
            r"(?P<month>[0-9]{2})-(?P<day>[0-9]{2})-(?P<year>[0-9]{2})"
            r"  (?P<hour>[0-9]{2}):(?P<minute>[0-9]{2})(?P<ampm>AM|PM)"
        ),
    ),
    (
        17,
        re.compile(
            r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
            r"  (?P<hour>[0-9]{2}):(?P<minute>[0-9]{2})"
        ),
    ),
    (
        19,
        re.compile(
            r"(?P<month>[0-9]{2})-(?P<day>[0-9]{2})-(?P<year>[0-9]{4})"
            r"  (?P<hour>[0-9]{2}):(?P<minute>[0-9]{2})(?P<ampm>AM|PM)"
        ),
    ),
    (
        17,
        re.compile(
            r"(?P<month>[0-9]{2})-(?P<day>[0-9]{2})-(?P<year>[0-9]{4})"
            r"  (?P<hour>[0-9]{2}):(?P<minute>[0-9]{2})"
        ),
    ),
)


def _parse_uint(text: str) -> int:
    """Parse an unsigned 64-bit integer, honouring 0x, 0o, 0b and leading-zero octal."""
    prefix = text[:2].lower()
    if prefix in _PREFIXES:
        base, body, prefixed = _PREFIXES[prefix], text[2:], True
    elif len(text) > 1 and text[0] == "0":
        base, body, prefixed = 8, text[1:], True
    else:
        base, body, prefixed = 10, text, False

    allowed = _DIGITS[base]
    if not body or not all(char in allowed or char == "_" for char in body):
        raise ValueError(f"invalid unsigned integer: {text!r}")
    if prefixed:
        body = body.removeprefix("_")
    try:
        value = int(body, base)
    except ValueError:
        raise ValueError(f"invalid unsigned integer: {text!r}") from None
    if value >= _UINT64_LIMIT:
        raise ValueError(f"unsigned integer out of range: {text!r}")
    return value


def _parse_decimal(text: str) -> int:
    if not text or not all(char in _DIGITS[10] for char in text):
        raise ValueError(f"invalid decimal number: {text!r}")
    value = int(text)
    if value >= _UINT64_LIMIT:
        raise ValueError(f"decimal number out of range: {text!r}")
    return value


def _parse_timestamp(value: str, tz: tzinfo) -> datetime:
    """Parse a YYYYMMDDHHMMSS timestamp with an optional fraction."""
    match = _TIMESTAMP_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"cannot parse {value!r} as a timestamp")
    year, month, day, hour, minute, second = (int(part) for part in match.groups()[:6])
    fraction = match.group(7)
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    try:
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError as exc:
        raise ValueError(f"cannot parse {value!r} as a timestamp: {exc}") from exc


def _ls_datetime(month_text: str, day_text: str, year_text: str, clock_text: str, tz: tzinfo) -> datetime:
    month = _MONTHS.get(month_text.lower())
    clock = _CLOCK_RE.fullmatch(clock_text)
    if (
        month is None
        or clock is None
        or _DAY_RE.fullmatch(day_text) is None
        or _YEAR_RE.fullmatch(year_text) is None
    ):
        raise ValueError(f"cannot parse date {month_text} {day_text} {year_text} {clock_text}")
    try:
        return datetime(
            int(year_text), month, int(day_text), int(clock[1]), int(clock[2]), tzinfo=tz
        )
    except ValueError as exc:
        raise ValueError(
            f"cannot parse date {month_text} {day_text} {year_text} {clock_text}: {exc}"
        ) from exc


def _dir_datetime(text: str, pattern: re.Pattern[str], tz: tzinfo) -> datetime | None:
    match = pattern.fullmatch(text)
    if match is None:
        return None
    parts = match.groupdict()
    year = int(parts["year"])
    if len(parts["year"]) == 2:
        year += 1900 if year >= 69 else 2000
    hour = int(parts["hour"])
    ampm = parts.get("ampm")
    if ampm:
        if hour > 12:
            return None
        if ampm == "PM" and hour < 12:
            hour += 12
        elif ampm == "AM" and hour == 12:
            hour = 0
    try:
        return datetime(
            year, int(parts["month"]), int(parts["day"]), hour, int(parts["minute"]), tzinfo=tz
        )
    except ValueError:
        return None


def _add_date(moment: datetime, years: int = 0, months: int = 0) -> datetime:
    """Shift by calendar years and months, rolling overflowing days forward."""
    total = moment.month - 1 + months
    year = moment.year + years + total // 12
    month = total % 12 + 1
    return moment.replace(year=year, month=month, day=1) + timedelta(days=moment.day - 1)


def set_entry_size(entry: Entry, text: str) -> None:
    """Set the entry size from its textual form."""
    entry.size = _parse_uint(text)


def set_entry_time(entry: Entry, fields: list[str], now: datetime, tz: tzinfo) -> None:
    """Set the entry time from ls-style month, day and time-or-year fields."""
    month_text, day_text, last = fields[0], fields[1], fields[2]
    if ":" in last:
        if now.tzinfo is None:
            now = now.astimezone()
        when = _ls_datetime(month_text, day_text, str(now.year), last, tz)
        # A timestamp shown with a time of day is recent: less than six
        # months old, so anything further ahead belongs to last year.
        if not when < _add_date(now, months=6):
            when = _add_date(when, years=-1)
    else:
        if len(last) != 4:
            raise UnsupportedListDate()
        when = _ls_datetime(month_text, day_text, last, "00:00", tz)
    entry.time = when


def parse_next_rfc3659_list_line(line: str, tz: tzinfo, entry: Entry) -> Entry:
    """Merge one RFC 3659 fact line into ``entry`` and return it."""
    semicolon = line.find(";")
    space = line.find(" ")
    if semicolon < 0 or semicolon > space:
        raise UnsupportedListLine()

    name = line[space + 1:]
    if not entry.name:
        entry.name = name
    elif entry.name != name:
        raise UnsupportedListLine()

    for field in line[: space - 1].split(";"):
        equals = field.find("=")
        if equals < 1:
            raise UnsupportedListLine()
        key = field[:equals].lower()
        value = field[equals + 1:]
        if key == "modify":
            entry.time = _parse_timestamp(value, tz)
        elif key == "type":
            if value in ("dir", "cdir", "pdir"):
                entry.type = EntryType.FOLDER
            elif value == "file":
                entry.type = EntryType.FILE
        elif key == "size":
            set_entry_size(entry, value)
    return entry


def parse_rfc3659_list_line(line: str, now: datetime, tz: tzinfo) -> Entry:
    """Parse a machine-readable listing line as defined in RFC 3659."""
    return parse_next_rfc3659_list_line(line, tz, Entry())


def parse_ls_list_line(line: str, now: datetime, tz: tzinfo) -> Entry:
    """Parse a line in the style of the UNIX ``ls -l`` command."""
    first_space = line.find(" ")
    if not (first_space == 10 or (first_space == 11 and line[10] == "+")):
        raise UnsupportedListLine()

    scanner = FieldScanner(line)
    fields = scanner.next_fields(6)
    if len(fields) < 6:
        raise UnsupportedListLine()

    if fields[1] == "folder" and fields[2] == "0":
        entry = Entry(type=EntryType.FOLDER, name=scanner.remaining())
        set_entry_time(entry, fields[3:6], now, tz)
        return entry

    if fields[1] == "0":
        fields.append(scanner.next())
        entry = Entry(type=EntryType.FILE, name=scanner.remaining())
        try:
            set_entry_size(entry, fields[2])
        except ValueError as exc:
            raise UnsupportedListLine() from exc
        set_entry_time(entry, fields[4:7], now, tz)
        return entry

    fields.extend(scanner.next_fields(2))
    if len(fields) < 8:
        raise UnsupportedListLine()

    entry = Entry(name=scanner.remaining())
    kind = fields[0][0]
    if kind == "-":
        entry.type = EntryType.FILE
        set_entry_size(entry, fields[4])
    elif kind == "d":
        entry.type = EntryType.FOLDER
    elif kind == "l":
        entry.type = EntryType.LINK
        arrow = entry.name.find(" -> ")
        if arrow > 0:
            entry.name, entry.target = entry.name[:arrow], entry.name[arrow + 4:]
    else:
        raise UnknownListEntryType()

    set_entry_time(entry, fields[5:8], now, tz)
    return entry


def parse_dir_list_line(line: str, now: datetime, tz: tzinfo) -> Entry:
    """Parse a line in the style of the MS-DOS ``DIR`` command."""
    entry = Entry()
    failed = False
    for length, pattern in _DIR_TIME_FORMATS:
        if len(line) > length:
            when = _dir_datetime(line[:length], pattern, tz)
            if when is not None:
                entry.time = when
                line = line[length:]
                failed = False
                break
            failed = True
    if failed:
        raise UnsupportedListLine()

    line = line.lstrip(" ")
    if line.startswith("<DIR>"):
        entry.type = EntryType.FOLDER
        line = line.removeprefix("<DIR>")
    else:
        space = line.find(" ")
        if space == -1:
            raise UnsupportedListLine()
        try:
            entry.size = _parse_decimal(line[:space])
        except ValueError as exc:
            raise UnsupportedListLine() from exc
        entry.type = EntryType.FILE
        line = line[space:]

    entry.name = line.lstrip(" ")
    return entry


def parse_hosted_ftp_line(line: str, now: datetime, tz: tzinfo) -> Entry:
    """Parse an ls-style line whose link count is always 0."""
    if line.find(" ") != 10:
        raise UnsupportedListLine()

    scanner = FieldScanner(line)
    fields = scanner.next_fields(2)
    if len(fields) < 2 or fields[1] != "0":
        raise UnsupportedListLine()

    return parse_ls_list_line(f"{fields[0]} 1 {scanner.remaining()}", now, tz)


_LIST_LINE_PARSERS = (
    parse_rfc3659_list_line,
    parse_ls_list_line,
    parse_dir_list_line,
    parse_hosted_ftp_line,
)


def parse_list_line(line: str, now: datetime, tz: tzinfo) -> Entry:
    """Parse a LIST line, trying each known format in turn."""
    for parser in _LIST_LINE_PARSERS:
        try:
            return parser(line, now, tz)
        except UnsupportedListLine:
            continue
    raise UnsupportedListLine()