"""Splitting of listing lines into space-separated fields."""


class FieldScanner:
    """Reads fields separated by one or more spaces, left to right."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def next(self) -> str:
        """Return the next field, or an empty string at the end."""
        rest = self._text[self._pos:]
        start = self._pos + len(rest) - len(rest.lstrip(" "))
        end = self._text.find(" ", start)
        if end == -1:
            self._pos = len(self._text)
            return self._text[start:]
        self._pos = end + 1
        return self._text[start:end]

    def next_fields(self, count: int) -> list[str]:
        """Return up to ``count`` further fields, stopping at the end."""
        fields: list[str] = []
        for _ in range(count):
            field = self.next()
            if not field:
                break
            fields.append(field)
        return fields

    def remaining(self) -> str:
        """Return the unread rest of the text."""
        return self._text[self._pos:]