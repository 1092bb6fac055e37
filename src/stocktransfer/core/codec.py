"""Tabular codec for items.csv / transactions.csv.

Overview:
--------
Rows are comma-separated, fields containing a quote, comma or line break are
wrapped in double quotes with inner quotes doubled. Decoding is a single-pass
character scanner tracking an "inside quotes" flag, so quoted fields may span
lines (JSON blobs with embedded newlines survive the round trip).

The codec is pure and stateless: no I/O, no interpretation of cells. Callers
decide what a row means, including dropping rows whose cells are all blank.

Format:
------
```
id,name,boxSizeQuantities,totalValue
1,Boots,"[{""size"":42,""quantity"":3}]",-1
```
"""

from collections.abc import Iterable
from typing import Any

_QUOTE = '"'
_NEEDS_QUOTING = ('"', ",", "\n", "\r")


def escape_field(value: Any) -> str:
    """
    Escape one field for the tabular format.

    Args:
        value: Field value. None renders as an empty field; non-strings are
            converted with ``str``.

    Returns:
        The value, quoted with inner quotes doubled if it contains a quote,
        comma or line break, otherwise unmodified.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    if any(ch in text for ch in _NEEDS_QUOTING):
        return _QUOTE + text.replace(_QUOTE, _QUOTE * 2) + _QUOTE
    return text


def render_row(fields: Iterable[Any]) -> str:
    """
    Render one row, escaping every field and terminating with a line break.

    Args:
        fields: Field values in column order

    Returns:
        Encoded row ending in ``\\n``
    """
    return ",".join(escape_field(f) for f in fields) + "\n"


def parse_table(text: str) -> list[list[str]]:
    """
    Split tabular text into rows of raw cell strings.

    Rules:
    - A quote toggles quoting; ``""`` inside quotes is a literal quote.
    - An unquoted comma closes the current field.
    - An unquoted ``\\n``, ``\\r`` or ``\\r\\n`` closes the current row.
    - A final row without a trailing line break is still returned.

    Args:
        text: Whole table text

    Returns:
        Rows as lists of cell strings. Blank rows are not removed here.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]

        if ch == _QUOTE:
            if in_quotes and i + 1 < length and text[i + 1] == _QUOTE:
                field.append(_QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if not in_quotes and ch == ",":
            row.append("".join(field))
            field = []
            i += 1
            continue

        if not in_quotes and ch in ("\n", "\r"):
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            row.append("".join(field))
            rows.append(row)
            row = []
            field = []
            i += 1
            continue

        field.append(ch)
        i += 1

    if field or row:
        row.append("".join(field))
        rows.append(row)

    return rows


def is_blank_row(cells: list[str]) -> bool:
    """True when every cell of a parsed row is empty or whitespace."""
    return all(not cell.strip() for cell in cells)
