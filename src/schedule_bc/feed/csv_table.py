"""Generic GTFS table parsing.

Turns the raw text of a GTFS ``.txt`` file into a list of header-keyed
records. Typed extraction happens one layer up, in each entity's
``from_gtfs`` constructor.
"""

from typing import Dict, List

from src.schedule_bc.schedule.domain.errors import ParseError

Record = Dict[str, str]

BOM = "\ufeff"


def _split_fields(line: str) -> List[str]:
    """Split one line on commas that are not inside double quotes.

    A double quote only toggles the quoted state and is never part of a
    value, so ``"x""y"`` reads as ``xy``. Every field is trimmed.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append(''.join(current).strip())
    return fields


def _header_names(line: str) -> List[str]:
    return [name.strip().strip('"').strip() for name in line.lstrip(BOM).split(",")]


def parse_table(text: str) -> List[Record]:
    """Parse delimited text into records keyed by the header row.

    Rows whose field count differs from the header's are dropped.

    Args:
        text: Full contents of a table, header line first.

    Returns:
        One dict per well-formed data row (empty if there is no data row).
    """
    lines = text.split("\n")
    if len(lines) < 2:
        return []

    headers = _header_names(lines[0])
    records: List[Record] = []

    for line in lines[1:]:
        if not line.strip():
            continue
        fields = _split_fields(line)
        if len(fields) != len(headers):
            continue
        records.append(dict(zip(headers, fields)))

    return records


# Operation name used by callers that think of this as "the parser"
parse = parse_table


def decode_table(raw: bytes, name: str) -> str:
    """Decode a table's bytes, dropping a UTF-8 BOM if present."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"{name}: not valid UTF-8 ({e})") from e


def require_columns(text: str, name: str, required: List[str]) -> None:
    """Raise ParseError if a non-empty table lacks any required column."""
    first_line = text.split("\n", 1)[0]
    if not first_line.strip():
        return
    headers = set(_header_names(first_line))
    missing = [col for col in required if col not in headers]
    if missing:
        raise ParseError(f"{name}: missing columns {missing}")
