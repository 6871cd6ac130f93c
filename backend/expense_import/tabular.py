"""
Tabular parsing for uploaded expense files.

Turns the raw bytes of a delimited text file into a SourceTable: the first
non-empty line is the header, blank lines are skipped and every cell is
stripped of surrounding whitespace.
"""

import csv
import io
import logging
from typing import Dict, List, Optional, Union

from .errors import ParseError
from .models import SourceTable

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = [",", ";", "\t", "|"]


def decode_upload(data: Union[bytes, str]) -> str:
    """Decode uploaded bytes as UTF-8, dropping a leading byte order mark."""
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(
            "File encoding error. Please ensure the file is UTF-8 encoded"
        ) from exc


def detect_delimiter(text: str) -> str:
    """
    Guess the delimiter from the first non-empty line.

    Counts each candidate outside quoted sections and picks the most frequent
    one; a file with none of them is treated as comma separated.
    """
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    counts = {d: 0 for d in CANDIDATE_DELIMITERS}
    in_quotes = False
    for char in first_line:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in counts:
            counts[char] += 1

    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] else ","


def _unique_headers(raw_headers: List[str]) -> List[str]:
    headers: List[str] = []
    used = set()
    suffixes: Dict[str, int] = {}
    for position, raw in enumerate(raw_headers, start=1):
        base = raw.strip() or f"column_{position}"
        name = base
        # A suffixed name may collide with a later raw header, so every
        # emitted name is recorded
        while name in used:
            suffixes[base] = suffixes.get(base, 1) + 1
            name = f"{base} ({suffixes[base]})"
        used.add(name)
        headers.append(name)
    return headers


def parse_table(
    data: Union[bytes, str], delimiter: Optional[str] = None
) -> SourceTable:
    """
    Parse a delimited text file with a header row.

    Args:
        data: Raw file contents as bytes (UTF-8) or already decoded text
        delimiter: Column separator; detected from the header line when omitted

    Returns:
        SourceTable whose rows all carry exactly the header columns

    Raises:
        ParseError: If the file has no header, no data rows, or a malformed
            quoted field
    """
    text = decode_upload(data)
    delimiter = delimiter or detect_delimiter(text)

    reader = csv.reader(
        io.StringIO(text, newline=""), delimiter=delimiter, strict=True
    )

    headers: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    try:
        for record in reader:
            cells = [cell.strip() for cell in record]
            if not any(cells):
                continue
            if headers is None:
                headers = _unique_headers(cells)
                continue
            # Pad short rows, ignore cells beyond the header
            cells = cells + [""] * (len(headers) - len(cells))
            rows.append(dict(zip(headers, cells)))
    except csv.Error as exc:
        raise ParseError(
            f"Malformed CSV near line {reader.line_num}: {exc}"
        ) from exc

    if headers is None:
        raise ParseError("File is empty")
    if not rows:
        raise ParseError("File contains a header row but no data rows")

    logger.debug(
        "Parsed %d rows with %d columns (delimiter %r)",
        len(rows),
        len(headers),
        delimiter,
    )
    return SourceTable(headers=headers, rows=rows)
