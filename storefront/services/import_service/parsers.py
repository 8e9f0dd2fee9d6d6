"""CSV tokenizing for product imports."""

import csv
import io
import logging
from collections.abc import Iterator

from storefront.schemas.import_schemas import RawRow

from .constants import MAX_ROWS
from .errors import EmptyCsvError

logger = logging.getLogger(__name__)


def _is_blank(record: list[str]) -> bool:
    """A physical blank line comes back from csv.reader as [] or one empty cell."""
    return len(record) <= 1 and not "".join(record).strip()


def _records(text: str) -> Iterator[tuple[list[str], int]]:
    """Yield (record, 1-based line where it ends) for every CSV record.

    Records are read strictly. One that breaks the quoting rules is re-read
    leniently on its own; if that swallows everything up to the end of the
    file, its quote was never closed and only its first physical line is kept.
    """
    lines = io.StringIO(text).readlines()
    start = 0
    while start < len(lines):
        reader = csv.reader(lines[start:], skipinitialspace=True, strict=True)
        consumed = 0
        try:
            for record in reader:
                consumed = reader.line_num
                yield record, start + consumed
            return
        except csv.Error:
            start += consumed

        lenient = csv.reader(lines[start:], skipinitialspace=True)
        record = next(lenient)
        end = start + lenient.line_num
        if end == len(lines) and lenient.line_num > 1:
            logger.warning("Unterminated quote on line %d, reading that line on its own", start + 1)
            record = next(csv.reader([lines[start].rstrip("\r\n")], skipinitialspace=True))
            end = start + 1
        yield record, end
        start = end


def parse_csv(text: str) -> tuple[list[str], list[RawRow]]:
    """Parse raw CSV text into headers and padded data rows.

    Quoted fields may contain commas, newlines and doubled ("") quotes. Cells
    are trimmed after unquoting and short rows are right-padded with empty
    strings so every row is at least as wide as the header. A quote left open
    damages only the line it starts on.

    Args:
        text: Decoded CSV content.

    Returns:
        Tuple of (headers, rows).

    Raises:
        EmptyCsvError: If there is no header row.
        ValueError: If the file has more than MAX_ROWS data rows.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    headers: list[str] | None = None
    rows: list[RawRow] = []
    for record, line in _records(text):
        if _is_blank(record):
            continue
        cells = [cell.strip() for cell in record]
        if headers is None:
            headers = cells
            continue
        if len(rows) >= MAX_ROWS:
            raise ValueError(f"CSV has more than {MAX_ROWS} data rows; split the file")
        if len(cells) < len(headers):
            cells.extend([""] * (len(headers) - len(cells)))
        rows.append(RawRow(cells=cells, line=line))

    if not headers or not any(headers):
        raise EmptyCsvError("CSV file is empty or invalid.")

    return headers, rows


def decode_csv(file_content: bytes) -> str:
    """Decode uploaded CSV bytes. Tries UTF-8 first, falls back to Latin-1."""
    try:
        return file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return file_content.decode("latin-1")
