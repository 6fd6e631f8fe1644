"""
CSV Interchange

Decode pasted CSV-ish text into import rows, and encode expenses back
to CSV for backup.

DESIGN DECISION: Decoding is best-effort. Spreadsheet exports and
hand-typed text are messy, so a bad row is skipped rather than failing
the whole paste. Only input that isn't text at all raises.

Format (both directions):
    date,category,note,amount
    2024-01-15,food,"Lunch, with team",80

Round trip keeps amount, category and note. Time of day is not kept:
imported rows land at local noon on their calendar day, which keeps
them on the same day whatever the UTC offset.
"""

import math
import re
from datetime import date, datetime, tzinfo
from typing import Iterable, Iterator, Optional

import structlog
from pydantic import BaseModel, Field

from expense_tracker.models.expense import Expense, ExpenseCategory, ImportRow


logger = structlog.get_logger(__name__)

CSV_HEADER = "date,category,note,amount"
IMPORT_NOTE_PLACEHOLDER = "Imported"
MIN_FIELDS = 4

_AMOUNT_JUNK = re.compile(r"[^0-9.\-]")
_NUMBER_PREFIX = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")

# Non-ISO layouts people paste from banks and spreadsheets
_DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


class CsvDecodeError(ValueError):
    """The input could not be read as CSV text at all."""
    pass


class CsvDecodeResult(BaseModel):
    """Decoded rows plus how many data lines were dropped."""

    rows: list[ImportRow] = Field(default_factory=list)
    skipped: int = 0


# =============================================================================
# DECODE
# =============================================================================

def _parse_date(text: str, tz: Optional[tzinfo]) -> Optional[date]:
    """Calendar date of a date string, or None if it isn't one."""
    text = text.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(tz)
        return parsed.date()

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _local_noon(day: date, tz: Optional[tzinfo]) -> datetime:
    noon = datetime(day.year, day.month, day.day, 12, 0, 0)
    if tz is None:
        return noon.astimezone()
    return noon.replace(tzinfo=tz)


def _parse_amount(text: str) -> int:
    """
    Whole-unit amount from a currency-ish string.

    Everything but digits, dot and minus is dropped, the leading number
    is read and rounded half up. Unreadable or out-of-range input
    gives 0.
    """
    match = _NUMBER_PREFIX.match(_AMOUNT_JUNK.sub("", text))
    if not match:
        return 0
    value = float(match.group(0))
    if not math.isfinite(value):
        return 0
    return math.floor(value + 0.5)


def _parse_note(fields: list[str]) -> str:
    note = ",".join(fields[2:-1]).strip()
    if len(fields) > MIN_FIELDS:
        # Reassembled from unquoted comma fragments
        if note.startswith('"'):
            note = note[1:]
        if note.endswith('"'):
            note = note[:-1]
        note = note.strip()
    return note


def _tokenize(text: str) -> tuple[list[tuple[int, list[str]]], bool]:
    """
    Split text into (start offset, trimmed fields) records.

    A double quote toggles quoting; inside quotes "" is a literal quote
    and commas or line breaks don't split. The flag is True when the
    text ended with a quote still open.
    """
    records: list[tuple[int, list[str]]] = []
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    start = 0
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if ch == '"':
            if in_quotes and text[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        elif ch in "\r\n" and not in_quotes:
            fields.append("".join(current).strip())
            records.append((start, fields))
            fields, current = [], []
            if ch == "\r" and text[i + 1:i + 2] == "\n":
                i += 1
            start = i + 1
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    records.append((start, fields))
    return records, in_quotes


def _records(text: str) -> Iterator[list[str]]:
    """Records of trimmed fields, blank records skipped."""
    records, unterminated = _tokenize(text)
    if unterminated:
        # A stray quote swallowed the rest of the text: keep it to its own line
        start, _ = records.pop()
        for line in _LINE_BREAK.split(text[start:]):
            records.extend(_tokenize(line)[0])

    for _, fields in records:
        if any(fields):
            yield fields


def _is_header(fields: list[str]) -> bool:
    line = ",".join(fields).lower()
    return "date" in line and "category" in line


def decode_csv(
    text: str,
    tz: Optional[tzinfo] = None,
    note_placeholder: str = IMPORT_NOTE_PLACEHOLDER,
) -> CsvDecodeResult:
    """
    Decode CSV text into import rows, counting the data lines dropped.

    Args:
        text: Pasted CSV text, with or without a header line
        tz: Zone whose noon the rows are placed at (default: local zone)
        note_placeholder: Note used when a row has none

    Raises:
        CsvDecodeError: If the input is not text
    """
    if not isinstance(text, str):
        raise CsvDecodeError(
            f"CSV input must be text, got {type(text).__name__}"
        )

    result = CsvDecodeResult()

    for position, fields in enumerate(_records(text)):
        if position == 0 and _is_header(fields):
            continue

        if len(fields) < MIN_FIELDS:
            result.skipped += 1
            continue

        day = _parse_date(fields[0], tz)
        amount = _parse_amount(fields[-1])
        if day is None or amount <= 0:
            result.skipped += 1
            continue

        result.rows.append(ImportRow(
            date=_local_noon(day, tz),
            category=ExpenseCategory.match(fields[1]),
            note=_parse_note(fields) or note_placeholder,
            amount=amount,
        ))

    if result.skipped:
        logger.debug("csv_rows_skipped", skipped=result.skipped, kept=len(result.rows))
    return result


def parse_csv(text: str, tz: Optional[tzinfo] = None) -> list[ImportRow]:
    """Decode CSV text into import rows, in input order."""
    return decode_csv(text, tz=tz).rows


# =============================================================================
# ENCODE
# =============================================================================

def escape_csv_field(value: str) -> str:
    """Quote a field only when it holds a comma, quote or line break."""
    if any(ch in value for ch in (",", '"', "\n", "\r")):
        return '"' + value.replace('"', '""') + '"'
    return value


def export_to_csv(expenses: Iterable[Expense]) -> str:
    """Encode expenses as CSV text, in the order given."""
    lines = [CSV_HEADER]
    for expense in expenses:
        lines.append(",".join((
            expense.created_at.isoformat()[:10],
            expense.category.value,
            escape_csv_field(expense.note),
            str(expense.amount),
        )))
    return "\n".join(lines)
