"""CSV codec package."""

from expense_tracker.codec.csv_codec import (
    CSV_HEADER,
    CsvDecodeError,
    CsvDecodeResult,
    decode_csv,
    escape_csv_field,
    export_to_csv,
    parse_csv,
)

__all__ = [
    "CSV_HEADER",
    "CsvDecodeError",
    "CsvDecodeResult",
    "decode_csv",
    "escape_csv_field",
    "export_to_csv",
    "parse_csv",
]
