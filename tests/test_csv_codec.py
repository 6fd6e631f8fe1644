"""
Tests for CSV decode and encode.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from expense_tracker.codec import (
    CSV_HEADER,
    CsvDecodeError,
    decode_csv,
    escape_csv_field,
    export_to_csv,
    parse_csv,
)
from expense_tracker.models.expense import Expense, ExpenseCategory


UTC = timezone.utc


def _expense(note: str, amount: int = 10, category=ExpenseCategory.FOOD, day: int = 15) -> Expense:
    return Expense(
        id=f"id-{day}-{amount}",
        amount=amount,
        category=category,
        note=note,
        created_at=datetime(2024, 1, day, 9, 30, tzinfo=UTC),
    )


class TestParseCsv:
    """Tests for decoding pasted CSV text."""

    def test_header_and_single_row(self):
        """Test the canonical example with a header line."""
        rows = parse_csv("date,category,note,amount\n2024-01-15,food,Lunch,80")

        assert len(rows) == 1
        row = rows[0]
        assert row.category == ExpenseCategory.FOOD
        assert row.note == "Lunch"
        assert row.amount == 80
        assert row.date.date() == date(2024, 1, 15)
        assert (row.date.hour, row.date.minute) == (12, 0)
        assert row.date.tzinfo is not None

    def test_explicit_zone_noon(self):
        plus_nine = timezone(timedelta(hours=9))
        [row] = parse_csv("2024-01-15,food,Lunch,80", tz=plus_nine)
        assert row.date == datetime(2024, 1, 15, 12, 0, tzinfo=plus_nine)

    def test_unknown_category_falls_back(self):
        [row] = parse_csv("2024-01-15,unknowncat,X,10", tz=UTC)
        assert row.category == ExpenseCategory.OTHERS

    def test_category_case_insensitive(self):
        [row] = parse_csv("2024-01-15,GROCERIES,Veg,10", tz=UTC)
        assert row.category == ExpenseCategory.GROCERIES

    def test_too_few_fields_skipped(self):
        assert parse_csv("garbage,garbage") == []

    def test_header_detection_is_case_insensitive(self):
        rows = parse_csv("Date,Category,Note,Amount\n2024-01-15,food,Tea,3", tz=UTC)
        assert len(rows) == 1

    def test_without_header_first_line_is_data(self):
        rows = parse_csv("2024-01-15,food,Tea,3\n2024-01-16,food,Coffee,4", tz=UTC)
        assert [r.note for r in rows] == ["Tea", "Coffee"]

    def test_blank_lines_and_crlf(self):
        text = "date,category,note,amount\r\n\r\n2024-01-15,food,Tea,3\r\n   \r\n2024-01-16,food,Bun,2\r\n"
        rows = parse_csv(text, tz=UTC)
        assert [r.amount for r in rows] == [3, 2]

    def test_quoted_note_with_comma(self):
        [row] = parse_csv('2024-01-15,food,"Lunch, with team",80', tz=UTC)
        assert row.note == "Lunch, with team"
        assert row.amount == 80

    def test_unquoted_commas_rejoined_into_note(self):
        """Test that stray commas in an unquoted note don't lose text."""
        [row] = parse_csv("2024-01-15,food,Lunch, with team,80", tz=UTC)
        assert row.note == "Lunch,with team"
        assert row.amount == 80

    def test_fields_trimmed(self):
        [row] = parse_csv("  2024-01-15 ,  food , Tea ,  3  ", tz=UTC)
        assert (row.category, row.note, row.amount) == (ExpenseCategory.FOOD, "Tea", 3)

    def test_amount_cleanup_and_rounding(self):
        rows = parse_csv(
            "2024-01-15,food,A,$12.50\n"
            "2024-01-15,food,B,7.4 USD\n"
            "2024-01-15,food,C,¥99",
            tz=UTC,
        )
        assert [r.amount for r in rows] == [13, 7, 99]

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", "", "0.4"])
    def test_non_positive_amount_dropped(self, amount):
        assert parse_csv(f"2024-01-15,food,X,{amount}", tz=UTC) == []

    def test_invalid_date_dropped(self):
        assert parse_csv("2024-13-45,food,X,10\nyesterday,food,Y,10", tz=UTC) == []

    @pytest.mark.parametrize("text", [
        "2024/01/15",
        "01/15/2024",
        "Jan 15 2024",
        "January 15, 2024",
        "15 Jan 2024",
        "2024-01-15T08:30:00",
    ])
    def test_other_date_layouts(self, text):
        [row] = parse_csv(f'"{text}",food,X,10', tz=UTC)
        assert row.date.date() == date(2024, 1, 15)

    def test_offset_timestamp_uses_local_calendar_day(self):
        """Test that an instant is placed on its day in the target zone."""
        minus_five = timezone(timedelta(hours=-5))
        [row] = parse_csv("2024-01-15T02:00:00Z,food,X,10", tz=minus_five)
        assert row.date.date() == date(2024, 1, 14)

    def test_empty_note_gets_placeholder(self):
        [row] = parse_csv("2024-01-15,food,,10", tz=UTC)
        assert row.note == "Imported"

    def test_order_preserved(self):
        text = "\n".join([
            "2024-03-01,food,C,3",
            "bad line",
            "2024-01-01,food,A,1",
            "2024-02-01,food,B,2",
        ])
        assert [r.note for r in parse_csv(text, tz=UTC)] == ["C", "A", "B"]

    def test_decode_counts_skipped_lines(self):
        text = "date,category,note,amount\n2024-01-15,food,Tea,3\nnope\n2024-01-15,food,Zero,0"
        result = decode_csv(text, tz=UTC)
        assert len(result.rows) == 1
        assert result.skipped == 2

    def test_custom_placeholder(self):
        result = decode_csv("2024-01-15,food,,10", tz=UTC, note_placeholder="Bank")
        assert result.rows[0].note == "Bank"

    def test_non_text_input_raises(self):
        with pytest.raises(CsvDecodeError, match="must be text"):
            parse_csv(b"2024-01-15,food,X,10")

    def test_quoted_field_may_span_lines(self):
        [row] = parse_csv('2024-01-15,food,"first\nsecond",10', tz=UTC)
        assert row.note == "first\nsecond"

    def test_doubled_quotes_inside_quotes(self):
        [row] = parse_csv('2024-01-15,food,"say ""hi""",10', tz=UTC)
        assert row.note == 'say "hi"'

    def test_stray_quote_only_costs_its_own_line(self):
        """Test that an unclosed quote doesn't swallow the rows after it."""
        text = '2024-01-15,food,5" cable,10\n2024-01-16,food,Lunch,20\n2024-01-17,food,Dinner,30'

        result = decode_csv(text, tz=UTC)

        assert [(r.note, r.amount) for r in result.rows] == [("Lunch", 20), ("Dinner", 30)]
        assert result.skipped == 1

    def test_stray_quote_after_header(self):
        text = 'date,category,note,amount\n2024-01-15,food,ok,1\n2024-01-16,food,"oops,2\n2024-01-17,food,fine,3'
        assert [r.note for r in parse_csv(text, tz=UTC)] == ["ok", "fine"]

    def test_huge_amount_skips_row(self):
        text = "2024-01-15,food,Tea,3\n2024-01-16,food,big," + "9" * 400

        result = decode_csv(text, tz=UTC)

        assert [r.note for r in result.rows] == ["Tea"]
        assert result.skipped == 1


class TestExportToCsv:
    """Tests for encoding expenses."""

    def test_header_only_for_empty_list(self):
        assert export_to_csv([]) == CSV_HEADER

    def test_lines_in_list_order(self):
        text = export_to_csv([_expense("Late", day=20), _expense("Early", day=2)])
        assert text.split("\n") == [
            "date,category,note,amount",
            "2024-01-20,food,Late,10",
            "2024-01-02,food,Early,10",
        ]

    def test_no_trailing_newline(self):
        assert not export_to_csv([_expense("x")]).endswith("\n")

    @pytest.mark.parametrize("note,expected", [
        ("plain", "plain"),
        ("a,b", '"a,b"'),
        ('say "hi"', '"say ""hi"""'),
        ("two\nlines", '"two\nlines"'),
        ("", ""),
    ])
    def test_note_escaping(self, note, expected):
        assert escape_csv_field(note) == expected


class TestRoundTrip:
    """Tests for export followed by import."""

    def test_round_trip_keeps_amount_category_note(self):
        expenses = [
            _expense("Lunch", amount=80, day=15),
            _expense("Bus, return", amount=3, category=ExpenseCategory.TRANSPORTATION, day=14),
            _expense('The "good" soap', amount=12, category=ExpenseCategory.NECESSITIES, day=13),
            _expense("Line one\nline two", amount=45, category=ExpenseCategory.SHOPPING, day=12),
        ]

        rows = parse_csv(export_to_csv(expenses), tz=UTC)

        assert [(r.amount, r.category, r.note) for r in rows] == [
            (e.amount, e.category, e.note) for e in expenses
        ]
        assert [r.date.date() for r in rows] == [e.created_at.date() for e in expenses]
        assert all(r.date.hour == 12 for r in rows)

    @pytest.mark.parametrize("tz", [
        timezone(timedelta(hours=9)),
        timezone(timedelta(hours=-5)),
        None,
    ])
    def test_round_trip_lands_on_exported_day_at_local_noon(self, tz):
        """Test that any zone re-imports on the exported (UTC) date at its own noon."""
        expenses = [_expense("Lunch", amount=80, day=15), _expense("Bus", amount=3, day=14)]

        rows = parse_csv(export_to_csv(expenses), tz=tz)

        assert [r.date.date() for r in rows] == [date(2024, 1, 15), date(2024, 1, 14)]
        for row in rows:
            assert (row.date.hour, row.date.minute) == (12, 0)
            assert row.date.utcoffset() is not None
            if tz is not None:
                assert row.date.utcoffset() == tz.utcoffset(None)

    def test_export_writes_utc_day(self):
        """Test that a late-evening expense west of UTC exports the UTC date."""
        minus_five = timezone(timedelta(hours=-5))
        late_evening = Expense(
            id="late",
            amount=9,
            category=ExpenseCategory.FOOD,
            created_at=datetime(2024, 1, 15, 23, 30, tzinfo=minus_five),
        )

        line = export_to_csv([late_evening]).split("\n")[1]
        [row] = parse_csv(export_to_csv([late_evening]), tz=minus_five)

        assert line == "2024-01-16,food,,9"
        assert row.date == datetime(2024, 1, 16, 12, 0, tzinfo=minus_five)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
