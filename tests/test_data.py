import warnings

import pandas as pd
import pytest

from demand_forecast.data import (
    DEFAULT_CATEGORIES,
    locate_columns,
    parse_csv,
    parse_csv_line,
    parse_date,
    parse_value,
    points_to_frame,
)
from demand_forecast.errors import EmptyResultError, FormatError, MissingColumnError


def test_parse_csv_line_splits_and_trims_fields() -> None:
    assert parse_csv_line(" 2023-01-01 , 100 ,Electronics ") == ["2023-01-01", "100", "Electronics"]


def test_parse_csv_line_honours_quotes_and_escaped_quotes() -> None:
    line = 'a,"b,c","say ""hi"""'
    assert parse_csv_line(line) == ["a", "b,c", 'say "hi"']


def test_parse_csv_line_unterminated_quote_consumes_rest_of_line() -> None:
    assert parse_csv_line('a,"b,c') == ["a", "b,c"]


def test_parse_csv_line_keeps_empty_fields() -> None:
    assert parse_csv_line("a,,") == ["a", "", ""]


def test_parse_csv_single_row_succeeds() -> None:
    result = parse_csv("date,value\n2023-01-01,100", False)

    assert result.error is None
    assert len(result.data) == 1
    point = result.data[0]
    assert point.date == pd.Timestamp("2023-01-01")
    assert point.actual == 100.0
    assert point.forecast is None


def test_parse_csv_header_only_is_format_error() -> None:
    result = parse_csv("date,value", False)

    assert result.error == "File must contain headers and at least one row of data"
    assert isinstance(result.failure, FormatError)
    with pytest.raises(FormatError):
        result.raise_for_error()


def test_parse_csv_ignores_blank_lines() -> None:
    result = parse_csv("date,value\r\n\r\n2023-01-01,100\r\n   \n2023-02-01,120\n")

    assert result.ok
    assert [point.actual for point in result.data] == [100.0, 120.0]


def test_parse_csv_missing_date_column() -> None:
    result = parse_csv("month,value\nJan,100")

    assert isinstance(result.failure, MissingColumnError)
    assert result.failure.column == "date"
    assert result.error == "Missing required 'date' column"


def test_parse_csv_missing_value_column() -> None:
    result = parse_csv("date,units\n2023-01-01,100")

    assert isinstance(result.failure, MissingColumnError)
    assert result.failure.column == "value"
    with pytest.raises(FormatError):
        result.raise_for_error()


def test_locate_columns_uses_header_rules() -> None:
    columns = locate_columns(["Region", "Order Date", "Product Line", "Units Quantity"])

    assert columns == {"date": 1, "value": 3, "category": 2}


def test_locate_columns_category_is_optional() -> None:
    columns = locate_columns(["Date", "Sales"])

    assert columns["category"] is None


def test_parse_csv_sorts_by_date_and_reads_category() -> None:
    text = "\n".join(
        [
            "date,sales,category",
            "2023-03-01,300,Beauty",
            "2023-01-01,100,Beauty",
            "2023-02-01,200,Clothing",
        ]
    )
    result = parse_csv(text)

    assert [point.actual for point in result.data] == [100.0, 200.0, 300.0]
    assert [point.category for point in result.data] == ["Beauty", "Clothing", "Beauty"]


def test_parse_csv_rotates_default_categories_by_line_index() -> None:
    text = "date,value\n2023-01-01,1\n2023-02-01,2\n2023-03-01,3"
    result = parse_csv(text)

    expected = [DEFAULT_CATEGORIES[index % len(DEFAULT_CATEGORIES)].name for index in (1, 2, 3)]
    assert [point.category for point in result.data] == expected


def test_parse_csv_skips_bad_rows_without_failing() -> None:
    text = "\n".join(
        [
            "date,value",
            "2023-01-01,100",
            "2023-02-01,100,extra",
            "not-a-date,100",
            "2023-04-01,abc",
            "2023-05-01,$1,250.50",
            '2023-06-01,"$1,250.50"',
        ]
    )
    result = parse_csv(text)

    assert result.ok
    assert [point.actual for point in result.data] == [100.0, 1250.5]
    reasons = [(skip.line_number, skip.reason) for skip in result.skipped]
    assert reasons == [
        (2, "column_count"),
        (3, "invalid_date"),
        (4, "invalid_value"),
        (5, "column_count"),
    ]


def test_parse_csv_reports_no_valid_rows() -> None:
    result = parse_csv("date,value\nbad,1\n2023-01-01,n/a")

    assert result.error == "No valid data rows found"
    assert isinstance(result.failure, EmptyResultError)
    assert len(result.rows) == 2


def test_parse_csv_preview_skips_coercion() -> None:
    result = parse_csv("date,value\n2023-01-01,abc\nbad,1", preview_only=True)

    assert result.error is None
    assert result.headers == ["date", "value"]
    assert result.rows == [["2023-01-01", "abc"], ["bad", "1"]]
    assert result.data == []


def test_parse_csv_preview_still_requires_columns() -> None:
    result = parse_csv("when,value\n2023-01-01,1", preview_only=True)

    assert isinstance(result.failure, MissingColumnError)


def test_parse_date_handles_common_formats() -> None:
    assert parse_date("2023-03-15") == pd.Timestamp("2023-03-15")
    assert parse_date("03/15/2023") == pd.Timestamp("2023-03-15")
    assert parse_date("15/03/2023") == pd.Timestamp("2023-03-15")
    assert parse_date("2023-01-01T00:00:00Z") == pd.Timestamp("2023-01-01")


def test_parse_date_rejects_garbage() -> None:
    assert parse_date("not-a-date") is None
    assert parse_date("") is None
    assert parse_date("99/99/9999") is None


def test_parse_value_strips_currency_and_separators() -> None:
    assert parse_value("$1,234.50") == 1234.5
    assert parse_value("£99") == 99.0
    assert parse_value("€ 7.25") == 7.25
    assert parse_value("-12") == -12.0
    assert parse_value("twelve") is None
    assert parse_value("nan") is None


def test_points_to_frame_columns() -> None:
    result = parse_csv("date,value,category\n2023-01-01,100,Beauty")
    frame = points_to_frame(result.data)

    assert list(frame.columns) == ["date", "actual", "forecast", "category"]
    assert frame.loc[0, "category"] == "Beauty"


def test_parse_value_keeps_leading_number_before_trailing_text() -> None:
    assert parse_value("100 units") == 100.0
    assert parse_value("12.5%") == 12.5
    assert parse_value("$3,000.75 USD") == 3000.75
    assert parse_value(".5kg") == 0.5
    assert parse_value("1e3 items") == 1000.0
    assert parse_value("units 100") is None


def test_parse_csv_keeps_rows_with_unit_suffixes() -> None:
    result = parse_csv("date,value\n2023-01-01,100 units\n2023-02-01,200")

    assert [point.actual for point in result.data] == [100.0, 200.0]
    assert result.skipped == []


def test_parse_date_day_first_does_not_warn() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error", UserWarning)
        assert parse_date("25/12/2023") == pd.Timestamp("2023-12-25")
