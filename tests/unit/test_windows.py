from datetime import date

import pytest

from tabular_partitions.windows import (
    MONTH_FORMAT,
    YEAR_FORMAT,
    TimeWindow,
    format_anchor,
    month_window,
    partition_name,
    resolve_partition,
    year_window,
)


def test_year_name_from_prefix_and_anchor():
    window = year_window(2019, "Date")
    assert partition_name("Fact_", window, YEAR_FORMAT) == "Fact_2019"


def test_window_condition_substituted_into_template():
    window = TimeWindow(date(2018, 1, 1), date(2018, 2, 1), "Date")
    resolved = resolve_partition(
        "SELECT * FROM T WHERE {0}", "{0}", window, "Fact_", MONTH_FORMAT
    )
    assert resolved.query == "SELECT * FROM T WHERE Date >= '20180101' AND Date < '20180201'"
    assert resolved.name == "Fact_Jan-2018"


def test_only_first_placeholder_is_replaced():
    window = year_window(2020, "d")
    resolved = resolve_partition("{0} OR {0}", "{0}", window, "", YEAR_FORMAT)
    assert resolved.query == "d >= '20200101' AND d < '20210101' OR {0}"


def test_template_without_placeholder_is_unchanged():
    window = year_window(2020, "d")
    resolved = resolve_partition("SELECT 1", "{0}", window, "P", YEAR_FORMAT)
    assert resolved.query == "SELECT 1"
    assert resolved.name == "P2020"


def test_resolution_is_deterministic():
    window = month_window(2021, 6, "OrderDate")
    first = resolve_partition("SELECT * WHERE {0}", "{0}", window, "F_", MONTH_FORMAT)
    second = resolve_partition("SELECT * WHERE {0}", "{0}", window, "F_", MONTH_FORMAT)
    assert first == second


def test_december_window_ends_next_january():
    window = month_window(2019, 12, "d")
    assert window.start == date(2019, 12, 1)
    assert window.end == date(2020, 1, 1)
    assert window.condition == "d >= '20191201' AND d < '20200101'"


def test_window_requires_start_before_end():
    with pytest.raises(ValueError):
        TimeWindow(date(2020, 1, 1), date(2020, 1, 1), "d")
    with pytest.raises(ValueError):
        TimeWindow(date(2020, 2, 1), date(2020, 1, 1), "d")


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("yyyy", "2019"),
        ("MMM-yyyy", "Sep-2019"),
        ("MMMM yy", "September 19"),
        ("yyyyMMdd", "20190905"),
        ("M/d", "9/5"),
        ("%Y_%m", "2019_09"),
    ],
)
def test_format_anchor_patterns(pattern, expected):
    assert format_anchor(date(2019, 9, 5), pattern) == expected
