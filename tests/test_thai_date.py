import pytest

from layer2.thai_date import THAI_MONTHS, normalize_thai_date


def test_buddhist_era_phrase_to_iso():
    assert normalize_thai_date("15 มกราคม 2567") == "2024-01-15"


@pytest.mark.parametrize("month,num", sorted(THAI_MONTHS.items(), key=lambda kv: kv[1]))
def test_every_month_name(month, num):
    assert normalize_thai_date(f"1 {month} 2568") == f"2025-{num}-01"


def test_day_is_zero_padded_inside_longer_text():
    assert normalize_thai_date("งวดวันที่ 3 มีนาคม 2568 ผลรางวัล") == "2025-03-03"


def test_unknown_month_falls_back_to_january():
    assert normalize_thai_date("15 Foo 2567") == "2024-01-15"


def test_common_era_year_kept():
    assert normalize_thai_date("15 มกราคม 2024") == "2024-01-15"


def test_iso_input_is_unchanged():
    assert normalize_thai_date("2024-01-15") == "2024-01-15"
    assert normalize_thai_date(normalize_thai_date("15 มกราคม 2567")) == "2024-01-15"


@pytest.mark.parametrize("text", [None, "", "ไม่มีวันที่", "15 มกราคม"])
def test_no_phrase_returns_none(text):
    assert normalize_thai_date(text) is None
