import csv
import json

from layer3.publish import (
    BODY_PREVIEW_CHARS, calculation_summary, calculations_document, output_dir,
    publish_results, results_document, results_summary, write_json,
)

RECORD = {
    "lottery_type": "hanoi_vip",
    "lottery_name": "ฮานอย VIP",
    "draw_date": "2025-01-16",
    "draw_date_source_text": "16 มกราคม 2568",
    "results": {"top3": "345", "bottom2": "67"},
    "draw_time": "19:30",
}


def test_write_json_keeps_thai_readable(tmp_path):
    path = write_json(tmp_path / "nested" / "out.json", {"name": "หวยออมสิน"})
    raw = path.read_text(encoding="utf-8")
    assert "หวยออมสิน" in raw
    assert raw.startswith("{\n  ")


def test_output_dir_env(monkeypatch, tmp_path):
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path))
    assert output_dir() == tmp_path
    monkeypatch.delenv("OUTPUT_DIR")
    assert output_dir().name == "public"


def test_results_document_with_records():
    doc = results_document("https://exphuay.com/", "2025-01-16T00:00:00.000Z", [RECORD], "sections")
    assert doc["total_lotteries"] == 1
    assert doc["extraction_method"] == "sections"
    assert "debug" not in doc


def test_empty_results_are_flagged_with_debug_block():
    body = "x" * (BODY_PREVIEW_CHARS + 500)
    doc = results_document("https://exphuay.com/", "t", [], "none", body_text=body)
    assert doc["total_lotteries"] == 0
    assert doc["warning"]
    assert doc["debug"]["body_text_length"] == len(body)
    assert len(doc["debug"]["body_preview"]) == BODY_PREVIEW_CHARS


def test_publish_results_writes_json_and_csv(tmp_path):
    doc = results_document("https://exphuay.com/", "t", [RECORD], "sections")
    paths = publish_results(doc, tmp_path)

    saved = json.loads((tmp_path / "lottery_results.json").read_text(encoding="utf-8"))
    assert saved["lotteries"][0]["draw_time"] == "19:30"

    with open(paths["csv"], encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert rows == [{
        "lottery_type": "hanoi_vip", "lottery_name": "ฮานอย VIP", "draw_date": "2025-01-16",
        "draw_time": "19:30", "full_number": "", "top3": "345", "bottom2": "67",
    }]


def test_calculations_document():
    doc = calculations_document("t", [{"lottery": "gsb"}], [{"lottery": "baac", "error": "x"}])
    assert doc["total_lotteries"] == 1
    assert doc["failed"] == [{"lottery": "baac", "error": "x"}]


def test_summaries():
    assert results_summary([]) == ["  ⚠️ No results found"]
    assert results_summary([RECORD]) == ["  - ฮานอย VIP: 345"]

    snap = {
        "lottery_name": "หวยออมสิน",
        "daily_calculation": {"top3": ["043"], "bottom2": [], "running_number": "4",
                              "full_set_number": ""},
        "digit_frequency": {"data": [{}] * 10},
        "statistics_30_draws": {"bottom2": [{}], "top3": []},
    }
    lines = calculation_summary(snap)
    assert lines[1].endswith("043")
    assert lines[2].endswith("N/A")
    assert "10 entries" in lines[5]
