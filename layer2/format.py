"""
Layer 2 — Canonical output records

Draw results arrive in three shapes:
  SectionDraw  (lane A)  resolved ISO date, numbers under .results
  FlatDraw     (lane B)  raw Thai date phrase, numbers as flat fields
  dict         (vision)  whatever the model returned, numbers at any depth
format_results() maps all of them to one DrawRecord dict:

  lottery_type, lottery_name, draw_date (YYYY-MM-DD | None),
  draw_date_source_text, [draw_time], results{full_number?, top3?, bottom2?}

Calculation snapshots are assembled by build_snapshot() from text-scanned
tables and/or vision readings coerced to the same types.
"""

import re
from datetime import date, datetime, timezone

from dateutil import parser as dateparser

from layer2.calc_tables import MAX_LIST, dedupe_capped
from layer2.catalog import Catalog, DEFAULT_CATALOG
from layer2.text_patterns import FlatDraw, SectionDraw
from layer2.thai_date import BE_OFFSET, BE_THRESHOLD, ISO_RX, normalize_thai_date

RESULT_KEYS = ("full_number", "top3", "bottom2")
RESULT_WIDTHS = {"top3": 3, "bottom2": 2}
LATEST_N_DRAWS = 30
NUMERIC_DATE_RX = re.compile(r"^\s*(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})\s*$")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

# ---------- draw records ----------

def resolve_draw_date(resolved: str | None, source_text: str | None) -> str | None:
    """An already-resolved date wins; the source phrase is only a fallback."""
    if resolved:
        iso = normalize_thai_date(resolved)
        if iso:
            return iso
    return normalize_thai_date(source_text)


def _common_era(year: int) -> int:
    return year - BE_OFFSET if year > BE_THRESHOLD else year


def _coerce_foreign_date(value) -> str | None:
    """Vision replies sometimes use 16/01/2568, 15/01/2024 or 'Jan 15, 2024'."""
    if not value:
        return None
    s = str(value)
    iso = normalize_thai_date(s)
    if iso:
        return iso
    # d/m/yyyy parsed here: dateutil rejects BE-only leap days such as 29/02/2567
    m = NUMERIC_DATE_RX.match(s)
    try:
        if m:
            return date(_common_era(int(m.group(3))), int(m.group(2)), int(m.group(1))).isoformat()
        dt = dateparser.parse(s, dayfirst=True).date()
        return dt.replace(year=_common_era(dt.year)).isoformat()
    except (ValueError, OverflowError):
        return None


def _digits(value, width: int | None = None) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        s = str(value).zfill(width or 0)
    else:
        s = re.sub(r"\D", "", str(value))
    return s or None


def collect_result_fields(obj, found=None) -> dict:
    """First full_number/top3/bottom2 value found at any depth."""
    found = {} if found is None else found
    if isinstance(obj, dict):
        for k in RESULT_KEYS:
            if k not in found and obj.get(k) not in (None, "", []):
                found[k] = obj[k]
        for v in obj.values():
            if isinstance(v, (dict, list)):
                collect_result_fields(v, found)
    elif isinstance(obj, list):
        for v in obj:
            collect_result_fields(v, found)
    return found


def _results(raw: dict, full_width: int | None) -> dict:
    out = {}
    for k in RESULT_KEYS:
        width = full_width if k == "full_number" else RESULT_WIDTHS[k]
        v = _digits(raw.get(k), width)
        if v:
            out[k] = v
    return out


def _record(lottery_type, lottery_name, draw_date, source_text, draw_time, results) -> dict:
    rec = {
        "lottery_type": lottery_type,
        "lottery_name": lottery_name,
        "draw_date": draw_date,
        "draw_date_source_text": source_text or None,
        "results": results,
    }
    if draw_time:
        rec["draw_time"] = draw_time
    return rec


def format_record(candidate, catalog: Catalog = DEFAULT_CATALOG) -> dict | None:
    if isinstance(candidate, SectionDraw):
        lp = catalog.by_id(candidate.lottery_type)
        return _record(
            candidate.lottery_type, candidate.lottery_name,
            resolve_draw_date(candidate.draw_date, candidate.draw_date_source_text),
            candidate.draw_date_source_text, candidate.draw_time,
            _results(collect_result_fields(candidate.results), lp.result_digits if lp else None),
        )

    if isinstance(candidate, FlatDraw):
        lp = catalog.by_id(candidate.lottery_type)
        raw = {k: getattr(candidate, k) for k in RESULT_KEYS}
        return _record(
            candidate.lottery_type, candidate.lottery_name,
            resolve_draw_date(None, candidate.raw_date),
            candidate.raw_date, candidate.draw_time,
            _results(raw, lp.result_digits if lp else None),
        )

    if isinstance(candidate, dict):
        lottery_type = candidate.get("lottery_type") or candidate.get("lottery")
        if not lottery_type or not catalog.knows(str(lottery_type)):
            return None
        lp = catalog.by_id(str(lottery_type))
        date_value = candidate.get("draw_date")
        source_text = candidate.get("draw_date_source_text") or candidate.get("raw_date")
        if date_value and not ISO_RX.match(str(date_value)) and not source_text:
            source_text = str(date_value)
        return _record(
            str(lottery_type),
            candidate.get("lottery_name") or catalog.display_name(str(lottery_type)),
            _coerce_foreign_date(date_value) or resolve_draw_date(None, source_text),
            source_text, candidate.get("draw_time"),
            _results(collect_result_fields(candidate), lp.result_digits if lp else None),
        )

    raise TypeError(f"unsupported draw candidate: {type(candidate).__name__}")


def format_results(candidates, catalog: Catalog = DEFAULT_CATALOG) -> list[dict]:
    out, seen = [], set()
    for c in candidates or []:
        rec = format_record(c, catalog)
        if not rec or not rec["results"]:
            continue
        if rec["lottery_type"] in seen:
            continue
        seen.add(rec["lottery_type"])
        out.append(rec)
    return out

# ---------- calculation snapshots ----------

def _str_list(values, width: int) -> list[str]:
    out = []
    for v in values or []:
        s = _digits(v, width)
        if s and len(s) == width:
            out.append(s)
    return dedupe_capped(out, MAX_LIST)


def _single_digit(value) -> str:
    s = _digits(value, 1)
    return s if s and len(s) == 1 else ""


def _count(value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return 0
    return max(n, 0)


def coerce_daily(data) -> dict:
    data = data if isinstance(data, dict) else {}
    return {
        "top3": _str_list(data.get("top3"), 3),
        "top3_recommended": _str_list(data.get("top3_recommended"), 3),
        "bottom2": _str_list(data.get("bottom2"), 2),
        "bottom2_recommended": _str_list(data.get("bottom2_recommended"), 2),
        "running_number": _single_digit(data.get("running_number")),
        "full_set_number": _single_digit(data.get("full_set_number")),
    }


def coerce_digit_frequency(data) -> list[dict]:
    rows = data.get("data") if isinstance(data, dict) else data
    by_digit = {}
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        d = _single_digit(row.get("digit"))
        if not d or d in by_digit:
            continue
        by_digit[d] = {
            "digit": d,
            "top3_count": _count(row.get("top3_count")),
            "bottom2_count": _count(row.get("bottom2_count")),
            "total": _count(row.get("total")),
        }
    return [by_digit[d] for d in sorted(by_digit, key=int)]


def _count_rows(rows, width: int) -> list[dict]:
    out = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        n = _digits(row.get("number"), width)
        if not n or len(n) != width:
            continue
        out.append({"number": n, "count": _count(row.get("count"))})
    return out


def coerce_statistics(data) -> dict:
    data = data if isinstance(data, dict) else {}
    return {
        "bottom2": _count_rows(data.get("bottom2"), 2),
        "top3": _count_rows(data.get("top3"), 3),
    }


def build_snapshot(source, daily: dict, digit_frequency: list, statistics: dict,
                   methods: dict, fetched_at: str | None = None) -> dict:
    """CalculationSnapshot envelope for one calculation source."""
    used = sorted(set(methods.values()))
    return {
        "lottery": source.id,
        "lottery_name": source.name,
        "source_url": source.source_url,
        "fetched_at": fetched_at or now_iso(),
        "window": {"latest_n_draws": LATEST_N_DRAWS},
        "daily_calculation": daily,
        "digit_frequency": {"data": digit_frequency},
        "statistics_30_draws": {
            "bottom2": statistics.get("bottom2", []),
            "top3": statistics.get("top3", []),
        },
        "extraction_method": dict(methods),
        "notes": "อ่านข้อมูลจาก " + " + ".join(
            {"text": "ข้อความบนหน้าเว็บ", "vision": "รูปภาพด้วย AI Vision"}.get(m, m) for m in used
        ),
    }
