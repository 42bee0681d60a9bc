#!/usr/bin/env python3
"""
Layer 2 — Calculation page tables (rendered text)
- Daily calculation: one forward pass over lines with an explicit section tag
  (NONE / TOP3 / BOTTOM2 / RUNNING / FULL_SET) driven by CalcLayout.transitions()
- Digit frequency table: rows `d top3 bottom2 total` after its heading
- 30-draw statistics: two `{number, count}` tables, each up to the next heading

Header texts live in CalcLayout so a page redesign only touches data.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

MAX_LIST = 15


class Section(str, Enum):
    NONE = "none"
    TOP3 = "top3"
    BOTTOM2 = "bottom2"
    RUNNING = "running"
    FULL_SET = "full_set"


@dataclass(frozen=True)
class HeaderRule:
    text: str
    mode: str          # "exact" | "contains"
    target: Section

    def matches(self, line: str) -> bool:
        if self.mode == "exact":
            return line == self.text
        return self.text in line


@dataclass(frozen=True)
class CalcLayout:
    digit_freq_header: str = "สถิติจำนวนครั้งที่ออก"
    stat30_bottom2_header: str = "สถิติ 2 ตัวล่าง 30 งวดล่าสุด"
    stat30_top3_header: str = "สถิติ 3 ตัวบน 30 งวดล่าสุด"
    # optional phrase that closes the digit-frequency table
    digit_freq_end: str = "สถิติ 30 งวดล่าสุด"
    section_rules: tuple[HeaderRule, ...] = (
        HeaderRule("3 ตัวบน", "exact", Section.TOP3),
        HeaderRule("2 ตัวล่าง", "exact", Section.BOTTOM2),
        HeaderRule("วิ่ง", "exact", Section.RUNNING),
        HeaderRule("เลขวิ่ง", "contains", Section.RUNNING),
        HeaderRule("รูด", "exact", Section.FULL_SET),
        HeaderRule("เลขรูด", "contains", Section.FULL_SET),
    )

    def table_headers(self) -> tuple[str, ...]:
        return (self.digit_freq_header, self.stat30_bottom2_header,
                self.stat30_top3_header, self.digit_freq_end)

    def transitions(self) -> tuple[HeaderRule, ...]:
        """Table headings are checked before list headings."""
        closing = tuple(HeaderRule(h, "contains", Section.NONE) for h in self.table_headers() if h)
        return closing + self.section_rules


DEFAULT_LAYOUT = CalcLayout()


@dataclass
class DailyCalculation:
    top3: list = field(default_factory=list)
    top3_recommended: list = field(default_factory=list)
    bottom2: list = field(default_factory=list)
    bottom2_recommended: list = field(default_factory=list)
    running_number: str = ""
    full_set_number: str = ""

    def is_empty(self) -> bool:
        return not (self.top3 or self.bottom2 or self.running_number or self.full_set_number)

    def as_dict(self) -> dict:
        return {
            "top3": list(self.top3),
            "top3_recommended": list(self.top3_recommended),
            "bottom2": list(self.bottom2),
            "bottom2_recommended": list(self.bottom2_recommended),
            "running_number": self.running_number,
            "full_set_number": self.full_set_number,
        }


@dataclass
class CalculationTables:
    daily: DailyCalculation
    digit_frequency: list
    stats_bottom2: list
    stats_top3: list


# ---------- helpers ----------

def _clean(line: str) -> str:
    return re.sub(r"\s+", " ", line or "").strip()

def fixed_width_tokens(line: str, width: int) -> list[str]:
    """Standalone numbers of exactly `width` digits, all-zero sentinel dropped."""
    toks = re.findall(r"(?<!\d)\d{%d}(?!\d)" % width, line or "")
    return [t for t in toks if t != "0" * width]

def dedupe_capped(values, limit: int = MAX_LIST) -> list:
    return list(dict.fromkeys(values))[:limit]

def next_section(line: str, rules) -> Section | None:
    """Section entered by this line, or None if the line is not a heading."""
    for rule in rules:
        if rule.matches(line):
            return rule.target
    return None


# ---------- daily calculation (state machine) ----------

def scan_daily_calculation(text: str, layout: CalcLayout = DEFAULT_LAYOUT) -> DailyCalculation:
    rules = layout.transitions()
    state = Section.NONE
    top3, bottom2 = [], []
    single = {Section.RUNNING: "", Section.FULL_SET: ""}

    for raw in (text or "").splitlines():
        line = _clean(raw)
        if not line:
            continue

        entered = next_section(line, rules)
        if entered is not None:
            state = entered
            continue

        if state is Section.TOP3:
            top3.extend(fixed_width_tokens(line, 3))
        elif state is Section.BOTTOM2:
            bottom2.extend(fixed_width_tokens(line, 2))
        elif state in single:
            if re.fullmatch(r"\d", line):
                if not single[state]:
                    single[state] = line
                state = Section.NONE

    return DailyCalculation(
        top3=dedupe_capped(top3),
        bottom2=dedupe_capped(bottom2),
        running_number=single[Section.RUNNING],
        full_set_number=single[Section.FULL_SET],
    )


# ---------- whole-text tables ----------

def _table_lines(text: str, header: str, stops) -> list[str]:
    """Lines after the first line containing `header`, up to a stop phrase."""
    lines = [_clean(x) for x in (text or "").splitlines()]
    start = next((i for i, ln in enumerate(lines) if header and header in ln), None)
    if start is None:
        return []
    body = []
    for ln in lines[start + 1:]:
        if any(s and s in ln for s in stops):
            break
        if ln:
            body.append(ln)
    return body

def _int_token(tok: str) -> int | None:
    t = tok.replace(",", "")
    return int(t) if t.isdigit() else None

def scan_digit_frequency(text: str, layout: CalcLayout = DEFAULT_LAYOUT) -> list[dict]:
    stops = [h for h in layout.table_headers() if h != layout.digit_freq_header]
    rows = {}
    for ln in _table_lines(text, layout.digit_freq_header, stops):
        toks = ln.split()
        if not toks or not re.fullmatch(r"\d", toks[0]):
            continue
        counts = [_int_token(t) for t in toks[1:4]]
        if len(counts) < 3 or any(c is None for c in counts):
            continue
        if toks[0] in rows:
            continue
        rows[toks[0]] = {
            "digit": toks[0],
            "top3_count": counts[0],
            "bottom2_count": counts[1],
            "total": counts[2],
        }
    return [rows[d] for d in sorted(rows, key=int)]

def _count_rows(lines, width: int) -> list[dict]:
    out = []
    for ln in lines:
        toks = ln.split()
        if len(toks) < 2 or not re.fullmatch(r"\d{%d}" % width, toks[0]):
            continue
        count = _int_token(toks[1])
        if count is None:
            continue
        out.append({"number": toks[0], "count": count})
    return out

def scan_statistics_30(text: str, layout: CalcLayout = DEFAULT_LAYOUT) -> dict:
    headers = layout.table_headers()
    b_stops = [h for h in headers if h != layout.stat30_bottom2_header]
    t_stops = [h for h in headers if h != layout.stat30_top3_header]
    return {
        "bottom2": _count_rows(_table_lines(text, layout.stat30_bottom2_header, b_stops), 2),
        "top3": _count_rows(_table_lines(text, layout.stat30_top3_header, t_stops), 3),
    }

def extract_calculation(text: str, layout: CalcLayout = DEFAULT_LAYOUT) -> CalculationTables:
    stats = scan_statistics_30(text, layout)
    return CalculationTables(
        daily=scan_daily_calculation(text, layout),
        digit_frequency=scan_digit_frequency(text, layout),
        stats_bottom2=stats["bottom2"],
        stats_top3=stats["top3"],
    )
