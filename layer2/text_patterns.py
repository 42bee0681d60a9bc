#!/usr/bin/env python3
"""
Layer 2 — Text-pattern extraction from the rendered results page
- Lane A: split the page text into "ผลหวย..." sections, match each card type
- Lane A': time-of-day draws (Hanoi) matched against the whole text
- Lane B: whole-text combined patterns, used only when lane A finds nothing
Pure functions over a text string; the catalog is passed in.
"""

import re
from dataclasses import dataclass, field

from layer2.catalog import Catalog, DEFAULT_CATALOG
from layer2.thai_date import normalize_thai_date

DATE_RX    = re.compile(r"งวด.*?วันที่\s*(\d{1,2}\s+\S+\s+\d{4})")
TOP3_RX    = re.compile(r"3\s*ตัวบน[\s\S]*?(\d{3})")
BOTTOM2_RX = re.compile(r"2\s*ตัวล่าง[\s\S]*?(\d{2})")

# Lane B pattern pieces
_DATE_PART    = r"[\s\S]*?งวด.*?วันที่\s*(\d{1,2}\s+\S+\s+\d{4})"
_TOP3_PART    = r"[\s\S]*?3\s*ตัวบน[\s\S]*?(\d{3})"
_BOTTOM2_PART = r"[\s\S]*?2\s*ตัวล่าง[\s\S]*?(\d{2})"


@dataclass(frozen=True)
class SectionDraw:
    """Lane A record: date already resolved, numbers nested under results."""
    lottery_type: str
    lottery_name: str
    draw_date: str | None
    draw_date_source_text: str | None = None
    draw_time: str | None = None
    results: dict = field(default_factory=dict)


@dataclass(frozen=True)
class FlatDraw:
    """Lane B record: raw Thai date phrase, numbers as flat fields."""
    lottery_type: str
    lottery_name: str
    raw_date: str | None
    full_number: str | None = None
    top3: str | None = None
    bottom2: str | None = None
    draw_time: str | None = None


@dataclass(frozen=True)
class ExtractionOutcome:
    records: list
    method: str  # "sections" | "fallback" | "none"


def _group(rx, text, idx=1):
    m = rx.search(text)
    return m.group(idx) if m else None


def split_sections(text: str, marker: str = "ผลหวย") -> list[str]:
    return [s for s in re.split(f"(?={re.escape(marker)})", text or "") if s]


def extract_sections(text: str, catalog: Catalog = DEFAULT_CATALOG) -> list[SectionDraw]:
    out: list[SectionDraw] = []
    seen = set()

    for section in split_sections(text, catalog.section_marker):
        for lp in catalog.lotteries:
            name_m = lp.name_pattern.search(section)
            if not name_m:
                continue

            date_m = DATE_RX.search(section)
            draw_date = normalize_thai_date(date_m.group(0)) if date_m else None

            full_rx = re.compile(r"ผลรางวัล[\s\S]*?(\d{%d})" % lp.result_digits)
            results = {
                "full_number": _group(full_rx, section),
                "top3": _group(TOP3_RX, section),
                "bottom2": _group(BOTTOM2_RX, section),
            }
            if not any(results.values()):
                continue
            if lp.id in seen:
                continue
            seen.add(lp.id)
            out.append(SectionDraw(
                lottery_type=lp.id,
                lottery_name=name_m.group(0) or lp.id,
                draw_date=draw_date,
                draw_date_source_text=date_m.group(1) if date_m else None,
                results=results,
            ))
    return out


def scan_timed_draws(text: str, catalog: Catalog = DEFAULT_CATALOG, require_header: bool = True) -> list[SectionDraw]:
    """Hanoi-style rows `<name> HH:MM ddd dd` sharing one page-level date."""
    header_rx = catalog.timed_header if require_header else catalog.timed_header_loose
    header = header_rx.search(text or "")
    if require_header and not header:
        return []
    phrase = header.group(1) if header else None
    draw_date = normalize_thai_date(phrase)

    out = []
    for tp in catalog.timed:
        m = tp.pattern.search(text or "")
        if not m:
            continue
        out.append(SectionDraw(
            lottery_type=tp.id,
            lottery_name=tp.name,
            draw_date=draw_date,
            draw_date_source_text=phrase,
            draw_time=m.group(1),
            results={"top3": m.group(2), "bottom2": m.group(3)},
        ))
    return out


def extract_fallback(text: str, catalog: Catalog = DEFAULT_CATALOG) -> list[FlatDraw]:
    """One combined pattern per card type over the whole text."""
    out: list[FlatDraw] = []
    text = text or ""
    for lp in catalog.lotteries:
        if not lp.in_fallback:
            continue
        rx = re.compile(
            lp.name_pattern.pattern + _DATE_PART
            + r"[\s\S]*?ผลรางวัล[\s\S]*?(\d{%d})" % lp.result_digits
            + _TOP3_PART + _BOTTOM2_PART
        )
        m = rx.search(text)
        if m:
            out.append(FlatDraw(
                lottery_type=lp.id,
                lottery_name=lp.label,
                raw_date=m.group(1),
                full_number=m.group(2),
                top3=m.group(3),
                bottom2=m.group(4),
            ))

    for d in scan_timed_draws(text, catalog, require_header=False):
        out.append(FlatDraw(
            lottery_type=d.lottery_type,
            lottery_name=d.lottery_name,
            raw_date=d.draw_date_source_text,
            draw_time=d.draw_time,
            top3=d.results.get("top3"),
            bottom2=d.results.get("bottom2"),
        ))
    return out


def extract_results(text: str, catalog: Catalog = DEFAULT_CATALOG) -> ExtractionOutcome:
    """Lane A (sections + timed rows), else lane B."""
    primary = scan_timed_draws(text, catalog) + extract_sections(text, catalog)
    if primary:
        return ExtractionOutcome(primary, "sections")
    fallback = extract_fallback(text, catalog)
    if fallback:
        return ExtractionOutcome(fallback, "fallback")
    return ExtractionOutcome([], "none")
