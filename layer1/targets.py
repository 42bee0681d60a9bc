"""Pages scraped by the two runs (results page + per-lottery calculation pages)."""

import os
from dataclasses import dataclass, field

RESULTS_URL = os.getenv("EXPHUAY_URL") or "https://exphuay.com/"


@dataclass(frozen=True)
class CalcSource:
    id: str
    name: str
    source_url: str
    output_file: str
    # CSS selectors for the three screenshot regions:
    # daily calculation, digit frequency, 30-draw statistics.
    # None means a full-page screenshot.
    regions: tuple[str | None, str | None, str | None] = field(default=(None, None, None))

    def image_names(self) -> tuple[str, str, str]:
        return (f"{self.id}_1.png", f"{self.id}_2.png", f"{self.id}_3.png")


CALC_SOURCES: tuple[CalcSource, ...] = (
    CalcSource("gov_thai", "หวยรัฐบาลไทย", "https://exphuay.com/calculate/goverment", "gov_thai.json"),
    CalcSource("lao_pattana", "หวยลาวพัฒนา", "https://exphuay.com/calculate/laosdevelops", "lao_pattana.json"),
    CalcSource("malaysia", "หวยมาเลย์", "https://exphuay.com/calculate/magnum4d", "malaysia.json"),
    CalcSource("baac", "หวยธ.ก.ส.", "https://exphuay.com/calculate/baac", "baac.json"),
    CalcSource("gsb", "หวยออมสิน", "https://exphuay.com/calculate/gsb", "gsb.json"),
)


def calc_sources(limit: int | None = None) -> tuple[CalcSource, ...]:
    if limit is None:
        limit = int(os.getenv("LIMIT", "0") or "0")
    if limit and limit > 0:
        return CALC_SOURCES[:limit]
    return CALC_SOURCES
