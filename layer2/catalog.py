"""
Lottery-type catalog for the exphuay results page.

Each card type is detected by its heading ("ผลหวย...") and carries the width
of its main result number. Time-of-day types (Hanoi) are matched by their
own `<name> HH:MM ddd dd` rows. Extra or replacement card types can be
dropped into layer2/adapters/*.yaml:

    id: lao_vip
    name_pattern: ผลหวยลาว VIP
    label: หวยลาว VIP
    result_digits: 6
    in_fallback: false
"""

import re
import pathlib
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class LotteryPattern:
    id: str
    name_pattern: re.Pattern
    result_digits: int
    label: str
    in_fallback: bool = True


@dataclass(frozen=True)
class TimedPattern:
    id: str
    name: str
    pattern: re.Pattern  # groups: time, top3, bottom2


@dataclass(frozen=True)
class Catalog:
    lotteries: tuple[LotteryPattern, ...]
    timed: tuple[TimedPattern, ...]
    section_marker: str = "ผลหวย"
    # shared date of the timed draws, strict (needs the section heading) and loose
    timed_header: re.Pattern = re.compile(r"ผลสามนอย[\s\S]*?ประจำ.*?วันที่\s*(\d{1,2}\s+\S+\s+\d{4})")
    timed_header_loose: re.Pattern = re.compile(r"ประจำ.*?งวด.*?วันที่\s*(\d{1,2}\s+\S+\s+\d{4})")

    def by_id(self, lottery_id: str) -> LotteryPattern | None:
        for lp in self.lotteries:
            if lp.id == lottery_id:
                return lp
        return None

    def knows(self, lottery_id: str) -> bool:
        return self.by_id(lottery_id) is not None or any(tp.id == lottery_id for tp in self.timed)

    def display_name(self, lottery_id: str) -> str:
        lp = self.by_id(lottery_id)
        if lp:
            return lp.label
        for tp in self.timed:
            if tp.id == lottery_id:
                return tp.name
        return lottery_id


def _lottery(id, name_rx, digits, label, in_fallback=True):
    return LotteryPattern(id, re.compile(name_rx), digits, label, in_fallback)


def _timed(id, name, name_rx):
    return TimedPattern(id, name, re.compile(name_rx + r"\s*(\d{1,2}:\d{2})\s*(\d{3})\s*(\d{2})"))


DEFAULT_CATALOG = Catalog(
    lotteries=(
        _lottery("thai_government", r"ผลหวยรัฐบาลไทย", 6, "หวยรัฐบาลไทย"),
        _lottery("malaysia",        r"ผลหวยมาเลย์",     4, "หวยมาเลย์"),
        _lottery("gsb",             r"ผลหวยออมสิน",     3, "หวยออมสิน"),
        _lottery("baac",            r"ผลหวยธ\.?ก\.?ส\.?", 3, "หวยธ.ก.ส."),
        _lottery("lao_pattana",     r"ผลหวยลาวพัฒนา",   6, "หวยลาวพัฒนา"),
        _lottery("lao_hd",          r"ผลหวยลาว HD",     6, "หวยลาว HD", in_fallback=False),
        _lottery("lao_star",        r"ผลหวยลาวสตาร์",   6, "หวยลาวสตาร์", in_fallback=False),
    ),
    timed=(
        _timed("hanoi_special", "ฮานอยพิเศษ", r"ฮานอยพิเศษ"),
        _timed("hanoi_normal",  "ฮานอยปกติ",  r"ฮานอยปกติ"),
        _timed("hanoi_vip",     "ฮานอย VIP",  r"ฮานอย\s*VIP"),
    ),
)

ADAPTER_DIR = pathlib.Path(__file__).with_name("adapters")


def load_catalog(adapter_dir: pathlib.Path | None = None, base: Catalog = DEFAULT_CATALOG) -> Catalog:
    """Base catalog plus YAML adapters; an adapter with a known id replaces that entry."""
    adir = pathlib.Path(adapter_dir) if adapter_dir else ADAPTER_DIR
    if not adir.is_dir():
        return base
    import yaml

    lotteries = list(base.lotteries)
    for p in sorted(adir.glob("*.yaml")):
        cfg = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        if not cfg.get("id") or not cfg.get("name_pattern"):
            continue
        entry = _lottery(
            str(cfg["id"]),
            str(cfg["name_pattern"]),
            int(cfg.get("result_digits", 6)),
            str(cfg.get("label") or cfg["id"]),
            bool(cfg.get("in_fallback", False)),
        )
        idx = next((i for i, lp in enumerate(lotteries) if lp.id == entry.id), None)
        if idx is None:
            lotteries.append(entry)
        else:
            lotteries[idx] = entry
    return replace(base, lotteries=tuple(lotteries))
