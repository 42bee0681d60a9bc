"""Thai date phrases ("15 มกราคม 2567") -> ISO dates."""

import re

THAI_MONTHS = {
    "มกราคม": "01", "กุมภาพันธ์": "02", "มีนาคม": "03",
    "เมษายน": "04", "พฤษภาคม": "05", "มิถุนายน": "06",
    "กรกฎาคม": "07", "สิงหาคม": "08", "กันยายน": "09",
    "ตุลาคม": "10", "พฤศจิกายน": "11", "ธันวาคม": "12",
}

# Buddhist Era years are 543 ahead of the common era.
BE_OFFSET = 543
BE_THRESHOLD = 2500

DATE_PHRASE_RX = re.compile(r"(\d{1,2})\s+(\S+)\s+(\d{4})")
ISO_RX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_thai_date(text: str | None) -> str | None:
    """Return YYYY-MM-DD for the first `<day> <month> <year>` phrase in text.

    Unknown month names fall back to "01" instead of failing. Already-ISO
    input comes back unchanged. None when no phrase is present.
    """
    if not text:
        return None
    s = str(text).strip()
    if ISO_RX.match(s):
        return s

    m = DATE_PHRASE_RX.search(s)
    if not m:
        return None
    day = m.group(1).zfill(2)
    month = THAI_MONTHS.get(m.group(2), "01")
    year = int(m.group(3))
    if year > BE_THRESHOLD:
        year -= BE_OFFSET
    return f"{year}-{month}-{day}"
