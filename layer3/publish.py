"""
Layer 3 — Publish
- Pretty-printed UTF-8 JSON files under OUTPUT_DIR (default: public/)
- CSV companion for draw results
- Console summaries for both runs
"""

import os, csv, json, pathlib

from layer1.pacing import log

BASE = pathlib.Path(".")
RESULTS_FILE = "lottery_results.json"
RESULTS_CSV = "lottery_results.csv"
COMBINED_CALC_FILE = "all_calculations.json"
BODY_PREVIEW_CHARS = 3000


def output_dir() -> pathlib.Path:
    return pathlib.Path(os.getenv("OUTPUT_DIR") or (BASE / "public"))


def write_json(path: pathlib.Path, obj) -> pathlib.Path:
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def write_results_csv(path: pathlib.Path, lotteries) -> pathlib.Path:
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as w:
        writer = csv.writer(w)
        writer.writerow(["lottery_type", "lottery_name", "draw_date", "draw_time",
                         "full_number", "top3", "bottom2"])
        for r in lotteries:
            res = r.get("results") or {}
            writer.writerow([
                r.get("lottery_type"),
                r.get("lottery_name"),
                r.get("draw_date") or "",
                r.get("draw_time") or "",
                res.get("full_number", ""),
                res.get("top3", ""),
                res.get("bottom2", ""),
            ])
    return path


def results_document(source_url, fetched_at, lotteries, method, body_text=None) -> dict:
    doc = {
        "source_url": source_url,
        "fetched_at": fetched_at,
        "total_lotteries": len(lotteries),
        "lotteries": lotteries,
        "extraction_method": method,
        "notes": "ดึงข้อมูลผลหวยจาก exphuay.com โดยตรง",
    }
    if not lotteries:
        doc["warning"] = "no lottery results found"
        doc["debug"] = {
            "body_text_length": len(body_text or ""),
            "body_preview": (body_text or "")[:BODY_PREVIEW_CHARS],
        }
    return doc


def publish_results(doc: dict, out_dir: pathlib.Path | None = None) -> dict:
    out = pathlib.Path(out_dir) if out_dir else output_dir()
    json_path = write_json(out / RESULTS_FILE, doc)
    csv_path = write_results_csv(out / RESULTS_CSV, doc["lotteries"])
    log(f"\n✅ Results saved to {json_path}")
    return {"json": str(json_path), "csv": str(csv_path)}


def calculations_document(fetched_at, snapshots, failed) -> dict:
    return {
        "fetched_at": fetched_at,
        "total_lotteries": len(snapshots),
        "lotteries": snapshots,
        "failed": list(failed),
        "notes": "อ่านข้อมูลจากหน้าเว็บ / รูปภาพด้วย AI Vision (GitHub Models / Gemini)",
    }

# ---------- summaries ----------

def results_summary(lotteries) -> list[str]:
    if not lotteries:
        return ["  ⚠️ No results found"]
    lines = []
    for r in lotteries:
        res = r.get("results") or {}
        lines.append(f"  - {r.get('lottery_name')}: {res.get('full_number') or res.get('top3') or 'N/A'}")
    return lines


def calculation_summary(snapshot: dict) -> list[str]:
    d = snapshot["daily_calculation"]
    s = snapshot["statistics_30_draws"]
    return [
        f"📌 {snapshot['lottery_name']}",
        f"   3 ตัวบน: {', '.join(d['top3']) or 'N/A'}",
        f"   2 ตัวล่าง: {', '.join(d['bottom2']) or 'N/A'}",
        f"   วิ่ง: {d['running_number'] or 'N/A'}",
        f"   รูด: {d['full_set_number'] or 'N/A'}",
        f"   Digit freq: {len(snapshot['digit_frequency']['data'])} entries",
        f"   Stats 30: bottom2={len(s['bottom2'])}, top3={len(s['top3'])}",
    ]
