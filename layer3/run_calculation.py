#!/usr/bin/env python3
"""
Calculation run — per-lottery calculation pages -> public/<id>.json + all_calculations.json

Per source (sequential, fixed delays between sources):
  1. open the calculation page, screenshot its three regions into CALC_IMAGES_DIR
     ({id}_1.png daily calculation, {id}_2.png digit frequency, {id}_3.png 30-draw stats)
     CAPTURE=0 skips the browser and reads images already in that folder
  2. scan the rendered text for the three tables
  3. any table the text scan missed is read from its screenshot with AI vision
A failing source is recorded under "failed" and the run moves on.
"""

import os, sys, json, pathlib, contextlib

from playwright.sync_api import Error as PlaywrightError

from layer1.pacing import load_pacing, log, pause
from layer1.render import BrowserSession
from layer1.targets import calc_sources
from layer2.calc_tables import DEFAULT_LAYOUT, extract_calculation
from layer2.errors import ConfigurationError, ScrapeError, UpstreamError
from layer2.format import (
    build_snapshot, coerce_daily, coerce_digit_frequency, coerce_statistics, now_iso,
)
from layer2.vision_extract import (
    CALC_PROMPT, DIGIT_FREQ_PROMPT, STAT_30_PROMPT,
    default_providers, read_image, require_configured,
)
from layer3.publish import (
    COMBINED_CALC_FILE, calculation_summary, calculations_document, output_dir, write_json,
)

DEFAULT_IMAGES_DIR = pathlib.Path("layer1") / "exp-images"


def images_dir() -> pathlib.Path:
    return pathlib.Path(os.getenv("CALC_IMAGES_DIR") or DEFAULT_IMAGES_DIR)


class SourceRunner:
    """Turns one CalcSource into a CalculationSnapshot dict."""

    def __init__(self, session, images: pathlib.Path, providers, pacing: dict,
                 layout=DEFAULT_LAYOUT, sleep=pause):
        self.session = session
        self.images = pathlib.Path(images)
        self.providers = list(providers)
        self.pacing = pacing
        self.layout = layout
        self.sleep = sleep
        self._vision_calls = 0

    def _vision(self, prompt, image_path, label):
        if not self.providers:
            raise UpstreamError(f"{label}: text scan found nothing and vision is disabled")
        if self._vision_calls:
            self.sleep(float(self.pacing["between_images_sec"]))
        self._vision_calls += 1
        log(f"  📊 Reading {image_path.name} ({label})...")
        return read_image(prompt, image_path, self.providers, log=log)

    def run(self, source) -> dict | None:
        self._vision_calls = 0
        paths = [self.images / name for name in source.image_names()]

        text = ""
        if self.session is not None:
            text = self.session.capture(source.source_url, zip(paths, source.regions))
        else:
            for p in paths:
                if not p.exists():
                    log(f"  ⚠️ Missing: {p.name} - skipping")
                    return None

        tables = extract_calculation(text, self.layout)
        methods = {}

        if not tables.daily.is_empty():
            daily = tables.daily.as_dict()
            methods["daily_calculation"] = "text"
        else:
            daily = coerce_daily(self._vision(CALC_PROMPT, paths[0], "calc"))
            methods["daily_calculation"] = "vision"
        log(f"    ✅ top3: {len(daily['top3'])}, bottom2: {len(daily['bottom2'])}, "
            f"วิ่ง: {daily['running_number']}, รูด: {daily['full_set_number']}")

        if tables.digit_frequency:
            digit_freq = tables.digit_frequency
            methods["digit_frequency"] = "text"
        else:
            digit_freq = coerce_digit_frequency(self._vision(DIGIT_FREQ_PROMPT, paths[1], "digit freq"))
            methods["digit_frequency"] = "vision"
        log(f"    ✅ digit_frequency: {len(digit_freq)} entries")

        if tables.stats_bottom2 or tables.stats_top3:
            stats = {"bottom2": tables.stats_bottom2, "top3": tables.stats_top3}
            methods["statistics_30_draws"] = "text"
        else:
            stats = coerce_statistics(self._vision(STAT_30_PROMPT, paths[2], "stat 30"))
            methods["statistics_30_draws"] = "vision"
        log(f"    ✅ bottom2: {len(stats['bottom2'])}, top3: {len(stats['top3'])}")

        return build_snapshot(source, daily, digit_freq, stats, methods)


def run(sources, runner: SourceRunner, out_dir: pathlib.Path, sleep=pause) -> dict:
    """Process sources in order; always writes the combined file, even when interrupted."""
    out_dir = pathlib.Path(out_dir)
    snapshots, failed = [], []
    interrupted = False

    try:
        for i, source in enumerate(sources):
            log(f"\n{'=' * 50}")
            log(f"📌 {source.name} ({source.id})")
            log("=" * 50)
            try:
                snap = runner.run(source)
            except (ScrapeError, PlaywrightError) as e:
                log(f"  ❌ Error: {e}")
                failed.append({"lottery": source.id, "error": str(e)})
                snap = None
            else:
                if snap is None:
                    failed.append({"lottery": source.id, "error": "missing images"})
                else:
                    path = write_json(out_dir / source.output_file, snap)
                    log(f"  💾 Saved: {path}")
                    snapshots.append(snap)

            if i < len(sources) - 1:
                wait = float(runner.pacing["between_sources_sec"])
                log(f"\n  ⏳ Waiting {wait:g}s before next lottery...")
                sleep(wait)
    except KeyboardInterrupt:
        log("⏹  Received Ctrl+C — writing partial results…")
        interrupted = True
    finally:
        doc = calculations_document(now_iso(), snapshots, failed)
        if interrupted:
            doc["interrupted"] = True
        path = write_json(out_dir / COMBINED_CALC_FILE, doc)
        log(f"\n💾 Saved: {path}")
    return doc


def main():
    log("🎰 Starting lottery calculation reader...")
    log(f"📅 {now_iso()}\n")

    pacing = load_pacing()
    vision_on = os.getenv("VISION") != "0"
    capture = os.getenv("CAPTURE") != "0"
    providers = default_providers(pacing, log=log) if vision_on else []
    images = images_dir()
    sources = calc_sources()

    log("🔑 AI Services:")
    for p in providers:
        log(f"  {'✅' if p.configured else '❌'} {p.name}")

    try:
        if vision_on:
            require_configured(providers)
        if not capture and not images.is_dir():
            raise ConfigurationError(f"Images folder not found: {images}")

        if capture:
            session_cm = BrowserSession(pacing)
        else:
            session_cm = contextlib.nullcontext(None)

        log(f"📋 Lotteries: {len(sources)}")
        with session_cm as session:
            runner = SourceRunner(session, images, [p for p in providers if p.configured], pacing)
            doc = run(sources, runner, output_dir())
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr, flush=True)
        sys.exit(1)

    log("\n" + "=" * 50)
    log("📊 SUMMARY")
    log("=" * 50)
    for snap in doc["lotteries"]:
        log("")
        for line in calculation_summary(snap):
            log(line)
    if not doc["lotteries"]:
        log("\n⚠️ No calculation snapshots produced")

    print(json.dumps({
        "processed": doc["total_lotteries"],
        "sources": len(sources),
        "failed": [f["lottery"] for f in doc["failed"]],
    }, indent=2))
    if doc.get("interrupted"):
        sys.exit(130)


if __name__ == "__main__":
    main()
