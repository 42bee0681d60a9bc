#!/usr/bin/env python3
"""
Results run — exphuay.com front page -> public/lottery_results.json
Lanes, first non-empty wins:
  A  per-section text patterns (+ Hanoi time-of-day rows)
  B  whole-text combined patterns
  C  vision read of the full-page screenshot (only if a provider is configured)
A failed or interrupted run still writes an empty, flagged results file.
"""

import os, sys, json, pathlib

from playwright.sync_api import Error as PlaywrightError

from layer1.pacing import load_pacing, log
from layer1.render import BrowserSession
from layer1.targets import RESULTS_URL
from layer2.catalog import load_catalog
from layer2.errors import ScrapeError
from layer2.format import format_results, now_iso
from layer2.text_patterns import extract_results
from layer2.vision_extract import RESULTS_PROMPT, default_providers, read_image
from layer3.publish import output_dir, publish_results, results_document, results_summary

DEBUG_SCREENSHOT = "debug-exphuay.png"


def vision_candidates(image, providers) -> list:
    data = read_image(RESULTS_PROMPT, image, providers, log=log)
    if isinstance(data, dict):
        data = data.get("lotteries") or []
    return [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []


def debug_screenshot(session, out_dir: pathlib.Path) -> bytes | None:
    try:
        shot = session.screenshot(pathlib.Path(out_dir) / DEBUG_SCREENSHOT)
    except (ScrapeError, PlaywrightError) as e:
        log(f"⚠️ Screenshot failed: {e}")
        return None
    log(f"📸 Screenshot saved to {DEBUG_SCREENSHOT}")
    return shot


def scrape(session, url: str, out_dir: pathlib.Path, catalog, providers=()) -> dict:
    text = session.page_text(url)
    shot = debug_screenshot(session, out_dir)

    outcome = extract_results(text, catalog)
    candidates, method = outcome.records, outcome.method
    log(f"\n📊 Text lanes: {len(candidates)} candidates ({method})")

    if not candidates and providers and shot:
        log("🔍 Falling back to vision on the page screenshot...")
        try:
            candidates = vision_candidates(shot, providers)
            method = "vision" if candidates else "none"
        except ScrapeError as e:
            log(f"  ⚠️ Vision lane failed: {e}")

    lotteries = format_results(candidates, catalog)
    return results_document(url, now_iso(), lotteries, method, body_text=text)


def aborted_document(url: str, reason: str) -> dict:
    doc = results_document(url, now_iso(), [], "none")
    doc["error"] = reason
    return doc


def main():
    log("🎰 Starting lottery results scraper...")
    log(f"📅 Fetched at: {now_iso()}")

    pacing = load_pacing()
    out = output_dir()
    providers = []
    if os.getenv("VISION") != "0":
        providers = [p for p in default_providers(pacing, log=log) if p.configured]

    try:
        with BrowserSession(pacing) as session:
            doc = scrape(session, RESULTS_URL, out, load_catalog(), providers)
    except KeyboardInterrupt:
        log("⏹  Interrupted — writing empty results…")
        publish_results(aborted_document(RESULTS_URL, "interrupted"), out)
        sys.exit(130)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr, flush=True)
        publish_results(aborted_document(RESULTS_URL, str(e)), out)
        sys.exit(1)

    paths = publish_results(doc, out)
    log("\n📋 Summary:")
    for line in results_summary(doc["lotteries"]):
        log(line)
    if not doc["lotteries"]:
        log("\n⚠️ No results found. Debug info:")
        log(f"Body text length: {doc['debug']['body_text_length']}")
        log(f"Body preview: {doc['debug']['body_preview'][:1000]}")

    print(json.dumps({
        "total_lotteries": doc["total_lotteries"],
        "extraction_method": doc["extraction_method"],
        **paths,
    }, indent=2))


if __name__ == "__main__":
    main()
