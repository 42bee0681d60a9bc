"""
Layer 1 — Pacing + console logging
- DEFAULTS for browser waits, scrolling, per-source delays and retries
- Optional overrides from layer1/pacing.yaml (unknown keys ignored)
- FAST=1 shrinks every wait for quick local runs
- log() prints unbuffered progress lines (QUIET=1 silences them)
"""

import os, time, random, pathlib

# =========================
# Logging / env toggles
# =========================
VERBOSE = os.getenv("QUIET") != "1"

def log(msg: str):
    if VERBOSE:
        print(msg, flush=True)

# =========================
# Defaults (overridden by pacing.yaml)
# =========================
DEFAULTS = {
    "render_wait_sec": 8.0,        # let client-side JS render after networkidle
    "scroll_steps": 15,            # lazy-load scrolling
    "scroll_px": 600,
    "scroll_pause_sec": 0.4,
    "settle_sec": 3.0,             # after scrolling back to top
    "nav_timeout_sec": 120,
    "viewport_width": 1920,
    "viewport_height": 1080,
    "between_images_sec": 5.0,     # between vision reads of one source
    "between_sources_sec": 10.0,   # between calculation sources
    "render_retries": 3,           # page navigation attempts
    "backoff_base": 0.7,           # seconds; grows exponentially
    "backoff_cap": 5.0,
    "vision_retries": 3,           # attempts on HTTP 429
    "vision_backoff_step": 15.0,   # seconds; grows linearly (attempt * step)
    "vision_timeout_sec": 120,
}

FAST_OVERRIDES = {
    "render_wait_sec": 2.0,
    "scroll_steps": 5,
    "scroll_pause_sec": 0.1,
    "settle_sec": 0.5,
    "nav_timeout_sec": 45,
    "between_images_sec": 0.5,
    "between_sources_sec": 1.0,
    "render_retries": 2,
    "backoff_base": 0.3,
    "backoff_cap": 1.2,
    "vision_backoff_step": 3.0,
}

PACING_FILE = pathlib.Path(__file__).with_name("pacing.yaml")

def load_pacing(path: pathlib.Path | None = None, fast: bool | None = None) -> dict:
    cfg = DEFAULTS.copy()
    ypath = pathlib.Path(path) if path else PACING_FILE
    if ypath.exists():
        import yaml
        data = yaml.safe_load(ypath.read_text(encoding="utf-8")) or {}
        if isinstance(data.get("defaults"), dict):
            for k, v in data["defaults"].items():
                if k in cfg:
                    cfg[k] = type(DEFAULTS[k])(v)
    if fast is None:
        fast = os.getenv("FAST") == "1"
    if fast:
        cfg.update(FAST_OVERRIDES)
    return cfg

# =========================
# Sleep helpers
# =========================
def pause(seconds: float):
    if seconds > 0:
        time.sleep(seconds)

def backoff_sleep(attempt, base, cap):
    delay = min(cap, base * (2 ** (attempt - 1)))
    time.sleep(delay + random.uniform(0, min(0.7, cap)))
