#!/usr/bin/env python3
"""
Layer 1 — Render (headless Chromium via Playwright)
- One browser per run; pages are visited one at a time
- networkidle navigation, fixed render wait, incremental scroll for lazy content
- Rendered text from inner_text("body"); falls back to page HTML -> text (bs4/lxml)
- Screenshots: full page, or one region by CSS selector (full page if it is missing)
- Navigation retried with exponential backoff (pacing: render_retries/backoff_*)
- Any Playwright failure surfaces as UpstreamError
"""

import pathlib

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError, sync_playwright

from layer1.pacing import DEFAULTS, backoff_sleep, log
from layer2.errors import UpstreamError

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


def html_to_text(html: str) -> str:
    """Visible text of an HTML document, one block per line."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    lines = (ln.strip() for ln in soup.get_text("\n").splitlines())
    return "\n".join(ln for ln in lines if ln)


def _first_line(err) -> str:
    s = str(err)
    return s.splitlines()[0] if s else type(err).__name__


class BrowserSession:
    """Context manager around a Playwright Chromium browser."""

    def __init__(self, pacing: dict | None = None, headless: bool = True):
        self.pacing = pacing or DEFAULTS.copy()
        self.headless = headless
        self._pw = None
        self._browser = None
        self._context = None
        self.page = None

    def __enter__(self):
        log("🌐 Opening browser...")
        self._pw = sync_playwright().start()
        self._browser = self._pw.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        self._context = self._browser.new_context(
            user_agent=USER_AGENT,
            viewport={
                "width": int(self.pacing["viewport_width"]),
                "height": int(self.pacing["viewport_height"]),
            },
        )
        self.page = self._context.new_page()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            if self._pw is not None:
                self._pw.stop()
        return False

    # ---------- navigation ----------

    def _scroll(self):
        p = self.pacing
        for _ in range(int(p["scroll_steps"])):
            self.page.evaluate(f"window.scrollBy(0, {int(p['scroll_px'])})")
            self.page.wait_for_timeout(p["scroll_pause_sec"] * 1000)
        self.page.evaluate("window.scrollTo(0, 0)")

    def open(self, url: str):
        """Load url and wait until client-side rendering and lazy content settle."""
        p = self.pacing
        retries = int(p["render_retries"])
        last_err = None
        for attempt in range(1, retries + 1):
            log(f"📄 Loading {url} (attempt {attempt}/{retries})...")
            try:
                self.page.goto(url, wait_until="networkidle", timeout=p["nav_timeout_sec"] * 1000)
                break
            except PlaywrightError as e:
                last_err = f"{type(e).__name__}: {_first_line(e)}"
                if attempt < retries:
                    log(f"   ⚠️  {last_err}; backing off and retrying …")
                    backoff_sleep(attempt, float(p["backoff_base"]), float(p["backoff_cap"]))
                    continue
                raise UpstreamError(f"Cannot load {url}: {last_err}") from e

        try:
            log("⏳ Waiting for JavaScript to render...")
            self.page.wait_for_timeout(p["render_wait_sec"] * 1000)
            log("📜 Scrolling page...")
            self._scroll()
            self.page.wait_for_timeout(p["settle_sec"] * 1000)
        except PlaywrightError as e:
            raise UpstreamError(f"Cannot render {url}: {_first_line(e)}") from e

    def text(self) -> str:
        try:
            return self.page.inner_text("body")
        except PlaywrightError as e:
            log(f"   ⚠️  inner_text failed ({_first_line(e)}); reading page HTML instead")
        try:
            return html_to_text(self.page.content())
        except PlaywrightError as e:
            raise UpstreamError(f"Cannot read page text: {_first_line(e)}") from e

    def page_text(self, url: str) -> str:
        self.open(url)
        return self.text()

    # ---------- screenshots ----------

    def screenshot(self, path, selector: str | None = None) -> bytes:
        path = pathlib.Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if selector:
                el = self.page.query_selector(selector)
                if el is not None:
                    return el.screenshot(path=str(path))
                log(f"   ⚠️  selector {selector!r} not found; full-page screenshot instead")
            return self.page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            raise UpstreamError(f"Cannot take screenshot {path.name}: {_first_line(e)}") from e

    def capture(self, url: str, shots) -> str:
        """Open url once, write each (path, selector) screenshot, return the page text."""
        self.open(url)
        for path, selector in shots:
            self.screenshot(path, selector)
            log(f"   📸 {pathlib.Path(path).name}")
        return self.text()
