import pytest
from playwright.sync_api import Error as PlaywrightError

from layer1.pacing import DEFAULTS
from layer1.render import BrowserSession, html_to_text
from layer2.errors import UpstreamError

HTML = "<html><head><style>p{}</style></head><body><p>ผลหวยออมสิน</p><script>x()</script><p>789</p></body></html>"


class FakePage:
    """Playwright page double; methods named in `fail` raise a Playwright error."""

    def __init__(self, *fail):
        self.fail = set(fail)

    def _check(self, name):
        if name in self.fail:
            raise PlaywrightError(f"Timeout 30000ms exceeded ({name})")

    def goto(self, url, **kwargs):
        self._check("goto")

    def wait_for_timeout(self, ms):
        self._check("wait_for_timeout")

    def evaluate(self, js):
        self._check("evaluate")

    def inner_text(self, selector):
        self._check("inner_text")
        return "body text"

    def content(self):
        self._check("content")
        return HTML

    def query_selector(self, selector):
        self._check("query_selector")
        return None

    def screenshot(self, **kwargs):
        self._check("screenshot")
        return b"png"


def session(*fail):
    s = BrowserSession(DEFAULTS.copy())
    s.page = FakePage(*fail)
    return s


def test_html_to_text_drops_scripts():
    assert html_to_text(HTML) == "ผลหวยออมสิน\n789"
    assert html_to_text("") == ""


def test_page_text():
    assert session().page_text("https://exphuay.com/") == "body text"


def test_inner_text_failure_falls_back_to_html():
    assert session("inner_text").text() == "ผลหวยออมสิน\n789"


def test_unreadable_page_is_upstream_error():
    with pytest.raises(UpstreamError, match="Cannot read page text"):
        session("inner_text", "content").text()


@pytest.mark.parametrize("step", ["wait_for_timeout", "evaluate"])
def test_render_failure_is_upstream_error(step):
    with pytest.raises(UpstreamError, match="Cannot render"):
        session(step).open("https://exphuay.com/calculate/gsb")


def test_screenshot_failure_is_upstream_error(tmp_path):
    with pytest.raises(UpstreamError, match="gsb_1.png"):
        session("screenshot").screenshot(tmp_path / "gsb_1.png")


def test_missing_selector_takes_full_page(tmp_path):
    assert session().screenshot(tmp_path / "gsb_2.png", "#stats") == b"png"
