#!/usr/bin/env python3
"""
Vision OCR extraction for lottery screenshots.
- Providers are tried in order: GitHub Models (GITHUB_TOKEN), then Gemini (GEMINI_API_KEY).
- Each try yields a ProviderAttempt; the next provider runs only if the previous
  one is unconfigured or failed.
- HTTP 429 is retried with linear backoff (attempt * step seconds), then
  RateLimitExceededError.
- Replies are free text expected to hold one JSON object (see parse_json).
- CLI: python3 -m layer2.vision_extract <image_path> [calc|digit_freq|stat30|results]
"""

import os, sys, re, json, time, base64
from dataclasses import dataclass

import requests

from layer2.errors import (
    ConfigurationError, MalformedResponseError, NoProviderError,
    RateLimitExceededError, UpstreamError, ScrapeError, EXCERPT_CHARS,
)

GITHUB_MODELS_URL = os.getenv("GITHUB_MODELS_URL") or "https://models.github.ai/inference/chat/completions"
GITHUB_MODEL = os.getenv("GITHUB_MODEL") or "openai/gpt-4o"
GEMINI_MODEL = os.getenv("GEMINI_MODEL") or "gemini-2.0-flash"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

# =========================
# Prompts
# =========================
CALC_PROMPT = """Read this Thai lottery calculation image. Return JSON ONLY:
{
  "top3": ["043", "682", "430", "830", "482"],
  "top3_recommended": ["043", "430", "830"],
  "bottom2": ["76", "44", "39", "08", "46", "03"],
  "bottom2_recommended": ["44", "46"],
  "running_number": "4",
  "full_set_number": "3"
}
Rules:
- "top3": ALL 3-digit numbers under "3 ตัวบน" (left to right)
- "top3_recommended": ONLY those with GREEN background
- "bottom2": ALL 2-digit numbers under "2 ตัวล่าง" (left to right)
- "bottom2_recommended": ONLY those with GREEN background
- "running_number": the single digit under "วิ่ง"
- "full_set_number": the single digit under "รูด"
- All values MUST be strings. Read EVERY number."""

DIGIT_FREQ_PROMPT = """Read this digit frequency table image. Return JSON ONLY:
{
  "data": [
    {"digit": "0", "top3_count": 12, "bottom2_count": 6, "total": 18},
    {"digit": "1", "top3_count": 9, "bottom2_count": 6, "total": 15}
  ]
}
Rules:
- Read the table with columns: เลข (digit 0-9), 3 ตัวบน (top3_count), 2 ตัวล่าง (bottom2_count), รวม (total)
- digit is string, all counts are integers
- Must have exactly 10 rows (digits 0-9)
- Read EVERY row carefully"""

STAT_30_PROMPT = """Read this lottery statistics table image showing 30 recent draws. Return JSON ONLY:
{
  "bottom2": [
    {"number": "45", "count": 2},
    {"number": "64", "count": 2}
  ],
  "top3": [
    {"number": "440", "count": 1},
    {"number": "145", "count": 1}
  ]
}
Rules:
- LEFT table = "2 ตัวล่าง": Read ALL rows (number as string, count as integer)
- RIGHT table = "3 ตัวบน": Read ALL rows (number as string, count as integer)
- Read EVERY single row in both tables, do not skip any"""

RESULTS_PROMPT = """Read this Thai lottery results page screenshot. Return JSON ONLY:
{
  "lotteries": [
    {"lottery_type": "thai_government", "lottery_name": "หวยรัฐบาลไทย",
     "draw_date": "16 มกราคม 2568", "results": {"full_number": "123456", "top3": "456", "bottom2": "78"}},
    {"lottery_type": "hanoi_vip", "lottery_name": "ฮานอย VIP", "draw_date": "16 มกราคม 2568",
     "draw_time": "19:30", "results": {"top3": "123", "bottom2": "45"}}
  ]
}
Rules:
- lottery_type is one of: thai_government, malaysia, gsb, baac, lao_pattana, lao_hd, lao_star,
  hanoi_special, hanoi_normal, hanoi_vip
- draw_date exactly as printed on the page
- All numbers MUST be strings, keep leading zeros"""

PROMPTS = {
    "calc": CALC_PROMPT,
    "digit_freq": DIGIT_FREQ_PROMPT,
    "stat30": STAT_30_PROMPT,
    "results": RESULTS_PROMPT,
}

# =========================
# Reply parsing
# =========================
FENCE_RX = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
OBJECT_RX = re.compile(r"\{[\s\S]*\}")

def parse_json(text: str):
    """Direct decode, then a fenced code block, then the outermost {...} span."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        pass
    for rx in (FENCE_RX, OBJECT_RX):
        m = rx.search(text or "")
        if not m:
            continue
        frag = m.group(1) if rx.groups else m.group(0)
        try:
            return json.loads(frag.strip())
        except ValueError:
            continue
    raise MalformedResponseError(text or "")

# =========================
# HTTP with rate-limit retry
# =========================
def post_with_retry(session, provider: str, url: str, *, max_retries: int = 3,
                    backoff_step: float = 15.0, sleep=time.sleep, log=None, **kwargs):
    for attempt in range(1, max_retries + 1):
        try:
            res = session.post(url, **kwargs)
        except requests.RequestException as e:
            raise UpstreamError(f"{provider}: {type(e).__name__}: {e}") from e

        if res.status_code == 429:
            if attempt < max_retries:
                wait = attempt * backoff_step
                if log:
                    log(f"    ⏳ {provider} rate limited, retrying in {wait:g}s...")
                sleep(wait)
            continue
        if not res.ok:
            raise UpstreamError(f"{provider} {res.status_code}: {res.text[:EXCERPT_CHARS]}")
        return res
    raise RateLimitExceededError(provider, max_retries)

# =========================
# Providers
# =========================
class VisionProvider:
    name = "provider"

    def __init__(self, api_key: str | None, session=None, max_retries: int = 3,
                 backoff_step: float = 15.0, timeout: float = 120, sleep=time.sleep, log=None):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.max_retries = max_retries
        self.backoff_step = backoff_step
        self.timeout = timeout
        self.sleep = sleep
        self.log = log

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _post(self, url, **kwargs):
        return post_with_retry(
            self.session, self.name, url,
            max_retries=self.max_retries, backoff_step=self.backoff_step,
            sleep=self.sleep, log=self.log, timeout=self.timeout, **kwargs,
        )

    def _json(self, res):
        try:
            return res.json()
        except ValueError as e:
            raise UpstreamError(f"{self.name}: non-JSON body: {res.text[:EXCERPT_CHARS]}") from e

    def complete(self, prompt: str, image_b64: str) -> str:
        raise NotImplementedError

    def read(self, prompt: str, image_b64: str):
        return parse_json(self.complete(prompt, image_b64))


class GitHubModelsProvider(VisionProvider):
    name = "GitHub Models"

    def __init__(self, api_key=None, model: str = GITHUB_MODEL, url: str = GITHUB_MODELS_URL, **kw):
        super().__init__(api_key, **kw)
        self.model = model
        self.url = url

    def complete(self, prompt, image_b64):
        body = {
            "model": self.model,
            "messages": [{
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{image_b64}"}},
                ],
            }],
            "temperature": 0,
            "max_tokens": 4000,
        }
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        data = self._json(self._post(self.url, headers=headers, json=body))
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise UpstreamError(f"Empty response from {self.name}")
        return text


class GeminiProvider(VisionProvider):
    name = "Gemini"

    def __init__(self, api_key=None, model: str = GEMINI_MODEL, **kw):
        super().__init__(api_key, **kw)
        self.model = model

    def complete(self, prompt, image_b64):
        body = {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {"inline_data": {"mime_type": "image/png", "data": image_b64}},
                ],
            }],
            "generationConfig": {"temperature": 0, "responseMimeType": "application/json"},
        }
        url = GEMINI_URL.format(model=self.model)
        data = self._json(self._post(url, params={"key": self.api_key},
                                     headers={"Content-Type": "application/json"}, json=body))
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise UpstreamError(f"Empty response from {self.name}")
        return text


def default_providers(pacing: dict | None = None, log=None) -> list[VisionProvider]:
    pacing = pacing or {}
    kw = {
        "max_retries": int(pacing.get("vision_retries", 3)),
        "backoff_step": float(pacing.get("vision_backoff_step", 15.0)),
        "timeout": float(pacing.get("vision_timeout_sec", 120)),
        "log": log,
    }
    return [
        GitHubModelsProvider(os.getenv("GITHUB_TOKEN"), **kw),
        GeminiProvider(os.getenv("GEMINI_API_KEY"), **kw),
    ]


def require_configured(providers) -> None:
    if not any(p.configured for p in providers):
        raise ConfigurationError("Need GITHUB_TOKEN or GEMINI_API_KEY for vision extraction")

# =========================
# Ordered fallback
# =========================
@dataclass(frozen=True)
class ProviderAttempt:
    provider: str
    data: object = None
    error: str | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.skipped and self.error is None


def attempt(provider: VisionProvider, prompt: str, image_b64: str) -> ProviderAttempt:
    if not provider.configured:
        return ProviderAttempt(provider.name, skipped=True, error="not configured")
    try:
        return ProviderAttempt(provider.name, data=provider.read(prompt, image_b64))
    except ScrapeError as e:
        return ProviderAttempt(provider.name, error=str(e))


def encode_image(image) -> str:
    """bytes, a base64 str, or a path -> base64 str."""
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(bytes(image)).decode("ascii")
    if isinstance(image, str) and not os.path.exists(image):
        return image
    with open(image, "rb") as f:
        return base64.b64encode(f.read()).decode("ascii")


def read_image(prompt: str, image, providers, log=None):
    """JSON reply of the first provider that succeeds; NoProviderError otherwise."""
    b64 = encode_image(image)
    attempts = []
    for provider in providers:
        res = attempt(provider, prompt, b64)
        attempts.append(res)
        if res.ok:
            return res.data
        if log and not res.skipped:
            log(f"    ⚠️ {res.provider} failed: {res.error[:80]}")
    raise NoProviderError("No vision provider produced a usable reply", attempts)


def main():
    img = sys.argv[1] if len(sys.argv) > 1 else None
    kind = sys.argv[2] if len(sys.argv) > 2 else "calc"
    if not img or not os.path.exists(img):
        print("{}")
        return
    data = read_image(PROMPTS.get(kind, CALC_PROMPT), img, default_providers())
    print(json.dumps(data, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
