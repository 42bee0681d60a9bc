import base64

import pytest
import requests

from fakes import FakeHTTP, FakeProvider, FakeResponse, gemini_reply, github_reply
from layer2.errors import (
    ConfigurationError, MalformedResponseError, NoProviderError,
    RateLimitExceededError, UpstreamError,
)
from layer2.vision_extract import (
    CALC_PROMPT, GeminiProvider, GitHubModelsProvider, attempt, encode_image,
    parse_json, post_with_retry, read_image, require_configured,
)

PAYLOAD = '{"top3": ["043", "682"], "running_number": "4"}'


# ---------- reply parsing ----------

def test_fenced_reply_parses_like_unwrapped():
    assert parse_json(f"```json\n{PAYLOAD}\n```") == parse_json(PAYLOAD)
    assert parse_json(f"```\n{PAYLOAD}\n```") == parse_json(PAYLOAD)


def test_object_embedded_in_prose():
    assert parse_json(f"Here is the table: {PAYLOAD} Hope it helps.") == parse_json(PAYLOAD)


def test_malformed_reply_carries_short_excerpt():
    with pytest.raises(MalformedResponseError) as ei:
        parse_json("not json " * 100)
    assert len(ei.value.excerpt) == 300
    assert str(ei.value).startswith("Cannot parse JSON:")


# ---------- rate-limit retry ----------

def test_rate_limited_until_max_retries():
    http = FakeHTTP(FakeResponse(429, text="slow down"), FakeResponse(429, text="slow down"),
                    FakeResponse(429, text="slow down"))
    waits = []
    with pytest.raises(RateLimitExceededError) as ei:
        post_with_retry(http, "GitHub Models", "https://x", max_retries=3,
                        backoff_step=15.0, sleep=waits.append)
    assert len(http.calls) == 3
    assert waits == [15.0, 30.0]
    assert "max retries exceeded" in str(ei.value)


def test_rate_limit_then_success():
    ok = FakeResponse(200, {"ok": True})
    waits = []
    res = post_with_retry(FakeHTTP(FakeResponse(429, text=""), ok), "Gemini", "https://x",
                          sleep=waits.append)
    assert res is ok
    assert waits == [15.0]


def test_http_error_is_upstream_error():
    with pytest.raises(UpstreamError, match="500"):
        post_with_retry(FakeHTTP(FakeResponse(500, text="boom")), "Gemini", "https://x")


def test_network_error_is_upstream_error():
    with pytest.raises(UpstreamError, match="ConnectionError"):
        post_with_retry(FakeHTTP(requests.ConnectionError("down")), "Gemini", "https://x")


# ---------- providers ----------

def test_github_models_request_and_reply():
    http = FakeHTTP(github_reply(f"```json\n{PAYLOAD}\n```"))
    p = GitHubModelsProvider("tok", session=http)
    assert p.read(CALC_PROMPT, "aGVsbG8=") == {"top3": ["043", "682"], "running_number": "4"}
    url, kw = http.calls[0]
    assert kw["headers"]["Authorization"] == "Bearer tok"
    image_part = kw["json"]["messages"][0]["content"][1]
    assert image_part["image_url"]["url"] == "data:image/png;base64,aGVsbG8="
    assert kw["json"]["temperature"] == 0


def test_gemini_request_and_reply():
    http = FakeHTTP(gemini_reply(PAYLOAD))
    p = GeminiProvider("key", session=http)
    assert p.read(CALC_PROMPT, "aGVsbG8=")["running_number"] == "4"
    url, kw = http.calls[0]
    assert ":generateContent" in url
    assert kw["params"] == {"key": "key"}
    assert kw["json"]["contents"][0]["parts"][1]["inline_data"]["data"] == "aGVsbG8="


def test_empty_reply_is_upstream_error():
    p = GeminiProvider("key", session=FakeHTTP(FakeResponse(200, {"candidates": []})))
    with pytest.raises(UpstreamError, match="Empty response"):
        p.complete(CALC_PROMPT, "x")


def test_unconfigured_provider_is_skipped():
    res = attempt(GitHubModelsProvider(None, session=FakeHTTP()), CALC_PROMPT, "x")
    assert res.skipped and not res.ok


def test_require_configured():
    with pytest.raises(ConfigurationError):
        require_configured([GitHubModelsProvider(None), GeminiProvider(None)])
    require_configured([GitHubModelsProvider(None), GeminiProvider("key")])


# ---------- ordered fallback ----------

def test_falls_through_to_second_provider():
    github = GitHubModelsProvider("tok", session=FakeHTTP(FakeResponse(500, text="down")))
    gemini = GeminiProvider("key", session=FakeHTTP(gemini_reply(PAYLOAD)))
    assert read_image(CALC_PROMPT, b"png-bytes", [github, gemini])["top3"] == ["043", "682"]


def test_first_success_wins():
    first = FakeProvider("a", answers={CALC_PROMPT: {"n": 1}})
    second = FakeProvider("b", answers={CALC_PROMPT: {"n": 2}})
    assert read_image(CALC_PROMPT, b"x", [first, second]) == {"n": 1}
    assert second.prompts == []


def test_all_providers_fail():
    providers = [
        FakeProvider("a", configured=False),
        FakeProvider("b", error=MalformedResponseError("garbage")),
    ]
    with pytest.raises(NoProviderError) as ei:
        read_image(CALC_PROMPT, b"x", providers)
    a, b = ei.value.attempts
    assert a.skipped
    assert b.error.startswith("Cannot parse JSON")


def test_encode_image_inputs(tmp_path):
    img = tmp_path / "shot.png"
    img.write_bytes(b"\x89PNG")
    expected = base64.b64encode(b"\x89PNG").decode("ascii")
    assert encode_image(b"\x89PNG") == expected
    assert encode_image(img) == expected
    assert encode_image(str(img)) == expected
    assert encode_image(expected) == expected
