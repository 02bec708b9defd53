"""Pytest configuration and shared fixtures."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from translator.backends import TranslationBackend  # noqa: E402

GTX_HOST = "translate.googleapis.com"
DEEPL_HOST = "www2.deepl.com"

CAPTCHA_PAGE = (
    "<html><body>Our systems have detected unusual traffic. "
    "<div id='captcha-form'></div></body></html>"
)


class FakeBackend(TranslationBackend):
    """In-memory backend that prefixes text with the target language."""

    def __init__(
        self,
        name: str,
        delay: float = 0.0,
        failures: Optional[Dict[str, Union[Exception, List[Exception]]]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        super().__init__(client=None)
        self.name = name
        self.delay = delay
        # A list of errors is consumed one per call, then the text succeeds
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: List[str] = []
        self.credentials: List[Optional[str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def translate_text(self, text, source_language, target_language, credential=None):
        self.calls.append(text)
        self.credentials.append(credential)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(text, self.delay)
            if delay:
                await asyncio.sleep(delay)
            failure = self.failures.get(text)
            if isinstance(failure, list):
                failure = failure.pop(0) if failure else None
            if failure:
                raise failure
            return f"[{target_language}] {text}"
        finally:
            self.in_flight -= 1


class FakeTranslationService:
    """
    httpx MockTransport handler imitating both translation endpoints.

    Google answers with a CAPTCHA page while `require_cookie` is set and the
    request carries no Cookie header.
    """

    def __init__(self, require_cookie: bool = False, deepl_status: int = 200):
        self.require_cookie = require_cookie
        self.deepl_status = deepl_status
        self.requests: List[httpx.Request] = []

    def gtx_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == GTX_HOST]

    def deepl_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == DEEPL_HOST]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == GTX_HOST:
            if self.require_cookie and "cookie" not in request.headers:
                return httpx.Response(429, text=CAPTCHA_PAGE)
            text = request.url.params["q"]
            target = request.url.params["tl"]
            return httpx.Response(
                200, json=[[[f"{target}:{text}", text, None, None]], None, "en"]
            )

        if request.url.host == DEEPL_HOST:
            if self.deepl_status != 200:
                return httpx.Response(self.deepl_status, text="Too many requests")
            payload = json.loads(request.content)
            text = payload["params"]["texts"][0]["text"]
            target = payload["params"]["lang"]["target_lang"].lower()
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "result": {"texts": [{"text": f"{target}:{text}", "alternatives": []}]},
                },
            )

        return httpx.Response(404)


class FakePrompt:
    """Credential prompt that hands out a fixed cookie and records when it ran."""

    def __init__(
        self,
        cookie: str = "GOOGLE_ABUSE_EXEMPTION=solved",
        error: Optional[Exception] = None,
        on_request: Optional[Callable[[], None]] = None,
    ):
        self.cookie = cookie
        self.error = error
        self.on_request = on_request
        self.challenge_urls: List[str] = []

    def request(self, challenge_url: str) -> str:
        self.challenge_urls.append(challenge_url)
        if self.on_request:
            self.on_request()
        if self.error:
            raise self.error
        return self.cookie


@pytest.fixture
def sample_srt_content():
    """SRT content with three caption lines and two structural lines."""
    return "00:00:01,000 --> 00:00:04,000\nHello there\nHow are you\n\nGoodbye"


@pytest.fixture
def full_srt_content():
    """A regular SRT file with sequence numbers and blank separators."""
    return (
        "1\n"
        "00:00:01,000 --> 00:00:04,000\n"
        "Welcome to this video\n"
        "\n"
        "2\n"
        "00:00:04,500 --> 00:00:08,000\n"
        "Today we're going to learn\n"
        "something new\n"
        "\n"
        "3\n"
        "00:00:08,500 --> 00:00:12,000\n"
        "Let's get started!\n"
    )


@pytest.fixture
def srt_file(tmp_path, sample_srt_content):
    """Sample subtitle written to a temporary .srt file."""
    path = tmp_path / "movie.srt"
    path.write_text(sample_srt_content, encoding="utf-8")
    return path


@pytest.fixture
def fake_service():
    return FakeTranslationService()


@pytest_asyncio.fixture
async def mock_http_client(fake_service):
    """httpx client routed to the fake translation service."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_service)) as client:
        yield client

