"""Translation backends: Google GTX and DeepL (DeepLX JSON-RPC)."""

import json
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from common.config import settings
from common.exceptions import (
    BackendHTTPError,
    BackendResponseError,
    BackendTransportError,
    CaptchaRequiredError,
)

logger = logging.getLogger(__name__)


class TranslationBackend(ABC):
    """
    One outbound request per call, no retries.

    Retries and backoff are layered outside by RetryPolicy.
    """

    name: str = "backend"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @abstractmethod
    async def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str] = None,
    ) -> str:
        """
        Translate a single text span.

        Args:
            text: Text to translate
            source_language: Source language code (e.g., 'en')
            target_language: Target language code (e.g., 'es')
            credential: CAPTCHA exemption cookie, used only by backends that need it

        Returns:
            Translated text

        Raises:
            CaptchaRequiredError: If the backend demands human verification
            BackendHTTPError: If the backend answers with a non-success status
            BackendTransportError: If no response was received
            BackendResponseError: If the response body cannot be read
        """

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self.client.send(request)
        except httpx.TransportError as e:
            raise BackendTransportError(f"{self.name}: {e}") from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class GoogleGtxBackend(TranslationBackend):
    """Google Translate through the public 'gtx' web client endpoint."""

    name = "gtx"

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        super().__init__(client)
        self.url = url or settings.gtx_url
        self.user_agent = user_agent or settings.user_agent

    def build_request(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str] = None,
    ) -> httpx.Request:
        params = {
            "client": "gtx",
            "sl": source_language,
            "tl": target_language,
            "dt": "t",
            "q": text,
        }
        headers = {"User-Agent": self.user_agent}
        if credential:
            headers["Cookie"] = credential
        return self.client.build_request("GET", self.url, params=params, headers=headers)

    async def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str] = None,
        detect_captcha: bool = True,
    ) -> str:
        """
        Translate a single text span with Google.

        Args:
            text: Text to translate
            source_language: Source language code
            target_language: Target language code
            credential: GOOGLE_ABUSE_EXEMPTION cookie sent with the request
            detect_captcha: Inspect error bodies for a CAPTCHA page. When False
                a block surfaces as a plain BackendHTTPError

        Returns:
            Translated text
        """
        request = self.build_request(text, source_language, target_language, credential)
        response = await self._send(request)

        if not response.is_success:
            if detect_captcha and "captcha" in response.text.lower():
                raise CaptchaRequiredError(str(response.url))
            raise BackendHTTPError(response.status_code, backend=self.name)

        try:
            data = response.json()
            segments = data[0]
            return "".join(
                segment[0] for segment in segments if segment and segment[0]
            )
        except (ValueError, TypeError, IndexError, KeyError) as e:
            raise BackendResponseError(f"{self.name}: unexpected response: {e}") from e


class DeepLxBackend(TranslationBackend):
    """DeepL through the free web JSON-RPC endpoint, the way DeepLX clients call it."""

    name = "deeplx"

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        super().__init__(client)
        self.url = url or settings.deeplx_url
        self.user_agent = user_agent or settings.user_agent

    @staticmethod
    def _generate_request_id() -> int:
        return random.randint(100000, 199999) * 1000

    @staticmethod
    def _timestamp_for(text: str) -> int:
        """DeepL rejects requests whose timestamp isn't aligned to the 'i' count."""
        now = int(time.time() * 1000)
        i_count = text.count("i")
        if i_count:
            i_count += 1
            return now - now % i_count + i_count
        return now

    @staticmethod
    def _split_language(code: str) -> Tuple[str, Optional[str]]:
        """Split 'pt-br' into ('PT', 'PT-BR'); plain codes have no variant."""
        base, _, variant = code.upper().partition("-")
        return base, f"{base}-{variant}" if variant else None

    def build_payload(
        self, text: str, source_language: str, target_language: str
    ) -> Dict[str, Any]:
        """
        Build the LMT_handle_texts request.

        DeepL only accepts base language codes in `lang`; a regional target
        such as pt-br or zh-hant is sent as its base code plus a
        `regionalVariant` job parameter.
        """
        source_base, _ = self._split_language(source_language)
        target_base, target_variant = self._split_language(target_language)
        params: Dict[str, Any] = {
            "splitting": "newlines",
            "lang": {
                "source_lang_user_selected": source_base,
                "target_lang": target_base,
            },
            "texts": [{"text": text, "requestAlternatives": 3}],
            "timestamp": self._timestamp_for(text),
        }
        if target_variant:
            params["commonJobParams"] = {"regionalVariant": target_variant}
        return {
            "jsonrpc": "2.0",
            "method": "LMT_handle_texts",
            "id": self._generate_request_id(),
            "params": params,
        }

    @staticmethod
    def encode_payload(payload: Dict[str, Any]) -> str:
        """Serialize the payload with the method spacing DeepL expects for the id."""
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        request_id = payload["id"]
        if (request_id + 5) % 29 == 0 or (request_id + 3) % 13 == 0:
            return body.replace('"method":"', '"method" : "', 1)
        return body.replace('"method":"', '"method": "', 1)

    async def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
        credential: Optional[str] = None,
    ) -> str:
        payload = self.build_payload(text, source_language, target_language)
        request = self.client.build_request(
            "POST",
            self.url,
            content=self.encode_payload(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Accept": "*/*",
                "User-Agent": self.user_agent,
            },
        )
        response = await self._send(request)

        if not response.is_success:
            raise BackendHTTPError(response.status_code, backend=self.name)

        try:
            texts: List[Dict[str, Any]] = response.json()["result"]["texts"]
            return texts[0]["text"]
        except (ValueError, TypeError, IndexError, KeyError) as e:
            raise BackendResponseError(f"{self.name}: unexpected response: {e}") from e


class BackendRotation:
    """
    Alternates between two backends in dispatch order.

    Even dispatches go to the primary backend, odd ones to the secondary. One
    instance is shared by every job of a run.
    """

    def __init__(self, primary: TranslationBackend, secondary: TranslationBackend):
        self.primary = primary
        self.secondary = secondary
        self.dispatched = 0

    def next_backend(self) -> TranslationBackend:
        backend = self.primary if self.dispatched % 2 == 0 else self.secondary
        self.dispatched += 1
        return backend
