from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sentiscope.errors import UpstreamError
from sentiscope.http_client import HttpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayConfig:
    url: str
    model: str
    api_key: str


class ChatGatewayClient:
    """Client for a hosted chat-completion style endpoint."""

    def __init__(self, cfg: GatewayConfig, http: HttpClient):
        if not cfg.api_key:
            raise ValueError("AI gateway API key not configured")
        self._cfg = cfg
        self._http = http

    @property
    def model(self) -> str:
        return self._cfg.model

    def complete(self, messages: Sequence[Mapping[str, str]]) -> str:
        """
        Send a chat request and return the first choice's message content.

        Raises:
            RemoteAnalysisError subclasses (see HttpClient.post_json)
            UpstreamError: response body lacks choices[0].message.content
        """
        payload = {
            "model": self._cfg.model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }
        data = self._http.post_json(
            self._cfg.url,
            payload,
            headers={"Authorization": f"Bearer {self._cfg.api_key}"},
        )
        return _extract_content(data)


class VisionClient:
    """Client for a hosted vision endpoint taking `{imageData}`."""

    def __init__(self, url: str, http: HttpClient, api_key: str = ""):
        self._url = url
        self._http = http
        self._api_key = api_key

    def analyze(self, image_data_url: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else None
        data = self._http.post_json(self._url, {"imageData": image_data_url}, headers=headers)
        if not isinstance(data, dict):
            raise UpstreamError("Vision API returned an unexpected body")
        return data


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamError("AI API response has no choices[0].message.content") from e
    if not isinstance(content, str):
        raise UpstreamError("AI API message content is not a string")
    return content.strip()
