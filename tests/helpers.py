"""Test doubles for outbound HTTP and canned model replies."""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

TOKEN_URI = "https://oauth2.test/token"
MODEL_URL = "https://model.test/v1/models/gemini-test:generateContent"
INFERENCE_URL = "https://inference.test"
CLIENT_EMAIL = "kaeva@kaeva-test.iam.gserviceaccount.com"

Handler = Union[Callable[[httpx.Request], httpx.Response], Exception]


class FakeNetwork:
    """Routes requests made through an ``httpx.MockTransport`` to canned handlers.

    Routes are keyed by method and URL without query string. Every request is
    recorded so tests can inspect what was sent.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        status: int = 200,
        json_body: Any = None,
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        handler: Optional[Handler] = None,
    ) -> None:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if json_body is not None:
                    return httpx.Response(status, json=json_body, headers=headers)
                return httpx.Response(status, content=content, headers=headers)

        self.routes[(method.upper(), url)] = handler

    def fail(self, method: str, url: str, message: str = "connection refused") -> None:
        self.routes[(method.upper(), url)] = httpx.ConnectError(message)

    def sent(self, method: str, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and _route_url(r) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        handler = self.routes.get((request.method, _route_url(request)))
        if handler is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(handler, Exception):
            raise handler
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _route_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


def model_reply(
    text: str, chunks: Optional[List[Dict[str, str]]] = None, queries: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Build a generateContent response body."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "groundingMetadata": {
                    "groundingChunks": [{"web": chunk} for chunk in chunks or []],
                    "webSearchQueries": queries or [],
                },
            }
        ]
    }


def verdict_block(payload: Dict[str, Any], preamble: str = "Here is my analysis.") -> str:
    return f"{preamble}\n\n```json\n{json.dumps(payload)}\n```"

