from __future__ import annotations

from typing import Any, Callable, Dict, List

import httpx

Route = Callable[[httpx.Request], httpx.Response]


class FakeHTTP:
    """Routes requests by URL (query ignored) and records every call."""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.calls: List[httpx.Request] = []

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def json(self, url: str, payload: Any, status_code: int = 200) -> None:
        self.add(url, lambda _request: httpx.Response(status_code, json=payload))

    def text(self, url: str, body: str, status_code: int = 200) -> None:
        self.add(url, lambda _request: httpx.Response(status_code, text=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(str(request.url.copy_with(query=None)))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def urls(self) -> List[str]:
        return [str(request.url.copy_with(query=None)) for request in self.calls]


def solidity_source(lines: int) -> str:
    """Return contract text with exactly ``lines`` newline-delimited segments."""
    body = ["pragma solidity ^0.8.0;"] + [f"// line {index}" for index in range(2, lines + 1)]
    return "\n".join(body[:lines])


def gemini_reply(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}
