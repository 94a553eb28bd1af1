"""Shared test fixtures and factories."""

import asyncio
import copy
import io
import socket
from typing import Any, Awaitable, Callable, Dict, List

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from PIL import Image

from coin_analyzer.api.client import AnalysisClient
from coin_analyzer.api.connectivity import ConnectivityProbe
from coin_analyzer.config import ClientConfig

Step = Callable[[web.Request], Awaitable[web.StreamResponse]]

# =============================================================================
# Payloads
# =============================================================================

GOOD_PAYLOAD: Dict[str, Any] = {
    "success": True,
    "timestamp": "2024-05-01T12:00:00Z",
    "coin_analysis": {
        "basic_info": {
            "released_year": "1965",
            "country": "United States",
            "denomination": "Quarter Dollar",
            "composition": "Copper-Nickel Clad Copper",
        },
        "value_assessment": {"collector_value": "$0.25 - $1.00", "rarity": "Common"},
        "description": "Washington quarter with an eagle on the reverse.",
        "historical_context": "First year of the clad composition.",
        "technical_details": {"mint_mark": "None", "rarity": "Common", "diameter_mm": "24.26"},
    },
    "metadata": {
        "model_used": "vision-1",
        "image_filename": "coin_image.jpg",
        "image_size_bytes": 48213,
        "processing_time": "3.2s",
    },
}

ERROR_PAYLOAD = {"success": False, "error": "boom", "timestamp": "2024-05-01T12:00:00Z"}


def good_payload() -> Dict[str, Any]:
    return copy.deepcopy(GOOD_PAYLOAD)


def unknown_payload(value: str = "unknown") -> Dict[str, Any]:
    payload = good_payload()
    analysis = payload["coin_analysis"]
    for key in analysis["basic_info"]:
        analysis["basic_info"][key] = value
    analysis["value_assessment"] = {"collector_value": value, "rarity": value}
    analysis["description"] = value
    analysis["historical_context"] = value
    analysis["technical_details"] = {"rarity": value}
    return payload


# =============================================================================
# Images
# =============================================================================

def make_image(width: int, height: int, mode: str = "RGB") -> Image.Image:
    color = (180, 120, 40, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
    return Image.new(mode, (width, height), color)


def image_bytes(width: int, height: int, fmt: str = "JPEG", **save_kwargs) -> bytes:
    buffer = io.BytesIO()
    make_image(width, height).save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


# =============================================================================
# Simulated backend
# =============================================================================

def respond_json(payload: Any, status: int = 200) -> Step:
    async def step(request: web.Request) -> web.StreamResponse:
        return web.json_response(payload, status=status)
    return step


def respond_raw(body: bytes, status: int = 200) -> Step:
    async def step(request: web.Request) -> web.StreamResponse:
        return web.Response(body=body, status=status, content_type="text/html")
    return step


def respond_slowly(delay: float, then: Step) -> Step:
    async def step(request: web.Request) -> web.StreamResponse:
        await asyncio.sleep(delay)
        return await then(request)
    return step


class FakeBackend:
    """In-process backend whose /analyze answers follow a script, one step per attempt.

    The last step is repeated once the script runs out. Every upload is parsed
    with aiohttp's multipart parser and recorded as
    {field: (filename, content_type, data)}.
    """

    def __init__(self) -> None:
        self.script: List[Step] = [respond_json(GOOD_PAYLOAD)]
        self.uploads: List[Dict[str, tuple]] = []
        self.content_types: List[str] = []
        self.health_status = 200
        self.root_status = 404

        app = web.Application()
        app.router.add_post("/analyze", self._analyze)
        app.router.add_get("/health", self._health)
        app.router.add_get("/", self._root)
        self.server = TestServer(app)

    @property
    def base_url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    @property
    def attempts(self) -> int:
        return len(self.uploads)

    def respond(self, *steps: Step) -> None:
        self.script = list(steps)

    async def _analyze(self, request: web.Request) -> web.StreamResponse:
        self.content_types.append(request.headers["Content-Type"])
        form = await request.post()
        self.uploads.append({
            name: (field.filename, field.content_type, field.file.read())
            for name, field in form.items()
        })
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        return await step(request)

    async def _health(self, request: web.Request) -> web.StreamResponse:
        return web.json_response({"status": "ok"}, status=self.health_status)

    async def _root(self, request: web.Request) -> web.StreamResponse:
        return web.Response(text="root", status=self.root_status)


class StaticProbe(ConnectivityProbe):
    """Connectivity probe with a fixed answer that counts its calls."""

    def __init__(self, reachable: bool = True, delay: float = 0.0) -> None:
        self.reachable = reachable
        self.delay = delay
        self.calls = 0

    async def is_reachable(self) -> bool:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reachable


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def make_config(base_url: str, **overrides) -> ClientConfig:
    settings = {"backoff": "immediate", "request_timeout": 5.0, "operation_timeout": 10.0}
    settings.update(overrides)
    return ClientConfig(base_url=base_url, **settings)


# =============================================================================
# Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def backend():
    fake = FakeBackend()
    await fake.server.start_server()
    yield fake
    await fake.server.close()


@pytest.fixture
def probe() -> StaticProbe:
    return StaticProbe(reachable=True)


@pytest_asyncio.fixture
async def client(backend, probe):
    async with AnalysisClient(make_config(backend.base_url), probe=probe) as c:
        yield c
