"""Shared fixtures: in-memory HTTP fakes and Pillow-generated images."""

from __future__ import annotations

import io
import json
import random
from typing import Dict, List, Tuple, Union

import pytest
from PIL import Image

from image_hunt.config import DEFAULT_USER_AGENTS, HuntConfig
from image_hunt.errors import NetworkFailure

THUMB = "https://encrypted-tbn0.gstatic.com/images?q=tbn:ANd9Gc{}"


def image_bytes(width: int, height: int, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 40, 200)).save(buffer, format=fmt)
    return buffer.getvalue()


def structured_entry(thumbnail: str, width: int = 0, height: int = 0, *extra) -> str:
    """Encode a structured-data value the way the results page stores it."""
    info: List[object] = [thumbnail, width, height, *extra]
    return json.dumps([0, info])


class FakeHttp:
    """Stands in for HttpClient; serves canned statuses and image payloads."""

    def __init__(
        self,
        images: Dict[str, Union[Tuple[int, int], bytes]] | None = None,
        head_status: Dict[str, Union[int, Exception]] | None = None,
    ) -> None:
        self.images = images or {}
        self.head_status = head_status or {}
        self.user_agents = DEFAULT_USER_AGENTS
        self.rng = random.Random(0)
        self.head_calls: List[str] = []
        self.get_calls: List[str] = []
        self.closed = False

    def head_check(self, url: str, timeout: float) -> int:
        self.head_calls.append(url)
        status = self.head_status.get(url, 404)
        if isinstance(status, Exception):
            raise status
        return status

    def get_stream(self, url: str, timeout: float):
        self.get_calls.append(url)
        if url not in self.images:
            raise NetworkFailure(f"GET {url} failed: 404")
        payload = self.images[url]
        if isinstance(payload, tuple):
            payload = image_bytes(*payload)
        return iter([payload])

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def config(tmp_path) -> HuntConfig:
    return HuntConfig(
        download_dir=tmp_path / "downloads",
        delay_ms=500,
        min_width=400,
        min_height=400,
        min_megapixels=0.4,
        fallback_to_thumbnails=True,
    )


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
