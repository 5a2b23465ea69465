"""HTTP access for metadata checks and image downloads."""

from __future__ import annotations

import logging
import random
from typing import Dict, Iterator, Optional, Sequence

import requests

from .config import DEFAULT_USER_AGENTS, SEARCH_REFERER
from .errors import NetworkFailure

logger = logging.getLogger("image_hunt.fetch")

CHUNK_SIZE = 64 * 1024


def pick_agent(pool: Sequence[str], rng: random.Random) -> str:
    """Choose a user-agent string from the pool using the given random source."""
    if not pool:
        raise ValueError("user-agent pool is empty")
    return pool[rng.randrange(len(pool))]


class HttpClient:
    """Thin wrapper around a requests session that rotates user agents."""

    def __init__(
        self,
        user_agents: Sequence[str] = DEFAULT_USER_AGENTS,
        referer: str = SEARCH_REFERER,
        rng: Optional[random.Random] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.user_agents = tuple(user_agents)
        self.referer = referer
        self.rng = rng or random.Random()
        self.session = session or requests.Session()

    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": pick_agent(self.user_agents, self.rng),
            "Referer": self.referer,
        }

    def head_check(self, url: str, timeout: float) -> int:
        """Issue a HEAD request and return the final status code."""
        try:
            resp = self.session.head(
                url, headers=self.headers(), timeout=timeout, allow_redirects=True
            )
        except requests.RequestException as exc:
            raise NetworkFailure(f"HEAD {url} failed: {exc}") from exc
        return resp.status_code

    def get_stream(self, url: str, timeout: float) -> Iterator[bytes]:
        """Start a streaming GET and return an iterator over body chunks."""
        try:
            resp = self.session.get(
                url, headers=self.headers(), timeout=timeout, stream=True
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkFailure(f"GET {url} failed: {exc}") from exc
        return self._iter_body(resp, url)

    @staticmethod
    def _iter_body(resp: requests.Response, url: str) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            raise NetworkFailure(f"GET {url} interrupted: {exc}") from exc
        finally:
            resp.close()

    def close(self) -> None:
        self.session.close()
