"""Tests for the resolution strategy order and navigation budget."""

from unittest.mock import AsyncMock, Mock

import pytest
import requests

from image_hunt.config import HuntConfig
from image_hunt.errors import NavigationError, NetworkFailure
from image_hunt.fetch import HttpClient
from image_hunt.models import ImageCandidate
from image_hunt.resolver import ResolutionStrategist

from tests.conftest import THUMB, FakeHttp

FULL = "https://photos.example.com/fox.jpg"
SOURCE = "https://blog.example.com/fox"
ENHANCED = "https://blog.example.com/images/fox-2400.jpg"


def make_browser(result=ENHANCED):
    browser = Mock()
    if isinstance(result, Exception):
        browser.find_largest_image = AsyncMock(side_effect=result)
    else:
        browser.find_largest_image = AsyncMock(return_value=result)
    return browser


def make_resolver(http, browser=None, **config):
    return ResolutionStrategist(http, browser, HuntConfig(**config))


@pytest.mark.asyncio
async def test_direct_full_size_wins_even_with_source_page():
    http = FakeHttp(head_status={FULL: 200})
    browser = make_browser()
    candidate = ImageCandidate(THUMB.format("a"), FULL, SOURCE)

    resolved = await make_resolver(http, browser).resolve(candidate)

    assert resolved.resolution_tier == "real-fullsize"
    assert resolved.final_image_url == FULL
    browser.find_largest_image.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 404, 500, NetworkFailure("timed out")])
async def test_failed_head_check_falls_through_to_source_page(status):
    http = FakeHttp(head_status={FULL: status})
    browser = make_browser()

    resolved = await make_resolver(http, browser).resolve(ImageCandidate(THUMB.format("a"), FULL, SOURCE))

    assert resolved.resolution_tier == "enhanced"
    assert resolved.final_image_url == ENHANCED
    assert http.head_calls == [FULL]
    assert browser.find_largest_image.await_args.args == (SOURCE,)


@pytest.mark.asyncio
async def test_full_size_equal_to_thumbnail_is_not_checked():
    http = FakeHttp()
    thumb = THUMB.format("a")
    resolved = await make_resolver(http).resolve(ImageCandidate(thumb, thumb))
    assert http.head_calls == []
    assert resolved.resolution_tier == "thumbnail"
    assert resolved.final_image_url == thumb


@pytest.mark.asyncio
async def test_navigation_error_falls_back_to_thumbnail():
    browser = make_browser(NavigationError("timeout"))
    resolved = await make_resolver(FakeHttp(), browser).resolve(
        ImageCandidate(THUMB.format("a"), source_page_url=SOURCE)
    )
    assert resolved.resolution_tier == "thumbnail"


@pytest.mark.asyncio
async def test_source_page_without_qualifying_image_falls_back():
    browser = make_browser(None)
    resolved = await make_resolver(FakeHttp(), browser).resolve(
        ImageCandidate(THUMB.format("a"), source_page_url=SOURCE)
    )
    assert resolved.resolution_tier == "thumbnail"


@pytest.mark.asyncio
async def test_escaped_thumbnail_is_cleaned():
    raw = "https://encrypted-tbn0.gstatic.com/images?q\\u003dtbn:a\\u0026s\\u003d10"
    resolved = await make_resolver(FakeHttp()).resolve(ImageCandidate(raw))
    assert resolved.final_image_url == "https://encrypted-tbn0.gstatic.com/images?q=tbn:a&s=10"


@pytest.mark.asyncio
async def test_invalid_thumbnail_fails():
    resolved = await make_resolver(FakeHttp(head_status={FULL: 200})).resolve(
        ImageCandidate("not a url", FULL)
    )
    assert resolved.resolution_tier == "failed"
    assert resolved.final_image_url is None


@pytest.mark.asyncio
async def test_navigation_budget_is_shared_and_spent_per_attempt():
    browser = make_browser(NavigationError("blocked"))
    resolver = make_resolver(FakeHttp(), browser, max_source_navigations=2)

    for idx in range(4):
        await resolver.resolve(ImageCandidate(THUMB.format(idx), source_page_url=SOURCE))

    assert browser.find_largest_image.await_count == 2
    assert resolver.navigations_left == 0


@pytest.mark.asyncio
async def test_zero_budget_never_navigates():
    browser = make_browser()
    resolver = make_resolver(FakeHttp(), browser, max_source_navigations=0)
    resolved = await resolver.resolve(ImageCandidate(THUMB.format("a"), source_page_url=SOURCE))
    assert resolved.resolution_tier == "thumbnail"
    browser.find_largest_image.assert_not_awaited()


class TestHttpClient:
    def test_head_check_sends_referer_and_rotating_agent(self):
        session = Mock()
        session.head.return_value = Mock(status_code=200)
        client = HttpClient(user_agents=("agent-a", "agent-b"), session=session)

        assert client.head_check(FULL, timeout=5) == 200
        headers = session.head.call_args.kwargs["headers"]
        assert headers["Referer"] == "https://www.google.com/"
        assert headers["User-Agent"] in ("agent-a", "agent-b")
        assert session.head.call_args.kwargs["timeout"] == 5

    def test_transport_errors_become_network_failures(self):
        session = Mock()
        session.head.side_effect = requests.ConnectionError("refused")
        session.get.side_effect = requests.Timeout("slow")
        client = HttpClient(session=session)

        with pytest.raises(NetworkFailure):
            client.head_check(FULL, timeout=5)
        with pytest.raises(NetworkFailure):
            client.get_stream(FULL, timeout=5)

    def test_http_error_status_on_download(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        session = Mock()
        session.get.return_value = response
        with pytest.raises(NetworkFailure):
            HttpClient(session=session).get_stream(FULL, timeout=5)

    def test_get_stream_yields_chunks(self):
        response = Mock()
        response.iter_content.return_value = [b"abc", b"", b"def"]
        session = Mock()
        session.get.return_value = response
        chunks = list(HttpClient(session=session).get_stream(FULL, timeout=5))
        assert chunks == [b"abc", b"def"]
        response.close.assert_called_once()
