from __future__ import annotations

import httpx
import pytest

from dreamplan.core.config import settings
from dreamplan.core.errors import ConfigurationError, UpstreamServiceError
from dreamplan.services import video_search


def _item(index: int) -> dict:
    return {
        "id": {"kind": "youtube#video", "videoId": f"vid{index}"},
        "snippet": {
            "title": f"Lesson {index}",
            "channelTitle": "Guitar Coach",
            "thumbnails": {
                "default": {"url": f"https://img.test/{index}/default.jpg"},
                "medium": {"url": f"https://img.test/{index}/medium.jpg"},
            },
        },
    }


@pytest.fixture()
def fake_get(monkeypatch):
    monkeypatch.setattr(settings, "youtube_api_key", "yt-test-key")
    state = {"status": 200, "payload": {"items": [_item(i) for i in range(3)]}, "calls": []}

    def fake(url, params=None, timeout=None):
        state["calls"].append({"url": url, "params": params, "timeout": timeout})
        request = httpx.Request("GET", url, params=params)
        return httpx.Response(state["status"], json=state["payload"], request=request)

    monkeypatch.setattr(video_search.httpx, "get", fake)
    return state


def test_search_maps_items_to_videos(fake_get) -> None:
    videos = video_search.search_videos("Learn guitar", max_results=5)

    assert videos[0] == {
        "id": "vid0",
        "title": "Lesson 0",
        "thumbnail": "https://img.test/0/medium.jpg",
        "channelTitle": "Guitar Coach",
    }
    assert len(videos) == 3
    params = fake_get["calls"][0]["params"]
    assert params["q"] == "Learn guitar"
    assert params["type"] == "video"
    assert params["maxResults"] == 5
    assert params["key"] == "yt-test-key"


def test_search_returns_empty_list_when_no_items(fake_get) -> None:
    fake_get["payload"] = {"items": []}
    assert video_search.search_videos("obscure") == []


def test_search_raises_on_error_status(fake_get) -> None:
    fake_get["status"] = 403
    fake_get["payload"] = {"error": {"message": "quota exceeded"}}

    with pytest.raises(UpstreamServiceError) as excinfo:
        video_search.search_videos("Learn guitar")
    assert excinfo.value.status_code == 403
    assert "yt-test-key" not in str(excinfo.value)


def test_search_raises_on_unexpected_payload(fake_get) -> None:
    fake_get["payload"] = {"items": [{"id": {}, "snippet": {}}]}

    with pytest.raises(UpstreamServiceError):
        video_search.search_videos("Learn guitar")


def test_search_requires_api_key(monkeypatch) -> None:
    monkeypatch.setattr(settings, "youtube_api_key", None)

    with pytest.raises(ConfigurationError):
        video_search.search_videos("Learn guitar")


def test_watch_url() -> None:
    assert video_search.youtube_watch_url("abc123") == "https://www.youtube.com/watch?v=abc123"
