"""YouTube Data API search client."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from dreamplan.core.config import settings
from dreamplan.core.errors import ConfigurationError, UpstreamServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "youtube"


def search_videos(query: str, max_results: int = 5) -> List[Dict[str, str]]:
    """Return up to ``max_results`` videos as ``{id, title, thumbnail, channelTitle}``."""
    api_key = settings.youtube_api_key
    if not api_key:
        raise ConfigurationError("YOUTUBE_API_KEY is not configured")

    params = {
        "part": "snippet",
        "q": query,
        "type": "video",
        "maxResults": max_results,
        "key": api_key,
    }
    try:
        response = httpx.get(settings.youtube_search_url, params=params, timeout=settings.http_timeout_seconds)
    except httpx.HTTPError as exc:
        logger.error("YouTube API request failed: %s", exc.__class__.__name__)
        raise UpstreamServiceError("YouTube API request failed", service=SERVICE_NAME) from exc

    if response.status_code >= 400:
        logger.error("YouTube API error: %s", response.status_code)
        raise UpstreamServiceError(
            f"YouTube API error: {response.status_code}",
            service=SERVICE_NAME,
            status_code=response.status_code,
        )

    try:
        items = response.json().get("items") or []
        return [_map_item(item) for item in items[:max_results]]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.error("YouTube API returned an unexpected payload")
        raise UpstreamServiceError("YouTube API returned an unexpected payload", service=SERVICE_NAME) from exc


def _map_item(item: Dict[str, Any]) -> Dict[str, str]:
    snippet = item["snippet"]
    return {
        "id": item["id"]["videoId"],
        "title": snippet["title"],
        "thumbnail": snippet["thumbnails"]["medium"]["url"],
        "channelTitle": snippet.get("channelTitle", ""),
    }


def youtube_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
