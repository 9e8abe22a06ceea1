"""
Exercise catalog lookup via API Ninjas, enriched with YouTube tutorial links.

Usage:
    with ExerciseCatalogClient(api_ninjas_key, youtube_api_key) as catalog:
        exercises = catalog.search(muscle="biceps")
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from gymrack.core.errors import UpstreamError

logger = logging.getLogger(__name__)

API_NINJAS_URL = "https://api.api-ninjas.com/v1/exercises"
YOUTUBE_SEARCH_API_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_RESULTS_URL = "https://www.youtube.com/results?search_query="
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="
PLACEHOLDER_THUMBNAIL_URL = "https://via.placeholder.com/400x300/1f2937/38bdf8?text="


class ExerciseCatalogClient:
    def __init__(
        self,
        api_ninjas_key: str,
        youtube_api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_ninjas_key = api_ninjas_key
        self.youtube_api_key = youtube_api_key
        self.client = client or httpx.Client(timeout=timeout)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.client.close()

    def search(
        self,
        muscle: Optional[str] = None,
        type: Optional[str] = None,
        difficulty: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search exercises and attach video/thumbnail links to each.

        Raises:
            UpstreamError: API Ninjas answered with an error status or was unreachable
        """
        params = {k: v for k, v in (("muscle", muscle), ("type", type), ("difficulty", difficulty)) if v}

        try:
            response = self.client.get(
                API_NINJAS_URL,
                params=params,
                headers={"X-Api-Key": self.api_ninjas_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"API Ninjas request failed: {e}")
            raise UpstreamError(str(e))

        if response.is_error:
            logger.error(f"API Ninjas error {response.status_code}: {response.text}")
            raise UpstreamError(response.text)

        return [self.enrich(exercise) for exercise in response.json()]

    def enrich(self, exercise: Dict[str, Any]) -> Dict[str, Any]:
        name = exercise.get("name", "")
        muscle = exercise.get("muscle", "")

        video_id, thumbnail_url = self._find_video(f"{name} {muscle} exercise")

        if video_id:
            video_url = YOUTUBE_WATCH_URL + video_id
        else:
            video_url = YOUTUBE_RESULTS_URL + quote(f"{name} {muscle} exercise tutorial")

        return {
            **exercise,
            "youtubeSearchUrl": video_url,
            "thumbnailUrl": thumbnail_url or PLACEHOLDER_THUMBNAIL_URL + quote(name),
            "videoId": video_id,
        }

    def _find_video(self, query: str):
        """(video_id, thumbnail_url) of the first YouTube hit, or (None, None)."""
        if not self.youtube_api_key:
            return None, None

        try:
            response = self.client.get(
                YOUTUBE_SEARCH_API_URL,
                params={
                    "part": "snippet",
                    "q": query,
                    "type": "video",
                    "maxResults": 1,
                    "key": self.youtube_api_key,
                },
            )
            response.raise_for_status()
            items = response.json().get("items") or []
        except (httpx.HTTPError, ValueError) as e:
            # a missing video never fails the catalog lookup
            logger.error(f"YouTube API error: {e}")
            return None, None

        if not items:
            return None, None

        video_id = items[0].get("id", {}).get("videoId")
        thumbnails = items[0].get("snippet", {}).get("thumbnails", {})
        for size in ("high", "medium", "default"):
            if thumbnails.get(size, {}).get("url"):
                return video_id, thumbnails[size]["url"]
        return video_id, None
