"""Google Photos Library API listing by day."""

import logging
import threading
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from .auth import AuthManager
from .cache import FetchResult
from .matcher import RemoteMediaItem

logger = logging.getLogger(__name__)

SEARCH_URL = "https://photoslibrary.googleapis.com/v1/mediaItems:search"


def build_day_filter(day_key: str) -> Dict[str, Any]:
    """Return a ``dateFilter`` covering exactly one calendar day."""
    day = date.fromisoformat(day_key)
    day_dict = {"year": day.year, "month": day.month, "day": day.day}
    return {"ranges": [{"startDate": day_dict, "endDate": dict(day_dict)}]}


class GooglePhotosClient:
    """Lists the media items of a day from the user's Google Photos library."""

    def __init__(self, auth_manager: AuthManager, page_size: int = 100, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.auth_manager = auth_manager
        self.page_size = page_size
        self.timeout = timeout
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The injected session, or one session per calling thread."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _headers(self, force_refresh: bool = False) -> Dict[str, str]:
        token = self.auth_manager.get_access_token(force_refresh=force_refresh)
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def search_media_items(self, body: dict, force_refresh: bool = False) -> requests.Response:
        return self.session.post(
            SEARCH_URL,
            headers=self._headers(force_refresh),
            json=body,
            timeout=self.timeout,
        )

    def fetch_remote_items_for_day(self, day_key: str) -> FetchResult:
        """
        List every media item Google Photos files under ``day_key``.

        Follows ``nextPageToken`` until exhausted. An expired token gets one
        forced refresh; any other failure is returned in ``FetchResult.error``.

        Args:
            day_key: Day in ``YYYY-MM-DD`` form

        Returns:
            FetchResult with RemoteMediaItem list or an error message
        """
        try:
            body: Dict[str, Any] = {
                "pageSize": self.page_size,
                "filters": {"dateFilter": build_day_filter(day_key)},
            }
        except ValueError as e:
            return FetchResult(error=f"Invalid day {day_key!r}: {e}")

        items: List[RemoteMediaItem] = []
        retried_auth = False

        while True:
            try:
                resp = self.search_media_items(body)
                if resp.status_code == 401 and not retried_auth:
                    logger.warning(f"Access token rejected while listing {day_key}, refreshing")
                    retried_auth = True
                    resp = self.search_media_items(body, force_refresh=True)
            except requests.RequestException as e:
                logger.error(f"Google Photos request for {day_key} failed: {e}")
                return FetchResult(error=str(e))

            if resp.status_code != 200:
                message = f"Google Photos API error {resp.status_code}: {resp.text[:200]}"
                logger.error(f"Listing {day_key} failed: {message}")
                return FetchResult(error=message)

            try:
                data = resp.json()
            except ValueError as e:
                logger.error(f"Invalid JSON listing {day_key}: {e}")
                return FetchResult(error=f"Invalid JSON response: {e}")

            for item in data.get("mediaItems", []):
                items.append(RemoteMediaItem.from_api(item))

            next_page_token = data.get("nextPageToken")
            if not next_page_token:
                break
            body["pageToken"] = next_page_token

        logger.info(f"Fetched {len(items)} Google Photos items for {day_key}")
        return FetchResult(items=items)
