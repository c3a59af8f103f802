"""Catalog client for the AniList GraphQL API with an offline fallback.

Once a request fails in a way that suggests the API is unreachable (timeout,
rate limiting, connection failure or a server error) the client switches to
the static dataset in ``catalog_fallback`` and stays there until
:meth:`CatalogClient.reset` is called.
"""

import datetime
import logging
import time

import requests

from toontick.errors import CatalogError, NotFoundError
from toontick.services.catalog_fallback import FALLBACK_MEDIA


logger = logging.getLogger(__name__)

ANILIST_API_URL = "https://graphql.anilist.co"
DEFAULT_TIMEOUT = 3.0
DEFAULT_MIN_INTERVAL = 0.5
FALLBACK_PAGE_SIZE = 16
MIN_YEAR = 2000

SEARCH_QUERY = """
query ($search: String, $genres: [String], $sort: [MediaSort]) {
  Page(page: 1, perPage: 50) {
    media(
      search: $search,
      type: MANGA,
      countryOfOrigin: "KR",
      sort: $sort,
      isAdult: false,
      genre_in: $genres,
      status_in: [FINISHED, RELEASING]
    ) {
      id
      title { romaji english }
      coverImage { large extraLarge }
      chapters
      status
      startDate { year }
      averageScore
      popularity
      genres
    }
  }
}
"""

POPULAR_QUERY = """
query ($page: Int) {
  Page(page: $page, perPage: 50) {
    media(type: MANGA, countryOfOrigin: "KR", sort: POPULARITY_DESC, status_in: [FINISHED, RELEASING], isAdult: false) {
      id
      title { romaji english }
      coverImage { large }
      averageScore
      popularity
      chapters
      status
      startDate { year }
      genres
    }
  }
}
"""

DETAILS_QUERY = """
query ($id: Int) {
  Media(id: $id, type: MANGA) {
    id
    title { romaji english }
    description(asHtml: false)
    coverImage { extraLarge }
    status
    format
    startDate { year }
    chapters
    averageScore
    popularity
    genres
  }
}
"""


class CatalogRequestError(Exception):
    """A failed catalog request, tagged with the kind of failure."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    SERVER_ERROR = "server_error"
    QUERY_ERROR = "query_error"

    # Kinds that mean the API itself is unavailable.
    UNAVAILABLE = {TIMEOUT, RATE_LIMITED, NETWORK, SERVER_ERROR}

    def __init__(self, kind, detail=""):
        super().__init__(f"{kind}: {detail}" if detail else kind)
        self.kind = kind

    @property
    def unavailable(self):
        return self.kind in self.UNAVAILABLE


def normalize_media(media):
    """Map an AniList media object onto the catalog entry shape."""
    title = media.get("title") or {}
    cover = media.get("coverImage") or {}
    start = media.get("startDate") or {}
    status = media.get("status")
    return {
        "id": media.get("id"),
        "title": title.get("english") or title.get("romaji"),
        "image": cover.get("extraLarge") or cover.get("large") or cover.get("medium"),
        "status": status.lower() if status else "unknown",
        # Unknown chapter counts (ongoing series) stay None.
        "chapters": media.get("chapters"),
        "averageScore": media.get("averageScore"),
        "popularity": media.get("popularity"),
        "genres": media.get("genres") or [],
        "description": media.get("description"),
        "year": start.get("year"),
    }


def sort_parameters(sort_by, sort_order):
    ascending = sort_order == "asc"
    sort_map = {
        "releaseDate": "START_DATE" if ascending else "START_DATE_DESC",
        "rating": "SCORE" if ascending else "SCORE_DESC",
    }
    return [sort_map.get(sort_by, "POPULARITY_DESC")]


def _year_bounds(year_range):
    current = datetime.date.today().year
    if not year_range:
        return MIN_YEAR, current
    if isinstance(year_range, dict):
        low, high = year_range.get("from"), year_range.get("to")
    else:
        low, high = year_range
    return (MIN_YEAR if low is None else int(low)), (current if high is None else int(high))


def filter_by_year(items, year_range):
    low, high = _year_bounds(year_range)
    if low <= MIN_YEAR and high >= datetime.date.today().year:
        return items
    # Entries without year data are kept.
    return [item for item in items if not item["year"] or low <= item["year"] <= high]


class CatalogClient:
    def __init__(
        self,
        api_url=ANILIST_API_URL,
        timeout=DEFAULT_TIMEOUT,
        min_interval=DEFAULT_MIN_INTERVAL,
        session=None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.min_interval = min_interval
        self.session = session or requests.Session()
        self.use_fallback = False
        self._last_request = 0.0

    def _throttle(self):
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self._last_request = time.monotonic()

    def _degrade(self, error):
        if not self.use_fallback:
            logger.warning("Catalog API unavailable (%s), switching to offline catalog", error)
        self.use_fallback = True

    def reset(self):
        """Try the live API again on the next request."""
        self.use_fallback = False
        logger.info("Catalog fallback reset, next request will use the live API")

    def graphql(self, query, variables=None):
        self._throttle()
        try:
            response = self.session.post(
                self.api_url,
                json={"query": query, "variables": variables or {}},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise CatalogRequestError(CatalogRequestError.TIMEOUT, str(exc)) from exc
        except requests.ConnectionError as exc:
            raise CatalogRequestError(CatalogRequestError.NETWORK, str(exc)) from exc
        except requests.RequestException as exc:
            raise CatalogRequestError(CatalogRequestError.NETWORK, str(exc)) from exc

        if response.status_code == 429:
            raise CatalogRequestError(CatalogRequestError.RATE_LIMITED)
        if response.status_code >= 500:
            raise CatalogRequestError(CatalogRequestError.SERVER_ERROR, f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogRequestError(CatalogRequestError.QUERY_ERROR, "invalid JSON") from exc

        if payload.get("errors"):
            message = payload["errors"][0].get("message") or "GraphQL query failed"
            raise CatalogRequestError(CatalogRequestError.QUERY_ERROR, message)
        if not response.ok:
            raise CatalogRequestError(CatalogRequestError.QUERY_ERROR, f"HTTP {response.status_code}")
        if not payload.get("data"):
            raise CatalogRequestError(CatalogRequestError.QUERY_ERROR, "no data returned")
        return payload["data"]

    def _page_media(self, page):
        data = self.graphql(POPULAR_QUERY, {"page": page})
        return ((data.get("Page") or {}).get("media")) or []

    def fallback_list(self, page=1, count=3):
        start = (page - 1) * FALLBACK_PAGE_SIZE
        end = start + count * FALLBACK_PAGE_SIZE
        return [normalize_media(media) for media in FALLBACK_MEDIA[start:end]]

    def list(self, page=1, count=3):
        """Popular titles for ``count`` pages starting at ``page``."""
        if self.use_fallback:
            return self.fallback_list(page, count)

        try:
            first = self._page_media(page)
            if not first:
                raise CatalogRequestError(CatalogRequestError.QUERY_ERROR, "no data returned")
        except CatalogRequestError as exc:
            self._degrade(exc)
            return self.fallback_list(page, count)

        items = [normalize_media(media) for media in first]
        for next_page in range(page + 1, page + count):
            try:
                media = self._page_media(next_page)
            except CatalogRequestError as exc:
                logger.warning("Failed to fetch catalog page %s, continuing with available data: %s", next_page, exc)
                break
            if not media:
                break
            items.extend(normalize_media(entry) for entry in media)
        return items

    def fallback_search(self, query, genres, year_range):
        items = [normalize_media(media) for media in FALLBACK_MEDIA]
        term = query.strip().lower()
        if term:
            items = [item for item in items if term in item["title"].lower()]
        if genres:
            items = [item for item in items if any(genre in genres for genre in item["genres"])]
        return filter_by_year(items, year_range)

    def search(self, query, genres=None, year_range=None, sort_by="releaseDate", sort_order="desc"):
        query = query or ""
        genres = list(genres or [])
        if not query.strip() and not genres:
            return []
        if self.use_fallback:
            return self.fallback_search(query, genres, year_range)

        variables = {"sort": sort_parameters(sort_by, sort_order)}
        if query.strip():
            variables["search"] = query
        if genres:
            variables["genres"] = genres

        try:
            data = self.graphql(SEARCH_QUERY, variables)
            media = (data.get("Page") or {}).get("media") or []
        except CatalogRequestError as exc:
            if exc.unavailable:
                self._degrade(exc)
                return self.fallback_search(query, genres, year_range)
            logger.error("Catalog search failed: %s", exc)
            raise CatalogError("Search failed. Please try again.") from exc
        return filter_by_year([normalize_media(entry) for entry in media], year_range)

    def get(self, manhwa_id):
        """Details for one title."""
        try:
            media_id = int(manhwa_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"Unknown manhwa id: {manhwa_id}") from None

        if not self.use_fallback:
            try:
                data = self.graphql(DETAILS_QUERY, {"id": media_id})
                if data.get("Media"):
                    return normalize_media(data["Media"])
                raise NotFoundError(f"Unknown manhwa id: {manhwa_id}")
            except CatalogRequestError as exc:
                if not exc.unavailable:
                    logger.error("Failed to fetch manhwa details for %s: %s", manhwa_id, exc)
                    raise CatalogError("Failed to load manhwa details. Please try again.") from exc
                self._degrade(exc)

        for media in FALLBACK_MEDIA:
            if media["id"] == media_id:
                return normalize_media(media)
        raise NotFoundError(f"Unknown manhwa id: {manhwa_id}")
