import json

import pytest
import requests
import responses

from conftest import CATALOG_URL
from toontick.errors import CatalogError, NotFoundError
from toontick.services.catalog import CatalogClient, normalize_media, sort_parameters


def _media(media_id, english, romaji="Romaji", year=2020, chapters=None, genres=None):
    return {
        "id": media_id,
        "title": {"english": english, "romaji": romaji},
        "coverImage": {"large": f"https://img.test/{media_id}.jpg"},
        "averageScore": 80,
        "popularity": 1000,
        "chapters": chapters,
        "status": "RELEASING",
        "startDate": {"year": year},
        "genres": genres or ["Action"],
    }


def _page(*media):
    return {"data": {"Page": {"media": list(media)}}}


def _client():
    return CatalogClient(api_url=CATALOG_URL, min_interval=0)


def _sent_variables(call):
    return json.loads(call.request.body)["variables"]


def test_normalize_media_prefers_english_title():
    entry = normalize_media(_media(1, None, romaji="Na Honjaman Level Up", chapters=0))
    assert entry["title"] == "Na Honjaman Level Up"
    assert entry["chapters"] == 0
    assert entry["status"] == "releasing"
    assert entry["image"] == "https://img.test/1.jpg"
    assert entry["year"] == 2020

    assert normalize_media({"id": 2, "title": {"english": "Solo Leveling"}})["status"] == "unknown"


def test_sort_parameters():
    assert sort_parameters("releaseDate", "desc") == ["START_DATE_DESC"]
    assert sort_parameters("releaseDate", "asc") == ["START_DATE"]
    assert sort_parameters("rating", "asc") == ["SCORE"]
    assert sort_parameters("rating", "desc") == ["SCORE_DESC"]
    assert sort_parameters("whatever", "desc") == ["POPULARITY_DESC"]


def test_list_fetches_requested_pages(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, json=_page(_media(1, "One")))
    responses_mock.add(responses.POST, CATALOG_URL, json=_page(_media(2, "Two")))
    client = _client()

    items = client.list(page=1, count=2)

    assert [item["title"] for item in items] == ["One", "Two"]
    assert [_sent_variables(call)["page"] for call in responses_mock.calls] == [1, 2]
    assert client.use_fallback is False


def test_list_keeps_partial_results_when_later_page_fails(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, json=_page(_media(1, "One")))
    responses_mock.add(responses.POST, CATALOG_URL, status=500)
    client = _client()

    items = client.list(page=1, count=3)

    assert [item["title"] for item in items] == ["One"]
    assert client.use_fallback is False


def test_list_falls_back_and_stays_degraded_until_reset(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, status=500)
    client = _client()

    items = client.list()
    assert client.use_fallback is True
    assert items[0]["title"] == "Solo Leveling"
    assert len(items) == 8

    client.list()
    assert len(responses_mock.calls) == 1

    client.reset()
    responses_mock.replace(responses.POST, CATALOG_URL, json=_page(_media(1, "Live")))
    assert client.list(count=1)[0]["title"] == "Live"
    assert client.use_fallback is False


def test_fallback_pages_past_dataset_are_empty():
    client = _client()
    client.use_fallback = True
    assert client.list(page=2, count=3) == []


def test_search_without_query_or_genres_returns_nothing(responses_mock):
    assert _client().search("   ") == []
    assert len(responses_mock.calls) == 0


def test_search_sends_filters(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, json=_page(_media(1, "Tower")))
    items = _client().search("tower", genres=["Action"], sort_by="rating", sort_order="asc")

    assert [item["title"] for item in items] == ["Tower"]
    variables = _sent_variables(responses_mock.calls[0])
    assert variables == {"search": "tower", "genres": ["Action"], "sort": ["SCORE"]}


def test_search_applies_year_range_client_side(responses_mock):
    responses_mock.add(
        responses.POST,
        CATALOG_URL,
        json=_page(_media(1, "Old", year=2010), _media(2, "New", year=2020), _media(3, "Unknown", year=None)),
    )
    items = _client().search("x", year_range={"from": 2015, "to": None})
    assert [item["title"] for item in items] == ["New", "Unknown"]


def test_search_timeout_uses_offline_catalog(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, body=requests.exceptions.ConnectTimeout("slow"))
    client = _client()

    items = client.search("solo")

    assert [item["title"] for item in items] == ["Solo Leveling"]
    assert client.use_fallback is True


def test_search_connection_error_uses_offline_catalog(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, body=requests.exceptions.ConnectionError("refused"))
    client = _client()

    items = client.search("sweet")

    assert [item["title"] for item in items] == ["Sweet Home"]
    assert client.use_fallback is True


@pytest.mark.parametrize("status", [500, 502, 503])
def test_search_server_error_uses_offline_catalog(responses_mock, status):
    responses_mock.add(responses.POST, CATALOG_URL, status=status)
    client = _client()

    items = client.search("omniscient")

    assert [item["title"] for item in items] == ["Omniscient Reader"]
    assert client.use_fallback is True
    # Degraded until reset, so no further requests go out.
    client.search("bastard")
    assert len(responses_mock.calls) == 1


def test_search_rate_limited_filters_offline_catalog_by_genre(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, status=429)
    items = _client().search("", genres=["Horror"])
    assert sorted(item["title"] for item in items) == ["Bastard", "Sweet Home"]


def test_search_query_error_is_not_degraded(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, json={"errors": [{"message": "bad query"}]}, status=400)
    client = _client()
    with pytest.raises(CatalogError) as excinfo:
        client.search("solo")
    assert excinfo.value.message == "Search failed. Please try again."
    assert client.use_fallback is False


def test_get_details(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, json={"data": {"Media": _media(7, "Bastard", chapters=94)}})
    item = _client().get("7")
    assert item["title"] == "Bastard"
    assert item["chapters"] == 94
    assert _sent_variables(responses_mock.calls[0]) == {"id": 7}


def test_get_falls_back_when_unavailable(responses_mock):
    responses_mock.add(responses.POST, CATALOG_URL, body=requests.exceptions.ConnectionError("down"))
    client = _client()
    assert client.get(105398)["title"] == "Solo Leveling"
    with pytest.raises(NotFoundError):
        client.get(1)
    with pytest.raises(NotFoundError):
        client.get("abc")


def test_catalog_routes(app_client, responses_mock):
    _, client, _ = app_client
    responses_mock.add(responses.POST, CATALOG_URL, status=503)

    listing = client.get("/toontick/api/catalog?page=1&count=1").get_json()
    assert listing["offline"] is True
    assert listing["next_page"] == 2

    search = client.get("/toontick/api/catalog/search?q=home&year_from=2015").get_json()
    assert [item["title"] for item in search["items"]] == ["Sweet Home"]

    assert client.get("/toontick/api/catalog?page=0").status_code == 400

    assert client.post("/toontick/api/catalog/reset").get_json() == {"ok": True}
    responses_mock.replace(responses.POST, CATALOG_URL, json=_page(_media(1, "Live")))
    assert client.get("/toontick/api/catalog?count=1").get_json()["offline"] is False
