# tests/test_client.py

import logging
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests
import requests.adapters

from allocine.api.client import AlloCineClient
from allocine.api.models import MediaFormat, ResponseProfile, ReviewType, TypeFilter
from allocine.core.config import Settings
from allocine.signing.signer import RequestSigner

BASE_URL = "http://api.allocine.fr/rest/v3/"
PARTNER = "100043982026"
SECRET = "29d185d98c984a359e6e6f26a0474269"


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        return self.payload


class FakeSession:
    def __init__(self, response: Any = None) -> None:
        self.headers: Dict[str, str] = {}
        self.proxies: Dict[str, str] = {}
        self.response = response if response is not None else FakeResponse({})
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, timeout: float = 0) -> FakeResponse:
        self.calls.append({"url": url, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class StaticAdapter(requests.adapters.BaseAdapter):
    """Answers every request with a fixed status and body, without a network."""

    def __init__(self, body: bytes, status_code: int = 200) -> None:
        super().__init__()
        self.body = body
        self.status_code = status_code
        self.sent: List[Dict[str, Any]] = []

    def send(self, request, **kwargs) -> requests.Response:
        self.sent.append({"url": request.url, "proxies": kwargs.get("proxies") or {}})
        response = requests.Response()
        response.status_code = self.status_code
        response._content = self.body
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        return response

    def close(self) -> None:
        pass


def make_wired_client(adapter: StaticAdapter, proxies: Optional[Dict[str, str]] = None) -> AlloCineClient:
    session = requests.Session()
    session.trust_env = False
    session.mount("http://", adapter)
    return AlloCineClient(
        partner=PARTNER,
        secret_key=SECRET,
        base_url=BASE_URL,
        session=session,
        proxies=proxies,
        signer=RequestSigner(SECRET, clock=lambda: date(2024, 1, 15)),
    )


def make_client(response: Any = None, **kwargs) -> AlloCineClient:
    signer = RequestSigner(SECRET, clock=lambda: date(2024, 1, 15))
    return AlloCineClient(
        partner=PARTNER,
        secret_key=SECRET,
        base_url=BASE_URL,
        session=FakeSession(response),
        proxies=kwargs.pop("proxies", None),
        timeout=5,
        signer=signer,
        **kwargs,
    )


def sent_url(client: AlloCineClient) -> str:
    return client.session.calls[-1]["url"]


def sent_pairs(client: AlloCineClient) -> List[str]:
    return [pair.split("=", 1)[0] for pair in urlsplit(sent_url(client)).query.split("&")]


def test_search_sends_golden_query():
    client = make_client(FakeResponse({"feed": {"page": 1, "count": 8, "totalResults": 0}}))
    feed = client.search("riche", filters=[TypeFilter.MOVIE], count=8, page=1)

    assert feed.ok
    assert sent_url(client) == (
        BASE_URL + "search?partner=100043982026&format=json&q=riche&filter=movie"
        "&count=8&page=1&sed=20240115&sig=%2BM6FANdrEsEjvFYPn%2FY65vpENrU%3D"
    )
    assert client.session.calls[-1]["timeout"] == 5


def test_search_encodes_query_text():
    client = make_client(FakeResponse({"feed": {}}))
    client.search("ah si j'étais riche")

    query = urlsplit(sent_url(client)).query
    assert " " not in query
    assert "q=ah+si+j%27%C3%A9tais+riche&" in query


def test_search_defaults_and_omitted_parameters():
    client = make_client(FakeResponse({"feed": {}}))
    client.search("", filters=None, count=0, page=0)
    assert sent_pairs(client) == ["partner", "format", "sed", "sig"]

    client.search("lost")
    assert sent_pairs(client) == ["partner", "format", "q", "filter", "count", "page", "sed", "sig"]
    assert "count=100&page=1" in sent_url(client)


def test_search_decodes_feed():
    payload = {
        "feed": {
            "page": 1,
            "count": 2,
            "totalResults": 2,
            "movie": [{"code": 42346, "originalTitle": "Ah ! si j'étais riche", "productionYear": 2002}],
            "tvseries": [{"code": 223, "originalTitle": "Lost"}],
        }
    }
    feed = make_client(FakeResponse(payload)).search("riche", filters=[TypeFilter.MOVIE, TypeFilter.TVSERIES])

    assert feed.total_results == 2
    assert feed.movies[0].code == 42346
    assert feed.movies[0].production_year == 2002
    assert feed.tv_series[0].original_title == "Lost"


def test_movie_get_info_parameter_order():
    client = make_client(FakeResponse({"movie": {"code": 42346}}))
    movie = client.movie_get_info(
        42346,
        profile=ResponseProfile.LARGE,
        filters=[TypeFilter.MOVIE, TypeFilter.NEWS],
        strip_tags=["synopsis"],
        media_formats=[MediaFormat.MPEG2],
    )

    assert movie.code == 42346
    assert urlsplit(sent_url(client)).path.endswith("/movie")
    query = urlsplit(sent_url(client)).query
    assert query.startswith(
        "partner=100043982026&format=json&code=42346&profile=large"
        "&filter=movie,news&striptags=synopsis&mediafmt=mpeg2&sed=20240115&sig="
    )


def test_movie_get_info_defaults():
    client = make_client(FakeResponse({"movie": {"code": 1}}))
    client.movie_get_info(1)
    assert "&profile=medium&filter=movie&striptags=synopsis,synopsisshort&sed=" in sent_url(client)


def test_review_list_parameters():
    client = make_client(FakeResponse({"feed": {"review": [{"body": "Great"}]}}))
    feed = client.movie_get_review_list(42346, review_type=ReviewType.PUBLIC, count=10, page=2)

    assert feed.reviews == [{"body": "Great"}]
    assert urlsplit(sent_url(client)).path.endswith("/reviewlist")
    assert "code=42346&type=movie&count=10&page=2&filter=public&sed=" in sent_url(client)


def test_person_and_filmography_use_person_root():
    payload = {"person": {"code": 1825, "name": {"given": "Jean", "family": "Dujardin"}}}
    client = make_client(FakeResponse(payload))

    person = client.person_get_info(1825, filters=[TypeFilter.MOVIE])
    assert person.full_name == "Jean Dujardin"
    assert "code=1825&profile=medium&filter=movie&sed=" in sent_url(client)

    filmography = client.person_get_filmography(1825)
    assert filmography.code == 1825
    assert urlsplit(sent_url(client)).path.endswith("/filmography")
    assert sent_pairs(client) == ["partner", "format", "code", "profile", "sed", "sig"]


def test_media_get_info():
    payload = {"media": {"code": 19535, "title": "Trailer", "rendition": [{"href": "http://x/a.mp4"}]}}
    client = make_client(FakeResponse(payload))
    media = client.media_get_info(19535, media_formats=[MediaFormat.MP4_LC, MediaFormat.FLV])

    assert media.renditions == ["http://x/a.mp4"]
    assert "&mediafmt=mp4-lc,flv&sed=" in sent_url(client)


@pytest.mark.parametrize(
    "method, resource, root",
    [
        ("tvseries_get_info", "tvseries", "tvseries"),
        ("tvseries_season_get_info", "season", "season"),
        ("tvseries_episode_get_info", "episode", "episode"),
    ],
)
def test_tv_resources(method, resource, root):
    client = make_client(FakeResponse({root: {"code": 223}}))
    result = getattr(client, method)(223, profile=ResponseProfile.LARGE, strip_tags=["synopsis"])

    assert result.ok
    assert result.code == 223
    assert urlsplit(sent_url(client)).path.endswith(f"/{resource}")
    assert sent_pairs(client) == ["partner", "format", "code", "profile", "striptags", "sed", "sig"]


def test_remote_error_becomes_error_result():
    client = make_client(FakeResponse({"error": {"code": 0, "$": "No result"}}))
    movie = client.movie_get_info(999999)

    assert not movie.ok
    assert movie.error.message == "No result"
    assert movie.error.code == 0
    assert movie.title is None


def test_http_error_becomes_local_error_result(caplog):
    client = make_wired_client(StaticAdapter(b"<html>Forbidden</html>", status_code=403))
    with caplog.at_level(logging.WARNING):
        feed = client.search("riche")

    assert not feed.ok
    assert feed.error.code == 403
    assert feed.error.remote is False
    assert "AlloCine returned an error" not in caplog.text


def test_http_error_keeps_allocine_error_payload():
    body = b'{"error": {"code": 4, "$": "Invalid signature"}}'
    movie = make_wired_client(StaticAdapter(body, status_code=401)).movie_get_info(42346)

    assert not movie.ok
    assert movie.error.message == "Invalid signature"
    assert movie.error.code == 4
    assert movie.error.remote is True


def test_network_error_becomes_error_result():
    feed = make_client(requests.exceptions.ConnectionError("unreachable")).search("riche")

    assert not feed.ok
    assert "unreachable" in feed.error.message
    assert feed.error.remote is False


def test_invalid_json_becomes_error_result(caplog):
    client = make_wired_client(StaticAdapter(b"<html>maintenance</html>"))
    with caplog.at_level(logging.WARNING):
        person = client.person_get_info(1)

    assert not person.ok
    assert "Invalid JSON" in person.error.message
    assert person.error.remote is False
    errors = [r for r in caplog.records if r.name == "allocine.api.client" and r.levelno >= logging.WARNING]
    assert len(errors) == 1
    assert "Invalid JSON returned for person" in errors[0].getMessage()


def test_wired_session_decodes_json_body():
    adapter = StaticAdapter(b'{"movie": {"code": 42346, "title": "Ah ! si j\'etais riche"}}')
    movie = make_wired_client(adapter).movie_get_info(42346)

    assert movie.ok
    assert movie.code == 42346
    assert adapter.sent[-1]["url"].startswith(BASE_URL + "movie?partner=100043982026&format=json&code=42346")


def test_proxies_are_sent_with_every_request():
    proxy = "http://user:pw@proxy.example:8080"
    adapter = StaticAdapter(b'{"feed": {}}')
    client = make_wired_client(adapter, proxies={"http": proxy, "https": proxy})

    client.search("riche")
    client.search("lost")

    assert [sent["proxies"].get("http") for sent in adapter.sent] == [proxy, proxy]
    assert client.session.proxies["https"] == proxy


def test_no_proxies_leaves_session_untouched():
    adapter = StaticAdapter(b'{"feed": {}}')
    client = make_wired_client(adapter, proxies=None)
    client.search("riche")

    assert client.session.proxies == {}
    assert "http" not in adapter.sent[-1]["proxies"]


def test_missing_root_becomes_error_result():

    season = make_client(FakeResponse({"feed": {}})).tvseries_season_get_info(1)

    assert not season.ok
    assert "season" in season.error.message


def test_session_configured_once():
    proxies = {"http": "http://user:pw@proxy:8080", "https": "http://user:pw@proxy:8080"}
    client = make_client(FakeResponse({"feed": {}}), proxies=proxies)
    headers = dict(client.session.headers)

    client.search("riche")
    client.search("lost")

    assert client.session.proxies == proxies
    assert client.session.headers == headers
    assert headers["Accept"] == "application/json"


def test_build_url_is_signed():
    client = make_client()
    url = client.build_url("search", {"partner": PARTNER, "format": "json"})
    pairs = dict(parse_qsl(urlsplit(url).query))
    assert pairs["sed"] == "20240115"
    assert "sig" in pairs


def test_missing_partner_is_rejected():
    with pytest.raises(ValueError):
        AlloCineClient(partner="", secret_key=SECRET, session=FakeSession())


def test_client_uses_proxies_from_settings(monkeypatch):
    proxy = "http://user:pw@proxy.example:8080"
    monkeypatch.setenv("ALLOCINE_PROXY", proxy)
    adapter = StaticAdapter(b'{"feed": {}}')

    make_wired_client(adapter, proxies=Settings().proxies).search("riche")

    assert adapter.sent[-1]["proxies"] == {"http": proxy, "https": proxy}


def test_each_client_owns_its_session():
    signer = RequestSigner(SECRET, clock=lambda: date(2024, 1, 15))
    first = AlloCineClient(partner=PARTNER, secret_key=SECRET, signer=signer, proxies=None)
    second = AlloCineClient(partner=PARTNER, secret_key=SECRET, signer=signer, proxies=None)

    assert first.session is not second.session
    assert first.build_url("search", {"q": "riche"}) == second.build_url("search", {"q": "riche"})
