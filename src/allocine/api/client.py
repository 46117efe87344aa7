"""
AlloCine API Client

This module provides a client for making signed requests to the AlloCine
REST API. Every resource method assembles its own parameter set, has it
signed by a `RequestSigner`, and decodes the JSON answer into one of the
result objects from `allocine.api.models`.
"""
import logging
from typing import Any, Dict, Iterable, Optional, Type, Union

import requests

from allocine.core.config import settings
from allocine.signing.canonical import encode
from allocine.signing.signer import RequestSigner
from allocine.api.models import (
    AlloCineResult,
    ApiError,
    Episode,
    Feed,
    MediaFormat,
    Media,
    Movie,
    Person,
    ResponseProfile,
    ReviewType,
    Season,
    TvSeries,
    TypeFilter,
)

logger = logging.getLogger(__name__)

RESPONSE_FORMAT = "json"
DEFAULT_STRIP_TAGS = ("synopsis", "synopsisshort")


def _join(values: Optional[Iterable[Any]]) -> Optional[str]:
    """Joins enum members or strings with ',' in lower case; None when empty."""
    if values is None:
        return None
    labels = [getattr(v, "value", v) for v in values]
    if not labels:
        return None
    return ",".join(labels).lower()


class AlloCineClient:
    """
    A client for interacting with the AlloCine REST API.

    The session, proxy and timeout are fixed at construction and no call
    changes them. Signing is stateless, but `requests.Session` is not
    guaranteed to be thread-safe: give each thread its own client.
    """

    def __init__(
        self,
        partner: str = settings.ALLOCINE_PARTNER,
        secret_key: str = settings.ALLOCINE_SECRET_KEY,
        base_url: str = settings.ALLOCINE_BASE_URL,
        session: Optional[requests.Session] = None,
        proxies: Optional[Dict[str, str]] = settings.proxies,
        timeout: float = settings.ALLOCINE_TIMEOUT,
        signer: Optional[RequestSigner] = None,
    ):
        """
        Initializes the AlloCineClient.

        Args:
            partner (str): The partner identifier sent with every request.
            secret_key (str): The secret used to sign requests.
            base_url (str): Root of the REST API, ending with '/'.
            session (requests.Session, optional): Session to send requests with.
            proxies (dict, optional): Proxy mapping handed to requests.
            timeout (float): Seconds to wait for the service.
            signer (RequestSigner, optional): Overrides the signer built from
                `secret_key`, e.g. to inject a fixed clock.

        Raises:
            ValueError: If the partner identifier or secret key is missing.
        """
        if not partner:
            raise ValueError("AlloCine partner identifier is required.")
        self.partner = partner
        self.base_url = base_url
        self.timeout = timeout
        self.signer = signer or RequestSigner(secret_key)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": settings.ALLOCINE_USER_AGENT,
        })
        if proxies:
            self.session.proxies.update(proxies)

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    def _base_params(self) -> Dict[str, str]:
        return {"partner": self.partner, "format": RESPONSE_FORMAT}

    def build_url(self, resource: str, params: Dict[str, str]) -> str:
        """Returns the fully signed URL for `resource` with `params`."""
        return f"{self.base_url}{resource}?{self.signer.sign(params)}"

    def _make_request(self, resource: str, params: Dict[str, str]) -> Union[Dict[str, Any], ApiError]:
        """
        Makes a signed request to the AlloCine API and handles common errors.

        Args:
            resource (str): The resource path (e.g., "search").
            params (dict): The ParameterSet, without `sed`/`sig`.

        Returns:
            dict or ApiError: The decoded JSON, or a local ApiError when the
            request failed or the body could not be read. An HTTP error whose
            body carries AlloCine's own error payload is returned as JSON.
        """
        url = self.build_url(resource, params)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code
            try:
                payload = e.response.json()
            except requests.exceptions.JSONDecodeError:
                payload = None
            if isinstance(payload, dict) and payload.get("error"):
                return payload
            logger.error(f"HTTP Error for {resource}: {e}")
            return ApiError(message=str(e), code=status, remote=False)
        except requests.exceptions.JSONDecodeError as e:
            logger.error(f"Invalid JSON returned for {resource}: {e}")
            return ApiError(message=f"Invalid JSON response: {e}", remote=False)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed for {resource}: {e}")
            return ApiError(message=str(e), remote=False)

    def _fetch(self, resource: str, params: Dict[str, str], root: str, model: Type[AlloCineResult]):
        data = self._make_request(resource, params)
        if isinstance(data, ApiError):
            # Already logged where it was raised
            return model.from_error(data)
        if not isinstance(data, dict):
            return model.from_error(ApiError(message=f"Unexpected response for {resource}", remote=False))
        if data.get("error"):
            error = ApiError.from_json(data["error"])
            logger.warning(f"AlloCine returned an error for {resource}: {error.message}")
            return model.from_error(error)
        node = data.get(root)
        if node is None:
            logger.warning(f"AlloCine response for {resource} has no '{root}' entry.")
            return model.from_error(ApiError(message=f"Missing '{root}' in response"))
        return model.from_json(node)


    @staticmethod
    def _put(params: Dict[str, str], key: str, value: Optional[str]):
        """Adds an optional parameter, skipping absent values."""
        if value:
            params[key] = value

    def _coded_params(self, code: int, profile: ResponseProfile) -> Dict[str, str]:
        params = self._base_params()
        params["code"] = str(code)
        params["profile"] = ResponseProfile(profile).value
        return params

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def search(
        self,
        query: str,
        *,
        filters: Optional[Iterable[TypeFilter]] = (TypeFilter.MOVIE,),
        count: int = 100,
        page: int = 1,
    ) -> Feed:
        """
        Searches the AlloCine database for any reference to `query`.

        Args:
            query (str): The text to look for.
            filters (iterable, optional): Kinds of records to include.
            count (int): Maximum number of results per page (0 to omit).
            page (int): Page to return (0 to omit).

        Returns:
            Feed: The matching records, or a Feed carrying the error.
        """
        params = self._base_params()
        self._put(params, "q", encode(query) if query else None)
        self._put(params, "filter", _join(filters))
        if count > 0:
            params["count"] = str(count)
        if page > 0:
            params["page"] = str(page)
        return self._fetch("search", params, "feed", Feed)

    # ------------------------------------------------------------------
    # Movies
    # ------------------------------------------------------------------
    def movie_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        filters: Optional[Iterable[TypeFilter]] = (TypeFilter.MOVIE,),
        strip_tags: Optional[Iterable[str]] = DEFAULT_STRIP_TAGS,
        media_formats: Optional[Iterable[MediaFormat]] = None,
    ) -> Movie:
        """
        Retrieves all information about a particular movie.

        Args:
            code (int): The AlloCine code of the movie.
            profile (ResponseProfile): Level of detail.
            filters (iterable, optional): Kinds of records to include.
            strip_tags (iterable, optional): Fields to return as plain text.
            media_formats (iterable, optional): Video formats to link.
        """
        params = self._coded_params(code, profile)
        self._put(params, "filter", _join(filters))
        self._put(params, "striptags", _join(strip_tags))
        self._put(params, "mediafmt", _join(media_formats))
        return self._fetch("movie", params, "movie", Movie)

    def movie_get_review_list(
        self,
        code: int,
        *,
        review_type: ReviewType = ReviewType.DESK_PRESS,
        count: int = 0,
        page: int = 0,
    ) -> Feed:
        """Retrieves press or public reviews about a particular movie."""
        params = self._base_params()
        params["code"] = str(code)
        params["type"] = "movie"
        if count > 0:
            params["count"] = str(count)
        if page > 0:
            params["page"] = str(page)
        params["filter"] = ReviewType(review_type).value
        return self._fetch("reviewlist", params, "feed", Feed)

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------
    def person_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        filters: Optional[Iterable[TypeFilter]] = None,
    ) -> Person:
        """Retrieves all information about a particular person."""
        params = self._coded_params(code, profile)
        self._put(params, "filter", _join(filters))
        return self._fetch("person", params, "person", Person)

    def person_get_filmography(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        filters: Optional[Iterable[TypeFilter]] = None,
    ) -> Person:
        """Retrieves the filmography of a particular person."""
        params = self._coded_params(code, profile)
        self._put(params, "filter", _join(filters))
        return self._fetch("filmography", params, "person", Person)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------
    def media_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        media_formats: Optional[Iterable[MediaFormat]] = None,
    ) -> Media:
        params = self._coded_params(code, profile)
        self._put(params, "mediafmt", _join(media_formats))
        return self._fetch("media", params, "media", Media)

    # ------------------------------------------------------------------
    # TV series
    # ------------------------------------------------------------------
    def _tv_params(self, code, profile, strip_tags, media_formats) -> Dict[str, str]:
        params = self._coded_params(code, profile)
        self._put(params, "striptags", _join(strip_tags))
        self._put(params, "mediafmt", _join(media_formats))
        return params

    def tvseries_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        strip_tags: Optional[Iterable[str]] = None,
        media_formats: Optional[Iterable[MediaFormat]] = None,
    ) -> TvSeries:
        """Retrieves all information about a particular TV series."""
        params = self._tv_params(code, profile, strip_tags, media_formats)
        return self._fetch("tvseries", params, "tvseries", TvSeries)

    def tvseries_season_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        strip_tags: Optional[Iterable[str]] = None,
        media_formats: Optional[Iterable[MediaFormat]] = None,
    ) -> Season:
        """Retrieves all information about a particular TV series season."""
        params = self._tv_params(code, profile, strip_tags, media_formats)
        return self._fetch("season", params, "season", Season)

    def tvseries_episode_get_info(
        self,
        code: int,
        *,
        profile: ResponseProfile = ResponseProfile.MEDIUM,
        strip_tags: Optional[Iterable[str]] = None,
        media_formats: Optional[Iterable[MediaFormat]] = None,
    ) -> Episode:
        """Retrieves all information about a particular TV series episode."""
        params = self._tv_params(code, profile, strip_tags, media_formats)
        return self._fetch("episode", params, "episode", Episode)
