"""
AlloCine API Models

Request option enums and the typed result objects returned by `AlloCineClient`.
Each result keeps the decoded JSON in `raw` and lifts a handful of headline
fields out of it. When the service (or the transport) reports a failure, the
result carries an `ApiError` in `error` and its other fields are left empty.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TypeFilter(str, Enum):
    """Kinds of records the service can include in a response."""

    MOVIE = "movie"
    PERSON = "person"
    NEWS = "news"
    TVSERIES = "tvseries"
    THEATER = "theater"
    MEDIA = "media"
    VIDEO = "video"
    PHOTO = "photo"


class ResponseProfile(str, Enum):
    """Level of detail returned by the service."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class ReviewType(str, Enum):
    DESK_PRESS = "desk-press"
    PUBLIC = "public"


class MediaFormat(str, Enum):
    """Video formats the service can link to."""

    FLV = "flv"
    MP4_LC = "mp4-lc"
    MP4_HIP = "mp4-hip"
    MP4_ARCHIVE = "mp4-archive"
    MPEG2_THEATER = "mpeg2-theater"
    MPEG2 = "mpeg2"


# ----------------------------------------------------------------------
# Small helpers for the service's JSON conventions
# ----------------------------------------------------------------------
def _text(node: Any) -> Optional[str]:
    """AlloCine wraps labelled values as {"code": ..., "$": "label"}."""
    if isinstance(node, dict):
        return node.get("$")
    return node


def _texts(nodes: Optional[List[Any]]) -> List[str]:
    return [label for label in (_text(n) for n in nodes or []) if label]


@dataclass
class ApiError:
    """
    A failure reported by the service, or raised while fetching.

    `remote` is False when the client made the error itself (network
    failure, unreadable body) rather than decoding one sent by AlloCine.
    """

    message: str
    code: Optional[int] = None
    remote: bool = True

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> ApiError:
        return cls(message=node.get("$", ""), code=node.get("code"))


@dataclass
class AlloCineResult:
    code: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def from_error(cls, error: ApiError):
        return cls(error=error)


@dataclass
class Movie(AlloCineResult):
    title: Optional[str] = None
    original_title: Optional[str] = None
    production_year: Optional[int] = None
    runtime: Optional[int] = None
    synopsis: Optional[str] = None
    synopsis_short: Optional[str] = None
    movie_type: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    directors: Optional[str] = None
    actors: Optional[str] = None
    poster_url: Optional[str] = None
    press_rating: Optional[float] = None
    user_rating: Optional[float] = None

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Movie:
        casting = node.get("castingShort", {})
        stats = node.get("statistics", {})
        return cls(
            code=node.get("code"),
            raw=node,
            title=node.get("title"),
            original_title=node.get("originalTitle"),
            production_year=node.get("productionYear"),
            runtime=node.get("runtime"),
            synopsis=node.get("synopsis"),
            synopsis_short=node.get("synopsisShort"),
            movie_type=_text(node.get("movieType")),
            genres=_texts(node.get("genre")),
            directors=casting.get("directors"),
            actors=casting.get("actors"),
            poster_url=node.get("poster", {}).get("href"),
            press_rating=stats.get("pressRating"),
            user_rating=stats.get("userRating"),
        )


@dataclass
class Person(AlloCineResult):
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    gender: Optional[int] = None
    birth_date: Optional[str] = None
    nationalities: List[str] = field(default_factory=list)
    activities: List[str] = field(default_factory=list)
    biography: Optional[str] = None
    participations: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given_name, self.family_name) if part)

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Person:
        name = node.get("name", {})
        return cls(
            code=node.get("code"),
            raw=node,
            given_name=name.get("given"),
            family_name=name.get("family"),
            gender=node.get("gender"),
            birth_date=node.get("birthDate"),
            nationalities=_texts(node.get("nationality")),
            activities=_texts(node.get("activity")),
            biography=node.get("biography"),
            participations=node.get("participation", []),
        )


@dataclass
class Media(AlloCineResult):
    title: Optional[str] = None
    media_type: Optional[str] = None
    runtime: Optional[int] = None
    renditions: List[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Media:
        return cls(
            code=node.get("code"),
            raw=node,
            title=node.get("title"),
            media_type=_text(node.get("type")),
            runtime=node.get("runtime"),
            renditions=[r["href"] for r in node.get("rendition", []) if r.get("href")],
        )


@dataclass
class TvSeries(AlloCineResult):
    title: Optional[str] = None
    original_title: Optional[str] = None
    year_start: Optional[int] = None
    year_end: Optional[int] = None
    season_count: Optional[int] = None
    episode_count: Optional[int] = None
    synopsis: Optional[str] = None
    seasons: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> TvSeries:
        return cls(
            code=node.get("code"),
            raw=node,
            title=node.get("title"),
            original_title=node.get("originalTitle"),
            year_start=node.get("yearStart"),
            year_end=node.get("yearEnd"),
            season_count=node.get("seasonCount"),
            episode_count=node.get("episodeCount"),
            synopsis=node.get("synopsis"),
            seasons=node.get("season", []),
        )


@dataclass
class Season(AlloCineResult):
    season_number: Optional[int] = None
    episode_count: Optional[int] = None
    year_start: Optional[int] = None
    series_code: Optional[int] = None
    episodes: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Season:
        return cls(
            code=node.get("code"),
            raw=node,
            season_number=node.get("seasonNumber"),
            episode_count=node.get("episodeCount"),
            year_start=node.get("yearStart"),
            series_code=node.get("parentSeries", {}).get("code"),
            episodes=node.get("episode", []),
        )


@dataclass
class Episode(AlloCineResult):
    title: Optional[str] = None
    original_title: Optional[str] = None
    episode_number_season: Optional[int] = None
    episode_number_series: Optional[int] = None
    original_broadcast_date: Optional[str] = None
    synopsis: Optional[str] = None
    series_code: Optional[int] = None
    season_code: Optional[int] = None

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Episode:
        return cls(
            code=node.get("code"),
            raw=node,
            title=node.get("title"),
            original_title=node.get("originalTitle"),
            episode_number_season=node.get("episodeNumberSeason"),
            episode_number_series=node.get("episodeNumberSeries"),
            original_broadcast_date=node.get("originalBroadcastDate"),
            synopsis=node.get("synopsis"),
            series_code=node.get("parentSeries", {}).get("code"),
            season_code=node.get("parentSeason", {}).get("code"),
        )


@dataclass
class Feed(AlloCineResult):
    """
    A paged list of mixed results, as returned by search and reviewlist.

    Movies, people, series and media are decoded into their models; news,
    theaters and photos are kept as the service sends them. Anything else
    is only reachable through `raw`.
    """

    page: Optional[int] = None
    count: Optional[int] = None
    total_results: Optional[int] = None
    movies: List[Movie] = field(default_factory=list)
    persons: List[Person] = field(default_factory=list)
    tv_series: List[TvSeries] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)
    reviews: List[Dict[str, Any]] = field(default_factory=list)
    news: List[Dict[str, Any]] = field(default_factory=list)
    theaters: List[Dict[str, Any]] = field(default_factory=list)
    photos: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_json(cls, node: Dict[str, Any]) -> Feed:
        return cls(
            raw=node,
            page=node.get("page"),
            count=node.get("count"),
            total_results=node.get("totalResults"),
            movies=[Movie.from_json(m) for m in node.get("movie", [])],
            persons=[Person.from_json(p) for p in node.get("person", [])],
            tv_series=[TvSeries.from_json(t) for t in node.get("tvseries", [])],
            media=[Media.from_json(m) for m in node.get("media", [])],
            reviews=node.get("review", []),
            news=node.get("news", []),
            theaters=node.get("theater", []),
            photos=node.get("photo", []),
        )
