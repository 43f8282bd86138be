"""Typed content variants for decoded feeds.

Each feed key prefix maps to exactly one :class:`ContentKind`. Structured
kinds carry an ordered list of report models; the four opaque kinds carry
the published JSON value verbatim because no schema is enforced for them.

The variants form a closed union discriminated on ``kind``::

    match entry.content:
        case WeatherContent(items=reports):
            ...
        case OpaqueContent(kind=ContentKind.GITLAB, value=value):
            ...
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import Field, StrictFloat, StrictInt, StrictStr

from apollos_kiosk.models._base import FeedBaseModel


class ContentKind(StrEnum):
    GTFS = "gtfs"
    GBFS = "gbfs"
    WEATHER = "weather"
    CALENDAR = "calendar"
    AQI = "aqi"
    TIDAL = "tidal"
    EPHEMERIS = "ephemeris"
    CRONOS = "cronos"
    GITLAB = "gitlab"
    PACKAGES = "packages"
    CONST = "const"


OPAQUE_KINDS: frozenset[ContentKind] = frozenset(
    {ContentKind.CRONOS, ContentKind.GITLAB, ContentKind.PACKAGES, ContentKind.CONST}
)


# ------------------------------------------------------------------
# Report models
# ------------------------------------------------------------------


class GtfsRoute(FeedBaseModel):
    """Upcoming departures for one transit route.

    ``times_live`` is parallel to ``times``; an entry is ``None`` when no
    realtime prediction exists for that departure.
    """

    route: StrictStr
    dest: StrictStr
    dir: StrictStr
    times: list[StrictStr]
    times_live: list[StrictStr | None] | None = None
    mode: StrictStr | None = None

    def upcoming(self, limit: int = 2) -> list[tuple[str, bool]]:
        """Return up to *limit* ``(time, is_live)`` pairs, preferring live times."""
        if self.times_live is not None:
            live = [t for t in self.times_live if t is not None]
            return [(t, True) for t in live[:limit]]
        return [(t, False) for t in self.times[:limit]]


class GbfsStation(FeedBaseModel):
    """Bikeshare station availability."""

    name: StrictStr
    avail_std: StrictInt
    avail_elec: StrictInt
    docks_avail: StrictInt
    avail: StrictInt | None = None
    """Total bikes available, when the publisher reports it."""


class Wind(FeedBaseModel):
    speed: StrictFloat


class WeatherReport(FeedBaseModel):
    temp: StrictFloat
    feel: StrictFloat
    weather: StrictStr
    wind: Wind
    hum: StrictFloat


class CalendarEvent(FeedBaseModel):
    description: StrictStr
    date_start: StrictStr


class AqiReport(FeedBaseModel):
    name: StrictStr | None = None
    measurements: list[Any]


class TidalReport(FeedBaseModel):
    first_h: StrictStr | None = None
    """Time of the next high tide."""
    first_l: StrictStr | None = None
    """Time of the next low tide."""


class EphemerisReport(FeedBaseModel):
    """Rise/set style periods for one body or location, in published order."""

    name: StrictStr
    periods: dict[StrictStr, StrictStr]


# ------------------------------------------------------------------
# Variants
# ------------------------------------------------------------------


class GtfsContent(FeedBaseModel):
    kind: Literal[ContentKind.GTFS] = ContentKind.GTFS
    items: list[GtfsRoute]


class GbfsContent(FeedBaseModel):
    kind: Literal[ContentKind.GBFS] = ContentKind.GBFS
    items: list[GbfsStation]


class WeatherContent(FeedBaseModel):
    kind: Literal[ContentKind.WEATHER] = ContentKind.WEATHER
    items: list[WeatherReport]


class CalendarContent(FeedBaseModel):
    kind: Literal[ContentKind.CALENDAR] = ContentKind.CALENDAR
    items: list[CalendarEvent]


class AqiContent(FeedBaseModel):
    kind: Literal[ContentKind.AQI] = ContentKind.AQI
    items: list[AqiReport]


class TidalContent(FeedBaseModel):
    kind: Literal[ContentKind.TIDAL] = ContentKind.TIDAL
    items: list[TidalReport]


class EphemerisContent(FeedBaseModel):
    kind: Literal[ContentKind.EPHEMERIS] = ContentKind.EPHEMERIS
    items: list[EphemerisReport]


class OpaqueContent(FeedBaseModel):
    """Passthrough for feeds whose schema is not modelled (cronos, gitlab, pkg, const)."""

    kind: Literal[ContentKind.CRONOS, ContentKind.GITLAB, ContentKind.PACKAGES, ContentKind.CONST]
    value: Any


ContentVariant = Annotated[
    GtfsContent
    | GbfsContent
    | WeatherContent
    | CalendarContent
    | AqiContent
    | TidalContent
    | EphemerisContent
    | OpaqueContent,
    Field(discriminator="kind"),
]
"""Closed union of decoded feed content, discriminated on ``kind``."""

STRUCTURED_CONTENT: dict[ContentKind, type[FeedBaseModel]] = {
    ContentKind.GTFS: GtfsContent,
    ContentKind.GBFS: GbfsContent,
    ContentKind.WEATHER: WeatherContent,
    ContentKind.CALENDAR: CalendarContent,
    ContentKind.AQI: AqiContent,
    ContentKind.TIDAL: TidalContent,
    ContentKind.EPHEMERIS: EphemerisContent,
}
