from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


Gender = Literal["gents", "ladies", "unknown"]


class Session(BaseModel):
    id: str
    date: str = Field(description="Calendar day as YYYY-MM-DD (UTC)")
    notes: str | None = None


class Singer(BaseModel):
    id: str
    name: str
    gender: str | None = None


class CatalogTitle(BaseModel):
    id: str
    title: str


class CatalogEntry(BaseModel):
    id: str
    title: str
    raga: str | None = None
    reference_gents_pitch: str | None = None
    reference_ladies_pitch: str | None = None
    lyrics: str | None = None
    meaning: str | None = None
    deity: str | None = None
    language: str | None = None


class PitchSuggestions(BaseModel):
    pitches: list[str] = Field(default_factory=list)
    pitch_to_tabla: dict[str, str] = Field(default_factory=dict)


class RosterRowInput(BaseModel):
    id: str | None = Field(default=None, max_length=120)
    singer_id: str | None = Field(default=None, max_length=120)
    bhajan_id: str | None = Field(default=None, max_length=120)
    bhajan_title: str | None = Field(default=None, max_length=300)
    festival_bhajan_title: str | None = Field(default=None, max_length=300)
    confirmed_pitch: str | None = Field(default=None, max_length=40)
    recommended_pitch: str | None = Field(default=None, max_length=40)
    alternative_tabla_pitch: str | None = Field(default=None, max_length=40)
    raga: str | None = Field(default=None, max_length=120)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("singer_id", "bhajan_id", mode="before")
    @classmethod
    def blank_reference_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None


class RosterRow(BaseModel):
    id: str
    session_id: str
    singer_id: str | None = None
    singer_name: str | None = None
    singer_gender: str | None = None
    bhajan_id: str | None = None
    bhajan_title: str | None = None
    festival_bhajan_title: str | None = None
    confirmed_pitch: str | None = None
    recommended_pitch: str | None = None
    tabla_pitch: str | None = None
    alternative_tabla_pitch: str | None = None
    raga: str | None = None
    notes: str | None = None
    slot: int = Field(ge=0)


class SingerHistoryItem(BaseModel):
    row_id: str
    session_id: str
    session_date: str
    bhajan_id: str | None = None
    bhajan_title: str | None = None
    festival_bhajan_title: str | None = None
    confirmed_pitch: str | None = None
    recommended_pitch: str | None = None
    tabla_pitch: str | None = None


class FestivalBhajan(BaseModel):
    id: str
    title: str
    bhajan_id: str | None = None
    position: int = Field(ge=1)


class SingerFestivalList(BaseModel):
    singer: Singer
    bhajans: list[FestivalBhajan] = Field(default_factory=list)


class SessionInstrument(BaseModel):
    id: str
    session_id: str
    instrument: str
    person: str | None = None
    created_at: str


class DayOccupancy(BaseModel):
    session_id: str
    row_count: int = Field(ge=0)


class SyncSummary(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0
    row_ids: list[str | None] = Field(default_factory=list)


class EnsureSessionRequest(BaseModel):
    date: str = Field(max_length=40)


class SessionNotesRequest(BaseModel):
    notes: str = Field(default="", max_length=10000)


class RosterSyncRequest(BaseModel):
    rows: list[RosterRowInput] = Field(default_factory=list)


class InstrumentRequest(BaseModel):
    instrument: str = Field(max_length=120)
    person: str | None = Field(default=None, max_length=120)


class SessionIdResponse(BaseModel):
    session_id: str | None


class MonthOccupancyResponse(BaseModel):
    days: dict[str, DayOccupancy] = Field(default_factory=dict)


class CatalogSearchResponse(BaseModel):
    items: list[CatalogTitle] = Field(default_factory=list)


class CatalogBrowseResponse(BaseModel):
    items: list[CatalogEntry] = Field(default_factory=list)
    deities: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)


class CatalogEntryResponse(BaseModel):
    bhajan: CatalogEntry | None


class SessionDetailResponse(BaseModel):
    session: Session
    rows: list[RosterRow]
    instruments: list[SessionInstrument]


class SingerHistoryResponse(BaseModel):
    singer: Singer
    history: list[SingerHistoryItem]


class FestivalListsResponse(BaseModel):
    singers: list[SingerFestivalList] = Field(default_factory=list)
