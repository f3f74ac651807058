from __future__ import annotations

from typing import Mapping, Protocol

from bhajan_roster.models import Gender

LADIES_PREFIXES = ("f",)
LADIES_FRAGMENTS = ("female", "lady", "ladies", "woman", "women")
GENTS_PREFIXES = ("m",)
GENTS_FRAGMENTS = ("male", "gent", "man", "men")


class ReferencePitches(Protocol):
    reference_gents_pitch: str | None
    reference_ladies_pitch: str | None


def _clean(value: str | None) -> str:
    return (value or "").strip()


def normalize_gender(value: str | None) -> Gender:
    cleaned = _clean(value).lower()
    if not cleaned:
        return "unknown"
    # "female" and "woman" contain the gents fragments, so ladies is tested first.
    if cleaned.startswith(LADIES_PREFIXES) or any(fragment in cleaned for fragment in LADIES_FRAGMENTS):
        return "ladies"
    if cleaned.startswith(GENTS_PREFIXES) or any(fragment in cleaned for fragment in GENTS_FRAGMENTS):
        return "gents"
    return "unknown"


def pick_reference_pitch(gender: Gender, entry: ReferencePitches | None) -> str:
    if entry is None:
        return ""
    gents = _clean(entry.reference_gents_pitch)
    ladies = _clean(entry.reference_ladies_pitch)
    if gender == "ladies":
        return ladies or gents
    return gents or ladies


def recommend(singer_gender: str | None, entry: ReferencePitches | None, fallback_confirmed_pitch: str | None) -> str:
    gender = normalize_gender(singer_gender)
    return pick_reference_pitch(gender, entry) or _clean(fallback_confirmed_pitch)


def fill_recommended_pitch(
    current: str | None,
    singer_gender: str | None,
    entry: ReferencePitches | None,
    confirmed_pitch: str | None,
) -> str:
    """Return ``current`` untouched when a value is already present, else derive one."""
    existing = _clean(current)
    if existing:
        return existing
    return recommend(singer_gender, entry, confirmed_pitch)


def tabla_for(confirmed_pitch: str | None, pitch_tabla_map: Mapping[str, str]) -> str:
    pitch = _clean(confirmed_pitch)
    if not pitch:
        return ""
    return _clean(pitch_tabla_map.get(pitch))
