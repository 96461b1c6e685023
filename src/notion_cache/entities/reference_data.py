"""Reference data entities.

The five reference collections come back from the ``get-all-reference-data``
edge function as camelCase JSON. Each record type maps that JSON onto a
frozen dataclass; unknown keys are ignored and missing keys fall back to
empty values.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

REFERENCE_CATEGORIES = ("modes", "muscles", "chakras", "channels", "acupoints")


def _text(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value)


def _optional_text(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return None if value is None else str(value)


def _strings(raw: dict[str, Any], key: str) -> tuple[str, ...]:
    value = raw.get(key) or []
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class RelatedPage:
    """A resolved Notion relation (page id and its title)."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, raw: Any) -> "RelatedPage | None":
        if not isinstance(raw, dict) or not raw.get("id"):
            return None
        return cls(id=str(raw["id"]), name=_text(raw, "name") or "Unknown")


def _related(raw: dict[str, Any], key: str) -> tuple[RelatedPage, ...]:
    pages = (RelatedPage.from_dict(item) for item in raw.get(key) or [])
    return tuple(page for page in pages if page is not None)


@dataclass(frozen=True)
class Mode:
    id: str
    name: str
    action_note: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Mode":
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name") or "Unknown Mode",
            action_note=_text(raw, "actionNote"),
        )


@dataclass(frozen=True)
class Muscle:
    id: str
    name: str
    meridian: str = ""
    organ_system: str = ""
    nl_points: str = ""
    nv_points: str = ""
    emotional_theme: tuple[str, ...] = ()
    nutrition_support: tuple[str, ...] = ()
    test_position: str = ""
    related_yuan_point: RelatedPage | None = None
    related_ak_channel: RelatedPage | None = None
    related_tcm_channel: RelatedPage | None = None
    tags: tuple[RelatedPage, ...] = ()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Muscle":
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name") or "Unknown Muscle",
            meridian=_text(raw, "meridian"),
            organ_system=_text(raw, "organSystem"),
            nl_points=_text(raw, "nlPoints"),
            nv_points=_text(raw, "nvPoints"),
            emotional_theme=_strings(raw, "emotionalTheme"),
            nutrition_support=_strings(raw, "nutritionSupport"),
            test_position=_text(raw, "testPosition"),
            related_yuan_point=RelatedPage.from_dict(raw.get("relatedYuanPoint")),
            related_ak_channel=RelatedPage.from_dict(raw.get("relatedAkChannel")),
            related_tcm_channel=RelatedPage.from_dict(raw.get("relatedTcmChannel")),
            tags=_related(raw, "tags"),
        )


@dataclass(frozen=True)
class Chakra:
    id: str
    name: str
    location: str = ""
    color: str | None = None
    elements: tuple[str, ...] = ()
    associated_organs: tuple[str, ...] = ()
    emotional_themes: tuple[str, ...] = ()
    affirmations: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Chakra":
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name") or "Unknown Chakra",
            location=_text(raw, "location"),
            color=_optional_text(raw, "color"),
            elements=_strings(raw, "elements"),
            associated_organs=_strings(raw, "associatedOrgans"),
            emotional_themes=_strings(raw, "emotionalThemes"),
            affirmations=_text(raw, "affirmations"),
        )


@dataclass(frozen=True)
class Channel:
    id: str
    name: str
    elements: tuple[str, ...] = ()
    pathways: str = ""
    functions: str = ""
    emotions: tuple[str, ...] = ()
    ak_muscles: tuple[RelatedPage, ...] = ()
    tcm_muscles: tuple[RelatedPage, ...] = ()
    yuan_points: str = ""
    sedate_points: tuple[str, ...] = ()
    tonify_points: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    time: str = ""
    sound: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Channel":
        sedate = tuple(p for p in (_text(raw, "sedate1"), _text(raw, "sedate2")) if p)
        tonify = tuple(p for p in (_text(raw, "tonify1"), _text(raw, "tonify2")) if p)
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name") or "Unknown Channel",
            elements=_strings(raw, "elements"),
            pathways=_text(raw, "pathways"),
            functions=_text(raw, "functions"),
            emotions=_strings(raw, "emotions"),
            ak_muscles=_related(raw, "akMuscles"),
            tcm_muscles=_related(raw, "tcmMuscles"),
            yuan_points=_text(raw, "yuanPoints"),
            sedate_points=sedate,
            tonify_points=tonify,
            tags=_strings(raw, "tags"),
            time=_text(raw, "time"),
            sound=_text(raw, "sound"),
        )


@dataclass(frozen=True)
class Acupoint:
    id: str
    name: str
    for_: str = ""
    kinesiology: str = ""
    psychology: str = ""
    ak_muscles: tuple[str, ...] = ()
    channel: str = ""
    type_of_point: tuple[str, ...] = ()
    time: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Acupoint":
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name") or "Unknown Point",
            for_=_text(raw, "for"),
            kinesiology=_text(raw, "kinesiology"),
            psychology=_text(raw, "psychology"),
            ak_muscles=_strings(raw, "akMuscles"),
            channel=_text(raw, "channel"),
            type_of_point=_strings(raw, "typeOfPoint"),
            time=_strings(raw, "time"),
        )


_RECORD_TYPES = {
    "modes": Mode,
    "muscles": Muscle,
    "chakras": Chakra,
    "channels": Channel,
    "acupoints": Acupoint,
}


@dataclass(frozen=True)
class ReferenceDataSet:
    """One consistent snapshot of the five reference collections.

    The whole set is built from a single payload and replaced as a unit;
    a consumer can never see collections from two different fetches.
    """

    modes: tuple[Mode, ...] = ()
    muscles: tuple[Muscle, ...] = ()
    chakras: tuple[Chakra, ...] = ()
    channels: tuple[Channel, ...] = ()
    acupoints: tuple[Acupoint, ...] = ()
    fetched_at: datetime | None = None

    @classmethod
    def empty(cls) -> "ReferenceDataSet":
        return cls()

    @classmethod
    def from_payload(cls, payload: Any, fetched_at: datetime) -> "ReferenceDataSet":
        """Build a snapshot from an edge function response.

        Accepts either ``{"data": {...five lists...}}`` or the inner mapping.

        Raises:
            ValueError: If the payload is not a mapping
        """
        if not isinstance(payload, dict):
            raise ValueError("Reference data payload must be a JSON object")
        body = payload.get("data", payload)
        if not isinstance(body, dict):
            raise ValueError("Reference data payload 'data' must be a JSON object")

        collections: dict[str, tuple] = {}
        for category, record_type in _RECORD_TYPES.items():
            items = body.get(category) or []
            collections[category] = tuple(
                record_type.from_dict(item) for item in items if isinstance(item, dict)
            )

        return cls(
            **collections,
            fetched_at=fetched_at,
        )

    @property
    def is_empty(self) -> bool:
        return self.fetched_at is None

    @property
    def counts(self) -> dict[str, int]:
        return {category: len(getattr(self, category)) for category in REFERENCE_CATEGORIES}
