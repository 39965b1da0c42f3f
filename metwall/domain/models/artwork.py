"""Normalized artwork record and the upstream-to-domain translation.

The collection API returns a large, loosely typed object per identifier.
Everything downstream (cache, CLI, grid) works with `ArtworkRecord` instead,
which is only ever produced when the upstream object carries a usable image.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set
from urllib.parse import quote

from metwall.domain.models.common import ImageUrl, ObjectID, ProxiedUrl, SearchTerm

PROXY_PATH = "/proxy"
DEFAULT_TITLE = "Untitled"


def proxy_url(raw_url: Optional[str]) -> ProxiedUrl:
    """Routes an upstream image locator through the local proxy."""
    if not raw_url:
        return ProxiedUrl("")
    return ProxiedUrl(f"{PROXY_PATH}?url={quote(raw_url, safe='')}")


@dataclass(frozen=True)
class ArtworkRecord:
    """Canonical artwork representation, independent of the upstream schema."""
    object_id: ObjectID
    title: str = DEFAULT_TITLE
    artist: str = ""
    date: str = ""
    department: str = ""
    medium: str = ""
    image: ProxiedUrl = ProxiedUrl("")
    raw_image: ImageUrl = ImageUrl("")
    object_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serializes with the same keys the browser grid consumes."""
        return {
            "objectID": self.object_id,
            "title": self.title,
            "artist": self.artist,
            "date": self.date,
            "department": self.department,
            "medium": self.medium,
            "image": self.image,
            "rawImage": self.raw_image,
            "objectURL": self.object_url,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArtworkRecord":
        return cls(
            object_id=ObjectID(int(data["objectID"])),
            title=data.get("title") or DEFAULT_TITLE,
            artist=data.get("artist") or "",
            date=data.get("date") or "",
            department=data.get("department") or "",
            medium=data.get("medium") or "",
            image=ProxiedUrl(data.get("image") or ""),
            raw_image=ImageUrl(data.get("rawImage") or ""),
            object_url=data.get("objectURL") or "",
        )


def normalize_object(
    raw: Optional[Mapping[str, Any]], fallback_id: Optional[int] = None
) -> Optional[ArtworkRecord]:
    """Translates an upstream object into an ArtworkRecord.

    Returns None when the object has no image reference; a partial record
    is never produced. `fallback_id` is used when the payload omits its own
    identifier.
    """
    if not raw:
        return None

    object_id = raw.get("objectID") or fallback_id
    if object_id is None:
        return None

    image = raw.get("primaryImageSmall") or raw.get("primaryImage") or ""
    if not image:
        return None

    return ArtworkRecord(
        object_id=ObjectID(int(object_id)),
        title=raw.get("title") or DEFAULT_TITLE,
        artist=raw.get("artistDisplayName") or raw.get("culture") or "",
        date=raw.get("objectDate") or "",
        department=raw.get("department") or "",
        medium=raw.get("medium") or "",
        image=proxy_url(image),
        raw_image=ImageUrl(image),
        object_url=raw.get("objectURL") or "",
    )


@dataclass(frozen=True)
class KeywordSelection:
    """One record picked to represent a keyword on the wall."""
    keyword: SearchTerm
    record: ArtworkRecord


@dataclass
class KeywordPicks:
    """Result of picking records for a list of keywords."""
    selections: List[KeywordSelection] = field(default_factory=list)
    used_object_ids: Set[ObjectID] = field(default_factory=set)

    @property
    def records(self) -> List[ArtworkRecord]:
        return [s.record for s in self.selections]
