"""Data model — stations, songs, releases."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Station:
    id: int
    name: str

    @classmethod
    def from_json(cls, data: dict) -> "Station":
        return cls(id=int(data["id"]), name=str(data.get("name", "")))

    def to_json(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Song:
    album: str
    artist: str
    album_art: str
    station: str
    title: str
    url: str

    @classmethod
    def from_json(cls, data: dict) -> "Song":
        """Build from the songs API shape, where the title travels as ``song``."""
        return cls(
            album=data.get("album") or "",
            artist=data.get("artist") or "",
            album_art=data.get("album_art") or "",
            station=data.get("station") or "",
            title=data.get("song") or "",
            url=data.get("url") or "",
        )

    def to_json(self) -> dict:
        return {
            "album": self.album,
            "artist": self.artist,
            "album_art": self.album_art,
            "station": self.station,
            "song": self.title,
            "url": self.url,
        }

    @property
    def key(self) -> tuple[str, str]:
        """Identity used for queue de-duplication."""
        return self.title, self.artist


@dataclass(frozen=True)
class Track:
    number: str
    title: str
    length: Optional[int] = None  # milliseconds

    def format_length(self) -> str:
        if not self.length:
            return ""
        minutes, rest = divmod(int(self.length), 60000)
        return f"({minutes}:{rest // 1000:02d})"


@dataclass(frozen=True)
class Release:
    """A MusicBrainz release, flattened for display."""
    id: str
    title: str
    artist_credit: list[str] = field(default_factory=list)
    date: Optional[str] = None
    label: Optional[str] = None
    country: Optional[str] = None
    disambiguation: Optional[str] = None
    release_type: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    rating: Optional[float] = None
    rating_votes: int = 0
    tracks: list[Track] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "Release":
        credits = []
        for ac in data.get("artist-credit") or []:
            name = ac.get("name") or (ac.get("artist") or {}).get("name") or "Unknown"
            credits.append(name)

        label = None
        for info in data.get("label-info") or []:
            if info.get("label") and info["label"].get("name"):
                label = info["label"]["name"]
            break

        rating = data.get("rating") or {}
        tracks = [
            Track(
                number=str(t.get("number", "")),
                title=t.get("title", ""),
                length=t.get("length"),
            )
            for medium in data.get("media") or []
            for t in medium.get("tracks") or []
        ]

        return cls(
            id=data["id"],
            title=data.get("title") or "Unknown",
            artist_credit=credits,
            date=data.get("date") or None,
            label=label,
            country=data.get("country") or None,
            disambiguation=data.get("disambiguation") or None,
            release_type=(data.get("release-group") or {}).get("type"),
            tags=[t["name"] for t in data.get("tags") or [] if t.get("name")],
            genres=[g["name"] for g in data.get("genres") or [] if g.get("name")],
            rating=rating.get("value"),
            rating_votes=rating.get("votes-count") or 0,
            tracks=tracks,
        )

    @property
    def artist(self) -> str:
        return ", ".join(self.artist_credit) if self.artist_credit else "Unknown Artist"

    def summary(self) -> dict:
        """Display-ready fields with the usual 'Unknown' placeholders."""
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "type": self.release_type or "Release",
            "date": self.date or "Unknown",
            "label": self.label or "Unknown Label",
            "country": self.country or "Unknown",
            "disambiguation": self.disambiguation or "",
            "tags": self.tags,
            "genres": self.genres,
            "rating": self.rating,
            "rating_votes": self.rating_votes,
            "tracks": [
                {"number": t.number, "title": t.title, "length": t.format_length()}
                for t in self.tracks
            ],
        }
