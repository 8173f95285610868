"""Output record produced for each beatmap set."""

from dataclasses import asdict, dataclass, fields


@dataclass
class ExtractedBeatmapRecord:
    """Flattened, human-readable view of one beatmap set.

    Everything except ``id`` may be None: an empty set, a filename without a
    matching file usage, or a hash with no file on disk all leave gaps rather
    than failing the extraction.
    """

    id: int  # online ID of the set
    artist: str | None = None
    artist_unicode: str | None = None
    title: str | None = None
    title_unicode: str | None = None
    hash: str | None = None
    audio: str | None = None
    audio_hash: str | None = None
    audio_path: str | None = None
    background: str | None = None
    background_hash: str | None = None
    background_path: str | None = None
    tags: str | None = None
    total_time: float | None = None  # seconds
    bpm: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]
