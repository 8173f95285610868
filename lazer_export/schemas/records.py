"""Read-only record views over the lazer database snapshot.

Plain dataclasses materialized once per query. Owned records (difficulty,
user settings, author, file usages) are embedded by value; a Beatmap refers
back to its set only by ID, so there are no object cycles.
"""

from dataclasses import dataclass, field


@dataclass
class File:
    """Deduplicated physical content, keyed by its content hash."""

    hash: str | None


@dataclass
class NamedFileUsage:
    """A logical filename inside a set bound to a stored File."""

    filename: str | None
    file: File | None = None


@dataclass
class RealmUser:
    online_id: int = 0
    username: str | None = None
    country_code: str | None = None


@dataclass
class BeatmapMetadata:
    """Song-level metadata shared by the difficulties of a set."""

    id: int
    title: str | None = None
    title_unicode: str | None = None
    artist: str | None = None
    artist_unicode: str | None = None
    source: str | None = None
    tags: str | None = None
    preview_time: int = -1
    audio_file: str | None = None  # filename, not a path
    background_file: str | None = None  # filename, not a path
    author: RealmUser | None = None


@dataclass
class BeatmapDifficulty:
    drain_rate: float = 0.0
    circle_size: float = 0.0
    overall_difficulty: float = 0.0
    approach_rate: float = 0.0
    slider_multiplier: float = 0.0
    slider_tick_rate: float = 0.0


@dataclass
class BeatmapUserSettings:
    offset: float = 0.0


@dataclass
class Beatmap:
    """One difficulty of a beatmap set."""

    id: str
    beatmap_set_id: str | None  # lookup-only back reference
    metadata: BeatmapMetadata | None = None
    difficulty_name: str | None = None
    ruleset_short_name: str | None = None
    status: int = 0
    length: float = 0.0  # seconds
    bpm: float = 0.0
    hash: str | None = None
    md5_hash: str | None = None
    star_rating: float = 0.0
    online_id: int = -1
    hidden: bool = False
    last_played: str | None = None
    difficulty: BeatmapDifficulty | None = None
    user_settings: BeatmapUserSettings | None = None


@dataclass
class BeatmapSet:
    """A released song with its difficulties and file bundle."""

    id: str
    online_id: int = -1
    hash: str | None = None
    date_added: str | None = None
    date_submitted: str | None = None
    date_ranked: str | None = None
    delete_pending: bool = False
    protected: bool = False
    status: int = 0
    beatmaps: list[Beatmap] = field(default_factory=list)  # stored order
    files: list[NamedFileUsage] = field(default_factory=list)  # stored order

    @property
    def primary_beatmap(self) -> Beatmap | None:
        """First beatmap as stored, or None for an empty set."""
        return self.beatmaps[0] if self.beatmaps else None

    def find_file(self, filename: str | None) -> NamedFileUsage | None:
        """Return the first file usage whose filename equals *filename*."""
        if filename is None:
            return None
        for usage in self.files:
            if usage.filename == filename:
                return usage
        return None


@dataclass
class Ruleset:
    short_name: str
    online_id: int = -1
    name: str | None = None
    instantiation_info: str | None = None
    available: bool = False
    last_applied_difficulty_version: int = 0


@dataclass
class KeyBinding:
    id: str
    ruleset_name: str | None = None
    variant: int | None = None
    action: int = 0
    key_combination: str | None = None
