"""Pinned record-type declarations for the lazer database snapshot.

Each record type of the client's object database is stored as one table whose
columns carry the record property names. Embedded (owned) record types are
keyed by ``OwnerID``; ordered lists keep their stored order in a position
column. The snapshot's schema version lives in ``PRAGMA user_version``.
"""

from dataclasses import dataclass

# Schema version written by the client this reader understands.
SCHEMA_VERSION = 41


@dataclass(frozen=True)
class RecordSchema:
    """Table layout of one record type."""

    name: str
    columns: tuple[str, ...]

    @property
    def select_list(self) -> str:
        return ", ".join(f'"{c}"' for c in self.columns)


BEATMAP_SET = RecordSchema(
    name="BeatmapSet",
    columns=(
        "ID",
        "OnlineID",
        "Hash",
        "DateAdded",
        "DateSubmitted",
        "DateRanked",
        "DeletePending",
        "Protected",
        "Status",
    ),
)

BEATMAP = RecordSchema(
    name="Beatmap",
    columns=(
        "ID",
        "BeatmapSetID",
        "SetPosition",
        "MetadataID",
        "RulesetShortName",
        "DifficultyName",
        "Status",
        "Length",
        "BPM",
        "Hash",
        "MD5Hash",
        "StarRating",
        "OnlineID",
        "Hidden",
        "LastPlayed",
    ),
)

BEATMAP_METADATA = RecordSchema(
    name="BeatmapMetadata",
    columns=(
        "ID",
        "Title",
        "TitleUnicode",
        "Artist",
        "ArtistUnicode",
        "Source",
        "Tags",
        "PreviewTime",
        "AudioFile",
        "BackgroundFile",
    ),
)

NAMED_FILE_USAGE = RecordSchema(
    name="RealmNamedFileUsage",
    columns=("OwnerID", "Position", "Filename", "FileHash"),
)

FILE = RecordSchema(
    name="File",
    columns=("Hash",),
)

RULESET = RecordSchema(
    name="Ruleset",
    columns=(
        "ShortName",
        "OnlineID",
        "Name",
        "InstantiationInfo",
        "Available",
        "LastAppliedDifficultyVersion",
    ),
)

KEY_BINDING = RecordSchema(
    name="KeyBinding",
    columns=("ID", "RulesetName", "Variant", "Action", "KeyCombination"),
)

BEATMAP_DIFFICULTY = RecordSchema(
    name="BeatmapDifficulty",
    columns=(
        "OwnerID",
        "DrainRate",
        "CircleSize",
        "OverallDifficulty",
        "ApproachRate",
        "SliderMultiplier",
        "SliderTickRate",
    ),
)

REALM_USER = RecordSchema(
    name="RealmUser",
    columns=("OwnerID", "OnlineID", "Username", "CountryCode"),
)

BEATMAP_USER_SETTINGS = RecordSchema(
    name="BeatmapUserSettings",
    columns=("OwnerID", "Offset"),
)

# All ten record types the snapshot must contain, in declaration order.
RECORD_SCHEMAS: tuple[RecordSchema, ...] = (
    BEATMAP_SET,
    FILE,
    BEATMAP,
    KEY_BINDING,
    RULESET,
    BEATMAP_DIFFICULTY,
    BEATMAP_METADATA,
    NAMED_FILE_USAGE,
    REALM_USER,
    BEATMAP_USER_SETTINGS,
)

SCHEMAS_BY_NAME: dict[str, RecordSchema] = {s.name: s for s in RECORD_SCHEMAS}
