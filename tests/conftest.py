"""Shared fixtures: build SQLite snapshots shaped like a lazer database."""

import sqlite3
from pathlib import Path

import pytest

from lazer_export.schemas.realm import RECORD_SCHEMAS, SCHEMA_VERSION


def build_snapshot(
    path: Path,
    beatmap_sets: list[dict],
    schema_version: int = SCHEMA_VERSION,
    skip_tables: tuple[str, ...] = (),
) -> Path:
    """Write a snapshot at *path* holding *beatmap_sets*.

    Each set is a dict with optional keys ``online_id``, ``hash``,
    ``beatmaps`` (list of dicts with ``length``, ``bpm``, ``metadata``,
    ``difficulty_name``) and ``files`` (list of ``(filename, hash)`` pairs).
    """
    con = sqlite3.connect(path)
    for schema in RECORD_SCHEMAS:
        if schema.name in skip_tables:
            continue
        cols = ", ".join(f'"{c}"' for c in schema.columns)
        con.execute(f'CREATE TABLE "{schema.name}" ({cols})')

    metadata_id = 0
    file_hashes: set[str] = set()
    for set_idx, bset in enumerate(beatmap_sets):
        set_id = bset.get("id", f"set-{set_idx}")
        con.execute(
            'INSERT INTO "BeatmapSet" ("ID", "OnlineID", "Hash", "DateAdded", '
            '"DeletePending", "Protected", "Status") VALUES (?, ?, ?, ?, 0, 0, 1)',
            (set_id, bset.get("online_id", set_idx + 1), bset.get("hash"), "2024-01-01T00:00:00Z"),
        )
        # Insert beatmaps in reverse rowid order so position, not rowid, decides order.
        beatmaps = list(enumerate(bset.get("beatmaps", [])))
        for position, bm in reversed(beatmaps):
            metadata_id += 1
            meta = bm.get("metadata", {})
            con.execute(
                'INSERT INTO "BeatmapMetadata" ("ID", "Title", "TitleUnicode", "Artist", '
                '"ArtistUnicode", "Source", "Tags", "PreviewTime", "AudioFile", "BackgroundFile") '
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    metadata_id,
                    meta.get("title"),
                    meta.get("title_unicode"),
                    meta.get("artist"),
                    meta.get("artist_unicode"),
                    meta.get("source"),
                    meta.get("tags"),
                    meta.get("preview_time", -1),
                    meta.get("audio_file"),
                    meta.get("background_file"),
                ),
            )
            if "author" in meta:
                con.execute(
                    'INSERT INTO "RealmUser" ("OwnerID", "OnlineID", "Username", "CountryCode") '
                    "VALUES (?, ?, ?, ?)",
                    (metadata_id, 1, meta["author"], "JP"),
                )
            beatmap_id = f"{set_id}-bm-{position}"
            con.execute(
                'INSERT INTO "Beatmap" ("ID", "BeatmapSetID", "SetPosition", "MetadataID", '
                '"RulesetShortName", "DifficultyName", "Status", "Length", "BPM", "Hash", '
                '"StarRating", "OnlineID", "Hidden") VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?, ?, 0)',
                (
                    beatmap_id,
                    set_id,
                    position,
                    metadata_id,
                    "osu",
                    bm.get("difficulty_name"),
                    bm.get("length", 0.0),
                    bm.get("bpm", 0.0),
                    f"{beatmap_id}-hash",
                    bm.get("star_rating", 0.0),
                    -1,
                ),
            )
            con.execute(
                'INSERT INTO "BeatmapDifficulty" ("OwnerID", "DrainRate", "CircleSize", '
                '"OverallDifficulty", "ApproachRate", "SliderMultiplier", "SliderTickRate") '
                "VALUES (?, 5, 4, 8, 9, 1.4, 1)",
                (beatmap_id,),
            )
        for position, (filename, file_hash) in enumerate(bset.get("files", [])):
            con.execute(
                'INSERT INTO "RealmNamedFileUsage" ("OwnerID", "Position", "Filename", "FileHash") '
                "VALUES (?, ?, ?, ?)",
                (set_id, position, filename, file_hash),
            )
            if file_hash is not None and file_hash not in file_hashes:
                file_hashes.add(file_hash)
                con.execute('INSERT INTO "File" ("Hash") VALUES (?)', (file_hash,))

    con.execute(f"PRAGMA user_version = {schema_version}")
    con.commit()
    con.close()
    return path


def store_file(storage_root: Path, file_hash: str, content: bytes = b"data") -> Path:
    """Place a file in the content-addressed layout under *storage_root*."""
    target = storage_root / "files" / file_hash[:1] / file_hash[:2] / file_hash
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return target


def make_set(online_id: int, title: str, n_beatmaps: int = 1, **extra) -> dict:
    """A set whose beatmaps carry distinguishable metadata."""
    beatmaps = [
        {
            "length": 100.0 + i,
            "bpm": 120.0 + i,
            "difficulty_name": f"Diff {i}",
            "metadata": {
                "title": title if i == 0 else f"{title} (alt {i})",
                "artist": f"Artist {online_id}" if i == 0 else f"Other {i}",
                "audio_file": "audio.mp3",
                "background_file": "bg.jpg",
            },
        }
        for i in range(n_beatmaps)
    ]
    bset = {"online_id": online_id, "hash": f"sethash{online_id}", "beatmaps": beatmaps}
    bset.update(extra)
    return bset


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "osu"
    (root / "files").mkdir(parents=True)
    return root


@pytest.fixture
def scenario_db(tmp_path: Path) -> Path:
    """One set (online ID 42) with an audio file and a background file."""
    return build_snapshot(
        tmp_path / "client.db",
        [
            {
                "online_id": 42,
                "hash": "abc",
                "beatmaps": [
                    {
                        "length": 180.5,
                        "bpm": 174.0,
                        "metadata": {
                            "title": "Song",
                            "title_unicode": "ソング",
                            "artist": "Band",
                            "artist_unicode": "バンド",
                            "tags": "rock live",
                            "audio_file": "track.mp3",
                            "background_file": "bg.jpg",
                            "author": "mapper",
                        },
                    }
                ],
                "files": [("track.mp3", "deadbeef"), ("bg.jpg", "f00dface")],
            }
        ],
    )
