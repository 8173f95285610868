"""Write extracted beatmap records to Parquet and JSON."""

import json
import logging
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from lazer_export.schemas.extracted import ExtractedBeatmapRecord

logger = logging.getLogger(__name__)

PARQUET_FILENAME = "beatmapsets.parquet"
JSON_FILENAME = "beatmapsets.json"

# --- Arrow schema ------------------------------------------------------------

BEATMAPSETS_SCHEMA = pa.schema(
    [
        pa.field("id", pa.int64(), nullable=False),
        pa.field("artist", pa.string()),
        pa.field("artist_unicode", pa.string()),
        pa.field("title", pa.string()),
        pa.field("title_unicode", pa.string()),
        pa.field("hash", pa.string()),
        pa.field("audio", pa.string()),
        pa.field("audio_hash", pa.string()),
        pa.field("audio_path", pa.string()),
        pa.field("background", pa.string()),
        pa.field("background_hash", pa.string()),
        pa.field("background_path", pa.string()),
        pa.field("tags", pa.string()),
        pa.field("total_time", pa.float64()),
        pa.field("bpm", pa.float64()),
    ]
)


# --- Public API --------------------------------------------------------------


def records_to_table(records: list[ExtractedBeatmapRecord]) -> pa.Table:
    """Convert records to an Arrow table, one row per set in input order."""
    cols: dict[str, list] = {k: [] for k in BEATMAPSETS_SCHEMA.names}
    for record in records:
        for name, value in record.to_dict().items():
            cols[name].append(value)
    return pa.table(cols, schema=BEATMAPSETS_SCHEMA)


def write_parquet(records: list[ExtractedBeatmapRecord], output_dir: Path) -> Path:
    """Write *records* to ``beatmapsets.parquet`` inside *output_dir*.

    The directory is created if needed. Optional fields are stored as nulls.
    Returns the written path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / PARQUET_FILENAME
    pq.write_table(records_to_table(records), path, compression="snappy")
    logger.info("Wrote %d beatmap sets to %s", len(records), path)
    return path


def write_json(records: list[ExtractedBeatmapRecord], output_dir: Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / JSON_FILENAME
    with open(path, "w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)
    logger.info("Wrote %d beatmap sets to %s", len(records), path)
    return path


def read_parquet(path: Path) -> pa.Table:
    """Read extracted records back as an Arrow table.

    Accepts either the ``.parquet`` file itself or the output directory.
    """
    path = Path(path)
    if path.is_dir():
        path = path / PARQUET_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"No {PARQUET_FILENAME} in {path.parent}")
    return pq.read_table(path)


def read_records(path: Path) -> list[ExtractedBeatmapRecord]:
    return [ExtractedBeatmapRecord(**row) for row in read_parquet(path).to_pylist()]
