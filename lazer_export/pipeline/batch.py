"""Orchestrate a full fetch: open the snapshot, extract, close, write output."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from lazer_export.pipeline.extractor import PROGRESS_INTERVAL, BeatmapExtractor, Notify
from lazer_export.schemas.extracted import ExtractedBeatmapRecord
from lazer_export.schemas.realm import SCHEMA_VERSION
from lazer_export.storage.files import default_storage_root

logger = logging.getLogger(__name__)

_PATH_FIELDS = ("database_path", "storage_root", "output_dir")


@dataclass
class PipelineConfig:
    database_path: Path | None = None
    storage_root: Path = field(default_factory=default_storage_root)
    output_dir: Path = Path("data/export")
    schema_version: int = SCHEMA_VERSION
    workers: int = 1
    progress_interval: int = PROGRESS_INTERVAL
    write_parquet: bool = True
    write_json: bool = True

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        for name in _PATH_FIELDS:
            if data[name] is not None:
                data[name] = str(data[name])
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> PipelineConfig:
        """Load config from JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        # Only pass known fields to handle forward/backward compat
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in _PATH_FIELDS:
            if kwargs.get(name) is not None:
                kwargs[name] = Path(kwargs[name])
        return cls(**kwargs)


@dataclass
class PipelineResult:
    total_sets: int = 0
    resolved_audio: int = 0
    resolved_backgrounds: int = 0
    written: list[Path] = field(default_factory=list)


def fetch_lazer_data(
    config: PipelineConfig, notify: Notify | None = None
) -> list[ExtractedBeatmapRecord]:
    """Run one open / extract / close pass and return the extracted records.

    Connection and not-connected errors propagate unchanged; nothing is
    retried.
    """
    if config.database_path is None:
        raise ValueError("PipelineConfig.database_path is required")

    extractor = BeatmapExtractor(
        storage_root=config.storage_root,
        notify=notify,
        workers=config.workers,
        progress_interval=config.progress_interval,
    )
    try:
        extractor.connect(config.database_path, schema_version=config.schema_version)
        return extractor.extract()
    finally:
        extractor.close()


def run_pipeline(config: PipelineConfig, notify: Notify | None = None) -> PipelineResult:
    """Fetch all records and write them to ``config.output_dir``."""
    records = fetch_lazer_data(config, notify)

    result = PipelineResult(total_sets=len(records))
    result.resolved_audio = sum(1 for r in records if r.audio_path is not None)
    result.resolved_backgrounds = sum(1 for r in records if r.background_path is not None)

    if config.write_parquet:
        from lazer_export.storage.writer import write_parquet

        result.written.append(write_parquet(records, config.output_dir))
    if config.write_json:
        from lazer_export.storage.writer import write_json

        result.written.append(write_json(records, config.output_dir))

    logger.info(
        "Pipeline complete: %d sets, %d audio files, %d backgrounds resolved",
        result.total_sets,
        result.resolved_audio,
        result.resolved_backgrounds,
    )
    return result
