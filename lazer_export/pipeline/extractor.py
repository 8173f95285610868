"""Extract beatmap metadata and asset paths from a lazer database snapshot."""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

from lazer_export.schemas.extracted import ExtractedBeatmapRecord
from lazer_export.schemas.realm import SCHEMA_VERSION
from lazer_export.schemas.records import BeatmapSet
from lazer_export.storage.database import LazerDatabase, NotConnectedError
from lazer_export.storage.files import default_storage_root, resolve_first

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 50

CONNECTING_MESSAGE = "Connecting to lazer database..."
DATA_LOADED_MESSAGE = "Data loaded."
CANCELLED_MESSAGE = "Extraction cancelled."

Notify = Callable[[str], None]


class ExtractionState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    EXTRACTING = "extracting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def log_notify(message: str) -> None:
    """Default progress sink: log the status line."""
    logger.info(message)


def extract_beatmap_set(beatmap_set: BeatmapSet, storage_root: Path) -> ExtractedBeatmapRecord:
    """Join one set to its primary beatmap and resolve its audio/background.

    Missing pieces (no beatmaps, no metadata, a filename without a file usage,
    a hash without a stored file) leave the matching fields as None.
    """
    first = beatmap_set.primary_beatmap
    metadata = first.metadata if first is not None else None

    audio = metadata.audio_file if metadata is not None else None
    background = metadata.background_file if metadata is not None else None

    audio_hash = _file_hash(beatmap_set, audio)
    background_hash = _file_hash(beatmap_set, background)

    return ExtractedBeatmapRecord(
        id=beatmap_set.online_id,
        artist=metadata.artist if metadata is not None else None,
        artist_unicode=metadata.artist_unicode if metadata is not None else None,
        title=metadata.title if metadata is not None else None,
        title_unicode=metadata.title_unicode if metadata is not None else None,
        hash=beatmap_set.hash,
        audio=audio,
        audio_hash=audio_hash,
        audio_path=resolve_first(storage_root, audio_hash),
        background=background,
        background_hash=background_hash,
        background_path=resolve_first(storage_root, background_hash),
        tags=metadata.tags if metadata is not None else None,
        total_time=first.length if first is not None else None,
        bpm=first.bpm if first is not None else None,
    )


def _file_hash(beatmap_set: BeatmapSet, filename: str | None) -> str | None:
    usage = beatmap_set.find_file(filename)
    if usage is None or usage.file is None:
        return None
    return usage.file.hash


class BeatmapExtractor:
    """Runs one connect / extract / close pass over a snapshot.

    Progress strings go to *notify*. With ``workers > 1`` path resolution for
    upcoming sets runs on a thread pool, but records are consumed in storage
    order so notifications and output match a sequential run.
    """

    def __init__(
        self,
        storage_root: Path | None = None,
        notify: Notify | None = None,
        workers: int = 1,
        progress_interval: int = PROGRESS_INTERVAL,
    ):
        if progress_interval < 1:
            raise ValueError(f"progress_interval must be at least 1, got {progress_interval}")
        self.storage_root = Path(storage_root) if storage_root is not None else default_storage_root()
        self.notify = notify or log_notify
        self.workers = max(1, workers)
        self.progress_interval = progress_interval
        self.state = ExtractionState.IDLE
        self.database: LazerDatabase | None = None

    def connect(self, db_path: Path | str, schema_version: int = SCHEMA_VERSION) -> None:
        self.state = ExtractionState.CONNECTING
        self.notify(CONNECTING_MESSAGE)
        try:
            self.database = LazerDatabase.open(db_path, schema_version=schema_version)
        except Exception:
            self.state = ExtractionState.FAILED
            raise

    def extract(self, should_stop: Callable[[], bool] | None = None) -> list[ExtractedBeatmapRecord]:
        """Extract one record per beatmap set, in storage order.

        Raises NotConnectedError if :meth:`connect` has not succeeded. If
        *should_stop* returns true between two sets, the records gathered so
        far are returned and the state becomes CANCELLED.
        """
        if self.database is None or not self.database.connected:
            raise NotConnectedError()

        self.state = ExtractionState.EXTRACTING
        try:
            beatmap_sets = self.database.objects(BeatmapSet)
            data, cancelled = self._run(beatmap_sets, should_stop)
        except Exception:
            self.state = ExtractionState.FAILED
            raise

        if cancelled:
            self.state = ExtractionState.CANCELLED
            logger.info("Extraction cancelled after %d of %d sets", len(data), len(beatmap_sets))
            self.notify(CANCELLED_MESSAGE)
        else:
            self.state = ExtractionState.COMPLETED
            logger.info("Extracted %d beatmap sets", len(data))
            self.notify(DATA_LOADED_MESSAGE)
        return data

    def _run(
        self,
        beatmap_sets: list[BeatmapSet],
        should_stop: Callable[[], bool] | None,
    ) -> tuple[list[ExtractedBeatmapRecord], bool]:
        data: list[ExtractedBeatmapRecord] = []
        total = len(beatmap_sets)

        if self.workers > 1:
            pool = ThreadPoolExecutor(max_workers=self.workers)
            extracted = pool.map(self._extract_one, beatmap_sets)
        else:
            pool = None
            extracted = map(self._extract_one, beatmap_sets)

        cancelled = False
        try:
            for count, record in enumerate(self._until_stopped(extracted, should_stop), start=1):
                if count % self.progress_interval == 0:
                    self.notify(f"Loading: {record.title} ({count} / {total})")
                logger.debug("Loaded: %s", record.title)
                data.append(record)
            cancelled = len(data) < total
        finally:
            if pool is not None:
                pool.shutdown(wait=True, cancel_futures=True)

        return data, cancelled

    @staticmethod
    def _until_stopped(
        extracted: Iterator[ExtractedBeatmapRecord],
        should_stop: Callable[[], bool] | None,
    ) -> Iterator[ExtractedBeatmapRecord]:
        while True:
            if should_stop is not None and should_stop():
                return
            try:
                yield next(extracted)
            except StopIteration:
                return

    def _extract_one(self, beatmap_set: BeatmapSet) -> ExtractedBeatmapRecord:
        return extract_beatmap_set(beatmap_set, self.storage_root)

    def close(self) -> None:
        if self.database is not None:
            self.database.close()

    def __enter__(self) -> "BeatmapExtractor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
