"""Read-only access to a lazer database snapshot.

The snapshot is a SQLite file holding one table per record type (see
``lazer_export.schemas.realm``). It is opened read-only against a pinned
schema version; there is no migration, so any mismatch fails the open.
Every ``objects()`` call materializes plain dataclasses inside a single read
transaction and never hands out live cursors.
"""

import logging
import sqlite3
from collections import defaultdict
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from lazer_export.schemas import records
from lazer_export.schemas.realm import (
    BEATMAP,
    BEATMAP_DIFFICULTY,
    BEATMAP_METADATA,
    BEATMAP_SET,
    BEATMAP_USER_SETTINGS,
    FILE,
    KEY_BINDING,
    NAMED_FILE_USAGE,
    REALM_USER,
    RECORD_SCHEMAS,
    RULESET,
    SCHEMA_VERSION,
    SCHEMAS_BY_NAME,
    RecordSchema,
)

logger = logging.getLogger(__name__)


class LazerDatabaseError(Exception):
    """Base error for the lazer database reader."""


class DatabaseConnectionError(LazerDatabaseError):
    """The snapshot is missing, locked, corrupt or of another schema version."""


class NotConnectedError(LazerDatabaseError):
    """A read was attempted without an open connection."""

    def __init__(self, message: str = "You should open connection at first."):
        super().__init__(message)


# Record classes accepted by objects() in place of a type name.
RECORD_TYPE_NAMES: dict[type, str] = {
    records.BeatmapSet: BEATMAP_SET.name,
    records.File: FILE.name,
    records.Beatmap: BEATMAP.name,
    records.KeyBinding: KEY_BINDING.name,
    records.Ruleset: RULESET.name,
    records.BeatmapDifficulty: BEATMAP_DIFFICULTY.name,
    records.BeatmapMetadata: BEATMAP_METADATA.name,
    records.NamedFileUsage: NAMED_FILE_USAGE.name,
    records.RealmUser: REALM_USER.name,
    records.BeatmapUserSettings: BEATMAP_USER_SETTINGS.name,
}


def _float(value, default: float = 0.0) -> float:
    return default if value is None else float(value)


def _int(value, default: int = 0) -> int:
    return default if value is None else int(value)


def _schema_for(record_type: str | type) -> RecordSchema:
    """Look up a record type by name or record class; KeyError if unknown."""
    name = record_type if isinstance(record_type, str) else RECORD_TYPE_NAMES[record_type]
    return SCHEMAS_BY_NAME[name]


def _select(conn: sqlite3.Connection, schema: RecordSchema, order_by: str = "rowid") -> list[sqlite3.Row]:
    return conn.execute(
        f'SELECT {schema.select_list} FROM "{schema.name}" ORDER BY {order_by}'
    ).fetchall()


class LazerDatabase:
    """Connection to one snapshot file.

    Use :meth:`open` to connect. The instance exclusively owns the SQLite
    connection; :meth:`close` may be called any number of times.
    """

    def __init__(self, connection: sqlite3.Connection | None = None, path: Path | None = None):
        self._connection = connection
        self.path = path
        self._loaders: dict[str, Callable[[sqlite3.Connection], list]] = {
            BEATMAP_SET.name: self._load_beatmap_sets,
            FILE.name: self._load_files,
            BEATMAP.name: self._load_beatmaps,
            KEY_BINDING.name: self._load_key_bindings,
            RULESET.name: self._load_rulesets,
            BEATMAP_DIFFICULTY.name: self._load_difficulties,
            BEATMAP_METADATA.name: self._load_metadata,
            NAMED_FILE_USAGE.name: self._load_named_file_usages,
            REALM_USER.name: self._load_users,
            BEATMAP_USER_SETTINGS.name: self._load_user_settings,
        }

    @classmethod
    def open(cls, path: Path | str, schema_version: int = SCHEMA_VERSION) -> "LazerDatabase":
        """Open the snapshot at *path* read-only and validate its schema.

        Raises DatabaseConnectionError if the file is absent, locked, not a
        database, written with a different schema version, or lacks any of
        the declared record tables.
        """
        path = Path(path)
        if not path.is_file():
            raise DatabaseConnectionError(f"Database file not found: {path}")

        logger.info("Connecting to lazer database at %s", path)
        try:
            conn = sqlite3.connect(
                f"{path.resolve().as_uri()}?mode=ro",
                uri=True,
                timeout=0,
                isolation_level=None,
            )
        except sqlite3.Error as exc:
            raise DatabaseConnectionError(f"Cannot open database {path}: {exc}") from exc

        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA query_only = 1")
            found = conn.execute("PRAGMA user_version").fetchone()[0]
            if found != schema_version:
                raise DatabaseConnectionError(
                    f"Schema version mismatch in {path}: expected {schema_version}, found {found}"
                )
            cls._validate_tables(conn, path)
        except sqlite3.OperationalError as exc:
            conn.close()
            if "locked" in str(exc):
                raise DatabaseConnectionError(
                    f"Database {path} is locked by another process"
                ) from exc
            raise DatabaseConnectionError(f"Cannot read database {path}: {exc}") from exc
        except sqlite3.DatabaseError as exc:
            conn.close()
            raise DatabaseConnectionError(f"Database {path} is corrupt: {exc}") from exc
        except DatabaseConnectionError:
            conn.close()
            raise

        logger.info("Connected to lazer database (schema version %d)", schema_version)
        return cls(conn, path)

    @staticmethod
    def _validate_tables(conn: sqlite3.Connection, path: Path) -> None:
        for schema in RECORD_SCHEMAS:
            present = {row["name"] for row in conn.execute(f'PRAGMA table_info("{schema.name}")')}
            if not present:
                raise DatabaseConnectionError(f"Record type {schema.name} missing from {path}")
            missing = [c for c in schema.columns if c not in present]
            if missing:
                raise DatabaseConnectionError(
                    f"Record type {schema.name} in {path} lacks columns: {', '.join(missing)}"
                )

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise NotConnectedError()
        return self._connection

    @contextmanager
    def _read_transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._require_connection()
        conn.execute("BEGIN")
        try:
            yield conn
        finally:
            if conn.in_transaction:
                conn.rollback()

    def objects(self, record_type: str | type) -> list:
        """Return every stored record of *record_type* in storage order.

        *record_type* is a record-type name such as ``"BeatmapSet"`` or one of
        the classes in ``lazer_export.schemas.records``. The list is a one-shot
        snapshot; later writes to the file are not reflected in it.
        """
        loader = self._loaders[_schema_for(record_type).name]
        with self._read_transaction() as conn:
            return loader(conn)

    def count(self, record_type: str | type) -> int:
        schema = _schema_for(record_type)
        conn = self._require_connection()
        return conn.execute(f'SELECT COUNT(*) FROM "{schema.name}"').fetchone()[0]

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug("Closed lazer database %s", self.path)

    def __enter__(self) -> "LazerDatabase":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- Loaders -------------------------------------------------------------

    def _load_files(self, conn: sqlite3.Connection) -> list[records.File]:
        return [records.File(hash=row["Hash"]) for row in _select(conn, FILE)]

    @staticmethod
    def _to_user(row: sqlite3.Row) -> records.RealmUser:
        return records.RealmUser(
            online_id=_int(row["OnlineID"]),
            username=row["Username"],
            country_code=row["CountryCode"],
        )

    @staticmethod
    def _to_difficulty(row: sqlite3.Row) -> records.BeatmapDifficulty:
        return records.BeatmapDifficulty(
            drain_rate=_float(row["DrainRate"]),
            circle_size=_float(row["CircleSize"]),
            overall_difficulty=_float(row["OverallDifficulty"]),
            approach_rate=_float(row["ApproachRate"]),
            slider_multiplier=_float(row["SliderMultiplier"]),
            slider_tick_rate=_float(row["SliderTickRate"]),
        )

    @staticmethod
    def _to_user_settings(row: sqlite3.Row) -> records.BeatmapUserSettings:
        return records.BeatmapUserSettings(offset=_float(row["Offset"]))

    def _load_users(self, conn: sqlite3.Connection) -> list[records.RealmUser]:
        return [self._to_user(row) for row in _select(conn, REALM_USER)]

    def _load_difficulties(self, conn: sqlite3.Connection) -> list[records.BeatmapDifficulty]:
        return [self._to_difficulty(row) for row in _select(conn, BEATMAP_DIFFICULTY)]

    def _load_user_settings(self, conn: sqlite3.Connection) -> list[records.BeatmapUserSettings]:
        return [self._to_user_settings(row) for row in _select(conn, BEATMAP_USER_SETTINGS)]

    # Owner lookups for joins; the first row stored for an owner wins.
    @staticmethod
    def _by_owner(conn: sqlite3.Connection, schema: RecordSchema, convert: Callable) -> dict:
        owned: dict = {}
        for row in _select(conn, schema):
            if row["OwnerID"] is not None and row["OwnerID"] not in owned:
                owned[row["OwnerID"]] = convert(row)
        return owned

    def _users_by_owner(self, conn: sqlite3.Connection) -> dict:
        return self._by_owner(conn, REALM_USER, self._to_user)

    def _difficulties_by_owner(self, conn: sqlite3.Connection) -> dict:
        return self._by_owner(conn, BEATMAP_DIFFICULTY, self._to_difficulty)

    def _user_settings_by_owner(self, conn: sqlite3.Connection) -> dict:
        return self._by_owner(conn, BEATMAP_USER_SETTINGS, self._to_user_settings)

    def _load_metadata(self, conn: sqlite3.Connection) -> list[records.BeatmapMetadata]:
        users = self._users_by_owner(conn)
        return [
            records.BeatmapMetadata(
                id=row["ID"],
                title=row["Title"],
                title_unicode=row["TitleUnicode"],
                artist=row["Artist"],
                artist_unicode=row["ArtistUnicode"],
                source=row["Source"],
                tags=row["Tags"],
                preview_time=_int(row["PreviewTime"], -1),
                audio_file=row["AudioFile"],
                background_file=row["BackgroundFile"],
                author=users.get(row["ID"]),
            )
            for row in _select(conn, BEATMAP_METADATA)
        ]

    def _load_beatmaps(
        self, conn: sqlite3.Connection, order_by: str = "rowid"
    ) -> list[records.Beatmap]:
        metadata = {m.id: m for m in self._load_metadata(conn)}
        difficulties = self._difficulties_by_owner(conn)
        settings = self._user_settings_by_owner(conn)
        return [
            records.Beatmap(
                id=row["ID"],
                beatmap_set_id=row["BeatmapSetID"],
                metadata=metadata.get(row["MetadataID"]),
                difficulty_name=row["DifficultyName"],
                ruleset_short_name=row["RulesetShortName"],
                status=_int(row["Status"]),
                length=_float(row["Length"]),
                bpm=_float(row["BPM"]),
                hash=row["Hash"],
                md5_hash=row["MD5Hash"],
                star_rating=_float(row["StarRating"]),
                online_id=_int(row["OnlineID"], -1),
                hidden=bool(row["Hidden"]),
                last_played=row["LastPlayed"],
                difficulty=difficulties.get(row["ID"]),
                user_settings=settings.get(row["ID"]),
            )
            for row in _select(conn, BEATMAP, order_by)
        ]

    def _named_file_usage_rows(self, conn: sqlite3.Connection) -> list[sqlite3.Row]:
        return _select(conn, NAMED_FILE_USAGE, '"Position", rowid')

    @staticmethod
    def _to_usage(row: sqlite3.Row) -> records.NamedFileUsage:
        file_hash = row["FileHash"]
        return records.NamedFileUsage(
            filename=row["Filename"],
            file=records.File(hash=file_hash) if file_hash is not None else None,
        )

    def _load_named_file_usages(self, conn: sqlite3.Connection) -> list[records.NamedFileUsage]:
        return [self._to_usage(row) for row in _select(conn, NAMED_FILE_USAGE)]

    def _load_beatmap_sets(self, conn: sqlite3.Connection) -> list[records.BeatmapSet]:
        beatmaps_by_set: dict[str, list[records.Beatmap]] = defaultdict(list)
        for beatmap in self._load_beatmaps(conn, '"SetPosition", rowid'):
            beatmaps_by_set[beatmap.beatmap_set_id].append(beatmap)

        files_by_set: dict[str, list[records.NamedFileUsage]] = defaultdict(list)
        for row in self._named_file_usage_rows(conn):
            files_by_set[row["OwnerID"]].append(self._to_usage(row))

        return [
            records.BeatmapSet(
                id=row["ID"],
                online_id=_int(row["OnlineID"], -1),
                hash=row["Hash"],
                date_added=row["DateAdded"],
                date_submitted=row["DateSubmitted"],
                date_ranked=row["DateRanked"],
                delete_pending=bool(row["DeletePending"]),
                protected=bool(row["Protected"]),
                status=_int(row["Status"]),
                beatmaps=beatmaps_by_set.get(row["ID"], []),
                files=files_by_set.get(row["ID"], []),
            )
            for row in _select(conn, BEATMAP_SET)
        ]

    def _load_rulesets(self, conn: sqlite3.Connection) -> list[records.Ruleset]:
        return [
            records.Ruleset(
                short_name=row["ShortName"],
                online_id=_int(row["OnlineID"], -1),
                name=row["Name"],
                instantiation_info=row["InstantiationInfo"],
                available=bool(row["Available"]),
                last_applied_difficulty_version=_int(row["LastAppliedDifficultyVersion"]),
            )
            for row in _select(conn, RULESET)
        ]

    def _load_key_bindings(self, conn: sqlite3.Connection) -> list[records.KeyBinding]:
        return [
            records.KeyBinding(
                id=row["ID"],
                ruleset_name=row["RulesetName"],
                variant=row["Variant"],
                action=_int(row["Action"]),
                key_combination=row["KeyCombination"],
            )
            for row in _select(conn, KEY_BINDING)
        ]
