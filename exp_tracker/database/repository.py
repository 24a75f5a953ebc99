"""Data access repository for EXP Tracker."""

import threading
from typing import Optional, List
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession, sessionmaker

from .models import Spot, ExpSample, ExpSetting, init_database
from ..constants import SAMPLING, SETTING_KEYS
from ..utils.helpers import now_ms
from ..utils.logging import get_logger


logger = get_logger("database")


class DatabaseError(Exception):
    """Base exception for database operations."""
    pass


class MalformedSettingError(DatabaseError):
    """Raised when a persisted setting row cannot be parsed."""

    def __init__(self, key: str, raw_value: str):
        super().__init__(f"Malformed setting '{key}': {raw_value!r}")
        self.key = key
        self.raw_value = raw_value


class SpotNotFoundError(DatabaseError, LookupError):
    """Raised when an operation references a spot id that does not exist."""

    def __init__(self, spot_id: str):
        super().__init__(f"Spot not found: {spot_id}")
        self.spot_id = spot_id


class Repository:
    """Data access layer for spots, EXP samples and persisted settings.

    Every public method runs in its own transactional session. Storage
    failures are raised as DatabaseError naming the operation that failed;
    nothing is retried here.
    """

    def __init__(self, db_path: str = "exp_tracker.db"):
        """Initialize repository.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        # Guards lazy initialize() against a concurrent close()
        self._lock = threading.Lock()
        self._session_factory: Optional[sessionmaker] = None
        self._engine: Optional[Engine] = None

    def initialize(self) -> bool:
        """Initialize the database connection and create missing tables.

        Safe to call repeatedly; an open database is reused.

        Returns:
            True once the database is ready

        Raises:
            DatabaseError: If the database cannot be opened or created
        """
        with self._lock:
            self._open_locked()
        return True

    def _open_locked(self) -> sessionmaker:
        if self._session_factory is not None:
            return self._session_factory
        try:
            factory = init_database(self._db_path)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database {self._db_path}: {e}")
            raise DatabaseError(f"Failed to initialize database {self._db_path}: {e}") from e
        self._session_factory = factory
        self._engine = factory.kw.get("bind")
        logger.info(f"Database initialized: {self._db_path}")
        return factory

    @property
    def db_path(self) -> str:
        """Get the database file path."""
        return self._db_path

    @contextmanager
    def _session_scope(self, operation: str):
        """Provide a transactional scope around operations.

        Args:
            operation: Description used in error messages
        """
        with self._lock:
            factory = self._open_locked()

        session: DBSession = factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error during {operation}: {e}")
            raise DatabaseError(f"Failed to {operation}: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Release pooled connections.

        The next operation reopens the database.
        """
        with self._lock:
            engine = self._engine
            self._engine = None
            self._session_factory = None

        if engine is not None:
            try:
                engine.dispose()
            except SQLAlchemyError as e:
                logger.warning(f"Error closing database engine: {e}")

    # Spot operations

    def upsert_spot(self, name: str) -> Spot:
        """Get existing spot by name or create a new one.

        Args:
            name: Unique spot name

        Returns:
            Spot instance (detached)
        """
        with self._session_scope(f"upsert spot '{name}'") as session:
            spot = session.query(Spot).filter_by(name=name).first()
            if spot is None:
                spot = Spot(name=name)
                session.add(spot)
                try:
                    session.flush()
                    logger.info(f"Created new spot: {name} ({spot.id})")
                except IntegrityError:
                    # Lost an insert race on the unique name; nothing else is pending
                    session.rollback()
                    logger.debug(f"Spot '{name}' was created concurrently, reloading")
                    spot = session.query(Spot).filter_by(name=name).one()

            session.expunge(spot)
            return spot

    def get_spot(self, spot_id: str) -> Optional[Spot]:
        """Get a spot by id.

        Args:
            spot_id: Spot id

        Returns:
            Spot or None if it does not exist
        """
        with self._session_scope(f"get spot {spot_id}") as session:
            spot = session.get(Spot, spot_id)
            if spot is not None:
                session.expunge(spot)
            return spot

    def list_spots(self) -> List[Spot]:
        """Get all spots, newest first."""
        with self._session_scope("list spots") as session:
            spots = session.query(Spot).order_by(Spot.created_at.desc()).all()
            for spot in spots:
                session.expunge(spot)
            return spots

    # Sample operations

    def add_sample(
        self,
        spot_id: str,
        level: int,
        exp_percent: float,
        ts: Optional[int] = None,
    ) -> ExpSample:
        """Append an EXP sample for a spot.

        Args:
            spot_id: Spot the sample belongs to
            level: Character level
            exp_percent: EXP percent into the level
            ts: Epoch milliseconds (defaults to now)

        Returns:
            New ExpSample instance (detached)

        Raises:
            DatabaseError: If the spot does not exist or the write fails
        """
        if ts is None:
            ts = now_ms()

        with self._session_scope(f"add sample for spot {spot_id}") as session:
            sample = ExpSample(
                spot_id=spot_id,
                ts=int(ts),
                level=int(level),
                exp_percent=float(exp_percent),
            )
            session.add(sample)
            session.flush()
            logger.debug(f"Recorded sample: spot={spot_id} lv={level} exp={exp_percent}% ts={ts}")
            session.expunge(sample)
            return sample

    def list_samples(self, spot_id: str, limit: int = 100) -> List[ExpSample]:
        """Get the most recent samples for a spot.

        Args:
            spot_id: Spot to query
            limit: Maximum samples to return

        Returns:
            Samples ordered by timestamp, newest first
        """
        with self._session_scope(f"list samples for spot {spot_id}") as session:
            samples = (
                session.query(ExpSample)
                .filter_by(spot_id=spot_id)
                .order_by(ExpSample.ts.desc(), ExpSample.id.desc())
                .limit(max(0, int(limit)))
                .all()
            )
            for s in samples:
                session.expunge(s)
            return samples

    def get_samples_since(self, spot_id: str, since_ts: int) -> List[ExpSample]:
        """Get samples for a spot at or after a timestamp.

        Args:
            spot_id: Spot to query
            since_ts: Inclusive lower bound in epoch milliseconds

        Returns:
            Samples ordered by timestamp, oldest first
        """
        with self._session_scope(f"load samples for spot {spot_id}") as session:
            samples = (
                session.query(ExpSample)
                .filter(ExpSample.spot_id == spot_id, ExpSample.ts >= since_ts)
                .order_by(ExpSample.ts.asc(), ExpSample.id.asc())
                .all()
            )
            for s in samples:
                session.expunge(s)
            return samples

    def count_samples(self, spot_id: str) -> int:
        """Count all samples recorded for a spot."""
        with self._session_scope(f"count samples for spot {spot_id}") as session:
            return session.query(ExpSample).filter_by(spot_id=spot_id).count()

    # Settings operations

    def get_setting(self, key: str) -> Optional[str]:
        """Get a raw setting value, or None if unset."""
        with self._session_scope(f"read setting '{key}'") as session:
            row = session.get(ExpSetting, key)
            return row.value if row is not None else None

    def set_setting(self, key: str, value: str) -> None:
        """Insert or replace a raw setting value."""
        with self._session_scope(f"write setting '{key}'") as session:
            session.merge(ExpSetting(key=key, value=str(value)))

    def delete_setting(self, key: str) -> None:
        """Remove a setting if present."""
        with self._session_scope(f"delete setting '{key}'") as session:
            session.query(ExpSetting).filter_by(key=key).delete()

    def get_sampling_interval_sec(self) -> Optional[int]:
        """Get the persisted sampling interval.

        Returns:
            Interval in seconds, or None if never saved

        Raises:
            MalformedSettingError: If the stored value is not an integer
        """
        key = SETTING_KEYS.SAMPLING_INTERVAL_SEC
        raw = self.get_setting(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as e:
            raise MalformedSettingError(key, raw) from e

    def set_sampling_interval_sec(self, value: int) -> int:
        """Persist the sampling interval, clamped to the minimum.

        Returns:
            The value actually stored
        """
        value = max(SAMPLING.MIN_INTERVAL_SEC, int(value))
        self.set_setting(SETTING_KEYS.SAMPLING_INTERVAL_SEC, str(value))
        return value

    def get_active_spot_id(self) -> Optional[str]:
        """Get the persisted active spot id, or None."""
        return self.get_setting(SETTING_KEYS.ACTIVE_SPOT_ID)

    def set_active_spot_id(self, spot_id: str) -> Spot:
        """Validate a spot exists and persist it as the active spot.

        Args:
            spot_id: Spot to activate

        Returns:
            The activated Spot (detached)

        Raises:
            SpotNotFoundError: If no spot has this id
        """
        with self._session_scope(f"set active spot {spot_id}") as session:
            spot = session.get(Spot, spot_id)
            if spot is None:
                raise SpotNotFoundError(spot_id)
            session.merge(ExpSetting(key=SETTING_KEYS.ACTIVE_SPOT_ID, value=spot_id))
            session.expunge(spot)
            return spot

    def clear_active_spot_id(self) -> None:
        """Remove the persisted active spot."""
        self.delete_setting(SETTING_KEYS.ACTIVE_SPOT_ID)
