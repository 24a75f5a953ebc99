"""SQLAlchemy database models for EXP Tracker."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import create_engine, event, Column, Integer, String, DateTime, Float, ForeignKey, Index
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def new_spot_id() -> str:
    """Generate a unique spot identifier."""
    return uuid.uuid4().hex


Base = declarative_base()


class Spot(Base):
    """A named grinding location whose EXP gain is tracked."""

    __tablename__ = "spots"

    id = Column(String(32), primary_key=True, default=new_spot_id)
    name = Column(String(200), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"<Spot(id='{self.id}', name='{self.name}')>"


class ExpSample(Base):
    """One (level, exp percent) observation at a spot."""

    __tablename__ = "exp_samples"
    __table_args__ = (
        Index("ix_exp_samples_spot_ts", "spot_id", "ts"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    spot_id = Column(String(32), ForeignKey("spots.id"), nullable=False)
    ts = Column(Integer, nullable=False)  # Epoch milliseconds
    level = Column(Integer, nullable=False)
    exp_percent = Column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<ExpSample(spot='{self.spot_id}', ts={self.ts}, lv={self.level}, exp={self.exp_percent}%)>"


class ExpSetting(Base):
    """Key-value row for persisted runtime parameters."""

    __tablename__ = "exp_settings"

    key = Column(String(100), primary_key=True)
    value = Column(String(500), nullable=False)

    def __repr__(self) -> str:
        return f"<ExpSetting(key='{self.key}', value='{self.value}')>"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """Turn on FK enforcement, which SQLite leaves off per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_path: str) -> Engine:
    """Create the SQLite engine shared by the sampler thread and callers.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine with foreign keys enforced on every connection
    """
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_database(db_path: str = "exp_tracker.db") -> sessionmaker:
    """Initialize the database and return a session factory.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Session factory for creating database sessions
    """
    engine = create_db_engine(db_path)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
