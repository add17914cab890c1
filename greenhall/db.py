"""
Document store abstraction: SQLAlchemy-backed and in-memory implementations.

Each entity lives in its own collection. Records are plain dataclasses so
services never touch ORM rows directly.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterator, Optional, Protocol, Union

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select, text
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from greenhall.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Collection(str, Enum):
    TEAM_MEMBERS = "team_members"
    NEWS = "news"
    PORTFOLIO = "portfolio"


@dataclass
class TeamMemberRecord:
    id: str
    name: str
    image_url: str
    image_public_id: str
    role: str = ""
    position: str = ""
    team: str = ""
    information: str = ""
    email: str = ""
    phone: str = ""
    upload_date: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "_id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "imagePublicId": self.image_public_id,
            "role": self.role,
            "position": self.position,
            "team": self.team,
            "information": self.information,
            "email": self.email,
            "phone": self.phone,
            "uploadDate": self.upload_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class NewsRecord:
    id: str
    title: str
    news_date: datetime
    content: str
    image_url: Optional[str] = None
    image_public_id: Optional[str] = None
    upload_date: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "_id": self.id,
            "title": self.title,
            "newsDate": self.news_date,
            "content": self.content,
            "imageUrl": self.image_url,
            "imagePublicId": self.image_public_id,
            "uploadDate": self.upload_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class PortfolioRecord:
    id: str
    company_name: str
    description: str
    industry: str
    initial_investment: datetime
    headquarters: str
    status: str
    fund: str
    acquisitions: int = 0
    logo_url: Optional[str] = None
    logo_public_id: Optional[str] = None
    upload_date: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "_id": self.id,
            "companyName": self.company_name,
            "description": self.description,
            "industry": self.industry,
            "initialInvestment": self.initial_investment,
            "headquarters": self.headquarters,
            "acquisitions": self.acquisitions,
            "status": self.status,
            "fund": self.fund,
            "logoUrl": self.logo_url,
            "logoPublicId": self.logo_public_id,
            "uploadDate": self.upload_date,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


Record = Union[TeamMemberRecord, NewsRecord, PortfolioRecord]

RECORD_TYPES = {
    Collection.TEAM_MEMBERS: TeamMemberRecord,
    Collection.NEWS: NewsRecord,
    Collection.PORTFOLIO: PortfolioRecord,
}

# Listing order for each collection: newest first by these fields.
DEFAULT_SORT_KEYS = {
    Collection.TEAM_MEMBERS: "upload_date",
    Collection.NEWS: "news_date",
    Collection.PORTFOLIO: "initial_investment",
}


class DocumentStore(Protocol):
    """Interface for record persistence."""

    def connect(self) -> bool:
        ...

    def close(self) -> None:
        ...

    def is_connected(self) -> bool:
        ...

    def create(self, collection: Collection, values: dict) -> Record:
        ...

    def get_by_id(self, collection: Collection, record_id: str) -> Optional[Record]:
        ...

    def list_all(
        self,
        collection: Collection,
        sort_key: Optional[str] = None,
        descending: bool = True,
    ) -> list[Record]:
        ...

    def update(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[Record]:
        ...

    def delete_by_id(self, collection: Collection, record_id: str) -> bool:
        ...


class InMemoryDocumentStore:
    """Simple in-memory store for development and tests."""

    def __init__(self, connected: bool = True):
        self.collections: Dict[Collection, Dict[str, Record]] = {
            collection: {} for collection in Collection
        }
        self.connected = connected

    def connect(self) -> bool:
        self.connected = True
        return True

    def close(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for records in self.collections.values():
            records.clear()

    def _records(self, collection: Collection) -> Dict[str, Record]:
        if not self.connected:
            raise StoreUnavailableError()
        return self.collections[collection]

    def create(self, collection: Collection, values: dict) -> Record:
        records = self._records(collection)
        now = utcnow()
        values = {"upload_date": now, **values}
        record = RECORD_TYPES[collection](
            id=uuid.uuid4().hex, created_at=now, updated_at=now, **values
        )
        records[record.id] = record
        return replace(record)

    def get_by_id(self, collection: Collection, record_id: str) -> Optional[Record]:
        record = self._records(collection).get(record_id)
        return replace(record) if record else None

    def list_all(
        self,
        collection: Collection,
        sort_key: Optional[str] = None,
        descending: bool = True,
    ) -> list[Record]:
        sort_key = sort_key or DEFAULT_SORT_KEYS[collection]
        records = sorted(
            self._records(collection).values(),
            key=lambda record: getattr(record, sort_key),
            reverse=descending,
        )
        return [replace(record) for record in records]

    def update(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[Record]:
        records = self._records(collection)
        record = records.get(record_id)
        if not record:
            return None
        updated = replace(record, **changes, updated_at=utcnow())
        records[record_id] = updated
        return replace(updated)

    def delete_by_id(self, collection: Collection, record_id: str) -> bool:
        return self._records(collection).pop(record_id, None) is not None


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    The engine is created by ``connect``; until then every operation raises
    StoreUnavailableError. A failed first connection is logged rather than
    raised so the HTTP process can still report its status.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        self.database_url = database_url
        self.engine = None
        self.Session = None
        self._connected = False

    def connect(self) -> bool:
        if self.engine is None:
            self.engine = create_engine(
                self.database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
            self.Session = sessionmaker(
                bind=self.engine, class_=Session, expire_on_commit=False, future=True
            )
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error("Initial database connection failed: %s", exc)
            self._connected = False
            return False
        logger.info("Connected to database")
        self._connected = True
        return True

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database connection closed")
        self.engine = None
        self.Session = None
        self._connected = False

    def is_connected(self) -> bool:
        """Ping the database, logging disconnect/reconnect transitions."""
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if not self._connected:
                # The first connect may have failed before tables existed.
                Base.metadata.create_all(self.engine)
        except SQLAlchemyError:
            if self._connected:
                logger.warning("Database disconnected")
            self._connected = False
            return False
        if not self._connected:
            logger.info("Database reconnected")
            self._connected = True
        return True

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self.Session is None:
            raise StoreUnavailableError()
        try:
            with self.Session() as session:
                yield session
        except (OperationalError, DisconnectionError) as exc:
            self._connected = False
            raise StoreUnavailableError(details=str(exc)) from exc

    def _to_record(self, collection: Collection, row) -> Record:
        record_type = RECORD_TYPES[collection]
        values = {}
        for item in fields(record_type):
            value = getattr(row, item.name)
            # SQLite drops tzinfo on the way back out.
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            values[item.name] = value
        return record_type(**values)

    def create(self, collection: Collection, values: dict) -> Record:
        now = utcnow()
        values = {"upload_date": now, **values}
        record = RECORD_TYPES[collection](
            id=uuid.uuid4().hex, created_at=now, updated_at=now, **values
        )
        with self._session() as session:
            row = ROW_TYPES[collection](
                **{item.name: getattr(record, item.name) for item in fields(record)}
            )
            session.add(row)
            session.commit()
        return record

    def get_by_id(self, collection: Collection, record_id: str) -> Optional[Record]:
        with self._session() as session:
            row = session.get(ROW_TYPES[collection], record_id)
            if not row:
                return None
            return self._to_record(collection, row)

    def list_all(
        self,
        collection: Collection,
        sort_key: Optional[str] = None,
        descending: bool = True,
    ) -> list[Record]:
        row_type = ROW_TYPES[collection]
        column = getattr(row_type, sort_key or DEFAULT_SORT_KEYS[collection])
        stmt = select(row_type).order_by(column.desc() if descending else column.asc())
        with self._session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_record(collection, row) for row in rows]

    def update(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[Record]:
        with self._session() as session:
            row = session.get(ROW_TYPES[collection], record_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            return self._to_record(collection, row)

    def delete_by_id(self, collection: Collection, record_id: str) -> bool:
        with self._session() as session:
            row = session.get(ROW_TYPES[collection], record_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True


Base = declarative_base()


class TeamMemberRow(Base):
    __tablename__ = "team_members"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    image_url = Column(String, nullable=False)
    image_public_id = Column(String, nullable=False)
    role = Column(String, nullable=False, default="")
    position = Column(String, nullable=False, default="")
    team = Column(String, nullable=False, default="")
    information = Column(Text, nullable=False, default="")
    email = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    upload_date = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class NewsRow(Base):
    __tablename__ = "news"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    news_date = Column(DateTime(timezone=True), nullable=False, index=True)
    content = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
    image_public_id = Column(String, nullable=True)
    upload_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class PortfolioRow(Base):
    __tablename__ = "portfolio"

    id = Column(String, primary_key=True)
    company_name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    industry = Column(String, nullable=False)
    initial_investment = Column(DateTime(timezone=True), nullable=False, index=True)
    headquarters = Column(String, nullable=False)
    acquisitions = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False)
    fund = Column(String, nullable=False)
    logo_url = Column(String, nullable=True)
    logo_public_id = Column(String, nullable=True)
    upload_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


ROW_TYPES = {
    Collection.TEAM_MEMBERS: TeamMemberRow,
    Collection.NEWS: NewsRow,
    Collection.PORTFOLIO: PortfolioRow,
}
