"""SQLAlchemy table definitions."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    String,
    Boolean,
    JSON,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, sessionmaker


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class PropertyRow(Base):
    __tablename__ = "properties"

    id = Column(String(100), primary_key=True)
    address = Column(String(255), default="")
    city = Column(String(100), default="", index=True)
    state = Column(String(10), default="", index=True)
    zip_code = Column(String(10), default="", index=True)
    asking_price = Column(Float, default=0.0)
    data = Column(JSON, default=dict)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow)


class BuyerRow(Base):
    __tablename__ = "buyers"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), default="")
    active = Column(Boolean, default=True, index=True)
    data = Column(JSON, default=dict)


class MarketRow(Base):
    __tablename__ = "markets"

    area_key = Column(String(50), primary_key=True)
    data = Column(JSON, default=dict)


class AnalysisRow(Base):
    __tablename__ = "analyses"

    property_id = Column(String(100), primary_key=True)
    engine_version = Column(String(20), default="")
    deal_class = Column(String(20), default="PASS", index=True)
    deal_score = Column(Float, default=0.0, index=True)
    recommended_offer = Column(Float, default=0.0)
    best_buyer = Column(String(100), nullable=True)
    analysis = Column(JSON, default=dict)
    matches = Column(JSON, default=dict)
    analyzed_at = Column(DateTime, default=_utcnow)


def init_db(db_url: str = "sqlite:///dealiq.db") -> sessionmaker:
    """Initialize the database and return a session factory."""
    engine = create_engine(db_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
