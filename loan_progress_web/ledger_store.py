"""Persistence layer for the payment ledger.

The web API keeps each user's payment ledger in a database so it survives
between requests. Only the user-entered payments are stored; the schedule and
metrics are recomputed from them on every request. The store defaults to
SQLite for local development, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from loan_progress.data_models import PaymentRecord
from loan_progress.ledger import PaymentLedger, record_to_row

logger = logging.getLogger(__name__)

Base = declarative_base()


class LedgerPaymentModel(Base):
    __tablename__ = "ledger_payments"
    __table_args__ = (UniqueConstraint("user_token", "month", name="uq_ledger_user_month"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_token = Column(String(64), index=True, nullable=False)
    month = Column(Integer, nullable=False)
    date = Column(Date, nullable=True)
    emi_paid = Column(Numeric(18, 2), nullable=True)
    prepayment = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    lumpsum = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class LedgerStore:
    """Database-backed payment ledger, one row per user and month."""

    def __init__(self, url: str) -> None:
        engine_kwargs: Dict[str, Any] = {"future": True}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # keep a single connection so the in-memory database persists
            engine_kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def _query(self, user_token: str, month: Optional[int] = None):
        stmt = select(LedgerPaymentModel).where(LedgerPaymentModel.user_token == user_token)
        if month is not None:
            stmt = stmt.where(LedgerPaymentModel.month == month)
        return stmt.order_by(LedgerPaymentModel.month.asc())

    def list_records(self, user_token: str) -> List[PaymentRecord]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(self._query(user_token)).scalars().all()
            return [self._to_record(row) for row in rows]

    def list_rows(self, user_token: str) -> List[Dict[str, Any]]:
        return [record_to_row(record) for record in self.list_records(user_token)]

    def ledger(self, user_token: str) -> PaymentLedger:
        return PaymentLedger.from_records(self.list_records(user_token))

    def upsert(self, user_token: str, record: PaymentRecord) -> None:
        """Insert the record for its month, replacing any existing one."""
        if not user_token:
            return
        with self._session_factory() as session:
            row = session.execute(self._query(user_token, record.month)).scalars().first()
            if row is None:
                row = LedgerPaymentModel(user_token=user_token, month=record.month)
                session.add(row)
            row.date = record.date
            row.emi_paid = record.emi_paid
            row.prepayment = record.prepayment
            row.lumpsum = record.lumpsum
            session.commit()
        logger.debug("Stored ledger month %d for %s", record.month, user_token)

    def remove(self, user_token: str, month: int) -> bool:
        if not user_token:
            return False
        with self._session_factory() as session:
            row = session.execute(self._query(user_token, month)).scalars().first()
            if row is None:
                return False
            session.delete(row)
            session.commit()
        return True

    def clear(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                LedgerPaymentModel.__table__.delete().where(
                    LedgerPaymentModel.user_token == user_token
                )
            )
            session.commit()

    @staticmethod
    def _to_record(row: LedgerPaymentModel) -> PaymentRecord:
        return PaymentRecord(
            month=row.month,
            date=row.date,
            emi_paid=Decimal(row.emi_paid) if row.emi_paid is not None else None,
            prepayment=Decimal(row.prepayment or 0),
            lumpsum=Decimal(row.lumpsum or 0),
        )


def create_store_from_env(url: str | None) -> LedgerStore:
    return LedgerStore(url or "sqlite:///loan_progress.sqlite3")
