from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DECIMAL, JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	pass


class RateSnapshotDB(Base):
	__tablename__ = 'rate_snapshots'

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	pair: Mapped[str] = mapped_column(String(20), nullable=False)
	rate: Mapped[Decimal] = mapped_column(DECIMAL(precision=18, scale=8), nullable=False)
	# "metadata" is reserved on declarative classes
	details: Mapped[dict[str, Any] | None] = mapped_column('metadata', JSON, nullable=True)
	timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

	__table_args__ = (Index('idx_rate_snapshots_pair_timestamp', 'pair', 'timestamp'),)
