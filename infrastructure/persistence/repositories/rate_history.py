from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from domain.models.rate import RateSnapshot
from infrastructure.persistence.database import Database
from infrastructure.persistence.models.rate import RateSnapshotDB


def _as_utc(value: datetime) -> datetime:
	# SQLite stores timestamps without an offset, so all reads and writes use UTC.
	return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def _to_domain(row: RateSnapshotDB) -> RateSnapshot:
	return RateSnapshot(
		pair=row.pair,
		rate=Decimal(row.rate),
		timestamp=_as_utc(row.timestamp),
		metadata=row.details or {},
	)


class RateHistoryRepository:
	"""Append-only store of resolved rates, one session per operation."""

	def __init__(self, database: Database):
		self.database = database

	async def save(
		self,
		pair: str,
		rate: Decimal,
		metadata: dict[str, Any] | None = None,
		timestamp: datetime | None = None,
	) -> RateSnapshot:
		row = RateSnapshotDB(
			pair=pair,
			rate=rate,
			details=metadata or {},
			timestamp=_as_utc(timestamp) if timestamp else datetime.now(tz=UTC),
		)
		async with self.database.session() as session:
			session.add(row)
		return _to_domain(row)

	async def find_latest(self, pair: str) -> RateSnapshot | None:
		stmt = (
			select(RateSnapshotDB)
			.filter(RateSnapshotDB.pair == pair)
			.order_by(RateSnapshotDB.timestamp.desc(), RateSnapshotDB.id.desc())
			.limit(1)
		)
		async with self.database.session() as session:
			row = (await session.execute(stmt)).scalars().first()
		return _to_domain(row) if row else None

	async def find_in_range(self, pair: str, start: datetime, end: datetime) -> list[RateSnapshot]:
		start, end = _as_utc(start), _as_utc(end)
		stmt = (
			select(RateSnapshotDB)
			.filter(
				RateSnapshotDB.pair == pair,
				RateSnapshotDB.timestamp >= start,
				RateSnapshotDB.timestamp <= end,
			)
			.order_by(RateSnapshotDB.timestamp.asc(), RateSnapshotDB.id.asc())
		)
		async with self.database.session() as session:
			rows = (await session.execute(stmt)).scalars().all()
		return [_to_domain(r) for r in rows]
