"""
Delivery history: one PushHistory row per fan-out, plus the read queries the admin dashboard uses.
"""
import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from push_fanout.core.results import FanoutResult
from push_fanout.models.enums import DeliveryStatus, Target
from push_fanout.models.push_history import PushHistory, utc_now

logger = logging.getLogger(__name__)


@runtime_checkable
class DeliveryHistoryRecorder(Protocol):
    async def record(
        self,
        result: FanoutResult,
        owner_id: str,
        title: str,
        body: str,
        target: Target,
    ) -> UUID: ...

    async def list_recent(self, owner_id: str, limit: int = 10) -> list[PushHistory]: ...

    async def count_since(self, owner_id: str, since: datetime) -> int: ...


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_day(now: datetime) -> datetime:
    """Midnight (UTC) of the day `now` falls on."""
    now = as_utc(now)
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


class SqlAlchemyHistoryRecorder:
    """DeliveryHistoryRecorder over an async SQLAlchemy session maker."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_maker = session_maker
        self._clock = clock

    async def record(
        self,
        result: FanoutResult,
        owner_id: str,
        title: str,
        body: str,
        target: Target = Target.all,
    ) -> UUID:
        record_id = uuid.uuid4()
        entry = PushHistory(
            id=record_id,
            owner_id=str(owner_id),
            title=title,
            body=body,
            target=Target(target).value,
            ios_tokens_count=result.ios_tokens_count,
            ios_success_count=result.ios_success_count,
            ios_failure_count=result.ios_failure_count,
            android_tokens_count=result.android_tokens_count,
            android_success_count=result.android_success_count,
            android_failure_count=result.android_failure_count,
            total_tokens_count=result.total_tokens_count,
            total_success_count=result.total_success_count,
            total_failure_count=result.total_failure_count,
            success_rate=Decimal(str(result.success_rate)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            status=result.status.value,
            error_message=result.error_summary(),
            created_at=self._clock(),
        )
        async with self._session_maker() as session:
            session.add(entry)
            await session.commit()
        logger.info("Push history recorded: id=%s owner=%s status=%s", record_id, owner_id, result.status.value)
        return record_id

    async def list_recent(self, owner_id: str, limit: int = 10) -> list[PushHistory]:
        """Newest first."""
        async with self._session_maker() as session:
            rows = await session.execute(
                select(PushHistory)
                .where(PushHistory.owner_id == str(owner_id))
                .order_by(PushHistory.created_at.desc())
                .limit(limit)
            )
            return list(rows.scalars().all())

    async def get(self, owner_id: str, record_id: UUID) -> PushHistory | None:
        async with self._session_maker() as session:
            entry = await session.get(PushHistory, record_id)
        if entry is None or entry.owner_id != str(owner_id):
            return None
        return entry

    async def count_since(self, owner_id: str, since: datetime) -> int:
        since = as_utc(since)
        async with self._session_maker() as session:
            result = await session.execute(
                select(func.count(PushHistory.id)).where(
                    PushHistory.owner_id == str(owner_id),
                    PushHistory.created_at >= since,
                )
            )
            return result.scalar_one()

    async def count_today(self, owner_id: str, now: datetime | None = None) -> int:
        """Number of fan-outs `owner_id` triggered since UTC midnight."""
        day_start = start_of_day(now or self._clock())
        async with self._session_maker() as session:
            result = await session.execute(
                select(func.count(PushHistory.id)).where(
                    PushHistory.owner_id == str(owner_id),
                    PushHistory.created_at >= day_start,
                    PushHistory.created_at < day_start + timedelta(days=1),
                )
            )
            return result.scalar_one()

    async def status_breakdown(self, owner_id: str) -> dict[str, int]:
        """Record count per delivery status; statuses with no records are reported as 0."""
        async with self._session_maker() as session:
            rows = await session.execute(
                select(PushHistory.status, func.count(PushHistory.id))
                .where(PushHistory.owner_id == str(owner_id))
                .group_by(PushHistory.status)
            )
            counts = {status: count for status, count in rows.all()}
        return {s.value: counts.get(s.value, 0) for s in DeliveryStatus}
