"""Audit record of one push fan-out, with per-platform and overall delivery counters."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.types import Uuid

from push_fanout.core.database import Base
from push_fanout.models.enums import DeliveryStatus, Target


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PushHistory(Base):
    """
    Insert-only: one row per fan-out, never updated or deleted here.
    Counters always satisfy success + failure == tokens (per platform and total).
    """
    __tablename__ = "push_histories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(String(64), nullable=False, index=True)  # admin who triggered the send
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    target = Column(String(10), nullable=False, default=Target.all.value)  # all, ios, android

    ios_tokens_count = Column(Integer, nullable=False, default=0)
    ios_success_count = Column(Integer, nullable=False, default=0)
    ios_failure_count = Column(Integer, nullable=False, default=0)
    android_tokens_count = Column(Integer, nullable=False, default=0)
    android_success_count = Column(Integer, nullable=False, default=0)
    android_failure_count = Column(Integer, nullable=False, default=0)
    total_tokens_count = Column(Integer, nullable=False, default=0)
    total_success_count = Column(Integer, nullable=False, default=0)
    total_failure_count = Column(Integer, nullable=False, default=0)

    success_rate = Column(Numeric(5, 2), nullable=False, default=0)
    status = Column(String(10), nullable=False, default=DeliveryStatus.success.value, index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "body": self.body,
            "target": self.target,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "iosTokensCount": self.ios_tokens_count,
            "iosSuccessCount": self.ios_success_count,
            "iosFailureCount": self.ios_failure_count,
            "androidTokensCount": self.android_tokens_count,
            "androidSuccessCount": self.android_success_count,
            "androidFailureCount": self.android_failure_count,
            "totalTokensCount": self.total_tokens_count,
            "totalSuccessCount": self.total_success_count,
            "totalFailureCount": self.total_failure_count,
            "successRate": float(self.success_rate) if self.success_rate is not None else 0.0,
            "status": self.status,
            "errorMessage": self.error_message,
        }
