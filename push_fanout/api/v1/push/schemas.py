from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from push_fanout.models.enums import Target


class TokensByPlatform(BaseModel):
    """Snapshot of active, opted-in tokens supplied by the token registry."""
    ios: list[str] = Field(default_factory=list)
    android: list[str] = Field(default_factory=list)


class SendPushRequest(BaseModel):
    """Admin sends a push notification to the given device tokens."""
    title: str = Field(..., min_length=1, max_length=200, description="Notification title")
    body: str = Field(..., min_length=1, description="Notification body text")
    data: dict[str, Any] | None = Field(None, description="Optional data payload (values will be stringified)")
    target: Target = Field(Target.all, description="Audit label: all, ios or android")
    tokens: TokensByPlatform = Field(default_factory=TokensByPlatform)

    @field_validator("title", "body")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class TokenOutcomeResponse(BaseModel):
    token: str | None
    platform: str
    success: bool
    messageId: str | None = None
    errorCode: str | None = None
    error: str | None = None


class SendPushResponse(BaseModel):
    """Result of one fan-out. Tokens are truncated."""
    message: str
    status: str
    iosTokensCount: int
    iosSuccessCount: int
    iosFailureCount: int
    androidTokensCount: int
    androidSuccessCount: int
    androidFailureCount: int
    totalTokensCount: int
    totalSuccessCount: int
    totalFailureCount: int
    successRate: float
    results: list[TokenOutcomeResponse]


class PushHistoryResponse(BaseModel):
    id: UUID
    title: str
    body: str
    target: str
    createdAt: str | None
    iosTokensCount: int
    iosSuccessCount: int
    iosFailureCount: int
    androidTokensCount: int
    androidSuccessCount: int
    androidFailureCount: int
    totalTokensCount: int
    totalSuccessCount: int
    totalFailureCount: int
    successRate: float
    status: str
    errorMessage: str | None = None


class PushHistoryListResponse(BaseModel):
    histories: list[PushHistoryResponse]


class TodayCountResponse(BaseModel):
    count: int


class PushStatsResponse(BaseModel):
    totalNotifications: int
    statusDistribution: dict[str, int]


class ValidateTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ValidateTokenResponse(BaseModel):
    valid: bool
