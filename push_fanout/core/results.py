"""
Value types flowing through a fan-out: the payload going out, one outcome per token coming back,
and the aggregate result whose counters are derived from the per-platform outcome lists.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from push_fanout.core.exceptions import InvalidPayloadError
from push_fanout.models.enums import DeliveryStatus, Platform

TOKEN_PREFIX_LENGTH = 20
TITLE_MAX_LENGTH = 200


def mask_token(token: str | None) -> str | None:
    """Keep only a short prefix of a device token for logs and API responses."""
    if token is None:
        return None
    if len(token) <= TOKEN_PREFIX_LENGTH:
        return token[: len(token) // 2] + "..."
    return token[:TOKEN_PREFIX_LENGTH] + "..."


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not (self.title or "").strip():
            raise InvalidPayloadError("Notification title must not be empty")
        if len(self.title) > TITLE_MAX_LENGTH:
            raise InvalidPayloadError(f"Notification title must be at most {TITLE_MAX_LENGTH} characters")
        if not (self.body or "").strip():
            raise InvalidPayloadError("Notification body must not be empty")
        object.__setattr__(self, "data", MappingProxyType(dict(self.data or {})))


@dataclass(frozen=True)
class TokenOutcome:
    token: str
    platform: Platform
    success: bool
    provider_message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def delivered(cls, token: str, platform: Platform, message_id: str | None) -> "TokenOutcome":
        return cls(token=token, platform=platform, success=True, provider_message_id=message_id)

    @classmethod
    def failed(cls, token: str, platform: Platform, code: str, message: str) -> "TokenOutcome":
        return cls(token=token, platform=platform, success=False, error_code=code, error_message=message)

    @property
    def masked_token(self) -> str | None:
        return mask_token(self.token)

    def to_dict(self) -> dict:
        return {
            "token": self.masked_token,
            "platform": self.platform.value,
            "success": self.success,
            "messageId": self.provider_message_id,
            "errorCode": self.error_code,
            "error": self.error_message,
        }


@dataclass(frozen=True)
class PlatformCounts:
    tokens_count: int
    success_count: int
    failure_count: int

    @classmethod
    def from_outcomes(cls, outcomes) -> "PlatformCounts":
        success = sum(1 for o in outcomes if o.success)
        return cls(tokens_count=len(outcomes), success_count=success, failure_count=len(outcomes) - success)


def derive_status(success_count: int, failure_count: int) -> DeliveryStatus:
    if failure_count == 0:
        return DeliveryStatus.success
    if success_count == 0:
        return DeliveryStatus.failed
    return DeliveryStatus.partial


@dataclass(frozen=True)
class FanoutResult:
    """
    Outcome of one fan-out. Outcomes are stored per platform exactly as the dispatcher for that
    platform produced them; every counter is derived from those lists, so
    success + failure == tokens holds per platform and overall.
    """

    ios_outcomes: tuple[TokenOutcome, ...] = ()
    android_outcomes: tuple[TokenOutcome, ...] = ()

    @classmethod
    def from_platform_outcomes(cls, outcomes_by_platform: Mapping[Platform, list[TokenOutcome]]) -> "FanoutResult":
        return cls(
            ios_outcomes=tuple(outcomes_by_platform.get(Platform.ios, ())),
            android_outcomes=tuple(outcomes_by_platform.get(Platform.android, ())),
        )

    def outcomes_for(self, platform: Platform) -> tuple[TokenOutcome, ...]:
        if platform is Platform.ios:
            return self.ios_outcomes
        if platform is Platform.android:
            return self.android_outcomes
        raise ValueError(f"Unknown platform: {platform!r}")

    @property
    def outcomes(self) -> list[TokenOutcome]:
        return [*self.ios_outcomes, *self.android_outcomes]

    @property
    def ios(self) -> PlatformCounts:
        return PlatformCounts.from_outcomes(self.ios_outcomes)

    @property
    def android(self) -> PlatformCounts:
        return PlatformCounts.from_outcomes(self.android_outcomes)

    @property
    def ios_tokens_count(self) -> int:
        return self.ios.tokens_count

    @property
    def ios_success_count(self) -> int:
        return self.ios.success_count

    @property
    def ios_failure_count(self) -> int:
        return self.ios.failure_count

    @property
    def android_tokens_count(self) -> int:
        return self.android.tokens_count

    @property
    def android_success_count(self) -> int:
        return self.android.success_count

    @property
    def android_failure_count(self) -> int:
        return self.android.failure_count

    @property
    def total_tokens_count(self) -> int:
        return self.ios_tokens_count + self.android_tokens_count

    @property
    def total_success_count(self) -> int:
        return self.ios_success_count + self.android_success_count

    @property
    def total_failure_count(self) -> int:
        return self.ios_failure_count + self.android_failure_count

    @property
    def success_rate(self) -> float:
        """Percentage of tokens delivered, 0.0 for an empty result."""
        if self.total_tokens_count == 0:
            return 0.0
        return self.total_success_count / self.total_tokens_count * 100

    @property
    def status(self) -> DeliveryStatus:
        return derive_status(self.total_success_count, self.total_failure_count)

    def error_summary(self, limit: int = 5) -> str | None:
        """Distinct failure messages (first `limit`), for the history record."""
        seen: list[str] = []
        for outcome in self.outcomes:
            if outcome.success:
                continue
            text = f"{outcome.error_code}: {outcome.error_message}" if outcome.error_code else str(outcome.error_message)
            if text not in seen:
                seen.append(text)
            if len(seen) >= limit:
                break
        return "\n".join(seen) or None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "iosTokensCount": self.ios_tokens_count,
            "iosSuccessCount": self.ios_success_count,
            "iosFailureCount": self.ios_failure_count,
            "androidTokensCount": self.android_tokens_count,
            "androidSuccessCount": self.android_success_count,
            "androidFailureCount": self.android_failure_count,
            "totalTokensCount": self.total_tokens_count,
            "totalSuccessCount": self.total_success_count,
            "totalFailureCount": self.total_failure_count,
            "successRate": round(self.success_rate, 1),
            "results": [o.to_dict() for o in self.outcomes],
        }
