"""
Platform message envelopes.
build_message() turns a title/body/data triple into the transport-ready envelope for one platform.
Pure construction: no I/O, no token (the transport attaches the token per call).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from push_fanout.models.enums import Platform

logger = logging.getLogger(__name__)

CLICK_ACTION_KEY = "click_action"
DEFAULT_CLICK_ACTION = "FOODTRUCK_NOTIFICATION_CLICK"
DEFAULT_ANDROID_CHANNEL_ID = "foodtruck_notifications"
ANDROID_TTL_MS = 3_600_000


@dataclass(frozen=True)
class IosEnvelope:
    title: str
    body: str
    data: dict[str, str]
    headers: dict[str, str] = field(default_factory=lambda: {"apns-priority": "10"})
    sound: str = "default"
    badge: int = 1

    platform = Platform.ios


@dataclass(frozen=True)
class AndroidEnvelope:
    title: str
    body: str
    data: dict[str, str]
    channel_id: str = DEFAULT_ANDROID_CHANNEL_ID
    click_action: str = DEFAULT_CLICK_ACTION
    priority: str = "high"
    ttl_ms: int = ANDROID_TTL_MS
    sound: str = "default"
    icon: str = "ic_notification"
    color: str = "#FF6B35"
    tag: str = "foodtruck_notification"

    platform = Platform.android


MessageEnvelope = IosEnvelope | AndroidEnvelope


def stringify_data(data: Mapping[str, Any] | None, click_action: str = DEFAULT_CLICK_ACTION) -> dict[str, str]:
    """
    FCM only accepts string data values. The routing key is reserved: a caller value under
    `click_action` is replaced by the configured click action.
    """
    out = {str(k): str(v) for k, v in (data or {}).items()}
    caller_value = out.get(CLICK_ACTION_KEY)
    if caller_value is not None and caller_value != click_action:
        logger.warning("Overriding caller-supplied %s=%r with %r", CLICK_ACTION_KEY, caller_value, click_action)
    out[CLICK_ACTION_KEY] = click_action
    return out


def build_message(
    platform: Platform,
    title: str,
    body: str,
    data: Mapping[str, Any] | None = None,
    *,
    android_channel_id: str = DEFAULT_ANDROID_CHANNEL_ID,
    click_action: str = DEFAULT_CLICK_ACTION,
) -> MessageEnvelope:
    """Build the envelope for `platform`. Raises ValueError for anything but ios/android."""
    data_dict = stringify_data(data, click_action)
    if platform == Platform.ios:
        return IosEnvelope(title=title, body=body, data=data_dict)
    if platform == Platform.android:
        return AndroidEnvelope(
            title=title,
            body=body,
            data=data_dict,
            channel_id=android_channel_id,
            click_action=click_action,
        )
    raise ValueError(f"Unsupported platform: {platform!r}")
