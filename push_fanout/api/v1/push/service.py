"""Service layer behind the admin push endpoints."""
import logging

from push_fanout.api.v1.push.schemas import SendPushRequest
from push_fanout.core.config import settings
from push_fanout.core.exceptions import AppException, InvalidPayloadError, NoRecipientsError
from push_fanout.core.fanout import FanoutCoordinator
from push_fanout.core.results import FanoutResult, NotificationPayload
from push_fanout.models.enums import Platform

logger = logging.getLogger(__name__)


async def send_push(coordinator: FanoutCoordinator, data: SendPushRequest, owner_id: str) -> FanoutResult:
    """
    Fan the notification out to the tokens in the request.
    Input errors (blank payload, no tokens) become 400s before anything is sent.
    """
    try:
        payload = NotificationPayload(title=data.title, body=data.body, data=data.data or {})
        return await coordinator.send(
            payload,
            {Platform.ios: data.tokens.ios, Platform.android: data.tokens.android},
            owner_id=owner_id,
            target=data.target,
            timeout=settings.PUSH_FANOUT_TIMEOUT_SECONDS,
        )
    except (InvalidPayloadError, NoRecipientsError) as e:
        logger.info("Push send rejected for owner %s: %s", owner_id, e)
        AppException().raise_400(str(e))


def summary_message(result: FanoutResult) -> str:
    return f"Push notification delivered to {result.total_success_count} of {result.total_tokens_count} devices"


async def validate_device_token(coordinator: FanoutCoordinator, token: str) -> bool:
    transport = coordinator.transports.get(Platform.android) or coordinator.transports.get(Platform.ios)
    validate = getattr(transport, "validate_token", None)
    if validate is None or not transport.is_available():
        AppException().raise_503("Push transport is not configured")
    return await validate(token)
