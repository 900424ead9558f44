"""
Firebase Cloud Messaging (FCM) transport for push notifications.
Initializes from service account file path or JSON string. Unavailable if no credentials configured.
One FirebaseTransport is built at startup and injected; it serves both iOS (via APNs config) and Android tokens.
"""
import asyncio
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from push_fanout.core.config import BASE_DIR, settings
from push_fanout.core.exceptions import DispatchUnavailableError, TransportError
from push_fanout.core.messages import AndroidEnvelope, IosEnvelope, MessageEnvelope
from push_fanout.core.results import mask_token

logger = logging.getLogger(__name__)

APP_NAME = "push-fanout"


def load_credentials(json_str: str = "", path: str = "") -> dict | None:
    """Load Firebase credentials from a raw JSON string (preferred) or a service account file path."""
    json_str = (json_str or "").strip()
    if json_str:
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.warning("Firebase credentials JSON invalid: %s", e)
    path = (path or "").strip()
    if path:
        p = Path(path)
        full_path = p if p.is_absolute() else BASE_DIR / path
        if full_path.exists():
            with open(full_path) as f:
                return json.load(f)
        logger.warning("Firebase credentials path not found: %s", full_path)
    return None


def to_fcm_message(token: str, envelope: MessageEnvelope) -> messaging.Message:
    """Map a platform envelope onto the firebase_admin message types."""
    notification = messaging.Notification(title=envelope.title, body=envelope.body)
    if isinstance(envelope, IosEnvelope):
        apns = messaging.APNSConfig(
            headers=dict(envelope.headers),
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(title=envelope.title, body=envelope.body),
                    sound=envelope.sound,
                    badge=envelope.badge,
                )
            ),
        )
        return messaging.Message(token=token, notification=notification, data=dict(envelope.data), apns=apns)
    if isinstance(envelope, AndroidEnvelope):
        android = messaging.AndroidConfig(
            priority=envelope.priority,
            ttl=timedelta(milliseconds=envelope.ttl_ms),
            notification=messaging.AndroidNotification(
                title=envelope.title,
                body=envelope.body,
                sound=envelope.sound,
                priority=envelope.priority,
                channel_id=envelope.channel_id,
                click_action=envelope.click_action,
                icon=envelope.icon,
                color=envelope.color,
                tag=envelope.tag,
            ),
        )
        return messaging.Message(token=token, notification=notification, data=dict(envelope.data), android=android)
    raise ValueError(f"Unsupported envelope: {type(envelope).__name__}")


def to_transport_error(exc: Exception) -> TransportError:
    """Translate SDK exceptions into TransportError codes stored on the token outcome."""
    if isinstance(exc, messaging.UnregisteredError):
        return TransportError("UNREGISTERED", str(exc) or "Device token is no longer registered")
    if isinstance(exc, messaging.QuotaExceededError):
        return TransportError("QUOTA_EXCEEDED", str(exc))
    if isinstance(exc, messaging.SenderIdMismatchError):
        return TransportError("SENDER_ID_MISMATCH", str(exc))
    if isinstance(exc, messaging.ThirdPartyAuthError):
        return TransportError("THIRD_PARTY_AUTH_ERROR", str(exc))
    if isinstance(exc, exceptions.FirebaseError):
        return TransportError(str(exc.code or "UNKNOWN"), str(exc))
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return TransportError("TIMEOUT", "Provider call timed out")
    return TransportError("UNKNOWN", str(exc) or type(exc).__name__)


class FirebaseTransport:
    """NotificationTransport backed by the Firebase Admin SDK."""

    def __init__(
        self,
        credentials_json: str = "",
        credentials_path: str = "",
        project_id: str = "",
        timeout: float = 30.0,
        app_name: str = APP_NAME,
    ) -> None:
        self._credentials_json = credentials_json
        self._credentials_path = credentials_path
        self._project_id = project_id
        self._timeout = timeout
        self._app_name = app_name
        self._app = None
        self._init_failed = False

    @classmethod
    def from_settings(cls) -> "FirebaseTransport":
        return cls(
            credentials_json=settings.FIREBASE_CREDENTIALS_JSON,
            credentials_path=settings.FIREBASE_CREDENTIALS_PATH,
            project_id=settings.FIREBASE_PROJECT_ID,
            timeout=settings.PUSH_SEND_TIMEOUT_SECONDS,
        )

    def _ensure_app(self):
        """Initialize this transport's Firebase app once if credentials are configured."""
        if self._app is not None or self._init_failed:
            return self._app
        cred_dict = load_credentials(self._credentials_json, self._credentials_path)
        if not cred_dict:
            self._init_failed = True
            return None
        options = {"projectId": self._project_id} if self._project_id else None
        try:
            self._app = firebase_admin.get_app(self._app_name)
        except ValueError:
            try:
                self._app = firebase_admin.initialize_app(
                    credentials.Certificate(cred_dict), options=options, name=self._app_name
                )
                logger.info("Firebase Admin SDK initialized (app=%s)", self._app_name)
            except Exception as e:
                logger.exception("Firebase initialization failed: %s", e)
                self._init_failed = True
        return self._app

    def is_available(self) -> bool:
        """Return True if Firebase is configured and initialized."""
        return self._ensure_app() is not None

    async def _call(self, message: messaging.Message, dry_run: bool = False) -> str:
        app = self._ensure_app()
        if app is None:
            raise DispatchUnavailableError("Firebase is not configured")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(messaging.send, message, dry_run, app),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, exceptions.FirebaseError, ValueError) as e:
            raise to_transport_error(e) from e

    async def send(self, token: str, envelope: MessageEnvelope) -> str:
        """Send one envelope to one device token; returns the FCM message id."""
        message_id = await self._call(to_fcm_message(token, envelope))
        logger.debug("FCM sent to token %s", mask_token(token))
        return message_id

    async def send_to_topic(self, topic: str, title: str, body: str, data: dict[str, Any] | None = None) -> str:
        """Send to every device subscribed to `topic`."""
        message = messaging.Message(
            topic=topic,
            notification=messaging.Notification(title=title, body=body),
            data={k: str(v) for k, v in (data or {}).items()},
        )
        return await self._call(message)

    async def validate_token(self, token: str) -> bool:
        """Dry-run a data-only message to check whether FCM still accepts the token."""
        message = messaging.Message(token=token, data={"test": "validation"})
        try:
            await self._call(message, dry_run=True)
            return True
        except TransportError as e:
            logger.info("Token %s failed validation: %s", mask_token(token), e.code)
            return False
