"""
Fan-out of one notification across platforms.

Each non-empty platform list gets its own TokenDispatcher run; the runs are concurrent and
joined before the result is built. Outcomes stay attributed to the platform whose dispatcher
produced them, so the counters never depend on matching token strings.
"""
import asyncio
import logging
from typing import Mapping

from push_fanout.core.config import settings
from push_fanout.core.dispatcher import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE, ProgressCallback, TokenDispatcher
from push_fanout.core.exceptions import NoRecipientsError
from push_fanout.core.history import DeliveryHistoryRecorder
from push_fanout.core.messages import DEFAULT_ANDROID_CHANNEL_ID, DEFAULT_CLICK_ACTION
from push_fanout.core.results import FanoutResult, NotificationPayload, TokenOutcome
from push_fanout.core.transport import NotificationTransport
from push_fanout.models.enums import Platform, Target

logger = logging.getLogger(__name__)

DISPATCH_UNAVAILABLE = "DISPATCH_UNAVAILABLE"


class FanoutCoordinator:
    def __init__(
        self,
        transports: Mapping[Platform, NotificationTransport],
        recorder: DeliveryHistoryRecorder | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        history_timeout: float = 5.0,
        android_channel_id: str = DEFAULT_ANDROID_CHANNEL_ID,
        click_action: str = DEFAULT_CLICK_ACTION,
    ) -> None:
        self.transports = dict(transports)
        self.recorder = recorder
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.history_timeout = history_timeout
        self.android_channel_id = android_channel_id
        self.click_action = click_action

    @classmethod
    def from_settings(
        cls,
        transports: Mapping[Platform, NotificationTransport],
        recorder: DeliveryHistoryRecorder | None = None,
    ) -> "FanoutCoordinator":
        return cls(
            transports,
            recorder,
            batch_size=settings.PUSH_BATCH_SIZE,
            batch_delay=settings.PUSH_BATCH_DELAY_MS / 1000,
            history_timeout=settings.PUSH_HISTORY_TIMEOUT_SECONDS,
            android_channel_id=settings.ANDROID_CHANNEL_ID,
            click_action=settings.PUSH_CLICK_ACTION,
        )

    def dispatcher_for(self, transport: NotificationTransport) -> TokenDispatcher:
        return TokenDispatcher(
            transport,
            batch_size=self.batch_size,
            batch_delay=self.batch_delay,
            android_channel_id=self.android_channel_id,
            click_action=self.click_action,
        )

    @staticmethod
    def _unavailable(tokens: list[str], platform: Platform, reason: str) -> list[TokenOutcome]:
        return [TokenOutcome.failed(t, platform, DISPATCH_UNAVAILABLE, reason) for t in tokens]

    async def _dispatch_platform(
        self,
        platform: Platform,
        tokens: list[str],
        payload: NotificationPayload,
        on_progress: ProgressCallback | None,
        deadline: float | None,
    ) -> list[TokenOutcome]:
        transport = self.transports.get(platform)
        if transport is None:
            logger.error("No transport configured for %s; %d tokens marked failed", platform.value, len(tokens))
            return self._unavailable(tokens, platform, f"No transport configured for {platform.value}")
        try:
            available = transport.is_available()
        except Exception:
            logger.exception("%s transport availability check failed", platform.value)
            available = False
        if not available:
            logger.error("%s transport unavailable; %d tokens marked failed", platform.value, len(tokens))
            return self._unavailable(tokens, platform, f"{platform.value} transport is unavailable")

        progress = None
        if on_progress is not None:
            progress = lambda completed, total: on_progress(platform, completed, total)  # noqa: E731

        try:
            outcomes = await self.dispatcher_for(transport).dispatch(
                tokens, platform, payload, on_progress=progress, deadline=deadline
            )
        except Exception as e:
            logger.exception("%s dispatch aborted; %d tokens marked failed", platform.value, len(tokens))
            return self._unavailable(tokens, platform, str(e) or type(e).__name__)
        if len(outcomes) != len(tokens):
            # One outcome per token keeps the counters reconcilable; anything else is a dispatcher bug.
            logger.error(
                "%s dispatcher returned %d outcomes for %d tokens", platform.value, len(outcomes), len(tokens)
            )
            return self._unavailable(tokens, platform, "Dispatcher returned an inconsistent outcome set")
        return outcomes

    async def send(
        self,
        payload: NotificationPayload,
        tokens_by_platform: Mapping[Platform, list[str]],
        owner_id: str,
        target: Target = Target.all,
        on_progress=None,
        timeout: float | None = None,
    ) -> FanoutResult:
        """
        Deliver `payload` to every token and return the aggregated result.
        on_progress, if given, is called as on_progress(platform, completed, total).
        timeout (seconds) bounds when new batches may start; in-flight batches always finish.
        Raises NoRecipientsError when there is no token at all; nothing is sent or recorded then.
        """
        lists = {Platform(p): list(tokens or []) for p, tokens in tokens_by_platform.items()}
        active = {p: tokens for p, tokens in lists.items() if tokens}
        if not active:
            raise NoRecipientsError()

        logger.info(
            "Push fan-out started: title=%r owner=%s target=%s tokens=%s",
            payload.title, owner_id, Target(target).value, {p.value: len(t) for p, t in active.items()},
        )
        deadline = asyncio.get_running_loop().time() + timeout if timeout is not None else None
        platforms = list(active)
        results = await asyncio.gather(
            *(self._dispatch_platform(p, active[p], payload, on_progress, deadline) for p in platforms)
        )
        result = FanoutResult.from_platform_outcomes(dict(zip(platforms, results)))
        logger.info(
            "Push fan-out finished: total=%d success=%d failure=%d rate=%.1f%% status=%s",
            result.total_tokens_count, result.total_success_count, result.total_failure_count,
            result.success_rate, result.status.value,
        )

        await self._record(result, payload, owner_id, target)
        return result

    async def _record(self, result: FanoutResult, payload: NotificationPayload, owner_id: str, target: Target) -> None:
        """Best effort: the caller already holds the authoritative result, so a failed audit write is only logged."""
        if self.recorder is None:
            return
        try:
            await asyncio.wait_for(
                self.recorder.record(result, owner_id, payload.title, payload.body, Target(target)),
                timeout=self.history_timeout,
            )
        except Exception:
            logger.exception("Failed to record push history (owner=%s status=%s)", owner_id, result.status.value)
