"""
Batched dispatch of one notification to one platform's token list.

Tokens are sent in batches: every token in a batch concurrently, batches strictly one after
another with a pause in between so the provider is not flooded. A failing token only ever
produces a failed TokenOutcome; it never stops the rest of its batch or later batches.
"""
import asyncio
import logging
from typing import Awaitable, Callable

from push_fanout.core.exceptions import TransportError
from push_fanout.core.messages import (
    DEFAULT_ANDROID_CHANNEL_ID,
    DEFAULT_CLICK_ACTION,
    build_message,
)
from push_fanout.core.results import NotificationPayload, TokenOutcome, mask_token
from push_fanout.core.transport import NotificationTransport
from push_fanout.models.enums import Platform

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_BATCH_DELAY = 0.5

DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
INTERNAL_ERROR = "INTERNAL"

ProgressCallback = Callable[[int, int], None]


class TokenDispatcher:
    def __init__(
        self,
        transport: NotificationTransport,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        android_channel_id: str = DEFAULT_ANDROID_CHANNEL_ID,
        click_action: str = DEFAULT_CLICK_ACTION,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if batch_delay < 0:
            raise ValueError("batch_delay must not be negative")
        self.transport = transport
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.android_channel_id = android_channel_id
        self.click_action = click_action
        self._sleep = sleep

    def batches(self, tokens: list[str]) -> list[list[str]]:
        return [tokens[i:i + self.batch_size] for i in range(0, len(tokens), self.batch_size)]

    async def dispatch(
        self,
        tokens: list[str],
        platform: Platform,
        payload: NotificationPayload,
        on_progress: ProgressCallback | None = None,
        deadline: float | None = None,
    ) -> list[TokenOutcome]:
        """
        Send `payload` to every token and return exactly one outcome per token.
        `deadline` is an absolute event-loop time: batches not started by then are reported as
        failed with DEADLINE_EXCEEDED; a batch already in flight always runs to completion.
        """
        platform = Platform(platform)
        envelope = build_message(
            platform,
            payload.title,
            payload.body,
            payload.data,
            android_channel_id=self.android_channel_id,
            click_action=self.click_action,
        )
        tokens = list(tokens)
        batches = self.batches(tokens)
        total = len(tokens)
        outcomes: list[TokenOutcome] = []
        completed = 0
        loop = asyncio.get_running_loop()

        def report(outcome: TokenOutcome) -> TokenOutcome:
            nonlocal completed
            completed += 1
            if on_progress is not None:
                try:
                    on_progress(completed, total)
                except Exception:
                    logger.exception("Progress callback failed (%s %d/%d)", platform.value, completed, total)
            return outcome

        async def send_one(token: str) -> TokenOutcome:
            try:
                message_id = await self.transport.send(token, envelope)
                outcome = TokenOutcome.delivered(token, platform, message_id)
            except TransportError as e:
                logger.warning(
                    "%s push failed (%s): code=%s error=%s",
                    platform.value.upper(), mask_token(token), e.code, e.message,
                )
                outcome = TokenOutcome.failed(token, platform, e.code, e.message)
            except Exception as e:
                logger.exception("%s push raised unexpectedly (%s)", platform.value.upper(), mask_token(token))
                outcome = TokenOutcome.failed(token, platform, INTERNAL_ERROR, str(e) or type(e).__name__)
            return report(outcome)

        logger.info(
            "%s: dispatching %d tokens in %d batches of up to %d",
            platform.value.upper(), total, len(batches), self.batch_size,
        )
        for number, batch in enumerate(batches, start=1):
            if deadline is not None and loop.time() >= deadline:
                skipped = [token for rest in batches[number - 1:] for token in rest]
                logger.warning(
                    "%s: deadline exceeded before batch %d/%d, %d tokens not sent",
                    platform.value.upper(), number, len(batches), len(skipped),
                )
                outcomes.extend(
                    report(TokenOutcome.failed(t, platform, DEADLINE_EXCEEDED, "Fan-out deadline exceeded before send"))
                    for t in skipped
                )
                break
            logger.debug("%s: batch %d/%d (%d tokens)", platform.value.upper(), number, len(batches), len(batch))
            outcomes.extend(await asyncio.gather(*(send_one(t) for t in batch)))
            if number < len(batches):
                await self._sleep(self.batch_delay)

        logger.info(
            "%s: dispatch finished, %d/%d delivered",
            platform.value.upper(), sum(1 for o in outcomes if o.success), total,
        )
        return outcomes
