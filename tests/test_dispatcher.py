import asyncio
import math

import pytest

from conftest import FakeTransport, unregistered
from push_fanout.core.dispatcher import DEADLINE_EXCEEDED, INTERNAL_ERROR, TokenDispatcher
from push_fanout.core.messages import AndroidEnvelope, IosEnvelope
from push_fanout.core.results import NotificationPayload
from push_fanout.models.enums import Platform

PAYLOAD = NotificationPayload(title="오늘의 메뉴", body="문어튀김 추가!", data={"menu_id": 1})


def tokens(n, prefix="tok"):
    return [f"{prefix}-{i:04d}" for i in range(n)]


class SleepSpy:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(seconds)


@pytest.mark.asyncio
async def test_one_failing_token_does_not_abort_the_batch():
    all_tokens = tokens(10)
    transport = FakeTransport(failures={all_tokens[4]: unregistered()})
    dispatcher = TokenDispatcher(transport, batch_size=100, batch_delay=0)

    outcomes = await dispatcher.dispatch(all_tokens, Platform.android, PAYLOAD)

    assert len(outcomes) == 10
    failed = [o for o in outcomes if not o.success]
    assert len(failed) == 1
    assert failed[0].token == all_tokens[4]
    assert failed[0].error_code == "UNREGISTERED"
    assert sorted(transport.tokens_sent) == sorted(all_tokens)


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failed_outcome():
    transport = FakeTransport(failures={"boom": RuntimeError("socket closed")})
    dispatcher = TokenDispatcher(transport, batch_delay=0)

    outcomes = await dispatcher.dispatch(["ok-1", "boom", "ok-2"], Platform.ios, PAYLOAD)

    by_token = {o.token: o for o in outcomes}
    assert by_token["boom"].success is False
    assert by_token["boom"].error_code == INTERNAL_ERROR
    assert by_token["boom"].error_message == "socket closed"
    assert by_token["ok-1"].success and by_token["ok-2"].success


@pytest.mark.asyncio
async def test_batches_are_paced_by_the_inter_batch_delay():
    batch_size, delay = 5, 0.02
    all_tokens = tokens(3 * batch_size + 7)
    transport = FakeTransport()
    sleep = SleepSpy()
    dispatcher = TokenDispatcher(transport, batch_size=batch_size, batch_delay=delay, sleep=sleep)

    outcomes = await dispatcher.dispatch(all_tokens, Platform.android, PAYLOAD)

    expected_batches = math.ceil(len(all_tokens) / batch_size)
    assert len(outcomes) == len(all_tokens)
    # one pause between consecutive batches, none after the last
    assert sleep.calls == [delay] * (expected_batches - 1)

    call_time = {token: at for token, _, at in transport.calls}
    batches = dispatcher.batches(all_tokens)
    assert len(batches) == expected_batches
    for previous, following in zip(batches, batches[1:]):
        last_of_previous = max(call_time[t] for t in previous)
        first_of_following = min(call_time[t] for t in following)
        # small tolerance for event-loop clock granularity
        assert first_of_following >= last_of_previous + delay - 0.002


@pytest.mark.asyncio
async def test_tokens_within_a_batch_are_sent_concurrently():
    transport = FakeTransport(delay=0.01)
    dispatcher = TokenDispatcher(transport, batch_size=4, batch_delay=0)

    await dispatcher.dispatch(tokens(10), Platform.ios, PAYLOAD)

    assert transport.max_in_flight == 4


@pytest.mark.asyncio
async def test_outcomes_follow_batch_order():
    all_tokens = tokens(9)
    dispatcher = TokenDispatcher(FakeTransport(), batch_size=3, batch_delay=0)

    outcomes = await dispatcher.dispatch(all_tokens, Platform.ios, PAYLOAD)

    batch_of = {t: i // 3 for i, t in enumerate(all_tokens)}
    order = [batch_of[o.token] for o in outcomes]
    assert order == sorted(order)


@pytest.mark.asyncio
async def test_progress_is_reported_after_every_outcome():
    seen = []
    dispatcher = TokenDispatcher(FakeTransport(failures={"tok-0001": unregistered()}), batch_size=2, batch_delay=0)

    await dispatcher.dispatch(tokens(5), Platform.android, PAYLOAD, on_progress=lambda done, total: seen.append((done, total)))

    assert seen == [(i, 5) for i in range(1, 6)]


@pytest.mark.asyncio
async def test_failing_progress_callback_is_ignored():
    def explode(done, total):
        raise RuntimeError("ui went away")

    dispatcher = TokenDispatcher(FakeTransport(), batch_size=2, batch_delay=0)

    outcomes = await dispatcher.dispatch(tokens(3), Platform.ios, PAYLOAD, on_progress=explode)

    assert [o.success for o in outcomes] == [True, True, True]


@pytest.mark.asyncio
async def test_envelope_matches_platform():
    transport = FakeTransport()
    dispatcher = TokenDispatcher(transport, batch_delay=0)

    await dispatcher.dispatch(["i"], Platform.ios, PAYLOAD)
    await dispatcher.dispatch(["a"], Platform.android, PAYLOAD)

    envelopes = {token: envelope for token, envelope, _ in transport.calls}
    assert isinstance(envelopes["i"], IosEnvelope)
    assert isinstance(envelopes["a"], AndroidEnvelope)
    assert envelopes["a"].data["menu_id"] == "1"


@pytest.mark.asyncio
async def test_expired_deadline_sends_nothing_but_reports_every_token():
    transport = FakeTransport()
    dispatcher = TokenDispatcher(transport, batch_size=2, batch_delay=0)
    deadline = asyncio.get_running_loop().time() - 1

    outcomes = await dispatcher.dispatch(tokens(5), Platform.ios, PAYLOAD, deadline=deadline)

    assert transport.calls == []
    assert len(outcomes) == 5
    assert {o.error_code for o in outcomes} == {DEADLINE_EXCEEDED}


@pytest.mark.asyncio
async def test_deadline_skips_only_unstarted_batches():
    transport = FakeTransport()
    dispatcher = TokenDispatcher(transport, batch_size=3, batch_delay=0.1)
    deadline = asyncio.get_running_loop().time() + 0.05

    outcomes = await dispatcher.dispatch(tokens(9), Platform.android, PAYLOAD, deadline=deadline)

    assert len(outcomes) == 9
    assert [o.success for o in outcomes[:3]] == [True, True, True]
    assert all(o.error_code == DEADLINE_EXCEEDED for o in outcomes[3:])
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_empty_token_list_returns_no_outcomes():
    sleep = SleepSpy()
    dispatcher = TokenDispatcher(FakeTransport(), sleep=sleep)

    assert await dispatcher.dispatch([], Platform.ios, PAYLOAD) == []
    assert sleep.calls == []


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        TokenDispatcher(FakeTransport(), batch_size=0)
