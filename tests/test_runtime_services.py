import asyncio

from src.activities.rate_limiter import IngestionRateLimiter
from src.core.locks import PairLockRegistry
from src.core.request_context import get_request_id, request_context
from src.notifications.service import BonusNotification, dispatch_bonus_notifications
from tests.factories import RecordingNotifier


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestIngestionRateLimiter:
    def test_blocks_after_limit(self):
        limiter = IngestionRateLimiter(max_requests=2, window_seconds=60, clock=FakeClock())

        assert limiter.allow("runner-1")
        assert limiter.allow("runner-1")
        assert not limiter.allow("runner-1")

    def test_keys_are_independent(self):
        limiter = IngestionRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

        assert limiter.allow("runner-1")
        assert limiter.allow("runner-2")

    def test_window_slides(self):
        clock = FakeClock()
        limiter = IngestionRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.allow("runner-1")

        clock.now += 59
        assert not limiter.allow("runner-1")

        clock.now += 1
        assert limiter.allow("runner-1")

    def test_usage(self):
        limiter = IngestionRateLimiter(max_requests=4, window_seconds=900, clock=FakeClock())
        limiter.allow("runner-1")

        usage = limiter.usage("runner-1")

        assert (usage.used, usage.limit, usage.window_seconds) == (1, 4, 900)
        assert usage.percentage == 25.0

    def test_usage_of_unknown_key_is_not_tracked(self):
        limiter = IngestionRateLimiter(max_requests=4, window_seconds=60, clock=FakeClock())

        assert limiter.usage("nobody").used == 0
        assert limiter.can_make_request("nobody")
        assert limiter._requests == {}

    def test_expired_keys_are_dropped(self):
        clock = FakeClock()
        limiter = IngestionRateLimiter(max_requests=4, window_seconds=60, clock=clock)
        limiter.allow("runner-1")

        clock.now += 60

        assert limiter.usage("runner-1").used == 0
        assert "runner-1" not in limiter._requests
        assert limiter.allow("runner-1")

    def test_instances_do_not_share_counters(self):
        first = IngestionRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        second = IngestionRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        first.allow("runner-1")

        assert second.allow("runner-1")


class TestPairLockRegistry:
    async def test_same_pair_is_serialised(self):
        registry = PairLockRegistry()
        order = []

        async def work(name):
            async with registry.hold("evt-1", "runner-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(work("a"), work("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_different_pairs_run_concurrently(self):
        registry = PairLockRegistry()
        inside = asyncio.Event()

        async def first():
            async with registry.hold("evt-1", "runner-1"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def second():
            async with registry.hold("evt-1", "runner-2"):
                inside.set()

        await asyncio.gather(first(), second())

    async def test_released_locks_are_dropped(self):
        registry = PairLockRegistry()

        async with registry.hold("evt-1", "runner-1"):
            assert len(registry) == 1

        assert len(registry) == 0


class TestBonusNotifications:
    notification = BonusNotification(
        user_id="runner-1", event_id="evt-1", message="Sunday x 2 points", final_points=10.0
    )

    async def test_sends_all(self):
        notifier = RecordingNotifier()

        await dispatch_bonus_notifications(notifier, [self.notification, self.notification])

        assert len(notifier.sent) == 2

    async def test_delivery_errors_are_swallowed(self):
        await dispatch_bonus_notifications(RecordingNotifier(fail=True), [self.notification])

    async def test_binds_request_id(self):
        with request_context("outer"):
            await dispatch_bonus_notifications(RecordingNotifier(), [], request_id="req-123")
            assert get_request_id() == "req-123"


class TestRequestContext:
    def test_restores_previous_id(self):
        with request_context("outer"):
            with request_context() as inner:
                assert get_request_id() == inner
                assert inner != "outer"
            assert get_request_id() == "outer"
