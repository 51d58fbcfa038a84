from __future__ import annotations

import asyncio
from unittest import IsolatedAsyncioTestCase, TestCase, mock

from practice_app.constants.ui_constants import NO_TIME_LIMIT_LABEL
from practice_app.core.services.countdown_timer import CountdownTimer, TickSource, format_clock


class CountdownTimerTests(TestCase):
    def test_expiry_fires_exactly_once(self):
        on_expire = mock.Mock()
        timer = CountdownTimer(on_expire=on_expire)
        timer.start(3)

        for _ in range(3 + 10):
            timer.tick()

        on_expire.assert_called_once_with()
        self.assertTrue(timer.has_expired)
        self.assertFalse(timer.is_running)
        self.assertEqual(timer.remaining(), 0)

    def test_counts_down_one_second_per_tick(self):
        timer = CountdownTimer()
        timer.start(90)

        timer.tick()
        timer.tick()

        self.assertEqual(timer.remaining(), 88)
        self.assertFalse(timer.has_expired)

    def test_zero_or_missing_limit_is_unlimited(self):
        on_expire = mock.Mock()
        for limit in (None, 0):
            with self.subTest(limit=limit):
                timer = CountdownTimer(on_expire=on_expire)
                timer.start(limit)
                for _ in range(5):
                    timer.tick()
                self.assertTrue(timer.is_unlimited)
                self.assertIsNone(timer.remaining())
        on_expire.assert_not_called()

    def test_negative_limit_rejected(self):
        with self.assertRaises(ValueError):
            CountdownTimer().start(-1)

    def test_stopped_timer_ignores_ticks_until_resumed(self):
        timer = CountdownTimer()
        timer.start(10)
        timer.stop()
        timer.tick()
        self.assertEqual(timer.remaining(), 10)

        timer.resume()
        timer.tick()
        self.assertEqual(timer.remaining(), 9)

    def test_expired_timer_does_not_resume(self):
        on_expire = mock.Mock()
        timer = CountdownTimer(on_expire=on_expire)
        timer.start(1)
        timer.tick()

        timer.resume()
        timer.tick()

        self.assertFalse(timer.is_running)
        on_expire.assert_called_once_with()

    def test_reset_restores_limit(self):
        timer = CountdownTimer()
        timer.start(2)
        timer.tick()
        timer.tick()

        timer.reset()

        self.assertEqual(timer.remaining(), 2)
        self.assertFalse(timer.has_expired)
        self.assertFalse(timer.is_running)


class TickSourceTests(IsolatedAsyncioTestCase):
    async def test_fires_repeatedly_until_cancelled(self):
        calls: list[int] = []
        source = TickSource(lambda: calls.append(1), interval_seconds=0.01)

        source.start()
        source.start()
        await asyncio.sleep(0.1)
        source.cancel()
        fired = len(calls)
        await asyncio.sleep(0.05)

        self.assertGreaterEqual(fired, 2)
        self.assertEqual(len(calls), fired)
        self.assertFalse(source.is_active)

    async def test_callback_may_cancel_its_own_source(self):
        calls: list[int] = []

        def callback() -> None:
            calls.append(1)
            source.cancel()

        source = TickSource(callback, interval_seconds=0.01)
        source.start()
        await asyncio.sleep(0.08)

        self.assertEqual(calls, [1])
        self.assertFalse(source.is_active)


class FormatClockTests(TestCase):
    def test_formats_minutes_and_seconds(self):
        self.assertEqual(format_clock(0), "00:00")
        self.assertEqual(format_clock(65), "01:05")
        self.assertEqual(format_clock(3600), "60:00")
        self.assertEqual(format_clock(-4), "00:00")

    def test_untimed_label(self):
        self.assertEqual(format_clock(None), NO_TIME_LIMIT_LABEL)
