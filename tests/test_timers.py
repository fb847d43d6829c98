#!/usr/bin/env python3
"""Tests for RepeatingTimer."""

import threading

import pytest

from gigledger.timers import RepeatingTimer


class TestRepeatingTimer:
    def test_calls_repeatedly(self):
        calls = []
        done = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) >= 3:
                done.set()

        timer = RepeatingTimer(0.01, callback).start()
        try:
            assert done.wait(2)
        finally:
            timer.cancel()
        assert not timer.running

    def test_failing_callback_keeps_running(self):
        calls = []
        done = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) >= 2:
                done.set()
            raise RuntimeError("boom")

        timer = RepeatingTimer(0.01, callback).start()
        try:
            assert done.wait(2)
        finally:
            timer.cancel()

    def test_cannot_start_twice(self):
        timer = RepeatingTimer(10, lambda: None).start()
        try:
            with pytest.raises(RuntimeError):
                timer.start()
        finally:
            timer.cancel(wait=False)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            RepeatingTimer(0, lambda: None)
