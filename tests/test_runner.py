# -*- coding: utf-8 -*-
"""
Bot Runner Tests
================

폴링 루프 / 에러 백오프 / 중단 테스트.
"""
import threading

from hps_bot.config import LoopParams, config_from_dict
from hps_bot.execution import BotRunner
from hps_bot.risk import RiskManager


class FakeEngine:
    def __init__(self, outcomes=None, on_step=None):
        self.config = config_from_dict({})
        self.risk = RiskManager(equity=10000)
        self.outcomes = list(outcomes or [])
        self.on_step = on_step
        self.steps = 0

    def step(self):
        self.steps += 1
        if self.on_step:
            self.on_step(self)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        return None


class RecordingEvent(threading.Event):
    """wait() 호출 기록 (실제로 대기하지 않음)"""

    def __init__(self):
        super().__init__()
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        return self.is_set()


LOOP = LoopParams(poll_interval_sec=30.0, error_backoff_sec=60.0)


class TestRunOnce:
    def test_normal_delay(self):
        runner = BotRunner(FakeEngine(), LOOP)
        assert runner.run_once() == 30.0

    def test_error_backoff(self):
        runner = BotRunner(FakeEngine([RuntimeError("boom")]), LOOP)
        assert runner.run_once() == 60.0
        assert runner.errors == 1


class TestRun:
    def test_max_iterations(self):
        engine = FakeEngine()
        runner = BotRunner(engine, LOOP, stop_event=RecordingEvent())
        assert runner.run(max_iterations=3) == 3
        assert engine.steps == 3
        # 마지막 틱 뒤에는 대기하지 않음
        assert runner.stop_event.waits == [30.0, 30.0]

    def test_error_then_recover(self):
        engine = FakeEngine([RuntimeError("network down"), None])
        event = RecordingEvent()
        runner = BotRunner(engine, LOOP, stop_event=event)

        runner.run(max_iterations=3)
        assert event.waits == [60.0, 30.0]
        assert runner.errors == 1

    def test_stop_from_step(self):
        event = RecordingEvent()
        engine = FakeEngine(on_step=lambda e: event.set() if e.steps == 2 else None)
        runner = BotRunner(engine, LOOP, stop_event=event)

        assert runner.run() == 2
        assert runner.stopped

    def test_stopped_before_start(self):
        engine = FakeEngine()
        runner = BotRunner(engine, LOOP)
        runner.stop()
        assert runner.run() == 0
        assert engine.steps == 0

    def test_stop_interrupts_wait(self):
        """다른 스레드에서 stop() 시 대기 즉시 종료"""
        engine = FakeEngine()
        runner = BotRunner(engine, LoopParams(poll_interval_sec=30.0, error_backoff_sec=30.0))

        thread = threading.Thread(target=runner.run)
        thread.start()
        runner.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert engine.steps <= 1
