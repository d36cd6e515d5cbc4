"""
Bot Runner
==========

폴링 루프 드라이버.

- 정상 틱 후 poll_interval_sec 대기
- 틱 중 예외 → 로그 후 error_backoff_sec 대기 (고정 지연)
- stop() 또는 stop_event 설정 시 다음 틱 전/대기 중 종료

사용법:
    runner = BotRunner(engine, config.loop)
    runner.run()                    # 무한 루프
    runner.run(max_iterations=1)    # 1회
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from ..config import LoopParams
from .engine import TradingEngine

logger = logging.getLogger(__name__)


class BotRunner:
    """TradingEngine 폴링 루프 (단일 스레드)"""

    def __init__(
        self,
        engine: TradingEngine,
        loop: LoopParams,
        stop_event: Optional[threading.Event] = None,
    ):
        self.engine = engine
        self.loop = loop
        self.stop_event = stop_event or threading.Event()
        self.iterations = 0
        self.errors = 0

    def stop(self) -> None:
        self.stop_event.set()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def run_once(self) -> float:
        """
        틱 1회 실행

        Returns:
            다음 틱까지 대기 시간 (초)
        """
        try:
            self.engine.step()
        except Exception as e:
            self.errors += 1
            logger.exception(f"Bot error: {e}")
            return self.loop.error_backoff_sec
        return self.loop.poll_interval_sec

    def run(self, max_iterations: Optional[int] = None) -> int:
        """
        루프 실행

        Args:
            max_iterations: 최대 틱 수 (None = 무한)

        Returns:
            실행한 틱 수
        """
        logger.info("Starting HPS Quad Divergence Bot...")
        logger.info(f"Config: {self.engine.config.summary()}")

        while not self.stop_event.is_set():
            delay = self.run_once()
            self.iterations += 1

            if max_iterations is not None and self.iterations >= max_iterations:
                break
            # wait() 는 stop 신호 시 즉시 True 반환
            if self.stop_event.wait(delay):
                break

        logger.info(f"Bot stopped after {self.iterations} iterations ({self.errors} errors)")
        logger.info("\n" + self.engine.risk.format_status())
        return self.iterations
