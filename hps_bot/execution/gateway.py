"""
Order Execution Gateway
=======================

시장가 주문 게이트웨이.

- PaperGateway: 참조가격으로 전량 체결 (결정적)
- CcxtGateway: ccxt create_market_order (부분 체결/실패 가능)
- create_exchange(): ccxt 거래소 인스턴스 생성 (라이브 모드 자격증명 필수)

submit() 는 실패 시 None 을 반환한다 (예외 전파 없음).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

import ccxt

from ..config import ConfigError, ExchangeParams

logger = logging.getLogger(__name__)

OrderSide = Literal['buy', 'sell']


@dataclass(frozen=True)
class OrderFill:
    """체결 결과 (체결 수량/평균가가 포지션 기준)"""
    filled: float
    average: float
    order_id: str = ""


class OrderGateway(Protocol):
    """주문 게이트웨이 인터페이스"""

    def submit(self, side: OrderSide, amount: float, reference_price: float) -> Optional[OrderFill]:
        ...


class PaperGateway:
    """페이퍼 트레이딩: 참조가격 전량 체결"""

    def __init__(self, symbol: str):
        self.symbol = symbol
        self._seq = 0

    def submit(self, side: OrderSide, amount: float, reference_price: float) -> Optional[OrderFill]:
        self._seq += 1
        logger.info(f"PAPER {side.upper()}: {amount:.8f} {self.symbol} @ {reference_price}")
        return OrderFill(filled=amount, average=reference_price, order_id=f"paper_{self._seq}")


class CcxtGateway:
    """ccxt 라이브 주문"""

    def __init__(self, exchange: ccxt.Exchange, symbol: str):
        self.exchange = exchange
        self.symbol = symbol

    def submit(self, side: OrderSide, amount: float, reference_price: float) -> Optional[OrderFill]:
        try:
            order = self.exchange.create_market_order(self.symbol, side, amount)
        except ccxt.InsufficientFunds as e:
            logger.error(f"Order error: insufficient funds for {side} {amount} {self.symbol}: {e}")
            return None
        except (ccxt.NetworkError, ccxt.ExchangeError) as e:
            logger.error(f"Order error: {type(e).__name__} - {e}")
            return None

        filled = order.get('filled')
        average = order.get('average')
        # 일부 거래소는 시장가 주문 직후 filled/average 를 비워서 반환
        filled = float(amount if filled is None else filled)
        average = float(reference_price if average is None else average)

        if filled <= 0:
            logger.error(f"Order error: {side} {self.symbol} not filled (status={order.get('status')})")
            return None

        logger.info(f"LIVE {side.upper()}: {filled} {self.symbol} @ {average}")
        return OrderFill(filled=filled, average=average, order_id=str(order.get('id') or ""))


def create_exchange(params: ExchangeParams) -> ccxt.Exchange:
    """
    ccxt 거래소 인스턴스 생성

    Raises:
        ConfigError: 지원하지 않는 거래소, 또는 라이브 모드인데 자격증명 없음
    """
    exchange_class = getattr(ccxt, params.exchange_id, None)
    if exchange_class is None:
        raise ConfigError(f"Exchange {params.exchange_id} not supported")

    if not params.dry_run and not params.has_credentials:
        raise ConfigError("API_KEY and API_SECRET required for live trading")

    options = {'enableRateLimit': True}
    if params.has_credentials:
        options['apiKey'] = params.api_key
        options['secret'] = params.api_secret

    exchange = exchange_class(options)
    logger.info(f"Initialized {params.exchange_id} exchange ({'PAPER' if params.dry_run else 'LIVE'} mode)")
    return exchange
