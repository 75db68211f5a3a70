import pytest

from execution.models import Market, Token
from execution.order_executor import ExecutorConfig, OrderExecutor

from fakes import (
    ACCOUNT,
    BASE_TOKEN,
    EXCHANGE,
    ORDER_ROUTER,
    QUOTE_TOKEN,
    FakeBookProvider,
    FakeChain,
    default_book,
)


@pytest.fixture
def market():
    return Market(
        base=Token(BASE_TOKEN, 18, 'MEGA'),
        quote=Token(QUOTE_TOKEN, 6, 'USDC'),
        tick_spacing=1,
    )


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def book(market):
    return default_book(gasprice=2, offer_gasbase=50_000, market=market)


@pytest.fixture
def book_provider(book):
    return FakeBookProvider(book)


@pytest.fixture
def executor_config():
    return ExecutorConfig(
        exchange_address=EXCHANGE,
        order_router_address=ORDER_ROUTER,
        account=ACCOUNT,
        realtime_timeout=1.0,
    )


@pytest.fixture
def executor(executor_config, chain, book_provider):
    return OrderExecutor(executor_config, chain, book_provider=book_provider)
