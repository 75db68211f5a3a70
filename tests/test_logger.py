import json
import logging

import pytest
from colorama import Fore

from utils.log_formatter import CategoryFilter, ColoredFormatter, JsonFormatter
from utils.logger import LogCategory, get_logger, log_context, setup_logging, shutdown_logging


def make_record(msg='hello', **extra):
    record = logging.LogRecord('execution.test', logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def managed_logging(tmp_path):
    path = tmp_path / 'logs' / 'client.log'
    setup_logging({
        'logging': {
            'level': 'DEBUG',
            'console': False,
            'file': True,
            'file_path': str(path),
            'json_file': True,
        }
    }, force=True)
    yield path
    shutdown_logging()


def test_file_handler_writes_json_lines(managed_logging):
    logger = get_logger('tests.json_output')

    logger.log_trade({'operation': 'market_order', 'amount_received': 5}, msg="Got: 5")
    shutdown_logging()

    lines = [json.loads(line) for line in managed_logging.read_text().splitlines()]
    [entry] = [line for line in lines if line['message'] == "Got: 5"]
    assert entry['category'] == LogCategory.ORDERS.value
    assert entry['level'] == 'INFO'
    assert entry['data']['trade_data']['amount_received'] == 5


def test_category_helpers_tag_records(caplog):
    caplog.set_level(logging.DEBUG)
    logger = get_logger('tests.categories')

    logger.log_approval_event({'token': '0xabc', 'spender': '0xdef'})
    logger.log_transaction_event({'function': 'take', 'state': 'submitted'})

    approval, transaction = caplog.records[-2:]
    assert approval.category == 'APPROVALS'
    assert approval.approval_data['spender'] == '0xdef'
    assert approval.getMessage() == 'Approval: 0xabc -> 0xdef'
    assert transaction.category == 'TRANSACTIONS'
    assert transaction.levelno == logging.DEBUG


def test_log_context_tags_and_restores(caplog):
    caplog.set_level(logging.INFO)
    logger = get_logger('tests.context')

    with log_context('order-1') as cid:
        assert cid == 'order-1'
        logger.info("inside")
    logger.info("outside")

    inside, outside = caplog.records[-2:]
    assert inside.correlation_id == 'order-1'
    assert not hasattr(outside, 'correlation_id')
    assert logger.correlation_id is None


def test_adapter_correlation_context_generates_id():
    logger = get_logger('tests.adapter_context')

    with logger.correlation_context() as cid:
        assert logger.correlation_id == cid
        assert len(cid) == 36

    assert logger.correlation_id is None


def test_colored_formatter_without_colors():
    output = ColoredFormatter(use_colors=False).format(make_record())

    assert 'GENERAL | execution.test | hello' in output
    assert '\x1b[' not in output


def test_colored_formatter_highlights_level():
    output = ColoredFormatter(use_colors=True).format(make_record(category='ORDERS'))

    assert f"{Fore.GREEN}INFO" in output
    assert 'ORDERS' in output


def test_json_formatter_moves_extra_into_data():
    entry = json.loads(JsonFormatter().format(make_record(category='ORDERS', correlation_id='c1', offer_id=9)))

    assert entry['category'] == 'ORDERS'
    assert entry['correlation_id'] == 'c1'
    assert entry['data'] == {'offer_id': 9}


def test_category_filter():
    include = CategoryFilter(include_categories=['ORDERS'])
    exclude = CategoryFilter(exclude_categories=['TRANSACTIONS'])

    assert include.filter(make_record(category='ORDERS'))
    assert not include.filter(make_record(category='APPROVALS'))
    assert not include.filter(make_record())
    assert not exclude.filter(make_record(category='TRANSACTIONS'))
    assert exclude.filter(make_record())
