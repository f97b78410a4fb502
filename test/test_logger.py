import json
import logging
from decimal import Decimal
from types import SimpleNamespace

from chalicelib.constants.enums import OrderStatus
from chalicelib.utils import exceptions
from chalicelib.utils.logger import logger, log_exception, set_request_id, CustomJSONEncoder


def logged_record(caplog, error, **kwargs):
    with caplog.at_level(logging.INFO, logger='order_lifecycle'):
        log_exception(error, **kwargs)
    return caplog.records[-1]


def test_request_id_comes_from_lambda_context():
    request = SimpleNamespace(lambda_context=SimpleNamespace(aws_request_id='c6af9ac6-7b61-11e6-9a41-93e8deadbeef'))

    assert set_request_id(request) == '93e8deadbeef'
    assert logger.current_request_id == '93e8deadbeef'
    assert len(set_request_id()) == 12


def test_log_exception_uses_error_level(caplog):
    set_request_id(SimpleNamespace(lambda_context=SimpleNamespace(aws_request_id='req-1')))

    record = logged_record(caplog, exceptions.OrderNotFound('Order not found'), status_code=404)
    assert record.levelname == 'INFO'
    assert record.getMessage().startswith('[1] : ')
    assert json.loads(record.getMessage()[len('[1] : '):])['status_code'] == 404

    assert logged_record(caplog, exceptions.ValidationException('bad')).levelname == 'WARNING'
    assert logged_record(caplog, ValueError('boom'), status_code=500).levelname == 'ERROR'


def test_encoder_handles_decimals_and_enums():
    encoded = json.dumps({'total': Decimal('36.37'), 'status': OrderStatus.PENDING, 'other': object},
                         cls=CustomJSONEncoder)

    assert json.loads(encoded)['total'] == 36.37
    assert json.loads(encoded)['status'] == 'pending'
