import json
import os
from copy import deepcopy
from decimal import Decimal
from enum import Enum
from logging import setLoggerClass, Logger, NOTSET, getLogger, StreamHandler, Formatter
from uuid import uuid4

from chalice.app import Request


class CustomLogger(Logger):
    """ Prefixes every message with the id of the request being served """

    def __init__(self, name, level=NOTSET):
        self.current_request_id = None
        super(CustomLogger, self).__init__(name, level)

    def _with_request_id(self, msg):
        return f'[{self.current_request_id}] : {msg}'

    def debug(self, msg, *args, **kwargs):
        super(CustomLogger, self).debug(self._with_request_id(msg), *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        super(CustomLogger, self).info(self._with_request_id(msg), *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        super(CustomLogger, self).warning(self._with_request_id(msg), *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        super(CustomLogger, self).error(self._with_request_id(msg), *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs):
        super(CustomLogger, self).exception(self._with_request_id(msg), *args, exc_info=exc_info, **kwargs)


def conf_logger(level):
    setLoggerClass(CustomLogger)
    order_logger = getLogger('order_lifecycle')
    handler = StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    order_logger.handlers.clear()
    order_logger.addHandler(handler)
    order_logger.setLevel(level)
    return order_logger


logger = conf_logger(os.environ.get('LOG_LEVEL', 'INFO').upper())


def set_request_id(request: Request = None):
    """
    Short request id prefixed to every log line of the request.
    Taken from the lambda context when running on AWS, generated otherwise
    """
    context = getattr(request, 'lambda_context', None)
    aws_request_id = getattr(context, 'aws_request_id', None)
    logger.current_request_id = (aws_request_id or str(uuid4())).split('-')[-1]
    return logger.current_request_id


def log_request(request: Request):
    request_dict = deepcopy(request.to_dict())
    request_dict.get('headers', {}).pop('authorization', None)
    logger.info(f"Request: {json.dumps(request_dict, cls=CustomJSONEncoder)}")
    if request_dict.get('headers', {}).get('content-type', '') == 'application/json':
        logger.debug(f"Request body: {str(request.raw_body)}")


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, value):
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, Enum):
            return value.value
        return str(value)


ERROR_LOG_LEVELS = ('info', 'warning', 'exception')


def log_exception(error: Exception, status_code: int = 400, msg: str = "", *args, **kwargs):
    """ Client errors carry their own LEVEL, anything else is logged with the traceback """
    level = getattr(error, 'LEVEL', 'exception')
    if level not in ERROR_LOG_LEVELS:
        level = 'exception'
    getattr(logger, level)(json.dumps({
        'error': str(error),
        'exception': error.__class__.__name__,
        'message': str(msg),
        'level': level,
        'status_code': status_code,
        'args': args,
        'kwargs': kwargs
    }, cls=CustomJSONEncoder))
