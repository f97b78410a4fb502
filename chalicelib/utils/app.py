import functools
from typing import Callable

from chalice import Response

from chalicelib.utils import exceptions
from chalicelib.utils.logger import logger, log_exception


def error_response(error: exceptions.ServiceException, msg: str = "", *args, **kwargs):
    status_code = getattr(error, 'STATUS_CODE', 500)
    log_exception(error=error, msg=msg, status_code=status_code, *args, **kwargs)
    body = {
        'success': False,
        'error': error.CODE,
        'message': error.message
    }
    if isinstance(error, exceptions.Forbidden):
        body['reason'] = error.reason
    if isinstance(error, exceptions.InvalidTransition):
        body['current_status'] = error.current_status
        body['requested_status'] = error.requested_status
    return Response(
        body=body,
        status_code=status_code,
        headers={'Content-Type': 'application/json'}
    )


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except exceptions.ServiceException as service_error:
            return error_response(
                error=service_error,
                msg=f'function = {func.__name__} , error = {service_error}')
        except Exception as exception:
            # unexpected failures are logged with the traceback and reported without details
            log_exception(error=exception, msg=f'function = {func.__name__}, error = {exception}', status_code=500)
            return error_response(error=exceptions.InternalError(), msg=f'function = {func.__name__}')
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result
