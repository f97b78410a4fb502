import json
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from enum import Enum
from typing import Any, Optional

from chalicelib.constants.constants import MONEY
from chalicelib.utils import exceptions


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)


def parse_raw_body(chalice_request):
    request_raw_body = chalice_request.raw_body
    if request_raw_body:
        try:
            return fix_values_from_ui(item=json.loads(request_raw_body))
        except ValueError as error:
            raise exceptions.ValidationException('Request body is not a valid JSON') from error
    else:
        return {}


def fix_values_from_ui(item):
    """
    Remove keys with None values and transform float to Decimal
    """
    if not isinstance(item, dict):
        raise exceptions.ValidationException('Request body must be a JSON object')
    item = cleanup_dict(item, [None])
    result = json.dumps(item)
    return json.loads(result, parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """ Remove None fields in dict with. Supports one nesting.  """

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def to_money(value: Any, field: str = 'amount') -> Decimal:
    """ Decimal with two places, rounded half up. Raises ValidationException for non numbers """
    number = to_decimal(value)
    if number is None:
        raise exceptions.ValidationException(f'{field} must be a number')
    try:
        return number.quantize(MONEY, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as error:
        raise exceptions.ValidationException(f'{field} must be a number') from error


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    # NaN and Infinity can not be compared or stored
    return number if number.is_finite() else None


def format_amount(amount: Decimal) -> str:
    """ 50.00 -> '50', 12.50 -> '12.5' """
    return f'{Decimal(amount).normalize():f}'


def now_iso() -> str:
    return datetime.now().isoformat(timespec='seconds')


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as error:
        raise exceptions.ValidationException(f'Wrong datetime format: {value}') from error


def parse_enum(enum_cls, value, field: str = 'status') -> Optional[Enum]:
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as error:
        allowed = ', '.join(member.value for member in enum_cls)
        raise exceptions.ValidationException(f'Invalid {field} {value}, expected one of: {allowed}') from error
