import functools
import os
from typing import Dict, List, Tuple, Optional

from botocore.exceptions import ClientError, BotoCoreError

from chalicelib.constants.constants import DEFAULT_TABLE_NAME
from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import dynamodb_resource
from chalicelib.utils.logger import logger, log_exception

need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item', 'query', 'transact_write_items')
conditional_failure_codes = ('ConditionalCheckFailedException', 'TransactionCanceledException')

_DB = {}


def _is_conditional_failure(error: ClientError) -> bool:
    code = error.response.get('Error', {}).get('Code')
    if code == 'ConditionalCheckFailedException':
        return True
    if code == 'TransactionCanceledException':
        reasons = [reason.get('Code') for reason in error.response.get('CancellationReasons', [])]
        return 'ConditionalCheckFailed' in reasons or 'ConditionalCheckFailed' in str(error)
    return False


def safe_db_call(func):
    """
        should be used for any atomic
        get/put/update/query/transaction call in the code.
        A failed condition is reported as ConditionalCheckFailed,
        any other store failure is logged and hidden behind InternalError
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        if func.__name__ in need_return_capacity:
            kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})
        try:
            result = func(*args, **kwargs)
        except ClientError as error:
            if _is_conditional_failure(error):
                logger.info(f'{func.__name__}:: condition check failed')
                raise exceptions.ConditionalCheckFailed(str(error)) from error
            log_exception(error, status_code=500, msg=f'Got exception while trying to {func.__name__}: ')
            raise exceptions.InternalError() from error
        except BotoCoreError as error:
            log_exception(error, status_code=500, msg=f'Got exception while trying to {func.__name__}: ')
            raise exceptions.InternalError() from error
        logger.info(f'{func.__name__}:: SUCCESS')
        return result

    return wrapper


def gen_table_name() -> str:
    return os.environ.get('GEN_TABLE_NAME', DEFAULT_TABLE_NAME)


def get_table(table_name: str):
    gl_table = _DB.get(table_name)
    if gl_table is None:
        gl_table = dynamodb_resource().Table(table_name)

        gl_table.put_item = safe_db_call(gl_table.put_item)
        gl_table.get_item = safe_db_call(gl_table.get_item)
        gl_table.update_item = safe_db_call(gl_table.update_item)
        gl_table.delete_item = safe_db_call(gl_table.delete_item)
        gl_table.query = safe_db_call(gl_table.query)
        _DB[table_name] = gl_table

    return gl_table


def get_gen_table():
    return get_table(gen_table_name())


def reset_gen_table() -> None:
    """ Drops cached table handles, e.g. when the endpoint or credentials change """
    _DB.clear()


def create_gen_table():
    """ Creates the single table used by the service. Intended for local and test setups """
    resource = dynamodb_resource()
    table = resource.create_table(
        TableName=gen_table_name(),
        KeySchema=[
            {'AttributeName': 'partkey', 'KeyType': 'HASH'},
            {'AttributeName': 'sortkey', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'partkey', 'AttributeType': 'S'},
            {'AttributeName': 'sortkey', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )
    table.wait_until_exists()
    logger.info(f'create_gen_table ::: table {gen_table_name()} created')
    return get_gen_table()


def put_db_record(item: dict, table=get_gen_table, only_if_new: bool = False):
    kwargs = {'Item': item}
    if only_if_new:
        kwargs['ConditionExpression'] = 'attribute_not_exists(partkey)'
    table().put_item(**kwargs)


def build_conditional_update(set_values: dict, expected_values: Optional[Dict[str, list]] = None,
                             add_values: Optional[dict] = None, must_not_exist: Optional[list] = None,
                             remove_fields: Optional[list] = None) -> dict:
    """
    Builds UpdateExpression / ConditionExpression parameters.
    expected_values maps an attribute to the values it may currently hold,
    the write only happens if the persisted attribute is one of them.
    All names go through placeholders so reserved words are safe
    """
    names, values = {}, {}
    set_parts, add_parts, remove_parts, condition_parts = [], [], [], ['attribute_exists(partkey)']

    for i, (field, value) in enumerate(set_values.items()):
        names[f'#s{i}'] = field
        values[f':s{i}'] = value
        set_parts.append(f'#s{i} = :s{i}')

    for i, (field, value) in enumerate((add_values or {}).items()):
        names[f'#a{i}'] = field
        values[f':a{i}'] = value
        add_parts.append(f'#a{i} :a{i}')

    for i, field in enumerate(remove_fields or []):
        names[f'#r{i}'] = field
        remove_parts.append(f'#r{i}')

    for i, (field, allowed) in enumerate((expected_values or {}).items()):
        names[f'#c{i}'] = field
        placeholders = []
        for j, value in enumerate(allowed):
            values[f':c{i}_{j}'] = value
            placeholders.append(f':c{i}_{j}')
        condition_parts.append(f'#c{i} IN ({", ".join(placeholders)})')

    for i, field in enumerate(must_not_exist or []):
        names[f'#n{i}'] = field
        condition_parts.append(f'attribute_not_exists(#n{i})')

    update_expression = ''
    if set_parts:
        update_expression += f'SET {", ".join(set_parts)}'
    if add_parts:
        update_expression += f' ADD {", ".join(add_parts)}'
    if remove_parts:
        update_expression += f' REMOVE {", ".join(remove_parts)}'

    params = {
        'UpdateExpression': update_expression.strip(),
        'ConditionExpression': ' AND '.join(condition_parts),
        'ExpressionAttributeNames': names
    }
    if values:
        params['ExpressionAttributeValues'] = values
    return params


def conditional_update_db_record(key: dict, set_values: dict, expected_values: Optional[Dict[str, list]] = None,
                                 add_values: Optional[dict] = None, must_not_exist: Optional[list] = None,
                                 remove_fields: Optional[list] = None, table=get_gen_table) -> Dict:
    """
    Atomic "update only if current value is in the expected set".
    Raises ConditionalCheckFailed when the persisted record moved on
    """
    params = build_conditional_update(set_values, expected_values, add_values, must_not_exist, remove_fields)
    response = table().update_item(Key=key, ReturnValues='ALL_NEW', **params)
    return response.get('Attributes', {})


def update_transact_item(key: dict, set_values: dict, expected_values: Optional[Dict[str, list]] = None,
                         add_values: Optional[dict] = None, must_not_exist: Optional[list] = None,
                         remove_fields: Optional[list] = None) -> Dict:
    return {'Update': {
        'TableName': gen_table_name(),
        'Key': key,
        **build_conditional_update(set_values, expected_values, add_values, must_not_exist, remove_fields)
    }}


def put_transact_item(item: dict) -> Dict:
    return {'Put': {
        'TableName': gen_table_name(),
        'Item': item,
        'ConditionExpression': 'attribute_not_exists(partkey)'
    }}


def transact_write(transact_items: List[Dict], table=get_gen_table):
    """
    All-or-nothing write of several records.
    The resource's client keeps the high-level (python types) interface
    """
    client = table().meta.client
    safe_db_call(client.transact_write_items)(TransactItems=transact_items)


def get_db_item(partkey, sortkey, table=get_gen_table):
    result = table().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        },
        ConsistentRead=True
    )

    if result.__contains__('Item'):
        return result['Item']
    else:
        logger.info(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
        raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')


def query_items_paginated(
        key_condition_expression,
        filter_expression=None,
        projection_expression=None,
        table=get_gen_table,
        index_name=None,
        expr_attr_names=None,
        limit=None,
        start_key=None
) -> Tuple[List[Dict], Optional[Dict]]:
    kwargs = {'KeyConditionExpression': key_condition_expression}
    if filter_expression:
        kwargs.update({'FilterExpression': filter_expression})

    if projection_expression:
        kwargs.update({'ProjectionExpression': projection_expression})

    if expr_attr_names:
        kwargs.update({'ExpressionAttributeNames': expr_attr_names})

    if limit:
        kwargs.update({'Limit': int(limit)})

    if index_name:
        kwargs.update({'IndexName': index_name})
    else:
        kwargs.update({'ConsistentRead': True})

    if start_key:
        kwargs.update({'ExclusiveStartKey': start_key})

    resp = table().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, projection_expression=None,
                      table=get_gen_table, index_name=None, expr_attr_names=None):
    """ This method shall be used whenever you think the query will
        return more than 1mb of data at once"""
    all_items = []
    items, last_evaluated_key = query_items_paginated(
        key_condition_expression,
        filter_expression=filter_expression,
        projection_expression=projection_expression,
        table=table,
        index_name=index_name,
        expr_attr_names=expr_attr_names
    )
    all_items.extend(items)

    while last_evaluated_key is not None:
        items, last_evaluated_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            projection_expression=projection_expression,
            table=table,
            index_name=index_name,
            expr_attr_names=expr_attr_names,
            start_key=last_evaluated_key
        )
        all_items.extend(items)

    return all_items
