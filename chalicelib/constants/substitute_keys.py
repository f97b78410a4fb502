# DynamoDB reserved words are stored with a trailing underscore
to_db = {
    'id': 'id_',
    'name': 'name_',
    'status': 'status_',
    'role': 'role_'
}

from_db = {
    'id_': 'id',
    'name_': 'name',
    'status_': 'status',
    'role_': 'role',
    'partkey': None,
    'sortkey': None
}
