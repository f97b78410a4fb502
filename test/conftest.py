import pytest
from moto import mock_aws

from chalicelib.utils import db
from test.utils.fixtures import TEST_TABLE_NAME, TEST_JWT_SECRET


@pytest.fixture(autouse=True)
def dynamodb_table(monkeypatch):
    """ Every test gets a fresh in-memory table """
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'eu-central-1')
    monkeypatch.setenv('AWS_REGION', 'eu-central-1')
    monkeypatch.setenv('GEN_TABLE_NAME', TEST_TABLE_NAME)
    monkeypatch.setenv('JWT_SECRET', TEST_JWT_SECRET)
    monkeypatch.delenv('ENDPOINT_URL', raising=False)
    monkeypatch.delenv('TAX_RATE', raising=False)
    monkeypatch.delenv('DAILY_ORDERS_WINDOW_DAYS', raising=False)
    monkeypatch.delenv('DEFAULT_PAGE_SIZE', raising=False)
    with mock_aws():
        db.reset_gen_table()
        yield db.create_gen_table()
        db.reset_gen_table()
