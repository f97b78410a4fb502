import pytest

from chalicelib.constants.enums import DriverStatus
from chalicelib.users import User, get_user_profile
from chalicelib.utils import exceptions
from test.utils.fixtures import chalice_gateway, create_user, CUSTOMER, DRIVER
from test.utils.request_utils import make_request, make_token, response_body


def test_user_get(chalice_gateway):
    create_user(CUSTOMER, email='customer@test.com', phone='+15550100')

    response = make_request(chalice_gateway, endpoint='/users', method='GET',
                            token=make_token(CUSTOMER.id, CUSTOMER.role.value))

    assert response['statusCode'] == 200
    body = response_body(response)
    assert body['id'] == CUSTOMER.id
    assert body['role'] == 'customer'
    assert body['email'] == 'customer@test.com'
    assert body['phone'] == '+15550100'
    assert 'driver_status' not in body
    assert 'total_earnings' not in body


def test_driver_profile_has_driver_fields():
    create_user(DRIVER)

    profile = get_user_profile(DRIVER).to_ui()
    assert profile['role'] == 'driver'
    assert profile['driver_status'] == DriverStatus.OFFLINE.value
    assert profile['total_deliveries'] == 0
    assert profile['total_earnings'] == 0


def test_unknown_user():
    with pytest.raises(exceptions.UserNotFound):
        get_user_profile(CUSTOMER)


def test_user_can_not_be_created_twice():
    create_user(CUSTOMER)

    with pytest.raises(exceptions.ValidationException):
        create_user(CUSTOMER)


def test_driver_lookup_rejects_other_roles():
    create_user(CUSTOMER)

    with pytest.raises(exceptions.UserNotFound) as error:
        User.init_get_driver(CUSTOMER.id)
    assert error.value.message == 'Driver not found'
