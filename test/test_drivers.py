from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from chalicelib.auth import NOT_OWNER, ROLE_NOT_PERMITTED
from chalicelib.constants.enums import OrderStatus, DeliveryStatus, DriverStatus
from chalicelib.deliveries import Delivery, driver_status_transact_item
from chalicelib.drivers import _write_delivery, assign_driver, accept_delivery, update_delivery_status, get_available_deliveries, \
    get_my_deliveries, update_driver_status, update_driver_location, get_driver_earnings
from chalicelib.orders import Order
from chalicelib.users import User
from chalicelib.utils import exceptions
from test.utils.fixtures import marketplace, place_order, force_order_status, CUSTOMER, OWNER, OTHER_OWNER, \
    DRIVER, OTHER_DRIVER, ADMIN


def ready_order() -> Order:
    return force_order_status(place_order(), OrderStatus.READY_FOR_PICKUP)


def test_assign_driver(marketplace):
    order = force_order_status(place_order(), OrderStatus.CONFIRMED)

    delivery = assign_driver(OWNER, order.id_, DRIVER.id)
    assert delivery.status == DeliveryStatus.ASSIGNED
    assert delivery.driver_id == DRIVER.id
    assert delivery.order_id == order.id_
    assert delivery.driver_fee == Decimal('3.99')

    stored = Order.init_get_by_id(order.id_)
    assert stored.driver_id == DRIVER.id
    assert stored.delivery_id == delivery.id_
    assert stored.status == OrderStatus.CONFIRMED


def test_assign_driver_requires_dispatchable_order(marketplace):
    order = place_order()

    with pytest.raises(exceptions.InvalidTransition) as error:
        assign_driver(OWNER, order.id_, DRIVER.id)
    assert error.value.message == 'Cannot assign driver to order with status pending'


def test_assign_driver_only_once(marketplace):
    order = ready_order()
    assign_driver(ADMIN, order.id_, DRIVER.id)

    with pytest.raises(exceptions.ValidationException) as error:
        assign_driver(OWNER, order.id_, OTHER_DRIVER.id)
    assert error.value.message == 'Order already has a driver assigned'


def test_assign_driver_requires_a_driver(marketplace):
    order = ready_order()

    with pytest.raises(exceptions.UserNotFound) as error:
        assign_driver(OWNER, order.id_, CUSTOMER.id)
    assert error.value.message == 'Driver not found'

    with pytest.raises(exceptions.UserNotFound):
        assign_driver(OWNER, order.id_, 'driver-404')

    with pytest.raises(exceptions.ValidationException):
        assign_driver(OWNER, order.id_, None)


def test_assign_driver_authorization(marketplace):
    order = ready_order()

    with pytest.raises(exceptions.Forbidden) as error:
        assign_driver(OTHER_OWNER, order.id_, DRIVER.id)
    assert error.value.reason == NOT_OWNER

    with pytest.raises(exceptions.Forbidden) as error:
        assign_driver(DRIVER, order.id_, DRIVER.id)
    assert error.value.reason == ROLE_NOT_PERMITTED


def test_accept_delivery_makes_driver_busy(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)

    picked_up = accept_delivery(DRIVER, delivery.id_)
    assert picked_up.status == DeliveryStatus.PICKED_UP
    assert picked_up.pickup_time is not None
    assert User.init_get_by_id(DRIVER.id).driver_status == DriverStatus.BUSY.value

    with pytest.raises(exceptions.InvalidTransition):
        accept_delivery(DRIVER, delivery.id_)


def test_only_assigned_driver_updates_delivery(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)

    with pytest.raises(exceptions.Forbidden) as error:
        accept_delivery(OTHER_DRIVER, delivery.id_)
    assert error.value.reason == NOT_OWNER

    with pytest.raises(exceptions.Forbidden) as error:
        update_delivery_status(OWNER, delivery.id_, 'picked_up')
    assert error.value.reason == ROLE_NOT_PERMITTED

    with pytest.raises(exceptions.DeliveryNotFound):
        accept_delivery(DRIVER, 'delivery-404')


def test_delivered_updates_driver_counters(marketplace):
    order = ready_order()
    delivery = assign_driver(OWNER, order.id_, DRIVER.id)

    update_delivery_status(DRIVER, delivery.id_, 'picked_up')
    assert update_delivery_status(DRIVER, delivery.id_, 'in_transit').status == DeliveryStatus.IN_TRANSIT
    delivered = update_delivery_status(DRIVER, delivery.id_, 'delivered')

    assert delivered.status == DeliveryStatus.DELIVERED
    assert delivered.delivery_time is not None
    driver = User.init_get_by_id(DRIVER.id)
    assert driver.total_deliveries == 1
    assert driver.total_earnings == Decimal('3.99')
    assert driver.driver_status == DriverStatus.ONLINE.value
    # the order is advanced through its own endpoints
    assert Order.init_get_by_id(order.id_).status == OrderStatus.READY_FOR_PICKUP


def test_illegal_delivery_transitions(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)

    with pytest.raises(exceptions.InvalidTransition):
        update_delivery_status(DRIVER, delivery.id_, 'delivered')
    with pytest.raises(exceptions.ValidationException):
        update_delivery_status(DRIVER, delivery.id_, 'lost')
    with pytest.raises(exceptions.ValidationException):
        update_delivery_status(DRIVER, delivery.id_, None)

    for status in ('picked_up', 'in_transit'):
        update_delivery_status(DRIVER, delivery.id_, status)
    with pytest.raises(exceptions.InvalidTransition) as error:
        update_delivery_status(DRIVER, delivery.id_, 'cancelled')
    assert error.value.current_status == 'in_transit'


def test_driver_cancellation_reopens_order(marketplace):
    order = ready_order()
    delivery = assign_driver(OWNER, order.id_, DRIVER.id)
    accept_delivery(DRIVER, delivery.id_)

    cancelled = update_delivery_status(DRIVER, delivery.id_, 'cancelled')
    assert cancelled.status == DeliveryStatus.CANCELLED
    assert User.init_get_by_id(DRIVER.id).driver_status == DriverStatus.ONLINE.value

    stored = Order.init_get_by_id(order.id_)
    assert stored.driver_id is None
    assert stored.delivery_id is None

    assert assign_driver(OWNER, order.id_, OTHER_DRIVER.id).driver_id == OTHER_DRIVER.id


def test_available_and_own_deliveries(marketplace):
    first = assign_driver(OWNER, ready_order().id_, DRIVER.id)
    second = assign_driver(OWNER, ready_order().id_, DRIVER.id)
    assign_driver(OWNER, ready_order().id_, OTHER_DRIVER.id)

    assert {delivery.id_ for delivery in get_available_deliveries(DRIVER)} == {first.id_, second.id_}

    accept_delivery(DRIVER, first.id_)
    assert [delivery.id_ for delivery in get_available_deliveries(DRIVER)] == [second.id_]
    assert {delivery.id_ for delivery in get_my_deliveries(DRIVER)} == {first.id_, second.id_}
    assert len(get_my_deliveries(OTHER_DRIVER)) == 1

    with pytest.raises(exceptions.Forbidden) as error:
        get_my_deliveries(CUSTOMER)
    assert error.value.reason == ROLE_NOT_PERMITTED


def test_update_driver_status(marketplace):
    assert User.init_get_by_id(DRIVER.id).driver_status == DriverStatus.OFFLINE.value

    assert update_driver_status(DRIVER, 'online').driver_status == DriverStatus.ONLINE.value
    assert User.init_get_by_id(DRIVER.id).driver_status == DriverStatus.ONLINE.value

    with pytest.raises(exceptions.ValidationException):
        update_driver_status(DRIVER, 'sleeping')
    with pytest.raises(exceptions.ValidationException):
        update_driver_status(DRIVER, None)
    with pytest.raises(exceptions.Forbidden):
        update_driver_status(OWNER, 'online')


def test_update_driver_location(marketplace):
    driver = update_driver_location(DRIVER, Decimal('52.52'), '13.405')
    assert driver.driver_location_lat == Decimal('52.52')
    assert driver.driver_location_lng == Decimal('13.405')
    assert driver.last_location_update is not None

    for lat, lng in ((Decimal('90.5'), Decimal('0')), (Decimal('0'), Decimal('-180.1')), ('north', '0'),
                     (None, '0'), ('NaN', '10'), ('10', 'Infinity'), (Decimal('-Infinity'), '0')):
        with pytest.raises(exceptions.ValidationException):
            update_driver_location(DRIVER, lat, lng)


def test_driver_earnings(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)
    for status in ('picked_up', 'in_transit', 'delivered'):
        update_delivery_status(DRIVER, delivery.id_, status)
    assign_driver(OWNER, ready_order().id_, DRIVER.id)

    earnings = get_driver_earnings(DRIVER)
    assert earnings['total'] == Decimal('3.99')
    assert earnings['total_deliveries'] == 1
    assert earnings['today'] == Decimal('3.99')
    assert earnings['week'] == Decimal('3.99')
    assert earnings['month'] == Decimal('3.99')

    later = get_driver_earnings(DRIVER, as_of=datetime.now() + timedelta(days=10))
    assert later['today'] == Decimal('0')
    assert later['week'] == Decimal('0')
    assert later['month'] == Decimal('3.99')
    assert later['total'] == Decimal('3.99')


def test_new_driver_has_no_earnings(marketplace):
    earnings = get_driver_earnings(OTHER_DRIVER)

    assert earnings == {'total': Decimal('0'), 'total_deliveries': 0, 'today': Decimal('0'),
                        'week': Decimal('0'), 'month': Decimal('0')}


def test_delivery_is_persisted(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)

    stored = Delivery.init_get_by_id(delivery.id_)
    assert stored.to_ui()['status'] == 'assigned'
    assert stored.to_ui()['driver_fee'] == Decimal('3.99')


def test_delivered_is_counted_once(marketplace):
    delivery = assign_driver(OWNER, ready_order().id_, DRIVER.id)
    for status in ('picked_up', 'in_transit'):
        update_delivery_status(DRIVER, delivery.id_, status)
    stale = Delivery.init_get_by_id(delivery.id_)
    update_delivery_status(DRIVER, delivery.id_, 'delivered')

    with pytest.raises(exceptions.InvalidTransition):
        update_delivery_status(DRIVER, delivery.id_, 'delivered')

    replay = [
        stale.status_transact_item(DeliveryStatus.DELIVERED, {'delivery_time': '2024-06-15T12:00:00'}),
        driver_status_transact_item(DRIVER.id, DriverStatus.ONLINE,
                                    add_values={'total_deliveries': 1, 'total_earnings': stale.driver_fee})
    ]
    with pytest.raises(exceptions.ConflictOnWrite):
        _write_delivery(stale, replay, DeliveryStatus.DELIVERED)

    driver = User.init_get_by_id(DRIVER.id)
    assert driver.total_deliveries == 1
    assert driver.total_earnings == Decimal('3.99')
    assert driver.driver_status == DriverStatus.ONLINE.value
