"""
Driver facing delivery flow and driver availability.

Delivery states: assigned -> picked_up -> in_transit -> delivered,
cancelled from assigned or picked_up. Order status is advanced separately
through the order endpoints.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Dict, Optional
from uuid import uuid4

from chalice import Response

from chalicelib.auth import Resource, ensure_can_act, ROLE_NOT_PERMITTED
from chalicelib.constants.constants import ZERO
from chalicelib.constants.enums import Action, DeliveryStatus, DriverStatus, Role, DRIVER_ASSIGNABLE_STATUSES
from chalicelib.constants.status_codes import http200, http201
from chalicelib.deliveries import Delivery, driver_status_transact_item, get_driver_deliveries
from chalicelib.orders import Order, load_order_context
from chalicelib.users import User
from chalicelib.utils import app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.auth import Actor, get_actor, require_actor
from chalicelib.utils.logger import logger


def require_driver(actor: Optional[Actor]) -> Actor:
    actor = require_actor(actor)
    if actor.role != Role.DRIVER:
        raise exceptions.Forbidden('Only drivers can perform this action', ROLE_NOT_PERMITTED)
    return actor


def _load_delivery_for_update(actor: Actor, delivery_id: str) -> Delivery:
    delivery = Delivery.init_get_by_id(delivery_id)
    ensure_can_act(actor, Resource(delivery=delivery), Action.UPDATE_DELIVERY,
                   message='Not authorized to update this delivery')
    return delivery


def _write_delivery(delivery: Delivery, transact_items: List[Dict], requested_status: DeliveryStatus) -> Delivery:
    try:
        utils_db.transact_write(transact_items)
    except exceptions.ConditionalCheckFailed as error:
        persisted_status = delivery._get_db_item().get('status_')
        logger.warning(f'_write_delivery ::: delivery {delivery.id_} was changed concurrently, '
                       f'expected={delivery.status_}, persisted={persisted_status}')
        raise exceptions.ConflictOnWrite(persisted_status, requested_status) from error
    return delivery._reload(delivery._get_db_item())


def assign_driver(dispatcher: Actor, order_id: str, driver_id: str) -> Delivery:
    """
    Creates the order's delivery, the order status itself does not change.
    The driver earns the order's delivery fee
    """
    dispatcher = require_actor(dispatcher)
    if not isinstance(driver_id, str) or not driver_id:
        raise exceptions.ValidationException('driver_id is required')
    order, resource = load_order_context(order_id)
    ensure_can_act(dispatcher, resource, Action.ASSIGN_DRIVER, message='Not authorized to assign a driver')
    if order.status not in DRIVER_ASSIGNABLE_STATUSES:
        raise exceptions.InvalidTransition(
            order.status, DeliveryStatus.ASSIGNED,
            message=f'Cannot assign driver to order with status {order.status_}')
    if order.delivery_id:
        raise exceptions.ValidationException('Order already has a driver assigned')
    driver = User.init_get_driver(driver_id)

    delivery = Delivery(
        id_=str(uuid4()),
        order_id=order.id_,
        restaurant_id=order.restaurant_id,
        driver_id=driver.id_,
        driver_fee=order.delivery_fee
    )
    order_item = utils_db.update_transact_item(
        key=order.key(),
        set_values={'driver_id': driver.id_, 'delivery_id': delivery.id_,
                    'date_updated': utils_data.now_iso(), 'updated_by': dispatcher.id},
        expected_values={'status_': [status.value for status in DRIVER_ASSIGNABLE_STATUSES]},
        must_not_exist=['delivery_id']
    )
    try:
        utils_db.transact_write([order_item, delivery._put_transact_item()])
    except exceptions.ConditionalCheckFailed as error:
        persisted_status = order._get_db_item().get('status_')
        raise exceptions.ConflictOnWrite(
            persisted_status, DeliveryStatus.ASSIGNED,
            message=f'Order {order.id_} changed while assigning a driver') from error
    logger.info(f'assign_driver ::: order {order.id_} assigned to driver {driver.id_}, delivery {delivery.id_}')
    return delivery


def accept_delivery(driver: Actor, delivery_id: str) -> Delivery:
    driver = require_actor(driver)
    delivery = _load_delivery_for_update(driver, delivery_id)
    return _pick_up(delivery)


def _pick_up(delivery: Delivery) -> Delivery:
    if delivery.status != DeliveryStatus.ASSIGNED:
        raise exceptions.InvalidTransition(delivery.status, DeliveryStatus.PICKED_UP)
    transact_items = [
        delivery.status_transact_item(DeliveryStatus.PICKED_UP, {'pickup_time': utils_data.now_iso()}),
        driver_status_transact_item(delivery.driver_id, DriverStatus.BUSY)
    ]
    delivery = _write_delivery(delivery, transact_items, DeliveryStatus.PICKED_UP)
    logger.info(f'accept_delivery ::: delivery {delivery.id_} picked up by {delivery.driver_id}')
    return delivery


def update_delivery_status(driver: Actor, delivery_id: str, new_status) -> Delivery:
    """
    delivered stamps delivery_time and, in the same transaction, adds one delivery and
    the driver fee to the driver's counters and puts the driver back online
    """
    driver = require_actor(driver)
    if new_status is None:
        raise exceptions.ValidationException('status is required')
    new_status = utils_data.parse_enum(DeliveryStatus, new_status)
    delivery = _load_delivery_for_update(driver, delivery_id)
    delivery.check_transition(new_status)

    if new_status == DeliveryStatus.PICKED_UP:
        return _pick_up(delivery)

    if new_status == DeliveryStatus.DELIVERED:
        transact_items = [
            delivery.status_transact_item(new_status, {'delivery_time': utils_data.now_iso()}),
            driver_status_transact_item(delivery.driver_id, DriverStatus.ONLINE, add_values={
                'total_deliveries': 1,
                'total_earnings': delivery.driver_fee
            })
        ]
    elif new_status == DeliveryStatus.CANCELLED:
        transact_items = [
            *delivery.cancellation_transact_items(),
            # the order can be dispatched again
            utils_db.update_transact_item(
                key=Order(delivery.order_id).key(),
                set_values={'date_updated': utils_data.now_iso(), 'updated_by': driver.id},
                expected_values={'delivery_id': [delivery.id_]},
                remove_fields=['driver_id', 'delivery_id']
            )
        ]
    else:
        transact_items = [delivery.status_transact_item(new_status)]

    delivery = _write_delivery(delivery, transact_items, new_status)
    logger.info(f'update_delivery_status ::: delivery {delivery.id_} is {delivery.status_}')
    return delivery


def get_available_deliveries(driver: Actor) -> List[Delivery]:
    """ Deliveries assigned to the driver and waiting for pickup """
    driver = require_driver(driver)
    return get_driver_deliveries(driver.id, DeliveryStatus.ASSIGNED)


def get_my_deliveries(driver: Actor) -> List[Delivery]:
    driver = require_driver(driver)
    return get_driver_deliveries(driver.id)


def update_driver_status(driver: Actor, driver_status) -> User:
    driver = require_driver(driver)
    if driver_status is None:
        raise exceptions.ValidationException('status is required')
    driver_status = utils_data.parse_enum(DriverStatus, driver_status)
    return User.init_get_driver(driver.id).set_driver_status(driver_status)


def _coordinate(value, field: str, limit: int) -> Decimal:
    number = utils_data.to_decimal(value)
    if number is None or not -limit <= number <= limit:
        raise exceptions.ValidationException(f'{field} must be a number between -{limit} and {limit}')
    return number


def update_driver_location(driver: Actor, lat, lng) -> User:
    driver = require_driver(driver)
    latitude = _coordinate(lat, 'lat', 90)
    longitude = _coordinate(lng, 'lng', 180)
    return User.init_get_driver(driver.id).set_location(latitude, longitude)


def get_driver_earnings(driver: Actor, as_of: Optional[datetime] = None) -> Dict:
    """
    total is the lifetime counter kept on the driver,
    today / week / month sum driver fees of deliveries completed in the window
    """
    driver = require_driver(driver)
    user = User.init_get_driver(driver.id)
    as_of = as_of or datetime.now()
    windows = {
        'today': as_of.replace(hour=0, minute=0, second=0, microsecond=0),
        'week': as_of - timedelta(days=7),
        'month': as_of - timedelta(days=30)
    }
    earnings = {name: ZERO for name in windows}
    for delivery in get_driver_deliveries(driver.id, DeliveryStatus.DELIVERED):
        delivery_time = utils_data.parse_iso(delivery.delivery_time)
        if delivery_time is None or delivery_time > as_of:
            continue
        for name, since in windows.items():
            if delivery_time >= since:
                earnings[name] += delivery.driver_fee or ZERO
    return {
        'total': user.total_earnings,
        'total_deliveries': user.total_deliveries,
        **earnings
    }


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_assign_driver(request, order_id) -> Response:
    actor = get_actor(request)
    driver_id = utils_data.parse_raw_body(request).get('driver_id')
    delivery = assign_driver(actor, order_id, driver_id)
    return Response(status_code=http201, body=delivery.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_available_deliveries(request) -> Response:
    deliveries = get_available_deliveries(get_actor(request))
    return Response(status_code=http200, body={'deliveries': [delivery.to_ui() for delivery in deliveries]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_my_deliveries(request) -> Response:
    deliveries = get_my_deliveries(get_actor(request))
    return Response(status_code=http200, body={'deliveries': [delivery.to_ui() for delivery in deliveries]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_accept_delivery(request, delivery_id) -> Response:
    delivery = accept_delivery(get_actor(request), delivery_id)
    return Response(status_code=http200, body=delivery.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_delivery_status(request, delivery_id) -> Response:
    actor = get_actor(request)
    new_status = utils_data.parse_raw_body(request).get('status')
    delivery = update_delivery_status(actor, delivery_id, new_status)
    return Response(status_code=http200, body=delivery.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_driver_status(request) -> Response:
    actor = get_actor(request)
    driver_status = utils_data.parse_raw_body(request).get('status')
    user = update_driver_status(actor, driver_status)
    return Response(status_code=http200, body={'driver_status': user.driver_status})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_driver_location(request) -> Response:
    actor = get_actor(request)
    body = utils_data.parse_raw_body(request)
    user = update_driver_location(actor, body.get('lat'), body.get('lng'))
    return Response(status_code=http200, body={
        'lat': user.driver_location_lat,
        'lng': user.driver_location_lng,
        'last_location_update': user.last_location_update
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_driver_earnings(request) -> Response:
    earnings = get_driver_earnings(get_actor(request))
    return Response(status_code=http200, body=earnings)
