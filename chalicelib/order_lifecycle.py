"""
Order status state machine.

    pending -> confirmed -> preparing -> ready_for_pickup -> out_for_delivery -> delivered
    any non terminal state -> cancelled

Every write is conditional on the persisted status still being the one the
validation was made against, a concurrent change is reported as ConflictOnWrite.
Authorization is the caller's job.
"""
from typing import List, Dict, Optional

from chalicelib.constants.enums import (
    OrderStatus, ORDER_TRANSITIONS, CANCELLABLE_ORDER_STATUSES, IN_FLIGHT_OR_DELIVERED_STATUSES
)
from chalicelib.deliveries import Delivery
from chalicelib.utils import db as utils_db, exceptions
from chalicelib.utils.auth import Actor
from chalicelib.utils.data import now_iso
from chalicelib.utils.logger import logger


def check_transition(current_status: OrderStatus, requested_status: OrderStatus) -> None:
    if requested_status not in ORDER_TRANSITIONS[current_status]:
        logger.info(f'check_transition ::: {current_status.value} -> {requested_status.value} is not allowed')
        raise exceptions.InvalidTransition(current_status, requested_status)


def transition(order, requested_status: OrderStatus, actor: Actor):
    """
    Moves the order along one allowed edge.
    Entering delivered stamps actual_delivery_time,
    entering cancelled also cancels a delivery that has not left the restaurant yet
    """
    current_status = order.status
    check_transition(current_status, requested_status)

    now = now_iso()
    set_values = {'status_': requested_status.value, 'date_updated': now, 'updated_by': actor.id}
    if requested_status == OrderStatus.DELIVERED:
        set_values['actual_delivery_time'] = now

    extra_transact_items = []
    if requested_status == OrderStatus.CANCELLED and order.delivery_id:
        extra_transact_items = _delivery_cancellation_items(order)

    _write_status(order, current_status, requested_status, set_values, extra_transact_items)
    logger.info(f'transition ::: order {order.id_} {current_status.value} -> {requested_status.value} '
                f'by {actor.id}')
    return order


def accept(order, actor: Actor):
    if order.status != OrderStatus.PENDING:
        raise exceptions.OnlyPendingOrdersCanBeAcceptedOrRejected(
            order.status, OrderStatus.CONFIRMED, message='Only pending orders can be accepted')
    return transition(order, OrderStatus.CONFIRMED, actor)


def reject(order, actor: Actor):
    if order.status != OrderStatus.PENDING:
        raise exceptions.OnlyPendingOrdersCanBeAcceptedOrRejected(
            order.status, OrderStatus.CANCELLED, message='Only pending orders can be rejected')
    return transition(order, OrderStatus.CANCELLED, actor)


def cancel(order, actor: Actor):
    if order.status in IN_FLIGHT_OR_DELIVERED_STATUSES:
        raise exceptions.CannotCancelInFlightOrDeliveredOrder(order.status)
    if order.status not in CANCELLABLE_ORDER_STATUSES:
        raise exceptions.InvalidTransition(order.status, OrderStatus.CANCELLED)
    return transition(order, OrderStatus.CANCELLED, actor)


def _delivery_cancellation_items(order) -> List[Dict]:
    try:
        delivery = Delivery.init_get_by_id(order.delivery_id)
    except exceptions.DeliveryNotFound:
        logger.warning(f'_delivery_cancellation_items ::: order {order.id_} references missing delivery '
                       f'{order.delivery_id}')
        return []
    return delivery.cancellation_transact_items()


def _write_status(order, expected_status: OrderStatus, requested_status: OrderStatus, set_values: Dict,
                  extra_transact_items: Optional[List[Dict]] = None) -> None:
    expected_values = {'status_': [expected_status.value]}
    try:
        if extra_transact_items:
            utils_db.transact_write([
                utils_db.update_transact_item(order.key(), set_values, expected_values),
                *extra_transact_items
            ])
            attributes = order._get_db_item()
        else:
            attributes = utils_db.conditional_update_db_record(order.key(), set_values, expected_values)
    except exceptions.ConditionalCheckFailed as error:
        raise conflict_error(order, requested_status) from error
    order._reload(attributes)


def conflict_error(order, requested_status) -> exceptions.ConflictOnWrite:
    """ Reports the status the order has now, after losing the race """
    persisted_status = order._get_db_item().get('status_')
    logger.warning(f'conflict_error ::: order {order.id_} was changed concurrently, '
                   f'expected={order.status_}, persisted={persisted_status}')
    return exceptions.ConflictOnWrite(persisted_status, requested_status)
