"""
Restaurant facing order operations: listing, accept / reject, status changes.
Drivers assigned to an order reach update_order_status as well, limited to the delivery edges.
"""
from typing import List

from boto3.dynamodb.conditions import Attr
from chalice import Response

from chalicelib import order_lifecycle
from chalicelib.auth import Resource, ensure_can_act
from chalicelib.constants.enums import OrderStatus, Action
from chalicelib.constants.status_codes import http200
from chalicelib.orders import Order, load_order_context, query_orders, status_filter
from chalicelib.restaurants import Restaurant
from chalicelib.utils import app as utils_app, data as utils_data, exceptions
from chalicelib.utils.auth import Actor, get_actor, require_actor
from chalicelib.utils.logger import logger


def list_restaurant_orders(actor: Actor, restaurant_id: str, status=None) -> List[Order]:
    actor = require_actor(actor)
    status = utils_data.parse_enum(OrderStatus, status)
    restaurant = Restaurant.init_get_by_id(restaurant_id)
    ensure_can_act(actor, Resource(restaurant=restaurant), Action.VIEW_RESTAURANT_ORDERS,
                   message='Not authorized to view orders of this restaurant')
    orders = query_orders(status_filter(status, Attr('restaurant_id').eq(restaurant.id_)))
    logger.info(f'list_restaurant_orders ::: restaurant_id={restaurant_id}, status={status}, found={len(orders)}')
    return orders


def accept_order(actor: Actor, order_id: str) -> Order:
    actor = require_actor(actor)
    order, resource = load_order_context(order_id)
    ensure_can_act(actor, resource, Action.ACCEPT_REJECT_ORDER, message='Not authorized to accept this order')
    return order_lifecycle.accept(order, actor)


def reject_order(actor: Actor, order_id: str) -> Order:
    actor = require_actor(actor)
    order, resource = load_order_context(order_id, with_delivery=True)
    ensure_can_act(actor, resource, Action.ACCEPT_REJECT_ORDER, message='Not authorized to reject this order')
    return order_lifecycle.reject(order, actor)


def update_order_status(actor: Actor, order_id: str, new_status) -> Order:
    actor = require_actor(actor)
    if new_status is None:
        raise exceptions.ValidationException('status is required')
    new_status = utils_data.parse_enum(OrderStatus, new_status)
    order, resource = load_order_context(order_id, with_delivery=True)
    ensure_can_act(actor, resource, Action.UPDATE_ORDER_STATUS, transition=(order.status, new_status),
                   message='Not authorized to update this order')
    return order_lifecycle.transition(order, new_status, actor)


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_list_restaurant_orders(request, restaurant_id) -> Response:
    actor = get_actor(request)
    qp = request.query_params or {}
    orders = list_restaurant_orders(actor, restaurant_id, status=qp.get('status'))
    return Response(status_code=http200, body={'orders': [order.to_ui() for order in orders]})


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_accept_order(request, order_id) -> Response:
    order = accept_order(get_actor(request), order_id)
    return Response(status_code=http200, body=order.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_reject_order(request, order_id) -> Response:
    order = reject_order(get_actor(request), order_id)
    return Response(status_code=http200, body=order.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_update_order_status(request, order_id) -> Response:
    actor = get_actor(request)
    new_status = utils_data.parse_raw_body(request).get('status')
    order = update_order_status(actor, order_id, new_status)
    return Response(status_code=http200, body=order.to_ui())
