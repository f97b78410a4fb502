import math
import os
from decimal import Decimal
from typing import Tuple, List, Dict, NamedTuple, Optional
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from chalice import Response

from chalicelib import order_lifecycle
from chalicelib.auth import Resource, ensure_can_act, ROLE_NOT_PERMITTED
from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import DEFAULT_TAX_RATE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_IN_OPERANDS, ZERO
from chalicelib.constants.enums import OrderStatus, PaymentStatus, Role, Action
from chalicelib.constants.status_codes import http200, http201
from chalicelib.deliveries import Delivery
from chalicelib.menu_items import MenuItem
from chalicelib.payments import Payment
from chalicelib.restaurants import Restaurant, get_owned_restaurant_ids
from chalicelib.utils import app as utils_app, data as utils_data, db as utils_db, exceptions
from chalicelib.utils.auth import Actor, get_actor, require_actor
from chalicelib.utils.logger import logger

ADDRESS_FIELDS = ('street', 'city', 'state', 'zip_code', 'country', 'latitude', 'longitude', 'instructions')


def tax_rate() -> Decimal:
    return Decimal(os.environ.get('TAX_RATE', DEFAULT_TAX_RATE))


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk
    not_found_exception = exceptions.OrderNotFound

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'subtotal': lambda x: isinstance(x, Decimal) and x >= 0,
        'delivery_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'tax': lambda x: isinstance(x, Decimal) and x >= 0,
        'discount': lambda x: isinstance(x, Decimal) and x >= 0,
        'total': lambda x: isinstance(x, Decimal) and x >= 0,
        'payment_method': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in [status.value for status in OrderStatus],
        'payment_status': lambda x: x in [status.value for status in PaymentStatus],
        'date_updated': lambda x: isinstance(x, str),
        'updated_by': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'driver_id': lambda x: isinstance(x, str),
        'delivery_id': lambda x: isinstance(x, str),
        'delivery_street': lambda x: isinstance(x, str),
        'delivery_city': lambda x: isinstance(x, str),
        'delivery_state': lambda x: isinstance(x, str),
        'delivery_zip_code': lambda x: isinstance(x, str),
        'delivery_country': lambda x: isinstance(x, str),
        'delivery_latitude': lambda x: isinstance(x, Decimal),
        'delivery_longitude': lambda x: isinstance(x, Decimal),
        'delivery_instructions': lambda x: isinstance(x, str),
        'scheduled_for': lambda x: isinstance(x, str),
        'notes': lambda x: isinstance(x, str),
        'actual_delivery_time': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.driver_id: Optional[str] = kwargs.get('driver_id')
        self.delivery_id: Optional[str] = kwargs.get('delivery_id')
        # frozen snapshots, never re-read from the menu
        self.items: List[Dict] = kwargs.get('items', [])
        self.subtotal: Decimal = kwargs.get('subtotal')
        self.delivery_fee: Decimal = kwargs.get('delivery_fee')
        self.tax: Decimal = kwargs.get('tax')
        self.discount: Decimal = kwargs.get('discount', ZERO)
        self.total: Decimal = kwargs.get('total')
        self.status_: str = kwargs.get('status_') or OrderStatus.PENDING.value
        self.payment_method: str = kwargs.get('payment_method')
        self.payment_status: str = kwargs.get('payment_status') or PaymentStatus.PENDING.value
        for field in ADDRESS_FIELDS:
            setattr(self, f'delivery_{field}', kwargs.get(f'delivery_{field}'))
        self.scheduled_for: Optional[str] = kwargs.get('scheduled_for')
        self.notes: Optional[str] = kwargs.get('notes')
        self.actual_delivery_time: Optional[str] = kwargs.get('actual_delivery_time')
        self.date_created: str = kwargs.get('date_created') or utils_data.now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.updated_by: str = kwargs.get('updated_by') or self.customer_id
        self.record_type = 'order'

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.status_)

    @classmethod
    def init_get_by_id(cls, order_id):
        logger.info(f"init_get_by_id ::: order_id={order_id}")
        c = cls(order_id)
        return c._reload(c._get_db_item())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def delivery_address(self) -> str:
        """ 'street, city, state zip', empty parts are skipped """
        state_zip = ' '.join(part for part in (self.delivery_state, self.delivery_zip_code) if part)
        return ', '.join(part for part in (self.delivery_street, self.delivery_city, state_zip) if part)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'restaurant_id': self.restaurant_id,
            'driver_id': self.driver_id,
            'delivery_id': self.delivery_id,
            'items': self.items,
            'subtotal': self.subtotal,
            'delivery_fee': self.delivery_fee,
            'tax': self.tax,
            'discount': self.discount,
            'total': self.total,
            'status_': self.status_,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            **{f'delivery_{field}': getattr(self, f'delivery_{field}') for field in ADDRESS_FIELDS},
            'scheduled_for': self.scheduled_for,
            'notes': self.notes,
            'actual_delivery_time': self.actual_delivery_time,
            'date_created': self.date_created,
            'date_updated': self.date_updated,
            'updated_by': self.updated_by
        }

    def _to_ui(self):
        item = super()._to_ui()
        item['delivery_address'] = self.delivery_address()
        return item


class OrdersPage(NamedTuple):
    orders: List[Order]
    total: int
    page: int
    page_size: int
    total_pages: int

    def to_ui(self) -> Dict:
        return {
            'orders': [order.to_ui() for order in self.orders],
            'pagination': {
                'total': self.total,
                'page': self.page,
                'page_size': self.page_size,
                'total_pages': self.total_pages
            }
        }


def load_order_context(order_id: str, with_delivery: bool = False) -> Tuple[Order, Resource]:
    """
    Loads the order and everything the authorization decision needs.
    Missing records fail with NotFound here, before any authorization check
    """
    order = Order.init_get_by_id(order_id)
    restaurant = Restaurant.init_get_by_id(order.restaurant_id)
    delivery = None
    if with_delivery and order.delivery_id:
        delivery = Delivery.init_get_by_id(order.delivery_id)
    return order, Resource(restaurant=restaurant, order=order, delivery=delivery)


def query_orders(filter_expression=None) -> List[Order]:
    """ Orders matching the filter, newest first """
    order_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.orders_pk),
        filter_expression=filter_expression
    )
    return newest_first([Order(**record) for record in order_db_records])


def newest_first(orders: List[Order]) -> List[Order]:
    return sorted(orders, key=lambda order: (order.date_created, order.id_), reverse=True)


def query_restaurants_orders(restaurant_ids: List[str], status: Optional[OrderStatus] = None) -> List[Order]:
    """ Orders of several restaurants, newest first. IN filters take at most 100 operands """
    orders = []
    for start in range(0, len(restaurant_ids), MAX_IN_OPERANDS):
        chunk = restaurant_ids[start:start + MAX_IN_OPERANDS]
        orders.extend(query_orders(status_filter(status, Attr('restaurant_id').is_in(chunk))))
    return newest_first(orders)


def status_filter(status: Optional[OrderStatus], filter_expression=None):
    if status is None:
        return filter_expression
    status_condition = Attr('status_').eq(status.value)
    return status_condition if filter_expression is None else filter_expression & status_condition


def _parse_positive_int(value, field: str, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as error:
        raise exceptions.ValidationException(f'{field} must be a positive integer') from error
    if number < 1:
        raise exceptions.ValidationException(f'{field} must be a positive integer')
    return number


def _validate_cart(cart) -> Dict:
    if not isinstance(cart, dict):
        raise exceptions.ValidationException('Order request must be an object')
    if not isinstance(cart.get('restaurant_id'), str) or not cart['restaurant_id']:
        raise exceptions.ValidationException('restaurant_id is required')
    items = cart.get('items')
    if not isinstance(items, list) or not items:
        raise exceptions.ValidationException('Order must contain at least one item')
    for item in items:
        if not isinstance(item, dict) or not isinstance(item.get('menu_item_id'), str):
            raise exceptions.ValidationException('Each item must reference a menu_item_id')
        quantity = item.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, (int, Decimal)) or quantity < 1 \
                or quantity != int(quantity):
            raise exceptions.ValidationException('Item quantity must be a positive integer')
    if not isinstance(cart.get('payment_method'), str) or not cart['payment_method']:
        raise exceptions.ValidationException('payment_method is required')
    address = cart.get('delivery_address')
    if not isinstance(address, dict) or not address.get('street'):
        raise exceptions.ValidationException('delivery_address with a street is required')
    return cart


def _address_fields(address: Dict) -> Dict:
    fields = {}
    for field in ADDRESS_FIELDS:
        value = address.get(field)
        if value is None:
            continue
        if field in ('latitude', 'longitude'):
            value = utils_data.to_decimal(value)
            if value is None:
                raise exceptions.ValidationException(f'delivery_address.{field} must be a number')
        else:
            value = str(value)
        fields[f'delivery_{field}'] = value
    return fields


def _build_order_item(item: Dict, restaurant_id: str) -> Dict:
    menu_item = MenuItem.init_get_by_id(item['menu_item_id'], restaurant_id)
    if not menu_item.is_available_right_now():
        raise exceptions.ValidationException(f'Menu item {menu_item.name_} is not available')
    customizations, modifiers_total = menu_item.resolve_customizations(item.get('customizations', []))
    quantity = int(item['quantity'])
    price = utils_data.to_money(menu_item.price + modifiers_total, 'price')
    return {
        'menu_item_id': menu_item.id_,
        'menu_item_name': menu_item.name_,
        'price': price,
        'quantity': quantity,
        'subtotal': utils_data.to_money(price * quantity, 'subtotal'),
        'customizations': customizations
    }


def create_order(customer: Actor, cart: Dict) -> Order:
    """
    Places an order, prices are frozen from the current menu.
    total = subtotal + delivery_fee + tax - discount, computed once here
    """
    customer = require_actor(customer)
    if customer.role != Role.CUSTOMER:
        raise exceptions.Forbidden('Only customers can place orders', ROLE_NOT_PERMITTED)
    cart = _validate_cart(cart)

    restaurant = Restaurant.init_get_by_id(cart['restaurant_id'])
    if restaurant.archived:
        raise exceptions.RestaurantNotFound()
    if not restaurant.is_open:
        raise exceptions.ValidationException('Restaurant is currently closed')

    items = [_build_order_item(item, restaurant.id_) for item in cart['items']]
    subtotal = utils_data.to_money(sum((item['subtotal'] for item in items), ZERO), 'subtotal')
    if subtotal < restaurant.min_order_amount:
        raise exceptions.ValidationException(
            f'Minimum order amount is ${utils_data.format_amount(restaurant.min_order_amount)}')

    tax = utils_data.to_money(subtotal * tax_rate(), 'tax')
    delivery_fee = restaurant.delivery_fee
    discount = ZERO
    order = Order(
        id_=str(uuid4()),
        customer_id=customer.id,
        restaurant_id=restaurant.id_,
        items=items,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        discount=discount,
        total=subtotal + delivery_fee + tax - discount,
        payment_method=cart['payment_method'],
        scheduled_for=cart.get('scheduled_for'),
        notes=cart.get('notes'),
        **_address_fields(cart['delivery_address'])
    )
    payment = Payment(id_=str(uuid4()), order_id=order.id_, amount=order.total, method=order.payment_method)
    utils_db.transact_write([order._put_transact_item(), payment._put_transact_item()])
    logger.info(f'create_order ::: order {order.id_} created, customer={customer.id}, '
                f'restaurant={restaurant.id_}, total={order.total}')
    return order


def get_order(actor: Actor, order_id: str) -> Order:
    actor = require_actor(actor)
    order, resource = load_order_context(order_id, with_delivery=True)
    ensure_can_act(actor, resource, Action.VIEW_ORDER, message='Not authorized to view this order')
    return order


def list_my_orders(actor: Actor, status=None, page=1, page_size=None) -> OrdersPage:
    """
    customer - own orders, restaurant owner - orders of owned restaurants,
    driver - orders assigned to the driver, admin - every order
    """
    actor = require_actor(actor)
    status = utils_data.parse_enum(OrderStatus, status)
    page = _parse_positive_int(page, 'page', 1)
    page_size = min(_parse_positive_int(page_size, 'page_size',
                                        int(os.environ.get('DEFAULT_PAGE_SIZE', DEFAULT_PAGE_SIZE))), MAX_PAGE_SIZE)

    if actor.role == Role.RESTAURANT_OWNER:
        orders = query_restaurants_orders(get_owned_restaurant_ids(actor.id), status)
    else:
        filter_expression = None
        if actor.role == Role.CUSTOMER:
            filter_expression = Attr('customer_id').eq(actor.id)
        elif actor.role == Role.DRIVER:
            filter_expression = Attr('driver_id').eq(actor.id)
        orders = query_orders(status_filter(status, filter_expression))
    start = (page - 1) * page_size
    return OrdersPage(
        orders=orders[start:start + page_size],
        total=len(orders),
        page=page,
        page_size=page_size,
        total_pages=math.ceil(len(orders) / page_size)
    )


def cancel_order(actor: Actor, order_id: str) -> Order:
    actor = require_actor(actor)
    order, resource = load_order_context(order_id, with_delivery=True)
    ensure_can_act(actor, resource, Action.CANCEL_ORDER, message='Not authorized to cancel this order')
    return order_lifecycle.cancel(order, actor)


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_create_order(request) -> Response:
    actor = get_actor(request)
    order = create_order(actor, utils_data.parse_raw_body(request))
    return Response(status_code=http201, body=order.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_order(request, order_id) -> Response:
    order = get_order(get_actor(request), order_id)
    return Response(status_code=http200, body=order.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_list_my_orders(request) -> Response:
    actor = get_actor(request)
    qp = request.query_params or {}
    orders_page = list_my_orders(actor, status=qp.get('status'), page=qp.get('page'), page_size=qp.get('page_size'))
    logger.info(f"endpoint_list_my_orders ::: returning {len(orders_page.orders)} of {orders_page.total} orders")
    return Response(status_code=http200, body=orders_page.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_cancel_order(request, order_id) -> Response:
    order = cancel_order(get_actor(request), order_id)
    return Response(status_code=http200, body=order.to_ui())
