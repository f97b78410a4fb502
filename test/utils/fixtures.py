from decimal import Decimal
from typing import List, Dict

import pytest
from chalice.config import Config
from chalice.local import LocalGateway

from chalicelib.constants.enums import Role, OrderStatus
from chalicelib.menu_items import MenuItem
from chalicelib.orders import Order, create_order
from chalicelib.restaurants import Restaurant
from chalicelib.users import User
from chalicelib.utils import db
from chalicelib.utils.auth import Actor

TEST_TABLE_NAME = 'restaurant-order-lifecycle-test'
TEST_JWT_SECRET = 'test-jwt-secret-long-enough-for-hs256-signing'

CUSTOMER = Actor('customer-1', Role.CUSTOMER)
OTHER_CUSTOMER = Actor('customer-2', Role.CUSTOMER)
OWNER = Actor('owner-1', Role.RESTAURANT_OWNER)
OTHER_OWNER = Actor('owner-2', Role.RESTAURANT_OWNER)
DRIVER = Actor('driver-1', Role.DRIVER)
OTHER_DRIVER = Actor('driver-2', Role.DRIVER)
ADMIN = Actor('admin-1', Role.ADMIN)

RESTAURANT_ID = 'rest-1'
OTHER_RESTAURANT_ID = 'rest-2'
BURGER_ID = 'item-1'
FRIES_ID = 'item-2'
SOLD_OUT_ID = 'item-3'


def local_gateway() -> LocalGateway:
    from app import app
    return LocalGateway(app, Config())


@pytest.fixture(scope='session')
def chalice_gateway() -> LocalGateway:
    yield local_gateway()


def create_user(actor: Actor, **kwargs) -> User:
    return User(id_=actor.id, role_=actor.role.value, name_=f'{actor.role.value} {actor.id}', **kwargs).create()


def create_restaurant(restaurant_id: str = RESTAURANT_ID, owner_id: str = OWNER.id, **kwargs) -> Restaurant:
    params = {'name_': 'Test Restaurant', 'is_open': True, 'min_order_amount': Decimal('10'),
              'delivery_fee': Decimal('3.99'), **kwargs}
    return Restaurant(id_=restaurant_id, owner_id=owner_id, **params).create()


def create_menu_item(menu_item_id: str, name: str, price: str, restaurant_id: str = RESTAURANT_ID,
                     **kwargs) -> MenuItem:
    return MenuItem(id_=menu_item_id, restaurant_id=restaurant_id, name_=name, price=Decimal(price),
                    **kwargs).create()


@pytest.fixture
def marketplace():
    """ Users of every role, one restaurant with a small menu and a second restaurant """
    for actor in (CUSTOMER, OTHER_CUSTOMER, OWNER, OTHER_OWNER, DRIVER, OTHER_DRIVER, ADMIN):
        create_user(actor)
    create_restaurant()
    create_restaurant(OTHER_RESTAURANT_ID, OTHER_OWNER.id, name_='Other Restaurant')
    create_menu_item(BURGER_ID, 'Burger', '12.99', image='burger.jpg', customizations=[{
        'id': 'custom-1',
        'name': 'Size',
        'options': [
            {'id': 'opt-1', 'name': 'Large', 'price_modifier': Decimal('2.00')},
            {'id': 'opt-2', 'name': 'Regular', 'price_modifier': Decimal('0')}
        ]
    }])
    create_menu_item(FRIES_ID, 'Fries', '4.50')
    create_menu_item(SOLD_OUT_ID, 'Soup of the day', '6.00', is_available=False)
    return RESTAURANT_ID


def cart(items: List[Dict] = None, restaurant_id: str = RESTAURANT_ID) -> Dict:
    return {
        'restaurant_id': restaurant_id,
        'items': items or [{
            'menu_item_id': BURGER_ID,
            'quantity': 2,
            'customizations': [{'customization_id': 'custom-1', 'option_id': 'opt-1'}]
        }],
        'delivery_address': {
            'street': '123 Main St',
            'city': 'Springfield',
            'state': 'IL',
            'zip_code': '62701',
            'country': 'USA',
            'latitude': Decimal('37.7749'),
            'longitude': Decimal('-122.4194'),
            'instructions': 'Leave at door'
        },
        'payment_method': 'credit_card',
        'notes': 'No onions please'
    }


def place_order(customer: Actor = CUSTOMER, items: List[Dict] = None) -> Order:
    return create_order(customer, cart(items))


def force_order_status(order: Order, status: OrderStatus) -> Order:
    """ Puts the stored order into the given status, bypassing the state machine """
    db.conditional_update_db_record(order.key(), {'status_': status.value})
    return Order.init_get_by_id(order.id_)


def store_order(order_id: str, status: OrderStatus, date_created: str, items: List[Dict],
                total: str, restaurant_id: str = RESTAURANT_ID) -> Order:
    """ Historical order written straight to the table """
    subtotal = sum((Decimal(item['subtotal']) for item in items), Decimal('0.00'))
    order = Order(
        id_=order_id,
        customer_id=CUSTOMER.id,
        restaurant_id=restaurant_id,
        items=[{**item, 'subtotal': Decimal(item['subtotal']), 'price': Decimal(item.get('price', '1.00'))}
               for item in items],
        subtotal=subtotal,
        delivery_fee=Decimal('0.00'),
        tax=Decimal('0.00'),
        discount=Decimal('0.00'),
        total=Decimal(total),
        status_=status.value,
        payment_method='cash',
        date_created=date_created
    )
    order._create_db_record()
    return order
