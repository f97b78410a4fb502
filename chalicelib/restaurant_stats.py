"""
Restaurant statistics, recomputed from the stored orders on every call.
"""
import os
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Dict, Optional, Iterable

from boto3.dynamodb.conditions import Attr
from chalice import Response

from chalicelib.auth import Resource, ensure_can_act
from chalicelib.constants.constants import (
    DEFAULT_DAILY_ORDERS_WINDOW_DAYS, POPULAR_ITEMS_LIMIT, UNKNOWN_MENU_ITEM_NAME, ZERO
)
from chalicelib.constants.enums import OrderStatus, Action
from chalicelib.constants.status_codes import http200
from chalicelib.menu_items import MenuItem, get_restaurant_menu_items
from chalicelib.orders import Order, query_orders
from chalicelib.restaurants import Restaurant
from chalicelib.utils import app as utils_app, data as utils_data
from chalicelib.utils.auth import Actor, get_actor, require_actor
from chalicelib.utils.logger import logger


def daily_orders_window_days() -> int:
    return int(os.environ.get('DAILY_ORDERS_WINDOW_DAYS', DEFAULT_DAILY_ORDERS_WINDOW_DAYS))


def _revenue(orders: Iterable[Order]) -> Decimal:
    return sum((order.total for order in orders if order.status == OrderStatus.DELIVERED), ZERO)


def _daily_orders(orders: List[Order], as_of: datetime) -> List[Dict]:
    """ Per day count and delivered revenue for the trailing window ending at as_of, oldest day first """
    since = as_of - timedelta(days=daily_orders_window_days())
    days = defaultdict(lambda: {'count': 0, 'revenue': ZERO})
    for order in orders:
        created = utils_data.parse_iso(order.date_created)
        if not since <= created <= as_of:
            continue
        day = days[created.date().isoformat()]
        day['count'] += 1
        if order.status == OrderStatus.DELIVERED:
            day['revenue'] += order.total
    return [{'date': date, **values} for date, values in sorted(days.items())]


def _popular_items(orders: List[Order], menu_items: Dict[str, MenuItem]) -> List[Dict]:
    """
    Top menu items of delivered orders by quantity sold.
    Ties go to the higher revenue, then to the lower menu item id
    """
    sold = defaultdict(lambda: {'total_sold': 0, 'total_revenue': ZERO})
    for order in orders:
        if order.status != OrderStatus.DELIVERED:
            continue
        for item in order.items:
            totals = sold[item['menu_item_id']]
            totals['total_sold'] += int(item['quantity'])
            totals['total_revenue'] += Decimal(item['subtotal'])

    ranking = sorted(sold.items(), key=lambda pair: (-pair[1]['total_sold'], -pair[1]['total_revenue'], pair[0]))
    popular = []
    for menu_item_id, totals in ranking[:POPULAR_ITEMS_LIMIT]:
        menu_item = menu_items.get(menu_item_id)
        popular.append({
            'id': menu_item_id,
            'name': menu_item.name_ if menu_item else UNKNOWN_MENU_ITEM_NAME,
            'price': menu_item.price if menu_item else ZERO,
            'image': menu_item.image if menu_item else None,
            **totals
        })
    return popular


def compute_stats(orders: List[Order], menu_items: Dict[str, MenuItem], as_of: datetime) -> Dict:
    """
    Pure aggregation over the restaurant's orders.
    Monthly / yearly windows start at the beginning of as_of's month / year,
    revenue only counts delivered orders and is 0 when there are none
    """
    month_start = as_of.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    year_start = month_start.replace(month=1)
    orders = [order for order in orders if utils_data.parse_iso(order.date_created) <= as_of]
    monthly = [order for order in orders if utils_data.parse_iso(order.date_created) >= month_start]
    yearly = [order for order in orders if utils_data.parse_iso(order.date_created) >= year_start]

    def count(status: OrderStatus) -> int:
        return len([order for order in orders if order.status == status])

    return {
        'orders': {
            'total': len(orders),
            'pending': count(OrderStatus.PENDING),
            'completed': count(OrderStatus.DELIVERED),
            'cancelled': count(OrderStatus.CANCELLED),
            'monthly': len(monthly),
            'yearly': len(yearly)
        },
        'revenue': {
            'monthly': _revenue(monthly),
            'yearly': _revenue(yearly)
        },
        'daily_orders': _daily_orders(orders, as_of),
        'popular_items': _popular_items(orders, menu_items)
    }


def get_restaurant_stats(actor: Actor, restaurant_id: str, as_of: Optional[datetime] = None) -> Dict:
    actor = require_actor(actor)
    restaurant = Restaurant.init_get_by_id(restaurant_id)
    ensure_can_act(actor, Resource(restaurant=restaurant), Action.VIEW_STATS,
                   message='Not authorized to view stats for this restaurant')
    orders = query_orders(Attr('restaurant_id').eq(restaurant.id_))
    stats = compute_stats(orders, get_restaurant_menu_items(restaurant.id_), as_of or datetime.now())
    logger.info(f"get_restaurant_stats ::: restaurant_id={restaurant_id}, orders={stats['orders']}")
    return stats


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_restaurant_stats(request, restaurant_id) -> Response:
    stats = get_restaurant_stats(get_actor(request), restaurant_id)
    return Response(status_code=http200, body=stats)
