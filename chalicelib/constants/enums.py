from enum import Enum


class Role(str, Enum):
    CUSTOMER = 'customer'
    RESTAURANT_OWNER = 'restaurant_owner'
    DRIVER = 'driver'
    ADMIN = 'admin'


class OrderStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PREPARING = 'preparing'
    READY_FOR_PICKUP = 'ready_for_pickup'
    OUT_FOR_DELIVERY = 'out_for_delivery'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class DeliveryStatus(str, Enum):
    ASSIGNED = 'assigned'
    PICKED_UP = 'picked_up'
    IN_TRANSIT = 'in_transit'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class DriverStatus(str, Enum):
    OFFLINE = 'offline'
    ONLINE = 'online'
    BUSY = 'busy'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'
    REFUNDED = 'refunded'


class Action(str, Enum):
    MANAGE_RESTAURANT = 'manage_restaurant'
    MANAGE_MENU = 'manage_menu'
    VIEW_RESTAURANT_ORDERS = 'view_restaurant_orders'
    VIEW_ORDER = 'view_order'
    ACCEPT_REJECT_ORDER = 'accept_reject_order'
    UPDATE_ORDER_STATUS = 'update_order_status'
    CANCEL_ORDER = 'cancel_order'
    ASSIGN_DRIVER = 'assign_driver'
    UPDATE_DELIVERY = 'update_delivery'
    VIEW_STATS = 'view_stats'


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY_FOR_PICKUP, OrderStatus.CANCELLED},
    OrderStatus.READY_FOR_PICKUP: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set()
}

# edges a driver assigned to the order may request
DRIVER_ORDER_TRANSITIONS = {
    (OrderStatus.READY_FOR_PICKUP, OrderStatus.OUT_FOR_DELIVERY),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED)
}

CANCELLABLE_ORDER_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}
IN_FLIGHT_OR_DELIVERED_STATUSES = {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}
DRIVER_ASSIGNABLE_STATUSES = {OrderStatus.CONFIRMED, OrderStatus.READY_FOR_PICKUP}

DELIVERY_TRANSITIONS = {
    DeliveryStatus.ASSIGNED: {DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED},
    DeliveryStatus.PICKED_UP: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.CANCELLED: set()
}
