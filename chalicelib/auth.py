"""
Single authorization decision for every operation on restaurants, orders and deliveries.

Rules, first match wins:
    no actor                       -> NotAuthenticated
    admin                          -> allowed
    owner of the restaurant        -> restaurant, menu and order management actions
    driver assigned to the order   -> driver status edges, order view, delivery updates
    customer who placed the order  -> cancel, view
    anything else                  -> denied, NotOwner or RoleNotPermitted

Callers load the resources first, a missing resource is reported as NotFound
before this module is consulted.
"""
from typing import NamedTuple, Optional, Tuple, Any

from chalicelib.constants.enums import Action, Role, DRIVER_ORDER_TRANSITIONS
from chalicelib.utils import exceptions
from chalicelib.utils.auth import Actor
from chalicelib.utils.logger import logger

NOT_OWNER = exceptions.Forbidden.NOT_OWNER
ROLE_NOT_PERMITTED = exceptions.Forbidden.ROLE_NOT_PERMITTED

OWNER_ACTIONS = {
    Action.MANAGE_RESTAURANT,
    Action.MANAGE_MENU,
    Action.VIEW_RESTAURANT_ORDERS,
    Action.VIEW_ORDER,
    Action.ACCEPT_REJECT_ORDER,
    Action.UPDATE_ORDER_STATUS,
    Action.CANCEL_ORDER,
    Action.ASSIGN_DRIVER,
    Action.VIEW_STATS
}
DRIVER_ACTIONS = {Action.VIEW_ORDER, Action.UPDATE_ORDER_STATUS, Action.UPDATE_DELIVERY}
CUSTOMER_ACTIONS = {Action.VIEW_ORDER, Action.CANCEL_ORDER}


class Resource(NamedTuple):
    """
    What the actor wants to act on. Restaurant is the owning restaurant of the
    order / menu item, delivery is the order's delivery when one is assigned
    """
    restaurant: Any = None
    order: Any = None
    delivery: Any = None
    menu_item: Any = None


class Decision(NamedTuple):
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def _deny(reason: str) -> Decision:
    return Decision(False, reason)


def _is_restaurant_owner(actor: Actor, resource: Resource) -> bool:
    restaurant = resource.restaurant
    return actor.role == Role.RESTAURANT_OWNER and restaurant is not None and restaurant.is_owned_by(actor.id)


def _is_assigned_driver(actor: Actor, resource: Resource) -> bool:
    delivery = resource.delivery
    if delivery is not None:
        return delivery.driver_id == actor.id
    order = resource.order
    return order is not None and order.driver_id is not None and order.driver_id == actor.id


def _is_order_customer(actor: Actor, resource: Resource) -> bool:
    order = resource.order
    return order is not None and order.customer_id == actor.id


def can_act(actor: Optional[Actor], resource: Resource, action: Action,
            transition: Optional[Tuple[Any, Any]] = None) -> Decision:
    """
    Pure decision, never touches the store.
    transition is the (current, requested) order status pair of an UPDATE_ORDER_STATUS action
    """
    if actor is None:
        raise exceptions.NotAuthenticated()

    if actor.is_admin:
        return ALLOW

    if actor.role == Role.RESTAURANT_OWNER:
        if action not in OWNER_ACTIONS:
            return _deny(ROLE_NOT_PERMITTED)
        return ALLOW if _is_restaurant_owner(actor, resource) else _deny(NOT_OWNER)

    if actor.role == Role.DRIVER:
        if action not in DRIVER_ACTIONS:
            return _deny(ROLE_NOT_PERMITTED)
        if not _is_assigned_driver(actor, resource):
            return _deny(NOT_OWNER)
        if action == Action.UPDATE_ORDER_STATUS and tuple(transition or ()) not in DRIVER_ORDER_TRANSITIONS:
            return _deny(ROLE_NOT_PERMITTED)
        return ALLOW

    if actor.role == Role.CUSTOMER:
        if action not in CUSTOMER_ACTIONS:
            return _deny(ROLE_NOT_PERMITTED)
        return ALLOW if _is_order_customer(actor, resource) else _deny(NOT_OWNER)

    return _deny(ROLE_NOT_PERMITTED)


def ensure_can_act(actor: Optional[Actor], resource: Resource, action: Action,
                   transition: Optional[Tuple[Any, Any]] = None, message: str = 'Not authorized') -> Actor:
    """ Raises Forbidden carrying the denial reason """
    decision = can_act(actor, resource, action, transition)
    if not decision.allowed:
        logger.info(f'ensure_can_act ::: denied actor_id={actor.id}, role={actor.role.value}, '
                    f'action={action.value}, reason={decision.reason}')
        raise exceptions.Forbidden(message, decision.reason)
    return actor
