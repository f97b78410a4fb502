__all__ = ["ServiceException", "NotAuthenticated", "NotFound", "RecordNotFound", "RestaurantNotFound",
           "MenuItemNotFound", "OrderNotFound", "DeliveryNotFound", "UserNotFound", "Forbidden",
           "InvalidTransition", "OnlyPendingOrdersCanBeAcceptedOrRejected", "CannotCancelInFlightOrDeliveredOrder",
           "ConflictOnWrite", "ValidationException", "ConditionalCheckFailed", "InternalError"]


class ServiceException(Exception):
    """
    Base for every error the service reports to its callers.
    CODE is the stable machine-readable name rendered in responses.
    """
    CODE = 'ServiceError'
    STATUS_CODE = 400
    LEVEL = 'warning'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class NotAuthenticated(ServiceException):
    CODE = 'NotAuthenticated'
    STATUS_CODE = 401

    def __init__(self, message: str = 'Not authenticated'):
        super().__init__(message)


# Lookup exceptions
class NotFound(ServiceException):
    CODE = 'NotFound'
    STATUS_CODE = 404
    LEVEL = 'info'


class RecordNotFound(NotFound):
    pass


class RestaurantNotFound(NotFound):
    def __init__(self, message: str = 'Restaurant not found'):
        super().__init__(message)


class MenuItemNotFound(NotFound):
    pass


class OrderNotFound(NotFound):
    def __init__(self, message: str = 'Order not found'):
        super().__init__(message)


class DeliveryNotFound(NotFound):
    def __init__(self, message: str = 'Delivery not found'):
        super().__init__(message)


class UserNotFound(NotFound):
    def __init__(self, message: str = 'User not found'):
        super().__init__(message)


# Authorization exceptions
class Forbidden(ServiceException):
    CODE = 'Forbidden'
    STATUS_CODE = 403

    NOT_OWNER = 'NotOwner'
    ROLE_NOT_PERMITTED = 'RoleNotPermitted'

    def __init__(self, message: str = 'Not authorized', reason: str = NOT_OWNER):
        super().__init__(message)
        self.reason = reason


# State machine exceptions
class InvalidTransition(ServiceException):
    CODE = 'InvalidTransition'

    def __init__(self, current_status=None, requested_status=None, message: str = ''):
        self.current_status = getattr(current_status, 'value', current_status)
        self.requested_status = getattr(requested_status, 'value', requested_status)
        super().__init__(message or f'Cannot change status from {self.current_status} to {self.requested_status}')


class OnlyPendingOrdersCanBeAcceptedOrRejected(InvalidTransition):
    pass


class CannotCancelInFlightOrDeliveredOrder(InvalidTransition):
    def __init__(self, current_status=None):
        super().__init__(current_status, 'cancelled',
                         message='Cannot cancel order that is out for delivery or delivered')


class ConflictOnWrite(InvalidTransition):
    CODE = 'ConflictOnWrite'
    STATUS_CODE = 409


# Validations exceptions
class ValidationException(ServiceException):
    CODE = 'ValidationError'


# DynamoDB exceptions
class ConditionalCheckFailed(Exception):
    """Raised by the store layer when a conditional write lost against the persisted state"""
    pass


class InternalError(ServiceException):
    CODE = 'InternalError'
    STATUS_CODE = 500
    LEVEL = 'exception'

    def __init__(self, message: str = 'Internal server error'):
        super().__init__(message)
