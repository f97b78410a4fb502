from chalice import Chalice

from chalicelib import orders, order_management, drivers, restaurant_stats, users

app = Chalice(app_name='restaurant-order-lifecycle')

app.debug = False


# Every route resolves the caller from the "Authorization: Bearer <jwt>" header,
# a missing or invalid token is answered with 401 NotAuthenticated

# USERS
@app.route('/users', methods=['GET'], cors=True)
def get_user():
    return users.endpoint_get_user_profile(app.current_request)


# ORDERS
@app.route('/orders', methods=['POST'], cors=True)
def create_order():
    """
    customer operation
    """
    return orders.endpoint_create_order(app.current_request)


@app.route('/orders', methods=['GET'], cors=True)
def list_my_orders():
    """
    customer gets own orders
    restaurant owner gets orders of owned restaurants
    driver gets orders assigned to the driver
    admin gets all orders
    query params: status, page, page_size
    """
    return orders.endpoint_list_my_orders(app.current_request)


@app.route('/orders/{order_id}', methods=['GET'], cors=True)
def get_order(order_id):
    """
    order's customer, restaurant owner, assigned driver or admin
    """
    return orders.endpoint_get_order(app.current_request, order_id)


@app.route('/orders/{order_id}/cancel', methods=['POST'], cors=True)
def cancel_order(order_id):
    """
    order's customer, restaurant owner or admin, only pending or confirmed orders
    """
    return orders.endpoint_cancel_order(app.current_request, order_id)


@app.route('/orders/{order_id}/status', methods=['PUT'], cors=True)
def update_order_status(order_id):
    """
    restaurant owner or admin, assigned driver for out_for_delivery / delivered
    """
    return order_management.endpoint_update_order_status(app.current_request, order_id)


@app.route('/orders/{order_id}/assign-driver', methods=['POST'], cors=True)
def assign_driver(order_id):
    """
    restaurant owner or admin
    """
    return drivers.endpoint_assign_driver(app.current_request, order_id)


# ORDER MANAGEMENT
@app.route('/order-management/restaurant/{restaurant_id}', methods=['GET'], cors=True)
def list_restaurant_orders(restaurant_id):
    """
    restaurant owner operation, query param: status
    """
    return order_management.endpoint_list_restaurant_orders(app.current_request, restaurant_id)


@app.route('/order-management/{order_id}/accept', methods=['POST'], cors=True)
def accept_order(order_id):
    return order_management.endpoint_accept_order(app.current_request, order_id)


@app.route('/order-management/{order_id}/reject', methods=['POST'], cors=True)
def reject_order(order_id):
    return order_management.endpoint_reject_order(app.current_request, order_id)


@app.route('/order-management/{order_id}/status', methods=['PUT'], cors=True)
def manage_order_status(order_id):
    return order_management.endpoint_update_order_status(app.current_request, order_id)


# RESTAURANTS
@app.route('/restaurants/{restaurant_id}/stats', methods=['GET'], cors=True)
def get_restaurant_stats(restaurant_id):
    """
    restaurant owner or admin
    """
    return restaurant_stats.endpoint_get_restaurant_stats(app.current_request, restaurant_id)


# DRIVERS
@app.route('/drivers/deliveries/available', methods=['GET'], cors=True)
def get_available_deliveries():
    return drivers.endpoint_get_available_deliveries(app.current_request)


@app.route('/drivers/deliveries', methods=['GET'], cors=True)
def get_my_deliveries():
    return drivers.endpoint_get_my_deliveries(app.current_request)


@app.route('/drivers/deliveries/{delivery_id}/accept', methods=['POST'], cors=True)
def accept_delivery(delivery_id):
    return drivers.endpoint_accept_delivery(app.current_request, delivery_id)


@app.route('/drivers/deliveries/{delivery_id}/status', methods=['PUT'], cors=True)
def update_delivery_status(delivery_id):
    return drivers.endpoint_update_delivery_status(app.current_request, delivery_id)


@app.route('/drivers/status', methods=['PUT'], cors=True)
def update_driver_status():
    return drivers.endpoint_update_driver_status(app.current_request)


@app.route('/drivers/location', methods=['PUT'], cors=True)
def update_driver_location():
    return drivers.endpoint_update_driver_location(app.current_request)


@app.route('/drivers/earnings', methods=['GET'], cors=True)
def get_driver_earnings():
    return drivers.endpoint_get_driver_earnings(app.current_request)
