users_pk = 'users'
users_sk = '{user_id}'

restaurants_pk = 'restaurants'
restaurants_sk = '{restaurant_id}'

menu_items_pk = 'menu_items_{restaurant_id}'
menu_items_sk = '{menu_item_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

payments_pk = 'payments'
payments_sk = '{order_id}'

deliveries_pk = 'deliveries'
deliveries_sk = '{delivery_id}'
