from decimal import Decimal

DEFAULT_TABLE_NAME = 'restaurant-order-lifecycle'
DEFAULT_REGION = 'eu-central-1'

DEFAULT_TAX_RATE = '0.08'
DEFAULT_DAILY_ORDERS_WINDOW_DAYS = 30
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_IN_OPERANDS = 100

POPULAR_ITEMS_LIMIT = 5
UNKNOWN_MENU_ITEM_NAME = 'Unknown'

MONEY = Decimal('1.00')
ZERO = Decimal('0.00')

JWT_ALGORITHM = 'HS256'
