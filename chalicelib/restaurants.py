from decimal import Decimal
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Attr, Key

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ZERO
from chalicelib.utils import exceptions, db as utils_db
from chalicelib.utils.data import now_iso, to_money
from chalicelib.utils.logger import logger


class Restaurant(EntityBase):
    pk = keys_structure.restaurants_pk
    sk = keys_structure.restaurants_sk
    not_found_exception = exceptions.RestaurantNotFound

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'owner_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str),
        'is_open': lambda x: isinstance(x, bool),
        'min_order_amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'delivery_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_updated': lambda x: isinstance(x, str),
        'archived': lambda x: isinstance(x, bool)
    }

    optional_fields_validation = {
        # maintained by the review subsystem
        'rating': lambda x: isinstance(x, Decimal) and 0 <= x <= 5,
        'total_reviews': lambda x: isinstance(x, Decimal) and x >= 0,
        # opaque url from the media service
        'image': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.owner_id: str = kwargs.get('owner_id')
        self.name_: str = kwargs.get('name_') or kwargs.get('name')
        self.is_open: bool = kwargs.get('is_open', True)
        self.min_order_amount: Decimal = to_money(kwargs.get('min_order_amount') or ZERO, 'min_order_amount')
        self.delivery_fee: Decimal = to_money(kwargs.get('delivery_fee') or ZERO, 'delivery_fee')
        self.rating: Decimal = Decimal(str(kwargs.get('rating') or 0))
        self.total_reviews: Decimal = Decimal(kwargs.get('total_reviews') or 0)
        self.image: str = kwargs.get('image')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'restaurant'

    @classmethod
    def init_get_by_id(cls, restaurant_id):
        logger.info(f"init_get_by_id ::: restaurant_id={restaurant_id}")
        c = cls(restaurant_id)
        return c._reload(c._get_db_item())

    def create(self):
        self._create_db_record()
        return self

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id is not None and self.owner_id == user_id

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'owner_id': self.owner_id,
            'name_': self.name_,
            'is_open': self.is_open,
            'min_order_amount': self.min_order_amount,
            'delivery_fee': self.delivery_fee,
            'rating': self.rating,
            'total_reviews': self.total_reviews,
            'image': self.image,
            'date_created': self.date_created,
            'date_updated': self.date_updated,
            'archived': self.archived
        }


def get_owned_restaurant_ids(owner_id: str) -> List[str]:
    restaurant_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.restaurants_pk),
        filter_expression=Attr('owner_id').eq(owner_id)
    )
    restaurant_ids = [record['id_'] for record in restaurant_db_records]
    logger.info(f"get_owned_restaurant_ids ::: owner_id={owner_id}, restaurants={restaurant_ids}")
    return restaurant_ids
