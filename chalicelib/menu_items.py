from decimal import Decimal
from typing import List, Dict, Tuple

from boto3.dynamodb.conditions import Key

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ZERO
from chalicelib.utils import exceptions, db as utils_db
from chalicelib.utils.data import now_iso, to_money
from chalicelib.utils.logger import logger


class MenuItem(EntityBase):
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name_': lambda x: isinstance(x, str),
        'price': lambda x: isinstance(x, Decimal) and x >= 0,
        'is_available': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str),
        'archived': lambda x: isinstance(x, bool)
    }

    optional_fields_validation = {
        'image': lambda x: isinstance(x, str),
        'customizations': lambda x: isinstance(x, list)
    }

    def __init__(self, id_, restaurant_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.restaurant_id: str = restaurant_id
        self.name_: str = kwargs.get('name_') or kwargs.get('name')
        self.price: Decimal = to_money(kwargs['price'], 'price') if kwargs.get('price') is not None else None
        self.image: str = kwargs.get('image')
        self.is_available: bool = kwargs.get('is_available', True)
        # [{'id': .., 'name': .., 'options': [{'id': .., 'name': .., 'price_modifier': ..}]}]
        self.customizations: list = kwargs.get('customizations', [])
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'menu_item'

    @classmethod
    def init_get_by_id(cls, menu_item_id, restaurant_id):
        logger.info(f"init_get_by_id ::: menu_item_id={menu_item_id}, restaurant_id={restaurant_id}")
        c = cls(id_=menu_item_id, restaurant_id=restaurant_id)
        try:
            return c._reload(c._get_db_item())
        except exceptions.RecordNotFound as error:
            raise exceptions.MenuItemNotFound(f'Menu item not found: {menu_item_id}') from error

    def create(self):
        self._create_db_record()
        return self

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(restaurant_id=self.restaurant_id), self.sk.format(menu_item_id=self.id_)

    def is_available_right_now(self) -> bool:
        return self.is_available and not self.archived

    def resolve_customizations(self, selected: List[Dict]) -> Tuple[List[Dict], Decimal]:
        """
        Matches the selected (customization_id, option_id) pairs against the item's
        current customizations.
        :return:
        frozen selections and the sum of their price modifiers
        """
        resolved, modifiers_total = [], ZERO
        customizations = {c.get('id'): c for c in self.customizations or []}
        for selection in selected or []:
            if not isinstance(selection, dict):
                raise exceptions.ValidationException(f'Invalid customization for menu item {self.name_}')
            customization = customizations.get(selection.get('customization_id'))
            options = {o.get('id'): o for o in (customization or {}).get('options', [])}
            option = options.get(selection.get('option_id'))
            if customization is None or option is None:
                raise exceptions.ValidationException(
                    f'Invalid customization option {selection.get("option_id")} for menu item {self.name_}')
            price_modifier = to_money(option.get('price_modifier') or ZERO, 'price_modifier')
            resolved.append({
                'customization_id': customization['id'],
                'option_id': option['id'],
                'option_name': option.get('name'),
                'price_modifier': price_modifier
            })
            modifiers_total += price_modifier
        return resolved, modifiers_total

    def _to_dict(self):
        return {
            'id_': self.id_,
            'restaurant_id': self.restaurant_id,
            'name_': self.name_,
            'price': self.price,
            'image': self.image,
            'is_available': self.is_available,
            'customizations': self.customizations,
            'date_created': self.date_created,
            'date_updated': self.date_updated,
            'archived': self.archived
        }


def get_restaurant_menu_items(restaurant_id) -> Dict[str, MenuItem]:
    """ All menu items of the restaurant that still exist, archived ones included """
    menu_item_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.menu_items_pk.format(restaurant_id=restaurant_id))
    )
    return {record['id_']: MenuItem(**record) for record in menu_item_db_records}
