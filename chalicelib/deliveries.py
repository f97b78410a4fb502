from decimal import Decimal
from typing import Tuple, List, Dict

from boto3.dynamodb.conditions import Attr, Key

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.enums import DeliveryStatus, DriverStatus, DELIVERY_TRANSITIONS
from chalicelib.users import User
from chalicelib.utils import exceptions, db as utils_db
from chalicelib.utils.data import now_iso
from chalicelib.utils.logger import logger


class Delivery(EntityBase):
    pk = keys_structure.deliveries_pk
    sk = keys_structure.deliveries_sk
    not_found_exception = exceptions.DeliveryNotFound

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'order_id': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'driver_id': lambda x: isinstance(x, str),
        'driver_fee': lambda x: isinstance(x, Decimal) and x >= 0,
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in [status.value for status in DeliveryStatus],
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'pickup_time': lambda x: isinstance(x, str),
        'delivery_time': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.order_id: str = kwargs.get('order_id')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.driver_id: str = kwargs.get('driver_id')
        self.status_: str = kwargs.get('status_') or DeliveryStatus.ASSIGNED.value
        self.driver_fee: Decimal = kwargs.get('driver_fee')
        self.pickup_time: str = kwargs.get('pickup_time')
        self.delivery_time: str = kwargs.get('delivery_time')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'delivery'

    @property
    def status(self) -> DeliveryStatus:
        return DeliveryStatus(self.status_)

    @classmethod
    def init_get_by_id(cls, delivery_id):
        logger.info(f"init_get_by_id ::: delivery_id={delivery_id}")
        c = cls(delivery_id)
        return c._reload(c._get_db_item())

    def check_transition(self, requested_status: DeliveryStatus):
        if requested_status not in DELIVERY_TRANSITIONS[self.status]:
            logger.info(f"check_transition ::: delivery {self.id_} {self.status_} -> {requested_status.value} "
                        f"is not allowed")
            raise exceptions.InvalidTransition(self.status, requested_status)

    def status_transact_item(self, requested_status: DeliveryStatus, extra_values: Dict = None) -> Dict:
        """ Status write, conditional on the status this object was loaded with """
        return utils_db.update_transact_item(
            key=self.key(),
            set_values={'status_': requested_status.value, 'date_updated': now_iso(), **(extra_values or {})},
            expected_values={'status_': [self.status_]}
        )

    def cancellation_transact_items(self) -> List[Dict]:
        """
        Items cancelling this delivery, empty when it is past pickup.
        A driver who already picked the order up becomes available again
        """
        if DeliveryStatus.CANCELLED not in DELIVERY_TRANSITIONS[self.status]:
            return []
        items = [self.status_transact_item(DeliveryStatus.CANCELLED)]
        if self.status == DeliveryStatus.PICKED_UP:
            items.append(driver_status_transact_item(self.driver_id, DriverStatus.ONLINE))
        return items

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(delivery_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'order_id': self.order_id,
            'restaurant_id': self.restaurant_id,
            'driver_id': self.driver_id,
            'status_': self.status_,
            'driver_fee': self.driver_fee,
            'pickup_time': self.pickup_time,
            'delivery_time': self.delivery_time,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def driver_status_transact_item(driver_id: str, driver_status: DriverStatus, add_values: Dict = None) -> Dict:
    return utils_db.update_transact_item(
        key=User(driver_id).key(),
        set_values={'driver_status': driver_status.value, 'date_updated': now_iso()},
        add_values=add_values
    )


def get_driver_deliveries(driver_id: str, status: DeliveryStatus = None) -> List[Delivery]:
    """ Driver's deliveries, newest first """
    filter_expression = Attr('driver_id').eq(driver_id)
    if status is not None:
        filter_expression = filter_expression & Attr('status_').eq(status.value)
    delivery_db_records: List[Dict] = utils_db.query_items_paged(
        Key('partkey').eq(keys_structure.deliveries_pk),
        filter_expression=filter_expression
    )
    deliveries = [Delivery(**record) for record in delivery_db_records]
    deliveries.sort(key=lambda delivery: (delivery.date_created, delivery.id_), reverse=True)
    return deliveries
