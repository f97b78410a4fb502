from decimal import Decimal
from typing import Tuple

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.enums import PaymentStatus
from chalicelib.utils import exceptions
from chalicelib.utils.data import now_iso
from chalicelib.utils.logger import logger


class Payment(EntityBase):
    """
    Payment status is only tracked here, there is no gateway reconciliation.
    One payment per order, keyed by the order id
    """
    pk = keys_structure.payments_pk
    sk = keys_structure.payments_sk

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'order_id': lambda x: isinstance(x, str),
        'amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'method': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status_': lambda x: x in [status.value for status in PaymentStatus],
        'date_updated': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, order_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.order_id: str = order_id
        self.amount: Decimal = kwargs.get('amount')
        self.method: str = kwargs.get('method')
        self.status_: str = kwargs.get('status_') or PaymentStatus.PENDING.value
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created
        self.record_type = 'payment'

    @classmethod
    def init_get_by_order_id(cls, order_id):
        logger.info(f"init_get_by_order_id ::: order_id={order_id}")
        c = cls(id_=None, order_id=order_id)
        try:
            return c._reload(c._get_db_item())
        except exceptions.RecordNotFound as error:
            raise exceptions.NotFound(f'Payment for order {order_id} not found') from error

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.order_id)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'order_id': self.order_id,
            'amount': self.amount,
            'method': self.method,
            'status_': self.status_,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }
