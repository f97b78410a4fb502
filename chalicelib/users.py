from decimal import Decimal
from typing import Tuple, Dict

from chalice import Response

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import ZERO
from chalicelib.constants.enums import Role, DriverStatus
from chalicelib.constants.status_codes import http200
from chalicelib.utils import app as utils_app, exceptions
from chalicelib.utils.auth import Actor, get_actor, require_actor
from chalicelib.utils.data import now_iso
from chalicelib.utils.logger import logger


class User(EntityBase):
    pk = keys_structure.users_pk
    sk = keys_structure.users_sk
    not_found_exception = exceptions.UserNotFound

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'role_': lambda x: x in [role.value for role in Role],
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'name_': lambda x: isinstance(x, str),
        'email': lambda x: isinstance(x, str),
        'phone': lambda x: isinstance(x, str),
        # driver only
        'driver_status': lambda x: x in [status.value for status in DriverStatus],
        'total_deliveries': lambda x: isinstance(x, (int, Decimal)) and x >= 0,
        'total_earnings': lambda x: isinstance(x, Decimal) and x >= 0,
        'driver_location_lat': lambda x: isinstance(x, Decimal) and -90 <= x <= 90,
        'driver_location_lng': lambda x: isinstance(x, Decimal) and -180 <= x <= 180,
        'last_location_update': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.role_: str = kwargs.get('role_') or kwargs.get('role')
        self.name_: str = kwargs.get('name_') or kwargs.get('name')
        self.email: str = kwargs.get('email')
        self.phone: str = kwargs.get('phone')
        self.date_created: str = kwargs.get('date_created') or now_iso()
        self.date_updated: str = kwargs.get('date_updated') or self.date_created

        self.driver_status: str = kwargs.get('driver_status')
        self.total_deliveries = kwargs.get('total_deliveries')
        self.total_earnings = kwargs.get('total_earnings')
        if self.role_ == Role.DRIVER.value:
            self.driver_status = self.driver_status or DriverStatus.OFFLINE.value
            self.total_deliveries = Decimal(self.total_deliveries or 0)
            self.total_earnings = Decimal(self.total_earnings or ZERO)
        self.driver_location_lat = kwargs.get('driver_location_lat')
        self.driver_location_lng = kwargs.get('driver_location_lng')
        self.last_location_update: str = kwargs.get('last_location_update')
        self.record_type = 'user'

    @property
    def role(self) -> Role:
        return Role(self.role_)

    @property
    def is_driver(self) -> bool:
        return self.role_ == Role.DRIVER.value

    @classmethod
    def init_get_by_id(cls, user_id):
        logger.info(f"init_get_by_id ::: user_id={user_id}")
        c = cls(user_id)
        return c._reload(c._get_db_item())

    @classmethod
    def init_get_driver(cls, driver_id):
        """ Loads a user who must be a driver, any other role is reported as a missing driver """
        user = cls.init_get_by_id(driver_id)
        if not user.is_driver:
            logger.info(f"init_get_driver ::: user {driver_id} has role {user.role_}")
            raise exceptions.UserNotFound('Driver not found')
        return user

    def create(self):
        self._create_db_record()
        return self

    def set_driver_status(self, driver_status: DriverStatus):
        self._update_db_record({'driver_status': driver_status.value})
        logger.info(f"set_driver_status ::: driver {self.id_} is {driver_status.value}")
        return self

    def set_location(self, lat: Decimal, lng: Decimal):
        self._update_db_record({
            'driver_location_lat': lat,
            'driver_location_lng': lng,
            'last_location_update': now_iso()
        })
        return self

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self) -> Dict:
        return {
            'id_': self.id_,
            'role_': self.role_,
            'name_': self.name_,
            'email': self.email,
            'phone': self.phone,
            'driver_status': self.driver_status,
            'total_deliveries': self.total_deliveries,
            'total_earnings': self.total_earnings,
            'driver_location_lat': self.driver_location_lat,
            'driver_location_lng': self.driver_location_lng,
            'last_location_update': self.last_location_update,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def _to_ui(self) -> Dict:
        item = super()._to_ui()
        if not self.is_driver:
            for key in ('driver_status', 'total_deliveries', 'total_earnings', 'driver_location_lat',
                        'driver_location_lng', 'last_location_update'):
                item.pop(key, None)
        return item


def get_user_profile(actor: Actor) -> User:
    actor = require_actor(actor)
    return User.init_get_by_id(actor.id)


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_user_profile(request) -> Response:
    user = get_user_profile(get_actor(request))
    return Response(status_code=http200, body=user.to_ui())
