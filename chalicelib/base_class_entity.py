from typing import Tuple, Dict, Any

from chalicelib.constants.substitute_keys import from_db, to_db
from chalicelib.utils import db as utils_db, exceptions
from chalicelib.utils.data import substitute_keys, now_iso
from chalicelib.utils.logger import logger


class EntityBase:
    pk = None
    sk = None
    not_found_exception = exceptions.RecordNotFound

    required_immutable_fields_validation = {}
    required_mutable_fields_validation = {}
    optional_fields_validation = {}

    def __init__(self, id_):
        self.id_: str = id_
        self.record_type: str = ''
        self.db_record: Dict = {}

    def _get_pk_sk(self) -> Tuple[str, str]:
        """
        Should be re-implemented in each child class
        :return:
        partkey, sortkey of db item for child
        """
        return self.pk, self.sk

    def key(self) -> Dict:
        pk, sk = self._get_pk_sk()
        return {'partkey': pk, 'sortkey': sk}

    def _get_db_item(self) -> Dict:
        try:
            return utils_db.get_db_item(*self._get_pk_sk())
        except exceptions.RecordNotFound as error:
            raise self.not_found_exception() from error

    def _reload(self, record: Dict):
        """ Re-initializes the entity from a persisted record """
        self.__init__(**record)
        return self

    def _to_dict(self) -> Dict:
        """
        Should be re-implemented in each child class
        :return:
        dict of item's attributes
        """
        return {
            'id_': self.id_,
            'record_type': self.record_type
        }

    def _init_db_record(self) -> None:
        """
        New DB record initialization
        :return:
        None
        """
        pk, sk = self._get_pk_sk()
        self.db_record = {
            'partkey': pk,
            'sortkey': sk,
            'record_type': self.record_type,
            **self._to_dict()
        }
        substitute_keys(dict_to_process=self.db_record, base_keys=to_db)
        # DynamoDB items do not keep empty attributes
        self.db_record = {key: value for key, value in self.db_record.items() if value is not None}

    def _validate_mandatory_fields(self):
        """
        Validates mandatory fields if all fields have correct type to put to db
        Raise ValidationException in case if a field is not valid
        :return:
        None
        """
        for key, validator_func in {
            **self.required_immutable_fields_validation,
            **self.required_mutable_fields_validation
        }.items():
            if validator_func(self.db_record.get(key)) is False:
                message = f'Validation error occurred while validating the field={key}'
                logger.error(f"validate_mandatory_fields ::: {self.record_type=} {message}")
                raise exceptions.ValidationException(message)

    def _validate_optional_fields(self):
        """
        Optional fields are validated only when present
        """
        for key, validator_func in self.optional_fields_validation.items():
            value = self.db_record.get(key)
            if value is not None and validator_func(value) is False:
                message = f'Validation error occurred while validating the field={key}'
                logger.error(f"validate_optional_fields ::: {self.record_type=} {message}")
                raise exceptions.ValidationException(message)

    def _prepare_db_record(self) -> Dict:
        self._init_db_record()
        self._validate_mandatory_fields()
        self._validate_optional_fields()
        return self.db_record

    def _create_db_record(self) -> None:
        """
        Creates entity db record, never overwrites an existing one
        :return:
        None
        """
        self._prepare_db_record()
        try:
            utils_db.put_db_record(self.db_record, only_if_new=True)
        except exceptions.ConditionalCheckFailed as error:
            raise exceptions.ValidationException(f'{self.record_type} {self.id_} already exists') from error
        logger.info(f"_create_db_record ::: {self.record_type=} {self.id_=} {self.db_record.get('partkey')=} "
                    f"{self.db_record.get('sortkey')=} successfully created")

    def _put_transact_item(self) -> Dict:
        return utils_db.put_transact_item(self._prepare_db_record())

    def _get_validated_update_dict(self, update_dict: Dict) -> Dict:
        """
        Validates fields for update
        Raises ValidationException if a field is not valid or can not be updated
        """
        validation_dict = {**self.required_mutable_fields_validation, **self.optional_fields_validation}
        clean_dict = {}
        for key, value in update_dict.items():
            if key not in validation_dict or validation_dict[key](value) is False:
                raise exceptions.ValidationException(f'Validation error occurred while validating the field={key}')
            clean_dict[key] = value
        return clean_dict

    def _update_db_record(self, update_dict: Dict, expected_values: Dict[str, list] = None,
                          add_values: Dict = None) -> Dict:
        """
        Updates entity db record in place, the record must exist.
        expected_values makes the write conditional on the persisted values
        :return:
        the new persisted record
        """
        set_values = self._get_validated_update_dict({**update_dict, 'date_updated': now_iso()})
        substitute_keys(dict_to_process=set_values, base_keys=to_db)
        attributes = utils_db.conditional_update_db_record(
            key=self.key(),
            set_values=set_values,
            expected_values=expected_values,
            add_values=add_values
        )
        logger.info(f"_update_db_record ::: {self.record_type=} {self.id_=} successfully updated")
        self._reload(attributes)
        return attributes

    def _to_ui(self) -> Dict:
        item: Dict[str, Any] = self._to_dict()
        substitute_keys(dict_to_process=item, base_keys=from_db)
        return item

    def to_ui(self) -> Dict:
        return self._to_ui()
