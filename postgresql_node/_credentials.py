# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import secrets
import string
from typing import NamedTuple

from postgresql_node._entity_store import EntityStore

_logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = 'db'
DEFAULT_USERNAME = 'postgresqluser'


class ServerCredentials(NamedTuple):

    database_name: str
    admin_username: str
    admin_password: str

    def __repr__(self):
        return (
            f'{ServerCredentials.__name__}('
            f'database_name={self.database_name!r}, '
            f'admin_username={self.admin_username!r}, '
            f'admin_password=<hidden>)')


def resolve_credentials(store: EntityStore) -> ServerCredentials:
    """Declared value, else remembered from an earlier run, else a new default."""
    return ServerCredentials(
        _config_or_default(store, 'database', DEFAULT_DB_NAME),
        _config_or_default(store, 'username', DEFAULT_USERNAME),
        _config_or_default(store, 'password', make_random_id(8)),
        )


def make_random_id(length: int) -> str:
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _config_or_default(store: EntityStore, key: str, default: str) -> str:
    value = store.get_config(key)
    if value is not None:
        return value
    _logger.debug("%r has no config specified for %s", store, key)
    return store.get_or_set_sensor(key, default)
