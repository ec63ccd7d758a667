# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""SQL for declared roles.

Role input is not escaped. Each token must consist of letters, underscores,
commas and whitespace, anything else is rejected before any SQL is built.
This check is the only protection against injection, so every token coming
from the configuration goes through it.

>>> build_create_roles_query({'r': {'properties': 'LOGIN SUPERUSER'}})
'CREATE ROLE r WITH LOGIN SUPERUSER; '
>>> build_create_roles_query({'r': {'privileges': ['SELECT', 'INSERT']}})
'CREATE ROLE r; GRANT SELECT TO r; GRANT INSERT TO r; '
"""
import re
from typing import List
from typing import Mapping
from typing import Optional

ROLE_PROPERTIES_KEY = 'properties'
ROLE_PRIVILEGES_KEY = 'privileges'

_safe_token_re = re.compile(r'[A-Za-z_,\s]+', re.ASCII)


class RoleValidationError(ValueError):
    pass


def validate_input(value, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RoleValidationError(f"Must be a non-blank string for {context}, got {value!r}")
    if _safe_token_re.fullmatch(value) is None:
        raise RoleValidationError(
            f"Query input seems to be insecure. Make sure you pass a valid value for {context}")
    return value


def build_create_roles_query(roles: Mapping[str, Optional[Mapping[str, object]]]) -> str:
    statements = []
    for role_name, role_config in roles.items():
        role_config = role_config or {}
        name = validate_input(role_name, f"role name {role_name!r}")
        unknown_keys = set(role_config) - {ROLE_PROPERTIES_KEY, ROLE_PRIVILEGES_KEY}
        if unknown_keys:
            raise RoleValidationError(
                f"Invalid configuration for role {role_name!r}: "
                f"unknown keys {sorted(unknown_keys)}, got {roles!r}")
        if ROLE_PROPERTIES_KEY in role_config:
            raw_properties = role_config[ROLE_PROPERTIES_KEY]
            properties = validate_input(raw_properties, f"role {role_name!r} properties {raw_properties!r}")
            statements.append(f'CREATE ROLE {name} WITH {properties}; ')
        else:
            statements.append(f'CREATE ROLE {name}; ')
        for raw_privilege in _to_list_of_strings(role_config.get(ROLE_PRIVILEGES_KEY, [])):
            privilege = validate_input(raw_privilege, f"role {role_name!r} privilege {raw_privilege!r}")
            statements.append(f'GRANT {privilege} TO {name}; ')
    return ''.join(statements)


def _to_list_of_strings(value) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise RoleValidationError(f"Invalid type for list of privileges: {value!r} of type {type(value)}")


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier.

    >>> print(quote_identifier('my"db'))
    "my""db"
    """
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote an SQL string literal.

    >>> print(quote_literal("it's"))
    'it''s'
    """
    return "'" + value.replace("'", "''") + "'"
