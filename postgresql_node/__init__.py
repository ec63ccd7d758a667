# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Provision, start and stop a PostgreSQL server on a remote host.

PostgreSqlNode is the entry point. The rest is exposed for composing
provisioning steps by hand and for testing.
"""
from postgresql_node._config_files import ConfigFile
from postgresql_node._config_files import ConfigMaterializer
from postgresql_node._config_files import parse_server_config
from postgresql_node._context import PostgreSqlVersion
from postgresql_node._context import ProvisioningContext
from postgresql_node._context import Relocation
from postgresql_node._context import parse_version
from postgresql_node._credentials import ServerCredentials
from postgresql_node._credentials import resolve_credentials
from postgresql_node._entity_store import EntityStore
from postgresql_node._install_path import InstallPathNegotiator
from postgresql_node._install_path import RelocationFailed
from postgresql_node._node import InvalidTransition
from postgresql_node._node import NodeState
from postgresql_node._node import PostgreSqlNode
from postgresql_node._os_profile import OsProfile
from postgresql_node._os_profile import PackageManager
from postgresql_node._os_profile import PackageResolver
from postgresql_node._os_profile import resolve_os_profile
from postgresql_node._roles import RoleValidationError
from postgresql_node._roles import build_create_roles_query
from postgresql_node._templates import TemplateRenderer
from postgresql_node._waiting import WaitTimeout
from postgresql_node._waiting import wait_for_truthy

__all__ = [
    'ConfigFile',
    'ConfigMaterializer',
    'EntityStore',
    'InstallPathNegotiator',
    'InvalidTransition',
    'NodeState',
    'OsProfile',
    'PackageManager',
    'PackageResolver',
    'PostgreSqlNode',
    'PostgreSqlVersion',
    'ProvisioningContext',
    'Relocation',
    'RelocationFailed',
    'RoleValidationError',
    'ServerCredentials',
    'TemplateRenderer',
    'WaitTimeout',
    'build_create_roles_query',
    'parse_server_config',
    'parse_version',
    'resolve_credentials',
    'resolve_os_profile',
    'wait_for_truthy',
    ]
