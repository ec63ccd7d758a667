# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import re
from pathlib import PurePosixPath
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from postgresql_node._bash import tee_as_user
from postgresql_node._context import ProvisioningContext
from postgresql_node._credentials import make_random_id
from postgresql_node._entity_store import EntityStore
from postgresql_node._templates import TemplateRenderer
from remote_host import Put
from remote_host import Script
from remote_host import Task
from remote_host import quote_arg
from remote_host import quote_path

_logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432
DEFAULT_MAX_CONNECTIONS = 100
DEFAULT_SHARED_MEMORY = '32MB'
# Any host may log in with a password. Override for security-sensitive deployments.
DEFAULT_ACCESS_RULE = 'host all all 0.0.0.0/0 md5'


class ConfigFile(NamedTuple):
    """Contents for a file in the data dir.

    Templated contents replace the file. Synthesized lines are appended to
    the file initdb has written; the server takes the last occurrence of a
    setting, so they override what initdb put there.
    """

    path: PurePosixPath
    contents: bytes
    templated: bool

    def lines(self) -> Sequence[str]:
        return self.contents.decode('utf8').splitlines()


class ConfigMaterializer:

    def __init__(self, store: EntityStore, context: ProvisioningContext, renderer: TemplateRenderer):
        self._store = store
        self._context = context
        self._renderer = renderer

    def server_config(self) -> ConfigFile:
        path = self._context.data_dir / 'postgresql.conf'
        url = self._store.get_config('configuration_file_url')
        if url is not None:
            return ConfigFile(path, self._renderer.render(url), templated=True)
        # See: http://wiki.postgresql.org/wiki/Tuning_Your_PostgreSQL_Server
        lines = [
            "listen_addresses = '*'",
            f"port = {self.port():d}",
            f"max_connections = {self._store.get_int('max_connections', DEFAULT_MAX_CONNECTIONS):d}",
            f"shared_buffers = {self._store.get_config('shared_memory') or DEFAULT_SHARED_MEMORY}",
            f"external_pid_file = '{self._context.pid_file}'",
            *_split_settings(self._store.get_config('extra_server_settings')),
            ]
        return ConfigFile(path, _join_lines(lines), templated=False)

    def access_control(self) -> ConfigFile:
        path = self._context.data_dir / 'pg_hba.conf'
        url = self._store.get_config('authentication_configuration_file_url')
        if url is not None:
            return ConfigFile(path, self._renderer.render(url), templated=True)
        return ConfigFile(path, _join_lines([DEFAULT_ACCESS_RULE]), templated=False)

    def port(self) -> int:
        return self._store.get_int('postgresql_port', DEFAULT_PORT)

    def effective_port(self, server_config: ConfigFile) -> int:
        """Port the server will listen on once the config is in place."""
        settings = parse_server_config(server_config.contents.decode('utf8'))
        try:
            return int(settings['port'])
        except KeyError:
            return self.port()

    def write_tasks(self, config_file: ConfigFile) -> Sequence[Task]:
        user = self._context.service_user
        if not config_file.templated:
            return [Script(
                f"append to {config_file.path.name}",
                [tee_as_user(user, quote_path(config_file.path), config_file.lines(), append=True)],
                )]
        staging_path = PurePosixPath('/tmp', f'{config_file.path.name}_{make_random_id(8)}')
        return staged_write(config_file.contents, staging_path, config_file.path, user)


def staged_write(
        contents: bytes,
        staging_path: PurePosixPath,
        target: PurePosixPath,
        user: str,
        ) -> Sequence[Task]:
    """Upload as the SSH user, then move into place as root.

    The SSH user may not be able to write to the target dir directly.
    """
    owner = quote_arg(f'{user}:{user}')
    return [
        Put(contents, str(staging_path)),
        Script(f"move {target.name} into place", [
            f'mv {quote_path(staging_path)} {quote_path(target)}',
            f'chown {owner} {quote_path(target)}',
            f'chmod 644 {quote_path(target)}',
            ], escalate=True),
        ]


_setting_re = re.compile(r'\s*(?P<name>[A-Za-z_][A-Za-z0-9_.]*)\s*=?\s*(?P<value>.*?)\s*')


def parse_server_config(text: str) -> Mapping[str, str]:
    """Parse settings; a setting listed multiple times takes the last value.

    >>> parse_server_config("port = 5432\\n# port = 1\\nport = 6543  # Override\\nshared_buffers 64MB\\n")
    {'port': '6543', 'shared_buffers': '64MB'}
    >>> parse_server_config("listen_addresses = '*'\\n")
    {'listen_addresses': '*'}
    """
    settings = {}
    for line in text.splitlines():
        line = _strip_comment(line)
        if not line.strip():
            continue
        match = _setting_re.fullmatch(line)
        if match is None:
            _logger.debug("Skip unparsable line: %r", line)
            continue
        value = match['value']
        if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
            value = value[1:-1].replace("''", "'")
        settings[match['name'].lower()] = value
    return settings


def _strip_comment(line: str) -> str:
    in_quotes = False
    for i, char in enumerate(line):
        if char == "'":
            in_quotes = not in_quotes
        elif char == '#' and not in_quotes:
            return line[:i]
    return line


def _split_settings(raw: Optional[str]) -> Sequence[str]:
    if raw is None:
        return []
    return [line.strip() for line in raw.splitlines() if line.strip()]


def _join_lines(lines: Sequence[str]) -> bytes:
    return ''.join(line + '\n' for line in lines).encode('utf8')
