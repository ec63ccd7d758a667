# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import functools
import logging
from contextlib import contextmanager
from enum import Enum
from pathlib import PurePosixPath
from typing import Collection
from typing import Optional
from typing import Sequence

from postgresql_node._bash import alternatives
from postgresql_node._bash import chain
from postgresql_node._bash import dont_require_tty_for_sudo
from postgresql_node._bash import fail
from postgresql_node._bash import if_executable_else0
from postgresql_node._bash import if_executable_else1
from postgresql_node._bash import sudo
from postgresql_node._bash import sudo_as_user
from postgresql_node._bash import warn
from postgresql_node._config_files import DEFAULT_MAX_CONNECTIONS
from postgresql_node._config_files import DEFAULT_PORT
from postgresql_node._config_files import DEFAULT_SHARED_MEMORY
from postgresql_node._config_files import ConfigMaterializer
from postgresql_node._config_files import staged_write
from postgresql_node._context import ProvisioningContext
from postgresql_node._context import Relocation
from postgresql_node._context import parse_version
from postgresql_node._credentials import ServerCredentials
from postgresql_node._credentials import make_random_id
from postgresql_node._credentials import resolve_credentials
from postgresql_node._entity_store import EntityStore
from postgresql_node._install_path import InstallPathNegotiator
from postgresql_node._os_profile import PackageManager
from postgresql_node._os_profile import PackageResolver
from postgresql_node._os_profile import resolve_os_profile
from postgresql_node._roles import build_create_roles_query
from postgresql_node._roles import quote_identifier
from postgresql_node._roles import quote_literal
from postgresql_node._templates import TemplateRenderer
from postgresql_node._waiting import wait_for_truthy
from remote_host import RemoteHost
from remote_host import Script
from remote_host import TaskQueue
from remote_host import quote_arg
from remote_host import quote_path

_logger = logging.getLogger(__name__)

DEFAULT_VERSION = '9.3-1'
DEFAULT_SERVICE_USER = 'postgres'
DEFAULT_ALTERNATE_ROOT = '/opt/postgresql-node'
DEFAULT_INSTALL_BASE = 'postgresql-node/installs'
DEFAULT_RUN_BASE = 'postgresql-node/apps'
_LOG_TAIL_BYTES = 1024


class NodeState(Enum):
    UNINSTALLED = 'uninstalled'
    INSTALLING = 'installing'
    INSTALLED = 'installed'
    CUSTOMIZING = 'customizing'
    CONFIGURED = 'configured'
    RUNNING = 'running'
    STOPPED = 'stopped'


class InvalidTransition(Exception):
    pass


class PostgreSqlNode:
    """PostgreSQL server on a remote host, driven by shell commands only.

    The server runs as the service account, the commands run as the SSH user
    with sudo. Each operation is a single forward pass: the first failure
    aborts it and nothing is rolled back; what was done stays on the host
    for inspection. The state is kept in the entity store between runs.
    """

    def __init__(self, host: RemoteHost, store: EntityStore):
        self._host = host
        self._store = store
        self._context: Optional[ProvisioningContext] = None

    def __repr__(self):
        return f'<{self.__class__.__name__} {self._node_id()} on {self._host!r}>'

    @property
    def state(self) -> NodeState:
        return NodeState(self._store.get_sensor('service_state') or NodeState.UNINSTALLED.value)

    def context(self) -> ProvisioningContext:
        if self._context is None:
            self._context = self._initial_context()
        return self._context

    @functools.lru_cache()
    def credentials(self) -> ServerCredentials:
        return resolve_credentials(self._store)

    def start(self):
        if self.state in (NodeState.UNINSTALLED, NodeState.INSTALLING):
            self.install()
        if self.state in (NodeState.INSTALLED, NodeState.CUSTOMIZING):
            self.customize()
        self.launch()
        timeout_sec = self._store.get_int('start_timeout_sec', 120)
        wait_for_truthy(self.is_running, description=f"{self!r} is running", timeout_sec=timeout_sec)

    def install(self):
        with self._transition(
                'install',
                [NodeState.UNINSTALLED, NodeState.INSTALLING, NodeState.INSTALLED],
                NodeState.INSTALLING,
                NodeState.INSTALLED,
                ):
            c = self.context()
            self._save_paths(c)
            # Sudo is required: in customize, commands run as the service account.
            self._host.run([dont_require_tty_for_sudo()])
            linked_pg_ctl = c.binary_dir / 'pg_ctl'
            if self._host.run([f'test -x {quote_path(linked_pg_ctl)}'], allow_non_zero=True) == 0:
                # A relocated tree belongs to the service account, so it is not touched again.
                _logger.info("%r: %s is in place; skip package installation", self, linked_pg_ctl)
            else:
                profile = resolve_os_profile(self._host.os_facts())
                resolver = PackageResolver(profile, c.version)
                manager = self._find_package_manager()
                self._host.run(self._install_commands(resolver, manager))
            relocation = InstallPathNegotiator(self._host, c).negotiate()
            if relocation is not None:
                self._relocate(relocation)

    def customize(self):
        with self._transition(
                'customize',
                [NodeState.INSTALLED, NodeState.CUSTOMIZING],
                NodeState.CUSTOMIZING,
                NodeState.CONFIGURED,
                ):
            initialize_db = self._store.get_bool('initialize_db')
            roles = self._store.get_json('roles')
            roles_query = build_create_roles_query(roles) if initialize_db and roles else None
            c = self.context()
            # Some OSes start the server during package installation.
            self._host.run(
                [if_executable_else0('/etc/init.d/postgresql', '/etc/init.d/postgresql stop')],
                as_user=c.service_user,
                allow_non_zero=True,
                )
            self._host.run(self._prepare_data_dir_commands())
            materializer = ConfigMaterializer(self._store, c, self._template_renderer())
            server_config = materializer.server_config()
            access_control = materializer.access_control()
            queue = TaskQueue(self._host)
            queue.queue(*materializer.write_tasks(server_config))
            queue.queue(*materializer.write_tasks(access_control))
            # Files must be in place before the server is started for scripts.
            queue.wait_for_last()
            port = materializer.effective_port(server_config)
            self._store.set_sensor('postgresql_port', str(port))
            if initialize_db:
                self._initialize_new_database(port, roles_query)
            try:
                self._execute_creation_script(port)
            except Exception:
                self._log_tail_of_server_log()
                raise

    def launch(self):
        with self._transition(
                'launch',
                [NodeState.CONFIGURED, NodeState.STOPPED],
                None,
                NodeState.RUNNING,
                ):
            self._host.run([self._pg_ctl('start', wait=False)])

    def is_running(self) -> bool:
        if self._store.get_sensor('install_dir') is None:
            _logger.debug("%r: not installed, so not running", self)
            return False
        return self._host.run([self._pg_ctl('status')], allow_non_zero=True) == 0

    def stop(self):
        with self._transition('stop', [NodeState.RUNNING], None, NodeState.STOPPED):
            c = self.context()
            if self._store.get_bool('disconnect_on_stop'):
                self._host.run([self._pg_ctl('stop', '-m', 'immediate')])
            else:
                self._host.run([self._pg_ctl('stop')])
            # A signal from the service account reaches only its own processes.
            self._host.run([
                f'PID=$(head -n 1 {quote_path(c.pid_file)} 2>/dev/null || true)',
                'test -n "$PID" || exit 0',
                'kill -0 "$PID" 2>/dev/null || exit 0',
                'echo "Process $PID is still there after stop, terminate it"',
                'kill "$PID"',
                ], as_user=c.service_user, allow_non_zero=True)

    @contextmanager
    def _transition(
            self,
            name: str,
            allowed: Collection[NodeState],
            in_progress: Optional[NodeState],
            done: NodeState,
            ):
        state = self.state
        if state not in allowed:
            raise InvalidTransition(f"Cannot {name} {self!r} in state {state.value}")
        _logger.info("%r: %s: %s", self, name, state.value)
        if in_progress is not None:
            self._set_state(in_progress)
        yield
        self._set_state(done)
        _logger.info("%r: %s: done", self, name)

    def _set_state(self, state: NodeState):
        self._store.set_sensor('service_state', state.value)

    def _node_id(self) -> str:
        return self._store.get_config('node_id') or 'postgresql'

    def _initial_context(self) -> ProvisioningContext:
        version = parse_version(self._store.get_config('version') or DEFAULT_VERSION)
        app_id = self._store.get_config('app_id') or 'default'
        node_id = self._node_id()
        # Remembered only by install; queries must not fix the paths.
        install_dir = self._store.get_sensor('install_dir')
        if not install_dir:
            install_base = self._base_dir('install_base', DEFAULT_INSTALL_BASE)
            install_dir = str(install_base / f'PostgreSqlNode_{version.version}')
        run_dir = self._store.get_sensor('run_dir')
        if not run_dir:
            run_dir = str(self._base_dir('run_base', DEFAULT_RUN_BASE) / app_id / node_id)
        return ProvisioningContext(
            version=version,
            install_dir=PurePosixPath(install_dir),
            run_dir=PurePosixPath(run_dir),
            service_user=self._store.get_config('service_user') or DEFAULT_SERVICE_USER,
            alternate_root=PurePosixPath(self._store.get_config('alternate_root') or DEFAULT_ALTERNATE_ROOT),
            app_id=app_id,
            node_id=node_id,
            )

    def _base_dir(self, key: str, default: str) -> PurePosixPath:
        base = PurePosixPath(self._store.get_config(key) or default)
        if base.is_absolute():
            return base
        return self._host.home() / base

    def _relocate(self, relocation: Relocation):
        self._context = self.context().relocated(relocation)
        self._save_paths(self._context)

    def _save_paths(self, c: ProvisioningContext):
        self._store.set_sensor('install_dir', str(c.install_dir))
        self._store.set_sensor('run_dir', str(c.run_dir))
        self._store.set_sensor('log_file', str(c.log_file))

    def _find_package_manager(self) -> Optional[PackageManager]:
        for manager in PackageManager:
            if self._host.run([f'which {manager.value} > /dev/null 2>&1'], allow_non_zero=True) == 0:
                _logger.debug("%r: package manager: %s", self, manager.value)
                return manager
        _logger.warning("%r: no known package manager found", self)
        return None

    def _install_commands(self, resolver: PackageResolver, manager: Optional[PackageManager]) -> Sequence[str]:
        c = self.context()
        mm = c.version.major_minor
        candidates = c.candidate_binary_paths()
        find_binary = [
            'which pg_ctl > /dev/null 2>&1',
            *[f'test -x {quote_path(d / "pg_ctl")}' for d in candidates],
            ]
        package_install = resolver.package_install(manager)
        if package_install is not None:
            find_binary.append(chain(*resolver.repository_setup(manager), package_install))
        find_binary.append(warn(f"WARNING: failed to find or install postgresql {mm} binaries"))
        link_binary = [
            if_executable_else1('pg_ctl', chain(
                'PG_DIR=$(dirname "$(which pg_ctl)")',
                'echo "Found pg_ctl in $PG_DIR on path, link bin to it"',
                'ln -s "$PG_DIR" bin',
                )),
            *[
                if_executable_else1(str(d / 'pg_ctl'), chain(
                    'echo ' + quote_arg(f"Found pg_ctl in {d}, link bin to it"),
                    f'ln -s {quote_path(d)} bin',
                    ))
                for d in candidates],
            fail(
                f"WARNING: failed to find postgresql {mm} binaries for pg_ctl, "
                f"may already have another version installed; aborting",
                9),
            ]
        return [
            f'mkdir -p {quote_path(c.install_dir)}',
            f'cd {quote_path(c.install_dir)}',
            # Left over from an earlier incomplete install.
            'rm -f bin',
            alternatives(*find_binary),
            alternatives(*link_binary),
            ]

    def _prepare_data_dir_commands(self) -> Sequence[str]:
        c = self.context()
        owner = quote_arg(f'{c.service_user}:{c.service_user}')
        data_dir = quote_path(c.data_dir)
        initdb = quote_path(c.binary_dir / 'initdb')
        return [
            sudo(f'mkdir -p {data_dir}'),
            sudo(f'chown {owner} {data_dir}'),
            sudo(f'chmod 700 {data_dir}'),
            sudo(f'touch {quote_path(c.log_file)}'),
            sudo(f'chown {owner} {quote_path(c.log_file)}'),
            sudo(f'touch {quote_path(c.pid_file)}'),
            sudo(f'chown {owner} {quote_path(c.pid_file)}'),
            alternatives(
                sudo(f'test -e {quote_path(c.data_dir / "PG_VERSION")}'),
                chain(f'test -e {initdb}', sudo_as_user(c.service_user, f'{initdb} -D {data_dir}')),
                self._pg_ctl('initdb', wait=True),
                ),
            ]

    def _template_renderer(self) -> TemplateRenderer:
        c = self.context()
        credentials = self.credentials()
        return TemplateRenderer({
            'version': c.version.version,
            'major_minor_version': c.version.major_minor,
            'install_dir': str(c.install_dir),
            'run_dir': str(c.run_dir),
            'data_dir': str(c.data_dir),
            'log_file': str(c.log_file),
            'pid_file': str(c.pid_file),
            'service_user': c.service_user,
            'port': self._store.get_int('postgresql_port', DEFAULT_PORT),
            'max_connections': self._store.get_int('max_connections', DEFAULT_MAX_CONNECTIONS),
            'shared_memory': self._store.get_config('shared_memory') or DEFAULT_SHARED_MEMORY,
            'database': credentials.database_name,
            'username': credentials.admin_username,
            })

    def _initialize_new_database(self, port: int, roles_query: Optional[str]):
        c = self.context()
        credentials = self.credentials()
        create_user = (
            f"CREATE USER {quote_identifier(credentials.admin_username)} "
            f"WITH PASSWORD {quote_literal(credentials.admin_password)}; ")
        create_database = (
            f"CREATE DATABASE {quote_identifier(credentials.database_name)} "
            f"OWNER {quote_identifier(credentials.admin_username)}")
        commands = [
            f'cd {quote_path(c.install_dir)}',
            self._pg_ctl('start', wait=True),
            self._psql(port, '--command=' + quote_arg(create_user)),
            self._psql(port, '--command=' + quote_arg(create_database)),
            ]
        if roles_query is not None:
            # The server accepts SQL only while running, so roles go in the same bracket.
            commands.append(self._psql(port, '--command=' + quote_arg(roles_query)))
        commands.append(self._pg_ctl('stop', wait=True))
        _logger.info("%r: create user %s and database %s", self, credentials.admin_username, credentials.database_name)
        self._host.run(commands)

    def _creation_script(self) -> Optional[bytes]:
        contents = self._store.get_config('creation_script_contents')
        if contents is not None:
            return contents.encode('utf8')
        url = self._store.get_config('creation_script_url')
        if url is not None:
            return self._template_renderer().render(url)
        return None

    def _execute_creation_script(self, port: int):
        contents = self._creation_script()
        if contents is None:
            _logger.debug("%r: no creation script", self)
            return
        c = self.context()
        staging_path = PurePosixPath('/tmp', f'creation-script.sql_{make_random_id(8)}')
        queue = TaskQueue(self._host)
        queue.queue(*staged_write(contents, staging_path, c.creation_script, c.service_user))
        queue.queue(Script("run creation script", [
            f'cd {quote_path(c.install_dir)}',
            self._pg_ctl('start', wait=True),
            self._psql(port, '--file', quote_path(c.creation_script)),
            self._pg_ctl('stop', wait=True),
            ]))
        queue.wait_for_last()

    def _log_tail_of_server_log(self):
        log_file = self.context().log_file
        try:
            contents = self._host.copy_from(str(log_file))
        except OSError as e:
            _logger.debug("Error reading %s: %s", log_file, e)
            return
        tail = contents[-_LOG_TAIL_BYTES:].decode('utf8', errors='backslashreplace')
        _logger.info("Tail of %s:\n%s", log_file, tail)

    def _pg_ctl(self, command: str, *options: str, wait: Optional[bool] = None) -> str:
        c = self.context()
        args = [
            quote_path(c.binary_dir / 'pg_ctl'),
            '-D', quote_path(c.data_dir),
            '-l', quote_path(c.log_file),
            ]
        if wait is not None:
            args.append('-w' if wait else '-W')
        args.extend(options)
        args.append(command)
        return sudo_as_user(c.service_user, ' '.join(args))

    def _psql(self, port: int, *args: str) -> str:
        c = self.context()
        psql = quote_path(c.binary_dir / 'psql')
        return sudo_as_user(c.service_user, ' '.join([psql, '-p', str(port), *args]))
