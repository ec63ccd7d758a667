# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import argparse
import logging
import sys
from pathlib import Path
from typing import Mapping
from typing import Sequence

from config import default_config_paths
from config import read_node_config
from postgresql_node import EntityStore
from postgresql_node import PostgreSqlNode
from remote_host import SshHost

_logger = logging.getLogger(__name__)

_actions = {
    'start': PostgreSqlNode.start,
    'install': PostgreSqlNode.install,
    'customize': PostgreSqlNode.customize,
    'launch': PostgreSqlNode.launch,
    'stop': PostgreSqlNode.stop,
    }


def main(args: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(description="Provision PostgreSQL on a remote host over SSH.")
    parser.add_argument('host', help="Target host name; also selects config sections")
    parser.add_argument('action', choices=[*_actions, 'status'])
    parser.add_argument(
        '--config',
        type=Path,
        action='append',
        help="INI file; may be repeated; default: config.ini and ~/.config/postgresql_node.ini")
    parsed_args = parser.parse_args(args)
    config = read_node_config(parsed_args.host, *(parsed_args.config or default_config_paths()))
    host = _make_ssh_host(parsed_args.host, config)
    sensors_dir = Path(config.get('sensors_dir') or '~/.cache/postgresql_node').expanduser()
    store = EntityStore(config, sensors_dir / f'{parsed_args.host}.json')
    node = PostgreSqlNode(host, store)
    try:
        if parsed_args.action == 'status':
            if node.is_running():
                print(f"{node!r}: running")
                return 0
            print(f"{node!r}: not running")
            return 3
        _actions[parsed_args.action](node)
        _logger.info("%r: %s: state %s", node, parsed_args.action, node.state.value)
        return 0
    finally:
        host.close()


def _make_ssh_host(hostname: str, config: Mapping[str, str]) -> SshHost:
    key_file = config.get('ssh_private_key_file')
    if key_file:
        key = Path(key_file).expanduser().read_text(encoding='ascii')
    else:
        key = None
    return SshHost(
        hostname,
        int(config.get('ssh_port') or 22),
        config.get('ssh_user') or 'root',
        key=key,
        )


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    exit(main(sys.argv[1:]))
