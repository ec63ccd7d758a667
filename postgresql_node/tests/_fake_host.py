# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import re
from pathlib import PurePosixPath
from typing import Dict
from typing import List
from typing import Set
from typing import Tuple

from remote_host import OsFacts
from remote_host import RemoteHost

_logger = logging.getLogger(__name__)

_pg_ctl_re = re.compile(r'/pg_ctl -D \S+ -l \S+(?: -[wW])?(?: -m \w+)? (?P<command>initdb|start|stop|status)\b')
_test_executable_re = re.compile(r'set -e\ntest -x (?P<path>\S+)')
_linked_bin_re = re.compile(r'^cd (?P<dir>\S+)\nrm -f bin$', re.MULTILINE)
_move_re = re.compile(r'^mv (?P<source>\S+) (?P<target>\S+)$', re.MULTILINE)


class FakeHost(RemoteHost):
    """Records scripts, answers from rules, simulates the server.

    Exit statuses of scripts are chosen by rules: the most recently added
    rule whose regex matches the script wins.
    pg_ctl calls not matched by a rule change the simulated server state.
    Executables are tracked by path: a lone test -x checks them, a
    successful install links pg_ctl and a successful mv moves them.
    After stop, status keeps reporting the server running for a number of
    polls, like a server that takes its time to shut down.
    """

    def __init__(
            self,
            os_facts: OsFacts = OsFacts('ubuntu', '22.04', 'x86_64'),
            home: str = '/home/user',
            ):
        self.scripts: List[str] = []
        self.files: Dict[str, bytes] = {}
        self.executables: Set[str] = set()
        self.server_running = False
        self.shutdown_polls = 0
        self._os_facts = os_facts
        self._home = PurePosixPath(home)
        self._rules: List[Tuple[re.Pattern, int]] = []
        self._polls_until_stopped = 0

    def __repr__(self):
        return f'<{self.__class__.__name__}>'

    def add_rule(self, pattern: str, returncode: int):
        self._rules.insert(0, (re.compile(pattern, re.MULTILINE), returncode))

    def scripts_matching(self, pattern: str) -> List[str]:
        return [s for s in self.scripts if re.search(pattern, s, re.MULTILINE)]

    def _execute(self, script):
        self.scripts.append(script)
        _logger.debug("Fake run:\n%s", script)
        for pattern, returncode in self._rules:
            if pattern.search(script):
                break
        else:
            returncode = self._simulate(script)
        if returncode != 0:
            return returncode, f"Fake exit status {returncode}\n".encode()
        for match in _linked_bin_re.finditer(script):
            self.executables.add(match['dir'] + '/bin/pg_ctl')
        for match in _move_re.finditer(script):
            self._move_executables(match['source'], match['target'])
        return 0, b''

    def _simulate(self, script):
        match = _test_executable_re.fullmatch(script)
        if match is not None:
            return 0 if match['path'] in self.executables else 1
        returncode = 0
        for match in _pg_ctl_re.finditer(script):
            returncode = self._pg_ctl(match['command'])
        return returncode

    def _move_executables(self, source, target):
        for path in list(self.executables):
            if path.startswith(source + '/'):
                self.executables.remove(path)
                self.executables.add(target + path[len(source):])

    def _pg_ctl(self, command):
        if command == 'start':
            self.server_running = True
            self._polls_until_stopped = 0
            return 0
        if command == 'stop':
            if not self.server_running:
                return 1
            self.server_running = False
            self._polls_until_stopped = self.shutdown_polls
            return 0
        if command == 'status':
            if self.server_running:
                return 0
            if self._polls_until_stopped > 0:
                self._polls_until_stopped -= 1
                return 0
            return 3
        return 0

    def copy_to(self, contents, remote_path):
        self.files[str(remote_path)] = bytes(contents)

    def copy_from(self, remote_path):
        try:
            return self.files[str(remote_path)]
        except KeyError:
            raise FileNotFoundError(f"No such file: {remote_path}")

    def os_facts(self):
        return self._os_facts

    def home(self):
        return self._home
