# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import shlex
from abc import ABCMeta
from abc import abstractmethod
from pathlib import PurePosixPath
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple

from remote_host._exceptions import RemoteCommandFailed
from remote_host._posix_script import build_script

_logger = logging.getLogger(__name__)


class OsFacts(NamedTuple):
    """Raw facts about the target OS; any of them may be unknown."""

    name: Optional[str]
    version: Optional[str]
    arch: Optional[str]


def parse_os_release(text: str, arch: Optional[str] = None) -> OsFacts:
    """Extract OS name and version from /etc/os-release contents.

    >>> parse_os_release('NAME="Ubuntu"\\nID=ubuntu\\nVERSION_ID="22.04"\\n', 'x86_64')
    OsFacts(name='ubuntu', version='22.04', arch='x86_64')
    >>> parse_os_release('# Nothing useful\\n')
    OsFacts(name=None, version=None, arch=None)
    """
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        name, sep, value = line.partition('=')
        if not sep:
            continue
        try:
            [value] = shlex.split(value) or ['']
        except ValueError:
            _logger.debug("Unparsable os-release line: %r", line)
            continue
        fields[name] = value
    return OsFacts(
        fields.get('ID') or fields.get('NAME') or None,
        fields.get('VERSION_ID') or None,
        arch or None,
        )


class RemoteHost(metaclass=ABCMeta):
    """Command execution channel to a single target host.

    Every call is synchronous. Timeouts and transport errors are the business
    of the implementation; they propagate to the caller unchanged.
    """

    def run(
            self,
            commands: Sequence[str],
            as_user: Optional[str] = None,
            escalate: bool = False,
            allow_non_zero: bool = False,
            ) -> int:
        script = build_script(commands, as_user=as_user, escalate=escalate)
        returncode, output = self._execute(script)
        if returncode != 0:
            if allow_non_zero:
                _logger.debug("%r: tolerated exit status %d", self, returncode)
            else:
                raise RemoteCommandFailed(self, script, returncode, output)
        return returncode

    @abstractmethod
    def _execute(self, script: str) -> Tuple[int, bytes]:
        """Run a shell script, return exit status and combined output."""
        pass

    @abstractmethod
    def copy_to(self, contents: bytes, remote_path: str):
        pass

    @abstractmethod
    def copy_from(self, remote_path: str) -> bytes:
        pass

    @abstractmethod
    def os_facts(self) -> OsFacts:
        pass

    @abstractmethod
    def home(self) -> PurePosixPath:
        pass
