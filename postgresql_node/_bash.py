# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Shell fragments composed into provisioning scripts.

Fragments are plain strings so that what is run on the host can be copied
from the log and run by hand.

>>> print(chain('which pg_ctl', 'echo found'))
{ which pg_ctl && echo found ; }
>>> print(alternatives('test -x /usr/bin/pg_ctl', fail('not found', 9)))
{ test -x /usr/bin/pg_ctl || { echo 'not found' >&2 ; exit 9 ; } ; }
>>> print(sudo_as_user('postgres', '/usr/bin/initdb -D /data'))
sudo -E -n -u postgres -s -- /usr/bin/initdb -D /data
>>> print(if_executable_else1('/usr/bin/pg_ctl', 'ln -s /usr/bin bin'))
if which /usr/bin/pg_ctl > /dev/null 2>&1 ; then ln -s /usr/bin bin ; else false ; fi
"""
import shlex
from typing import Iterable


def chain(*commands: str) -> str:
    return '{ ' + ' && '.join(commands) + ' ; }'


def alternatives(*commands: str) -> str:
    return '{ ' + ' || '.join(commands) + ' ; }'


def if_executable_else0(executable: str, command: str) -> str:
    """Run command if executable is found; succeed otherwise."""
    return f'if which {shlex.quote(executable)} > /dev/null 2>&1 ; then {command} ; fi'


def if_executable_else1(executable: str, command: str) -> str:
    """Run command if executable is found; fail otherwise."""
    return f'if which {shlex.quote(executable)} > /dev/null 2>&1 ; then {command} ; else false ; fi'


def sudo(command: str) -> str:
    return f'sudo -E -n -- {command}'


def sudo_as_user(user: str, command: str) -> str:
    return f'sudo -E -n -u {shlex.quote(user)} -s -- {command}'


def warn(message: str) -> str:
    return f'echo {shlex.quote(message)} >&2'


def fail(message: str, code: int = 1) -> str:
    return '{ ' + warn(message) + f' ; exit {code:d} ; }}'


def tee_as_user(user: str, path: str, lines: Iterable[str], append: bool = False) -> str:
    """Write lines to a file which only the user may be able to write.

    >>> print(tee_as_user('postgres', '/d/pg_hba.conf', ['host all all 0.0.0.0/0 md5'], append=True))
    printf '%s\\n' 'host all all 0.0.0.0/0 md5' | sudo -E -n -u postgres -s -- tee -a /d/pg_hba.conf > /dev/null
    """
    quoted_lines = ' '.join(shlex.quote(line) for line in lines)
    tee = 'tee -a' if append else 'tee'
    return f"printf '%s\\n' {quoted_lines} | " + sudo_as_user(user, f'{tee} {path}') + ' > /dev/null'


def dont_require_tty_for_sudo() -> str:
    """Let sudo work over a non-interactive SSH session."""
    return sudo(
        "sh -c 'if [ -e /etc/sudoers ] ; then "
        'sed -i.bak "s/.*requiretty.*/#removed-require-tty/" /etc/sudoers ; fi\'')
