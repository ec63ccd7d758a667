# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import os
import re
import shlex
from pathlib import PurePosixPath
from typing import Optional
from typing import Sequence


def quote_arg(arg):
    return shlex.quote(str(arg))


def quote_path(path) -> str:
    """Quote path, keep leading tilde expandable.

    >>> print(quote_path('/opt/pg node/bin'))
    '/opt/pg node/bin'
    >>> print(quote_path('~postgres/q w/e'))
    ~postgres/'q w/e'
    >>> print(quote_path(PurePosixPath('/usr/lib/postgresql/9.3/bin')))
    /usr/lib/postgresql/9.3/bin
    """
    path = PurePosixPath(path)
    [first, *rest] = path.parts
    if re.fullmatch(r'~[\w.-]*', first):
        if not rest:
            return first
        return first + '/' + shlex.quote(str(PurePosixPath(*rest)))
    return shlex.quote(str(path))


def command_to_script(command):
    str_args = []
    for arg in command:
        if isinstance(arg, str):
            str_args.append(arg)
        elif isinstance(arg, int) and not isinstance(arg, bool):
            str_args.append(str(arg))
        elif isinstance(arg, os.PathLike):
            str_args.append(os.fspath(arg))
        else:
            raise TypeError(f"Unsupported arg type {arg} in command {command}")
    return shlex.join(str_args)


def build_script(
        commands: Sequence[str],
        as_user: Optional[str] = None,
        escalate: bool = False,
        ) -> str:
    """Join fragments into a script that stops at the first failure.

    >>> print(build_script(['cd /tmp', 'ls']))
    set -e
    cd /tmp
    ls
    >>> print(build_script(['ls /opt'], as_user='postgres'))
    sudo -n -H -u postgres sh -c 'set -e
    ls /opt'
    >>> print(build_script(['id -u'], escalate=True))
    sudo -n sh -c 'set -e
    id -u'
    """
    if not commands:
        raise ValueError("At least one command is required")
    script = '\n'.join(['set -e', *commands])
    if as_user is not None:
        return command_to_script(['sudo', '-n', '-H', '-u', as_user, 'sh', '-c', script])
    if escalate:
        return command_to_script(['sudo', '-n', 'sh', '-c', script])
    return script
