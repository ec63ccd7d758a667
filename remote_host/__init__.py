# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Command-execution channel to a provisioned host.

Everything the provisioning code does on a target goes through RemoteHost:
shell fragments joined into one script, optionally run as another user or
with escalation, and plain file transfer. Nothing else touches the target.
"""
from remote_host._exceptions import RemoteCommandFailed
from remote_host._exceptions import SshNotConnected
from remote_host._host_interface import OsFacts
from remote_host._host_interface import RemoteHost
from remote_host._host_interface import parse_os_release
from remote_host._posix_script import build_script
from remote_host._posix_script import command_to_script
from remote_host._posix_script import quote_arg
from remote_host._posix_script import quote_path
from remote_host._ssh_host import SshHost
from remote_host._tasks import Put
from remote_host._tasks import Script
from remote_host._tasks import Task
from remote_host._tasks import TaskQueue

__all__ = [
    'OsFacts',
    'Put',
    'RemoteCommandFailed',
    'RemoteHost',
    'Script',
    'SshHost',
    'SshNotConnected',
    'Task',
    'TaskQueue',
    'build_script',
    'command_to_script',
    'parse_os_release',
    'quote_arg',
    'quote_path',
    ]
