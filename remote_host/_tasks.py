# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from typing import List
from typing import Optional
from typing import Sequence

from remote_host._host_interface import RemoteHost

_logger = logging.getLogger(__name__)


class Task(metaclass=ABCMeta):

    @abstractmethod
    def run(self, host: RemoteHost) -> int:
        pass


class Script(Task):

    def __init__(
            self,
            summary: str,
            commands: Sequence[str],
            as_user: Optional[str] = None,
            escalate: bool = False,
            allow_non_zero: bool = False,
            ):
        self._summary = summary
        self._commands = list(commands)
        self._as_user = as_user
        self._escalate = escalate
        self._allow_non_zero = allow_non_zero

    def __repr__(self):
        return f'{Script.__name__}({self._summary!r})'

    def run(self, host):
        return host.run(
            self._commands,
            as_user=self._as_user,
            escalate=self._escalate,
            allow_non_zero=self._allow_non_zero,
            )


class Put(Task):

    def __init__(self, contents: bytes, remote_path: str):
        self._contents = contents
        self._remote_path = remote_path

    def __repr__(self):
        return f'{Put.__name__}({len(self._contents)} bytes, {self._remote_path!r})'

    def run(self, host):
        host.copy_to(self._contents, self._remote_path)
        return 0


class TaskQueue:
    """Tasks without data dependencies between them, run in queued order.

    Nothing is sent to the host until wait_for_last() is called. The first
    failure stops the queue; the tasks after it are dropped.
    """

    def __init__(self, host: RemoteHost):
        self._host = host
        self._pending: List[Task] = []

    def queue(self, *tasks: Task):
        for task in tasks:
            _logger.debug("Queue %r", task)
            self._pending.append(task)

    def wait_for_last(self) -> Optional[int]:
        result = None
        pending, self._pending = self._pending, []
        for task in pending:
            _logger.info("Run %r on %r", task, self._host)
            result = task.run(self._host)
        return result
