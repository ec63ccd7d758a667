# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from typing import Optional

from postgresql_node._context import ProvisioningContext
from postgresql_node._context import Relocation
from remote_host import RemoteCommandFailed
from remote_host import RemoteHost
from remote_host import quote_arg
from remote_host import quote_path

_logger = logging.getLogger(__name__)


class RelocationFailed(Exception):
    pass


class InstallPathNegotiator:
    """Make the install dir reachable for the service account.

    The server runs as the service account, so the install dir and all its
    parents must be accessible to it. A dir in the home of the SSH user often
    is not. Then the install tree is moved to the alternate root and a link
    is left in its place, so the original path stays valid.

    The move is not crash-safe. If it fails midway, the state of both trees
    is undefined and must be inspected by a human.
    """

    def __init__(self, host: RemoteHost, context: ProvisioningContext):
        self._host = host
        self._context = context

    def negotiate(self) -> Optional[Relocation]:
        c = self._context
        user = c.service_user
        if self._host.run([f'ls {quote_path(c.install_dir)}'], as_user=user, allow_non_zero=True) == 0:
            _logger.debug("Install dir %s is accessible to %s", c.install_dir, user)
            return None
        relocation = Relocation(c.alternate_install_dir, c.alternate_run_dir)
        _logger.info(
            "Install dir %s is not accessible to %s; using %s instead",
            c.install_dir, user, relocation.install_dir)
        migrated_binary = relocation.install_dir / 'bin' / 'pg_ctl'
        if self._host.run([f'test -x {quote_path(migrated_binary)}'], allow_non_zero=True) == 0:
            _logger.info("Alternate install dir %s is already set up", relocation.install_dir)
            return relocation
        owner = quote_arg(f'{user}:{user}')
        try:
            self._host.run([
                f'mkdir -p {quote_path(relocation.install_dir)}',
                f'rm -rf {quote_path(relocation.install_dir)}',
                f'mv {quote_path(c.install_dir)} {quote_path(relocation.install_dir)}',
                f'rm -rf {quote_path(c.install_dir)}',
                f'ln -s {quote_path(relocation.install_dir)} {quote_path(c.install_dir)}',
                f'mkdir -p {quote_path(relocation.run_dir)}',
                f'chown -R {owner} {quote_path(c.alternate_root)}',
                ], escalate=True)
        except RemoteCommandFailed as e:
            raise RelocationFailed(
                f"Moving {c.install_dir} to {relocation.install_dir} failed; "
                f"state of both is undefined: {e}") from e
        return relocation
