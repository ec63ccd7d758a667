# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import unittest
from pathlib import PurePosixPath

from postgresql_node import InstallPathNegotiator
from postgresql_node import ProvisioningContext
from postgresql_node import Relocation
from postgresql_node import RelocationFailed
from postgresql_node import parse_version
from postgresql_node.tests._fake_host import FakeHost
from remote_host import RemoteCommandFailed


def _make_context():
    return ProvisioningContext(
        version=parse_version('9.3-1'),
        install_dir=PurePosixPath('/home/user/installs/pg'),
        run_dir=PurePosixPath('/home/user/apps/pg'),
        service_user='postgres',
        alternate_root=PurePosixPath('/opt/pg-root'),
        app_id='app',
        node_id='node',
        )


class TestInstallPathNegotiator(unittest.TestCase):

    def setUp(self):
        self.host = FakeHost()
        self.context = _make_context()

    def test_accessible(self):
        relocation = InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertIsNone(relocation)
        [access_check] = self.host.scripts
        self.assertTrue(access_check.startswith('sudo -n -H -u postgres sh -c '))
        self.assertIn('ls /home/user/installs/pg', access_check)

    def test_inaccessible(self):
        self.host.add_rule(r'^ls ', 2)
        self.host.add_rule(r'^test -x ', 1)
        relocation = InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertEqual(relocation, Relocation(
            PurePosixPath('/opt/pg-root/install/9.3'),
            PurePosixPath('/opt/pg-root/apps/app/node'),
            ))
        [_access_check, _migrated_check, move_script] = self.host.scripts
        self.assertTrue(move_script.startswith('sudo -n sh -c '))
        lines = move_script.rstrip("'").splitlines()
        self.assertEqual(lines[1:], [
            'mkdir -p /opt/pg-root/install/9.3',
            'rm -rf /opt/pg-root/install/9.3',
            'mv /home/user/installs/pg /opt/pg-root/install/9.3',
            'rm -rf /home/user/installs/pg',
            'ln -s /opt/pg-root/install/9.3 /home/user/installs/pg',
            'mkdir -p /opt/pg-root/apps/app/node',
            'chown -R postgres:postgres /opt/pg-root',
            ])
        relocated = self.context.relocated(relocation)
        self.assertEqual(relocated.install_dir, relocation.install_dir)
        self.assertEqual(relocated.run_dir, relocation.run_dir)
        self.assertEqual(relocated.data_dir, PurePosixPath('/opt/pg-root/apps/app/node/data'))

    def test_already_migrated(self):
        self.host.add_rule(r'^ls ', 2)
        self.host.executables.add('/opt/pg-root/install/9.3/bin/pg_ctl')
        relocation = InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertEqual(relocation.install_dir, PurePosixPath('/opt/pg-root/install/9.3'))
        [_access_check, migrated_check] = self.host.scripts
        self.assertIn('test -x /opt/pg-root/install/9.3/bin/pg_ctl', migrated_check)

    def test_move_failed(self):
        self.host.add_rule(r'^ls ', 2)
        self.host.add_rule(r'^test -x ', 1)
        self.host.add_rule(r'^mv ', 1)
        with self.assertRaises(RelocationFailed) as caught:
            InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertIsInstance(caught.exception.__cause__, RemoteCommandFailed)

    def test_executables_follow_move(self):
        self.host.add_rule(r'^ls ', 2)
        self.host.executables.add('/home/user/installs/pg/bin/pg_ctl')
        InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertEqual(self.host.executables, {'/opt/pg-root/install/9.3/bin/pg_ctl'})
        relocation = InstallPathNegotiator(self.host, self.context).negotiate()
        self.assertEqual(relocation.install_dir, PurePosixPath('/opt/pg-root/install/9.3'))
        self.assertEqual(len(self.host.scripts_matching(r'^mv ')), 1)


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    unittest.main()
