# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import unittest

from postgresql_node import PackageManager
from postgresql_node import PackageResolver
from postgresql_node import parse_version
from postgresql_node import resolve_os_profile
from postgresql_node._os_profile import DebianFamily
from postgresql_node._os_profile import RedhatFamily
from remote_host import OsFacts


class TestResolveOsProfile(unittest.TestCase):

    def test_blank_arch(self):
        with self.assertLogs('postgresql_node._os_profile', logging.WARNING):
            profile = resolve_os_profile(OsFacts('centos', '7', '  '))
        self.assertEqual(profile.arch, 'x86_64')

    def test_missing_version(self):
        self.assertEqual(resolve_os_profile(OsFacts('fedora', None, 'x86_64')).major_version, '20')
        self.assertEqual(resolve_os_profile(OsFacts('ubuntu', '', 'x86_64')).major_version, '8')
        self.assertEqual(resolve_os_profile(OsFacts('centos', None, 'x86_64')).major_version, '6')

    def test_families(self):
        self.assertEqual(resolve_os_profile(OsFacts('ubuntu', '22.04', 'x86_64')).family, DebianFamily('ubuntu'))
        self.assertEqual(resolve_os_profile(OsFacts('debian', '12', 'x86_64')).family, DebianFamily('debian'))
        self.assertEqual(resolve_os_profile(OsFacts('rhel', '8.4', 'x86_64')).family, RedhatFamily('redhat'))

    def test_unknown_os_is_centos(self):
        profile = resolve_os_profile(OsFacts('plan9', '4', 'x86_64'))
        self.assertEqual(profile.family.distro, 'centos')
        self.assertTrue(profile.family.is_rpm_based())
        profile = resolve_os_profile(OsFacts(None, None, None))
        self.assertEqual(profile.family.distro, 'centos')
        self.assertEqual(profile.major_version, '6')
        self.assertEqual(profile.arch, 'x86_64')


class TestPackageResolver(unittest.TestCase):

    def setUp(self):
        self._version = parse_version('9.3-1')

    def test_ubuntu_never_gets_rpm_setup(self):
        profile = resolve_os_profile(OsFacts('ubuntu', '22.04', 'x86_64'))
        resolver = PackageResolver(profile, self._version)
        for manager in PackageManager:
            for command in resolver.repository_setup(manager):
                self.assertNotIn('rpm', command)
        [yum_setup] = resolver.repository_setup(PackageManager.YUM)
        self.assertTrue(yum_setup.startswith('echo '))

    def test_yum_repository(self):
        profile = resolve_os_profile(OsFacts('Scientific', '6.10', 'i686'))
        resolver = PackageResolver(profile, self._version)
        setup = resolver.repository_setup(PackageManager.YUM)
        self.assertIn(
            'curl -sSf http://yum.postgresql.org/9.3/redhat/rhel-6-i686/pgdg-sl93-9.3-1.noarch.rpm -o pgdg.rpm',
            setup[1])
        self.assertIn('rpm -Uvh pgdg.rpm', setup[2])

    def test_apt_repository(self):
        profile = resolve_os_profile(OsFacts('debian', '12', 'x86_64'))
        setup = PackageResolver(profile, self._version).repository_setup(PackageManager.APT)
        self.assertEqual(
            setup[1],
            'curl -sSf https://www.postgresql.org/media/keys/ACCC4CF8.asc | '
            'sudo -E -n -- tee /usr/share/keyrings/postgresql.asc > /dev/null')
        self.assertIn('/etc/os-release', setup[2])
        self.assertIn(
            'deb [signed-by=/usr/share/keyrings/postgresql.asc] '
            'http://apt.postgresql.org/pub/repos/apt/ $CODENAME-pgdg main',
            setup[3])
        self.assertFalse(any('apt-key' in command or 'lsb_release' in command for command in setup))

    def test_package_install(self):
        profile = resolve_os_profile(OsFacts('centos', '7', 'x86_64'))
        resolver = PackageResolver(profile, self._version)
        self.assertIn(
            'apt-get install -y -q postgresql-9.3',
            resolver.package_install(PackageManager.APT))
        self.assertEqual(
            resolver.package_install(PackageManager.YUM),
            'sudo -E -n -- yum -y install postgresql93 postgresql93-server')
        self.assertEqual(
            resolver.package_install(PackageManager.PORT),
            'sudo -E -n -- port install postgresql93 postgresql93-server')
        self.assertIsNone(resolver.package_install(None))
        self.assertEqual(resolver.repository_setup(PackageManager.PORT), [])
        self.assertEqual(resolver.repository_setup(None), [])


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    unittest.main()
