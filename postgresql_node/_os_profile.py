# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from enum import Enum
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from postgresql_node._bash import chain
from postgresql_node._bash import sudo
from postgresql_node._context import PostgreSqlVersion
from remote_host import OsFacts

_logger = logging.getLogger(__name__)

DEFAULT_ARCH = 'x86_64'


class PackageManager(Enum):
    APT = 'apt-get'
    YUM = 'yum'
    PORT = 'port'


class OsFamily(metaclass=ABCMeta):

    def __init__(self, distro: str):
        self.distro = distro

    def __repr__(self):
        return f'{self.__class__.__name__}({self.distro!r})'

    def __eq__(self, other):
        return type(self) is type(other) and self.distro == other.distro

    def __hash__(self):
        return hash((type(self), self.distro))

    @abstractmethod
    def baseline_major_version(self) -> str:
        pass

    @abstractmethod
    def is_rpm_based(self) -> bool:
        pass


class RedhatFamily(OsFamily):

    def baseline_major_version(self):
        return '20' if self.distro == 'fedora' else '6'

    def is_rpm_based(self):
        return True


class DebianFamily(OsFamily):

    def baseline_major_version(self):
        return '8'

    def is_rpm_based(self):
        return False


class UnknownFamily(RedhatFamily):
    """Not recognized; the commands for CentOS are the most likely to work."""

    def __init__(self):
        super().__init__('centos')


class OsProfile(NamedTuple):

    family: OsFamily
    major_version: str
    arch: str


def resolve_os_profile(facts: OsFacts) -> OsProfile:
    """Fill the gaps in OS facts with defaults, never fail.

    >>> resolve_os_profile(OsFacts('CentOS', '7.9.2009', 'x86_64'))
    OsProfile(family=RedhatFamily('centos'), major_version='7', arch='x86_64')
    >>> resolve_os_profile(OsFacts('Red Hat Enterprise Linux', None, 'aarch64'))
    OsProfile(family=RedhatFamily('redhat'), major_version='6', arch='aarch64')
    >>> resolve_os_profile(OsFacts('Scientific', '6.10', None))
    OsProfile(family=RedhatFamily('sl'), major_version='6', arch='x86_64')
    """
    family = _family(facts.name)
    arch = (facts.arch or '').strip()
    if not arch:
        _logger.warning(
            "Insufficient architecture information %r; treating as %s",
            facts.arch, DEFAULT_ARCH)
        arch = DEFAULT_ARCH
    version = (facts.version or '').strip()
    if not version:
        major_version = family.baseline_major_version()
        _logger.warning(
            "Insufficient OS version information %r for %r; treating as %s",
            facts.version, family, major_version)
    else:
        major_version, _, _ = version.partition('.')
    return OsProfile(family, major_version, arch)


def _family(name: Optional[str]) -> OsFamily:
    name = (name or '').strip().lower()
    if name in ('ubuntu', 'debian'):
        return DebianFamily(name)
    if name == 'rhel' or 'red hat' in name:
        return RedhatFamily('redhat')
    if name == 'centos':
        return RedhatFamily('centos')
    if name == 'sl' or name.startswith('scientific'):
        return RedhatFamily('sl')
    if name == 'fedora':
        return RedhatFamily('fedora')
    # TODO: Fail instead when a strict mode is wanted; unknown RPM systems are guessed as CentOS.
    _logger.debug("Insufficient OS family information %r; treating as centos", name)
    return UnknownFamily()


class PackageResolver:
    """Repository setup and package installation for one manager at a time."""

    def __init__(self, profile: OsProfile, version: PostgreSqlVersion):
        self._profile = profile
        self._version = version

    def __repr__(self):
        return f'<{self.__class__.__name__} {self._profile} {self._version.version}>'

    def repository_setup(self, manager: Optional[PackageManager]) -> Sequence[str]:
        if manager is PackageManager.APT:
            return self._apt_repository()
        if manager is PackageManager.YUM:
            return self._yum_repository()
        return []

    def package_install(self, manager: Optional[PackageManager]) -> Optional[str]:
        return self._install(manager, self._package_names(manager))

    def _install(self, manager: Optional[PackageManager], packages: str) -> Optional[str]:
        if manager is PackageManager.APT:
            return chain(
                sudo('apt-get update -q'),
                sudo(f'env DEBIAN_FRONTEND=noninteractive apt-get install -y -q {packages}'),
                )
        if manager is PackageManager.YUM:
            return sudo(f'yum -y install {packages}')
        if manager is PackageManager.PORT:
            return sudo(f'port install {packages}')
        return None

    def _package_names(self, manager: Optional[PackageManager]) -> str:
        if manager is PackageManager.APT:
            return f'postgresql-{self._version.major_minor}'
        short = self._version.short
        return f'postgresql{short} postgresql{short}-server'

    def _install_curl(self, manager: PackageManager) -> str:
        return f'which curl > /dev/null 2>&1 || {self._install(manager, "curl")}'

    def _apt_repository(self) -> Sequence[str]:
        key_url = 'https://www.postgresql.org/media/keys/ACCC4CF8.asc'
        keyring = '/usr/share/keyrings/postgresql.asc'
        source = (
            f'deb [signed-by={keyring}] http://apt.postgresql.org/pub/repos/apt/ '
            '$CODENAME-pgdg main')
        return [
            self._install_curl(PackageManager.APT),
            f'curl -sSf {key_url} | ' + sudo(f'tee {keyring} > /dev/null'),
            # lsb_release is not installed on minimal images.
            'CODENAME=$(. /etc/os-release && echo "$VERSION_CODENAME")',
            f'echo "{source}" | ' + sudo('tee /etc/apt/sources.list.d/pgdg.list > /dev/null'),
            ]

    def _yum_repository(self) -> Sequence[str]:
        family = self._profile.family
        if not family.is_rpm_based():
            return ['echo "Skip yum repository setup, this is not an RPM environment"']
        mm = self._version.major_minor
        short = self._version.short
        rpm_url = (
            f'http://yum.postgresql.org/{mm}/redhat/'
            f'rhel-{self._profile.major_version}-{self._profile.arch}/'
            f'pgdg-{family.distro}{short}-{self._version.version}.noarch.rpm')
        _logger.debug("Repository RPM for %r: %s", self._profile, rpm_url)
        return [
            self._install_curl(PackageManager.YUM),
            sudo(f'curl -sSf {rpm_url} -o pgdg.rpm'),
            sudo('rpm -Uvh pgdg.rpm'),
            ]
