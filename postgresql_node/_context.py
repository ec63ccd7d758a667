# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from pathlib import PurePosixPath
from typing import NamedTuple
from typing import Sequence


class PostgreSqlVersion(NamedTuple):
    """Package version and the forms of it used in paths and package names.

    >>> parse_version('9.3-1')
    PostgreSqlVersion(version='9.3-1', major_minor='9.3', short='93')
    >>> parse_version('16-2')
    PostgreSqlVersion(version='16-2', major_minor='16', short='16')
    >>> parse_version('9.3')  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
    ...
    ValueError: Version must look like 9.3-1, got '9.3'
    """

    version: str
    major_minor: str
    short: str


def parse_version(version: str) -> PostgreSqlVersion:
    major_minor, dash, revision = version.strip().rpartition('-')
    if not dash or not major_minor or not revision:
        raise ValueError(f"Version must look like 9.3-1, got {version!r}")
    return PostgreSqlVersion(version.strip(), major_minor, major_minor.replace('.', ''))


class Relocation(NamedTuple):

    install_dir: PurePosixPath
    run_dir: PurePosixPath


class ProvisioningContext(NamedTuple):
    """Paths and version of one node; replaced, never mutated."""

    version: PostgreSqlVersion
    install_dir: PurePosixPath
    run_dir: PurePosixPath
    service_user: str
    alternate_root: PurePosixPath
    app_id: str
    node_id: str

    @property
    def binary_dir(self) -> PurePosixPath:
        return self.install_dir / 'bin'

    @property
    def data_dir(self) -> PurePosixPath:
        return self.run_dir / 'data'

    @property
    def log_file(self) -> PurePosixPath:
        return self.run_dir / 'postgresql.log'

    @property
    def pid_file(self) -> PurePosixPath:
        return self.run_dir / 'postgresql.pid'

    @property
    def creation_script(self) -> PurePosixPath:
        return self.run_dir / 'creation-script.sql'

    @property
    def alternate_install_dir(self) -> PurePosixPath:
        return self.alternate_root / 'install' / self.version.major_minor

    @property
    def alternate_run_dir(self) -> PurePosixPath:
        return self.alternate_root / 'apps' / self.app_id / self.node_id

    def candidate_binary_paths(self) -> Sequence[PurePosixPath]:
        """Directories that may hold pg_ctl, most specific first."""
        mm = self.version.major_minor
        short = self.version.short
        return [
            self.alternate_install_dir / 'bin',
            PurePosixPath('/usr/lib/postgresql', mm, 'bin'),
            PurePosixPath('/opt/local/lib', f'postgresql{short}', 'bin'),
            PurePosixPath(f'/usr/pgsql-{mm}', 'bin'),
            PurePosixPath('/usr/local/bin'),
            PurePosixPath('/usr/bin'),
            PurePosixPath('/bin'),
            ]

    def relocated(self, relocation: Relocation) -> 'ProvisioningContext':
        return self._replace(install_dir=relocation.install_dir, run_dir=relocation.run_dir)
