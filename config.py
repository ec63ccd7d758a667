# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import fnmatch
import logging
from configparser import ConfigParser
from pathlib import Path
from typing import Mapping

_logger = logging.getLogger(__name__)


def read_node_config(target_host: str, *paths: Path) -> Mapping[str, str]:
    """Read and resolve overrides for a target host according to versions.

    Section names are masks of target host names, like "[db-??.lan]".
    Optionally add ";v123" to sections like "[db-??.lan;v45]".
    If not specified, "v0" is assumed.
    Higher versions override lower versions.
    Within a version, later files override earlier ones.

    If no paths are given, config.ini next to this file and the per-user
    config are read.
    """
    if not paths:
        paths = default_config_paths()
    config_parts = []
    for path_i, path in enumerate(paths):
        # Values are passed as is; interpolation would break "%" in passwords.
        config_parser = ConfigParser(interpolation=None)
        config_parser.read(path)
        sections = config_parser.sections()
        for section_i, section in enumerate(sections):
            mask, version = _parse_section_header(section)
            if fnmatch.fnmatch(target_host, mask):
                _logger.info("Config %s: section %s: read for %s", path, section, target_host)
                items = config_parser.items(section)
                config_parts.append((version, path_i, section_i, items))
            else:
                _logger.debug("Config %s: section %s: skip for %s", path, section, target_host)
    config_parts.sort(key=lambda part: part[:3])
    config = {}
    for _version, _path_i, _section_i, items in config_parts:
        config.update(items)
    return config


def default_config_paths():
    return [
        Path(__file__).with_name('config.ini'),
        Path('~/.config/postgresql_node.ini').expanduser(),
        ]


def _parse_section_header(section):
    """Split section name into host mask and version.

    >>> _parse_section_header('defaults')
    ('*', 0)
    >>> _parse_section_header('db-*.lan;v2')
    ('db-*.lan', 2)
    """
    if section == 'defaults':
        return '*', 0
    else:
        mask, semicolon, extra = section.partition(';')
        if not extra:
            return mask, 0
        elif extra.startswith('v'):
            try:
                return mask, int(extra[1:])
            except ValueError:
                raise ValueError(f"Cannot parse {extra} in {section}")
        else:
            raise ValueError(f"Unknown {extra} in {section}")


if __name__ == '__main__':
    import sys

    for k, v in read_node_config(sys.argv[1]).items():
        print(k + '=' + v)
