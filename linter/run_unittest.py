# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import fnmatch
import importlib
import logging
import os
import sys
import unittest
from argparse import ArgumentParser
from pathlib import Path
from pathlib import PurePath
from typing import Sequence

_packages = ['remote_host', 'postgresql_node']


def main(args: Sequence[str]):
    parser = ArgumentParser(description="Run unit tests of the packages.")
    parser.add_argument(
        'package',
        nargs='*',
        default=_packages,
        help='package to test, default: %(default)s',
        )
    parsed_args = parser.parse_args(args)
    suite = unittest.TestSuite()
    for package in parsed_args.package:
        for python_file in _walk(_root / package / 'tests', 'test_*.py'):
            module_name = _build_module_name(python_file)
            logging.debug("Import: %s", module_name)
            module = importlib.import_module(module_name)
            scope = unittest.defaultTestLoader.loadTestsFromModule(module)
            if scope.countTestCases() > 0:
                logging.debug("Will run: %r as %r", module, scope)
                suite.addTests(scope)
            else:
                logging.debug("Skip empty: %r", module)
    if os.getenv('DRY_RUN'):
        _logger.info("Dry run: would run %d tests", suite.countTestCases())
        return 0
    logging.info("Run %d tests", suite.countTestCases())
    runner = unittest.TextTestRunner(stream=sys.stdout, verbosity=2)
    result = runner.run(suite)
    if result.wasSuccessful():
        return 0
    else:
        return 10


def _walk(tests_dir: Path, pattern: str):
    """Collect test modules; test dirs are flat.

    >>> _walk(_root / 'remote_host' / 'tests', 'test_*.py')  # doctest: +ELLIPSIS
    [...Path...test_posix_script.py...Path...test_tasks.py...]
    """
    if not tests_dir.is_dir():
        logging.info("No tests in %s", tests_dir)
        return []
    result = []
    for f in sorted(tests_dir.iterdir()):
        if f.is_file() and fnmatch.fnmatch(f.name, pattern):
            logging.debug("Collect: %s", f)
            result.append(f)
        else:
            logging.debug("Skip: %s", f)
    return result


def _build_module_name(path: PurePath):
    """Build module name from path.

    >>> _build_module_name(_root / 'postgresql_node/tests/test_roles.py')
    'postgresql_node.tests.test_roles'
    """
    path = path.relative_to(_root)
    path = path.with_suffix('')
    return '.'.join(path.parts)


_logger = logging.getLogger(__name__)
_root = Path(__file__).parent.parent
assert str(_root) in sys.path

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    exit(main(sys.argv[1:]))
