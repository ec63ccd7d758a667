# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from config import read_node_config


class TestReadNodeConfig(unittest.TestCase):

    def setUp(self):
        self._dir = Path(tempfile.mkdtemp())
        self._defaults = self._dir / 'config.ini'
        self._defaults.write_text(
            "[defaults]\n"
            "version = 9.3-1\n"
            "postgresql_port = 5432\n"
            "\n"
            "[db-*.lan]\n"
            "postgresql_port = 5433\n"
            "\n"
            "[db-02.lan;v2]\n"
            "version = 16-1\n"
            )
        self._user = self._dir / 'user.ini'
        self._user.write_text(
            "[db-*.lan]\n"
            "postgresql_port = 6000\n"
            "password = 100%secret\n"
            "\n"
            "[db-02.lan;v1]\n"
            "version = 15-1\n"
            )

    def tearDown(self):
        shutil.rmtree(self._dir)

    def test_defaults_only(self):
        config = read_node_config('web-01.lan', self._defaults, self._user)
        self.assertEqual(config, {'version': '9.3-1', 'postgresql_port': '5432'})

    def test_host_mask(self):
        config = read_node_config('db-01.lan', self._defaults, self._user)
        self.assertEqual(config['postgresql_port'], '6000')
        self.assertEqual(config['password'], '100%secret')
        self.assertEqual(config['version'], '9.3-1')

    def test_higher_version_wins(self):
        config = read_node_config('db-02.lan', self._defaults, self._user)
        self.assertEqual(config['version'], '16-1')

    def test_missing_file(self):
        config = read_node_config('db-01.lan', self._defaults, self._dir / 'missing.ini')
        self.assertEqual(config['postgresql_port'], '5433')

    def test_invalid_section(self):
        self._user.write_text("[db-*.lan;x1]\nversion = 1-1\n")
        with self.assertRaises(ValueError):
            read_node_config('db-01.lan', self._user)


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    unittest.main()
