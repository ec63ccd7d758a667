# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from postgresql_node import EntityStore


class TestEntityStore(unittest.TestCase):

    def setUp(self):
        self._dir = Path(tempfile.mkdtemp())
        self._sensors_file = self._dir / 'sensors' / 'node.json'

    def tearDown(self):
        shutil.rmtree(self._dir)

    def test_config_values(self):
        store = EntityStore({
            'port': ' 5433 ',
            'blank': '   ',
            'flag': 'yes',
            'roles': '{"r": {"properties": "LOGIN"}}',
            })
        self.assertEqual(store.get_config('port'), '5433')
        self.assertIsNone(store.get_config('blank'))
        self.assertIsNone(store.get_config('missing'))
        self.assertEqual(store.get_int('port', 5432), 5433)
        self.assertEqual(store.get_int('blank', 5432), 5432)
        self.assertTrue(store.get_bool('flag'))
        self.assertFalse(store.get_bool('missing'))
        self.assertEqual(store.get_json('roles'), {'r': {'properties': 'LOGIN'}})
        self.assertIsNone(store.get_json('missing'))

    def test_invalid_bool(self):
        with self.assertRaises(ValueError):
            EntityStore({'flag': 'perhaps'}).get_bool('flag')

    def test_get_or_set_sensor(self):
        store = EntityStore({})
        self.assertEqual(store.get_or_set_sensor('install_dir', '/a'), '/a')
        self.assertEqual(store.get_or_set_sensor('install_dir', '/b'), '/a')
        store.set_sensor('install_dir', '/c')
        self.assertEqual(store.get_sensor('install_dir'), '/c')

    def test_sensors_saved(self):
        store = EntityStore({}, self._sensors_file)
        self.assertIsNone(store.get_sensor('service_state'))
        store.set_sensor('service_state', 'installed')
        self.assertEqual(json.loads(self._sensors_file.read_text()), {'service_state': 'installed'})
        self.assertEqual(EntityStore({}, self._sensors_file).get_sensor('service_state'), 'installed')
        self.assertEqual(list(self._sensors_file.parent.iterdir()), [self._sensors_file])


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    unittest.main()
