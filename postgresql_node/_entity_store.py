# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import json
import logging
from configparser import ConfigParser
from pathlib import Path
from typing import Mapping
from typing import Optional

_logger = logging.getLogger(__name__)


class EntityStore:
    """Declared configuration and discovered facts (sensors) of one node.

    Configuration is read-only. Sensors keep what was discovered or generated
    during a run so that later runs see the same values. When a file is
    given, sensors are saved to it on every change.
    """

    def __init__(self, config: Mapping[str, str], sensors_file: Optional[Path] = None):
        self._config = dict(config)
        self._sensors_file = sensors_file
        self._sensors = self._load()

    def __repr__(self):
        return f'<{self.__class__.__name__} {self._sensors_file}>'

    def get_config(self, key: str) -> Optional[str]:
        value = self._config.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_int(self, key: str, default: int) -> int:
        value = self.get_config(key)
        return default if value is None else int(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_config(key)
        if value is None:
            return default
        try:
            return ConfigParser.BOOLEAN_STATES[value.lower()]
        except KeyError:
            raise ValueError(f"Not a boolean for {key}: {value!r}")

    def get_json(self, key: str):
        value = self.get_config(key)
        if value is None:
            return None
        return json.loads(value)

    def get_sensor(self, key: str) -> Optional[str]:
        return self._sensors.get(key)

    def set_sensor(self, key: str, value: str):
        _logger.debug("%r: sensor %s = %r", self, key, value)
        self._sensors[key] = value
        self._save()

    def get_or_set_sensor(self, key: str, default: str) -> str:
        value = self.get_sensor(key)
        if value:
            return value
        _logger.debug("%r: no sensor %s; using a default", self, key)
        self.set_sensor(key, default)
        return default

    def _load(self):
        if self._sensors_file is None:
            return {}
        try:
            text = self._sensors_file.read_text(encoding='utf8')
        except FileNotFoundError:
            _logger.info("No saved sensors at %s", self._sensors_file)
            return {}
        return json.loads(text)

    def _save(self):
        if self._sensors_file is None:
            return
        self._sensors_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._sensors_file.with_name(self._sensors_file.name + '.tmp')
        tmp.write_text(json.dumps(self._sensors, indent=4, sort_keys=True), encoding='utf8')
        tmp.replace(self._sensors_file)
