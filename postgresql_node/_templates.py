# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from pathlib import Path
from typing import Any
from typing import Mapping
from urllib.parse import unquote
from urllib.parse import urlparse

import requests
from jinja2 import Environment
from jinja2 import StrictUndefined

_logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Fetch a template by URL and render it with node attributes.

    Undefined variables are errors: a silently empty setting may leave
    the server unreachable.
    """

    def __init__(self, namespace: Mapping[str, Any], timeout_sec: float = 30):
        self._namespace = dict(namespace)
        self._timeout_sec = timeout_sec
        self._environment = Environment(
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
            )

    def render(self, url: str) -> bytes:
        source = self.fetch(url)
        rendered = self._environment.from_string(source).render(self._namespace)
        _logger.debug("Rendered %s: %d characters", url, len(rendered))
        return rendered.encode('utf8')

    def fetch(self, url: str) -> str:
        parsed = urlparse(url)
        if parsed.scheme in ('http', 'https'):
            _logger.info("Download template %s", url)
            response = requests.get(url, timeout=self._timeout_sec)
            response.raise_for_status()
            return response.text
        if parsed.scheme == 'file':
            path = Path(unquote(parsed.path))
        elif parsed.scheme == '':
            path = Path(url).expanduser()
        else:
            raise ValueError(f"Unsupported template URL scheme: {url}")
        _logger.info("Read template %s", path)
        return path.read_text(encoding='utf8')
