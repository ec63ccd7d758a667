# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import time
import unittest

from postgresql_node import WaitTimeout
from postgresql_node import wait_for_truthy


class TestWaitForTruthy(unittest.TestCase):

    def test_eventually(self):
        values = iter([None, 0, 'ready'])
        result = wait_for_truthy(lambda: next(values), "ready", timeout_sec=5, max_delay_sec=0.05)
        self.assertEqual(result, 'ready')

    def test_timeout(self):
        started_at = time.monotonic()
        with self.assertRaisesRegex(WaitTimeout, "never"):
            wait_for_truthy(lambda: False, "never", timeout_sec=0.2, max_delay_sec=0.05)
        self.assertLess(time.monotonic() - started_at, 2)


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')
    unittest.main()
