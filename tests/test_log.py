import json
import logging
import sys
import unittest

from calsync.log import JsonFormatter, resolve_log_level, setup_logging


class LogSetupTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._saved = (root.handlers[:], root.level)

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers[:] = self._saved[0]
        root.setLevel(self._saved[1])

    def test_explicit_level_wins_over_environment(self) -> None:
        self.assertEqual(resolve_log_level("debug", {"CALSYNC_LOG_LEVEL": "ERROR"}), logging.DEBUG)
        self.assertEqual(resolve_log_level(None, {"CALSYNC_LOG_LEVEL": "error"}), logging.ERROR)
        self.assertEqual(resolve_log_level(None, {}), logging.INFO)
        self.assertEqual(resolve_log_level("chatty", {}), logging.INFO)

    def test_setup_replaces_root_handlers(self) -> None:
        setup_logging("WARNING", json_output=True)
        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertIsInstance(root.handlers[0].formatter, JsonFormatter)
        self.assertEqual(root.level, logging.WARNING)
        self.assertEqual(logging.getLogger("googleapiclient.discovery_cache").level, logging.WARNING)

    def test_json_record_fields(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("calsync.importer", logging.ERROR, __file__, 1, "Failed %s", ("Gala",), exc_info)
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["level"], "ERROR")
        self.assertEqual(payload["logger"], "calsync.importer")
        self.assertEqual(payload["message"], "Failed Gala")
        self.assertIn("ValueError: boom", payload["exception"])
        self.assertTrue(payload["timestamp"].endswith("+00:00"))


if __name__ == "__main__":
    unittest.main()
