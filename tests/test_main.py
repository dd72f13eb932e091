import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml
from click.testing import CliRunner

from calsync.main import cli


CSV_TEXT = (
    "title,start_date,start_time,end_date,end_time,location,description\n"
    "Opera Night,2024-01-15,19:00,,,Opera House,\n"
    "Spring Fair,2024-04-01,,2024-04-02,,Park,\n"
)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.config_path = self.root / "calsync.yaml"
        self.csv_path = self.root / "events.csv"
        self.csv_path.write_text(CSV_TEXT, encoding="utf-8")
        self.runner = CliRunner()
        patchers = [
            mock.patch("calsync.main.setup_logging"),
            mock.patch("calsync.main.load_dotenv"),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def invoke(self, *args: str, env=None):
        return self.runner.invoke(cli, ["--config", str(self.config_path), *args], env=env)

    def test_import_dry_run_prints_events(self) -> None:
        result = self.invoke("import", "-f", str(self.csv_path), "--dry-run")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Opera Night", result.output)
        self.assertIn("Spring Fair", result.output)
        self.assertIn("all-day", result.output)

    def test_import_dry_run_with_filters_and_stats(self) -> None:
        result = self.invoke(
            "import", "-f", str(self.csv_path), "-n", "-s", "--start-date", "2024-03-01"
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertNotIn("Opera Night", result.output)
        self.assertIn("Total Events: 1 (0 purchased)", result.output)

    def test_invalid_date_is_a_usage_error(self) -> None:
        result = self.invoke("import", "-f", str(self.csv_path), "--start-date", "01/15/2024")
        self.assertEqual(result.exit_code, 2)
        self.assertIn("Invalid date format", result.output)

    def test_missing_csv_is_a_usage_error(self) -> None:
        result = self.invoke("import", "-f", str(self.root / "absent.csv"))
        self.assertEqual(result.exit_code, 2)

    @mock.patch("calsync.importer.GoogleCalendarService")
    def test_delete_dry_run_previews_matches(self, service_cls) -> None:
        fetch = mock.Mock(
            return_value=(
                [{"id": "g1", "summary": "opera night", "start": {"date": "2024-01-15"}, "location": "Main"}],
                None,
            )
        )
        service_cls.return_value.page_fetcher.return_value = fetch
        result = self.invoke("import", "-f", str(self.csv_path), "--delete", "--dry-run")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("1 events would be DELETED:", result.output)
        self.assertIn("opera night", result.output)
        service_cls.return_value.delete_event.assert_not_called()

    def test_coda_import_without_token_reports_error(self) -> None:
        result = self.invoke("coda-import", "-d", "doc1", "-t", "grid-1", env={"CODA_API_TOKEN": None})
        self.assertEqual(result.exit_code, 1)
        self.assertIn("CODA_API_TOKEN", result.output)

    def test_init_and_show_config(self) -> None:
        result = self.invoke("init-config")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(self.config_path.exists())

        again = self.invoke("init-config")
        self.assertIn("Config already exists", again.output)

        data = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        data["coda"]["api_token"] = "tok-123"
        self.config_path.write_text(yaml.safe_dump(data), encoding="utf-8")

        shown = self.invoke("show-config", env={"CODA_API_TOKEN": None})
        self.assertEqual(shown.exit_code, 0, shown.output)
        self.assertIn("***", shown.output)
        self.assertNotIn("tok-123", shown.output)
        self.assertIn("America/Los_Angeles", shown.output)


if __name__ == "__main__":
    unittest.main()
