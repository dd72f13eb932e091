import unittest
from datetime import date, time, timedelta

from calsync.record_mapper import (
    InvalidTemporal,
    MissingField,
    SourceRow,
    build_description,
    map_coda_row,
    map_csv_row,
    map_rows,
    shift_time,
)


def _coda_row(**overrides):
    values = {
        "Display": "Gala",
        "performanceDate": "2024-07-17T19:30:00.000-07:00",
        "venue": "Symphony Hall",
        "Organization": "City Symphony",
        "Purchased": "Yes",
        "kenticoUrl": "https://example.org/gala",
        "artists": "A. Soloist",
        "works": None,
    }
    values.update(overrides)
    return SourceRow(values)


class SourceRowTests(unittest.TestCase):
    def test_blank_values_read_as_absent(self) -> None:
        row = SourceRow({"a": "  ", "b": None, "c": " x "})
        self.assertIsNone(row.get("a"))
        self.assertIsNone(row.get("b"))
        self.assertIsNone(row.get("missing"))
        self.assertEqual(row.get("c"), "x")

    def test_scalars_render_as_text(self) -> None:
        row = SourceRow({"n": 5, "f": 2.5, "flag": True, "items": ["a", "b"]})
        self.assertEqual(row.get("n"), "5")
        self.assertEqual(row.get("f"), "2.5")
        self.assertEqual(row.get("flag"), "true")
        self.assertEqual(row.get("items"), '["a", "b"]')

    def test_require_raises_missing_field(self) -> None:
        with self.assertRaises(MissingField) as ctx:
            SourceRow({"title": ""}).require("title")
        self.assertEqual(ctx.exception.name, "title")


class CodaMapperTests(unittest.TestCase):
    def test_maps_full_row(self) -> None:
        event = map_coda_row(_coda_row())
        self.assertEqual(event.title, "Gala")
        self.assertEqual(event.start_date, date(2024, 7, 17))
        self.assertEqual(event.end_date, date(2024, 7, 17))
        self.assertEqual(event.start_time, time(19, 30))
        self.assertEqual(event.end_time, time(22, 0))
        self.assertEqual(event.location, "Symphony Hall")
        self.assertEqual(event.organization, "City Symphony")
        self.assertTrue(event.purchased)
        self.assertEqual(event.description, "https://example.org/gala\nA. Soloist")

    def test_derived_end_time_wraps_without_rolling_the_date(self) -> None:
        event = map_coda_row(_coda_row(performanceDate="2024-07-17 22:30"))
        self.assertEqual(event.end_time, time(1, 0))
        self.assertEqual(event.end_date, date(2024, 7, 17))

    def test_custom_default_duration(self) -> None:
        event = map_coda_row(_coda_row(performanceDate="2024-07-17 19:00"), timedelta(minutes=90))
        self.assertEqual(event.end_time, time(20, 30))

    def test_date_only_value_is_all_day(self) -> None:
        event = map_coda_row(_coda_row(performanceDate="2024-07-17"))
        self.assertTrue(event.is_all_day)
        self.assertIsNone(event.end_time)

    def test_optional_fields_default(self) -> None:
        row = SourceRow({"Display": "Recital", "performanceDate": "2024-07-17"})
        event = map_coda_row(row)
        self.assertIsNone(event.description)
        self.assertIsNone(event.location)
        self.assertIsNone(event.organization)
        self.assertFalse(event.purchased)

    def test_purchased_flag_values(self) -> None:
        self.assertTrue(map_coda_row(_coda_row(Purchased="TRUE")).purchased)
        self.assertTrue(map_coda_row(_coda_row(Purchased=True)).purchased)
        self.assertFalse(map_coda_row(_coda_row(Purchased="No")).purchased)
        self.assertFalse(map_coda_row(_coda_row(Purchased=False)).purchased)

    def test_missing_title(self) -> None:
        with self.assertRaises(MissingField) as ctx:
            map_coda_row(_coda_row(Display="   "))
        self.assertEqual(ctx.exception.name, "Display")

    def test_invalid_performance_date(self) -> None:
        with self.assertRaises(InvalidTemporal) as ctx:
            map_coda_row(_coda_row(performanceDate="next friday"))
        self.assertEqual(ctx.exception.field, "performanceDate")
        self.assertEqual(ctx.exception.raw, "next friday")


class CsvMapperTests(unittest.TestCase):
    def test_timed_row_with_explicit_end(self) -> None:
        row = SourceRow(
            {
                "title": "Opera",
                "start_date": "01/15/2024",
                "start_time": "7:00 PM",
                "end_date": "",
                "end_time": "22:15",
                "location": "Opera House",
                "description": "",
            }
        )
        event = map_csv_row(row)
        self.assertEqual(event.start_date, date(2024, 1, 15))
        self.assertEqual(event.end_date, date(2024, 1, 15))
        self.assertEqual(event.start_time, time(19, 0))
        self.assertEqual(event.end_time, time(22, 15))
        self.assertEqual(event.location, "Opera House")
        self.assertIsNone(event.description)
        self.assertIsNone(event.organization)
        self.assertFalse(event.purchased)

    def test_missing_end_time_is_derived(self) -> None:
        row = SourceRow({"title": "Opera", "start_date": "2024-01-15", "start_time": "19:00"})
        event = map_csv_row(row)
        self.assertEqual(event.end_time, time(21, 30))

    def test_end_time_without_start_time_is_all_day(self) -> None:
        row = SourceRow({"title": "Fair", "start_date": "2024-01-15", "end_time": "19:00"})
        event = map_csv_row(row)
        self.assertTrue(event.is_all_day)

    def test_multi_day_all_day(self) -> None:
        row = SourceRow({"title": "Fair", "start_date": "2024-01-15", "end_date": "2024-01-17"})
        event = map_csv_row(row)
        self.assertEqual(event.end_date, date(2024, 1, 17))
        self.assertTrue(event.is_all_day)

    def test_end_before_start_is_rejected(self) -> None:
        row = SourceRow({"title": "Fair", "start_date": "2024-01-15", "end_date": "2024-01-10"})
        with self.assertRaises(InvalidTemporal) as ctx:
            map_csv_row(row)
        self.assertEqual(ctx.exception.field, "end_date")

    def test_missing_start_date(self) -> None:
        with self.assertRaises(MissingField) as ctx:
            map_csv_row(SourceRow({"title": "Fair"}))
        self.assertEqual(ctx.exception.name, "start_date")

    def test_invalid_time(self) -> None:
        row = SourceRow({"title": "Fair", "start_date": "2024-01-15", "start_time": "noon"})
        with self.assertRaises(InvalidTemporal) as ctx:
            map_csv_row(row)
        self.assertEqual(ctx.exception.field, "start_time")
        self.assertEqual(ctx.exception.raw, "noon")


class HelperTests(unittest.TestCase):
    def test_shift_time_wraps_midnight(self) -> None:
        self.assertEqual(shift_time(time(23, 0), timedelta(minutes=150)), time(1, 30))

    def test_build_description_is_none_when_empty(self) -> None:
        self.assertIsNone(build_description(SourceRow({})))
        self.assertEqual(build_description(SourceRow({"works": "Symphony No. 5"})), "Symphony No. 5")

    def test_map_rows_skips_failing_rows_and_continues(self) -> None:
        rows = [
            SourceRow({"title": "One", "start_date": "2024-01-01"}),
            SourceRow({"title": "", "start_date": "2024-01-02"}),
            SourceRow({"title": "Three", "start_date": "bogus"}),
            SourceRow({"title": "Four", "start_date": "2024-01-04"}),
        ]
        with self.assertLogs("calsync.record_mapper", level="WARNING"):
            events, errors = map_rows(rows, map_csv_row)
        self.assertEqual([event.title for event in events], ["One", "Four"])
        self.assertEqual(len(errors), 2)
        self.assertTrue(errors[0].startswith("row 2:"))
        self.assertTrue(errors[1].startswith("row 3:"))


if __name__ == "__main__":
    unittest.main()
