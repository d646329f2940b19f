import datetime as dt
import unittest

from docexport.config.models import ExportSettings
from docexport.core.errors import ConfigError
from docexport.core.ids import default_object_key, join_key
from docexport.export.orchestrator import ExportRequest

NOW = dt.datetime(2024, 3, 9, 7, 5, 1, tzinfo=dt.timezone.utc)


class TestRequestFromSettings(unittest.TestCase):
    def test_default_key_generation(self):
        self.assertEqual(default_object_key("orders", compressed=False, now=NOW), "exports/orders/orders_2024-03-09_07-05-01.json")
        self.assertEqual(default_object_key("orders", compressed=True, now=NOW), "exports/orders/orders_2024-03-09_07-05-01.json.gz")
        self.assertEqual(default_object_key("o", compressed=False, prefix="/team/", now=NOW), "team/exports/o/o_2024-03-09_07-05-01.json")

    def test_join_key(self):
        self.assertEqual(join_key(None, "/a/b"), "a/b")
        self.assertEqual(join_key("p/", "a"), "p/a")

    def test_from_settings(self):
        settings = ExportSettings(collection="orders", filter='{"a": 1}', compression=True, batch_size=10, datawrapper_key="rows")
        req = ExportRequest.from_settings(settings, now=NOW)
        self.assertEqual(req.key, "exports/orders/orders_2024-03-09_07-05-01.json.gz")
        self.assertEqual(dict(req.filter), {"a": 1})
        self.assertEqual(req.wrapper_key, "rows")
        self.assertTrue(req.compress)
        self.assertEqual(req.batch_size, 10)

    def test_explicit_key_with_prefix(self):
        settings = ExportSettings(collection="orders", key="daily/orders.json", prefix="tenant-a")
        self.assertEqual(ExportRequest.from_settings(settings).key, "tenant-a/daily/orders.json")

    def test_missing_collection(self):
        with self.assertRaises(ConfigError):
            ExportRequest.from_settings(ExportSettings())

    def test_describe(self):
        req = ExportRequest(collection="c", key="k", filter={"x": 1})
        self.assertEqual(req.describe()["filter"], '{"x": 1}')


if __name__ == "__main__":
    unittest.main()
