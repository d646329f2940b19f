import datetime as dt
import os
import tempfile
import textwrap
import unittest

from bson import ObjectId

from docexport.config.loader import load_config, parse_set_overrides, validate_for_export
from docexport.core.errors import ConfigError


class TestConfigLoader(unittest.TestCase):
    def _write(self, content: str) -> str:
        fd, path = tempfile.mkstemp(suffix=".yaml")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(textwrap.dedent(content))
        self.addCleanup(os.remove, path)
        return path

    def test_defaults_without_file(self):
        cfg = load_config("does-not-exist.yaml", env={})
        self.assertEqual(cfg.export.batch_size, 1000)
        self.assertEqual(cfg.export.datawrapper_key, "dataList")
        self.assertFalse(cfg.export.compression)
        self.assertTrue(cfg.export.include_metadata)
        self.assertEqual(cfg.export.filter, {})
        self.assertEqual(cfg.upload.max_workers, 1)

    def test_yaml_env_and_set_precedence(self):
        path = self._write(
            """
            mongo:
              uri: mongodb://db:27017
              database: shop
            s3:
              bucket: from-yaml
            export:
              collection: orders
              batch_size: 200
            """
        )
        env = {"DOCEXPORT_S3__BUCKET": "from-env", "DOCEXPORT_EXPORT__BATCH_SIZE": "300", "UNRELATED": "x"}
        cfg = load_config(path, env=env, set_overrides=["export.batch_size=400"])
        self.assertEqual(cfg.mongo.database, "shop")
        self.assertEqual(cfg.s3.bucket, "from-env")
        self.assertEqual(cfg.export.batch_size, 400)
        self.assertEqual(cfg.export.collection, "orders")

    def test_filter_from_json_text(self):
        env = {"DOCEXPORT_EXPORT__FILTER": '{"_id": {"$oid": "65f000000000000000000001"}, "n": {"$gt": 3}}'}
        cfg = load_config(None, env=env)
        self.assertEqual(cfg.export.filter, {"_id": ObjectId("65f000000000000000000001"), "n": {"$gt": 3}})

    def test_filter_from_yaml_mapping_resolves_extended_json(self):
        path = self._write(
            """
            export:
              filter:
                createdAt: {"$gte": {"$date": "2024-01-01T00:00:00Z"}}
            """
        )
        cfg = load_config(path, env={})
        value = cfg.export.filter["createdAt"]["$gte"]
        self.assertIsInstance(value, dt.datetime)
        self.assertEqual((value.year, value.month, value.day), (2024, 1, 1))

    def test_invalid_filter_raises_config_error(self):
        with self.assertRaises(ConfigError):
            load_config(None, env={"DOCEXPORT_EXPORT__FILTER": "[1, 2]"})
        with self.assertRaises(ConfigError):
            load_config(None, env={"DOCEXPORT_EXPORT__FILTER": "{not json"})

    def test_blank_wrapper_key_means_none(self):
        cfg = load_config(None, env={"DOCEXPORT_EXPORT__DATAWRAPPER_KEY": ""})
        self.assertIsNone(cfg.export.datawrapper_key)

    def test_numeric_collection_name_kept_as_text(self):
        cfg = load_config(None, env={"DOCEXPORT_EXPORT__COLLECTION": "2024"})
        self.assertEqual(cfg.export.collection, "2024")

    def test_batch_size_must_be_positive(self):
        with self.assertRaises(ConfigError):
            load_config(None, env={}, set_overrides=["export.batch_size=0"])

    def test_invalid_yaml(self):
        path = self._write("export: [unclosed\n")
        with self.assertRaises(ConfigError):
            load_config(path, env={})

    def test_parse_set_overrides(self):
        self.assertEqual(
            parse_set_overrides(["export.compression=true", "s3.sse=kms", 'export.filter={"a": 1}']),
            {"export": {"compression": True, "filter": {"a": 1}}, "s3": {"sse": "kms"}},
        )
        with self.assertRaises(ConfigError):
            parse_set_overrides(["no-equals"])

    def test_validate_for_export(self):
        cfg = load_config(None, env={"DOCEXPORT_S3__BUCKET": "b"})
        with self.assertRaises(ConfigError):
            validate_for_export(cfg)
        cfg = load_config(None, env={"DOCEXPORT_EXPORT__COLLECTION": "c"})
        with self.assertRaises(ConfigError):
            validate_for_export(cfg)
        cfg = load_config(None, env={"DOCEXPORT_EXPORT__COLLECTION": "c", "DOCEXPORT_S3__BUCKET": "b"})
        validate_for_export(cfg)


if __name__ == "__main__":
    unittest.main()
