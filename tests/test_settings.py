from __future__ import annotations

from pathlib import Path
import io
import json
import tempfile
import textwrap
import unittest

from scaffolder.config_loader import find_config_file, load_config_file, normalize_string_list
from scaffolder.console import Console
from scaffolder.registry import DEFAULT_REGISTRY
from scaffolder.settings import ENV_CATALOG, ENV_HOME, ENV_LOG_LEVEL, ENV_REGISTRY, Settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.home = Path(self.temp_dir.name) / "home"
        self.home.mkdir()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_defaults_without_config(self) -> None:
        settings = Settings.load({ENV_HOME: str(self.home)})
        self.assertEqual(settings.home, self.home)
        self.assertEqual(settings.registry, DEFAULT_REGISTRY)
        self.assertIsNone(settings.catalog)
        self.assertEqual(settings.log_level, "info")
        self.assertEqual(settings.template_root, self.home / "template")
        self.assertEqual(settings.store_root, self.home / "template" / "node_modules")

    def test_reads_toml_global_section(self) -> None:
        (self.home / "config.toml").write_text(
            textwrap.dedent(
                """
                [global]
                registry = "https://registry.example.com"
                catalog = "catalog.yaml"
                log_level = "debug"
                store_dir = "cache"
                """
            )
        )
        settings = Settings.load({ENV_HOME: str(self.home)})
        self.assertEqual(settings.registry, "https://registry.example.com")
        self.assertEqual(settings.catalog, "catalog.yaml")
        self.assertEqual(settings.log_level, "debug")
        self.assertEqual(settings.store_root, self.home / "cache")

    def test_environment_overrides_config(self) -> None:
        (self.home / "config.json").write_text(json.dumps({"global": {"registry": "https://a.test"}}))
        settings = Settings.load(
            {
                ENV_HOME: str(self.home),
                ENV_REGISTRY: "https://b.test",
                ENV_CATALOG: "https://catalog.test/list",
                ENV_LOG_LEVEL: "warn",
            }
        )
        self.assertEqual(settings.registry, "https://b.test")
        self.assertEqual(settings.catalog, "https://catalog.test/list")
        self.assertEqual(settings.log_level, "warn")

    def test_conflicting_config_formats(self) -> None:
        (self.home / "config.toml").write_text("")
        (self.home / "config.yaml").write_text("")
        with self.assertRaises(ValueError):
            Settings.load({ENV_HOME: str(self.home)})


class ConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_empty_yaml_loads_as_mapping(self) -> None:
        path = self.root / "config.yml"
        path.write_text("")
        self.assertEqual(load_config_file(path), {})

    def test_non_mapping_root(self) -> None:
        path = self.root / "config.json"
        path.write_text("[1, 2]")
        with self.assertRaises(TypeError):
            load_config_file(path)

    def test_unsupported_extension(self) -> None:
        path = self.root / "config.ini"
        path.write_text("[global]")
        with self.assertRaises(ValueError):
            load_config_file(path)

    def test_find_config_file(self) -> None:
        self.assertIsNone(find_config_file(self.root, "config"))
        (self.root / "config.yaml").write_text("a: 1")
        self.assertEqual(find_config_file(self.root, "config"), self.root / "config.yaml")

    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(" a "), ["a"])
        self.assertEqual(normalize_string_list(["a", " ", "b"]), ["a", "b"])
        with self.assertRaises(TypeError):
            normalize_string_list({"a": 1})


class ConsoleTests(unittest.TestCase):
    def test_levels_filter_output(self) -> None:
        out, err = io.StringIO(), io.StringIO()
        console = Console("warn", stream=out, err_stream=err)
        console.info("hidden")
        console.debug("hidden")
        console.warn("careful")
        console.error("broken")
        self.assertEqual(out.getvalue(), "")
        self.assertEqual(err.getvalue(), "[WARN] careful\n[ERROR] broken\n")

    def test_aliases_and_unknown_levels(self) -> None:
        self.assertEqual(Console("verbose").level_name, "debug")
        self.assertEqual(Console("WARNING").level_name, "warn")
        with self.assertRaises(ValueError):
            Console("loud")

    def test_dry_messages_only_in_dry_run(self) -> None:
        out = io.StringIO()
        Console("info", stream=out).dry("skipped")
        Console("info", dry_run=True, stream=out).dry("recorded")
        self.assertEqual(out.getvalue(), "[DRY] recorded\n")


if __name__ == "__main__":
    unittest.main()
