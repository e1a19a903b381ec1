"""
Tests for module toggles and backend settings read from module_config.yaml.
"""
import os
import shutil
import tempfile
from unittest import mock

from django.test import SimpleTestCase

from salesdesk.module_loader import backend_config, enabled_apps, load_enabled_modules


class ModuleConfigTests(SimpleTestCase):
    def setUp(self):
        self.config_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.config_dir, ignore_errors=True)
        self.addCleanup(backend_config.cache_clear)
        self.addCleanup(load_enabled_modules.cache_clear)

    def use_config(self, text, **env):
        path = os.path.join(self.config_dir, "module_config.yaml")
        with open(path, "w") as handle:
            handle.write(text)
        patcher = mock.patch.dict(os.environ, {"SALESDESK_MODULE_CONFIG": path, **env})
        patcher.start()
        self.addCleanup(patcher.stop)
        load_enabled_modules.cache_clear()
        backend_config.cache_clear()

    def test_optional_module_can_be_switched_off(self):
        self.use_config("modules:\n  catalog:\n    enabled: false\n  suppliers: false\n")
        modules = load_enabled_modules()
        self.assertFalse(modules["catalog"]["enabled"])
        self.assertFalse(modules["suppliers"]["enabled"])
        self.assertEqual(enabled_apps(), ["portal", "solutions.tickets"])

    def test_required_modules_ignore_toggles(self):
        self.use_config("modules:\n  portal_core: false\n  tickets:\n    enabled: false\n")
        modules = load_enabled_modules()
        self.assertTrue(modules["portal_core"]["enabled"])
        self.assertTrue(modules["tickets"]["enabled"])
        self.assertTrue(modules["catalog"]["enabled"])

    def test_module_without_its_dependency_is_disabled(self):
        registry = {
            "portal_core": {"app": "portal", "optional": True, "depends_on": []},
            "catalog": {"app": "solutions.catalog", "optional": True, "depends_on": ["portal_core"]},
        }
        with mock.patch.dict("salesdesk.module_loader.MODULE_REGISTRY", registry, clear=True):
            self.use_config("modules:\n  portal_core: false\n")
            modules = load_enabled_modules()
        self.assertFalse(modules["portal_core"]["enabled"])
        self.assertFalse(modules["catalog"]["enabled"])

    def test_missing_file_enables_everything(self):
        with mock.patch.dict(os.environ, {"SALESDESK_MODULE_CONFIG": os.path.join(self.config_dir, "absent.yaml")}):
            load_enabled_modules.cache_clear()
            apps = enabled_apps()
        self.assertEqual(apps, ["portal", "solutions.tickets", "solutions.catalog", "solutions.suppliers"])

    def test_backend_environment_overrides(self):
        self.use_config(
            "backend:\n  base_url: http://api.internal:4000/\n  timeout: 5\n",
            SALESDESK_BACKEND_TIMEOUT="2.5",
        )
        config = backend_config()
        self.assertEqual(config["base_url"], "http://api.internal:4000")
        self.assertEqual(config["timeout"], 2.5)
        self.assertEqual(config["login_path"], "/auth/login")

        backend_config.cache_clear()
        with mock.patch.dict(os.environ, {"SALESDESK_BACKEND_URL": "https://backend.example.com"}):
            self.assertEqual(backend_config()["base_url"], "https://backend.example.com")
