import importlib
import os
from unittest import mock

from django.test import SimpleTestCase

from storefront import settings as project_settings


class SettingsFromEnvironmentTests(SimpleTestCase):
    def reload_with(self, **env):
        self.addCleanup(importlib.reload, project_settings)
        with mock.patch.dict(os.environ, env):
            if "DJANGO_DEBUG" not in env:
                os.environ.pop("DJANGO_DEBUG", None)
            return importlib.reload(project_settings)

    def test_debug_is_off_unless_asked_for(self):
        self.assertFalse(self.reload_with().DEBUG)

    def test_debug_can_be_switched_on(self):
        self.assertTrue(self.reload_with(DJANGO_DEBUG="1").DEBUG)

    def test_env_bool_reads_common_spellings(self):
        with mock.patch.dict(os.environ, {"FLAG_ON": " Yes ", "FLAG_OFF": "0"}):
            self.assertTrue(project_settings.env_bool("FLAG_ON"))
            self.assertFalse(project_settings.env_bool("FLAG_OFF", True))
            self.assertTrue(project_settings.env_bool("FLAG_MISSING", True))
