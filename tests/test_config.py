import unittest

from tests.base import dry_run_settings

from storefront_auth.config import AuthMode, parse_duration, resolve_auth_mode


class ConfigTests(unittest.TestCase):
    def test_parse_duration(self):
        self.assertEqual(parse_duration("7d"), 7 * 86400)
        self.assertEqual(parse_duration("12h"), 12 * 3600)
        self.assertEqual(parse_duration("30m"), 1800)
        self.assertEqual(parse_duration("45s"), 45)
        self.assertEqual(parse_duration("90"), 90)
        with self.assertRaises(ValueError):
            parse_duration("soon")

    def test_debug_code_exposure_requires_non_production(self):
        self.assertTrue(dry_run_settings(otp_debug=True).expose_debug_code)
        self.assertFalse(dry_run_settings(otp_debug=False).expose_debug_code)
        self.assertFalse(
            dry_run_settings(otp_debug=True, app_env="production").expose_debug_code
        )

    def test_auth_mode_resolution(self):
        self.assertIs(resolve_auth_mode(dry_run_settings()), AuthMode.OTP)
        self.assertIs(resolve_auth_mode(dry_run_settings(auth_mode="bypass")), AuthMode.BYPASS)
        with self.assertRaises(RuntimeError):
            resolve_auth_mode(dry_run_settings(auth_mode="bypass", app_env="production"))
        with self.assertRaises(RuntimeError):
            resolve_auth_mode(dry_run_settings(auth_mode="sometimes"))
