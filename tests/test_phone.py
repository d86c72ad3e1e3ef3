import unittest

import tests.base  # noqa: F401

from storefront_auth.errors import InvalidPhone
from storefront_auth.services.phone import mask_phone, normalize_phone


class NormalizePhoneTests(unittest.TestCase):
    def test_local_and_international_forms_match(self):
        local = normalize_phone("0501234567", "+971")
        international = normalize_phone("+971501234567", "+971")
        self.assertEqual(local, "+971501234567")
        self.assertEqual(local, international)

    def test_strips_formatting(self):
        self.assertEqual(normalize_phone(" +971 (50) 123-4567 ", "+971"), "+971501234567")

    def test_double_zero_prefix_is_international(self):
        self.assertEqual(normalize_phone("00971501234567", "+971"), "+971501234567")

    def test_bare_digits_get_plus(self):
        self.assertEqual(normalize_phone("971501234567", "+971"), "+971501234567")

    def test_rejects_bad_shapes(self):
        for raw in ("", None, "+1234", "+1234567890123456", "hello", "+97+1501234567"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidPhone):
                    normalize_phone(raw, "+971")

    def test_arabic_indic_digits_fold_to_ascii(self):
        self.assertEqual(normalize_phone("+٩٧١٥٠١٢٣٤٥٦٧", "+971"), "+971501234567")
        self.assertEqual(normalize_phone("٠٥٠١٢٣٤٥٦٧", "+971"), "+971501234567")

    def test_numeric_input_is_accepted(self):
        self.assertEqual(normalize_phone(971501234567, "+971"), "+971501234567")

    def test_country_code_cannot_start_with_zero(self):
        for raw in ("+0501234567", "000501234567"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidPhone):
                    normalize_phone(raw, "+971")

    def test_local_number_needs_country_code(self):
        with self.assertRaises(InvalidPhone):
            normalize_phone("0501234567", "")

    def test_mask_phone_keeps_tail(self):
        self.assertEqual(mask_phone("+971501234567"), "**********567")
