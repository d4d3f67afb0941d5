"""Unit tests for app.core.config: validation of reset-code and mail settings."""

import unittest

from pydantic import ValidationError

from app.core.config import Settings


class TestResetCodeSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        self.assertEqual(settings.RESET_CODE_LENGTH, 8)
        self.assertEqual(settings.RESET_CODE_EXPIRE_MINUTES, 15)

    def test_code_length_bounds(self) -> None:
        for value in (5, 33):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    Settings(_env_file=None, RESET_CODE_LENGTH=value)
        self.assertEqual(Settings(_env_file=None, RESET_CODE_LENGTH=6).RESET_CODE_LENGTH, 6)

    def test_expiry_bounds(self) -> None:
        for value in (0, 1441):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    Settings(_env_file=None, RESET_CODE_EXPIRE_MINUTES=value)


class TestMailSettings(unittest.TestCase):
    def test_blank_url_means_unset(self) -> None:
        self.assertIsNone(Settings(_env_file=None, MAIL_API_URL="   ").MAIL_API_URL)

    def test_url_scheme_is_checked(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, MAIL_API_URL="ftp://mail.example.com")
        settings = Settings(_env_file=None, MAIL_API_URL=" https://mail.example.com/send ")
        self.assertEqual(settings.MAIL_API_URL, "https://mail.example.com/send")

    def test_timeout_bounds(self) -> None:
        for value in (0, 61):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    Settings(_env_file=None, MAIL_REQUEST_TIMEOUT_SEC=value)


class TestDatabaseUrl(unittest.TestCase):
    def test_non_postgres_url_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, DATABASE_URL="sqlite:///./accounts.db")


if __name__ == "__main__":
    unittest.main()
