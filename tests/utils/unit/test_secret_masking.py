"""
Unit tests for SecretMaskingFilter
"""

import logging

import pytest

from utils.logging_config import SecretMaskingFilter


def make_record(msg, args=None):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


class TestSecretMaskingFilter:

    @pytest.mark.parametrize("message, secret", [
        ("Delivered card_key=ABCD-EFGH-IJKL", "ABCD-EFGH-IJKL"),
        ('payload {"card_keys": ["K1", "K2"]}', "K1"),
        ("Buyer alice@example.com paid", "alice@example.com"),
        ("password=hunter2", "hunter2"),
        ("Authorization: Bearer eyJhbGciOi.abc.def", "eyJhbGciOi.abc.def"),
        ("token=1234567890abcdefghijABCDEFGHIJ", "1234567890abcdefghijABCDEFGHIJ"),
    ])
    def test_masks_secrets(self, message, secret):
        record = make_record(message)

        assert SecretMaskingFilter().filter(record) is True
        assert secret not in record.getMessage()
        assert "REDACTED" in record.getMessage()

    def test_masks_string_args(self):
        record = make_record("Order %s for %s", ("ORD1", "bob@example.org"))

        SecretMaskingFilter().filter(record)

        assert record.getMessage() == "Order ORD1 for [REDACTED_EMAIL]"

    def test_leaves_normal_messages_alone(self):
        message = "Reserved 2 card(s) of product p1 for order ORD20260115120000ABCDEF"
        record = make_record(message)

        SecretMaskingFilter().filter(record)

        assert record.getMessage() == message
