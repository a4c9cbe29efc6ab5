"""
Tests for the OTP store and code generator.
"""
import re
from datetime import timedelta

import pytest

from app.services.otp import OtpStore, generate_code


@pytest.fixture
def store(clock):
    return OtpStore(60, clock=clock)


@pytest.fixture
def admin_id(principals):
    return principals["alice"].id


class TestGenerateCode:
    def test_codes_are_six_digits(self):
        for _ in range(200):
            assert re.fullmatch(r"[0-9]{6}", generate_code())

    def test_leading_zeros_preserved(self, monkeypatch):
        monkeypatch.setattr("app.services.otp.secrets.randbelow", lambda _: 42)
        assert generate_code() == "000042"

    def test_draws_from_full_range(self, monkeypatch):
        bounds = []
        monkeypatch.setattr(
            "app.services.otp.secrets.randbelow",
            lambda upper: bounds.append(upper) or 0,
        )
        generate_code()
        assert bounds == [1_000_000]


class TestOtpStore:
    def test_put_sets_expiry_from_ttl(self, store, clock, admin_id):
        record = store.put(admin_id, "123456")
        assert record.issued_at == clock.now
        assert record.expires_at == clock.now + timedelta(seconds=60)
        assert record.consumed is False

    def test_get_latest_valid_returns_newest(self, store, admin_id):
        store.put(admin_id, "111111")
        store.put(admin_id, "222222")
        latest = store.get_latest_valid(admin_id)
        assert latest is not None
        assert latest.code == "222222"

    def test_get_latest_valid_none_without_codes(self, store, admin_id):
        assert store.get_latest_valid(admin_id) is None

    def test_consume_flips_once(self, store, admin_id):
        store.put(admin_id, "123456")
        assert store.consume(admin_id, "123456") is True
        assert store.consume(admin_id, "123456") is False
        assert store.get_latest_valid(admin_id) is None

    def test_consume_rejects_wrong_code_without_consuming(self, store, admin_id):
        store.put(admin_id, "123456")
        assert store.consume(admin_id, "654321") is False
        assert store.consume(admin_id, "123456") is True

    def test_superseded_code_rejected(self, store, admin_id):
        store.put(admin_id, "111111")
        store.put(admin_id, "222222")
        assert store.consume(admin_id, "111111") is False
        assert store.consume(admin_id, "222222") is True

    def test_older_code_not_revived_after_newest_consumed(self, store, admin_id):
        store.put(admin_id, "111111")
        store.put(admin_id, "222222")
        assert store.consume(admin_id, "222222") is True
        assert store.consume(admin_id, "111111") is False
        assert store.get_latest_valid(admin_id) is None

    def test_expired_code_rejected_at_expiry_instant(self, store, clock, admin_id):
        store.put(admin_id, "123456")
        clock.advance(60)
        assert store.get_latest_valid(admin_id) is None
        assert store.consume(admin_id, "123456") is False

    def test_code_valid_just_before_expiry(self, store, clock, admin_id):
        store.put(admin_id, "123456")
        clock.advance(59)
        assert store.consume(admin_id, "123456") is True

    def test_codes_scoped_to_principal(self, store, principals):
        alice_id = principals["alice"].id
        bob_id = principals["bob"].id
        store.put(alice_id, "123456")
        assert store.consume(bob_id, "123456") is False
        assert store.consume(alice_id, "123456") is True

    def test_discard_removes_record(self, store, admin_id):
        record = store.put(admin_id, "123456")
        store.discard(record.id)
        assert store.get_latest_valid(admin_id) is None
        assert store.consume(admin_id, "123456") is False

    def test_purge_expired(self, store, clock, admin_id):
        store.put(admin_id, "111111")
        clock.advance(61)
        store.put(admin_id, "222222")
        assert store.purge_expired() == 0
        clock.advance(61)
        assert store.purge_expired() == 1
