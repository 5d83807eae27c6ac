"""Tests for device trust ids and labels."""

import itertools
from types import SimpleNamespace

import pytest

from passgate.exceptions import DeviceInfoError
from passgate.trust import (
    TRUST_ID_ALPHABET,
    TRUST_ID_KEY,
    TRUST_ID_LENGTH,
    TrustDeviceManager,
)


class TestTrustId:
    """Tests for get_or_create_trust_id."""

    def test_alphabet(self) -> None:
        assert len(TRUST_ID_ALPHABET) == 66
        assert TRUST_ID_ALPHABET.endswith("!@#$")
        assert len(set(TRUST_ID_ALPHABET)) == len(TRUST_ID_ALPHABET)

    def test_missing_without_force_returns_none(self, trust_manager) -> None:
        assert trust_manager.get_or_create_trust_id(force_create=False) is None
        assert trust_manager.store.read_string(TRUST_ID_KEY) is None

    def test_force_creates_and_persists(self, trust_manager) -> None:
        trust_id = trust_manager.get_or_create_trust_id(force_create=True)
        assert trust_id is not None
        assert len(trust_id) == TRUST_ID_LENGTH
        assert set(trust_id) <= set(TRUST_ID_ALPHABET)
        assert trust_manager.store.read_string(TRUST_ID_KEY) == trust_id

    def test_force_is_idempotent(self, trust_manager) -> None:
        first = trust_manager.get_or_create_trust_id(force_create=True)
        second = trust_manager.get_or_create_trust_id(force_create=True)
        assert first == second

    def test_existing_id_returned_without_force(self, trust_manager) -> None:
        created = trust_manager.get_or_create_trust_id(force_create=True)
        assert trust_manager.get_or_create_trust_id(force_create=False) == created

    def test_persists_across_instances(self, store, fake_uname) -> None:
        created = TrustDeviceManager(store, uname=fake_uname).get_or_create_trust_id(True)
        reloaded = TrustDeviceManager(store, uname=fake_uname).get_or_create_trust_id(False)
        assert reloaded == created

    def test_uses_injected_random_source(self, store) -> None:
        """Each character is one randint(0, 65) draw indexed into the alphabet."""
        draws = itertools.cycle([0, 65, 26])
        calls = []

        def randint(low: int, high: int) -> int:
            calls.append((low, high))
            return next(draws)

        manager = TrustDeviceManager(store, randint=randint)
        trust_id = manager.get_or_create_trust_id(force_create=True)

        assert len(calls) == TRUST_ID_LENGTH
        assert set(calls) == {(0, 65)}
        assert trust_id.startswith("a$A")

    def test_random_ids_cover_alphabet_only(self, tmp_path) -> None:
        from passgate.store import ConfigStore

        for i in range(20):
            manager = TrustDeviceManager(ConfigStore(tmp_path / f"s{i}"))
            trust_id = manager.get_or_create_trust_id(force_create=True)
            assert len(trust_id) == 32
            assert all(ch in TRUST_ID_ALPHABET for ch in trust_id)

    def test_forget(self, trust_manager) -> None:
        trust_manager.get_or_create_trust_id(force_create=True)
        assert trust_manager.forget() is True
        assert trust_manager.get_or_create_trust_id(force_create=False) is None
        assert trust_manager.forget() is False


class TestDeviceLabel:
    """Tests for compute_device_label."""

    def test_label_format(self, trust_manager) -> None:
        assert trust_manager.compute_device_label() == "workstation - Linux 6.8.0"

    def test_label_computed_fresh_each_time(self, store) -> None:
        hosts = iter(["one", "two"])
        manager = TrustDeviceManager(
            store,
            uname=lambda: SimpleNamespace(node=next(hosts), system="Darwin", release="23.1"),
        )
        assert manager.compute_device_label() == "one - Darwin 23.1"
        assert manager.compute_device_label() == "two - Darwin 23.1"

    def test_missing_host_name_is_fatal(self, store) -> None:
        manager = TrustDeviceManager(
            store, uname=lambda: SimpleNamespace(node="", system="Linux", release="6.8")
        )
        with pytest.raises(DeviceInfoError):
            manager.compute_device_label()

    def test_uname_oserror_is_fatal(self, store) -> None:
        def broken():
            raise OSError("uname failed")

        manager = TrustDeviceManager(store, uname=broken)
        with pytest.raises(DeviceInfoError, match="uname"):
            manager.compute_device_label()

    def test_real_host_label(self, store) -> None:
        """The default uname source yields a non-empty label on a working host."""
        label = TrustDeviceManager(store).compute_device_label()
        assert " - " in label
