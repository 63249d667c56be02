"""Tests for the credential cache and its reader/writer lock."""

import threading
import time

import pytest

from paygate.credential_store import CredentialCache, ReadWriteLock
from paygate.credentials import CertSource, load_tls_credential
from tests.mocks import MCH_ID


def _credential(bundle):
    return load_tls_credential(
        MCH_ID,
        cert=CertSource.from_bytes(bundle.cert_pem),
        key=CertSource.from_bytes(bundle.key_pem),
    )


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self):
        """Test that several readers can hold the lock together."""
        lock = ReadWriteLock()
        inside = threading.Barrier(3, timeout=5)

        def reader():
            with lock.read_locked():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert not any(t.is_alive() for t in threads)
        assert not inside.broken

    def test_writer_excludes_readers(self):
        """Test that a reader waits while a writer holds the lock."""
        lock = ReadWriteLock()
        events = []

        lock.acquire_write()
        reader = threading.Thread(target=lambda: (lock.acquire_read(), events.append("read"), lock.release_read()))
        reader.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        reader.join(timeout=5)

        assert events == ["write-done", "read"]

    def test_writer_waits_for_readers(self):
        """Test that a writer waits until active readers leave."""
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()
        writer = threading.Thread(target=lambda: (lock.acquire_write(), events.append("write"), lock.release_write()))
        writer.start()
        time.sleep(0.05)
        events.append("read-done")
        lock.release_read()
        writer.join(timeout=5)

        assert events == ["read-done", "write"]

    def test_waiting_writer_blocks_new_readers(self):
        """Test that new readers queue behind a waiting writer."""
        lock = ReadWriteLock()
        events = []

        lock.acquire_read()
        writer = threading.Thread(target=lambda: (lock.acquire_write(), events.append("write"), lock.release_write()))
        writer.start()
        time.sleep(0.05)
        reader = threading.Thread(target=lambda: (lock.acquire_read(), events.append("read"), lock.release_read()))
        reader.start()
        time.sleep(0.05)
        lock.release_read()
        writer.join(timeout=5)
        reader.join(timeout=5)

        assert events == ["write", "read"]

    def test_released_on_exception(self):
        """Test that context managers release the lock on error."""
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            with lock.write_locked():
                raise RuntimeError("boom")

        with lock.read_locked():
            pass


class TestCredentialCache:
    """Tests for CredentialCache."""

    def test_empty(self):
        """Test that a new cache holds no credential."""
        cache = CredentialCache()

        assert cache.get() is None
        assert not cache.has_credential

    def test_set_and_get(self, merchant_cert):
        """Test publishing a credential."""
        cache = CredentialCache()
        credential = _credential(merchant_cert)

        assert cache.set(credential) is None
        assert cache.get() is credential
        assert cache.has_credential

    def test_replace_returns_previous(self, merchant_cert, other_cert):
        """Test that replacing returns the old credential."""
        cache = CredentialCache()
        first = _credential(merchant_cert)
        second = load_tls_credential(
            MCH_ID,
            cert=CertSource.from_bytes(other_cert.cert_pem),
            key=CertSource.from_bytes(other_cert.key_pem),
        )

        cache.set(first)

        assert cache.set(second) is first
        assert cache.get() is second

    def test_clear(self, merchant_cert):
        """Test dropping the credential."""
        cache = CredentialCache()
        credential = _credential(merchant_cert)
        cache.set(credential)

        assert cache.clear() is credential
        assert cache.get() is None

    def test_instances_are_independent(self, merchant_cert):
        """Test that caches do not share state."""
        first, second = CredentialCache(), CredentialCache()
        first.set(_credential(merchant_cert))

        assert second.get() is None

    def test_concurrent_reads_never_see_partial_credential(self, merchant_cert, other_cert):
        """Test that readers observe either the old or the new credential in full."""
        cache = CredentialCache()
        old = _credential(merchant_cert)
        new = _credential(other_cert)
        cache.set(old)
        valid = {
            (old.fingerprint, old.key_pem),
            (new.fingerprint, new.key_pem),
        }
        observed = []
        errors = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                credential = cache.get()
                pair = (credential.fingerprint, credential.key_pem)
                if pair not in valid:
                    errors.append(pair)
                observed.append(credential.fingerprint)

        def writer():
            for i in range(200):
                cache.set(new if i % 2 == 0 else old)

        readers = [threading.Thread(target=reader) for _ in range(8)]
        for t in readers:
            t.start()
        w = threading.Thread(target=writer)
        w.start()
        w.join(timeout=30)
        stop.set()
        for t in readers:
            t.join(timeout=5)

        assert not errors
        assert observed
        assert set(observed) <= {old.fingerprint, new.fingerprint}
