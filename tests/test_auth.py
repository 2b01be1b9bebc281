import base64
import logging
import os
import stat
import pytest
from config.settings import VaultConfig
from securex.lib import fsutil
from securex.lib.auth import CredentialGate, MasterCredential
from securex.lib.errors import CorruptDataFailure, IOFailure
from securex.lib.secret import SecretBuffer


def test_create_and_verify(gate):
    assert not gate.exists()
    assert gate.salt() is None
    gate.create('master')
    assert gate.exists()
    assert gate.verify('master')
    assert not gate.verify('wrong')


def test_master_file_layout(gate):
    cred = gate.create('master')
    raw = base64.b64decode(gate.path.read_text())
    assert len(raw) == 16 + 32
    assert raw[:16] == cred.salt == gate.salt()


@pytest.mark.skipif(os.name == 'nt', reason='POSIX permissions only')
def test_master_file_owner_only(gate):
    gate.create('master')
    assert stat.S_IMODE(gate.path.stat().st_mode) == 0o600
    assert not gate.config.master_temp_file.exists()


def test_verify_wipes_input_on_both_outcomes(gate):
    gate.create('master')
    good = SecretBuffer('master'); bad = SecretBuffer('nope')
    assert gate.verify(good)
    assert not gate.verify(bad)
    assert good.wiped and bad.wiped


def test_verify_without_credential(gate):
    pw = SecretBuffer('master')
    assert not gate.verify(pw)
    assert pw.wiped


def test_stored_hash_is_not_the_vault_key(gate):
    cred = gate.create('master')
    key = gate.crypto.derive_key('master', cred.salt)
    assert bytes(key.raw) != cred.hash


def test_new_credential_per_create(gate):
    first = gate.create('master')
    second = gate.create('master')
    assert first.salt != second.salt
    assert gate.verify('master')


def test_corrupt_credential(gate):
    gate.config.master_file.write_text('%%% not base64 %%%')
    assert not gate.verify('master')
    with pytest.raises(CorruptDataFailure):
        gate.salt()


def test_credential_roundtrip():
    cred = MasterCredential(b's' * 16, b'h' * 32)
    assert MasterCredential.decode(cred.encode()) == cred
    with pytest.raises(CorruptDataFailure):
        MasterCredential.decode(base64.b64encode(b'short').decode())


def test_unwritable_app_dir_is_fatal(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('')
    with pytest.raises(IOFailure):
        CredentialGate(VaultConfig(app_dir=blocker / 'securex', kdf_iterations=1000))


def test_chmod_failure_is_logged_not_fatal(gate, monkeypatch, caplog):
    def refuse(*args, **kwargs):
        raise OSError('chmod not supported')

    monkeypatch.setattr(fsutil.os, 'chmod', refuse)
    with caplog.at_level(logging.WARNING, logger='securex.lib.fsutil'):
        gate.create('master')
    monkeypatch.undo()
    assert gate.exists()
    assert gate.verify('master')
    assert 'Could not restrict permissions' in caplog.text


@pytest.mark.skipif(os.name == 'nt', reason='POSIX permissions only')
def test_master_temp_file_is_owner_only_before_data_is_synced(gate, monkeypatch):
    real_fsync = os.fsync
    modes = []

    def spy(fd):
        modes.append(stat.S_IMODE(os.fstat(fd).st_mode))
        return real_fsync(fd)

    old_umask = os.umask(0o022)
    try:
        monkeypatch.setattr(fsutil.os, 'fsync', spy)
        gate.create('master')
    finally:
        monkeypatch.undo()
        os.umask(old_umask)
    assert modes == [0o600]


@pytest.mark.skipif(os.name == 'nt', reason='POSIX permissions only')
def test_fallback_copy_keeps_master_file_owner_only(gate, monkeypatch):
    def refuse(*args, **kwargs):
        raise OSError('rename not supported')

    old_umask = os.umask(0o022)
    try:
        monkeypatch.setattr(fsutil.os, 'replace', refuse)
        gate.create('master')
    finally:
        monkeypatch.undo()
        os.umask(old_umask)
    assert stat.S_IMODE(gate.path.stat().st_mode) == 0o600
    assert not gate.config.master_temp_file.exists()
    assert gate.verify('master')
