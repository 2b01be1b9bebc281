from datetime import datetime
from securex.lib.backups import BackupKind, backup_name, parse_backup_name


def test_parse_regular_backup():
    meta = parse_backup_name('vault-2026-10-19-08-30-00-000123_7.dat')
    assert meta.kind is BackupKind.REGULAR
    assert meta.timestamp == datetime(2026, 10, 19, 8, 30, 0, 123)
    assert meta.entry_count == 7 and meta.count_label == '7'


def test_parse_restore_point_unknown_count():
    meta = parse_backup_name('vault-before-restore-2026-10-19-08-30-00-000000_unknown.dat')
    assert meta.kind is BackupKind.RESTORE_POINT
    assert meta.entry_count is None and meta.count_label == 'unknown'


def test_parse_error_count():
    meta = parse_backup_name('vault-2026-10-19-08-30-00-000000_error.dat')
    assert meta.entry_count is None
    assert meta.count_failed and meta.count_label == 'error'


def test_parse_legacy_name_without_count():
    meta = parse_backup_name('vault-2024-01-01-10-00-00.dat')
    assert meta.kind is BackupKind.REGULAR
    assert meta.timestamp == datetime(2024, 1, 1, 10, 0, 0)
    assert meta.entry_count is None


def test_unrelated_files_are_unmanaged():
    meta = parse_backup_name('notes.txt')
    assert not meta.is_managed and meta.timestamp is None


def test_generated_names_parse_back():
    ts = datetime(2026, 10, 19, 23, 59, 59, 999999)
    meta = parse_backup_name(backup_name(BackupKind.RESTORE_POINT, ts, 3))
    assert (meta.kind, meta.timestamp, meta.entry_count) == (BackupKind.RESTORE_POINT, ts, 3)
