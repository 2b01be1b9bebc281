from pathlib import Path
import pytest
from click.testing import CliRunner
from securex.cli.commands import cli


@pytest.fixture
def run(tmp_path):
    runner = CliRunner()
    home = str(tmp_path / 'home')

    def _run(*args, input=None):
        return runner.invoke(cli, ['--home', home, *args], input=input)
    return _run


def add(run, account, password='pw', secret='s3cret'):
    return run('add', '--password', password, '--account', account, '--username', 'alice', '--secret', secret)


def test_cli_help():
    r = CliRunner().invoke(cli, ['--help'])
    assert r.exit_code == 0
    assert 'init' in r.output and 'change-password' in r.output


def test_init_add_list(run):
    r = run('init', input='pw\npw\n')
    assert r.exit_code == 0 and 'Vault created' in r.output
    assert add(run, 'github').exit_code == 0
    lst = run('list', '--password', 'pw', '--show')
    assert lst.exit_code == 0
    assert 'github: alice' in lst.output and 's3cret' in lst.output


def test_init_twice_fails(run):
    run('init', input='pw\npw\n')
    r = run('init', input='pw\npw\n')
    assert r.exit_code != 0 and 'already initialised' in r.output


def test_wrong_password_rejected(run):
    run('init', input='pw\npw\n')
    r = run('list', '--password', 'nope')
    assert r.exit_code == 1
    assert 'Invalid master password' in r.output


def test_backups_listing_and_restore(run):
    run('init', input='pw\npw\n')
    add(run, 'one'); add(run, 'two'); add(run, 'three')
    r = run('backups')
    assert r.exit_code == 0
    lines = [l for l in r.output.splitlines() if l.startswith('vault-')]
    assert len(lines) == 2
    assert 'entries: 2' in lines[0] and 'entries: 1' in lines[1]
    oldest = lines[1].split()[0]
    res = run('restore', oldest, '--password', 'pw')
    assert res.exit_code == 0 and 'Previous vault kept as vault-before-restore-' in res.output
    lst = run('list', '--password', 'pw')
    assert 'one' in lst.output and 'three' not in lst.output


def test_remove(run):
    run('init', input='pw\npw\n')
    add(run, 'one'); add(run, 'two')
    assert run('remove', 'one', '--password', 'pw').exit_code == 0
    assert run('remove', 'ghost', '--password', 'pw').exit_code == 1
    assert 'one' not in run('list', '--password', 'pw').output


def test_change_password(run):
    run('init', input='pw\npw\n')
    add(run, 'github')
    r = run('change-password', '--old-password', 'pw', '--new-password', 'npw')
    assert r.exit_code == 0 and 'changed' in r.output
    assert run('list', '--password', 'pw').exit_code == 1
    assert 'github' in run('list', '--password', 'npw').output
    bad = run('change-password', '--old-password', 'pw', '--new-password', 'x')
    assert bad.exit_code == 1


def test_recover_nothing_pending(run):
    run('init', input='pw\npw\n')
    r = run('recover', '--password', 'pw')
    assert 'Nothing to recover' in r.output


def test_generate_and_strength(run):
    r = run('generate', '--length', '20')
    assert r.exit_code == 0 and len(r.output.strip()) == 20
    assert run('generate', '--length', '8').exit_code == 1
    s = run('strength', 'VeryStrongPassword#2024')
    assert 'Strong' in s.output


def test_autolock_setting(run):
    assert 'Auto-lock: 5 minute(s)' in run('autolock').output
    assert 'Auto-lock: 15 minute(s)' in run('autolock', '15').output
    assert 'Auto-lock: 15 minute(s)' in run('autolock').output
    assert 'Auto-lock: never' in run('autolock', '--', '-1').output


def test_restore_works_when_vault_is_unreadable(run, tmp_path):
    run('init', input='pw\npw\n')
    add(run, 'one'); add(run, 'two')
    vault = tmp_path / 'home' / 'vault.dat'
    vault.write_text('garbage-corrupted')
    assert run('list', '--password', 'pw').exit_code == 1

    newest = [l for l in run('backups').output.splitlines() if l.startswith('vault-')][0].split()[0]
    res = run('restore', newest, '--password', 'pw')
    assert res.exit_code == 0
    assert 'Restored' in res.output and 'entries: 1' in res.output

    lst = run('list', '--password', 'pw')
    assert lst.exit_code == 0 and 'one: alice' in lst.output
    points = [Path(l.split()[0]) for l in run('backups').output.splitlines() if 'restore-point' in l]
    assert any(p.name.endswith('_unknown.dat') for p in points)


def test_backup_works_when_vault_is_unreadable(run, tmp_path):
    run('init', input='pw\npw\n')
    add(run, 'one')
    (tmp_path / 'home' / 'vault.dat').write_text('garbage-corrupted')
    r = run('backup', '--password', 'pw')
    assert r.exit_code == 0 and 'Backup written: ' in r.output
    assert '_error.dat' in r.output


def test_restore_still_requires_master_password(run):
    run('init', input='pw\npw\n')
    add(run, 'one'); add(run, 'two')
    newest = [l for l in run('backups').output.splitlines() if l.startswith('vault-')][0].split()[0]
    r = run('restore', newest, '--password', 'nope')
    assert r.exit_code == 1 and 'Invalid master password' in r.output
