"""CLI commands implemented with click.

Every command that touches the vault takes the master password, verifies it
against `master.dat`, derives the vault key and drops all secrets before
returning.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from pathlib import Path
import click
from config.settings import VaultConfig
from securex.lib.auth import CredentialGate
from securex.lib.errors import VaultError
from securex.lib.models import VaultEntry, wipe_entries
from securex.lib.passwords import check_password_strength, generate_password
from securex.lib.rekey import RekeyCoordinator
from securex.lib.secret import SecretBuffer
from securex.lib.settings import SettingsStore, NEVER
from securex.lib.storage import VaultStore


def _fail(msg: str):
	raise click.ClickException(msg)


@contextmanager
def _unlocked(ctx: click.Context, password: str, load: bool = True):
	"""Yield (store, entries) for a verified password; wipe on exit.

	With `load=False` the live vault is not decrypted and `entries` is None,
	so backup and restore still work when `vault.dat` is unreadable.
	"""
	config: VaultConfig = ctx.obj['config']
	gate = _gate(ctx)
	if not gate.exists():
		_fail('Vault not initialised; run `securex init` first.')
	if RekeyCoordinator(config, gate).rekey_pending():
		click.echo('Warning: an interrupted password change was detected; run `securex recover`.', err=True)
	pw = SecretBuffer(password)
	if not gate.verify(pw.copy()):
		pw.wipe()
		_fail('Invalid master password')
	key = gate.crypto.derive_key(pw, gate.salt())
	entries = None
	try:
		store = VaultStore(config, key, gate.crypto)
		if load:
			entries = store.load()
		yield store, entries
	except VaultError as e:
		_fail(str(e))
	finally:
		wipe_entries(entries)
		key.wipe()


def _gate(ctx: click.Context) -> CredentialGate:
	try:
		return CredentialGate(ctx.obj['config'])
	except VaultError as e:
		raise click.ClickException(str(e)) from e


@click.group()
@click.option('--home', type=click.Path(file_okay=False, path_type=Path), envvar='SECUREX_HOME',
			help='Application data directory (default ~/.securex).')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging.')
@click.pass_context
def cli(ctx, home, verbose):
	"""securex encrypted credential vault"""
	logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
	ctx.ensure_object(dict)
	ctx.obj['config'] = VaultConfig(app_dir=home) if home else VaultConfig.from_env()


@cli.command()
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def init(ctx, password):
	"""Create the master password."""
	gate = _gate(ctx)
	if gate.exists():
		_fail('Vault already initialised')
	try:
		gate.create(password)
	except VaultError as e:
		_fail(str(e))
	click.echo('Vault created.')


@cli.command()
@click.option('--password', prompt=True, hide_input=True)
@click.option('--account', prompt=True)
@click.option('--username', prompt=True)
@click.option('--secret', default=None, help='Password to store (prompted when omitted).')
@click.option('--generate', 'gen_length', type=int, default=None, help='Generate a password of this length.')
@click.option('--url', default=None)
@click.pass_context
def add(ctx, password, account, username, secret, gen_length, url):
	"""Add an entry (replaces an existing entry with the same account)."""
	if gen_length is not None:
		try:
			new_secret = generate_password(gen_length)
		except ValueError as e:
			_fail(str(e))
	else:
		new_secret = SecretBuffer(secret if secret is not None else click.prompt('Secret', hide_input=True))
	with _unlocked(ctx, password) as (store, entries):
		for e in entries:
			if e.account == account:
				e.username = username; e.url = url or None
				e.set_password(new_secret)
				break
		else:
			entries.append(VaultEntry.create(account, username, new_secret, url))
		store.save(entries)
	click.echo(f'Saved {account}.')


@cli.command('list')
@click.option('--password', prompt=True, hide_input=True)
@click.option('--show', is_flag=True, help='Reveal stored passwords.')
@click.pass_context
def list_entries(ctx, password, show):
	with _unlocked(ctx, password) as (_store, entries):
		if not entries:
			click.echo('No entries.')
		for e in entries:
			line = f'{e.account}: {e.username}'
			if e.url: line += f' <{e.url}>'
			if show: line += f' | {e.password.reveal()}'
			click.echo(line)


@cli.command()
@click.argument('account')
@click.option('--password', prompt=True, hide_input=True)
@click.pass_context
def remove(ctx, account, password):
	with _unlocked(ctx, password) as (store, entries):
		keep = [e for e in entries if e.account != account]
		if len(keep) == len(entries):
			_fail(f'No entry named {account}')
		store.save(keep)
	click.echo(f'Removed {account}.')


@cli.command()
@click.pass_context
def backups(ctx):
	"""List backups with their entry counts (no password needed)."""
	store = VaultStore(ctx.obj['config'], SecretBuffer())
	metas = store.list_backups()
	if not metas:
		click.echo('No backups found.')
	for m in metas:
		kind = m.kind.value if m.kind else 'other'
		click.echo(f'{m.path.name}  [{kind}]  entries: {m.count_label}')


@cli.command()
@click.option('--password', prompt=True, hide_input=True)
@click.pass_context
def backup(ctx, password):
	"""Snapshot the current vault into the backup pool."""
	with _unlocked(ctx, password, load=False) as (store, _entries):
		target = store.backup_current_vault()
	click.echo(f'Backup written: {target.name}' if target else 'No vault to back up.')


@cli.command()
@click.argument('name')
@click.option('--password', prompt=True, hide_input=True)
@click.pass_context
def restore(ctx, name, password):
	"""Restore the vault from backup NAME."""
	with _unlocked(ctx, password, load=False) as (store, _entries):
		source = store.backups_dir / Path(name).name
		restore_point = store.restore_from_backup(source)
		meta = store.get_backup_metadata(source)
	click.echo(f'Restored {source.name} (entries: {meta.count_label}).')
	if restore_point:
		click.echo(f'Previous vault kept as {restore_point.name}.')


@cli.command('change-password')
@click.option('--old-password', prompt=True, hide_input=True)
@click.option('--new-password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def change_password(ctx, old_password, new_password):
	"""Change the master password and re-key the vault and all backups."""
	config = ctx.obj['config']
	gate = _gate(ctx)
	if not new_password:
		_fail('New password must not be empty')
	store = VaultStore(config, SecretBuffer(), gate.crypto)
	if not RekeyCoordinator(config, gate).change_master_password(old_password, new_password, store):
		_fail('Password change failed; vault left unchanged or recoverable')
	click.echo('Master password changed.')


@cli.command()
@click.option('--password', prompt=True, hide_input=True)
@click.pass_context
def recover(ctx, password):
	"""Finish or discard an interrupted password change."""
	rekey = RekeyCoordinator(ctx.obj['config'], _gate(ctx))
	if not rekey.rekey_pending():
		click.echo('Nothing to recover.')
		return
	if not rekey.recover_interrupted_rekey(password):
		_fail('Recovery failed: password matches neither the old nor the new credential')
	click.echo('Recovered.')


@cli.command()
@click.option('--length', type=int, default=16, show_default=True)
def generate(length):
	try:
		with generate_password(length) as pw:
			click.echo(pw.reveal())
	except ValueError as e:
		_fail(str(e))


@cli.command()
@click.argument('password')
def strength(password):
	score, fb = check_password_strength(password)
	click.echo(f'Score: {score} -> {fb}')


@cli.command()
@click.argument('minutes', type=int, required=False)
@click.pass_context
def autolock(ctx, minutes):
	"""Show or set the auto-lock timeout (0 or negative disables it)."""
	settings = SettingsStore(ctx.obj['config'])
	if minutes is not None:
		try:
			settings.set_auto_lock_minutes(minutes)
		except VaultError as e:
			_fail(str(e))
	current = settings.get_auto_lock_minutes()
	click.echo('Auto-lock: never' if current == NEVER else f'Auto-lock: {current} minute(s)')
