"""Main CLI entry point"""

import sys

import click

from netmount.cli import commands
from netmount.config import NetMountConfig
from netmount.models.schemas import DriverKind
from netmount.utils.exceptions import ConfigurationException
from netmount.utils.logger import get_logger, setup_logging
from netmount.utils.validators import SUPPORTED_TYPES
from netmount.version import version_string

LOG = get_logger(__name__)


def connection_options(func):
    """Options describing an ad-hoc connection"""
    options = [
        click.option('--type', 'conn_type', type=click.Choice(SUPPORTED_TYPES), help='Connection type'),
        click.option('--host', help='Server host (ftp, sftp, samba)'),
        click.option('--port', type=int, help='Server port'),
        click.option('--username', '-u', help='Username'),
        click.option('--password', '-p', help='Password (prompted when --ask-password is given)'),
        click.option('--ask-password', is_flag=True, help='Prompt for the password'),
        click.option('--private-key', 'private_key_path', type=click.Path(), help='SSH private key (sftp)'),
        click.option('--share', help='Share name (samba)'),
        click.option('--domain', help='Domain (samba)'),
        click.option('--url', help='Server URL (webdav)'),
        click.option('--bucket', help='Bucket (s3)'),
        click.option('--region', help='Region (s3)'),
        click.option('--access-key-id', help='Access key id (s3)'),
        click.option('--secret-access-key', help='Secret access key (s3)'),
        click.option('--mount-point', '-m', help='Local mount point (default: derived under the volumes directory)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _connection(name=None, conn_type=None, ask_password=False, **fields):
    if ask_password:
        fields['password'] = click.prompt('Password', hide_input=True)
    data = {k: v for k, v in fields.items() if v is not None}
    data['type'] = conn_type
    if name:
        data['name'] = name
    return data


@click.group()
@click.version_option(version=version_string(), prog_name='netmount')
@click.option('--config', help='Configuration file path')
@click.option('--data-dir', help='Data directory (registry, logs, saved connections)')
@click.option('--remote', is_flag=True, help='Send requests to a running netmount server')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                case_sensitive=False),
              help='Log level')
@click.pass_context
def cli(ctx, config, data_dir, remote, log_level):
    """netmount - mount remote storage as local volumes"""
    ctx.ensure_object(dict)

    if 'config' not in ctx.obj:
        try:
            netmount_config = NetMountConfig.from_file(config, data_dir=data_dir)
        except ConfigurationException as e:
            click.echo(f"Error loading configuration: {e.message}", err=True)
            sys.exit(1)
        if log_level:
            netmount_config.log_level = log_level
        setup_logging(netmount_config, console=False)
        ctx.obj['config'] = netmount_config

    ctx.obj['remote'] = remote


@cli.command()
@click.argument('name', required=False)
@connection_options
@click.pass_context
def mount(ctx, name, **options):
    """
    Mount a saved connection, or an ad-hoc one described by options

    Examples:
      netmount-cli mount office-nas
      netmount-cli mount --type ftp --host ftp.example.com -m /mnt/ftp
      netmount-cli mount --type sftp --host h -u me --private-key ~/.ssh/id_ed25519
    """
    if not name and not options.get('conn_type'):
        raise click.UsageError('Give a saved connection NAME or --type with connection options')
    connection = None if name else _connection(**options)
    commands.mount(ctx.obj, name, connection)


@cli.command()
@click.argument('mount_point')
@click.pass_context
def unmount(ctx, mount_point):
    """
    Unmount a path and drop it from the registry

    Example:
      netmount-cli unmount /Volumes/share
    """
    commands.unmount(ctx.obj, mount_point)


@cli.command('unmount-all')
@click.confirmation_option(prompt='Unmount every registered mount?')
@click.pass_context
def unmount_all_cmd(ctx):
    """Unmount every registered mount, continuing past failures"""
    commands.unmount_all(ctx.obj)


@cli.command('list-mounts')
@click.option('--format', '-f',
              type=click.Choice(['table', 'json', 'yaml'], case_sensitive=False),
              default='table',
              help='Output format')
@click.option('--output', '-o', type=click.Path(), help='Output file (default: stdout)')
@click.option('--full', is_flag=True, help='Show full values (no truncation)')
@click.pass_context
def list_mounts_cmd(ctx, format, output, full):
    """
    List registered mounts

    Examples:
      netmount-cli list-mounts
      netmount-cli list-mounts --format json
    """
    commands.list_mounts(ctx.obj, format.lower(), output, full)


@cli.command('is-mounted')
@click.argument('mount_point')
@click.pass_context
def is_mounted_cmd(ctx, mount_point):
    """Check whether a path is currently mounted (exit status 1 if not)"""
    commands.is_mounted(ctx.obj, mount_point)


@cli.command()
@click.option('--dry-run', is_flag=True, help='Report stale entries without removing them')
@click.pass_context
def reconcile(ctx, dry_run):
    """
    Remove registry entries the OS no longer reports as mounted

    Example:
      netmount-cli reconcile --dry-run
    """
    commands.reconcile(ctx.obj, dry_run)


@cli.command('reconcile-status')
@click.option('--format', '-f',
              type=click.Choice(['text', 'json'], case_sensitive=False),
              default='text',
              help='Output format')
@click.pass_context
def reconcile_status_cmd(ctx, format):
    """Show every registered mount with its live state"""
    commands.show_reconciliation_status(ctx.obj, format.lower())


@cli.command('check-deps')
@click.pass_context
def check_deps_cmd(ctx):
    """Show which optional drivers (macFUSE, sshfs, s3fs) are installed"""
    commands.check_dependencies(ctx.obj)


@cli.command('install-driver')
@click.argument('kind', type=click.Choice([k.value for k in DriverKind]))
@click.pass_context
def install_driver_cmd(ctx, kind):
    """
    Install a driver (asks for administrator privileges)

    Example:
      netmount-cli install-driver fuse
    """
    commands.install_driver(ctx.obj, kind)


@cli.group()
def connections():
    """Manage saved connections"""


@connections.command('list')
@click.option('--format', '-f',
              type=click.Choice(['table', 'json', 'yaml'], case_sensitive=False),
              default='table',
              help='Output format')
@click.pass_context
def connections_list(ctx, format):
    """List saved connections (secrets masked)"""
    commands.list_connections(ctx.obj, format.lower())


@connections.command('save')
@click.argument('name')
@connection_options
@click.pass_context
def connections_save(ctx, name, **options):
    """
    Save (or replace) a named connection

    Example:
      netmount-cli connections save office-nas --type samba --host nas --share docs -u me --ask-password
    """
    if not options.get('conn_type'):
        raise click.UsageError('--type is required')
    commands.save_connection(ctx.obj, _connection(name=name, **options))


@connections.command('remove')
@click.argument('name')
@click.pass_context
def connections_remove(ctx, name):
    """Remove a saved connection"""
    commands.remove_connection(ctx.obj, name)


@cli.command('test-connection')
@click.argument('name')
@click.pass_context
def test_connection_cmd(ctx, name):
    """Check that a saved connection's server is reachable, without mounting"""
    commands.test_connection(ctx.obj, name)


@cli.group()
def logs():
    """View or clear the debug log"""


@logs.command('show')
@click.pass_context
def logs_show(ctx):
    """Print the debug log"""
    commands.show_logs(ctx.obj)


@logs.command('clear')
@click.pass_context
def logs_clear(ctx):
    """Truncate the debug log"""
    commands.clear_logs(ctx.obj)


@cli.command('check-config')
@click.pass_context
def check_config_cmd(ctx):
    """
    Display and validate the current configuration

    Example:
      netmount-cli --config ~/.netmount/netmount.conf check-config
    """
    commands.show_config(ctx.obj)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
