"""CLI command implementations"""

import json
import sys
from typing import Any, Dict, List, Optional

import click
import yaml
from dateutil import parser as date_parser
from tabulate import tabulate

from netmount.client import NetMountClient
from netmount.models.database import DatabaseManager
from netmount.models.schemas import ConnectionDescriptor
from netmount.services.connection_store import ConnectionStore
from netmount.services.control import ControlService
from netmount.services.dependency_gatekeeper import DependencyGatekeeper
from netmount.utils.exceptions import NetMountException
from netmount.utils.logger import clear_log, get_logger, read_log
from netmount.utils.masking import mask_sensitive_data

LOG = get_logger(__name__)

MOUNT_COLUMNS = ['type', 'server', 'mount_point', 'mounted_at']


# ---------------------------------------------------------------------- wiring

def _control(state: Dict[str, Any]) -> ControlService:
    if 'control' not in state:
        state['control'] = ControlService.from_config(state['config'], connection_store=_store(state))
    return state['control']


def _store(state: Dict[str, Any]) -> ConnectionStore:
    if 'store' not in state:
        state['store'] = ConnectionStore(DatabaseManager(state['config'].db_url))
    return state['store']


def _gatekeeper(state: Dict[str, Any]) -> DependencyGatekeeper:
    if 'gatekeeper' not in state:
        state['gatekeeper'] = DependencyGatekeeper(state['config'])
    return state['gatekeeper']


def dispatch(state: Dict[str, Any], request: Dict[str, Any]) -> Dict[str, Any]:
    """Run a control request locally, or on the server with --remote"""
    if state.get('remote'):
        with NetMountClient(state['config']) as client:
            return client.call(request)
    return _control(state).handle(request)


def _finish(response: Dict[str, Any]):
    if response.get('success'):
        click.echo(f"✅ {response.get('message')}")
    else:
        click.echo(f"❌ {response.get('error')}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------- formatting

def _truncate(text: str, max_len: int, suffix: str = '..') -> str:
    """Truncate text to max length with suffix"""
    if len(text) <= max_len:
        return text
    return text[:max_len - len(suffix)] + suffix


def _format_timestamp(value: Optional[str]) -> str:
    if not value:
        return ''
    try:
        return date_parser.isoparse(value).astimezone().strftime('%Y-%m-%d %H:%M:%S')
    except (ValueError, TypeError, OverflowError):
        return value


def _server(record: Dict[str, Any]) -> str:
    if record.get('type') == 'samba':
        return f"//{record.get('host')}/{record.get('share')}"
    return record.get('url') or record.get('bucket') or record.get('host') or ''


def _emit(data: Any, format: str, output: Optional[str] = None):
    if format == 'json':
        text = json.dumps(data, indent=2)
    else:
        text = yaml.dump(data, default_flow_style=False, sort_keys=False)

    if output:
        with open(output, 'w') as f:
            f.write(text)
        click.echo(f"✅ Output written to {output}")
    else:
        click.echo(text)


# ---------------------------------------------------------------------- mounts

def mount(state: Dict[str, Any], name: Optional[str], connection: Dict[str, Any]):
    """Mount a saved connection or an ad-hoc one"""
    if name:
        request = {'operation': 'mount', 'name': name}
    else:
        request = {'operation': 'mount', 'connection': connection}
    _finish(dispatch(state, request))


def unmount(state: Dict[str, Any], mount_point: str):
    _finish(dispatch(state, {'operation': 'unmount', 'mount_point': mount_point}))


def unmount_all(state: Dict[str, Any]):
    response = dispatch(state, {'operation': 'unmount_all'})
    if not response.get('success'):
        _finish(response)
    summary = response['data']
    for mount_point in summary['unmounted']:
        click.echo(f"✅ Unmounted {mount_point}")
    for failure in summary['failed']:
        click.echo(f"❌ {failure['error']}", err=True)
    click.echo(response['message'])
    if summary['failed']:
        sys.exit(1)


def list_mounts(state: Dict[str, Any], format: str = 'table',
                output: Optional[str] = None, full: bool = False):
    """List registered mounts"""
    response = dispatch(state, {'operation': 'list_mounts'})
    if not response.get('success'):
        _finish(response)
    records: List[Dict[str, Any]] = response.get('data') or []

    if format != 'table':
        _emit(records, format, output)
        return

    if not records:
        click.echo("\n📭 No active mounts")
        return

    rows = []
    for record in records:
        server = _server(record)
        mount_point = record.get('mount_point', '')
        if not full:
            server = _truncate(server, 40)
            mount_point = _truncate(mount_point, 45)
        rows.append([record.get('type'), server, mount_point, _format_timestamp(record.get('timestamp'))])

    click.echo(tabulate(rows, headers=MOUNT_COLUMNS, tablefmt='grid'))
    click.echo(f"\nTotal: {len(records)} mount(s)")


def is_mounted(state: Dict[str, Any], mount_point: str):
    response = dispatch(state, {'operation': 'is_mounted', 'mount_point': mount_point})
    if not response.get('success'):
        _finish(response)
    if response['data']['mounted']:
        click.echo(f"✅ {response['message']}")
    else:
        click.echo(f"⚠️  {response['message']}")
        sys.exit(1)


def reconcile(state: Dict[str, Any], dry_run: bool = False):
    response = dispatch(state, {'operation': 'reconcile', 'prune': not dry_run})
    if not response.get('success'):
        _finish(response)
    summary = response['data']
    for mount_point in summary['stale']:
        action = 'would remove' if dry_run else 'removed'
        click.echo(f"🧹 Stale entry {mount_point} ({action})")
    click.echo(f"✅ {response['message']}")


def show_reconciliation_status(state: Dict[str, Any], format: str = 'text'):
    response = dispatch(state, {'operation': 'reconciliation_status'})
    if not response.get('success'):
        _finish(response)
    status = response['data']
    if format == 'json':
        click.echo(json.dumps(status, indent=2))
        return

    if not status['mount_table_available']:
        click.echo("⚠️  OS mount table unavailable; live state unknown")
    rows = [
        [m['type'], _server(m), m['mount_point'], {True: 'yes', False: 'no'}.get(m['is_mounted'], '?')]
        for m in status['mounts']
    ]
    click.echo(tabulate(rows, headers=['type', 'server', 'mount_point', 'mounted'], tablefmt='grid'))
    if status['inconsistencies']:
        click.echo(f"\n⚠️  {len(status['inconsistencies'])} registered mount(s) not found in the OS mount table")
        click.echo("💡 Tip: run 'netmount-cli reconcile' to prune them")


# ---------------------------------------------------------------------- dependencies

def check_dependencies(state: Dict[str, Any]):
    gatekeeper = _gatekeeper(state)
    rows = []
    for kind, available in gatekeeper.check_all().items():
        rows.append([kind, '✅ installed' if available else '❌ missing',
                     '' if available else gatekeeper.install_source(kind)])
    click.echo(tabulate(rows, headers=['driver', 'status', 'install from'], tablefmt='grid'))


def install_driver(state: Dict[str, Any], kind: str):
    try:
        message = _gatekeeper(state).install_driver(kind, on_progress=lambda line: click.echo(f"  {line}"))
    except NetMountException as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)
    click.echo(f"✅ {message}")


# ---------------------------------------------------------------------- saved connections

def list_connections(state: Dict[str, Any], format: str = 'table'):
    descriptors = _store(state).list()
    if format != 'table':
        _emit([mask_sensitive_data(d.to_dict()) for d in descriptors], format)
        return
    if not descriptors:
        click.echo("\n📭 No saved connections")
        return
    rows = [
        [d.name, d.type, _server(d.to_dict()), d.username or '', d.mount_point or '(default)']
        for d in descriptors
    ]
    click.echo(tabulate(rows, headers=['name', 'type', 'server', 'username', 'mount_point'], tablefmt='grid'))


def save_connection(state: Dict[str, Any], connection: Dict[str, Any]):
    try:
        descriptor = ConnectionDescriptor.from_dict(connection)
        descriptor.validate()
        _store(state).save(descriptor)
    except NetMountException as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)
    click.echo(f"✅ Saved connection {descriptor.name}")


def remove_connection(state: Dict[str, Any], name: str):
    if _store(state).remove(name):
        click.echo(f"✅ Removed connection {name}")
    else:
        click.echo(f"❌ No saved connection named {name}", err=True)
        sys.exit(1)


def test_connection(state: Dict[str, Any], name: str):
    _finish(dispatch(state, {'operation': 'test_connection', 'name': name}))


# ---------------------------------------------------------------------- logs and config

def show_logs(state: Dict[str, Any]):
    click.echo(read_log(state['config']))


def clear_logs(state: Dict[str, Any]):
    clear_log(state['config'])
    click.echo("✅ Debug log cleared")


def show_config(state: Dict[str, Any]):
    """Display current configuration"""
    config = state['config']
    rows = sorted(config.as_dict(masked=True).items())
    click.echo(tabulate(rows, headers=['key', 'value'], tablefmt='grid'))
    try:
        config.validate()
    except NetMountException as e:
        click.echo(f"❌ {e.message}", err=True)
        sys.exit(1)
    click.echo("✅ Configuration is valid")
