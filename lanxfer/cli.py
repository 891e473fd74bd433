#!/usr/bin/env python3
"""
lanxfer CLI

Command-line interface for one-shot LAN file transfers.

Usage:
    lanxfer send FILE        # Offer FILE to the first Receiver that asks
    lanxfer receive          # Find a Sender and download its file
    lanxfer config           # Show the effective configuration
"""

import asyncio
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.logging import RichHandler

from .config import load_config
from .errors import ErrorKind, TransferError
from .node import TransferNode
from .notifier import ConsoleNotifier

console = Console()

# Exit status per failure kind
EXIT_CODES = {
    ErrorKind.BIND: 2,
    ErrorKind.SEND: 1,
    ErrorKind.ENCODE: 1,
    ErrorKind.DECODE: 1,
    ErrorKind.IO: 1,
    ErrorKind.INCOMPLETE: 3,
    ErrorKind.CANCELLED: 130,
}


def setup_logging(level: str = 'INFO', verbose: bool = False):
    """Configure logging with rich output."""
    if verbose:
        level = 'DEBUG'
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def exit_code_for(error: TransferError) -> int:
    return EXIT_CODES.get(error.kind, 1)


def run_node(coro_factory) -> int:
    """Run a node coroutine and turn its outcome into an exit status."""
    try:
        session = asyncio.run(coro_factory())
    except TransferError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        return exit_code_for(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return EXIT_CODES[ErrorKind.CANCELLED]
    
    if not session.complete:
        error = TransferError(
            ErrorKind.INCOMPLETE,
            f"{session.name}: got {session.bytes_transferred:,} of "
            f"{session.declared_size:,} bytes"
        )
        console.print(f"[red]✗ {escape(str(error))}[/red]")
        return exit_code_for(error)
    
    summary = session.to_dict()
    console.print(Panel.fit(
        f"[bold green]Transfer Complete[/bold green]\n\n"
        f"Name: [cyan]{escape(summary['name'])}[/cyan]\n"
        f"Size: [yellow]{summary['bytes_transferred']:,} of "
        f"{summary['declared_size']:,} bytes[/yellow]",
        title="lanxfer"
    ))
    return 0


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='JSON config file')
@click.option('--host', default=None, help='Local address to bind')
@click.option('--broadcast-address', default=None, help='Where discovery is broadcast')
@click.pass_context
def cli(ctx, verbose, config_path, host, broadcast_address):
    """lanxfer - find a peer on the LAN and hand it a file."""
    config = load_config(config_path)
    if host:
        config.host = host
    if broadcast_address:
        config.broadcast_address = broadcast_address
    
    setup_logging(config.log_level, verbose)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def send(ctx, file_path):
    """Offer a file to the first Receiver on the LAN."""
    node = TransferNode(ctx.obj['config'], ConsoleNotifier(console))
    ctx.exit(run_node(lambda: node.send(file_path)))


@cli.command()
@click.option('--output-dir', '-o', type=click.Path(file_okay=False, path_type=Path),
              default=None, help='Directory to write the received file to')
@click.pass_context
def receive(ctx, output_dir):
    """Find a Sender on the LAN and download its file."""
    config = ctx.obj['config']
    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)
        config.output_dir = output_dir
    
    node = TransferNode(config, ConsoleNotifier(console))
    ctx.exit(run_node(node.receive))


@cli.command('config')
@click.pass_context
def show_config(ctx):
    """Show the effective configuration."""
    console.print_json(json.dumps(ctx.obj['config'].to_dict()))


if __name__ == '__main__':
    cli()
