"""Aerie CLI - Main Entry Point.

Commands:
    inspect  - Show a server's realms and the services visible from each
    config   - Show the resolved cache configuration
"""

import logging
import sys
from typing import Optional

import click

from . import __cli_name__, __version__
from .utils.colors import _CROSS, error


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """Inspect aerie servers and their service registries."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


# ============================================================================
# Commands
# ============================================================================

@cli.command('inspect')
@click.argument('target')
@click.option('--scoped', is_flag=True, help='Show root-wide services only')
@click.pass_context
def inspect(ctx, target: str, scoped: bool):
    """
    Show realms and services of a server.

    TARGET is MODULE:ATTR naming a Server or a callable returning one.

    Examples:
      aerie inspect app:server
      aerie inspect app:create_server --scoped
    """
    from .commands.inspect import inspect_services

    try:
        inspect_services(target, scoped=scoped, verbose=ctx.obj['verbose'])
    except Exception as e:
        error(f"  {_CROSS} Inspection failed: {e}")
        sys.exit(1)


@cli.command('config')
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file to read')
@click.option('--env-prefix', default='AERIE_', show_default=True, help='Environment variable prefix')
def config(env_file: Optional[str], env_prefix: str):
    """Show the resolved cache configuration."""
    from .commands.inspect import inspect_config

    try:
        inspect_config(env_file=env_file, env_prefix=env_prefix)
    except Exception as e:
        error(f"  {_CROSS} Invalid configuration: {e}")
        sys.exit(1)


def main():
    """Entry point for `aerie` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
