"""
Command-line interface for the funding rate scanner.
"""

import asyncio
import json
import os
import sys

import click
from pydantic import ValidationError

from .connectors import HttpClient
from .engine import AggregationError
from .engine.factory import create_oracle
from .models.config import ScannerConfig, create_config, save_sample_config
from .ui.tables import display_snapshot
from .utils.logging_utils import setup_logging


def _load_config(ctx) -> ScannerConfig:
    try:
        return create_config(ctx.obj.get('config_file'))
    except (ValidationError, ValueError) as e:
        click.echo(f"❌ Invalid configuration: {e}")
        sys.exit(1)


@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Funding Rate Scanner CLI"""

    # Store config in context
    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose


@cli.command()
@click.option('--host', help='Bind address (overrides configuration)')
@click.option('--port', '-p', type=int, help='Bind port (overrides configuration)')
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP/WebSocket server"""
    import uvicorn
    from .server import create_app

    config = _load_config(ctx)
    setup_logging(config.logging, ctx.obj['verbose'])

    host = host or config.server.host
    port = port or config.server.port
    click.echo(f"🚀 Starting Funding Scanner on {host}:{port}...")

    try:
        uvicorn.run(create_app(config), host=host, port=port, log_config=None)
    except KeyboardInterrupt:
        click.echo("\n👋 Server stopped by user")


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON payload')
@click.option('--limit', '-l', default=20, show_default=True, help='Rows per table')
@click.pass_context
def snapshot(ctx, as_json, limit):
    """Fetch every exchange once and show the opportunities"""

    config = _load_config(ctx)
    setup_logging(config.logging, ctx.obj['verbose'])

    if not as_json:
        click.echo(f"🔍 Fetching funding rates from {', '.join(config.get_enabled_exchanges())}...")

    async def run_snapshot():
        async with HttpClient() as http_client:
            return await create_oracle(config, http_client).collect()

    try:
        result = asyncio.run(run_snapshot())
    except AggregationError as e:
        click.echo(f"❌ {e.message}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_payload(), indent=2))
    else:
        display_snapshot(result, limit=limit)


@cli.command()
@click.option('--output', '-o', default='config.yaml', help='Output file name')
def init(output):
    """Create a sample configuration file"""

    click.echo(f"📝 Creating sample configuration: {output}")
    save_sample_config(output)

    click.echo("\n📋 Next steps:")
    click.echo(f"1. Edit {output} (disable exchanges, tune thresholds)")
    click.echo(f"2. Run: funding-scanner -c {output} validate")
    click.echo(f"3. Run: funding-scanner -c {output} serve")


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate configuration file"""

    config_file = ctx.obj.get('config_file') or "config.yaml"
    click.echo(f"🔍 Validating configuration: {config_file}")

    if not os.path.exists(config_file):
        click.echo(f"❌ Configuration file not found: {config_file}")
        click.echo("💡 Run 'funding-scanner init' to create a sample config")
        sys.exit(1)

    try:
        config = create_config(config_file)
    except (ValidationError, ValueError) as e:
        click.echo("❌ Configuration has errors:")
        click.echo(f"   • {e}")
        sys.exit(1)

    click.echo("✅ Configuration is valid!")
    click.echo(f"📊 Enabled exchanges: {', '.join(config.get_enabled_exchanges())}")
    click.echo(f"💰 Min expected profit (different period): {config.arbitrage.min_expected_profit}%")
    click.echo(f"📈 Min annual yield (same period): {config.arbitrage.min_annual_yield}%")
    click.echo(f"⏱️  Cache TTL: {config.cache.ttl_seconds}s, "
               f"broadcast every {config.distribution.broadcast_interval_seconds}s")


if __name__ == '__main__':
    cli()
