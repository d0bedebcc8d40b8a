"""CLI entry point for buildoor."""

import asyncio
import logging
import sys
from typing import Optional

import click

from .builder import BuilderClient
from .config import Config, DEFAULT_GAS_LIMIT
from .exceptions import BuilderError
from .builder.client import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if level.upper() != "DEBUG":
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def builder_options(f):
    """Options shared by every command that talks to a builder."""
    options = [
        click.option(
            "--builder-url",
            required=True,
            help="Builder URL or host:port (e.g., http://localhost:18550)",
            envvar="BUILDOOR_BUILDER_URL",
        ),
        click.option(
            "--timeout",
            default=DEFAULT_TIMEOUT,
            type=float,
            show_default=True,
            help="Per request timeout in seconds",
            envvar="BUILDOOR_TIMEOUT",
        ),
        click.option(
            "--validator-key",
            help="Validator BLS secret key as hex, or a file containing it",
            envvar="BUILDOOR_VALIDATOR_KEY",
        ),
        click.option(
            "--keystore",
            type=click.Path(exists=True, dir_okay=False),
            help="EIP-2335 keystore file",
            envvar="BUILDOOR_KEYSTORE",
        ),
        click.option(
            "--keystore-password-file",
            type=click.Path(exists=True, dir_okay=False),
            help="File containing the keystore password",
            envvar="BUILDOOR_KEYSTORE_PASSWORD_FILE",
        ),
        click.option(
            "--log-level",
            default="INFO",
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
            help="Logging level",
            envvar="BUILDOOR_LOG_LEVEL",
        ),
        click.option(
            "--metrics-port",
            type=int,
            help="Serve Prometheus metrics on this port",
            envvar="BUILDOOR_METRICS_PORT",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _make_config(
    builder_url: str,
    timeout: float,
    validator_key: Optional[str],
    keystore: Optional[str],
    keystore_password_file: Optional[str],
    log_level: str,
    metrics_port: Optional[int],
    **extra,
) -> Config:
    return Config(
        builder_url=builder_url,
        timeout=timeout,
        validator_key=validator_key or "",
        keystore_path=keystore or "",
        keystore_password_path=keystore_password_file or "",
        log_level=log_level,
        metrics_port=metrics_port,
        **extra,
    )


def _run(config: Config, action) -> None:
    """Set up logging and metrics, run one client call, map failures to exit codes."""
    setup_logging(config.log_level)

    try:
        identity = config.load_identity()
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Failed to load validator key: {e}")

    if config.metrics_port:
        from .metrics import start_metrics_server, set_client_info
        from .version import get_version
        start_metrics_server(config.metrics_port)
        set_client_info(get_version(), config.builder_url)

    async def main():
        async with BuilderClient(config.builder_url, identity, timeout=config.timeout) as client:
            return await action(client)

    try:
        result = asyncio.run(main())
    except BuilderError as e:
        logger.error(str(e))
        sys.exit(1)
    except ValueError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    if result:
        click.echo(result)


def _parse_parent_hash(ctx, param, value: str) -> str:
    raw = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        if len(bytes.fromhex(raw)) != 32:
            raise ValueError
    except ValueError:
        raise click.BadParameter("must be a 32-byte hex string")
    return value


@click.group()
@click.version_option(package_name="buildoor")
def cli():
    """Buildoor - block builder API client for validators."""
    pass


@cli.command()
@builder_options
@click.option(
    "--fee-recipient",
    default="0x" + "00" * 20,
    help="Fee recipient address to register",
    envvar="BUILDOOR_FEE_RECIPIENT",
)
@click.option(
    "--gas-limit",
    default=DEFAULT_GAS_LIMIT,
    type=click.IntRange(min=0, max=2**64 - 1),
    show_default=True,
    help="Preferred block gas limit",
    envvar="BUILDOOR_GAS_LIMIT",
)
def register(fee_recipient: str, gas_limit: int, **options):
    """Register the validator's fee recipient with the builder."""
    config = _make_config(fee_recipient=fee_recipient, gas_limit=gas_limit, **options)

    async def action(client: BuilderClient) -> str:
        response = await client.register_validator(config.fee_recipient_bytes, config.gas_limit)
        return f"registered {client.identity.pubkey_hex} (status {response.status})"

    _run(config, action)


@cli.command()
@builder_options
@click.argument("slot", type=click.IntRange(min=0, max=2**64 - 1))
@click.argument("parent_hash", callback=_parse_parent_hash)
def header(slot: int, parent_hash: str, **options):
    """Request a header for SLOT on top of PARENT_HASH."""
    config = _make_config(**options)

    async def action(client: BuilderClient) -> str:
        response = await client.get_header(slot, parent_hash)
        return f"header accepted for slot {slot} (code {response.status})"

    _run(config, action)


@cli.command()
@builder_options
@click.argument("slot", type=click.IntRange(min=0, max=2**64 - 1))
@click.argument("parent_hash", callback=_parse_parent_hash)
@click.option(
    "--pubkey",
    help="Proposer pubkey to request the block for (defaults to the validator key's)",
)
def block(slot: int, parent_hash: str, pubkey: Optional[str], **options):
    """Fetch and decode the block for SLOT on top of PARENT_HASH."""
    config = _make_config(**options)

    async def action(client: BuilderClient) -> str:
        fetched = await client.get_block(slot, parent_hash, pubkey=pubkey)
        return (
            f"block {fetched.number} hash=0x{fetched.hash.hex()} "
            f"parent=0x{fetched.parent_hash.hex()} txs={len(fetched.transactions)}"
        )

    _run(config, action)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
