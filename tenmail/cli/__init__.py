"""Command-line interface for the 10MinuteMail client.

Sessions live only as long as the process, so each command creates its own
mailbox: ``address`` prints one, ``watch`` polls one for new mail and
``probe`` checks that the handshake fingerprint gets through the edge.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import click

from ..config import ClientConfig
from ..errors import BlockedError, MailError
from ..models import Message
from ..session import MailSession
from ..tls import SpoofingTransport, build_profile

EXIT_ERROR = 1
EXIT_BLOCKED = 2


# Configure logging for CLI
def setup_logging(verbose: int = 0) -> None:
    """Setup logging based on verbosity level."""
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    # The package logger already carries a stream handler; only its level changes.
    logging.getLogger('tenmail').setLevel(level)


def _fail(error: MailError) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(EXIT_BLOCKED if isinstance(error, BlockedError) else EXIT_ERROR)


def _message_summary(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "sent_date": message.sent_date.isoformat(),
        "sender": message.sender,
        "subject": message.subject,
        "preview": message.preview,
    }


@click.group()
@click.option('--verbose', '-v', count=True, help='Increase verbosity (use -vv for debug)')
@click.option('--config', '-c', type=click.Path(exists=True), help='JSON configuration file')
@click.option('--timeout', '-t', type=float, help='Connect/read deadline in seconds')
@click.option('--proxy', '-p', help='Proxy URL (http://host:port)')
@click.pass_context
def cli(ctx: click.Context, verbose: int, config: Optional[str],
        timeout: Optional[float], proxy: Optional[str]) -> None:
    """tenmail - disposable 10MinuteMail addresses from the command line."""
    setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        base = ClientConfig.load(config) if config else ClientConfig()
        ctx.obj['config'] = base.merged(timeout=timeout, proxy_url=proxy)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(EXIT_ERROR)


@cli.command()
@click.option('--json-output', is_flag=True, help='Output as JSON')
@click.pass_context
def address(ctx: click.Context, json_output: bool) -> None:
    """Create a mailbox and print its address."""

    async def execute():
        async with await MailSession.create(ctx.obj['config']) as session:
            return session.address, session.expires_at()

    try:
        addr, expires = asyncio.run(execute())
    except MailError as e:
        _fail(e)
        return

    if json_output:
        click.echo(json.dumps({"address": addr, "expires_at": expires.isoformat()}))
    else:
        click.echo(addr)
        click.echo(f"Expires at {expires.isoformat()}", err=True)


@cli.command()
@click.option('--interval', '-i', default=5.0, type=float, help='Seconds between polls')
@click.option('--count', '-n', default=0, type=int, help='Stop after this many polls (0 = until expiry)')
@click.option('--keep-alive', is_flag=True, help='Renew the mailbox before it expires')
@click.option('--renew-margin', default=60, type=int, help='Renew when this many seconds remain')
@click.option('--forward-to', help='Forward every new message to this address')
@click.option('--json-output', is_flag=True, help='Print messages as JSON lines')
@click.pass_context
def watch(ctx: click.Context, interval: float, count: int, keep_alive: bool,
          renew_margin: int, forward_to: Optional[str], json_output: bool) -> None:
    """Create a mailbox and print new messages as they arrive."""

    async def execute():
        async with await MailSession.create(ctx.obj['config']) as session:
            click.echo(f"Watching {session.address}", err=True)
            polls = 0
            while True:
                for message in await session.latest():
                    if json_output:
                        click.echo(json.dumps(_message_summary(message)))
                    else:
                        click.echo(f"[{message.sent_date:%H:%M:%S}] {message.sender}: {message.subject}")
                    if forward_to:
                        forwarded = await session.forward(message.id, forward_to)
                        if not forwarded:
                            click.echo(f"Forward of {message.id} was declined", err=True)

                polls += 1
                if count and polls >= count:
                    return

                if keep_alive and session.seconds_left() <= renew_margin:
                    if not await session.renew():
                        click.echo("Renewal was not confirmed by the server", err=True)

                if session.expired():
                    click.echo("Mailbox expired", err=True)
                    return

                await asyncio.sleep(interval)

    try:
        asyncio.run(execute())
    except MailError as e:
        _fail(e)


@cli.command()
@click.option('--host', default='10minutemail.com', help='Host to handshake with')
@click.option('--port', default=443, type=int, help='Port to dial')
@click.pass_context
def probe(ctx: click.Context, host: str, port: int) -> None:
    """Check that the fingerprinted handshake completes."""

    async def execute():
        async with SpoofingTransport(ctx.obj['config'].tls_config()) as transport:
            return await transport.connect(host, port)

    try:
        channel = asyncio.run(execute())
    except MailError as e:
        _fail(e)
        return

    click.echo(f"Handshake with {channel.host}:{channel.port} completed in "
               f"{channel.elapsed * 1000:.0f}ms using {channel.profile_name}")


@cli.command()
def profile() -> None:
    """Print the ClientHello profile in use."""
    click.echo(json.dumps(build_profile().describe(), indent=2))


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == '__main__':
    main()
