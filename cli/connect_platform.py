import click
from flask import current_app
from flask.cli import with_appcontext

from helpers.platforms import PlatformError, get_platform_manager
from models import User
from services.authorization import (
    AuthorizationError,
    AuthorizationTimeout,
    STATUS_COMPLETED,
    await_authorization,
    cancel_authorization,
)


@click.command("connect-platform")
@click.argument("platform")
@click.option("--email", required=True, help="Email of the user to connect")
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Seconds to wait for the callback (defaults to OAUTH_AUTHORIZATION_TIMEOUT)",
)
@click.option("--interval", type=float, default=2.0, help="Polling interval in seconds")
@with_appcontext
def connect_platform(platform, email, timeout, interval):
    """Print an authorization URL for PLATFORM and wait for the callback."""
    # Imported here so the command module does not pull in the views at app creation.
    from views.auth import start_authorization

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"No user with email {email}")

    try:
        manager = get_platform_manager(platform)
    except ValueError as e:
        raise click.ClickException(str(e))

    try:
        with current_app.test_request_context():
            auth_url, record = start_authorization(manager, user.id)
    except PlatformError as e:
        raise click.ClickException(e.message)

    click.echo(f"Open this URL to connect {manager.display_name}:")
    click.echo(auth_url)
    click.echo("Waiting for authorization...")

    try:
        result = await_authorization(record.state_id, timeout=timeout, interval=interval)
    except AuthorizationTimeout:
        cancel_authorization(record.state_id)
        raise click.ClickException("Timed out waiting for authorization.")
    except AuthorizationError as e:
        raise click.ClickException(str(e))

    if result.status != STATUS_COMPLETED:
        raise click.ClickException(
            f"Authorization {result.status}: {result.message or result.error or 'no details'}"
        )
    click.echo(f"Connected {manager.display_name} account {result.account_name or ''}".rstrip())
