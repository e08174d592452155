import click
from flask.cli import with_appcontext
from extensions import db
from models import User


@click.command("create-user")
@click.option("--email", prompt=True, help="Email address of the user")
@click.option("--name", prompt=True, help="Full name of the user")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password for the new user",
)
@click.option("--sector", default=None, help="Business sector, used in prompts")
@with_appcontext
def create_user(email, name, password, sector):
    """Create a password user."""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"User {email} already exists.")
        return

    user = User(email=email, name=name, sector=sector)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"User {email} created with id {user.id}.")
