import click
from flask.cli import with_appcontext
from extensions import db
from sqlalchemy import text  # Import text for raw SQL

import models  # noqa: F401  (registers every table on db.metadata)


@click.command("init-db")
@click.option(
    "--create/--no-create",
    default=False,
    help="Create all tables after wiping instead of leaving it to migrations.",
)
@with_appcontext
def init_db(create):
    """Wipe the database schema, optionally recreating the tables.

    This is destructive. For normal schema changes use 'flask db migrate' and
    'flask db upgrade' from Flask-Migrate.
    """
    dialect_name = db.engine.dialect.name
    click.echo(f"Database dialect: {dialect_name}")

    if dialect_name == "postgresql":
        click.echo("Dropping and recreating the 'public' schema...")
        with db.engine.connect() as connection:
            connection.execute(text("DROP SCHEMA public CASCADE;"))
            connection.execute(text("CREATE SCHEMA public;"))
            if db.engine.url.username:
                connection.execute(
                    text(f"GRANT ALL ON SCHEMA public TO {db.engine.url.username};")
                )
            connection.commit()
    else:
        click.echo("Dropping all tables...")
        db.drop_all()

    if create:
        db.create_all()
        click.echo("Database wiped and tables created.")
    else:
        click.echo("Database wiped. Tables will be created by migrations.")
