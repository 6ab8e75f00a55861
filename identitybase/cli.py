"""
Command-line helpers for preparing a datastore.

.. warning: ``create-client`` is for dev/test purposes only.

"""

import hashlib
import secrets

import click

from . import app_logging, config, domain
from .options import StoreOptions
from .services import datastore

DEFAULT_SCOPES = 'openid profile'
DEFAULT_GRANT_TYPES = ' '.join([domain.ClientGrantType.AUTHORIZATION_CODE,
                                domain.ClientGrantType.CLIENT_CREDENTIALS])


@click.group()
@click.option('--database-uri', default=config.DATABASE_URI,
              show_default=True, help='SQLAlchemy URL of the datastore.')
@click.pass_context
def main(ctx: click.Context, database_uri: str) -> None:
    """Manage the identity datastore."""
    app_logging.setup_logger(json=False)
    options = StoreOptions.from_config()
    ctx.obj = {
        'engine': datastore.create_engine(database_uri, options),
        'options': options
    }


@main.command()
@click.pass_context
def migrate(ctx: click.Context) -> None:
    """Create or upgrade the datastore schema."""
    version = datastore.migrate(ctx.obj['engine'], ctx.obj['options'])
    click.echo(f'Schema is at version {version}')


@main.command('create-client')
@click.option('--client-id', prompt='Client id')
@click.option('--name', prompt='Brief client name')
@click.option('--scopes', prompt='Space-delimited allowed scopes',
              default=DEFAULT_SCOPES)
@click.option('--grant-types', default=DEFAULT_GRANT_TYPES,
              help='Space-delimited allowed grant types.')
@click.option('--redirect-uri', prompt='Redirect URI')
@click.pass_context
def create_client(ctx: click.Context, client_id: str, name: str, scopes: str,
                  grant_types: str, redirect_uri: str) -> None:
    """Register a new client with a generated secret."""
    engine, options = ctx.obj['engine'], ctx.obj['options']
    datastore.migrate(engine, options)

    secret = secrets.token_urlsafe(48)
    hashed = hashlib.sha256(secret.encode('utf-8')).hexdigest()
    client = domain.Client(
        client_id=client_id,
        client_name=name,
        allowed_scopes=[domain.ClientScope(scope=scope)
                        for scope in scopes.split()],
        allowed_grant_types=[domain.ClientGrantType(grant_type=grant_type)
                             for grant_type in grant_types.split()],
        redirect_uris=[domain.ClientRedirectUri(redirect_uri=redirect_uri)],
        client_secrets=[domain.Secret(value=hashed)]
    )
    with datastore.ConfigurationStore(engine, options) as store:
        client = store.clients.add(client)
        store.save_changes()
    click.echo(f'Created client {client.client_id} with ID {client.id}'
               f' and secret {secret}')
