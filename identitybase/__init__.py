"""
Persistence for an identity provider's configuration and user accounts.

Two independent units of work are provided by
:mod:`identitybase.services.datastore`: the
:class:`.ConfigurationStore` (clients, identity resources and API resources)
and the :class:`.UserAccountStore` (user accounts, their linked external
accounts and claims). Both work on plain records from
:mod:`identitybase.domain` and commit through SQLAlchemy.

Flask applications can use :mod:`identitybase.ext` to get one store per
application context, released on teardown.
"""

from .domain import Client, ClientScope, IdentityResource, ApiResource, \
    UserAccount, ExternalAccount, UserAccountClaim
from .options import StoreOptions
