"""
Database integration for identity-provider configuration and user accounts.

Create the schema once at startup with :func:`migrate`, then open one store
per unit of work:

.. code-block:: python

   engine = datastore.create_engine('sqlite:///identity.db')
   datastore.migrate(engine)

   with datastore.ConfigurationStore(engine, StoreOptions()) as store:
       store.clients.add(domain.Client(client_id='mvc'))
       store.save_changes()

"""

from . import util, models, schema, repositories, stores
from .util import create_engine, is_available
from .schema import migrate, current_version, drop_all
from .stores import UnitOfWork, ConfigurationStore, UserAccountStore
