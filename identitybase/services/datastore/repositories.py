"""
Record collections exposed by the stores.

Repositories stage changes in the unit of work of the store that owns them;
nothing is written until the store saves. Reads go to the database (plus
whatever the unit of work has already loaded) and return plain
:mod:`identitybase.domain` records.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, \
    Tuple, Type, TYPE_CHECKING

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from ... import domain
from ...exceptions import ConcurrencyConflict, InvalidRecord, \
    NoSuchApiResource, NoSuchClaim, NoSuchClient, NoSuchExternalAccount, \
    NoSuchIdentityResource, NoSuchUserAccount
from . import models, util

if TYPE_CHECKING:
    from .stores import UnitOfWork


class Repository:
    """Base for the record collections of a store."""

    def __init__(self, store: 'UnitOfWork') -> None:
        self._store = store

    @property
    def _session(self) -> Session:
        return self._store.session

    def _flush_deletes(self) -> None:
        """Write staged deletions, so a new row may reuse a removed key."""
        if self._session.deleted:
            self._store.flush()


class ChildSpec:
    """How a domain child record maps onto its database row."""

    def __init__(self, model: Type[Any], parent_key: str,
                 fields: Sequence[str]) -> None:
        self.model = model
        self.parent_key = parent_key
        self.fields = fields
        self.key = fields[0]
        """The field that identifies a child within its parent."""

    def values(self, record: Any) -> Dict[str, Any]:
        return {field: getattr(record, field) for field in self.fields}

    def build(self, record: Any, parent_id: str) -> Any:
        child = self.model(id=util.new_id(), **self.values(record))
        setattr(child, self.parent_key, parent_id)
        return child


def _set_if_changed(obj: Any, field: str, value: Any) -> None:
    if getattr(obj, field) != value:
        setattr(obj, field, value)


def _sync_children(store: 'UnitOfWork', parent: Any, field: str,
                   records: Iterable[Any], spec: ChildSpec) -> None:
    """
    Make the ``field`` collection of ``parent`` match ``records``.

    Children are matched by id and, for records without an id, by their key
    field; unmatched rows are deleted and unmatched records are inserted.
    Deletions reach the database before any key changes, and keys that are
    swapped between children pass through a unique temporary value, so that
    only the final state has to satisfy unique constraints.
    """
    session = store.session
    collection = getattr(parent, field)
    records = list(records)
    by_id = {child.id: child for child in collection}
    for record in records:
        if record.id is not None and record.id not in by_id:
            raise InvalidRecord(f'No child {record.id} on this record')
    kept_ids = {record.id for record in records if record.id is not None}
    by_key = {getattr(child, spec.key): child for child in collection
              if child.id not in kept_ids}

    matched: List[Tuple[Any, Dict[str, Any]]] = []
    added: List[Any] = []
    for record in records:
        if record.id is not None:
            child = by_id[record.id]
        else:
            child = by_key.pop(getattr(record, spec.key), None)
        if child is None:
            added.append(record)
        else:
            matched.append((child, spec.values(record)))

    matched_ids = {child.id for child, _ in matched}
    removed = [child for child in collection if child.id not in matched_ids]
    for child in removed:
        collection.remove(child)
        if inspect(child).persistent:
            session.delete(child)

    current_keys = {getattr(child, spec.key) for child, _ in matched}
    renamed = [child for child, values in matched
               if values[spec.key] != getattr(child, spec.key)]
    swapped = any(getattr(child, spec.key) != values[spec.key]
                  and values[spec.key] in current_keys
                  for child, values in matched)
    if swapped:
        for child in renamed:
            setattr(child, spec.key, child.id)
    if swapped or (session.deleted and (renamed or added)):
        store.flush()

    for child, values in matched:
        for name, value in values.items():
            _set_if_changed(child, name, value)
    for record in added:
        collection.append(spec.build(record, parent.id))


def _require(value: Optional[str], message: str) -> None:
    if value is None or not str(value).strip():
        raise InvalidRecord(message)


def _require_unique(values: Iterable[str], what: str) -> None:
    seen: Set[str] = set()
    for value in values:
        if value in seen:
            raise InvalidRecord(f'Duplicate {what}: {value}')
        seen.add(value)


def _check_version(record: Any, db_obj: Any) -> None:
    if record.version is not None and record.version != db_obj.version:
        raise ConcurrencyConflict(
            f'{type(record).__name__} {db_obj.id} is at version'
            f' {db_obj.version}, not {record.version}'
        )


def _bump(db_obj: Any) -> None:
    db_obj.version = db_obj.version + 1
    db_obj.updated = util.now()


CLIENT_SCALARS = (
    'client_id', 'client_name', 'description', 'client_uri', 'logo_uri',
    'enabled', 'protocol_type', 'require_client_secret', 'require_consent',
    'allow_remember_consent', 'require_pkce', 'allow_offline_access',
    'allow_access_tokens_via_browser', 'identity_token_lifetime',
    'access_token_lifetime', 'authorization_code_lifetime'
)
CLIENT_CHILDREN = {
    'allowed_scopes': ChildSpec(models.DBClientScope, 'client_id',
                                ['scope']),
    'allowed_grant_types': ChildSpec(models.DBClientGrantType, 'client_id',
                                     ['grant_type']),
    'redirect_uris': ChildSpec(models.DBClientRedirectUri, 'client_id',
                               ['redirect_uri']),
    'post_logout_redirect_uris': ChildSpec(
        models.DBClientPostLogoutRedirectUri, 'client_id',
        ['post_logout_redirect_uri']
    ),
    'client_secrets': ChildSpec(models.DBClientSecret, 'client_id',
                                ['value', 'type', 'description',
                                 'expiration']),
    'allowed_cors_origins': ChildSpec(models.DBClientCorsOrigin, 'client_id',
                                      ['origin']),
}


class ClientRepository(Repository):
    """The ``clients`` collection of a :class:`.ConfigurationStore`."""

    def add(self, client: domain.Client) -> domain.Client:
        """Stage a new client; returns it with its identifiers assigned."""
        self._validate(client)
        db_client = models.DBClient(
            id=util.new_id(),
            created=util.now(),
            version=1,
            **{field: getattr(client, field) for field in CLIENT_SCALARS}
        )
        for field, spec in CLIENT_CHILDREN.items():
            setattr(db_client, field,
                    [spec.build(r, db_client.id)
                     for r in getattr(client, field)])
        self._flush_deletes()
        self._session.add(db_client)
        return db_client.to_domain()

    def get(self, id: str) -> domain.Client:
        """Load a client by row id."""
        return self._load(id).to_domain()

    def find_by_client_id(self, client_id: str) -> Optional[domain.Client]:
        """Load a client by its public client id, if it exists."""
        db_client = self._session.query(models.DBClient) \
            .filter(models.DBClient.client_id == client_id) \
            .first()
        return db_client.to_domain() if db_client is not None else None

    def find_by_scopes(self, scopes: Iterable[str]) -> List[domain.Client]:
        """Load clients that are allowed to request any of ``scopes``."""
        scopes = list(scopes)
        if not scopes:
            return []
        return [db_client.to_domain() for db_client in
                self._session.query(models.DBClient)
                .filter(models.DBClient.allowed_scopes.any(
                    models.DBClientScope.scope.in_(scopes)))
                .order_by(models.DBClient.client_id)]

    def list(self, enabled_only: bool = False) -> List[domain.Client]:
        query = self._session.query(models.DBClient)
        if enabled_only:
            query = query.filter(models.DBClient.enabled.is_(True))
        return [c.to_domain()
                for c in query.order_by(models.DBClient.client_id)]

    def update(self, client: domain.Client) -> domain.Client:
        """Stage changes to an existing client, including its children."""
        if client.id is None:
            raise InvalidRecord('Client id must be set')
        self._validate(client)
        db_client = self._load(client.id)
        _check_version(client, db_client)
        for field in CLIENT_SCALARS:
            _set_if_changed(db_client, field, getattr(client, field))
        _bump(db_client)
        for field, spec in CLIENT_CHILDREN.items():
            _sync_children(self._store, db_client, field,
                           getattr(client, field), spec)
        return db_client.to_domain()

    def remove(self, id: str) -> None:
        """Stage deletion of a client and everything it owns."""
        self._session.delete(self._load(id))

    def _load(self, id: str) -> models.DBClient:
        db_client: Optional[models.DBClient] = \
            self._session.get(models.DBClient, id)
        if db_client is None:
            raise NoSuchClient(f'Client {id} does not exist')
        return db_client

    def _validate(self, client: domain.Client) -> None:
        _require(client.client_id, 'Client must have a client_id')
        for scope in client.allowed_scopes:
            _require(scope.scope, 'Client scope must not be empty')
        _require_unique(client.scope_names, 'scope')
        for grant_type in client.allowed_grant_types:
            _require(grant_type.grant_type, 'Grant type must not be empty')
        _require_unique([g.grant_type for g in client.allowed_grant_types],
                        'grant type')


IDENTITY_RESOURCE_SCALARS = (
    'name', 'display_name', 'description', 'enabled', 'required',
    'emphasize', 'show_in_discovery_document'
)
IDENTITY_CLAIMS = ChildSpec(models.DBIdentityClaim, 'identity_resource_id',
                            ['type'])


class IdentityResourceRepository(Repository):
    """The ``identity_resources`` collection of a configuration store."""

    def add(self, resource: domain.IdentityResource) \
            -> domain.IdentityResource:
        self._validate(resource)
        db_resource = models.DBIdentityResource(
            id=util.new_id(),
            created=util.now(),
            version=1,
            **{f: getattr(resource, f) for f in IDENTITY_RESOURCE_SCALARS}
        )
        db_resource.user_claims = [IDENTITY_CLAIMS.build(c, db_resource.id)
                                   for c in resource.user_claims]
        self._flush_deletes()
        self._session.add(db_resource)
        return db_resource.to_domain()

    def get(self, id: str) -> domain.IdentityResource:
        return self._load(id).to_domain()

    def find_by_name(self, name: str) -> Optional[domain.IdentityResource]:
        db_resource = self._session.query(models.DBIdentityResource) \
            .filter(models.DBIdentityResource.name == name) \
            .first()
        return db_resource.to_domain() if db_resource is not None else None

    def find_by_scopes(self, scopes: Iterable[str]) \
            -> List[domain.IdentityResource]:
        """Load the identity resources named in ``scopes``."""
        scopes = list(scopes)
        if not scopes:
            return []
        return [r.to_domain() for r in
                self._session.query(models.DBIdentityResource)
                .filter(models.DBIdentityResource.name.in_(scopes))
                .order_by(models.DBIdentityResource.name)]

    def list(self, enabled_only: bool = False) \
            -> List[domain.IdentityResource]:
        query = self._session.query(models.DBIdentityResource)
        if enabled_only:
            query = query.filter(models.DBIdentityResource.enabled.is_(True))
        return [r.to_domain()
                for r in query.order_by(models.DBIdentityResource.name)]

    def update(self, resource: domain.IdentityResource) \
            -> domain.IdentityResource:
        if resource.id is None:
            raise InvalidRecord('Identity resource id must be set')
        self._validate(resource)
        db_resource = self._load(resource.id)
        _check_version(resource, db_resource)
        for field in IDENTITY_RESOURCE_SCALARS:
            _set_if_changed(db_resource, field, getattr(resource, field))
        _bump(db_resource)
        _sync_children(self._store, db_resource, 'user_claims',
                       resource.user_claims, IDENTITY_CLAIMS)
        return db_resource.to_domain()

    def remove(self, id: str) -> None:
        self._session.delete(self._load(id))

    def _load(self, id: str) -> models.DBIdentityResource:
        db_resource: Optional[models.DBIdentityResource] = \
            self._session.get(models.DBIdentityResource, id)
        if db_resource is None:
            raise NoSuchIdentityResource(
                f'Identity resource {id} does not exist'
            )
        return db_resource

    def _validate(self, resource: domain.IdentityResource) -> None:
        _require(resource.name, 'Identity resource must have a name')
        _require_unique([c.type for c in resource.user_claims], 'claim')


API_RESOURCE_SCALARS = ('name', 'display_name', 'description', 'enabled')
API_RESOURCE_CHILDREN = {
    'scopes': ChildSpec(models.DBApiScope, 'api_resource_id',
                        ['name', 'display_name', 'description', 'required',
                         'emphasize', 'show_in_discovery_document']),
    'api_secrets': ChildSpec(models.DBApiSecret, 'api_resource_id',
                             ['value', 'type', 'description', 'expiration']),
    'user_claims': ChildSpec(models.DBApiResourceClaim, 'api_resource_id',
                             ['type']),
}


class ApiResourceRepository(Repository):
    """The ``api_resources`` collection of a configuration store."""

    def add(self, resource: domain.ApiResource) -> domain.ApiResource:
        self._validate(resource)
        db_resource = models.DBApiResource(
            id=util.new_id(),
            created=util.now(),
            version=1,
            **{f: getattr(resource, f) for f in API_RESOURCE_SCALARS}
        )
        for field, spec in API_RESOURCE_CHILDREN.items():
            setattr(db_resource, field,
                    [spec.build(r, db_resource.id)
                     for r in getattr(resource, field)])
        self._flush_deletes()
        self._session.add(db_resource)
        return db_resource.to_domain()

    def get(self, id: str) -> domain.ApiResource:
        return self._load(id).to_domain()

    def find_by_name(self, name: str) -> Optional[domain.ApiResource]:
        db_resource = self._session.query(models.DBApiResource) \
            .filter(models.DBApiResource.name == name) \
            .first()
        return db_resource.to_domain() if db_resource is not None else None

    def find_by_scopes(self, scopes: Iterable[str]) \
            -> List[domain.ApiResource]:
        """Load the API resources that expose any of ``scopes``."""
        scopes = list(scopes)
        if not scopes:
            return []
        return [r.to_domain() for r in
                self._session.query(models.DBApiResource)
                .filter(models.DBApiResource.scopes.any(
                    models.DBApiScope.name.in_(scopes)))
                .order_by(models.DBApiResource.name)]

    def list(self, enabled_only: bool = False) -> List[domain.ApiResource]:
        query = self._session.query(models.DBApiResource)
        if enabled_only:
            query = query.filter(models.DBApiResource.enabled.is_(True))
        return [r.to_domain()
                for r in query.order_by(models.DBApiResource.name)]

    def update(self, resource: domain.ApiResource) -> domain.ApiResource:
        if resource.id is None:
            raise InvalidRecord('API resource id must be set')
        self._validate(resource)
        db_resource = self._load(resource.id)
        _check_version(resource, db_resource)
        for field in API_RESOURCE_SCALARS:
            _set_if_changed(db_resource, field, getattr(resource, field))
        _bump(db_resource)
        for field, spec in API_RESOURCE_CHILDREN.items():
            _sync_children(self._store, db_resource, field,
                           getattr(resource, field), spec)
        return db_resource.to_domain()

    def remove(self, id: str) -> None:
        self._session.delete(self._load(id))

    def _load(self, id: str) -> models.DBApiResource:
        db_resource: Optional[models.DBApiResource] = \
            self._session.get(models.DBApiResource, id)
        if db_resource is None:
            raise NoSuchApiResource(f'API resource {id} does not exist')
        return db_resource

    def _validate(self, resource: domain.ApiResource) -> None:
        _require(resource.name, 'API resource must have a name')
        for scope in resource.scopes:
            _require(scope.name, 'API scope must have a name')
        _require_unique([s.name for s in resource.scopes], 'API scope')
        _require_unique([c.type for c in resource.user_claims], 'claim')


USER_ACCOUNT_SCALARS = (
    'email', 'is_email_verified', 'email_verified_at', 'is_login_allowed',
    'last_login_at', 'last_failed_login_at', 'failed_login_count',
    'password_hash', 'password_changed_at', 'verification_key',
    'verification_purpose', 'verification_key_sent_at',
    'verification_storage'
)


class UserAccountRepository(Repository):
    """The ``user_accounts`` collection of a :class:`.UserAccountStore`."""

    def add(self, account: domain.UserAccount) -> domain.UserAccount:
        _require(account.email, 'User account must have an email address')
        db_account = models.DBUserAccount(
            id=util.new_id(),
            created=util.now(),
            version=1,
            **{f: getattr(account, f) for f in USER_ACCOUNT_SCALARS}
        )
        self._flush_deletes()
        self._session.add(db_account)
        return db_account.to_domain()

    def get(self, id: str) -> domain.UserAccount:
        return self._load(id).to_domain()

    def find_by_email(self, email: str) -> Optional[domain.UserAccount]:
        return self._find(models.DBUserAccount.email == email)

    def find_by_verification_key(self, key: str) \
            -> Optional[domain.UserAccount]:
        return self._find(models.DBUserAccount.verification_key == key)

    def list(self) -> List[domain.UserAccount]:
        return [a.to_domain() for a in
                self._session.query(models.DBUserAccount)
                .order_by(models.DBUserAccount.email)]

    def update(self, account: domain.UserAccount) -> domain.UserAccount:
        if account.id is None:
            raise InvalidRecord('User account id must be set')
        _require(account.email, 'User account must have an email address')
        db_account = self._load(account.id)
        _check_version(account, db_account)
        for field in USER_ACCOUNT_SCALARS:
            _set_if_changed(db_account, field, getattr(account, field))
        _bump(db_account)
        return db_account.to_domain()

    def remove(self, id: str) -> None:
        """Stage deletion of an account, its external accounts and claims."""
        self._session.delete(self._load(id))

    def _find(self, criterion: Any) -> Optional[domain.UserAccount]:
        db_account = self._session.query(models.DBUserAccount) \
            .filter(criterion) \
            .first()
        return db_account.to_domain() if db_account is not None else None

    def _load(self, id: str) -> models.DBUserAccount:
        db_account: Optional[models.DBUserAccount] = \
            self._session.get(models.DBUserAccount, id)
        if db_account is None:
            raise NoSuchUserAccount(f'User account {id} does not exist')
        return db_account


class ExternalAccountRepository(Repository):
    """The ``external_accounts`` collection of a user account store."""

    def add(self, account: domain.ExternalAccount) -> domain.ExternalAccount:
        _require(account.provider, 'External account must have a provider')
        _require(account.subject, 'External account must have a subject')
        _require(account.user_account_id,
                 'External account must belong to a user account')
        db_account = models.DBExternalAccount(
            provider=account.provider,
            subject=account.subject,
            user_account_id=account.user_account_id,
            email=account.email,
            last_login_at=account.last_login_at,
            created=util.now()
        )
        self._flush_deletes()
        self._session.add(db_account)
        return db_account.to_domain()

    def get(self, provider: str, subject: str) -> domain.ExternalAccount:
        return self._load(provider, subject).to_domain()

    def find(self, provider: str, subject: str) \
            -> Optional[domain.ExternalAccount]:
        db_account = self._session.get(models.DBExternalAccount,
                                       (provider, subject))
        return db_account.to_domain() if db_account is not None else None

    def list_for_user(self, user_account_id: str) \
            -> List[domain.ExternalAccount]:
        return [a.to_domain() for a in
                self._session.query(models.DBExternalAccount)
                .filter(models.DBExternalAccount.user_account_id
                        == user_account_id)
                .order_by(models.DBExternalAccount.provider,
                          models.DBExternalAccount.subject)]

    def update(self, account: domain.ExternalAccount) \
            -> domain.ExternalAccount:
        """Stage changes to the email and last login of an account."""
        db_account = self._load(account.provider, account.subject)
        if db_account.user_account_id != account.user_account_id:
            raise InvalidRecord('External accounts cannot change owner')
        _set_if_changed(db_account, 'email', account.email)
        _set_if_changed(db_account, 'last_login_at', account.last_login_at)
        db_account.updated = util.now()
        return db_account.to_domain()

    def remove(self, provider: str, subject: str) -> None:
        self._session.delete(self._load(provider, subject))

    def _load(self, provider: str, subject: str) -> models.DBExternalAccount:
        db_account: Optional[models.DBExternalAccount] = \
            self._session.get(models.DBExternalAccount, (provider, subject))
        if db_account is None:
            raise NoSuchExternalAccount(
                f'No {provider} account with subject {subject}'
            )
        return db_account


class UserAccountClaimRepository(Repository):
    """The ``user_account_claims`` collection of a user account store."""

    def add(self, claim: domain.UserAccountClaim) -> domain.UserAccountClaim:
        _require(claim.type, 'Claim must have a type')
        _require(claim.user_account_id, 'Claim must belong to a user account')
        if claim.value is None:
            raise InvalidRecord('Claim must have a value')
        db_claim = models.DBUserAccountClaim(
            id=util.new_id(),
            user_account_id=claim.user_account_id,
            type=claim.type,
            value=claim.value,
            value_type=claim.value_type
        )
        self._session.add(db_claim)
        return db_claim.to_domain()

    def get(self, id: str) -> domain.UserAccountClaim:
        return self._load(id).to_domain()

    def list_for_user(self, user_account_id: str,
                      type: Optional[str] = None) \
            -> List[domain.UserAccountClaim]:
        return [c.to_domain() for c in self._query(user_account_id, type)]

    def remove(self, id: str) -> None:
        self._session.delete(self._load(id))

    def remove_for_user(self, user_account_id: str,
                        type: Optional[str] = None) -> int:
        """Stage deletion of a user's claims, optionally of one type only."""
        db_claims = self._query(user_account_id, type).all()
        for db_claim in db_claims:
            self._session.delete(db_claim)
        return len(db_claims)

    def _query(self, user_account_id: str, type: Optional[str]) -> Any:
        query = self._session.query(models.DBUserAccountClaim) \
            .filter(models.DBUserAccountClaim.user_account_id
                    == user_account_id)
        if type is not None:
            query = query.filter(models.DBUserAccountClaim.type == type)
        return query.order_by(models.DBUserAccountClaim.type,
                              models.DBUserAccountClaim.value)

    def _load(self, id: str) -> models.DBUserAccountClaim:
        db_claim: Optional[models.DBUserAccountClaim] = \
            self._session.get(models.DBUserAccountClaim, id)
        if db_claim is None:
            raise NoSuchClaim(f'Claim {id} does not exist')
        return db_claim
