"""SQLAlchemy models for database integration."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text, \
    UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

from ... import domain
from .util import UTCDateTime, as_utc

Base = declarative_base()

CHILDREN = 'all, delete-orphan'


def _versioned(version: Column) -> dict:
    # The repositories bump the version themselves on every update, so that
    # the parent row is always checked even when only children changed.
    return {'version_id_col': version, 'version_id_generator': False}


class DBClient(Base):  # type: ignore
    """Persistence for :class:`domain.Client`."""

    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True)
    client_id = Column(String(200), nullable=False, unique=True)
    client_name = Column(String(200))
    description = Column(String(1000))
    client_uri = Column(String(2000))
    logo_uri = Column(String(2000))
    enabled = Column(Boolean, nullable=False, default=True)
    protocol_type = Column(String(200), nullable=False)
    require_client_secret = Column(Boolean, nullable=False, default=True)
    require_consent = Column(Boolean, nullable=False, default=True)
    allow_remember_consent = Column(Boolean, nullable=False, default=True)
    require_pkce = Column(Boolean, nullable=False, default=False)
    allow_offline_access = Column(Boolean, nullable=False, default=False)
    allow_access_tokens_via_browser = Column(Boolean, nullable=False,
                                             default=False)
    identity_token_lifetime = Column(Integer, nullable=False, default=300)
    access_token_lifetime = Column(Integer, nullable=False, default=3600)
    authorization_code_lifetime = Column(Integer, nullable=False,
                                         default=300)
    created = Column(UTCDateTime, nullable=False)
    updated = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False)

    allowed_scopes = relationship('DBClientScope', back_populates='client',
                                  cascade=CHILDREN, lazy='selectin',
                                  order_by='DBClientScope.scope')
    allowed_grant_types = relationship('DBClientGrantType',
                                       back_populates='client',
                                       cascade=CHILDREN, lazy='selectin',
                                       order_by='DBClientGrantType.grant_type')
    redirect_uris = relationship('DBClientRedirectUri',
                                 back_populates='client',
                                 cascade=CHILDREN, lazy='selectin',
                                 order_by='DBClientRedirectUri.redirect_uri')
    post_logout_redirect_uris = relationship(
        'DBClientPostLogoutRedirectUri', back_populates='client',
        cascade=CHILDREN, lazy='selectin',
        order_by='DBClientPostLogoutRedirectUri.post_logout_redirect_uri'
    )
    client_secrets = relationship('DBClientSecret', back_populates='client',
                                  cascade=CHILDREN, lazy='selectin',
                                  order_by='DBClientSecret.value')
    allowed_cors_origins = relationship('DBClientCorsOrigin',
                                        back_populates='client',
                                        cascade=CHILDREN, lazy='selectin',
                                        order_by='DBClientCorsOrigin.origin')

    __mapper_args__ = _versioned(version)

    def to_domain(self) -> domain.Client:
        return domain.Client(
            id=self.id,
            client_id=self.client_id,
            client_name=self.client_name,
            description=self.description,
            client_uri=self.client_uri,
            logo_uri=self.logo_uri,
            enabled=self.enabled,
            protocol_type=self.protocol_type,
            require_client_secret=self.require_client_secret,
            require_consent=self.require_consent,
            allow_remember_consent=self.allow_remember_consent,
            require_pkce=self.require_pkce,
            allow_offline_access=self.allow_offline_access,
            allow_access_tokens_via_browser=(
                self.allow_access_tokens_via_browser
            ),
            identity_token_lifetime=self.identity_token_lifetime,
            access_token_lifetime=self.access_token_lifetime,
            authorization_code_lifetime=self.authorization_code_lifetime,
            allowed_scopes=[s.to_domain() for s in self.allowed_scopes],
            allowed_grant_types=[g.to_domain()
                                 for g in self.allowed_grant_types],
            redirect_uris=[u.to_domain() for u in self.redirect_uris],
            post_logout_redirect_uris=[
                u.to_domain() for u in self.post_logout_redirect_uris
            ],
            client_secrets=[s.to_domain() for s in self.client_secrets],
            allowed_cors_origins=[o.to_domain()
                                  for o in self.allowed_cors_origins],
            created=as_utc(self.created),
            updated=as_utc(self.updated),
            version=self.version
        )


class DBClientScope(Base):  # type: ignore
    """Persistence for :class:`domain.ClientScope`."""

    __tablename__ = 'client_scopes'
    __table_args__ = (UniqueConstraint('client_id', 'scope'),)

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    scope = Column(String(200), nullable=False)

    client = relationship('DBClient', back_populates='allowed_scopes')

    def to_domain(self) -> domain.ClientScope:
        return domain.ClientScope(id=self.id, scope=self.scope,
                                  client_id=self.client_id)


class DBClientGrantType(Base):  # type: ignore
    """Persistence for :class:`domain.ClientGrantType`."""

    __tablename__ = 'client_grant_types'
    __table_args__ = (UniqueConstraint('client_id', 'grant_type'),)

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    grant_type = Column(String(250), nullable=False)

    client = relationship('DBClient', back_populates='allowed_grant_types')

    def to_domain(self) -> domain.ClientGrantType:
        return domain.ClientGrantType(id=self.id, grant_type=self.grant_type,
                                      client_id=self.client_id)


class DBClientRedirectUri(Base):  # type: ignore
    """Persistence for :class:`domain.ClientRedirectUri`."""

    __tablename__ = 'client_redirect_uris'

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    redirect_uri = Column(String(2000), nullable=False)

    client = relationship('DBClient', back_populates='redirect_uris')

    def to_domain(self) -> domain.ClientRedirectUri:
        return domain.ClientRedirectUri(id=self.id,
                                        redirect_uri=self.redirect_uri,
                                        client_id=self.client_id)


class DBClientPostLogoutRedirectUri(Base):  # type: ignore
    """Persistence for :class:`domain.ClientPostLogoutRedirectUri`."""

    __tablename__ = 'client_post_logout_redirect_uris'

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    post_logout_redirect_uri = Column(String(2000), nullable=False)

    client = relationship('DBClient',
                          back_populates='post_logout_redirect_uris')

    def to_domain(self) -> domain.ClientPostLogoutRedirectUri:
        return domain.ClientPostLogoutRedirectUri(
            id=self.id,
            post_logout_redirect_uri=self.post_logout_redirect_uri,
            client_id=self.client_id
        )


class DBClientSecret(Base):  # type: ignore
    """Persistence for a :class:`domain.Secret` owned by a client."""

    __tablename__ = 'client_secrets'

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    value = Column(String(2000), nullable=False)
    type = Column(String(250), nullable=False)
    description = Column(String(2000))
    expiration = Column(UTCDateTime)

    client = relationship('DBClient', back_populates='client_secrets')

    def to_domain(self) -> domain.Secret:
        return domain.Secret(id=self.id, value=self.value, type=self.type,
                             description=self.description,
                             expiration=as_utc(self.expiration),
                             owner_id=self.client_id)


class DBClientCorsOrigin(Base):  # type: ignore
    """Persistence for :class:`domain.ClientCorsOrigin`."""

    __tablename__ = 'client_cors_origins'

    id = Column(String(36), primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    origin = Column(String(150), nullable=False)

    client = relationship('DBClient', back_populates='allowed_cors_origins')

    def to_domain(self) -> domain.ClientCorsOrigin:
        return domain.ClientCorsOrigin(id=self.id, origin=self.origin,
                                       client_id=self.client_id)


class DBIdentityResource(Base):  # type: ignore
    """Persistence for :class:`domain.IdentityResource`."""

    __tablename__ = 'identity_resources'

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False, unique=True)
    display_name = Column(String(200))
    description = Column(String(1000))
    enabled = Column(Boolean, nullable=False, default=True)
    required = Column(Boolean, nullable=False, default=False)
    emphasize = Column(Boolean, nullable=False, default=False)
    show_in_discovery_document = Column(Boolean, nullable=False,
                                        default=True)
    created = Column(UTCDateTime, nullable=False)
    updated = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False)

    user_claims = relationship('DBIdentityClaim',
                               back_populates='identity_resource',
                               cascade=CHILDREN, lazy='selectin',
                               order_by='DBIdentityClaim.type')

    __mapper_args__ = _versioned(version)

    def to_domain(self) -> domain.IdentityResource:
        return domain.IdentityResource(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            enabled=self.enabled,
            required=self.required,
            emphasize=self.emphasize,
            show_in_discovery_document=self.show_in_discovery_document,
            user_claims=[c.to_domain() for c in self.user_claims],
            created=as_utc(self.created),
            updated=as_utc(self.updated),
            version=self.version
        )


class DBIdentityClaim(Base):  # type: ignore
    """Persistence for :class:`domain.IdentityClaim`."""

    __tablename__ = 'identity_claims'

    id = Column(String(36), primary_key=True)
    identity_resource_id = Column(
        ForeignKey('identity_resources.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    type = Column(String(200), nullable=False)

    identity_resource = relationship('DBIdentityResource',
                                     back_populates='user_claims')

    def to_domain(self) -> domain.IdentityClaim:
        return domain.IdentityClaim(
            id=self.id, type=self.type,
            identity_resource_id=self.identity_resource_id
        )


class DBApiResource(Base):  # type: ignore
    """Persistence for :class:`domain.ApiResource`."""

    __tablename__ = 'api_resources'

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False, unique=True)
    display_name = Column(String(200))
    description = Column(String(1000))
    enabled = Column(Boolean, nullable=False, default=True)
    created = Column(UTCDateTime, nullable=False)
    updated = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False)

    scopes = relationship('DBApiScope', back_populates='api_resource',
                          cascade=CHILDREN, lazy='selectin',
                          order_by='DBApiScope.name')
    api_secrets = relationship('DBApiSecret', back_populates='api_resource',
                               cascade=CHILDREN, lazy='selectin',
                               order_by='DBApiSecret.value')
    user_claims = relationship('DBApiResourceClaim',
                               back_populates='api_resource',
                               cascade=CHILDREN, lazy='selectin',
                               order_by='DBApiResourceClaim.type')

    __mapper_args__ = _versioned(version)

    def to_domain(self) -> domain.ApiResource:
        return domain.ApiResource(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            enabled=self.enabled,
            scopes=[s.to_domain() for s in self.scopes],
            api_secrets=[s.to_domain() for s in self.api_secrets],
            user_claims=[c.to_domain() for c in self.user_claims],
            created=as_utc(self.created),
            updated=as_utc(self.updated),
            version=self.version
        )


class DBApiScope(Base):  # type: ignore
    """Persistence for :class:`domain.ApiScope`."""

    __tablename__ = 'api_scopes'

    id = Column(String(36), primary_key=True)
    api_resource_id = Column(
        ForeignKey('api_resources.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    name = Column(String(200), nullable=False, unique=True)
    display_name = Column(String(200))
    description = Column(String(1000))
    required = Column(Boolean, nullable=False, default=False)
    emphasize = Column(Boolean, nullable=False, default=False)
    show_in_discovery_document = Column(Boolean, nullable=False,
                                        default=True)

    api_resource = relationship('DBApiResource', back_populates='scopes')

    def to_domain(self) -> domain.ApiScope:
        return domain.ApiScope(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            required=self.required,
            emphasize=self.emphasize,
            show_in_discovery_document=self.show_in_discovery_document,
            api_resource_id=self.api_resource_id
        )


class DBApiSecret(Base):  # type: ignore
    """Persistence for a :class:`domain.Secret` owned by an API resource."""

    __tablename__ = 'api_secrets'

    id = Column(String(36), primary_key=True)
    api_resource_id = Column(
        ForeignKey('api_resources.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    value = Column(String(2000), nullable=False)
    type = Column(String(250), nullable=False)
    description = Column(String(1000))
    expiration = Column(UTCDateTime)

    api_resource = relationship('DBApiResource', back_populates='api_secrets')

    def to_domain(self) -> domain.Secret:
        return domain.Secret(id=self.id, value=self.value, type=self.type,
                             description=self.description,
                             expiration=as_utc(self.expiration),
                             owner_id=self.api_resource_id)


class DBApiResourceClaim(Base):  # type: ignore
    """Persistence for :class:`domain.ApiResourceClaim`."""

    __tablename__ = 'api_claims'

    id = Column(String(36), primary_key=True)
    api_resource_id = Column(
        ForeignKey('api_resources.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    type = Column(String(200), nullable=False)

    api_resource = relationship('DBApiResource', back_populates='user_claims')

    def to_domain(self) -> domain.ApiResourceClaim:
        return domain.ApiResourceClaim(id=self.id, type=self.type,
                                       api_resource_id=self.api_resource_id)


CONFIGURATION_TABLES = [
    DBClient.__table__,
    DBClientScope.__table__,
    DBClientGrantType.__table__,
    DBClientRedirectUri.__table__,
    DBClientPostLogoutRedirectUri.__table__,
    DBClientSecret.__table__,
    DBClientCorsOrigin.__table__,
    DBIdentityResource.__table__,
    DBIdentityClaim.__table__,
    DBApiResource.__table__,
    DBApiScope.__table__,
    DBApiSecret.__table__,
    DBApiResourceClaim.__table__,
]


class DBUserAccount(Base):  # type: ignore
    """Persistence for :class:`domain.UserAccount`."""

    __tablename__ = 'user_accounts'

    id = Column(String(36), primary_key=True)
    email = Column(String(254), nullable=False, unique=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verified_at = Column(UTCDateTime)
    is_login_allowed = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(UTCDateTime)
    last_failed_login_at = Column(UTCDateTime)
    failed_login_count = Column(Integer, nullable=False, default=0)
    password_hash = Column(String(200))
    password_changed_at = Column(UTCDateTime)
    verification_key = Column(String(100), index=True)
    verification_purpose = Column(Integer)
    verification_key_sent_at = Column(UTCDateTime)
    verification_storage = Column(Text)
    created = Column(UTCDateTime, nullable=False)
    updated = Column(UTCDateTime, nullable=True)
    version = Column(Integer, nullable=False)

    accounts = relationship('DBExternalAccount',
                            back_populates='user_account', cascade=CHILDREN)
    claims = relationship('DBUserAccountClaim',
                          back_populates='user_account', cascade=CHILDREN)

    __mapper_args__ = _versioned(version)

    def to_domain(self) -> domain.UserAccount:
        return domain.UserAccount(
            id=self.id,
            email=self.email,
            is_email_verified=self.is_email_verified,
            email_verified_at=as_utc(self.email_verified_at),
            is_login_allowed=self.is_login_allowed,
            last_login_at=as_utc(self.last_login_at),
            last_failed_login_at=as_utc(self.last_failed_login_at),
            failed_login_count=self.failed_login_count,
            password_hash=self.password_hash,
            password_changed_at=as_utc(self.password_changed_at),
            verification_key=self.verification_key,
            verification_purpose=self.verification_purpose,
            verification_key_sent_at=as_utc(self.verification_key_sent_at),
            verification_storage=self.verification_storage,
            created=as_utc(self.created),
            updated=as_utc(self.updated),
            version=self.version
        )


class DBExternalAccount(Base):  # type: ignore
    """Persistence for :class:`domain.ExternalAccount`."""

    __tablename__ = 'external_accounts'

    provider = Column(String(200), primary_key=True)
    subject = Column(String(200), primary_key=True)
    user_account_id = Column(
        ForeignKey('user_accounts.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    email = Column(String(254))
    last_login_at = Column(UTCDateTime)
    created = Column(UTCDateTime, nullable=False)
    updated = Column(UTCDateTime, nullable=True)

    user_account = relationship('DBUserAccount', back_populates='accounts')

    def to_domain(self) -> domain.ExternalAccount:
        return domain.ExternalAccount(
            provider=self.provider,
            subject=self.subject,
            user_account_id=self.user_account_id,
            email=self.email,
            last_login_at=as_utc(self.last_login_at),
            created=as_utc(self.created),
            updated=as_utc(self.updated)
        )


class DBUserAccountClaim(Base):  # type: ignore
    """Persistence for :class:`domain.UserAccountClaim`."""

    __tablename__ = 'user_account_claims'

    id = Column(String(36), primary_key=True)
    user_account_id = Column(
        ForeignKey('user_accounts.id', ondelete='CASCADE'),
        nullable=False, index=True
    )
    type = Column(String(250), nullable=False)
    value = Column(String(250), nullable=False)
    value_type = Column(String(2000))

    user_account = relationship('DBUserAccount', back_populates='claims')

    def to_domain(self) -> domain.UserAccountClaim:
        return domain.UserAccountClaim(
            id=self.id,
            user_account_id=self.user_account_id,
            type=self.type,
            value=self.value,
            value_type=self.value_type
        )


USER_ACCOUNT_TABLES = [
    DBUserAccount.__table__,
    DBExternalAccount.__table__,
    DBUserAccountClaim.__table__,
]
