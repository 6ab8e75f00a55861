"""
Core domain classes for identity-provider configuration and user accounts.

Records are immutable. Use ``record._replace(...)`` to derive a modified copy
and hand it back to the repository's ``update`` method.
"""

from datetime import datetime
from typing import NamedTuple, Optional, List


class ClientScope(NamedTuple):
    """A scope that a :class:`Client` is allowed to request."""

    scope: str
    """Name of the scope, e.g. ``openid`` or ``api1.read``."""

    id: Optional[str] = None
    """Unique identifier of the scope row."""

    client_id: Optional[str] = None
    """Row identifier (:attr:`Client.id`) of the owning client."""


class ClientGrantType(NamedTuple):
    """A grant type that a :class:`Client` may use."""

    AUTHORIZATION_CODE = 'authorization_code'
    IMPLICIT = 'implicit'
    HYBRID = 'hybrid'
    CLIENT_CREDENTIALS = 'client_credentials'
    PASSWORD = 'password'

    grant_type: str
    id: Optional[str] = None
    client_id: Optional[str] = None


class ClientRedirectUri(NamedTuple):
    """A URI to which tokens or codes may be sent."""

    redirect_uri: str
    id: Optional[str] = None
    client_id: Optional[str] = None


class ClientPostLogoutRedirectUri(NamedTuple):
    """A URI to which the user may be sent after logout."""

    post_logout_redirect_uri: str
    id: Optional[str] = None
    client_id: Optional[str] = None


class Secret(NamedTuple):
    """A (hashed) secret belonging to a client or an API resource."""

    SHARED_SECRET = 'SharedSecret'

    value: str
    """Hashed secret value."""

    type: str = SHARED_SECRET
    description: Optional[str] = None
    expiration: Optional[datetime] = None
    id: Optional[str] = None

    owner_id: Optional[str] = None
    """Row identifier of the owning client or API resource."""


class ClientCorsOrigin(NamedTuple):
    """An origin allowed to make CORS calls on behalf of a client."""

    origin: str
    id: Optional[str] = None
    client_id: Optional[str] = None


class Client(NamedTuple):
    """An application registered with the identity provider."""

    OIDC = 'oidc'

    client_id: str
    """Public identifier used by the application in protocol requests."""

    client_name: Optional[str] = None
    description: Optional[str] = None
    client_uri: Optional[str] = None
    logo_uri: Optional[str] = None
    enabled: bool = True
    protocol_type: str = OIDC
    require_client_secret: bool = True
    require_consent: bool = True
    allow_remember_consent: bool = True
    require_pkce: bool = False
    allow_offline_access: bool = False
    allow_access_tokens_via_browser: bool = False

    identity_token_lifetime: int = 300
    """Lifetime of identity tokens, in seconds."""

    access_token_lifetime: int = 3600
    """Lifetime of access tokens, in seconds."""

    authorization_code_lifetime: int = 300
    """Lifetime of authorization codes, in seconds."""

    allowed_scopes: List[ClientScope] = []
    allowed_grant_types: List[ClientGrantType] = []
    redirect_uris: List[ClientRedirectUri] = []
    post_logout_redirect_uris: List[ClientPostLogoutRedirectUri] = []
    client_secrets: List[Secret] = []
    allowed_cors_origins: List[ClientCorsOrigin] = []

    id: Optional[str] = None
    """Unique identifier of the client row."""

    created: Optional[datetime] = None
    updated: Optional[datetime] = None

    version: Optional[int] = None
    """Concurrency token; incremented on every update."""

    @property
    def scope_names(self) -> List[str]:
        """Names of the scopes this client is allowed to request."""
        return [scope.scope for scope in self.allowed_scopes]


class IdentityClaim(NamedTuple):
    """A user claim type included when an identity resource is requested."""

    type: str
    id: Optional[str] = None
    identity_resource_id: Optional[str] = None


class IdentityResource(NamedTuple):
    """A named group of user claims, requested as an identity scope."""

    name: str
    """Unique name, also the scope value a client requests."""

    display_name: Optional[str] = None
    description: Optional[str] = None
    enabled: bool = True
    required: bool = False
    emphasize: bool = False
    show_in_discovery_document: bool = True
    user_claims: List[IdentityClaim] = []
    id: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    version: Optional[int] = None


class ApiScope(NamedTuple):
    """A scope exposed by an :class:`ApiResource`."""

    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    emphasize: bool = False
    show_in_discovery_document: bool = True
    id: Optional[str] = None
    api_resource_id: Optional[str] = None


class ApiResourceClaim(NamedTuple):
    """A user claim type included in access tokens for an API."""

    type: str
    id: Optional[str] = None
    api_resource_id: Optional[str] = None


class ApiResource(NamedTuple):
    """A protected API."""

    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    enabled: bool = True
    scopes: List[ApiScope] = []
    api_secrets: List[Secret] = []
    user_claims: List[ApiResourceClaim] = []
    id: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    version: Optional[int] = None


class UserAccount(NamedTuple):
    """A local end-user account."""

    email: str
    is_email_verified: bool = False
    email_verified_at: Optional[datetime] = None
    is_login_allowed: bool = False
    last_login_at: Optional[datetime] = None
    last_failed_login_at: Optional[datetime] = None
    failed_login_count: int = 0

    password_hash: Optional[str] = None
    """Already-hashed password; hashing happens outside this package."""

    password_changed_at: Optional[datetime] = None

    verification_key: Optional[str] = None
    """Key sent to confirm an e-mail address or to reset a password."""

    verification_purpose: Optional[int] = None
    verification_key_sent_at: Optional[datetime] = None
    verification_storage: Optional[str] = None
    id: Optional[str] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    version: Optional[int] = None


class ExternalAccount(NamedTuple):
    """An account at an external identity provider linked to a user."""

    provider: str
    """Name of the external provider, e.g. ``google``."""

    subject: str
    """The user's identifier at the external provider."""

    user_account_id: str
    email: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class UserAccountClaim(NamedTuple):
    """An attribute claim attached to a user account."""

    user_account_id: str
    type: str
    value: str
    value_type: Optional[str] = None
    id: Optional[str] = None
