"""Exceptions."""


class ArgumentNullError(ValueError):
    """A required argument was not provided."""

    def __init__(self, name: str) -> None:
        super().__init__(f'{name} must not be None')
        self.name = name


class InvalidRecord(ValueError):
    """A record violates an invariant of its type."""


class NoSuchRecord(LookupError):
    """A record was requested that does not exist."""


class NoSuchClient(NoSuchRecord):
    """A client was requested that does not exist."""


class NoSuchIdentityResource(NoSuchRecord):
    """An identity resource was requested that does not exist."""


class NoSuchApiResource(NoSuchRecord):
    """An API resource was requested that does not exist."""


class NoSuchUserAccount(NoSuchRecord):
    """A user account was requested that does not exist."""


class NoSuchExternalAccount(NoSuchRecord):
    """An external account was requested that does not exist."""


class NoSuchClaim(NoSuchRecord):
    """A user account claim was requested that does not exist."""


class PersistenceError(RuntimeError):
    """The database rejected the unit of work."""


class ConcurrencyConflict(PersistenceError):
    """A record was changed by another unit of work since it was loaded."""


class DisposedError(RuntimeError):
    """An operation was attempted on a store that has been released."""
