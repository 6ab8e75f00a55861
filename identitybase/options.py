"""Options shared by the datastore's units of work and schema migrations."""

from typing import Any, Mapping, Optional

from pydantic import BaseModel

from . import config


class StoreOptions(BaseModel):
    """Options applied to every store created against an engine."""

    default_schema: Optional[str] = None
    """Schema in which the tables live; ``None`` for the database default."""

    save_timeout: Optional[float] = None
    """Seconds to wait for an asynchronous save; ``None`` waits forever."""

    echo_sql: bool = False

    @property
    def schema_translate_map(self) -> Optional[dict]:
        """Map of the unqualified table schema to :attr:`default_schema`."""
        if self.default_schema is None:
            return None
        return {None: self.default_schema}

    @classmethod
    def from_config(cls, app_config: Optional[Mapping[str, Any]] = None) \
            -> 'StoreOptions':
        """Build options from a config mapping, falling back to defaults."""
        app_config = app_config or {}
        timeout = app_config.get('IDENTITYBASE_SAVE_TIMEOUT',
                                 config.SAVE_TIMEOUT)
        return cls(
            default_schema=app_config.get('IDENTITYBASE_DEFAULT_SCHEMA',
                                          config.DEFAULT_SCHEMA),
            save_timeout=float(timeout) if timeout is not None else None,
            echo_sql=bool(app_config.get('IDENTITYBASE_ECHO_SQL',
                                         config.ECHO_SQL))
        )
