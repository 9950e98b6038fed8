from typing import TYPE_CHECKING, Optional, Union

from dbmap.config import DatabaseConfig
from dbmap.mapping import DescriptorRegistry, Mapping, Row
from dbmap.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from dbmap.pool import ConnectionPool, PoolConnectionContext
    from dbmap.typing import RecordT

__all__ = ("DbMap",)

logger = get_logger()

DEFAULT_CONFIG_NAME = "default"


class DbMap:
    """Registry of database configurations and the mappings built on them.

    All mappings created through one registry share a single
    :class:`~dbmap.mapping.DescriptorRegistry`.
    """

    __slots__ = ("_configs", "_registry")

    def __init__(self, registry: Optional[DescriptorRegistry] = None) -> None:
        self._configs: dict[str, DatabaseConfig] = {}
        self._registry = registry if registry is not None else DescriptorRegistry()

    @property
    def registry(self) -> DescriptorRegistry:
        return self._registry

    @property
    def configs(self) -> "dict[str, DatabaseConfig]":
        return dict(self._configs)

    def add_config(self, config: DatabaseConfig, name: str = DEFAULT_CONFIG_NAME) -> str:
        """Register a configuration.

        Returns:
            The name the configuration can be retrieved with.
        """
        if name in self._configs and self._configs[name] is not config:
            logger.warning("Replacing database configuration %r", name)
        self._configs[name] = config
        return name

    def get_config(self, name: "Union[str, DatabaseConfig]" = DEFAULT_CONFIG_NAME) -> DatabaseConfig:
        """Retrieve a configuration by name.

        Raises:
            KeyError: If no configuration is registered under ``name``.
        """
        if isinstance(name, DatabaseConfig):
            return name
        config = self._configs.get(name)
        if config is None:
            msg = f"No configuration found for {name!r}"
            raise KeyError(msg)
        return config

    def get_pool(self, name: "Union[str, DatabaseConfig]" = DEFAULT_CONFIG_NAME) -> "ConnectionPool":
        return self.get_config(name).provide_pool()

    def provide_connection(self, name: "Union[str, DatabaseConfig]" = DEFAULT_CONFIG_NAME) -> "PoolConnectionContext":
        return self.get_config(name).provide_connection()

    def mapping(
        self,
        record_type: "type[RecordT]" = Row,  # type: ignore[assignment]
        *,
        config: "Union[str, DatabaseConfig]" = DEFAULT_CONFIG_NAME,
        table_name: Optional[str] = None,
        primary_key: Optional[str] = None,
        identity: bool = False,
    ) -> "Mapping[RecordT]":
        """Build a :class:`~dbmap.mapping.Mapping` bound to a configuration's pool."""
        return Mapping(
            record_type,
            self.get_pool(config),
            table_name=table_name,
            primary_key=primary_key,
            identity=identity,
            registry=self._registry,
        )

    async def close_pool(self, name: "Union[str, DatabaseConfig]" = DEFAULT_CONFIG_NAME) -> None:
        await self.get_config(name).close_pool()

    async def close_all_pools(self) -> None:
        """Shut down every pool; failures are logged and do not stop the others."""
        for name, config in self._configs.items():
            try:
                await config.close_pool()
            except Exception:
                logger.warning("Failed to close pool for %r", name, exc_info=True)

    async def __aenter__(self) -> "DbMap":
        return self

    async def __aexit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        await self.close_all_pools()

    def __repr__(self) -> str:
        return f"DbMap(configs={list(self._configs)!r})"
