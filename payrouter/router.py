"""PaymentRouter - main entry point wiring the routing core together."""

from datetime import datetime
from typing import Any

from payrouter.domain.components.profile_catalog import ProfileCatalog
from payrouter.domain.components.provider_registry import (
    ProviderRegistrationError,
    ProviderRegistry,
)
from payrouter.domain.components.routing_engine import CompositeRoutingEngine
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.interfaces.provider_adapter import (
    PaymentProviderAdapter,
    PaymentProviderProtocol,
)
from payrouter.domain.models.route_decision import RouteDecision
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_error import ConfigurationUnavailableError
from payrouter.infrastructure.config.file_loader import ConfigurationError
from payrouter.infrastructure.config.file_watcher import ConfigurationFileWatcher
from payrouter.infrastructure.config.manager import ConfigurationManager
from payrouter.infrastructure.config.settings import RouterSettings
from payrouter.infrastructure.observability.logger import DefaultObservabilityManager

_REQUIRED_PROVIDER_METHODS = ("supports", "fee_for", "health_snapshot")


class PaymentRouter:
    """Main entry point for library.

    PaymentRouter owns the provider registry and the configuration manager
    and hands every routing call to the composite engine.

    Example:
        ```python
        async with PaymentRouter(config={"config_file": "routing.yaml"}) as router:
            await router.register_provider(StripeAdapter())
            await router.register_provider(AdyenAdapter())

            decision = await router.route(
                RoutingContext(
                    amount=Decimal("100.00"),
                    currency="USD",
                    country="US",
                    card_network="VISA",
                    merchant_id="merchant-123",
                )
            )
            print(decision.selected_provider, decision.reason)
        ```
    """

    def __init__(
        self,
        config: RouterSettings | dict[str, Any] | None = None,
        observability_manager: ObservabilityManager | None = None,
        configuration_manager: ConfigurationManager | None = None,
    ) -> None:
        """Initialize PaymentRouter with dependencies.

        Args:
            config: Optional settings. Can be:
                   - RouterSettings instance
                   - Dictionary with settings values
                   - None (loads from environment variables)
            observability_manager: Optional ObservabilityManager implementation.
                                 If not provided, defaults to DefaultObservabilityManager.
            configuration_manager: Optional ConfigurationManager. If not provided,
                                 one is created for ``config_file`` (if set).

        Raises:
            ValueError: If the settings are invalid.
            ConfigurationError: If ``config_file`` is set but does not exist.
        """
        if config is None:
            self._settings = RouterSettings()
        elif isinstance(config, dict):
            self._settings = RouterSettings.from_dict(config)
        elif isinstance(config, RouterSettings):
            self._settings = config
        else:
            raise ValueError(
                f"Invalid config type: {type(config)}. Expected RouterSettings, dict, or None"
            )

        if observability_manager is None:
            self._observability_manager: ObservabilityManager = DefaultObservabilityManager(
                log_level=self._settings.log_level,
                json_format=self._settings.json_logs,
            )
        else:
            self._observability_manager = observability_manager

        if configuration_manager is None:
            self._configuration_manager = ConfigurationManager(
                config_file_path=self._settings.config_file,
                observability_manager=self._observability_manager,
                max_history=self._settings.config_history_size,
            )
        else:
            self._configuration_manager = configuration_manager

        self._registry = ProviderRegistry()
        self._routing_engine = CompositeRoutingEngine(
            registry=self._registry,
            config_source=self._configuration_manager,
            observability_manager=self._observability_manager,
            profile_catalog=ProfileCatalog(
                self._configuration_manager,
                self._observability_manager,
                default_profile=self._settings.default_profile,
            ),
            provider_timeout=self._settings.provider_timeout_seconds,
        )
        self._file_watcher: ConfigurationFileWatcher | None = None

    async def __aenter__(self) -> "PaymentRouter":
        """Load the configuration file and start watching it if enabled."""
        config_path = self._configuration_manager.config_file_path
        if config_path is not None:
            await self.load_configuration()
            if self._settings.watch_config_file:
                self._file_watcher = ConfigurationFileWatcher(
                    config_manager=self._configuration_manager,
                    config_file_path=config_path,
                    debounce_seconds=self._settings.config_debounce_seconds,
                    observability_manager=self._observability_manager,
                )
                self._file_watcher.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Stop the file watcher and drop any reload still waiting on its debounce."""
        if self._file_watcher is not None:
            self._file_watcher.stop()
            self._file_watcher = None

    @property
    def settings(self) -> RouterSettings:
        """Settings the router was built with.

        Returns:
            RouterSettings used by this router.
        """
        return self._settings

    @property
    def registry(self) -> ProviderRegistry:
        """Registry of payment providers, in registration order.

        Returns:
            ProviderRegistry used by this router.
        """
        return self._registry

    @property
    def routing_engine(self) -> CompositeRoutingEngine:
        """Engine that makes each routing decision.

        Returns:
            CompositeRoutingEngine used by this router.
        """
        return self._routing_engine

    @property
    def configuration_manager(self) -> ConfigurationManager:
        """Manager serving the versioned configuration snapshot.

        Returns:
            ConfigurationManager used by this router.
        """
        return self._configuration_manager

    @property
    def observability_manager(self) -> ObservabilityManager:
        """ObservabilityManager shared by every component.

        Returns:
            ObservabilityManager used by this router.
        """
        return self._observability_manager

    @property
    def file_watcher(self) -> ConfigurationFileWatcher | None:
        """File watcher started by ``__aenter__``, or None when not watching."""
        return self._file_watcher

    async def register_provider(
        self,
        adapter: PaymentProviderAdapter | PaymentProviderProtocol,
        overwrite: bool = False,
    ) -> None:
        """Register a payment provider.

        Providers are ranked by registration order when composite scores tie.

        Args:
            adapter: Provider adapter with a unique ``name``.
            overwrite: If True, replaces an existing provider of the same name
                      in its original position.

        Raises:
            ValueError: If the adapter is incomplete, unnamed or already registered.
        """
        missing = [
            method
            for method in _REQUIRED_PROVIDER_METHODS
            if not callable(getattr(adapter, method, None))
        ]
        if missing:
            raise ProviderRegistrationError(
                f"adapter is missing required methods: {', '.join(missing)}"
            )

        self._registry.register(adapter, overwrite=overwrite)

        await self._observability_manager.log(
            level="INFO",
            message="Provider registered",
            context={
                "provider": adapter.name,
                "adapter_type": type(adapter).__name__,
                "overwrite": overwrite,
            },
        )
        await self._observability_manager.emit_event(
            event_type="provider_registered",
            payload={
                "provider": adapter.name,
                "adapter_type": type(adapter).__name__,
                "overwrite": overwrite,
                "registration_index": self._registry.index_of(adapter.name),
            },
            metadata={"timestamp": datetime.utcnow().isoformat()},
        )

    async def load_configuration(self) -> bool:
        """Load (or reload) the configuration file.

        Returns:
            True if a new snapshot is being served. On failure the previous
            snapshot stays in place (an empty one before the first success)
            and the failure is logged.
        """
        try:
            await self._configuration_manager.load_configuration()
        except ConfigurationError as e:
            error = ConfigurationUnavailableError(
                f"Configuration unavailable: {e}",
                details={"version": self._configuration_manager.version},
            )
            await self._observability_manager.log(
                level="ERROR",
                message="Configuration load failed, keeping current snapshot",
                context={
                    "category": error.category.value,
                    "error": str(e),
                    "version": self._configuration_manager.version,
                },
            )
            return False
        return True

    async def update_configuration(self, key: str, value: Any) -> int:
        """Set one configuration key; takes effect for the next routing call.

        Returns:
            The new configuration version.

        Raises:
            ConfigurationError: If the key is unknown or the value malformed.
        """
        await self._configuration_manager.update_value(key, value)
        return self._configuration_manager.version

    async def route(self, context: RoutingContext | dict[str, Any]) -> RouteDecision:
        """Choose a provider for one transaction.

        Args:
            context: RoutingContext, or a dict validated into one.

        Returns:
            RouteDecision. Never raises once the context is valid.

        Raises:
            pydantic.ValidationError: If a dict context is invalid.
        """
        if not isinstance(context, RoutingContext):
            context = RoutingContext.model_validate(context)
        return await self._routing_engine.route(context)

    async def list_profiles(self) -> list[str]:
        """Names of every routing profile currently available."""
        return await self._routing_engine.list_profiles()
