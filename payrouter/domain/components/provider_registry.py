"""ProviderRegistry component - ordered set of registered payment providers."""

from __future__ import annotations

from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter


class ProviderRegistrationError(ValueError):
    """Raised when a provider cannot be registered."""

    pass


class ProviderRegistry:
    """Holds the registered providers in registration order.

    Registration order is the tie-breaker for equal composite scores, so it is
    preserved exactly. The provider list is replaced, never mutated, on every
    change; a routing call that already took ``providers()`` keeps a stable view.
    """

    def __init__(self) -> None:
        self._providers: tuple[PaymentProviderAdapter, ...] = ()

    def register(
        self, provider: PaymentProviderAdapter, overwrite: bool = False
    ) -> PaymentProviderAdapter:
        """Register a provider.

        Args:
            provider: Adapter with a unique non-empty ``name``.
            overwrite: Replace an existing provider of the same name in place,
                keeping its original position.

        Raises:
            ProviderRegistrationError: If the name is missing or already taken.
        """
        name = getattr(provider, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ProviderRegistrationError("Provider must have a non-empty string 'name'")

        index = self.index_of(name)
        if index is None:
            self._providers = (*self._providers, provider)
        elif overwrite:
            providers = list(self._providers)
            providers[index] = provider
            self._providers = tuple(providers)
        else:
            raise ProviderRegistrationError(
                f"Provider '{name}' is already registered. Use overwrite=True to replace it."
            )
        return provider

    def unregister(self, name: str) -> bool:
        """Remove a provider by name.

        Args:
            name: Name the provider was registered under.

        Returns:
            True if it was registered, False otherwise.
        """
        if self.index_of(name) is None:
            return False
        self._providers = tuple(p for p in self._providers if p.name != name)
        return True

    def get(self, name: str) -> PaymentProviderAdapter | None:
        """Look up a provider by name.

        Args:
            name: Provider name.

        Returns:
            The registered adapter, or None if no provider has that name.
        """
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def index_of(self, name: str) -> int | None:
        """Registration position of a provider, or None if not registered."""
        for index, provider in enumerate(self._providers):
            if provider.name == name:
                return index
        return None

    def providers(self) -> list[PaymentProviderAdapter]:
        """All providers, in registration order."""
        return list(self._providers)

    def names(self) -> list[str]:
        """Provider names.

        Returns:
            Names in registration order.
        """
        return [provider.name for provider in self._providers]

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.index_of(name) is not None
