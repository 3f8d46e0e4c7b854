"""ProfileCatalog component - resolves the active routing profile."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.models.route_decision import RoutingProfileMetadata
from payrouter.domain.models.routing_error import ProfileResolutionError
from payrouter.domain.models.routing_profile import (
    BALANCED_PROFILE_NAME,
    BUILTIN_PROFILES,
    RoutingProfile,
)

ROUTING_PROFILE_KEY = "routing_profile"
ROUTING_PROFILES_KEY = "routing_profiles"


class ProfileResolution(BaseModel):
    """The profile a routing call uses, and why it differs from the request if it does."""

    profile: RoutingProfile
    requested_name: str | None = None
    fallback_reason: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    def to_metadata(self) -> RoutingProfileMetadata:
        return RoutingProfileMetadata(
            name=self.profile.name,
            description=self.profile.description,
            is_single_strategy=self.profile.is_single_strategy,
            enabled_strategies=[s.display_name for s in self.profile.ordered_strategies()],
            profile_source=self.profile.source,
            fallback_reason=self.fallback_reason,
        )


class ProfileCatalog:
    """Built-in profiles merged with custom profiles from configuration.

    Resolution never raises: an unknown name, an unreadable setting or an
    invalid custom profile resolves to the built-in ``balanced`` profile and
    the reason is recorded.
    """

    def __init__(
        self,
        config_source: ConfigSource,
        observability_manager: ObservabilityManager,
        default_profile: str = BALANCED_PROFILE_NAME,
    ) -> None:
        """Initialize ProfileCatalog.

        Args:
            config_source: Source of the current configuration snapshot.
            observability_manager: ObservabilityManager for logging and events.
            default_profile: Profile used when configuration names none.
        """
        self._config = config_source
        self._observability = observability_manager
        self._default_profile = default_profile

    async def load_custom_profiles(
        self, config: ConfigSource | None = None
    ) -> tuple[dict[str, RoutingProfile], dict[str, str]]:
        """Parse ``routing_profiles``.

        Args:
            config: Configuration view pinned for the current routing call.
                Defaults to the live configuration source.

        Returns:
            Valid custom profiles by name, and the validation error of every
            rejected one.
        """
        raw = self._source(config).get(ROUTING_PROFILES_KEY)
        if raw is None:
            return {}, {}
        if not isinstance(raw, dict):
            await self._observability.log(
                level="WARNING",
                message="Custom routing profiles configuration is not a mapping, ignoring it",
                context={"value_type": type(raw).__name__},
            )
            return {}, {}

        profiles: dict[str, RoutingProfile] = {}
        rejected: dict[str, str] = {}
        for name, definition in raw.items():
            try:
                profiles[str(name)] = self._parse_custom(str(name), definition)
            except (ValidationError, ValueError, TypeError) as e:
                rejected[str(name)] = _first_error(e)
                await self._observability.log(
                    level="WARNING",
                    message="Skipping invalid custom routing profile",
                    context={"profile": str(name), "error": rejected[str(name)]},
                )
        return profiles, rejected

    async def available_profiles(
        self, config: ConfigSource | None = None
    ) -> dict[str, RoutingProfile]:
        """Built-ins plus valid custom profiles; a custom profile replaces a built-in of the same name."""
        custom, _ = await self.load_custom_profiles(config)
        return {**BUILTIN_PROFILES, **custom}

    async def list_profiles(self) -> list[str]:
        """List the names of every profile that can be resolved.

        Returns:
            Built-in names first, then valid custom names. Invalid custom
            profiles are left out.
        """
        return list(await self.available_profiles())

    async def get_profile(self, name: str) -> RoutingProfile | None:
        """Look up one profile by name.

        Args:
            name: Profile name, built-in or custom.

        Returns:
            The RoutingProfile, or None if no valid profile has that name.
        """
        return (await self.available_profiles()).get(name)

    async def resolve(self, config: ConfigSource | None = None) -> ProfileResolution:
        """Resolve the active profile for one routing call.

        Args:
            config: Configuration view pinned for the call. Both the profile
                name and the custom profiles are read from it.

        Returns:
            ProfileResolution; never raises.
        """
        source = self._source(config)
        raw = source.get(ROUTING_PROFILE_KEY)
        if raw is None:
            requested: Any = self._default_profile
        elif isinstance(raw, dict):
            requested = raw.get("profile")
        else:
            requested = raw

        if not isinstance(requested, str) or not requested.strip():
            return await self._fallback(
                None, f"Invalid routing_profile value {requested!r}"
            )
        name = requested.strip()

        custom, rejected = await self.load_custom_profiles(source)
        if name in custom:
            return ProfileResolution(profile=custom[name], requested_name=name)
        if name in rejected:
            return await self._fallback(name, f"Profile '{name}' is invalid: {rejected[name]}")
        if name in BUILTIN_PROFILES:
            return ProfileResolution(profile=BUILTIN_PROFILES[name], requested_name=name)
        return await self._fallback(name, f"Unknown profile '{name}'")

    def _source(self, config: ConfigSource | None) -> ConfigSource:
        return config if config is not None else self._config

    def _parse_custom(self, name: str, definition: Any) -> RoutingProfile:
        if not isinstance(definition, dict):
            raise ValueError(f"Profile definition must be a mapping, got {type(definition).__name__}")
        return RoutingProfile(
            name=name,
            description=str(definition.get("description") or ""),
            strategies=definition.get("strategies"),
            weights=definition.get("weights"),
            source="custom",
        )

    async def _fallback(self, requested: str | None, reason: str) -> ProfileResolution:
        error = ProfileResolutionError(reason, details={"requested_profile": requested})
        await self._observability.log(
            level="WARNING",
            message="Routing profile unavailable, falling back to balanced",
            context={
                "requested_profile": requested,
                "category": error.category.value,
                "reason": error.message,
            },
        )
        await self._observability.emit_event(
            event_type="profile_fallback",
            payload={
                "requested_profile": requested,
                "fallback_profile": BALANCED_PROFILE_NAME,
                "reason": reason,
            },
            metadata={"timestamp": datetime.utcnow().isoformat()},
        )
        return ProfileResolution(
            profile=BUILTIN_PROFILES[BALANCED_PROFILE_NAME],
            requested_name=requested,
            fallback_reason=reason,
        )


def _first_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        return str(first.get("msg", error))
    return str(error)
