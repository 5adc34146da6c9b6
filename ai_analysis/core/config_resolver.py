"""
LogAllot - Provider Config Resolver
===================================

Turns a provider name into a fully populated ProviderConfig.

Each field is looked up through three tiers, in order:

1. Settings store      - keys ``ai_*`` and ``<provider>_*``, JSON-encoded values
2. Remote config       - only when tier 1 has no entries at all
3. Environment         - only when tier 2 fails or is not configured

Whatever a tier does not supply falls back to the per-provider defaults in
``shared.constants``, so the only field that can come back empty is the
API key. Lookup failures are logged and never propagated. An unknown
provider passed in by the caller is the one thing rejected here, with
UnsupportedProviderError; an unknown stored name falls back to the default.
"""

import json
import os
import re
from typing import Any, Mapping, Optional, Protocol

import httpx

from ai_analysis.api.schemas import ProviderConfig, ProviderStatus
from ai_analysis.core.errors import UnsupportedProviderError
from shared.constants import (
    DEFAULT_BASE_URLS,
    DEFAULT_MODELS,
    DEFAULT_PROVIDER,
    Defaults,
    ProviderName,
)
from shared.utils.http_client import ServiceClient, ServiceClientConfig
from shared.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# STORE INTERFACES
# =============================================================================

class SettingsStore(Protocol):
    """Persisted key/value settings. Values are JSON-encoded strings."""

    async def get_by_prefix(self, prefix: str) -> dict[str, str]:
        ...


class RemoteConfigSource(Protocol):
    """Remote feature-flag / config service returning a flat map."""

    async def get_all(self) -> dict[str, Any]:
        ...


class InMemorySettingsStore:
    """
    Settings store backed by a dict.

    Used for local development and tests; production deployments inject the
    persistence layer's implementation instead.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: dict[str, str] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)

    async def get_by_prefix(self, prefix: str) -> dict[str, str]:
        return {k: v for k, v in self._values.items() if k.startswith(prefix)}


class EdgeConfigClient:
    """
    Remote config over HTTP.

    Accepts an Edge Config style connection string
    (``https://edge-config.vercel.com/<id>?token=<token>``) and reads every
    item with ``GET <id>/items``.
    """

    def __init__(
        self,
        connection_string: str,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        url = httpx.URL(connection_string)
        self._token = url.params.get("token", "")
        self._service = ServiceClient(
            str(httpx.URL(scheme=url.scheme, host=url.host, port=url.port, path=url.path)),
            config=ServiceClientConfig(timeout_seconds=timeout_seconds),
            client=client,
        )

    async def get_all(self) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        response = await self._service.get("items", headers=headers)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected remote config payload: {type(data).__name__}")
        return data

    async def close(self) -> None:
        await self._service.close()


# =============================================================================
# VALUE COERCION
# =============================================================================

def _decode(value: Any) -> Any:
    """Decode a JSON-encoded setting; undecodable strings are used verbatim."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _as_str(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _as_float(value: Any, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric setting value {value!r}")
        return default


def _as_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer setting value {value!r}")
        return default


def _ms_to_seconds(value: Any) -> float:
    millis = _as_float(value, Defaults.TIMEOUT_SECONDS * 1000)
    if millis <= 0:
        return Defaults.TIMEOUT_SECONDS
    return millis / 1000


def env_key_name(provider: ProviderName, suffix: str) -> str:
    """``z.ai`` + ``API_KEY`` -> ``Z_AI_API_KEY``."""
    return re.sub(r"[^A-Z0-9]", "_", provider.value.upper()) + f"_{suffix}"


def parse_provider(name: str) -> ProviderName:
    """
    Map a provider string onto the closed provider enum.

    Raises:
        UnsupportedProviderError: The name is not a supported vendor
    """
    try:
        return ProviderName(str(name).strip().lower())
    except ValueError:
        raise UnsupportedProviderError(str(name)) from None


# =============================================================================
# RESOLVER
# =============================================================================

class ConfigResolver:
    """
    Three-tier provider configuration lookup.

    Store handles are injected so the resolver can be exercised without a
    database or network:

        resolver = ConfigResolver(
            settings_store=InMemorySettingsStore({"ai_provider": "openai"}),
            remote_config=None,
            environ={"OPENAI_API_KEY": "sk-..."},
        )
        config = await resolver.resolve()
    """

    def __init__(
        self,
        settings_store: Optional[SettingsStore] = None,
        remote_config: Optional[RemoteConfigSource] = None,
        environ: Optional[Mapping[str, str]] = None,
        default_provider: str = DEFAULT_PROVIDER.value
    ):
        self._settings_store = settings_store
        self._remote_config = remote_config
        self._environ = environ if environ is not None else os.environ
        self._default_provider = default_provider

    async def resolve(self, provider: Optional[str] = None) -> ProviderConfig:
        """
        Resolve the configuration for ``provider`` (or the active provider).

        Raises:
            UnsupportedProviderError: The requested provider is not supported
        """
        explicit = parse_provider(provider) if provider else None

        entries = await self._read_settings_store(explicit)
        if entries:
            return self._from_settings(entries, explicit)

        try:
            if self._remote_config is None:
                raise LookupError("remote config service not configured")
            remote = await self._remote_config.get_all()
        except Exception as e:
            logger.warning(
                "Remote config unavailable, using environment variables",
                extra={"error": str(e)}
            )
            return self._from_environment(explicit)

        logger.info("Settings store empty, using remote config")
        return self._from_remote(remote, explicit)

    async def provider_status(self) -> list[ProviderStatus]:
        """Report configuration state for every supported provider."""
        active = (await self.resolve()).provider
        statuses = []
        for name in ProviderName:
            config = await self.resolve(name.value)
            statuses.append(ProviderStatus(
                provider=name,
                configured=bool(config.api_key),
                model=config.model,
                base_url=config.base_url,
                active=name == active,
            ))
        return statuses

    async def close(self) -> None:
        """Release the remote config client, if it holds connections."""
        close = getattr(self._remote_config, "close", None)
        if close is not None:
            await close()

    # -------------------------------------------------------------------------
    # Tier 1: settings store
    # -------------------------------------------------------------------------

    async def _read_settings_store(self, explicit: Optional[ProviderName]) -> dict[str, Any]:
        if self._settings_store is None:
            return {}

        try:
            raw = dict(await self._settings_store.get_by_prefix("ai_"))
        except Exception as e:
            logger.error("Error reading AI settings", extra={"error": str(e)})
            return {}

        entries = {key: _decode(value) for key, value in raw.items()}
        active = explicit or self._active_from(entries.get("ai_provider"))

        try:
            provider_raw = await self._settings_store.get_by_prefix(f"{active.value}_")
        except Exception as e:
            logger.error(
                "Error reading provider settings",
                extra={"provider": active.value, "error": str(e)}
            )
            provider_raw = {}

        entries.update({key: _decode(value) for key, value in provider_raw.items()})
        return entries

    def _from_settings(
        self,
        entries: dict[str, Any],
        explicit: Optional[ProviderName]
    ) -> ProviderConfig:
        active = explicit or self._active_from(entries.get("ai_provider"))
        prefix = active.value

        return self._build(
            active,
            api_key=_as_str(entries.get(f"{prefix}_api_key")),
            model=entries.get(f"{prefix}_model"),
            base_url=entries.get(f"{prefix}_base_url"),
            temperature=entries.get("ai_temperature"),
            max_tokens=entries.get("ai_max_tokens"),
            timeout_ms=entries.get("ai_timeout"),
        )

    # -------------------------------------------------------------------------
    # Tier 2: remote config
    # -------------------------------------------------------------------------

    def _from_remote(
        self,
        remote: Mapping[str, Any],
        explicit: Optional[ProviderName]
    ) -> ProviderConfig:
        active = explicit or self._active_from(remote.get("ai.primaryProvider"))
        prefix = f"ai.{active.value}"

        api_key = _as_str(remote.get(f"{prefix}.apiKey")) or self._env(active, "API_KEY")

        return self._build(
            active,
            api_key=api_key,
            model=remote.get(f"{prefix}.model"),
            base_url=remote.get(f"{prefix}.baseUrl"),
            temperature=remote.get("ai.temperature"),
            max_tokens=remote.get("ai.maxTokens"),
            timeout_ms=remote.get("ai.timeout"),
        )

    # -------------------------------------------------------------------------
    # Tier 3: environment
    # -------------------------------------------------------------------------

    def _from_environment(self, explicit: Optional[ProviderName]) -> ProviderConfig:
        active = explicit or self._active_from(None)

        return self._build(
            active,
            api_key=self._env(active, "API_KEY"),
            model=self._env(active, "MODEL"),
            base_url=self._env(active, "BASE_URL"),
            temperature=None,
            max_tokens=None,
            timeout_ms=None,
        )

    def _env(self, provider: ProviderName, suffix: str) -> str:
        return self._environ.get(env_key_name(provider, suffix), "")

    # -------------------------------------------------------------------------

    def _active_from(self, configured: Any) -> ProviderName:
        """
        Configured name if present and supported, otherwise the default.

        Only an explicit provider argument is rejected outright; a bad
        stored value must not take down every unqualified lookup.
        """
        name = _as_str(configured)
        if name:
            try:
                return parse_provider(name)
            except UnsupportedProviderError:
                logger.warning(
                    "Configured AI provider is not supported, using default",
                    extra={"configured": name, "default": self._default_provider}
                )
        return parse_provider(self._default_provider)

    @staticmethod
    def _build(
        provider: ProviderName,
        api_key: str,
        model: Any,
        base_url: Any,
        temperature: Any,
        max_tokens: Any,
        timeout_ms: Any
    ) -> ProviderConfig:
        resolved_temperature = _as_float(temperature, Defaults.TEMPERATURE)
        if not 0.0 <= resolved_temperature <= 2.0:
            resolved_temperature = Defaults.TEMPERATURE

        resolved_max_tokens = _as_int(max_tokens, Defaults.MAX_TOKENS)
        if resolved_max_tokens <= 0:
            resolved_max_tokens = Defaults.MAX_TOKENS

        return ProviderConfig(
            provider=provider,
            api_key=api_key,
            model=_as_str(model, DEFAULT_MODELS[provider]),
            base_url=_as_str(base_url, DEFAULT_BASE_URLS[provider]).rstrip("/"),
            temperature=resolved_temperature,
            max_tokens=resolved_max_tokens,
            timeout_seconds=_ms_to_seconds(timeout_ms),
        )
