"""Turns UptimeKumaConfig resources into ready-to-use API clients."""
import base64
import binascii
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from loguru import logger
from pydantic import ValidationError

from ..models import UptimeKumaConfigSpec, UptimeKumaConfigStatus
from ..utils.config import Config
from ..utils.errors import ConfigurationError, DependencyNotReadyError, InvalidSecretError, SecretNotFoundError
from .store import ResourceStore
from .uptime_kuma import UptimeKumaClient


@dataclass
class _CacheEntry:
    uid: Optional[str]
    generation: Optional[int]
    secret_version: Optional[str]
    client: UptimeKumaClient


class ClientResolver:
    """
    Resolves "client for namespace X, config Y" for every reconciler.

    Clients are cached per config and rebuilt when the config's identity or
    generation, or the secret's resourceVersion, changes.
    """

    def __init__(self, store: ResourceStore, config: Optional[Config] = None,
                 client_factory: Callable[..., UptimeKumaClient] = UptimeKumaClient):
        self.store = store
        self.config = config or Config()
        self.client_factory = client_factory
        self._cache: Dict[Tuple[str, str], _CacheEntry] = {}
        self._lock = threading.Lock()

    def read_api_key(self, namespace: str, spec: UptimeKumaConfigSpec) -> Tuple[str, Optional[str]]:
        """
        Fetch the API key referenced by a config spec.

        Returns:
            The API key and the resourceVersion of the Secret it came from.
        """
        ref = spec.api_key_secret
        secret_namespace = ref.namespace or namespace
        key = ref.key or self.config.default_secret_key

        secret = self.store.get_secret(secret_namespace, ref.name)
        if secret is None:
            raise SecretNotFoundError(f"secret {secret_namespace}/{ref.name} not found")

        data = secret.data or {}
        if key not in data:
            raise InvalidSecretError(f"secret {secret_namespace}/{ref.name} does not contain key '{key}'")

        try:
            api_key = base64.b64decode(data[key] or "").decode("utf-8").strip()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise InvalidSecretError(f"secret {secret_namespace}/{ref.name} key '{key}' is not valid: {e}") from e

        if not api_key:
            raise InvalidSecretError(f"API key in secret {secret_namespace}/{ref.name} is empty")

        resource_version = secret.metadata.resource_version if secret.metadata else None
        return api_key, resource_version

    def client_for(self, namespace: str, name: str, meta: Mapping[str, Any], spec: UptimeKumaConfigSpec,
                   api_key: str, secret_version: Optional[str]) -> UptimeKumaClient:
        """Return the cached client for a config, building a new one if anything changed."""
        key = (namespace, name)
        uid = meta.get("uid")
        generation = meta.get("generation")

        with self._lock:
            entry = self._cache.get(key)
            if (entry is not None and entry.uid == uid and entry.generation == generation
                    and entry.secret_version == secret_version):
                return entry.client

            if entry is not None:
                logger.debug(f"Rebuilding client for UptimeKumaConfig {namespace}/{name}")
                entry.client.close()

            client = self.client_factory(
                spec.api_url,
                api_key,
                insecure_skip_verify=spec.insecure_skip_verify,
                timeout=spec.timeout or self.config.default_timeout,
            )
            self._cache[key] = _CacheEntry(uid, generation, secret_version, client)
            return client

    def resolve(self, namespace: str, config_name: Optional[str] = None) -> UptimeKumaClient:
        """Get a client for a connected UptimeKumaConfig."""
        name = config_name or self.config.default_config_name

        body = self.store.get_config(namespace, name)
        if body is None:
            raise ConfigurationError(f"UptimeKumaConfig '{name}' not found in namespace '{namespace}'")

        status = UptimeKumaConfigStatus.from_status(body.get("status"))
        if not status.connected:
            raise DependencyNotReadyError(f"UptimeKumaConfig '{name}' is not connected")

        try:
            spec = UptimeKumaConfigSpec.model_validate(body.get("spec") or {})
        except ValidationError as e:
            raise ConfigurationError(f"UptimeKumaConfig '{name}' has an invalid spec: {e}") from e

        api_key, secret_version = self.read_api_key(namespace, spec)
        return self.client_for(namespace, name, body.get("metadata") or {}, spec, api_key, secret_version)

    def invalidate(self, namespace: str, name: str) -> None:
        """Forget the cached client of a config."""
        with self._lock:
            entry = self._cache.pop((namespace, name), None)
        if entry is not None:
            logger.debug(f"Invalidated client for UptimeKumaConfig {namespace}/{name}")
            entry.client.close()
