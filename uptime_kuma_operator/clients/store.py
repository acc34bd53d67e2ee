"""Access to the Kubernetes objects the reconcilers read and write."""
from typing import Any, Dict, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from loguru import logger

from ..utils.constants import API_GROUP, API_VERSION, CONFIG_PLURAL, GROUP_PLURAL, MONITOR_PLURAL
from ..utils.errors import StoreError


class ResourceStore:
    """Thin wrapper over the Kubernetes API.

    Reads return ``None`` for objects that do not exist; any other API failure
    is raised as ``StoreError`` so reconcilers can requeue.
    """

    def __init__(self, custom_api: Optional[client.CustomObjectsApi] = None,
                 core_api: Optional[client.CoreV1Api] = None):
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.core_api = core_api or client.CoreV1Api()

    def _get_custom(self, plural: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            return self.custom_api.get_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=plural,
                name=name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError(f"Failed to get {plural} {namespace}/{name}: {e.reason}") from e

    def get_config(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self._get_custom(CONFIG_PLURAL, namespace, name)

    def get_group(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self._get_custom(GROUP_PLURAL, namespace, name)

    def get_monitor(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self._get_custom(MONITOR_PLURAL, namespace, name)

    def list_monitors(self, namespace: str) -> List[Dict[str, Any]]:
        try:
            result = self.custom_api.list_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=MONITOR_PLURAL,
            )
        except ApiException as e:
            raise StoreError(f"Failed to list {MONITOR_PLURAL} in {namespace}: {e.reason}") from e
        return result.get("items", [])

    def get_secret(self, namespace: str, name: str) -> Optional[client.V1Secret]:
        try:
            return self.core_api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError(f"Failed to get secret {namespace}/{name}: {e.reason}") from e

    def get_service(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Read a Service as the same camelCase dict kopf hands to handlers."""
        try:
            service = self.core_api.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError(f"Failed to get service {namespace}/{name}: {e.reason}") from e
        return self.core_api.api_client.sanitize_for_serialization(service)

    def create_monitor(self, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self.custom_api.create_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=MONITOR_PLURAL,
                body=body,
            )
        except ApiException as e:
            raise StoreError(f"Failed to create monitor {namespace}/{body['metadata']['name']}: {e.reason}") from e

    def patch_monitor(self, namespace: str, name: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self.custom_api.patch_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=MONITOR_PLURAL,
                name=name,
                body=patch,
            )
        except ApiException as e:
            raise StoreError(f"Failed to patch monitor {namespace}/{name}: {e.reason}") from e

    def delete_monitor(self, namespace: str, name: str) -> bool:
        """Delete a monitor, returning False if it was already gone."""
        try:
            self.custom_api.delete_namespaced_custom_object(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=MONITOR_PLURAL,
                name=name,
            )
            return True
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"Monitor {namespace}/{name} already deleted")
                return False
            raise StoreError(f"Failed to delete monitor {namespace}/{name}: {e.reason}") from e
