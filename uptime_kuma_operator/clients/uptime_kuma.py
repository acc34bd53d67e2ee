"""
Uptime Kuma REST API client for the operator.
"""
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..models.backend import Group, HealthReport, Monitor, MonitorStatusReport, Tag
from ..utils.errors import ExternalAPIError

API_PREFIX = "/api/v1"


class UptimeKumaClient:
    """Client for the Uptime Kuma REST API.

    Every response is an envelope ``{"ok": bool, "msg": str, ...payload}``. A
    non-2xx status, a body with ``ok: false`` or a transport failure raises
    ``ExternalAPIError``.
    """

    def __init__(self, base_url: str, api_key: str, insecure_skip_verify: bool = False,
                 timeout: float = 30, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.insecure_skip_verify = insecure_skip_verify

        self._http = httpx.Client(
            base_url=self.base_url + API_PREFIX,
            timeout=timeout,
            verify=not insecure_skip_verify,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"{method} {path} failed: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            if isinstance(data, dict) and data.get("msg"):
                code = data.get("error")
                message = f"API error ({code}): {data['msg']}" if code else f"API error: {data['msg']}"
                raise ExternalAPIError(message, status_code=response.status_code)
            raise ExternalAPIError(
                f"API request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise ExternalAPIError(f"Unexpected response body: {response.text}", status_code=response.status_code)

        if data.get("ok") is False:
            raise ExternalAPIError(f"API error: {data.get('msg', 'request rejected')}", status_code=response.status_code)

        return data

    # Health

    def get_health(self) -> HealthReport:
        """Check the health of the Uptime Kuma API."""
        return HealthReport.model_validate(self._request("GET", "/status/health"))

    # Tags

    def list_tags(self) -> List[Tag]:
        data = self._request("GET", "/tags")
        return [Tag.model_validate(tag) for tag in data.get("tags", [])]

    def create_tag(self, tag: Tag) -> Tag:
        data = self._request("POST", "/tags", json=tag.to_payload())
        return Tag.model_validate(data["tag"])

    def find_or_create_tag(self, name: str, color: str) -> Tag:
        """Find a tag by exact name, creating it if it doesn't exist."""
        for tag in self.list_tags():
            if tag.name == name:
                return tag

        logger.debug(f"Creating new tag: '{name}'")
        return self.create_tag(Tag(name=name, color=color))

    # Groups

    def create_group(self, group: Group) -> int:
        data = self._request("POST", "/groups", json=group.to_payload())
        return int(data["groupId"])

    def update_group(self, group_id: int, group: Group) -> None:
        self._request("PUT", f"/groups/{group_id}", json=group.to_payload())

    def delete_group(self, group_id: int, delete_children: bool = False) -> None:
        self._request("DELETE", f"/groups/{group_id}",
                      params={"deleteChildren": str(delete_children).lower()})

    # Monitors

    def get_monitor(self, monitor_id: int) -> Monitor:
        return Monitor.model_validate(self._request("GET", f"/monitors/{monitor_id}")["monitor"])

    def create_monitor(self, monitor: Monitor) -> int:
        data = self._request("POST", "/monitors", json=monitor.to_payload())
        return int(data["monitorId"])

    def update_monitor(self, monitor_id: int, monitor: Monitor) -> None:
        payload = monitor.to_payload()
        payload["id"] = monitor_id
        self._request("PUT", f"/monitors/{monitor_id}", json=payload)

    def delete_monitor(self, monitor_id: int, delete_children: bool = False) -> None:
        self._request("DELETE", f"/monitors/{monitor_id}",
                      params={"deleteChildren": str(delete_children).lower()})

    def pause_monitor(self, monitor_id: int) -> None:
        self._request("POST", f"/monitors/{monitor_id}/pause")

    def resume_monitor(self, monitor_id: int) -> None:
        self._request("POST", f"/monitors/{monitor_id}/resume")

    def get_monitor_status(self, monitor_id: int) -> MonitorStatusReport:
        data = self._request("GET", f"/monitors/{monitor_id}/status")
        return MonitorStatusReport.model_validate(data.get("status") or {})

    def add_tag_to_monitor(self, monitor_id: int, tag_id: int, value: str) -> None:
        self._request("POST", f"/monitors/{monitor_id}/tags", json={"tagId": tag_id, "value": value})

    def update_monitor_tag(self, monitor_id: int, tag_id: int, value: str) -> None:
        self._request("PUT", f"/monitors/{monitor_id}/tags/{tag_id}", json={"value": value})
