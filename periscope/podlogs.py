"""Collects recent container logs and status of pods in chosen namespaces."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import quote, urlencode

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)
from .networkoutbound import _parse_time

TAIL_LINES = 100


@dataclass(frozen=True)
class PodContainerInfo:
    """Status of a pod together with one container's log tail. Age is in nanoseconds."""

    name: str
    ready: str
    status: str
    restart: int
    age: int
    container_name: str
    container_log: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ready": self.ready,
            "status": self.status,
            "restart": self.restart,
            "age": self.age,
            "containerName": self.container_name,
            "containerLog": self.container_log,
        }


def _age_ns(created: datetime, now: datetime) -> int:
    seconds = (now - created).total_seconds()
    rounded = math.floor(abs(seconds) + 0.5)
    return int(math.copysign(rounded, seconds)) * 1_000_000_000


class PodsContainerLogsCollector(Collector):
    """Reads the last lines of each container's log.

    ``client`` provides ``get(path)`` returning decoded JSON and
    ``get_text(path)`` returning a response body as text.
    """

    name = "podscontainerlogs"

    def __init__(
        self,
        client,
        runtime_info: RuntimeInfo | None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.runtime_info = runtime_info
        self.now = now or (lambda: datetime.now(timezone.utc))
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        collectors = self.runtime_info.collector_list
        if "connectedCluster" not in collectors:
            raise UnsupportedError(
                "not included because 'connectedCluster' not in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def collect(self) -> None:
        if self.client is None:
            raise CollectionError("getting access to K8S failed: no cluster client configured")

        for namespace in self.runtime_info.container_logs_namespaces:
            try:
                pods = self.client.get(f"/api/v1/namespaces/{quote(namespace)}/pods")
            except Exception as error:
                raise CollectionError(f"getting pods failed: {error}") from error

            for pod in pods.get("items") or []:
                self._collect_pod(namespace, pod)

    def _collect_pod(self, namespace: str, pod: dict) -> None:
        metadata = pod.get("metadata") or {}
        pod_name = metadata.get("name", "")
        created = metadata.get("creationTimestamp")
        age = _age_ns(_parse_time(created), self.now()) if created else 0

        containers = (pod.get("spec") or {}).get("containers") or []
        status = pod.get("status") or {}
        statuses = status.get("containerStatuses") or []
        if len(statuses) < len(containers):
            raise CollectionError(f"pod {pod_name} is missing container statuses")
        relevant = statuses[: len(containers)]
        restarts = sum(int(s.get("restartCount") or 0) for s in relevant)
        ready = sum(1 for s in relevant if s.get("ready"))

        for container in containers:
            container_name = container.get("name", "")
            log = self._logs(namespace, pod_name, container_name)
            info = PodContainerInfo(
                name=pod_name,
                ready=f"{ready}/{len(containers)}",
                status=status.get("phase", ""),
                restart=restarts,
                age=age,
                container_name=container_name,
                container_log=log,
            )
            self._data[f"{pod_name}-{container_name}"] = json.dumps(
                info.to_dict(), separators=(",", ":"), ensure_ascii=False
            )

    def _logs(self, namespace: str, pod_name: str, container_name: str) -> str:
        query = urlencode({"container": container_name, "tailLines": TAIL_LINES})
        path = f"/api/v1/namespaces/{quote(namespace)}/pods/{quote(pod_name)}/log?{query}"
        try:
            return self.client.get_text(path)
        except Exception as error:
            raise CollectionError(
                f"getting container logs failed: getting pod logs request failed: {error}"
            ) from error

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)