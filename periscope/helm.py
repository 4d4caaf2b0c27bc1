"""Collects the Helm releases installed in the cluster, with their history."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)
from .networkoutbound import ZERO_TIME, _format_time, _parse_time

logger = logging.getLogger(__name__)


def _chart_metadata(release: dict) -> dict:
    return (release.get("chart") or {}).get("metadata") or {}


@dataclass(frozen=True)
class HelmReleaseHistory:
    """One revision of a release."""

    date: datetime
    message: str
    status: str
    revision: int
    app_version: str

    @classmethod
    def from_release(cls, release: dict) -> HelmReleaseHistory:
        info = release.get("info") or {}
        stamp = info.get("last_deployed")
        return cls(
            date=_parse_time(stamp) if stamp else ZERO_TIME,
            message=info.get("description", ""),
            status=info.get("status", ""),
            revision=int(release.get("version") or 0),
            app_version=_chart_metadata(release).get("appVersion", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastDeployment": _format_time(self.date),
            "description": self.message,
            "status": self.status,
            "revision": self.revision,
            "appVersion": self.app_version,
        }


@dataclass
class HelmRelease:
    """A release with its revision history; history is None when it could not be read."""

    name: str
    namespace: str
    status: str
    chart_name: str
    history: list[HelmReleaseHistory] | None = field(default=None)

    @classmethod
    def from_release(cls, release: dict) -> HelmRelease:
        return cls(
            name=release.get("name", ""),
            namespace=release.get("namespace", ""),
            status=(release.get("info") or {}).get("status", ""),
            chart_name=_chart_metadata(release).get("name", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "status": self.status,
            "chart": self.chart_name,
            "history": None if self.history is None else [h.to_dict() for h in self.history],
        }


class HelmCollector(Collector):
    """Lists Helm releases.

    ``client`` provides ``list_releases()`` and ``history(name)``, each
    returning decoded Helm release records.
    """

    name = "helm"

    def __init__(self, client, runtime_info: RuntimeInfo | None) -> None:
        self.client = client
        self.runtime_info = runtime_info
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
            raise CollectionError("init action configuration: no cluster client configured")
        try:
            releases = list(self.client.list_releases())
        except Exception as error:
            raise CollectionError(f"list helm releases: {error}") from error

        result = []
        for raw in releases:
            release = HelmRelease.from_release(raw)
            try:
                revisions = list(self.client.history(release.name))
            except Exception as error:
                logger.warning("Get release %s history failed: %s", release.name, error)
            else:
                release.history = [HelmReleaseHistory.from_release(r) for r in revisions]
            result.append(release)

        self._data["helm_list"] = json.dumps(
            [r.to_dict() for r in result], separators=(",", ":"), ensure_ascii=False
        )

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)