"""Collects the pod disruption budgets of every namespace."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)

NAMESPACES_PATH = "/api/v1/namespaces"


def _pdb_path(namespace: str) -> str:
    return f"/apis/policy/v1/namespaces/{namespace}/poddisruptionbudgets"


def _int_or_string(value: Any) -> str:
    if value is None:
        return "<nil>"
    return str(value)


@dataclass(frozen=True)
class PDBInfo:
    """Summary of one pod disruption budget."""

    name: str
    min_available: str
    max_unavailable: str
    disruptions_allowed: int

    @classmethod
    def from_resource(cls, resource: dict) -> PDBInfo:
        spec = resource.get("spec") or {}
        status = resource.get("status") or {}
        return cls(
            name=(resource.get("metadata") or {}).get("name", ""),
            min_available=_int_or_string(spec.get("minAvailable")),
            max_unavailable=_int_or_string(spec.get("maxUnavailable")),
            disruptions_allowed=int(status.get("disruptionsAllowed") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "minavailable": self.min_available,
            "maxunavailable": self.max_unavailable,
            "disruptionsallowed": self.disruptions_allowed,
        }


class PDBCollector(Collector):
    """Lists the pod disruption budgets in each namespace of the cluster.

    ``client`` is any object whose ``get(path)`` returns the decoded JSON
    response of the Kubernetes API for ``path``.
    """

    name = "poddisruptionbudget"

    def __init__(self, client, runtime_info: RuntimeInfo | None) -> None:
        self.client = client
        self.runtime_info = runtime_info
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        collectors = self.runtime_info.collector_list
        if "connectedCluster" in collectors:
            raise UnsupportedError(
                "not included because 'connectedCluster' is in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def collect(self) -> None:
        if self.client is None:
            raise CollectionError("getting access to K8S failed: no cluster client configured")

        try:
            namespaces = self.client.get(NAMESPACES_PATH)
        except Exception as error:
            raise CollectionError(f"unable to list namespaces in the cluster: {error}") from error

        for namespace in namespaces.get("items") or []:
            namespace_name = (namespace.get("metadata") or {}).get("name", "")
            try:
                budgets = self.client.get(_pdb_path(namespace_name))
            except Exception as error:
                raise CollectionError(f"listing PDB error: {error}") from error

            infos = [PDBInfo.from_resource(item) for item in budgets.get("items") or []]
            self._data[f"pdb-{namespace_name}"] = json.dumps(
                [info.to_dict() for info in infos], separators=(",", ":"), ensure_ascii=False
            )

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)