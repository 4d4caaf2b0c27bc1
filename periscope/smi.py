"""Collects Service Mesh Interface definitions and the custom resources made from them."""

from __future__ import annotations

from dataclasses import dataclass

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)

SMI_CRD_MARKER = "smi-spec.io"


def _name(item: dict) -> str:
    return (item.get("metadata") or {}).get("name", "")


def _namespace(item: dict) -> str:
    return (item.get("metadata") or {}).get("namespace", "")


def _gvr_string(gvr: tuple[str, str, str]) -> str:
    group, version, resource = gvr
    return f"{group}/{version}, Resource={resource}"


def _group_resource(gvr: tuple[str, str, str]) -> str:
    group, _version, resource = gvr
    return f"{resource}.{group}" if group else resource


@dataclass(frozen=True)
class _SmiResource:
    namespace: str
    gvr: tuple[str, str, str]
    name: str
    yaml: str


class SmiCollector(Collector):
    """Stores SMI custom resource definitions and all their resources as YAML.

    Resources are identified by ``(group, version, resource)`` tuples. ``client``
    provides ``list_crds()``, ``print_as_yaml(item)``, ``gvr_from_crd(crd)`` and
    ``list_resources(resource, namespace, label_selector)``, where an empty
    namespace means all namespaces.
    """

    name = "smi"

    def __init__(self, client, runtime_info: RuntimeInfo | None) -> None:
        self.client = client
        self.runtime_info = runtime_info
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        collectors = self.runtime_info.collector_list
        if "OSM" not in collectors and "SMI" not in collectors:
            raise UnsupportedError(
                "not included because neither 'OSM' or 'SMI' are in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def collect(self) -> None:
        if self.client is None:
            raise CollectionError("error getting SMI CRDs: no cluster client configured")

        smi_crds = self._smi_crds()

        for crd in smi_crds:
            trimmed = _name(crd).removesuffix(".io")
            try:
                yaml = self.client.print_as_yaml(crd)
            except Exception as error:
                raise CollectionError(f"error printing CRD {trimmed} as YAML: {error}") from error
            self._data[f"smi/crd_{trimmed}"] = yaml

        gvrs = []
        for crd in smi_crds:
            try:
                gvrs.append(tuple(self.client.gvr_from_crd(crd)))
            except Exception as error:
                raise CollectionError(
                    f"error getting GVR from CRD {_name(crd)}: {error}"
                ) from error

        try:
            resources = self._custom_resources(gvrs)
        except CollectionError as error:
            raise CollectionError(
                f"error getting custom SMI resources for all namespaces: {error}"
            ) from error

        for resource in resources:
            crd_name = _group_resource(resource.gvr)
            key = f"smi/namespace_{resource.namespace}/{crd_name}_{resource.name}_custom_resource"
            self._data[key] = resource.yaml

    def _smi_crds(self) -> list[dict]:
        try:
            crds = list(self.client.list_crds())
        except Exception as error:
            raise CollectionError(
                "error getting SMI CRDs: error listing CRDs in cluster"
            ) from error
        return [crd for crd in crds if SMI_CRD_MARKER in _name(crd)]

    def _custom_resources(self, gvrs: list[tuple[str, str, str]]) -> list[_SmiResource]:
        result = []
        for gvr in gvrs:
            try:
                items = list(self.client.list_resources(gvr, "", ""))
            except Exception as error:
                raise CollectionError(f"error listing {_gvr_string(gvr)} resources: {error}") from error
            for item in items:
                try:
                    yaml = self.client.print_as_yaml(item)
                except Exception as error:
                    raise CollectionError(
                        f"error getting yaml for {_name(item)}: {error}"
                    ) from error
                result.append(_SmiResource(_namespace(item), gvr, _name(item), yaml))
        return result

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)