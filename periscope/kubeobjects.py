"""Describes requested Kubernetes objects, as ``kubectl describe`` would."""

from __future__ import annotations

import logging

from .core import Collector, CollectionError, RuntimeInfo, StringDataValue, to_data_value_map

logger = logging.getLogger(__name__)


class KubeObjectsCollector(Collector):
    """Describes objects named as ``namespace/resource[/name]``.

    ``client`` provides ``kind_for(resource)``, ``can_describe(kind)``,
    ``list_names(resource, namespace)`` and ``describe(kind, namespace, name)``;
    lookups that fail raise.
    """

    name = "kubeobjects"

    def __init__(self, client, runtime_info: RuntimeInfo | None) -> None:
        self.client = client
        self.runtime_info = runtime_info
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        return None

    def collect(self) -> None:
        if self.client is None:
            raise CollectionError("error creating discovery client: no cluster client configured")

        for requested in self.runtime_info.kubernetes_objects:
            parts = requested.split("/")
            if len(parts) < 2:
                logger.warning("Invalid kube-objects value: %s", requested)
                continue
            namespace, resource = parts[0], parts[1]

            try:
                kind = self.client.kind_for(resource)
            except Exception as error:
                logger.warning("Unable to determine Kind for resource %s: %s", resource, error)
                continue

            if not self.client.can_describe(kind):
                logger.warning("Unable to create Describer for Kind %s", kind)
                continue

            if len(parts) > 2:
                names = [parts[2]]
            else:
                try:
                    names = list(self.client.list_names(resource, namespace))
                except Exception as error:
                    logger.warning(
                        "Unable to get %s resources in %s: %s", resource, namespace, error
                    )
                    continue

            for name in names:
                try:
                    output = self.client.describe(kind, namespace, name)
                except Exception as error:
                    logger.warning(
                        "Error describing %s %s in namespace %s: %s", kind, name, namespace, error
                    )
                    continue
                self._data[f"{namespace}_{resource}_{name}"] = output

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)