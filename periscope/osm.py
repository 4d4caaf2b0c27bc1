"""Collects Open Service Mesh state: resources, pod logs and Envoy proxy data."""

from __future__ import annotations

import logging
import re
from typing import Any

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)

logger = logging.getLogger(__name__)

ENVOY_PORT = 15000
ENVOY_QUERIES = ("config_dump", "clusters", "listeners", "ready", "stats")
ENVOY_QUERY_RETRIES = 5

_INLINE_BYTES_RE = re.compile(r"[\r\n]+^.*inline_bytes.*$", re.MULTILINE)

_NAMESPACES = ("", "v1", "namespaces")
_PODS = ("", "v1", "pods")

# (data key suffix, resource, as JSON)
_NAMESPACE_QUERIES: tuple[tuple[str, tuple[str, str, str], bool], ...] = (
    ("services_list", ("", "v1", "services"), False),
    ("services", ("", "v1", "services"), True),
    ("endpoints_list", ("", "v1", "endpoints"), False),
    ("endpoints", ("", "v1", "endpoints"), True),
    ("configmaps_list", ("", "v1", "configmaps"), False),
    ("configmaps", ("", "v1", "configmaps"), True),
    ("ingresses_list", ("networking.k8s.io", "v1", "ingresses"), False),
    ("ingresses", ("networking.k8s.io", "v1", "ingresses"), True),
    ("service_accounts_list", ("", "v1", "serviceaccounts"), False),
    ("service_accounts", ("", "v1", "serviceaccounts"), True),
    ("pods_list", ("", "v1", "pods"), False),
)

# (resource, kind)
_ALL_RESOURCES: tuple[tuple[tuple[str, str, str], str], ...] = (
    (("", "v1", "pods"), "Pod"),
    (("", "v1", "services"), "Service"),
    (("apps", "v1", "daemonsets"), "DaemonSet"),
    (("apps", "v1", "deployments"), "Deployment"),
    (("apps", "v1", "replicasets"), "ReplicaSet"),
    (("apps", "v1", "statefulsets"), "StatefulSet"),
    (("batch", "v1", "jobs"), "Job"),
    (("batch", "v1", "cronjobs"), "CronJob"),
)
_MUTATING_WEBHOOKS = (
    (("admissionregistration.k8s.io", "v1", "mutatingwebhookconfigurations"),
     "MutatingWebhookConfiguration"),
)
_VALIDATING_WEBHOOKS = (
    (("admissionregistration.k8s.io", "v1", "validatingwebhookconfigurations"),
     "ValidatingWebhookConfiguration"),
)
_MESH_CONFIG_CRD = "meshconfigs.config.openservicemesh.io"


def redact_secrets(text: str) -> str:
    """Replace every line mentioning ``inline_bytes``, with the line break before it."""
    return _INLINE_BYTES_RE.sub("---redacted---", text)


def _name(item: dict) -> str:
    return (item.get("metadata") or {}).get("name", "")


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return value


class OsmCollector(Collector):
    """Gathers data about every OSM mesh in the cluster.

    Resources are identified by ``(group, version, resource)`` tuples. ``client``
    provides ``list_deployments(label_selector)``, ``list_namespaces(label_selector)``
    (raising :class:`LookupError` when nothing is found), ``list_pods(namespace)``,
    ``get_pod_logs(namespace, pod)``, ``list_resources(resource, namespace,
    label_selector)``, ``print_as_json(item)``, ``get_json_object(resource,
    namespace, name)``, ``get_json_list(resource, namespace, label_selector)``,
    ``get_table(resource, namespace, label_selector, **options)``,
    ``gvr_for_crd(name)``, ``port_forward(namespace, pod, local_port, pod_port)``
    as a context manager, and ``get_url(url, retries)``.
    """

    name = "osm"

    def __init__(self, client, runtime_info: RuntimeInfo | None) -> None:
        self.client = client
        self.runtime_info = runtime_info
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        collectors = self.runtime_info.collector_list
        if "OSM" not in collectors:
            raise UnsupportedError(
                "not included because 'OSM' not in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def collect(self) -> None:
        if self.client is None:
            raise CollectionError("getting access to K8S failed: no cluster client configured")

        try:
            deployments = list(self.client.list_deployments("app=osm-controller"))
        except Exception as error:
            raise CollectionError(
                f"error listing deployments in all namespaces: {error}"
            ) from error

        for deployment in deployments:
            metadata = deployment.get("metadata") or {}
            labels = metadata.get("labels") or {}
            if "meshName" not in labels:
                raise CollectionError(
                    f"deployment {metadata.get('name', '')} has no 'meshName' label"
                )
            mesh_name = labels["meshName"]

            try:
                namespaces = list(
                    self.client.list_namespaces(f"openservicemesh.io/monitored-by={mesh_name}")
                )
            except LookupError:
                logger.warning("Failed to find any namespaces monitored by OSM named '%s'", mesh_name)
                continue
            except Exception as error:
                raise CollectionError(
                    f"error listing namespaces monitored by OSM named {mesh_name}: {error}"
                ) from error

            monitored = [_name(namespace) for namespace in namespaces]
            self._collect_namespaces(monitored, metadata.get("namespace", ""), mesh_name)
            self._collect_ground_truth(mesh_name)

    def _collect_namespaces(self, monitored: list[str], controller_namespace: str, mesh: str) -> None:
        for namespace in monitored:
            try:
                self._collect_envoy_data(namespace, mesh)
            except Exception as error:
                logger.warning(
                    "Failed to collect Envoy configs in OSM monitored namespace %s: %s",
                    namespace, error,
                )
            self._collect_namespace_resources(namespace, mesh)

        try:
            self._collect_pod_logs(controller_namespace, mesh)
        except Exception as error:
            logger.warning(
                "Failed to collect pod logs for controller namespace %s: %s",
                controller_namespace, error,
            )
        self._collect_namespace_resources(controller_namespace, mesh)

    def _collect_namespace_resources(self, namespace: str, mesh: str) -> None:
        try:
            self._collect_pod_configs(namespace, mesh)
        except Exception as error:
            logger.warning("Failed to collect pod configs for ns %s: %s", namespace, error)

        try:
            value = self.client.get_json_object(_NAMESPACES, "", namespace)
        except Exception as error:
            value = f"Failed to collect metadata for namespace {namespace}: {error}\n"
            logger.warning("%s", value)
        self._data[f"{mesh}/{namespace}_metadata"] = value

        for key, resource, as_json in _NAMESPACE_QUERIES:
            try:
                if as_json:
                    value = self.client.get_json_list(resource, namespace, "")
                else:
                    value = self.client.get_table(resource, namespace, "", wide=True)
            except Exception as error:
                value = f"Failed to collect {resource[2]} for namespace {namespace}: {error}\n"
                logger.warning("%s", value)
            self._data[f"{mesh}/{namespace}_{key}"] = value

    def _collect_pod_configs(self, namespace: str, mesh: str) -> None:
        for item in self.client.list_resources(_PODS, namespace, ""):
            pod_name = _name(item)
            try:
                value = self.client.print_as_json(item)
            except Exception as error:
                logger.warning(
                    "Failed to read JSON for pod %s in %s: %s", pod_name, namespace, error
                )
                value = ""
            self._data[f"{mesh}/{pod_name}_podConfig"] = value

    def _collect_envoy_data(self, namespace: str, mesh: str) -> None:
        for pod in self.client.list_pods(namespace):
            pod_name = _name(pod)
            with self.client.port_forward(namespace, pod_name, ENVOY_PORT, ENVOY_PORT):
                self._run_envoy_queries(mesh, namespace, pod_name)

    def _run_envoy_queries(self, mesh: str, namespace: str, pod_name: str) -> None:
        for query in ENVOY_QUERIES:
            url = f"http://localhost:{ENVOY_PORT}/{query}"
            try:
                body = _text(self.client.get_url(url, ENVOY_QUERY_RETRIES))
            except Exception as error:
                logger.warning(
                    "Failed to collect Envoy %s for pod %s in OSM monitored namespace %s: %s",
                    query, pod_name, namespace, error,
                )
                continue
            self._data[f"{mesh}/envoy/{pod_name}{query}"] = redact_secrets(body)

    def _collect_pod_logs(self, namespace: str, mesh: str) -> None:
        for pod in self.client.list_pods(namespace):
            pod_name = _name(pod)
            try:
                output = _text(self.client.get_pod_logs(namespace, pod_name))
            except Exception:
                output = (
                    f"Failed to collect logs for pod {pod_name}: "
                    f"error getting log stream for {namespace}/{pod_name}\n"
                )
                logger.warning("%s", output)
            self._data[f"{mesh}/{pod_name}_podLogs"] = output

    def _collect_ground_truth(self, mesh: str) -> None:
        selector = f"app.kubernetes.io/instance={mesh}"
        queries = [
            ("all_resources_list", _ALL_RESOURCES, selector, False),
            ("all_resources_configs", _ALL_RESOURCES, selector, True),
            ("mutating_webhook_configurations", _MUTATING_WEBHOOKS, selector, True),
            ("validating_webhook_configurations", _VALIDATING_WEBHOOKS, selector, True),
        ]
        try:
            mesh_config = tuple(self.client.gvr_for_crd(_MESH_CONFIG_CRD))
        except Exception as error:
            logger.warning("Failed to read MeshConfig CRD: %s", error)
        else:
            queries.append(("mesh_configs", ((mesh_config, "MeshConfig"),), "", True))

        for key, resources, label_selector, as_json in queries:
            parts = []
            for resource, kind in resources:
                try:
                    if as_json:
                        output = self.client.get_json_list(resource, "", label_selector)
                    else:
                        output = self.client.get_table(
                            resource,
                            "",
                            label_selector,
                            wide=True,
                            with_namespace=True,
                            with_kind=True,
                            kind=(resource[0], kind),
                        )
                except Exception as error:
                    output = f"Error retrieving {kind} for mesh {mesh}: {error}\n"
                    logger.warning("%s", output)
                parts.append(output + "\n")
            self._data[f"{mesh}/control_plane/{key}"] = "".join(parts)

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)