"""Collects CPU and memory usage of nodes and containers from the metrics API."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

from .core import (
    Collector,
    CollectionError,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)

NODE_METRICS_PATH = "/apis/metrics.k8s.io/v1beta1/nodes"
POD_METRICS_PATH = "/apis/metrics.k8s.io/v1beta1/pods"

_QUANTITY_RE = re.compile(
    r"([+-]?)([0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE]([+-]?[0-9]+)|(Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E))?"
)
_SUFFIXES = {
    "Ki": Fraction(2**10),
    "Mi": Fraction(2**20),
    "Gi": Fraction(2**30),
    "Ti": Fraction(2**40),
    "Pi": Fraction(2**50),
    "Ei": Fraction(2**60),
    "n": Fraction(1, 10**9),
    "u": Fraction(1, 10**6),
    "m": Fraction(1, 10**3),
    "k": Fraction(10**3),
    "M": Fraction(10**6),
    "G": Fraction(10**9),
    "T": Fraction(10**12),
    "P": Fraction(10**15),
    "E": Fraction(10**18),
}
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_quantity(text: Any) -> Fraction:
    """Parse a Kubernetes resource quantity; a missing one is zero."""
    if text is None:
        return Fraction(0)
    if not isinstance(text, str):
        raise ValueError(f"quantity must be a string, got {text!r}")
    match = _QUANTITY_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"quantities must match the regular expression: {text!r}")
    sign, number, exponent, suffix = match.groups()
    value = Fraction(number)
    if exponent is not None:
        value *= Fraction(10) ** int(exponent)
    elif suffix is not None:
        value *= _SUFFIXES[suffix]
    return -value if sign == "-" else value


def _milli_value(quantity: Fraction) -> int:
    return math.ceil(quantity * 1000)


def _as_int64(quantity: Fraction) -> int | None:
    if quantity.denominator != 1 or not _INT64_MIN <= quantity.numerator <= _INT64_MAX:
        return None
    return quantity.numerator


def _usage(item: dict) -> tuple[int, int | None]:
    usage = item.get("usage") or {}
    cpu = _milli_value(_parse_quantity(usage.get("cpu")))
    memory = _as_int64(_parse_quantity(usage.get("memory")))
    return cpu, memory


@dataclass(frozen=True)
class NodeMetrics:
    """Resource usage of one node."""

    name: str
    cpu_usage: int
    memory_usage: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "cpuUsage": self.cpu_usage, "memoryUsage": self.memory_usage}


@dataclass(frozen=True)
class PodMetrics:
    """Resource usage of one container in a pod."""

    name: str
    cpu_usage: int
    memory_usage: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "cpuUsage": self.cpu_usage, "memoryUsage": self.memory_usage}


def _dump(items) -> str:
    return json.dumps([item.to_dict() for item in items], separators=(",", ":"), ensure_ascii=False)


class SystemPerfCollector(Collector):
    """Reads node and container usage from the metrics API.

    ``client`` is any object whose ``get(path)`` returns the decoded JSON
    response of the Kubernetes API for ``path``. CPU is reported in
    millicores and memory in bytes.
    """

    name = "systemperf"

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
            raise CollectionError("metrics for config error: no cluster client configured")

        try:
            nodes = self.client.get(NODE_METRICS_PATH)
            node_results = []
            for item in nodes.get("items") or []:
                cpu, memory = _usage(item)
                if memory is None:
                    # A node whose memory is not a whole number ends collection quietly.
                    return
                name = (item.get("metadata") or {}).get("name", "")
                node_results.append(NodeMetrics(name, cpu, memory))
        except Exception as error:
            raise CollectionError(f"node metrics error: {error}") from error

        self._data["nodes"] = _dump(node_results)

        try:
            pods = self.client.get(POD_METRICS_PATH)
            pod_results = []
            for item in pods.get("items") or []:
                for container in item.get("containers") or []:
                    cpu, memory = _usage(container)
                    name = container.get("name", "")
                    if memory is None:
                        raise _MemoryUsageError(name)
                    pod_results.append(PodMetrics(name, cpu, memory))
        except _MemoryUsageError as error:
            raise CollectionError(
                f"usage memory failure: memory usage of container {error} is not an integer"
            ) from None
        except Exception as error:
            raise CollectionError(f"pod metrics failure: {error}") from error

        self._data["pods"] = _dump(pod_results)

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)


class _MemoryUsageError(Exception):
    pass