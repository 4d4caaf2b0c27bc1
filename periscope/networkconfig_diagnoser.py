"""Summarises the node's network configuration from DNS and kubelet data."""

from __future__ import annotations

import json
import re

from .core import Diagnoser, RuntimeInfo, StringDataValue, to_data_value_map

_NETWORK_PLUGIN_FLAG = "--network-plugin="
_MAX_PODS_FLAG = "--max-pods="
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)


def parse_nameservers(content: str) -> list[str]:
    """Return the words that follow each space-separated ``nameserver`` word."""
    words = content.split(" ")
    return [
        following.removesuffix("\n")
        for word, following in zip(words, words[1:])
        if word == "nameserver"
    ]


def _to_int(text: str) -> int:
    """Parse a decimal integer; text that is not one gives 0."""
    if not _INTEGER_RE.fullmatch(text):
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(text)))


class NetworkConfigDiagnoser(Diagnoser):
    """Reports DNS servers, network plugin and pod limit of the node."""

    name = "networkconfig"

    def __init__(self, runtime_info: RuntimeInfo, dns_collector, kubelet_cmd_collector) -> None:
        self.runtime_info = runtime_info
        self.dns_collector = dns_collector
        self.kubelet_cmd_collector = kubelet_cmd_collector
        self._data: dict[str, str] = {}

    def diagnose(self) -> None:
        network_plugin = ""
        max_pods = 0
        for part in self.kubelet_cmd_collector.kubelet_command.split(" "):
            if part.startswith(_NETWORK_PLUGIN_FLAG):
                network_plugin = part[len(_NETWORK_PLUGIN_FLAG):]
                if network_plugin == "cni":
                    network_plugin = "azurecni"
            if part.startswith(_MAX_PODS_FLAG):
                max_pods = _to_int(part[len(_MAX_PODS_FLAG):])

        result = {
            "HostName": self.runtime_info.host_node_name,
            "NetworkPlugin": network_plugin,
            "VirtualMachineDNS": parse_nameservers(self.dns_collector.host_conf) or None,
            "KubernetesDNS": parse_nameservers(self.dns_collector.container_conf) or None,
            "MaxPodsPerNode": max_pods,
        }
        self._data["networkconfig"] = json.dumps(
            result, separators=(",", ":"), ensure_ascii=False
        )

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)