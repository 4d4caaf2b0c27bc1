"""Collectors that capture the output of commands run on the host node."""

from __future__ import annotations

from typing import Callable, Sequence

from .core import (
    Collector,
    CollectionError,
    OSIdentifier,
    RuntimeInfo,
    StringDataValue,
    UnsupportedError,
    to_data_value_map,
)

CommandRunner = Callable[[Sequence[str]], str]

_CONNECTED_CLUSTER = "connectedCluster"


class _HostCommandCollector(Collector):
    def __init__(
        self,
        os_identifier,
        runtime_info: RuntimeInfo | None,
        command_runner: CommandRunner | None = None,
    ) -> None:
        self.os_identifier = os_identifier
        self.runtime_info = runtime_info
        self.command_runner = command_runner

    def _check_linux_host(self) -> None:
        if self.os_identifier != OSIdentifier.LINUX:
            raise UnsupportedError(f"unsupported OS: {self.os_identifier}")
        collectors = self.runtime_info.collector_list
        if _CONNECTED_CLUSTER in collectors:
            raise UnsupportedError(
                "not included because 'connectedCluster' is in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def _run(self, *args: str) -> str:
        if self.command_runner is None:
            raise CollectionError(f"cannot run {args[0]}: no host command runner configured")
        return self.command_runner(list(args))


class IPTablesCollector(_HostCommandCollector):
    """Captures the host's NAT table rules."""

    name = "iptables"

    def __init__(self, os_identifier, runtime_info, command_runner=None) -> None:
        super().__init__(os_identifier, runtime_info, command_runner)
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        self._check_linux_host()

    def collect(self) -> None:
        self._data["iptables"] = self._run("iptables", "-t", "nat", "-L")

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)


class KubeletCmdCollector(_HostCommandCollector):
    """Captures the command line the kubelet was started with."""

    name = "kubeletcmd"

    def __init__(self, os_identifier, runtime_info, command_runner=None) -> None:
        super().__init__(os_identifier, runtime_info, command_runner)
        self.kubelet_command = ""

    def check_supported(self) -> None:
        self._check_linux_host()

    def collect(self) -> None:
        self.kubelet_command = self._run("ps", "-o", "cmd=", "-C", "kubelet")

    def get_data(self) -> dict[str, StringDataValue]:
        return {"kubeletcmd": StringDataValue(self.kubelet_command)}


class SystemLogsCollector(_HostCommandCollector):
    """Captures the journal of the container runtime and kubelet services."""

    name = "systemlogs"
    services = ("docker", "kubelet")

    def __init__(self, os_identifier, runtime_info, command_runner=None) -> None:
        super().__init__(os_identifier, runtime_info, command_runner)
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        self._check_linux_host()

    def collect(self) -> None:
        for service in self.services:
            self._data[service] = self._run("journalctl", "-u", service)

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)