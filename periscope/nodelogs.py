"""Collects log files from the node, as listed in the runtime settings."""

from __future__ import annotations

from .core import (
    Collector,
    CollectionError,
    FilePathDataValue,
    RuntimeInfo,
    UnsupportedError,
)


class NodeLogsCollector(Collector):
    """Gathers the node log files named in ``RuntimeInfo.node_logs``."""

    name = "nodelogs"

    def __init__(self, runtime_info: RuntimeInfo | None, file_system) -> None:
        self.runtime_info = runtime_info
        self.file_system = file_system
        self._data: dict[str, FilePathDataValue] = {}

    def check_supported(self) -> None:
        collectors = self.runtime_info.collector_list
        if "connectedCluster" in collectors:
            raise UnsupportedError(
                "not included because 'connectedCluster' is in COLLECTOR_LIST variable. "
                f"Included values: {' '.join(collectors)}"
            )

    def collect(self) -> None:
        for node_log in self.runtime_info.node_logs:
            key = node_log.replace("/", "_")
            if key.startswith("_"):
                key = key[1:]
            try:
                size = self.file_system.get_file_size(node_log)
            except Exception as error:
                raise CollectionError(f"error getting file size for {node_log}: {error}") from error
            self._data[key] = FilePathDataValue(self.file_system, node_log, size)

    def get_data(self) -> dict[str, FilePathDataValue]:
        return dict(self._data)