"""Collects Windows node logs exported by a separate host process."""

from __future__ import annotations

import posixpath
import time

from .core import (
    Collector,
    CollectionError,
    Feature,
    FilePathDataValue,
    KnownFilePaths,
    OSIdentifier,
    RuntimeInfo,
    UnsupportedError,
)

WINDOWS_LOGS_PREFIX = "collect-windows-logs/"


class WindowsLogsCollector(Collector):
    """Waits for a run's completion marker, then gathers the exported log files."""

    name = "windowslogs"

    def __init__(
        self,
        os_identifier,
        runtime_info: RuntimeInfo | None,
        file_paths: KnownFilePaths | None,
        file_system,
        poll_interval: float = 10.0,
        timeout: float = 1200.0,
    ) -> None:
        self.os_identifier = os_identifier
        self.runtime_info = runtime_info
        self.file_paths = file_paths
        self.file_system = file_system
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._data: dict[str, FilePathDataValue] = {}

    def check_supported(self) -> None:
        if self.os_identifier != OSIdentifier.WINDOWS:
            raise UnsupportedError(f"unsupported OS: {self.os_identifier}")
        if not self.runtime_info.has_feature(Feature.WINDOWS_HPC):
            raise UnsupportedError(f"feature not set: {Feature.WINDOWS_HPC}")
        if not self.runtime_info.run_id:
            raise UnsupportedError("diagnostic run ID not set")

    def _wait_for(self, path: str) -> None:
        deadline = time.monotonic() + self.timeout
        while True:
            remaining = deadline - time.monotonic()
            time.sleep(max(0.0, min(self.poll_interval, remaining)))
            try:
                if self.file_system.file_exists(path):
                    return
            except Exception as error:
                raise CollectionError(
                    f"error waiting for windows log collection: {error}"
                ) from error
            if time.monotonic() >= deadline:
                raise CollectionError(
                    "error waiting for windows log collection: timed out waiting for the condition"
                )

    def collect(self) -> None:
        output = self.file_paths.windows_logs_output
        self._wait_for(posixpath.join(output, self.runtime_info.run_id))

        logs_directory = posixpath.join(output, "logs")
        try:
            log_file_paths = self.file_system.list_files(logs_directory)
        except Exception as error:
            raise CollectionError(f"error listing files in {logs_directory}: {error}") from error

        for log_file_path in log_file_paths:
            try:
                size = self.file_system.get_file_size(log_file_path)
            except Exception as error:
                raise CollectionError(f"error getting file size {log_file_path}: {error}") from error
            relative = WINDOWS_LOGS_PREFIX + log_file_path.removeprefix(logs_directory + "/")
            self._data[relative] = FilePathDataValue(self.file_system, log_file_path, size)

    def get_data(self) -> dict[str, FilePathDataValue]:
        return dict(self._data)