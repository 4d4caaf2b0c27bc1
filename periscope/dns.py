"""Collects the DNS resolver configuration of the host and the container."""

from __future__ import annotations

from .core import (
    Collector,
    KnownFilePaths,
    OSIdentifier,
    StringDataValue,
    UnsupportedError,
    get_content,
)


class DNSCollector(Collector):
    """Reads ``resolv.conf`` from the host and from the container."""

    name = "dns"

    def __init__(self, os_identifier, file_paths: KnownFilePaths | None, file_system) -> None:
        self.os_identifier = os_identifier
        self.file_paths = file_paths
        self.file_system = file_system
        self.host_conf = ""
        self.container_conf = ""

    def check_supported(self) -> None:
        if self.os_identifier != OSIdentifier.LINUX:
            raise UnsupportedError(f"unsupported OS: {self.os_identifier}")

    def collect(self) -> None:
        self.host_conf = self._read(self.file_paths.resolv_conf_host)
        self.container_conf = self._read(self.file_paths.resolv_conf_container)

    def _read(self, path: str) -> str:
        # A file that cannot be read is recorded as its error message.
        try:
            return get_content(lambda: self.file_system.open_file(path))
        except Exception as error:
            return str(error)

    def get_data(self) -> dict[str, StringDataValue]:
        return {
            "virtualmachine": StringDataValue(self.host_conf),
            "kubernetes": StringDataValue(self.container_conf),
        }