"""Shared types for collectors, diagnosers, data values and file access."""

from __future__ import annotations

import errno
import io
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Callable, Mapping


class OSIdentifier(str, Enum):
    """Operating system a node runs."""

    LINUX = "linux"
    WINDOWS = "windows"

    def __str__(self) -> str:
        return self.value


def string_to_os_identifier(value: str) -> OSIdentifier:
    """Map an OS name such as ``linux`` to an :class:`OSIdentifier`."""
    try:
        return OSIdentifier(value)
    except ValueError:
        raise ValueError(f"unsupported OS: {value}") from None


class Feature(str, Enum):
    """Optional behaviour switched on through runtime configuration."""

    WINDOWS_HPC = "WINHPC"

    def __str__(self) -> str:
        return self.value


@dataclass
class RuntimeInfo:
    """Settings for a single diagnostic run."""

    run_id: str = ""
    host_node_name: str = ""
    collector_list: list[str] = field(default_factory=list)
    kubernetes_objects: list[str] = field(default_factory=list)
    node_logs: list[str] = field(default_factory=list)
    container_logs_namespaces: list[str] = field(default_factory=list)
    features: set[Feature] = field(default_factory=set)

    def has_feature(self, feature: Feature) -> bool:
        return feature in self.features


@dataclass
class KnownFilePaths:
    """Locations of files the collectors read."""

    resolv_conf_host: str = "/host/etc/resolv.conf"
    resolv_conf_container: str = "/etc/resolv.conf"
    windows_logs_output: str = ""
    azure_stack_cert_host: str = ""
    azure_stack_cert_container: str = ""


class UnsupportedError(Exception):
    """A collector cannot run in the current environment."""


class CollectionError(Exception):
    """Collecting data failed."""


def get_content(opener: Callable[[], IO[Any]]) -> str:
    """Open a stream with ``opener``, read all of it and return it as text."""
    with opener() as stream:
        data = stream.read()
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8")
    return data


@dataclass(frozen=True)
class StringDataValue:
    """A data value held in memory."""

    value: str

    @property
    def size(self) -> int:
        return len(self.value.encode("utf-8"))

    def open(self) -> IO[bytes]:
        return io.BytesIO(self.value.encode("utf-8"))


@dataclass(frozen=True)
class FilePathDataValue:
    """A data value read lazily from a file."""

    file_system: Any
    path: str
    size: int

    def open(self) -> IO[bytes]:
        return self.file_system.open_file(self.path)


def to_data_value_map(data: Mapping[str, str]) -> dict[str, StringDataValue]:
    """Wrap every string in a mapping as a :class:`StringDataValue`."""
    return {key: StringDataValue(value) for key, value in data.items()}


def _not_found(path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


class LocalFileSystem:
    """File access backed by the real file system."""

    def open_file(self, path: str) -> IO[bytes]:
        return open(path, "rb")

    def file_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def get_file_size(self, path: str) -> int:
        return os.stat(path).st_size

    def list_files(self, directory: str) -> list[str]:
        """Return every file below ``directory``, recursively, sorted."""
        if not os.path.isdir(directory):
            raise _not_found(directory)
        found = []
        for root, _dirs, files in os.walk(directory):
            found.extend(os.path.join(root, name) for name in files)
        return sorted(found)


class MemoryFileSystem:
    """File access backed by an in-memory mapping of paths to contents."""

    def __init__(self, files: Mapping[str, str | bytes] | None = None) -> None:
        self._files: dict[str, bytes] = {}
        self._errors: dict[str, Exception] = {}
        for path, content in (files or {}).items():
            self.add_or_update_file(path, content)

    def _check_access(self, path: str) -> None:
        error = self._errors.get(path)
        if error is not None:
            raise error

    def _content(self, path: str) -> bytes:
        self._check_access(path)
        try:
            return self._files[path]
        except KeyError:
            raise _not_found(path) from None

    def open_file(self, path: str) -> IO[bytes]:
        return io.BytesIO(self._content(path))

    def file_exists(self, path: str) -> bool:
        self._check_access(path)
        return path in self._files

    def get_file_size(self, path: str) -> int:
        return len(self._content(path))

    def list_files(self, directory: str) -> list[str]:
        """Return every file below ``directory``, sorted."""
        self._check_access(directory)
        prefix = directory.rstrip("/") + "/"
        found = sorted(path for path in self._files if path.startswith(prefix))
        if not found:
            raise _not_found(directory)
        return found

    def add_or_update_file(self, path: str, content: str | bytes) -> None:
        self._files[path] = content.encode("utf-8") if isinstance(content, str) else bytes(content)

    def set_file_access_error(self, path: str, error: Exception) -> None:
        self._errors[path] = error


class Collector(ABC):
    """Something that gathers diagnostic data."""

    name: str = ""

    def check_supported(self) -> None:
        """Raise :class:`UnsupportedError` if this collector cannot run here."""
        return None

    @abstractmethod
    def collect(self) -> None:
        """Gather the data."""

    @abstractmethod
    def get_data(self) -> dict[str, Any]:
        """Return the gathered data, keyed by name."""


class Diagnoser(ABC):
    """Something that derives findings from collected data."""

    name: str = ""

    @abstractmethod
    def diagnose(self) -> None:
        """Work out the findings."""

    @abstractmethod
    def get_data(self) -> dict[str, Any]:
        """Return the findings, keyed by name."""