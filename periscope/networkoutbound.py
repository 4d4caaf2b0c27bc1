"""Checks whether the node can open TCP connections to well-known endpoints."""

from __future__ import annotations

import json
import re
import socket
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from .core import Collector, StringDataValue, to_data_value_map

Dialer = Callable[[str, int, float], None]

OUTBOUND_TARGETS: tuple[tuple[str, str], ...] = (
    ("Internet", "google.com:80"),
    ("AKS API Server", "kubernetes.default.svc.cluster.local:443"),
    ("Azure Container Registry", "azurecr.io:80"),
    ("Microsoft Container Registry", "mcr.microsoft.com:80"),
)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339, dropping a zero fraction and using ``Z`` for UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: str) -> datetime:
    """Parse an RFC 3339 timestamp."""
    match = _TIME_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"parsing time {text!r}: not an RFC 3339 timestamp")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )


def _tcp_dial(host: str, port: int, timeout: float) -> None:
    with socket.create_connection((host, port), timeout=timeout):
        pass


def _split_address(address: str) -> tuple[str, int]:
    host, separator, port = address.rpartition(":")
    if not separator:
        raise ValueError(f"address {address}: missing port in address")
    return host, int(port)


@dataclass
class NetworkOutboundDatum:
    """The outcome of one connection attempt."""

    timestamp: datetime
    type: str
    url: str
    status: str

    def to_json(self) -> str:
        return json.dumps(
            {
                "TimeStamp": _format_time(self.timestamp),
                "Type": self.type,
                "URL": self.url,
                "Status": self.status,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str) -> NetworkOutboundDatum:
        """Decode a datum; missing fields take their zero values."""
        raw = json.loads(text)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ValueError("cannot unmarshal non-object into NetworkOutboundDatum")

        stamp = raw.get("TimeStamp")
        if stamp is None:
            timestamp = ZERO_TIME
        elif isinstance(stamp, str):
            timestamp = _parse_time(stamp)
        else:
            raise ValueError("TimeStamp must be a string")

        fields = {}
        for key in ("Type", "URL", "Status"):
            value = raw.get(key)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            fields[key] = value

        return cls(timestamp, fields["Type"], fields["URL"], fields["Status"])


class NetworkOutboundCollector(Collector):
    """Attempts a TCP connection to each outbound target and records the result."""

    name = "networkoutbound"

    def __init__(
        self,
        dialer: Dialer | None = None,
        timeout: float = 5.0,
        targets: Sequence[tuple[str, str]] = OUTBOUND_TARGETS,
    ) -> None:
        self.dialer = dialer or _tcp_dial
        self.timeout = timeout
        self.targets = tuple(targets)
        self._data: dict[str, str] = {}

    def check_supported(self) -> None:
        return None

    def collect(self) -> None:
        for target_type, address in self.targets:
            try:
                host, port = _split_address(address)
                self.dialer(host, port, self.timeout)
                status = "Connected"
            except (OSError, ValueError) as error:
                status = f"Error: {error}"

            datum = NetworkOutboundDatum(
                timestamp=datetime.now().astimezone().replace(microsecond=0),
                type=target_type,
                url=address,
                status=status,
            )
            self._data[target_type] = datum.to_json()

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)