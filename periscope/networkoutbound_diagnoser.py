"""Groups outbound connectivity results into periods of unchanged status."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime

from .core import Diagnoser, RuntimeInfo, StringDataValue, get_content, to_data_value_map
from .networkoutbound import ZERO_TIME, NetworkOutboundDatum, _format_time

logger = logging.getLogger(__name__)

_MAX_GAP_SECONDS = 5


@dataclass
class _OutboundPeriod:
    host_name: str
    type: str = ""
    start: datetime = ZERO_TIME
    end: datetime = ZERO_TIME
    status: str = ""

    @classmethod
    def starting_with(cls, host_name: str, datum: NetworkOutboundDatum) -> _OutboundPeriod:
        return cls(host_name, datum.type, datum.timestamp, datum.timestamp, datum.status)

    def to_dict(self) -> dict[str, str]:
        return {
            "HostName": self.host_name,
            "Type": self.type,
            "Start": _format_time(self.start),
            "End": _format_time(self.end),
            "Status": self.status,
        }


class NetworkOutboundDiagnoser(Diagnoser):
    """Turns the outbound collector's results into status periods per target."""

    name = "networkoutbound"

    def __init__(self, runtime_info: RuntimeInfo, network_outbound_collector) -> None:
        self.runtime_info = runtime_info
        self.network_outbound_collector = network_outbound_collector
        self._data: dict[str, str] = {}

    def diagnose(self) -> None:
        host_name = self.runtime_info.host_node_name
        periods: list[_OutboundPeriod] = []

        for value in self.network_outbound_collector.get_data().values():
            period = _OutboundPeriod(host_name)
            try:
                content = get_content(value.open)
            except Exception as error:
                logger.warning("Retrieving data failed: %s", error)
                continue

            for line in content.split("\n"):
                try:
                    datum = NetworkOutboundDatum.from_json(line)
                except ValueError as error:
                    logger.warning("Unmarshal failed: %s", error)
                    continue

                if period.start == ZERO_TIME:
                    period = _OutboundPeriod.starting_with(host_name, datum)
                elif (
                    datum.status != period.status
                    or int((datum.timestamp - period.end).total_seconds()) > _MAX_GAP_SECONDS
                ):
                    periods.append(period)
                    period = _OutboundPeriod.starting_with(host_name, datum)
                else:
                    period.end = datum.timestamp

            if period.start != ZERO_TIME:
                periods.append(period)

        self._data["networkoutbound"] = json.dumps(
            [period.to_dict() for period in periods], separators=(",", ":"), ensure_ascii=False
        )

    def get_data(self) -> dict[str, StringDataValue]:
        return to_data_value_map(self._data)