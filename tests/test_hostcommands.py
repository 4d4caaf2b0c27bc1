import pytest

from periscope.core import (
    CollectionError,
    OSIdentifier,
    RuntimeInfo,
    UnsupportedError,
    get_content,
)
from periscope.hostcommands import (
    IPTablesCollector,
    KubeletCmdCollector,
    SystemLogsCollector,
)

COLLECTOR_CLASSES = [IPTablesCollector, KubeletCmdCollector, SystemLogsCollector]


class FakeRunner:
    def __init__(self):
        self.calls = []

    def __call__(self, args):
        self.calls.append(list(args))
        return "output of " + " ".join(args)


def _values(collector):
    return {key: get_content(value.open) for key, value in collector.get_data().items()}


@pytest.mark.parametrize(
    "cls, expected",
    [
        (IPTablesCollector, "iptables"),
        (KubeletCmdCollector, "kubeletcmd"),
        (SystemLogsCollector, "systemlogs"),
    ],
)
def test_names(cls, expected):
    assert cls("", None).name == expected


@pytest.mark.parametrize("cls", COLLECTOR_CLASSES)
@pytest.mark.parametrize(
    "os_identifier, collector_list, message",
    [
        (OSIdentifier.WINDOWS, ["connectedCluster"], "unsupported OS"),
        (OSIdentifier.LINUX, ["connectedCluster"], "connectedCluster"),
    ],
)
def test_check_supported_rejects(cls, os_identifier, collector_list, message):
    collector = cls(os_identifier, RuntimeInfo(collector_list=collector_list))
    with pytest.raises(UnsupportedError, match=message):
        collector.check_supported()


@pytest.mark.parametrize("cls", COLLECTOR_CLASSES)
def test_collect_without_host_access_fails(cls):
    collector = cls(OSIdentifier.LINUX, RuntimeInfo(collector_list=[]))
    with pytest.raises(CollectionError):
        collector.collect()


def test_iptables_collect():
    runner = FakeRunner()
    collector = IPTablesCollector(OSIdentifier.LINUX, RuntimeInfo(collector_list=[]), runner)
    assert collector.check_supported() is None
    collector.collect()
    assert runner.calls == [["iptables", "-t", "nat", "-L"]]
    assert _values(collector) == {"iptables": "output of iptables -t nat -L"}


def test_kubeletcmd_collect():
    runner = FakeRunner()
    collector = KubeletCmdCollector(OSIdentifier.LINUX, RuntimeInfo(), runner)
    collector.collect()
    assert runner.calls == [["ps", "-o", "cmd=", "-C", "kubelet"]]
    assert collector.kubelet_command == "output of ps -o cmd= -C kubelet"
    assert _values(collector) == {"kubeletcmd": collector.kubelet_command}


def test_systemlogs_collect():
    runner = FakeRunner()
    collector = SystemLogsCollector(OSIdentifier.LINUX, RuntimeInfo(), runner)
    collector.collect()
    assert runner.calls == [["journalctl", "-u", "docker"], ["journalctl", "-u", "kubelet"]]
    assert _values(collector) == {
        "docker": "output of journalctl -u docker",
        "kubelet": "output of journalctl -u kubelet",
    }


def test_runner_error_propagates():
    def failing(args):
        raise CollectionError("host unreachable")

    collector = SystemLogsCollector(OSIdentifier.LINUX, RuntimeInfo(), failing)
    with pytest.raises(CollectionError, match="host unreachable"):
        collector.collect()
    assert collector.get_data() == {}