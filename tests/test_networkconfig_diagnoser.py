import json

from periscope.core import OSIdentifier, RuntimeInfo, get_content
from periscope.dns import DNSCollector
from periscope.hostcommands import KubeletCmdCollector
from periscope.networkconfig_diagnoser import NetworkConfigDiagnoser, parse_nameservers


def _diagnose(host_conf, container_conf, kubelet_command, host_name="node-a"):
    dns = DNSCollector(OSIdentifier.LINUX, None, None)
    dns.host_conf = host_conf
    dns.container_conf = container_conf
    kubelet = KubeletCmdCollector(OSIdentifier.LINUX, RuntimeInfo())
    kubelet.kubelet_command = kubelet_command
    diagnoser = NetworkConfigDiagnoser(RuntimeInfo(host_node_name=host_name), dns, kubelet)
    diagnoser.diagnose()
    return diagnoser


def _result(diagnoser):
    return json.loads(get_content(diagnoser.get_data()["networkconfig"].open))


def test_name():
    assert _diagnose("", "", "").name == "networkconfig"


def test_parse_single_nameserver():
    assert parse_nameservers("nameserver 10.0.0.10") == ["10.0.0.10"]


def test_parse_strips_one_trailing_newline():
    assert parse_nameservers("nameserver 168.63.129.16\n") == ["168.63.129.16"]


def test_parse_multiple_nameservers_on_one_line():
    assert parse_nameservers("nameserver 10.0.0.1 nameserver 10.0.0.2") == ["10.0.0.1", "10.0.0.2"]


def test_parse_without_nameserver():
    assert parse_nameservers("search cluster.local") == []


def test_parse_trailing_nameserver_word_is_ignored():
    assert parse_nameservers("search x nameserver") == []


def test_diagnose_full_result():
    diagnoser = _diagnose(
        "nameserver 168.63.129.16\n",
        "nameserver 10.0.0.10\n",
        "/usr/local/bin/kubelet --network-plugin=cni --max-pods=30 --v=2",
        host_name="aks-node-1",
    )
    assert _result(diagnoser) == {
        "HostName": "aks-node-1",
        "NetworkPlugin": "azurecni",
        "VirtualMachineDNS": ["168.63.129.16"],
        "KubernetesDNS": ["10.0.0.10"],
        "MaxPodsPerNode": 30,
    }


def test_other_network_plugin_is_kept():
    result = _result(_diagnose("", "", "kubelet --network-plugin=kubenet"))
    assert result["NetworkPlugin"] == "kubenet"


def test_missing_dns_is_null():
    result = _result(_diagnose("", "search local", "kubelet"))
    assert result["VirtualMachineDNS"] is None
    assert result["KubernetesDNS"] is None


def test_invalid_max_pods_gives_zero():
    result = _result(_diagnose("", "", "kubelet --max-pods=many"))
    assert result["MaxPodsPerNode"] == 0


def test_output_key_order():
    raw = get_content(_diagnose("", "", "").get_data()["networkconfig"].open)
    assert list(json.loads(raw)) == [
        "HostName",
        "NetworkPlugin",
        "VirtualMachineDNS",
        "KubernetesDNS",
        "MaxPodsPerNode",
    ]