# periscope

`periscope` is a library for gathering diagnostic data from a Kubernetes node
and its cluster. *Collectors* gather data, *diagnosers* derive summaries from
it, and the results can be packed into a single zip archive.

## Collectors

Every collector has a `name`, a `check_supported()` method, a `collect()`
method and a `get_data()` method. `get_data()` returns a mapping of names to
data values, and each data value has an `open()` method that returns a binary
stream.

| Module                      | Collector                    | Data                                               |
|-----------------------------|------------------------------|----------------------------------------------------|
| `periscope.dns`             | `DNSCollector`               | `resolv.conf` of the host and of the container     |
| `periscope.hostcommands`    | `IPTablesCollector`          | output of `iptables -t nat -L`                     |
| `periscope.hostcommands`    | `KubeletCmdCollector`        | the kubelet command line (`ps -o cmd= -C kubelet`) |
| `periscope.hostcommands`    | `SystemLogsCollector`        | `journalctl -u` output for `docker` and `kubelet`  |
| `periscope.nodelogs`        | `NodeLogsCollector`          | the node log files listed in `RuntimeInfo.node_logs` |
| `periscope.windowslogs`     | `WindowsLogsCollector`       | log files exported by a separate Windows process   |
| `periscope.networkoutbound` | `NetworkOutboundCollector`   | TCP reachability of well-known outbound endpoints  |
| `periscope.pdb`             | `PDBCollector`               | pod disruption budgets of each namespace           |
| `periscope.systemperf`      | `SystemPerfCollector`        | CPU (millicores) and memory (bytes) of nodes and containers |
| `periscope.helm`            | `HelmCollector`              | Helm releases and their revision history           |
| `periscope.kubeobjects`     | `KubeObjectsCollector`       | descriptions of objects named `namespace/resource[/name]` |
| `periscope.podlogs`         | `PodsContainerLogsCollector` | the last 100 log lines of each container, with pod status |
| `periscope.osm`             | `OsmCollector`               | Open Service Mesh resources, pod logs and Envoy data |
| `periscope.smi`             | `SmiCollector`               | SMI custom resource definitions and their resources |

A collector that cannot run raises `periscope.core.UnsupportedError` from
`check_supported()`, with the reason in the message. A collection that fails
raises `periscope.core.CollectionError`.

## Diagnosers

- `periscope.networkconfig_diagnoser.NetworkConfigDiagnoser` reads a
  `DNSCollector` and a `KubeletCmdCollector` and reports the host name, the
  network plugin (`cni` is reported as `azurecni`), the name servers of the
  host and the container, and the maximum number of pods per node.
  `parse_nameservers()` is available on its own.
- `periscope.networkoutbound_diagnoser.NetworkOutboundDiagnoser` reads a
  `NetworkOutboundCollector` and groups its results into periods of unchanged
  status for each target.

## Selecting collectors

Collectors are switched on or off by the `periscope.core.RuntimeInfo` they are
given and, for some, by an `OSIdentifier`:

- `connectedCluster` in `collector_list` switches on `HelmCollector` and
  `PodsContainerLogsCollector`, and switches off `IPTablesCollector`,
  `KubeletCmdCollector`, `SystemLogsCollector`, `NodeLogsCollector`,
  `PDBCollector` and `SystemPerfCollector`.
- `OSM` switches on `OsmCollector`; `OSM` or `SMI` switches on `SmiCollector`.
- `DNSCollector` and the host-command collectors need `OSIdentifier.LINUX`.
- `WindowsLogsCollector` needs `OSIdentifier.WINDOWS`, the
  `Feature.WINDOWS_HPC` feature and a non-empty `run_id`.

`string_to_os_identifier("linux")` turns an OS name into an `OSIdentifier`.

## Example

```python
from periscope.app import run_producers, zip_producers
from periscope.core import KnownFilePaths, MemoryFileSystem, OSIdentifier, RuntimeInfo
from periscope.dns import DNSCollector
from periscope.hostcommands import KubeletCmdCollector
from periscope.networkconfig_diagnoser import NetworkConfigDiagnoser

files = MemoryFileSystem({
    "/host/etc/resolv.conf": "nameserver 10.0.0.10\n",
    "/etc/resolv.conf": "nameserver 10.0.0.53\n",
})
info = RuntimeInfo(host_node_name="node-1")

dns = DNSCollector(OSIdentifier.LINUX, KnownFilePaths(), files)
kubelet = KubeletCmdCollector(
    OSIdentifier.LINUX, info,
    command_runner=lambda args: "/usr/bin/kubelet --network-plugin=cni --max-pods=30",
)
diagnoser = NetworkConfigDiagnoser(info, dns, kubelet)

exported = {}

def export(producer):
    for key, value in producer.get_data().items():
        with value.open() as stream:
            exported[f"{producer.name}/{key}"] = stream.read()

producers = run_producers([dns, kubelet], [diagnoser], export)
archive = zip_producers(producers)
```

`run_producers` skips collectors whose `check_supported()` raises, runs the
rest concurrently, then runs the diagnosers concurrently, passing each one to
`export` once its data is ready. Failures are logged, not raised. It returns
the supported collectors followed by the diagnosers. `zip_producers` returns
the bytes of a zip archive with one entry per data value, named
`<producer name>/<key>`.

## Injected access

The package does not talk to a cluster or a host by itself. Collectors take
the objects that do this work:

- **Files**: `periscope.core.LocalFileSystem` reads the real disk;
  `periscope.core.MemoryFileSystem` holds files in memory, filled with
  `add_or_update_file()`, and `set_file_access_error()` makes a path fail.
- **Host commands**: the collectors in `periscope.hostcommands` take a
  `command_runner` callable that receives the argument list and returns the
  output. Without one, `collect()` raises `CollectionError`.
- **Network**: `NetworkOutboundCollector` opens real TCP connections by
  default (5 second timeout); a `dialer(host, port, timeout)` can be passed
  instead.
- **Cluster**: the Kubernetes and Helm collectors take a `client` object; each
  class docstring lists the methods it calls on it (for example `get(path)`
  returning decoded JSON for `PDBCollector` and `SystemPerfCollector`).

## What it does not do

- There is no command-line program and no long-running service; it is a
  library to be called from your own code.
- It ships no Kubernetes API client, Helm client, port-forwarding or
  `kubectl describe` implementation; these come in through the `client`
  objects described above.
- It does not upload archives anywhere; what happens to the data is up to the
  `export` callable you provide.