import pytest

from periscope.core import CollectionError, RuntimeInfo, UnsupportedError, get_content
from periscope.smi import SmiCollector


def _crd(name, group, version, plural, kind):
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": name},
        "spec": {
            "group": group,
            "names": {"plural": plural, "kind": kind},
            "versions": [{"name": version}],
        },
    }


def _resource(api_version, kind, namespace, name):
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace},
    }


class _FakeClient:
    def __init__(self, crds, resources, fail_list_crds=False, fail_list_for=None):
        self.crds = crds
        self.resources = resources
        self.fail_list_crds = fail_list_crds
        self.fail_list_for = fail_list_for

    def list_crds(self):
        if self.fail_list_crds:
            raise RuntimeError("forbidden")
        return self.crds

    def print_as_yaml(self, item):
        return (
            f"apiVersion: {item['apiVersion']}\nkind: {item['kind']}\n"
            f"  name: {item['metadata']['name']}\n"
        )

    def gvr_from_crd(self, crd):
        spec = crd["spec"]
        return (spec["group"], spec["versions"][0]["name"], spec["names"]["plural"])

    def list_resources(self, resource, namespace, label_selector):
        assert namespace == ""
        if resource == self.fail_list_for:
            raise RuntimeError("not found")
        return self.resources.get(resource, [])


def _smi_client(**kwargs):
    crds = [
        _crd("traffictargets.access.smi-spec.io", "access.smi-spec.io", "v1alpha3",
             "traffictargets", "TrafficTarget"),
        _crd("httproutegroups.specs.smi-spec.io", "specs.smi-spec.io", "v1alpha4",
             "httproutegroups", "HTTPRouteGroup"),
        _crd("tcproutes.specs.smi-spec.io", "specs.smi-spec.io", "v1alpha4",
             "tcproutes", "TCPRoute"),
        _crd("trafficsplits.split.smi-spec.io", "split.smi-spec.io", "v1alpha2",
             "trafficsplits", "TrafficSplit"),
        _crd("meshconfigs.config.openservicemesh.io", "config.openservicemesh.io", "v1alpha1",
             "meshconfigs", "MeshConfig"),
    ]
    resources = {
        ("access.smi-spec.io", "v1alpha3", "traffictargets"): [
            _resource("access.smi-spec.io/v1alpha3", "TrafficTarget", "bookstore", "bookstore"),
            _resource("access.smi-spec.io/v1alpha3", "TrafficTarget", "bookstore", "bookstore-v2"),
            _resource("access.smi-spec.io/v1alpha3", "TrafficTarget", "bookwarehouse", "mysql"),
            _resource("access.smi-spec.io/v1alpha3", "TrafficTarget", "bookwarehouse",
                      "bookstore-access-bookwarehouse"),
        ],
        ("specs.smi-spec.io", "v1alpha4", "httproutegroups"): [
            _resource("specs.smi-spec.io/v1alpha4", "HTTPRouteGroup", "bookstore",
                      "bookstore-service-routes"),
            _resource("specs.smi-spec.io/v1alpha4", "HTTPRouteGroup", "bookwarehouse",
                      "bookwarehouse-service-routes"),
        ],
        ("specs.smi-spec.io", "v1alpha4", "tcproutes"): [
            _resource("specs.smi-spec.io/v1alpha4", "TCPRoute", "bookwarehouse", "mysql"),
        ],
        ("split.smi-spec.io", "v1alpha2", "trafficsplits"): [
            _resource("split.smi-spec.io/v1alpha2", "TrafficSplit", "bookstore", "bookstore-split"),
        ],
    }
    return _FakeClient(crds, resources, **kwargs)


def test_name():
    assert SmiCollector(None, None).name == "smi"


@pytest.mark.parametrize(
    "collectors, want_err",
    [
        (["NOT_OSM", "NOT_SMI"], True),
        (["OSM", "NOT_SMI"], False),
        (["NOT_OSM", "SMI"], False),
    ],
)
def test_check_supported(collectors, want_err):
    collector = SmiCollector(None, RuntimeInfo(collector_list=collectors))
    if want_err:
        with pytest.raises(UnsupportedError, match="NOT_OSM NOT_SMI"):
            collector.check_supported()
    else:
        assert collector.check_supported() is None


def test_collect_keys():
    collector = SmiCollector(_smi_client(), RuntimeInfo(collector_list=["SMI"]))
    collector.collect()
    expected = {
        "smi/crd_traffictargets.access.smi-spec",
        "smi/crd_httproutegroups.specs.smi-spec",
        "smi/crd_tcproutes.specs.smi-spec",
        "smi/crd_trafficsplits.split.smi-spec",
        "smi/namespace_bookstore/traffictargets.access.smi-spec.io_bookstore_custom_resource",
        "smi/namespace_bookstore/traffictargets.access.smi-spec.io_bookstore-v2_custom_resource",
        "smi/namespace_bookwarehouse/traffictargets.access.smi-spec.io_mysql_custom_resource",
        "smi/namespace_bookwarehouse/traffictargets.access.smi-spec.io_"
        "bookstore-access-bookwarehouse_custom_resource",
        "smi/namespace_bookstore/httproutegroups.specs.smi-spec.io_"
        "bookstore-service-routes_custom_resource",
        "smi/namespace_bookwarehouse/httproutegroups.specs.smi-spec.io_"
        "bookwarehouse-service-routes_custom_resource",
        "smi/namespace_bookwarehouse/tcproutes.specs.smi-spec.io_mysql_custom_resource",
        "smi/namespace_bookstore/trafficsplits.split.smi-spec.io_bookstore-split_custom_resource",
    }
    assert set(collector.get_data()) == expected


def test_collect_values_are_yaml():
    collector = SmiCollector(_smi_client(), RuntimeInfo(collector_list=["SMI"]))
    collector.collect()
    data = collector.get_data()
    crd_text = get_content(data["smi/crd_tcproutes.specs.smi-spec"].open)
    assert crd_text.startswith("apiVersion: apiextensions.k8s.io/v1\nkind: CustomResourceDefinition\n")
    resource_text = get_content(
        data["smi/namespace_bookwarehouse/tcproutes.specs.smi-spec.io_mysql_custom_resource"].open
    )
    assert resource_text == "apiVersion: specs.smi-spec.io/v1alpha4\nkind: TCPRoute\n  name: mysql\n"


def test_collect_list_crds_failure():
    collector = SmiCollector(_smi_client(fail_list_crds=True), RuntimeInfo(collector_list=["SMI"]))
    with pytest.raises(CollectionError, match="error listing CRDs in cluster"):
        collector.collect()


def test_collect_list_resources_failure():
    client = _smi_client(fail_list_for=("specs.smi-spec.io", "v1alpha4", "tcproutes"))
    collector = SmiCollector(client, RuntimeInfo(collector_list=["SMI"]))
    with pytest.raises(CollectionError, match="Resource=tcproutes"):
        collector.collect()
    assert "smi/crd_tcproutes.specs.smi-spec" in collector.get_data()


def test_collect_without_client():
    collector = SmiCollector(None, RuntimeInfo(collector_list=["SMI"]))
    with pytest.raises(CollectionError):
        collector.collect()