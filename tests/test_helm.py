import json

import pytest

from periscope.core import CollectionError, RuntimeInfo, UnsupportedError, get_content
from periscope.helm import HelmCollector


def _release(version, status="deployed"):
    return {
        "name": "helmtest-release",
        "namespace": "helmtest",
        "version": version,
        "info": {
            "status": status,
            "description": "Install complete",
            "last_deployed": "2023-01-02T03:04:05Z",
        },
        "chart": {"metadata": {"name": "testchart", "appVersion": "1.16.0"}},
    }


class FakeHelm:
    def __init__(self, fail_history=False):
        self.fail_history = fail_history

    def list_releases(self):
        return [_release(2)]

    def history(self, name):
        if self.fail_history:
            raise RuntimeError("boom")
        return [_release(1, "superseded"), _release(2)]


def test_name():
    assert HelmCollector(None, None).name == "helm"


@pytest.mark.parametrize("collectors,want_err", [(["connectedCluster"], False), ([], True)])
def test_check_supported(collectors, want_err):
    c = HelmCollector(None, RuntimeInfo(collector_list=collectors))
    if want_err:
        with pytest.raises(UnsupportedError):
            c.check_supported()
    else:
        assert c.check_supported() is None


def test_collect_release_history():
    c = HelmCollector(FakeHelm(), RuntimeInfo(collector_list=["connectedCluster"]))
    c.collect()
    releases = json.loads(get_content(c.get_data()["helm_list"].open))
    assert len(releases) >= 1
    r = releases[0]
    assert r["chart"] == "testchart"
    assert r["status"] == "deployed"
    assert [h["revision"] for h in r["history"]] == [1, 2]
    assert r["history"][0]["lastDeployment"] == "2023-01-02T03:04:05Z"
    assert r["history"][0]["appVersion"] == "1.16.0"


def test_history_failure_leaves_null():
    c = HelmCollector(FakeHelm(fail_history=True), RuntimeInfo())
    c.collect()
    releases = json.loads(get_content(c.get_data()["helm_list"].open))
    assert releases[0]["history"] is None


def test_no_client():
    with pytest.raises(CollectionError):
        HelmCollector(None, RuntimeInfo()).collect()