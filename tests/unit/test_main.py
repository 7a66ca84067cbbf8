import logging
from pathlib import Path
from threading import Event

import pytest

from cni_install_agent.main import main

DATA = Path(__file__).parent / "data"

DEFAULT_ENV = {
    "KUBERNETES_SERVICE_HOST": "127.0.0.1",
    "KUBERNETES_SERVICE_PORT": "8080",
    "KUBERNETES_NODE_NAME": "k8s-node-01",
    "SERVICEACCOUNT_TOKEN": "my_service_token",
    "SLEEP": "false",
}

OPTIONAL_ENV = (
    "KUBERNETES_SERVICE_PROTOCOL",
    "SERVICEACCOUNT_TOKEN_FILE",
    "KUBE_CA_FILE",
    "SKIP_TLS_VERIFY",
    "KUBECONFIG_MODE",
    "CNI_CONF_NAME",
    "CNI_OLD_CONF_NAME",
    "CNI_NETWORK_CONFIG",
    "CNI_NETWORK_CONFIG_FILE",
    "SKIP_CNI_BINARIES",
    "UPDATE_CNI_BINARIES",
    "CNI_MTU",
    "LOG_LEVEL",
    "ETCD_ENDPOINTS",
    "CNI_CONF_ETCD_CERT",
    "CNI_CONF_ETCD_KEY",
    "CNI_CONF_ETCD_CA",
)


@pytest.fixture
def host(tmp_path: Path, monkeypatch):
    source = tmp_path / "opt" / "cni" / "bin"
    source.mkdir(parents=True)
    for name in ("calico", "calico-ipam"):
        (source / name).write_bytes(b"binary")
    bin_dir = tmp_path / "host" / "opt" / "cni" / "bin"
    net_dir = tmp_path / "host" / "etc" / "cni" / "net.d"
    bin_dir.mkdir(parents=True)
    net_dir.mkdir(parents=True)

    config = tmp_path / "install.yaml"
    config.write_text(
        f"""
install:
  source_bin_dir: {source}
  target_bin_dirs: [{bin_dir}]
  target_net_dir: {net_dir}
  template_path: {DATA / "calico.conf.default"}
  token_file: {tmp_path / "token"}
  ca_file: {tmp_path / "ca.crt"}
  write_kubeconfig: false
"""
    )

    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)
    for key, value in DEFAULT_ENV.items():
        monkeypatch.setenv(key, value)

    return {"config": config, "bin_dir": bin_dir, "net_dir": net_dir}


def run(host) -> int:
    return main(["--config", str(host["config"])], stop_event=Event())


def test_main_installs_bins_and_config(host):
    assert run(host) == 0

    names = sorted(p.name for p in host["bin_dir"].iterdir())
    names += [p.name for p in host["net_dir"].iterdir()]
    assert "calico" in names
    assert "calico-ipam" in names
    assert "10-calico.conf" in names
    assert (host["net_dir"] / "10-calico.conf").read_bytes() == (
        DATA / "expected_10-calico.conf"
    ).read_bytes()


def test_main_renames_conf(host, monkeypatch):
    monkeypatch.setenv("CNI_CONF_NAME", "10-test.conf")
    assert run(host) == 0
    assert (host["net_dir"] / "10-test.conf").exists()


def test_main_skips_missing_bin_dir(host, caplog):
    host["bin_dir"].rmdir()
    with caplog.at_level(logging.INFO):
        assert run(host) == 0
    assert f"{host['bin_dir']} is non-writeable, skipping" in caplog.text
    assert (host["net_dir"] / "10-calico.conf").exists()


def test_main_fails_without_net_dir(host):
    host["net_dir"].rmdir()
    assert run(host) != 0


def test_main_fails_without_required_env(host, monkeypatch):
    monkeypatch.delenv("KUBERNETES_SERVICE_PORT")
    assert run(host) == 1
