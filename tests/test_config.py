import os
import stat

import pytest
import yaml

from k8e.config import (
    ETCDConfig,
    InitialOptions,
    PeerTrust,
    ServerTrust,
    arg_string,
    get_args_list,
    parse_duration,
)


def test_get_args_list():
    args_map = {
        "aaa": "A",
        "bbb": "B",
        "ccc": "C",
        "ddd": "d",
        "eee": "e",
        "fff": "f",
        "ggg": "g",
        "hhh": "h",
    }
    extra_args = ["bbb=BB", "ddd=DD", "iii=II"]
    expected = [
        "--aaa=A",
        "--bbb=BB",
        "--ccc=C",
        "--ddd=DD",
        "--eee=e",
        "--fff=f",
        "--ggg=g",
        "--hhh=h",
        "--iii=II",
    ]
    assert get_args_list(args_map, extra_args) == expected


def test_get_args_list_flag_without_value_is_true():
    assert get_args_list({"a": "1"}, ["enable", "x=y=z"]) == ["--a=1", "--enable=true", "--x=y=z"]


def test_get_args_list_leaves_input_unchanged():
    args_map = {"a": "1"}
    get_args_list(args_map, ["a=2"])
    assert args_map == {"a": "1"}


def test_arg_string():
    assert arg_string(["--a=1", "--b=2"]) == "--a=1 --b=2"
    assert arg_string([]) == ""


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0", 0),
        ("1h30m", 5400 * 10**9),
        ("1.5s", 1_500_000_000),
        ("-2ms", -2_000_000),
        ("300us", 300_000),
        ("10ns", 10),
        (".5m", 30 * 10**9),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "5", "abc", "1x", "-", "."])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_to_dict_omits_empty_optional_fields():
    cfg = ETCDConfig(data_dir="/data", name="node1")
    trust = {"cert-file": "", "key-file": "", "client-cert-auth": False, "trusted-ca-file": ""}
    assert cfg.to_dict() == {
        "name": "node1",
        "data-dir": "/data",
        "client-transport-security": trust,
        "peer-transport-security": trust,
        "heartbeat-interval": 0,
        "election-timeout": 0,
        "logger": "",
        "log-outputs": None,
    }


def test_to_dict_includes_initial_options_and_trust():
    cfg = ETCDConfig(
        initial_options=InitialOptions(cluster="a=https://10.0.0.1:2380", state="new"),
        server_trust=ServerTrust(cert_file="s.crt", client_cert_auth=True),
        peer_trust=PeerTrust(key_file="p.key"),
        snapshot_count=100,
        log_outputs=["stderr"],
    )
    result = cfg.to_dict()
    assert result["initial-cluster"] == "a=https://10.0.0.1:2380"
    assert result["initial-cluster-state"] == "new"
    assert "initial-advertise-peer-urls" not in result
    assert result["client-transport-security"]["cert-file"] == "s.crt"
    assert result["client-transport-security"]["client-cert-auth"] is True
    assert result["peer-transport-security"]["key-file"] == "p.key"
    assert result["snapshot-count"] == 100
    assert result["log-outputs"] == ["stderr"]


def test_to_config_file_without_extras(tmp_path):
    data_dir = tmp_path / "etcd"
    cfg = ETCDConfig(data_dir=str(data_dir), name="node1", heartbeat_interval=500)
    path = cfg.to_config_file([])
    assert path == os.path.join(str(data_dir), "config")
    with open(path, encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    assert loaded == cfg.to_dict()
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_to_config_file_with_extras(tmp_path):
    cfg = ETCDConfig(data_dir=str(tmp_path), name="node1")
    path = cfg.to_config_file(
        [
            "--heartbeat-interval=100",
            "--election-timeout=5m",
            "--auto-compaction-retention=1h",
            "--log-outputs=[stderr, stdout]",
            "--enable-v2=true",
            "--strict-reconfig-check=False",
            "--name=other",
            "--quota-backend-bytes=8589934592",
            "--empty=",
            "--no-value",
        ]
    )
    with open(path, encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    assert loaded["heartbeat-interval"] == 100
    assert loaded["election-timeout"] == "5m0s"
    assert loaded["auto-compaction-retention"] == "1h0m0s"
    assert loaded["log-outputs"] == ["stderr", "stdout"]
    assert loaded["enable-v2"] is True
    assert loaded["strict-reconfig-check"] is False
    assert loaded["name"] == "other"
    assert loaded["quota-backend-bytes"] == 8589934592
    assert loaded["empty"] is None
    assert "no-value" not in loaded


def test_to_config_file_duration_only_for_time_keys(tmp_path):
    cfg = ETCDConfig(data_dir=str(tmp_path))
    path = cfg.to_config_file(["--some-setting=5m", "--sync-duration=90s"])
    with open(path, encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    assert loaded["some-setting"] == "5m"
    assert loaded["sync-duration"] == "1m30s"


def test_to_config_file_requires_data_dir():
    with pytest.raises(FileNotFoundError):
        ETCDConfig().to_config_file([])