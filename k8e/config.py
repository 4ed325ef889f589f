"""Daemon argument helpers and the embedded etcd configuration."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import yaml

CERTIFICATE_RENEW_DAYS = 90

_INT64_MAX = 2**63 - 1
_INT64_MIN = -(2**63)

_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_UNIT_PATTERN = "ns|us|µs|μs|ms|s|m|h"
_DURATION_BODY = re.compile(rf"(?:(?:\d+\.?\d*|\.\d+)(?:{_UNIT_PATTERN}))+")
_DURATION_PART = re.compile(rf"(\d*)(?:\.(\d*))?({_UNIT_PATTERN})")
_INTEGER = re.compile(r"[+-]?\d+")
_DURATION_KEY_WORDS = ("time", "duration", "interval", "retention")


def get_args_list(args_map: Mapping[str, str], extra_args: Iterable[str] | None) -> list[str]:
    """Return sorted ``--key=value`` flags; extra ``key[=value]`` args override defaults."""
    merged = dict(args_map)
    for arg in extra_args or ():
        key, sep, value = arg.partition("=")
        merged[key] = value if sep else "true"
    return sorted(f"--{key}={value}" for key, value in merged.items())


def arg_string(args: Iterable[str]) -> str:
    """Join arguments with single spaces for logging."""
    text = ""
    for arg in args:
        if text:
            text += " "
        text += arg
    return text


def parse_duration(text: str) -> int:
    """Parse a duration such as ``1h30m`` or ``1.5s`` into nanoseconds."""
    body = text
    sign = 1
    if body and body[0] in "+-":
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return 0
    if not _DURATION_BODY.fullmatch(body):
        raise ValueError(f'time: invalid duration "{text}"')

    total = 0
    for whole, fraction, unit in _DURATION_PART.findall(body):
        scale = _DURATION_UNITS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
    total *= sign
    if not _INT64_MIN <= total <= _INT64_MAX:
        raise ValueError(f'time: invalid duration "{text}"')
    return total


def _format_fraction(value: int, precision: int) -> str:
    whole, fraction = divmod(value, 10**precision)
    digits = f"{fraction:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def _format_duration(nanoseconds: int) -> str:
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    magnitude = abs(nanoseconds)
    if magnitude < 1_000:
        return f"{sign}{magnitude}ns"
    if magnitude < 1_000_000:
        return f"{sign}{_format_fraction(magnitude, 3)}µs"
    if magnitude < 1_000_000_000:
        return f"{sign}{_format_fraction(magnitude, 6)}ms"

    minute = 60 * 1_000_000_000
    seconds = _format_fraction(magnitude % minute, 9) + "s"
    minutes = (magnitude // minute) % 60
    hours = magnitude // (60 * minute)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


@dataclass
class InitialOptions:
    """Initial cluster membership options for etcd."""

    advertise_peer_url: str = ""
    cluster: str = ""
    state: str = ""


@dataclass
class _TransportSecurity:
    cert_file: str = ""
    key_file: str = ""
    client_cert_auth: bool = False
    trusted_ca_file: str = ""

    def _as_dict(self) -> dict[str, Any]:
        return {
            "cert-file": self.cert_file,
            "key-file": self.key_file,
            "client-cert-auth": self.client_cert_auth,
            "trusted-ca-file": self.trusted_ca_file,
        }


@dataclass
class ServerTrust(_TransportSecurity):
    """Client-facing TLS settings for etcd."""


@dataclass
class PeerTrust(_TransportSecurity):
    """Peer TLS settings for etcd."""


@dataclass
class ETCDConfig:
    """Configuration written to the embedded etcd config file."""

    initial_options: InitialOptions = field(default_factory=InitialOptions)
    name: str = ""
    listen_client_urls: str = ""
    listen_metrics_urls: str = ""
    listen_peer_urls: str = ""
    advertise_client_urls: str = ""
    data_dir: str = ""
    snapshot_count: int = 0
    server_trust: ServerTrust = field(default_factory=ServerTrust)
    peer_trust: PeerTrust = field(default_factory=PeerTrust)
    force_new_cluster: bool = False
    heartbeat_interval: int = 0
    election_timeout: int = 0
    logger: str = ""
    log_outputs: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the etcd config-file keys; empty optional values are left out."""
        optional = {
            "initial-advertise-peer-urls": self.initial_options.advertise_peer_url,
            "initial-cluster": self.initial_options.cluster,
            "initial-cluster-state": self.initial_options.state,
            "name": self.name,
            "listen-client-urls": self.listen_client_urls,
            "listen-metrics-urls": self.listen_metrics_urls,
            "listen-peer-urls": self.listen_peer_urls,
            "advertise-client-urls": self.advertise_client_urls,
            "data-dir": self.data_dir,
            "snapshot-count": self.snapshot_count,
            "force-new-cluster": self.force_new_cluster,
        }
        result = {key: value for key, value in optional.items() if value}
        result.update(
            {
                "client-transport-security": self.server_trust._as_dict(),
                "peer-transport-security": self.peer_trust._as_dict(),
                "heartbeat-interval": self.heartbeat_interval,
                "election-timeout": self.election_timeout,
                "logger": self.logger,
                "log-outputs": list(self.log_outputs) if self.log_outputs is not None else None,
            }
        )
        return result

    def to_config_file(self, extra_args: Iterable[str] | None) -> str:
        """Write the config, with ``--key=value`` overrides, to ``<data_dir>/config``.

        Returns the path of the written file.
        """
        config_path = os.path.join(self.data_dir, "config")
        data = self.to_dict()
        for arg in extra_args or ():
            raw_key, sep, value = arg.partition("=")
            if sep:
                key = raw_key.lstrip("-")
                data[key] = _convert_extra_value(key, value)

        text = yaml.safe_dump(data, default_flow_style=False, sort_keys=True, allow_unicode=True)
        os.makedirs(self.data_dir, mode=0o700, exist_ok=True)
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        return config_path


def _convert_extra_value(key: str, value: str) -> Any:
    if _INTEGER.fullmatch(value):
        number = int(value)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number

    lower_key = key.lower()
    if any(word in lower_key for word in _DURATION_KEY_WORDS):
        try:
            return _format_duration(parse_duration(value))
        except ValueError:
            pass

    strings = _as_string_list(value)
    if strings is not _NOT_A_LIST:
        return strings

    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return value


_NOT_A_LIST = object()


def _as_string_list(value: str) -> Any:
    try:
        loaded = yaml.safe_load(value)
    except yaml.YAMLError:
        return _NOT_A_LIST
    if loaded is None:
        return None
    if not isinstance(loaded, list):
        return _NOT_A_LIST
    strings = []
    for item in loaded:
        if isinstance(item, bool):
            strings.append("true" if item else "false")
        elif isinstance(item, (str, int, float)):
            strings.append(str(item))
        elif item is None:
            strings.append("")
        else:
            return _NOT_A_LIST
    return strings