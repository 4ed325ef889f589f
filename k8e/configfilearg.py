"""Merge flags from YAML configuration files into command-line arguments."""

from __future__ import annotations

import logging
import math
import os
import re
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_SPLIT_POINT = re.compile(r"(.+):(\d+)")
_FLAG_WITH_VALUE = re.compile(r"^-+([^=]*)=")
_YAML_SUFFIXES = (".yaml", ".yml")


class _ConfigLoader(yaml.SafeLoader):
    """Safe loader that leaves timestamps as plain strings."""


_ConfigLoader.yaml_implicit_resolvers = {
    first: [
        (tag, pattern)
        for tag, pattern in resolvers
        if tag != "tag:yaml.org,2002:timestamp"
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass
class Parser:
    """Finds a config file for a command line and splices its flags in.

    ``after`` names the arguments after which the file's flags are inserted;
    an entry of the form ``name:N`` moves the split point N arguments further
    along, unless that argument is missing or is itself a flag.
    ``valid_flags`` maps a command to the flag names it accepts; flag names
    may carry comma separated aliases.
    """

    after: list[str] = field(default_factory=list)
    flag_names: list[str] = field(default_factory=list)
    env_name: str = ""
    default_config: str = ""
    valid_flags: dict[str, list[str]] = field(default_factory=dict)

    def parse(self, args: list[str] | None) -> list[str]:
        """Return ``args`` with the config file's flags inserted after the split point."""
        args = list(args or [])
        prefix, suffix, found = self.find_start(args)
        if not found:
            return args

        config_file, is_set = self.find_config_file_flag(args)
        if not config_file:
            return args
        try:
            values = read_config_file(config_file)
        except FileNotFoundError:
            if not is_set:
                return args
            raise
        if len(args) > 1:
            values = self._strip_invalid_flags(args[1], values)
        return prefix + values + suffix

    def _strip_invalid_flags(self, command: str, args: list[str]) -> list[str]:
        command_flags = self.valid_flags.get(command) or []
        if not command_flags:
            return args
        valid = {
            alias.strip()
            for name in command_flags
            for alias in name.split(",")
        }
        result = []
        for arg in args:
            match = _FLAG_WITH_VALUE.match(arg)
            name = match.group(1) if match else arg
            if name in valid:
                result.append(arg)
            else:
                logger.warning(
                    "Unknown flag %s found in config.yaml, skipping", arg.split("=")[0]
                )
        return result

    def find_string(self, args: list[str] | None, target: str) -> str:
        """Return the value of key ``target`` in the config file, or an empty string."""
        config_file, is_set = self.find_config_file_flag(args)
        if not config_file:
            return ""
        try:
            content = read_config_file_data(config_file)
        except FileNotFoundError:
            if not is_set:
                return ""
            raise
        for key, value in _load_mapping(content).items():
            if _to_string(key) == target:
                return _to_string(value)
        return ""

    def find_config_file_flag(self, args: list[str] | None) -> tuple[str, bool]:
        """Return the config file location and whether it was given explicitly."""
        if self.env_name:
            env_value = os.environ.get(self.env_name, "")
            if env_value:
                return env_value, True

        args = list(args or [])
        for position, arg in enumerate(args):
            for flag_name in self.flag_names:
                if arg == flag_name:
                    if position + 1 < len(args):
                        return args[position + 1], True
                    # A flag without a value; the CLI parser reports it later.
                    return "", False
                if arg.startswith(flag_name + "="):
                    return arg[len(flag_name) + 1:], True

        return self.default_config, False

    def find_start(self, args: list[str] | None) -> tuple[list[str], list[str], bool]:
        """Split ``args`` into the part before and after the insertion point."""
        args = list(args or [])
        if not self.after:
            return [], args, True

        names = []
        skips: dict[str, int] = {}
        for entry in self.after:
            match = _SPLIT_POINT.search(entry)
            if match:
                names.append(match.group(1))
                skips[match.group(1)] = int(match.group(2))
            else:
                names.append(entry)

        for position, value in enumerate(args):
            if value not in names:
                continue
            skip = skips.get(value, 0)
            if skip:
                target = position + skip
                if len(args) <= target or args[target].startswith("-"):
                    return args[: position + 1], args[position + 1:], True
                return args[: target + 1], args[target + 1:], True
            return args[: position + 1], args[position + 1:], True

        return args, [], False


def _dot_d_files(base: str) -> list[str]:
    directory = base + ".d"
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except FileNotFoundError:
        return []
    return [
        os.path.join(directory, entry.name)
        for entry in entries
        if not entry.is_dir(follow_symlinks=False)
        and entry.name.lower().endswith(_YAML_SUFFIXES)
    ]


def read_config_file(path: str) -> list[str]:
    """Read a config file and its ``.d`` directory into a list of flags.

    Keys ending in ``+`` append to the value of earlier files instead of
    replacing it.  Raises FileNotFoundError if neither the file nor any
    ``.d`` file exists.
    """
    files = _dot_d_files(path)
    try:
        os.stat(path)
    except FileNotFoundError:
        if not files:
            raise
    else:
        files.insert(0, path)

    values: dict[str, Any] = {}
    for file in files:
        for raw_key, value in _load_mapping(read_config_file_data(file)).items():
            key = _to_string(raw_key)
            is_append = key.endswith("+")
            key = key.removesuffix("+")
            if is_append and key in values:
                values[key] = _to_list(values[key]) + _to_list(value)
            else:
                values.pop(key, None) if key not in values else None
                values[key] = value

    result = []
    for key, value in values.items():
        prefix = "-" if len(key) == 1 else "--"
        if isinstance(value, list):
            result.extend(f"{prefix}{key}={_to_string(item)}" for item in value)
        else:
            result.append(f"{prefix}{key}={_to_string(value)}")
    return result


def read_config_file_data(path: str) -> bytes:
    """Return the raw bytes of a config file, fetching http(s) locations."""
    try:
        scheme = urllib.parse.urlparse(path).scheme
    except ValueError as exc:
        raise ValueError(f"failed to parse config location {path}: {exc}") from exc

    if scheme in ("http", "https"):
        try:
            with urllib.request.urlopen(path) as response:
                return response.read()
        except urllib.error.HTTPError as exc:
            return exc.read()
        except urllib.error.URLError as exc:
            raise OSError(f"failed to read http config {path}: {exc.reason}") from exc

    with open(path, "rb") as handle:
        return handle.read()


def _load_mapping(content: bytes) -> dict[Any, Any]:
    data = yaml.load(content, Loader=_ConfigLoader)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("config file must contain a YAML mapping")
    return data


def _to_list(value: Any) -> list[Any]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return value
    text = _to_string(value).strip()
    return [text] if text else []


def _to_string(value: Any) -> str:
    if isinstance(value, list):
        if not value:
            return "[]"
        value = value[0]
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)