"""Locate the data directory."""

from __future__ import annotations

import os
from pathlib import Path

PROGRAM = "k8e"

DEFAULT_DATA_DIR = "/var/lib/" + PROGRAM
DEFAULT_HOME_DATA_DIR = "${HOME}/." + PROGRAM
HOME_CONFIG = "${HOME}/.kube/" + PROGRAM + ".yaml"
GLOBAL_CONFIG = "/etc/" + PROGRAM + "/" + PROGRAM + ".yaml"

_HOME_MARKERS = ("$HOME", "${HOME}", "~")


def resolve(data_dir: str) -> str:
    """Return the absolute data directory, defaulting by the current user."""
    return local_home(data_dir, False)


def local_home(data_dir: str, force_local: bool) -> str:
    """Return the absolute data directory.

    An empty ``data_dir`` means the system directory for root and a
    directory under the home directory otherwise, or always the latter
    when ``force_local`` is set.
    """
    if not data_dir:
        getuid = getattr(os, "getuid", None)
        if getuid is not None and getuid() == 0 and not force_local:
            data_dir = DEFAULT_DATA_DIR
        else:
            data_dir = DEFAULT_HOME_DATA_DIR
    return os.path.abspath(_resolve_home(data_dir))


def _resolve_home(path: str) -> str:
    for marker in _HOME_MARKERS:
        if marker in path:
            try:
                home = str(Path.home())
            except (RuntimeError, KeyError) as exc:
                raise ValueError(f"resolving {path}: cannot determine home directory") from exc
            path = path.replace(marker, home)
    return path