"""Manifest handling: file selection, YAML decoding and staging of bundled manifests."""

from __future__ import annotations

import hashlib
import logging
import os
import re
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

_MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")
_SEPARATOR = re.compile(r"^---\s*$")


def _ext(name: str) -> str:
    dot = name.rfind(".")
    if dot < 0 or dot < name.rfind("/") or dot < name.rfind(os.sep):
        return ""
    return name[dot:]


def _has_manifest_suffix(name: str) -> bool:
    return name.lower().endswith(_MANIFEST_SUFFIXES)


def basename(path: str) -> str:
    """Return the file name of ``path`` up to its first period."""
    stripped = path.rstrip(os.sep) or path
    return os.path.basename(stripped).split(".", 1)[0]


def checksum(content: bytes) -> str:
    """Return the hex SHA-256 digest of ``content``."""
    return hashlib.sha256(content).hexdigest()


def is_empty_yaml(content: bytes | str) -> bool:
    """Return True if ``content`` holds only whitespace, comments and separators."""
    text = content.decode() if isinstance(content, (bytes, bytearray)) else content
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and stripped != "---" and not stripped.startswith("#"):
            return False
    return True


def _split_documents(text: str) -> list[str]:
    documents: list[str] = []
    current: list[str] = []
    for line in text.splitlines(keepends=True):
        if _SEPARATOR.match(line.rstrip("\n")):
            if current:
                documents.append("".join(current))
            current = []
        else:
            current.append(line)
    if current:
        documents.append("".join(current))
    return documents


def _to_objects(document: str) -> list[dict[str, Any]]:
    data = yaml.safe_load(document)
    if not isinstance(data, dict):
        raise ValueError("manifest document is not an object")
    kind = data.get("kind")
    if not kind:
        raise ValueError("Object 'Kind' is missing in manifest document")

    items = data.get("items")
    if items is None:
        return [data]
    if not isinstance(items, list):
        raise ValueError("list 'items' is not an array")

    item_kind = kind.removesuffix("List")
    api_version = data.get("apiVersion", "")
    result = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError("list item is not an object")
        item = dict(item)
        if not item.get("kind") and not item.get("apiVersion"):
            item["kind"] = item_kind
            item["apiVersion"] = api_version
        result.append(item)
    return result


def yaml_to_objects(content: bytes | str) -> list[dict[str, Any]]:
    """Decode every non-empty YAML document into objects, expanding lists."""
    text = content.decode() if isinstance(content, (bytes, bytearray)) else content
    objects: list[dict[str, Any]] = []
    for document in _split_documents(text):
        if not is_empty_yaml(document):
            objects.extend(_to_objects(document))
    return objects


def should_skip_file(file_name: str, skips: Mapping[str, bool]) -> bool:
    """Return True for dotfiles, skipped names and non-manifest files."""
    if file_name.startswith("."):
        return True
    if skips.get(file_name):
        return True
    return not _has_manifest_suffix(file_name)


def should_disable_file(base: str, file_name: str, disables: Mapping[str, bool]) -> bool:
    """Return True if the file or one of its directories below ``base`` is disabled."""
    relative = file_name.removeprefix(base)
    parts = relative.split(os.sep)
    for depth in range(1, len(parts)):
        sub_path = os.sep.join(part for part in parts[:depth] if part)
        if disables.get(sub_path):
            return True
    if not _has_manifest_suffix(file_name):
        return False
    base_file = os.path.basename(file_name)
    base_name = base_file.removesuffix(_ext(base_file))
    return bool(disables.get(base_name))


def stage(
    assets: Mapping[str, bytes],
    data_dir: str,
    template_vars: Mapping[str, str],
    skips: Mapping[str, bool],
) -> list[str]:
    """Write bundled manifests into ``data_dir`` with template variables replaced.

    Assets whose name, name without extension, or any parent directory is in
    ``skips`` are left out. Returns the paths written.
    """
    written = []
    for name in sorted(assets):
        name_no_ext = name.removesuffix(_ext(name))
        if skips.get(name) or skips.get(name_no_ext):
            continue
        parts = name.split("/")
        if any(skips.get("/".join(parts[:depth])) for depth in range(1, len(parts))):
            continue

        content = bytes(assets[name])
        for key, value in template_vars.items():
            content = content.replace(key.encode(), value.encode())

        path = os.path.join(data_dir, *parts)
        os.makedirs(os.path.dirname(path), mode=0o700, exist_ok=True)
        logger.info("Writing manifest: %s", path)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
        except OSError as exc:
            raise OSError(f"failed to write to {name}: {exc}") from exc
        written.append(path)
    return written