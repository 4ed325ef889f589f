"""Verify checksums and symlinks listed in a data directory."""

from __future__ import annotations

import hashlib
import logging
import os

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Raised when a data directory does not match its manifests."""


def verify(directory: str) -> int:
    """Check ``.sha256sums`` and ``.links`` in ``directory``.

    Returns the number of entries verified; raises VerificationError if
    either check fails.
    """
    failed = False
    verified = 0
    try:
        verified += verify_sums(directory, ".sha256sums")
    except (VerificationError, OSError) as exc:
        logger.error("Unable to verify sums: %s", exc)
        failed = True
    try:
        verified += verify_links(directory, ".links")
    except (VerificationError, OSError) as exc:
        logger.error("Unable to verify links: %s", exc)
        failed = True
    if failed:
        raise VerificationError(f"failed to verify directory {directory}")
    return verified


def verify_sums(root: str, sum_list_file: str) -> int:
    """Check every ``<sha256> <file>`` line of ``sum_list_file``; return the count checked."""
    sums = _file_map_fields(os.path.join(root, sum_list_file), 1, 0)
    if not sums:
        raise VerificationError(f"no entries found in {sum_list_file}")
    failures = 0
    for name, expected in sums.items():
        actual = _sha256_sum(os.path.join(root, name))
        if actual != expected:
            logger.error("Hash for file %s expected to be %s (fail)", name, expected)
            failures += 1
        else:
            logger.debug("Verified hash %s is correct", name)
    if failures:
        raise VerificationError(f"failed {failures} hash verifications")
    return len(sums)


def verify_links(root: str, link_list_file: str) -> int:
    """Check every ``<link> <target>`` line of ``link_list_file``; return the count checked."""
    links = _file_map_fields(os.path.join(root, link_list_file), 0, 1)
    if not links:
        raise VerificationError(f"no entries found in {link_list_file}")
    failures = 0
    for name, expected in links.items():
        try:
            actual = os.readlink(os.path.join(root, name))
        except OSError:
            actual = ""
        if actual != expected:
            logger.error("Link for file %s expected to be %s (fail)", name, expected)
            failures += 1
        else:
            logger.debug("Verified link %s is correct", name)
    if failures:
        raise VerificationError(f"failed {failures} link verifications")
    return len(links)


def _file_map_fields(file_name: str, key: int, val: int) -> dict[str, str]:
    result: dict[str, str] = {}
    with open(file_name, encoding="utf-8") as handle:
        for line in handle:
            fields = line.split()
            if not fields:
                continue
            if len(fields) <= key or len(fields) <= val:
                raise VerificationError(
                    f"fields for file {file_name} ({len(fields)}) smaller than "
                    f"required index (key: {key}, val: {val})"
                )
            result[fields[key]] = fields[val]
    return result


def _sha256_sum(path: str) -> str:
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(65536), b""):
                digest.update(chunk)
    except OSError:
        return ""
    return digest.hexdigest()