"""Git bundle file format.

A bundle is a text header followed by a packfile:

    # v2 git bundle                 (v3 adds "@key=value" capability lines)
    -<oid> <comment>                prerequisite commits
    <oid> <refname>                 references
    <blank line>
    PACK...                         packfile, ending with a checksum over itself

``git bundle verify`` checks the header against the repository but never
reads the pack, so a truncated or damaged artifact passes it. ``check_pack``
closes that gap.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field
from pathlib import Path

from ..utils.fs import atomic_write


V2_SIGNATURE = b"# v2 git bundle\n"
V3_SIGNATURE = b"# v3 git bundle\n"

PACK_SIGNATURE = b"PACK"
PACK_HEADER_SIZE = 12

_HASH_SIZES = {"sha1": 20, "sha256": 32}
_MAX_HEADER_LINE = 64 * 1024
_CHUNK = 1024 * 1024


class BundleFormatError(ValueError):
    """Raised when a bundle file is malformed."""


@dataclass
class BundleHeader:
    """Parsed bundle header."""
    version: int
    capabilities: dict[str, str] = field(default_factory=dict)
    prerequisites: list[tuple[str, str]] = field(default_factory=list)
    references: list[tuple[str, str]] = field(default_factory=list)
    pack_offset: int = 0

    @property
    def object_format(self) -> str:
        return self.capabilities.get("object-format", "sha1")

    @property
    def is_complete(self) -> bool:
        """True when the bundle records complete history (no prerequisites)."""
        return not self.prerequisites


def _is_oid(value: str, hash_size: int) -> bool:
    if len(value) != hash_size * 2:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True


def read_header(path: Path | str) -> BundleHeader:
    """Parse the header of a bundle file.

    Raises:
        BundleFormatError: If the header is missing, truncated or malformed
    """
    with open(path, "rb") as f:
        signature = f.readline(_MAX_HEADER_LINE)
        if signature == V2_SIGNATURE:
            header = BundleHeader(version=2)
        elif signature == V3_SIGNATURE:
            header = BundleHeader(version=3)
        else:
            raise BundleFormatError("not a git bundle (unknown signature)")

        while True:
            raw = f.readline(_MAX_HEADER_LINE)
            if not raw:
                raise BundleFormatError("truncated bundle header")
            if not raw.endswith(b"\n"):
                raise BundleFormatError("bundle header line too long or truncated")
            if raw == b"\n":
                break

            line = raw[:-1].decode("utf-8", errors="strict")
            if line.startswith("@"):
                if header.version < 3:
                    raise BundleFormatError("capability line in a v2 bundle")
                key, _, value = line[1:].partition("=")
                header.capabilities[key] = value
                continue

            hash_size = _HASH_SIZES.get(header.object_format)
            if hash_size is None:
                raise BundleFormatError(f"unsupported object format: {header.object_format}")

            if line.startswith("-"):
                oid, _, comment = line[1:].partition(" ")
                if not _is_oid(oid, hash_size):
                    raise BundleFormatError(f"bad prerequisite line: {line!r}")
                header.prerequisites.append((oid, comment))
            else:
                oid, _, refname = line.partition(" ")
                if not _is_oid(oid, hash_size) or not refname:
                    raise BundleFormatError(f"bad reference line: {line!r}")
                header.references.append((oid, refname))

        header.pack_offset = f.tell()

    if not header.references:
        raise BundleFormatError("bundle lists no references")
    return header


def check_pack(path: Path | str, header: BundleHeader | None = None) -> int:
    """Check the packfile inside a bundle against its trailing checksum.

    Returns:
        Number of objects the pack declares

    Raises:
        BundleFormatError: If the pack is truncated or its checksum differs
    """
    header = header or read_header(path)
    algo = header.object_format
    hash_size = _HASH_SIZES.get(algo)
    if hash_size is None:
        raise BundleFormatError(f"unsupported object format: {algo}")

    total = Path(path).stat().st_size
    pack_size = total - header.pack_offset
    if pack_size < PACK_HEADER_SIZE + hash_size:
        raise BundleFormatError("truncated pack data")

    digest = hashlib.new(algo)
    with open(path, "rb") as f:
        f.seek(header.pack_offset)
        pack_header = f.read(PACK_HEADER_SIZE)
        signature, version, count = struct.unpack(">4sII", pack_header)
        if signature != PACK_SIGNATURE:
            raise BundleFormatError("missing pack signature")
        if version not in (2, 3):
            raise BundleFormatError(f"unsupported pack version: {version}")
        digest.update(pack_header)

        remaining = pack_size - PACK_HEADER_SIZE - hash_size
        while remaining > 0:
            chunk = f.read(min(_CHUNK, remaining))
            if not chunk:
                raise BundleFormatError("truncated pack data")
            digest.update(chunk)
            remaining -= len(chunk)

        trailer = f.read(hash_size)

    if trailer != digest.digest():
        raise BundleFormatError("pack checksum mismatch")
    return count


def render_header(
    *,
    prerequisites: list[tuple[str, str]],
    references: list[tuple[str, str]],
    object_format: str = "sha1",
) -> bytes:
    """Render a bundle header; v3 is used only when the object format requires it."""
    if object_format not in _HASH_SIZES:
        raise BundleFormatError(f"unsupported object format: {object_format}")
    if not references:
        raise BundleFormatError("bundle needs at least one reference")

    if object_format == "sha1":
        lines = [V2_SIGNATURE]
    else:
        lines = [V3_SIGNATURE, f"@object-format={object_format}\n".encode("utf-8")]

    for oid, comment in prerequisites:
        suffix = f" {comment}" if comment else ""
        lines.append(f"-{oid}{suffix}\n".encode("utf-8"))
    for oid, refname in references:
        lines.append(f"{oid} {refname}\n".encode("utf-8"))
    lines.append(b"\n")
    return b"".join(lines)


def write_empty_bundle(
    path: Path | str,
    *,
    tip: str,
    tip_subject: str,
    refnames: list[str],
    pack: bytes,
    object_format: str = "sha1",
) -> Path:
    """Write a bundle that adds no commits on top of tip.

    git refuses to create such a bundle; this one names tip as both the
    prerequisite and every reference, with an object-less pack, so it still
    verifies and can be fetched.
    """
    header = render_header(
        prerequisites=[(tip, tip_subject.replace("\n", " "))],
        references=[(tip, name) for name in refnames],
        object_format=object_format,
    )
    return atomic_write(path, header + pack, mode="wb")
