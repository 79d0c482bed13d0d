"""Persistence for precomputed threshold and correction tables.

Tables are stored under a content-addressed name derived from exactly the
parameters they depend on. The store itself is a small key -> bytes
capability so builders can be exercised against memory in tests and
against a directory in production.

Binary layout of one table::

    b"MINTHRS1"                 magic
    uint32 little-endian        length of the JSON header
    JSON header                 {"kind": ..., "key": {...}, "length": n}
    n x uint64 little-endian    table values
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import struct
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

import numpy as np

from minthresh.utils.exceptions import CacheCorruptionError

logger = logging.getLogger(__name__)

MAGIC = b"MINTHRS1"
_HEADER_SIZE = struct.Struct("<I")
_VALUE_DTYPE = np.dtype("<u8")
DIGEST_LENGTH = 16


class TableStore(Protocol):
    """Key -> bytes storage used by ``cached_table``."""

    def load(self, name: str) -> bytes | None:
        """Return the stored payload, or None if ``name`` is unknown."""
        ...

    def save(self, name: str, payload: bytes) -> None:
        """Persist ``payload`` under ``name``, replacing any previous value."""
        ...


class MemoryTableStore:
    """In-process store, mainly for tests."""

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}

    def load(self, name: str) -> bytes | None:
        return self.payloads.get(name)

    def save(self, name: str, payload: bytes) -> None:
        self.payloads[name] = payload


class FileTableStore:
    """One file per table inside ``directory``.

    Writes go to a temporary file in the same directory which is then moved
    over the target with ``os.replace``, so a concurrent reader sees either
    the previous file, no file, or the complete new file.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def load(self, name: str) -> bytes | None:
        """Read a stored table; None if it was never written.

        Raises:
            CacheCorruptionError: If the file exists but cannot be read.
        """
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruptionError(f"Cannot read cached table {path}: {e}") from e

    def save(self, name: str, payload: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path_for(name))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _stable_payload(payload: dict) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def table_name(kind: str, key: dict) -> str:
    """File name for a table, e.g. ``threshold_3fa4c1d29b0e7a55.bin``."""
    digest = hashlib.sha256()
    digest.update(kind.encode("utf-8"))
    digest.update(_stable_payload(key).encode("utf-8"))
    return f"{kind}_{digest.hexdigest()[:DIGEST_LENGTH]}.bin"


def encode_table(kind: str, key: dict, table: Sequence[int]) -> bytes:
    header = _stable_payload({"kind": kind, "key": key, "length": len(table)}).encode("utf-8")
    values = np.asarray(table, dtype=_VALUE_DTYPE)
    return MAGIC + _HEADER_SIZE.pack(len(header)) + header + values.tobytes()


def decode_table(payload: bytes, kind: str, key: dict, expected_length: int) -> tuple[int, ...]:
    """Parse a stored table and check it belongs to ``kind``/``key``.

    Raises:
        CacheCorruptionError: On a bad magic, an unreadable header, a key or
            length mismatch, or a truncated body.
    """
    prefix = len(MAGIC) + _HEADER_SIZE.size
    if len(payload) < prefix or not payload.startswith(MAGIC):
        raise CacheCorruptionError(f"Cached {kind} table has no valid header")

    (header_size,) = _HEADER_SIZE.unpack_from(payload, len(MAGIC))
    try:
        header = json.loads(payload[prefix : prefix + header_size].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CacheCorruptionError(f"Cached {kind} table header is unreadable: {e}") from e
    if not isinstance(header, dict):
        raise CacheCorruptionError(
            f"Cached {kind} table header must be a JSON object, got {type(header).__name__}"
        )

    if header.get("kind") != kind or header.get("key") != key:
        raise CacheCorruptionError(
            f"Cached {kind} table was built for {header.get('kind')} {header.get('key')}, "
            f"expected {key}"
        )
    if header.get("length") != expected_length:
        raise CacheCorruptionError(
            f"Cached {kind} table has length {header.get('length')}, "
            f"expected {expected_length}"
        )

    body = payload[prefix + header_size :]
    if len(body) != expected_length * _VALUE_DTYPE.itemsize:
        raise CacheCorruptionError(
            f"Cached {kind} table body holds {len(body)} bytes, "
            f"expected {expected_length * _VALUE_DTYPE.itemsize}"
        )
    return tuple(int(v) for v in np.frombuffer(body, dtype=_VALUE_DTYPE))


def cached_table(
    kind: str,
    key: dict,
    expected_length: int,
    build: Callable[[], tuple[int, ...]],
    store: TableStore | None,
) -> tuple[int, ...]:
    """Load a table from ``store`` or build and persist it.

    Without a store the table is simply built. A failed write is logged as a
    warning and the freshly built table is still returned.

    Raises:
        CacheCorruptionError: If a stored table does not match ``key`` or
            ``expected_length``.
    """
    if store is None:
        return build()

    name = table_name(kind, key)
    payload = store.load(name)
    if payload is not None:
        table = decode_table(payload, kind, key, expected_length)
        logger.info("Loaded %s table from cache (%s)", kind, name)
        return table

    table = build()
    try:
        store.save(name, encode_table(kind, key, table))
        logger.info("Cached %s table as %s", kind, name)
    except OSError as e:
        logger.warning("Could not cache %s table %s: %s", kind, name, e)
    return table
