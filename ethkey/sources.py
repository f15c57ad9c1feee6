"""Classification of key sources given on the command line.

A token can be a hex secret, a file holding a hex secret, a key file, or the
uuid of a key already in the store. It is resolved once, in that order.
"""
import os
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from . import utils
from .store import SecretStore


@dataclass(frozen=True)
class RawSecret:
    token: str
    secret: bytes
    from_file: bool = False


@dataclass(frozen=True)
class KeyFile:
    token: str
    path: str


@dataclass(frozen=True)
class StoredKey:
    token: str
    uuid: uuid.UUID


@dataclass(frozen=True)
class Unresolved:
    token: str


Source = Union[RawSecret, KeyFile, StoredKey, Unresolved]


def _read_hex_file(path: str) -> bytes:
    try:
        with open(path, encoding="utf-8") as f:
            return utils.from_hex(f.read())
    except (OSError, UnicodeDecodeError):
        return b""


def classify(token: str, store: Optional[SecretStore] = None) -> Source:
    """Resolve ``token``. Stored uuids are only considered when ``store`` is given."""
    secret = utils.from_hex(token)
    if len(secret) == 32:
        return RawSecret(token, secret)
    if os.path.isfile(token):
        secret = _read_hex_file(token)
        if len(secret) == 32:
            return RawSecret(token, secret, from_file=True)
        return KeyFile(token, token)
    if store is not None:
        u = utils.parse_uuid(token)
        if u is not None and u in store:
            return StoredKey(token, u)
    return Unresolved(token)
