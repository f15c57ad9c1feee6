import json
import logging
import os
import uuid
from typing import Callable, Dict, Optional, Set

from . import crypto
from . import utils
from .crypto import KDF

logger = logging.getLogger(__name__)

PasswordSupplier = Callable[[], str]


class SecretStore:
    """Web3 secret storage: one encrypted v3 key file per key.

    New keys are written as <uuid>.json. Files under other names (geth's
    UTC--... files, say) are found through the "id" they carry.
    """

    def __init__(self, path: str):
        self.path = path
        self._cached: Dict[uuid.UUID, bytes] = {}

    def _index(self) -> Dict[uuid.UUID, str]:
        """Key id -> key file path for every readable key file in the store."""
        found: Dict[uuid.UUID, str] = {}
        if not os.path.isdir(self.path):
            return found
        for entry in sorted(os.listdir(self.path)):
            if not entry.endswith(".json"):
                continue
            full = os.path.join(self.path, entry)
            try:
                with open(full, encoding="utf-8") as f:
                    keyfile = json.load(f)
                u = uuid.UUID(keyfile["id"])
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable key file %s: %s", full, e)
                continue
            # <uuid>.json wins over another file claiming the same id
            if u not in found or entry == f"{u}.json":
                found[u] = full
        return found

    def _file_for(self, u: uuid.UUID) -> str:
        return self._index().get(u) or os.path.join(self.path, f"{u}.json")

    def _load(self, u: uuid.UUID) -> Optional[dict]:
        path = self._index().get(u)
        if path is None:
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _save(self, u: uuid.UUID, keyfile: dict):
        keyfile["id"] = str(u)
        utils.write_private(self._file_for(u), json.dumps(keyfile))

    def keys(self) -> Set[uuid.UUID]:
        return set(self._index())

    def __contains__(self, u: uuid.UUID) -> bool:
        return u in self._index()

    def import_secret(self, secret: bytes, password: str, kdf: KDF = KDF.SCRYPT,
                      kdf_params: Optional[dict] = None) -> uuid.UUID:
        u = uuid.uuid4()
        self._save(u, crypto.encrypt_secret(secret, password, kdf, kdf_params))
        self._cached[u] = secret
        logger.debug("Imported secret as %s (kdf=%s)", u, kdf.value)
        return u

    def import_key(self, path: str) -> Optional[uuid.UUID]:
        """Copy an existing v3 key file into the store. None if it isn't one.

        A key whose id is already stored is left as it is and its id returned.
        """
        try:
            with open(path, encoding="utf-8") as f:
                keyfile = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug("Not a key file %s: %s", path, e)
            return None
        if not isinstance(keyfile, dict) or keyfile.get("version") != 3 or "crypto" not in keyfile:
            logger.debug("Not a v3 key file: %s", path)
            return None
        u = utils.parse_uuid(str(keyfile.get("id", "")))
        if u is not None and u in self:
            if self._load(u).get("crypto") != keyfile["crypto"]:
                logger.warning("Key %s is already stored with different contents; keeping the stored one", u)
            return u
        u = u or uuid.uuid4()
        self._save(u, keyfile)
        logger.debug("Imported key file %s as %s", path, u)
        return u

    def secret(self, u: uuid.UUID, password_supplier: PasswordSupplier,
               use_cache: bool = True) -> Optional[bytes]:
        if use_cache and u in self._cached:
            return self._cached[u]
        keyfile = self._load(u)
        if keyfile is None:
            return None
        secret = crypto.decrypt_secret(keyfile, password_supplier())
        if secret is not None:
            self._cached[u] = secret
        return secret

    def recode(self, u: uuid.UUID, new_password: str, password_supplier: PasswordSupplier,
               kdf: KDF = KDF.SCRYPT, kdf_params: Optional[dict] = None) -> bool:
        secret = self.secret(u, password_supplier)
        if secret is None:
            return False
        self._save(u, crypto.encrypt_secret(secret, new_password, kdf, kdf_params))
        logger.debug("Re-encoded %s (kdf=%s)", u, kdf.value)
        return True

    def address(self, u: uuid.UUID) -> Optional[bytes]:
        keyfile = self._load(u)
        if not keyfile or "address" not in keyfile:
            return None
        return utils.parse_address(keyfile["address"])

    def export(self, u: uuid.UUID) -> Optional[dict]:
        return self._load(u)

    def kill(self, u: uuid.UUID) -> bool:
        self._cached.pop(u, None)
        path = self._index().get(u)
        if path is None:
            return False
        os.remove(path)
        logger.debug("Removed key %s", u)
        return True
