import json
import logging
import os
from uuid import UUID
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from . import crypto
from . import utils
from .crypto import KDF
from .store import PasswordSupplier, SecretStore

logger = logging.getLogger(__name__)


@dataclass
class WalletAccount:
    uuid: UUID
    name: str
    password_hash: Optional[str] = None


class Wallet:
    """Named accounts over a SecretStore, sealed with one master password.

    Nothing is readable until ``create`` or ``load`` succeeded; every change
    is written back immediately.
    """

    def __init__(self, wallet_path: str, secrets_path: str,
                 kdf_iters: int = crypto.DEFAULT_KDF_ITERS):
        self.path = wallet_path
        self.store = SecretStore(secrets_path)
        self.kdf_iters = kdf_iters
        self._master: Optional[str] = None
        self._accounts: Dict[bytes, WalletAccount] = {}
        self._hints: Dict[str, str] = {}

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def create(self, password: str):
        self._master = password
        self._accounts = {}
        self._hints = {}
        self.save()
        logger.debug("Created wallet at %s", self.path)

    def load(self, password: str) -> bool:
        try:
            with open(self.path, encoding="utf-8") as f:
                envelope = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Couldn't read wallet %s: %s", self.path, e)
            return False
        try:
            payload = crypto.unseal(envelope, password)
        except crypto.MalformedEnvelope as e:
            logger.warning("Couldn't read wallet %s: %s", self.path, e)
            return False
        if payload is None:
            return False
        try:
            data = json.loads(payload)
            accounts = {
                bytes.fromhex(address): WalletAccount(UUID(info["uuid"]), info["name"],
                                                      info.get("password_hash"))
                for address, info in data.get("accounts", {}).items()
            }
            hints = dict(data.get("hints", {}))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Wallet %s has a malformed payload: %r", self.path, e)
            return False
        self._accounts = accounts
        self._hints = hints
        self._master = password
        return True

    def save(self):
        if self._master is None:
            raise RuntimeError("Wallet is locked. Create or load it first.")
        data = {
            "accounts": {
                address.hex(): {"uuid": str(a.uuid), "name": a.name, "password_hash": a.password_hash}
                for address, a in self._accounts.items()
            },
            "hints": self._hints,
        }
        envelope = crypto.seal(json.dumps(data).encode("utf-8"), self._master, self.kdf_iters)
        utils.write_private(self.path, json.dumps(envelope))

    def account_details(self) -> Dict[bytes, Tuple[str, str]]:
        return {address: (a.name, self._hints.get(a.password_hash or "", ""))
                for address, a in self._accounts.items()}

    def have_hint(self, password: str) -> bool:
        return crypto.password_hash(password) in self._hints

    def uuid(self, address: bytes) -> Optional[UUID]:
        account = self._accounts.get(address)
        return account.uuid if account else None

    def address(self, u: UUID) -> Optional[bytes]:
        for address, account in self._accounts.items():
            if account.uuid == u:
                return address
        return None

    def _remember(self, address: bytes, u: UUID, name: str,
                  password: Optional[str], hint: str):
        phash = crypto.password_hash(password) if password is not None else None
        if phash and hint:
            self._hints[phash] = hint
        self._accounts[address] = WalletAccount(u, name, phash)
        self.save()

    def import_secret(self, secret: bytes, name: str, password: str, hint: str = "",
                      kdf: KDF = KDF.SCRYPT, kdf_params: Optional[dict] = None) -> bytes:
        address = crypto.to_address(secret)
        u = self.store.import_secret(secret, password, kdf, kdf_params)
        self._remember(address, u, name, password, hint)
        logger.debug("Registered %s as %r", address.hex(), name)
        return address

    def import_existing(self, u: UUID, address: bytes, name: str,
                        password: Optional[str] = None, hint: str = ""):
        self._remember(address, u, name, password, hint)
        logger.debug("Registered existing key %s as %r", u, name)

    def recode(self, address: bytes, new_password: str, password_supplier: PasswordSupplier,
               kdf: KDF = KDF.SCRYPT, kdf_params: Optional[dict] = None, hint: str = "") -> bool:
        account = self._accounts.get(address)
        if account is None:
            return False
        if not self.store.recode(account.uuid, new_password, password_supplier, kdf, kdf_params):
            return False
        self._remember(address, account.uuid, account.name, new_password, hint)
        return True

    def kill(self, address: bytes) -> bool:
        account = self._accounts.pop(address, None)
        if account is None:
            return False
        self.store.kill(account.uuid)
        self.save()
        logger.debug("Killed %s (%s)", address.hex(), account.uuid)
        return True
