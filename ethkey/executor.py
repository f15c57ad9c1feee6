import json
import logging
import sys
import uuid
from typing import Optional, Tuple

from . import crypto
from . import icap
from . import password as pw
from . import utils
from .resolver import OperationMode, Session
from .sources import KeyFile, RawSecret, StoredKey, classify
from .store import SecretStore
from .wallet import Wallet

logger = logging.getLogger(__name__)

DEFAULT_UNLOCK_ATTEMPTS = 10

EMPTY_PASSWORD = "Aborted (empty password not allowed)."


class Executor:
    """Runs the single operation a resolved Session asks for.

    Results go to stdout, per-item failures to stderr. Only a missing wallet
    (or a wallet that won't unlock) ends the process.
    """

    def __init__(self, session: Session, prompter: Optional[pw.Prompter] = None,
                 max_unlock_attempts: int = DEFAULT_UNLOCK_ATTEMPTS,
                 icap_rounds: int = crypto.DEFAULT_ICAP_ROUNDS,
                 wallet_kdf_iters: int = crypto.DEFAULT_KDF_ITERS):
        self.session = session
        self.prompter = prompter or pw.Prompter()
        self.max_unlock_attempts = max_unlock_attempts
        self.icap_rounds = icap_rounds
        self.wallet_kdf_iters = wallet_kdf_iters
        self._master = session.master_password
        self._lock = session.lock

    def execute(self):
        mode = self.session.mode
        logger.debug("Executing %s", mode.name)
        if mode == OperationMode.CREATE_WALLET:
            self.create_wallet()
        elif not mode.is_wallet:
            store = SecretStore(self.session.secrets_path)
            handler = {
                OperationMode.LIST_BARE: self.list_bare,
                OperationMode.NEW_BARE: self.new_bare,
                OperationMode.IMPORT_BARE: self.import_bare,
                OperationMode.EXPORT_BARE: self.export_bare,
                OperationMode.RECODE_BARE: self.recode_bare,
            }.get(mode)
            if handler:
                handler(store)
        else:
            wallet = self.open_wallet()
            {
                OperationMode.LIST: self.list,
                OperationMode.NEW: self.new,
                OperationMode.IMPORT: self.import_,
                OperationMode.EXPORT: self.export,
                OperationMode.RECODE: self.recode,
                OperationMode.KILL: self.kill,
            }[mode](wallet)

    # --- passwords ---

    def _wallet(self) -> Wallet:
        return Wallet(self.session.wallet_path, self.session.secrets_path, self.wallet_kdf_iters)

    def _report_strength(self, password: str):
        score, label = pw.strength_label(password)
        print(f"Entered password strength: {label} (score {score})")

    def lock_password(self, account_name: str) -> str:
        if self._lock:
            return self._lock
        password = pw.create_password(
            self.prompter, f"Enter a password with which to secure account {account_name}: ")
        if password:
            self._report_strength(password)
        return password

    def lock_password_with_hint(self, wallet: Wallet, account_name: str) -> Tuple[str, str]:
        if self._lock:
            return self._lock, ""
        password, hint = pw.create_password_with_hint(
            self.prompter, wallet, f"Enter a password with which to secure account {account_name}: ")
        if password:
            self._report_strength(password)
        return password, hint

    def _try_unlocks(self, store: SecretStore, u: uuid.UUID):
        """Warm the store's cache with the first --unlock password that fits."""
        for candidate in self.session.unlocks:
            if store.secret(u, lambda: candidate) is not None:
                logger.debug("Unlocked %s with a supplied --unlock password", u)
                return

    def _key_password(self, u: uuid.UUID) -> str:
        return self.prompter.password(f"Enter password for key {u}: ")

    # --- wallet creation ---

    def create_wallet(self):
        wallet = self._wallet()
        if wallet.exists():
            print(f"Wallet already exists at: {wallet.path}", file=sys.stderr)
            return
        if not self._master:
            self._master = pw.create_password(
                self.prompter,
                "Please enter a MASTER password to protect your key store (make it strong!): ")
        if not self._master:
            print(EMPTY_PASSWORD, file=sys.stderr)
            return
        wallet.create(self._master)
        print(f"Wallet created at: {wallet.path}")

    # --- bare modes ---

    def list_bare(self, store: SecretStore):
        for u in sorted(store.keys()):
            print(u)

    def new_bare(self, store: SecretStore):
        if not self._lock:
            self._lock = pw.create_password(
                self.prompter, "Enter a password with which to secure this account: ")
            if self._lock:
                self._report_strength(self._lock)
        if not self._lock:
            print(EMPTY_PASSWORD, file=sys.stderr)
            return
        secret, address = crypto.make_key(self.session.icap, self.icap_rounds)
        u = store.import_secret(secret, self._lock, self.session.kdf_type, self.session.kdf_params)
        print(f"Created key {u}")
        print(f"Address: {address.hex()}")
        if icap.is_icap_capable(address):
            print(f"ICAP: {icap.encode(address)}")

    def import_bare(self, store: SecretStore):
        for token in self.session.inputs:
            source = classify(token)
            u = None
            if isinstance(source, RawSecret) and crypto.is_valid_secret(source.secret):
                address = crypto.to_address(source.secret)
                password = self.lock_password(utils.abridged(address))
                if not password:
                    print(EMPTY_PASSWORD, file=sys.stderr)
                    continue
                u = store.import_secret(source.secret, password,
                                        self.session.kdf_type, self.session.kdf_params)
            elif isinstance(source, KeyFile):
                known = store.keys()
                u = store.import_key(source.path)
                if u is not None and u in known:
                    print(f"{token} is already in the store as {u}")
                    continue
            if u is None:
                print(f"Cannot import {token}: not a file or secret.", file=sys.stderr)
                continue
            print(f"Successfully imported {token} as {u}")

    def export_bare(self, store: SecretStore):
        pass

    def recode_bare(self, store: SecretStore):
        known = store.keys()
        for token in self.session.inputs:
            u = utils.parse_uuid(token)
            if u is None or u not in known:
                print(f"Couldn't re-encode {token}; not found.", file=sys.stderr)
                continue
            self._try_unlocks(store, u)
            password = self.lock_password(str(u))
            if not password:
                print(EMPTY_PASSWORD, file=sys.stderr)
                continue
            if store.recode(u, password, lambda: self._key_password(u),
                            self.session.kdf_type, self.session.kdf_params):
                print(f"Re-encoded {u}")
            else:
                print(f"Couldn't re-encode {u}; key corrupt or incorrect password supplied.",
                      file=sys.stderr)

    # --- wallet modes ---

    def open_wallet(self) -> Wallet:
        wallet = self._wallet()
        if not wallet.exists():
            raise SystemExit("Couldn't open wallet. Does it exist?")
        password = self._master
        for attempt in range(1, self.max_unlock_attempts + 1):
            if not password:
                password = self.prompter.password("Please enter your MASTER password: ")
            if wallet.load(password):
                self._master = password
                return wallet
            logger.debug("Master password attempt %d failed", attempt)
            if attempt < self.max_unlock_attempts:
                print("Password invalid. Try again.")
            password = ""
        raise SystemExit(f"Couldn't unlock wallet after {self.max_unlock_attempts} attempts.")

    def _account(self, wallet: Wallet, token: str) -> Optional[bytes]:
        """Wallet address named by an address, ICAP or uuid token."""
        address = utils.parse_address(token)
        if address is None:
            try:
                address = icap.decode(token)
            except icap.InvalidICAP:
                u = utils.parse_uuid(token)
                address = wallet.address(u) if u else None
        if address is None or wallet.uuid(address) is None:
            return None
        return address

    def list(self, wallet: Wallet):
        details = wallet.account_details()
        if not details:
            print("No keys found in wallet."); return
        w = max(4, max(len(name) for name, _ in details.values()))
        print(f"{'UUID'.ljust(36)}  {'ADDRESS'.ljust(40)}  {'ICAP'.ljust(34)}  {'NAME'.ljust(w)}  HINT")
        print("-" * (36 + 40 + 34 + w + 8 + 4))
        for address in sorted(details):
            name, hint = details[address]
            code = icap.encode(address) if icap.is_icap_capable(address) else ""
            print(f"{str(wallet.uuid(address)).ljust(36)}  {address.hex()}  {code.ljust(34)}  {name.ljust(w)}  {hint}")

    def new(self, wallet: Wallet):
        name = self.session.name
        password, hint = self.lock_password_with_hint(wallet, name)
        if not password:
            print(EMPTY_PASSWORD, file=sys.stderr)
            return
        secret, address = crypto.make_key(self.session.icap, self.icap_rounds)
        wallet.import_secret(secret, name, password, hint,
                             self.session.kdf_type, self.session.kdf_params)
        print(f"Created key {wallet.uuid(address)}")
        print(f"  Name: {name}")
        print(f"  Address: {address.hex()}")
        if icap.is_icap_capable(address):
            print(f"  ICAP: {icap.encode(address)}")

    def import_(self, wallet: Wallet):
        token, name = self.session.inputs[0], self.session.name
        store = wallet.store
        source = classify(token, store)
        if isinstance(source, RawSecret) and crypto.is_valid_secret(source.secret):
            address = crypto.to_address(source.secret)
            if wallet.uuid(address) is not None:
                print(f"Couldn't import {token}; key already in wallet.", file=sys.stderr)
                return
            password, hint = self.lock_password_with_hint(wallet, name)
            if not password:
                print(EMPTY_PASSWORD, file=sys.stderr)
                return
            wallet.import_secret(source.secret, name, password, hint,
                                 self.session.kdf_type, self.session.kdf_params)
        elif isinstance(source, (KeyFile, StoredKey)):
            copied = False
            if isinstance(source, KeyFile):
                known = store.keys()
                u = store.import_key(source.path)
                copied = u is not None and u not in known
            else:
                u = source.uuid
            if u is None:
                print(f"Cannot import {token}: not a file, secret or known key.", file=sys.stderr)
                return
            address = self._stored_address(store, u)
            if address is None:
                print(f"Couldn't import {token}; key corrupt or incorrect password supplied.",
                      file=sys.stderr)
            elif wallet.uuid(address) is not None:
                print(f"Couldn't import {token}; key already in wallet.", file=sys.stderr)
                address = None
            if address is None:
                if copied:
                    # leave no unregistered copy behind
                    store.kill(u)
                return
            wallet.import_existing(u, address, name)
        else:
            print(f"Cannot import {token}: not a file, secret or known key.", file=sys.stderr)
            return
        print(f"Successfully imported {token} as {name} ({address.hex()})")

    def _stored_address(self, store: SecretStore, u: uuid.UUID) -> Optional[bytes]:
        address = store.address(u)
        if address is not None:
            return address
        self._try_unlocks(store, u)
        secret = store.secret(u, lambda: self._key_password(u))
        return crypto.to_address(secret) if secret is not None else None

    def export(self, wallet: Wallet):
        for token in self.session.inputs:
            address = self._account(wallet, token)
            keyfile = wallet.store.export(wallet.uuid(address)) if address else None
            if keyfile is None:
                print(f"Couldn't export {token}; not found.", file=sys.stderr)
                continue
            print(json.dumps(keyfile, indent=2))

    def recode(self, wallet: Wallet):
        for token in self.session.inputs:
            address = self._account(wallet, token)
            if address is None:
                print(f"Couldn't re-encode {token}; not found.", file=sys.stderr)
                continue
            name, _ = wallet.account_details()[address]
            self._try_unlocks(wallet.store, wallet.uuid(address))
            password, hint = self.lock_password_with_hint(wallet, name)
            if not password:
                print(EMPTY_PASSWORD, file=sys.stderr)
                continue
            if wallet.recode(address, password,
                             lambda: pw.account_password(self.prompter, wallet, address),
                             self.session.kdf_type, self.session.kdf_params, hint):
                print(f"Re-encoded {name} ({address.hex()})")
            else:
                print(f"Couldn't re-encode {name}; key corrupt or incorrect password supplied.",
                      file=sys.stderr)

    def kill(self, wallet: Wallet):
        for token in self.session.inputs:
            address = self._account(wallet, token)
            if address is None:
                print(f"Couldn't kill {token}; not found.", file=sys.stderr)
                continue
            name, _ = wallet.account_details()[address]
            answer = self.prompter.line(f"Kill {name} ({address.hex()})? This cannot be undone. (y/N): ")
            if answer.strip().lower() != "y":
                print("Aborted.")
                continue
            wallet.kill(address)
            print(f"Killed {name} ({address.hex()})")
