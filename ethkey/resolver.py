"""Turns the command-line token stream into one immutable Session.

Tokens are fed one at a time together with the number of tokens left after
them. Flags taking arguments only commit when all their arguments are
available; until those arguments have arrived the resolver sits in an
"awaiting argument" state and swallows the following tokens.
"""
import enum
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from . import utils
from .crypto import KDF


class OperationMode(enum.IntEnum):
    NONE = 0
    LIST_BARE = 1
    NEW_BARE = 2
    IMPORT_BARE = 3
    EXPORT_BARE = 4
    RECODE_BARE = 5
    CREATE_WALLET = 6
    LIST = 7
    NEW = 8
    IMPORT = 9
    EXPORT = 10
    RECODE = 11
    KILL = 12

    @property
    def is_wallet(self) -> bool:
        return self >= FIRST_WALLET_MODE


FIRST_WALLET_MODE = OperationMode.CREATE_WALLET

# modes in which stray tokens are taken as inputs
INPUT_MODES = frozenset({
    OperationMode.IMPORT_BARE,
    OperationMode.EXPORT_BARE,
    OperationMode.RECODE_BARE,
    OperationMode.EXPORT,
    OperationMode.RECODE,
})

MODE_FLAGS = {
    "--new-bare": OperationMode.NEW_BARE,
    "--import-bare": OperationMode.IMPORT_BARE,
    "--list-bare": OperationMode.LIST_BARE,
    "--export-bare": OperationMode.EXPORT_BARE,
    "--recode-bare": OperationMode.RECODE_BARE,
    "--create-wallet": OperationMode.CREATE_WALLET,
    "-l": OperationMode.LIST,
    "--list": OperationMode.LIST,
    "-e": OperationMode.EXPORT,
    "--export": OperationMode.EXPORT,
    "-r": OperationMode.RECODE,
    "--recode": OperationMode.RECODE,
}

# flag -> number of arguments it needs
VALUE_FLAGS = {
    "--wallet-path": 1,
    "--secrets-path": 1,
    "-m": 1,
    "--master": 1,
    "--unlock": 1,
    "--lock": 1,
    "--kdf": 1,
    "--kdf-param": 2,
    "-i": 2,
    "--import": 2,
    "--kill": 1,
}

NEW_FLAGS = ("-n", "--new")


def kdf_from_name(name: str) -> KDF:
    return KDF.PBKDF2_SHA256 if name == "pbkdf2" else KDF.SCRYPT


@dataclass(frozen=True)
class Session:
    mode: OperationMode = OperationMode.NONE
    wallet_path: str = field(default_factory=utils.resolve_wallet_path)
    secrets_path: str = field(default_factory=utils.resolve_secrets_path)
    master_password: str = ""
    unlocks: Tuple[str, ...] = ()
    lock: str = ""
    icap: bool = True
    name: str = ""
    inputs: Tuple[str, ...] = ()
    kdf: str = "scrypt"
    kdf_params: Dict[str, str] = field(default_factory=dict)

    @property
    def kdf_type(self) -> KDF:
        return kdf_from_name(self.kdf)


class Outcome(enum.Enum):
    FLAG = "flag"
    INPUT = "input"
    UNRECOGNIZED = "unrecognized"


class Resolver:
    def __init__(self, session: Optional[Session] = None):
        self._session = session or Session()
        self._pending: Optional[str] = None
        self._args: List[str] = []

    @property
    def awaiting(self) -> Optional[str]:
        """Flag whose arguments are still being collected, if any."""
        return self._pending

    def result(self) -> Session:
        return self._session

    def _update(self, **changes):
        self._session = replace(self._session, **changes)

    def interpret(self, token: str, remaining: int) -> Outcome:
        if self._pending in NEW_FLAGS:
            # optional name after -n/--new
            self._pending = None
            if not token.startswith("-"):
                self._update(mode=OperationMode.NEW, name=token)
                return Outcome.FLAG
        elif self._pending is not None:
            self._args.append(token)
            if len(self._args) == VALUE_FLAGS[self._pending]:
                self._apply(self._pending, self._args)
                self._pending, self._args = None, []
            return Outcome.FLAG

        if token in NEW_FLAGS:
            self._update(mode=OperationMode.NEW_BARE)
            if remaining >= 1:
                self._pending = token
            return Outcome.FLAG
        if token in MODE_FLAGS:
            self._update(mode=MODE_FLAGS[token])
            return Outcome.FLAG
        if token == "--no-icap":
            self._update(icap=False)
            return Outcome.FLAG
        if token in VALUE_FLAGS and remaining >= VALUE_FLAGS[token]:
            self._pending = token
            return Outcome.FLAG
        if self._session.mode in INPUT_MODES:
            self._update(inputs=self._session.inputs + (token,))
            return Outcome.INPUT
        return Outcome.UNRECOGNIZED

    def _apply(self, flag: str, args: List[str]):
        s = self._session
        if flag == "--wallet-path":
            self._update(wallet_path=args[0])
        elif flag == "--secrets-path":
            self._update(secrets_path=args[0])
        elif flag in ("-m", "--master"):
            self._update(master_password=args[0])
        elif flag == "--unlock":
            self._update(unlocks=s.unlocks + (args[0],))
        elif flag == "--lock":
            self._update(lock=args[0])
        elif flag == "--kdf":
            self._update(kdf=args[0])
        elif flag == "--kdf-param":
            self._update(kdf_params={**s.kdf_params, args[0]: args[1]})
        elif flag in ("-i", "--import"):
            self._update(mode=OperationMode.IMPORT, inputs=(args[0],), name=args[1])
        elif flag == "--kill":
            inputs = s.inputs if s.mode == OperationMode.KILL else ()
            self._update(mode=OperationMode.KILL, inputs=inputs + (args[0],))


def resolve(tokens: List[str]) -> Tuple[Session, List[str]]:
    """Fold ``tokens`` into a Session. Returns it with the unrecognized tokens."""
    resolver = Resolver()
    unrecognized = []
    for i, token in enumerate(tokens):
        if resolver.interpret(token, len(tokens) - i - 1) is Outcome.UNRECOGNIZED:
            unrecognized.append(token)
    return resolver.result(), unrecognized
