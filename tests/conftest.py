"""Shared fixtures: scripted terminal, temporary stores, fast KDF settings."""

from __future__ import annotations

import logging

import pytest

from ethkey.executor import Executor
from ethkey.password import Prompter
from ethkey.resolver import OperationMode, Session
from ethkey.wallet import Wallet

# PBKDF2 with a tiny work factor keeps key files cheap to write in tests
FAST_KDF = {"kdf": "pbkdf2", "kdf_params": {"c": "2"}}
FAST_WALLET_ITERS = 1

SECRET_HEX = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SECRET_ADDRESS = "2c7536e3605d9c16a7a3d7b1898e529396a65c23"


class ScriptedPrompter(Prompter):
    """Prompter answering from canned lists and remembering what it was asked."""

    def __init__(self, passwords=(), lines=()):
        self.passwords = list(passwords)
        self.lines = list(lines)
        self.prompts: list[str] = []
        super().__init__(self._next_password, self._next_line)

    def _next_password(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.passwords.pop(0)

    def _next_line(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.lines.pop(0)


@pytest.fixture
def secrets_path(tmp_path):
    return str(tmp_path / "keys")


@pytest.fixture
def wallet_path(tmp_path):
    return str(tmp_path / "keys.info")


@pytest.fixture
def make_session(secrets_path, wallet_path):
    """Build a Session pointing at the temporary store and wallet."""

    def _make(mode: OperationMode, **overrides) -> Session:
        fields = dict(FAST_KDF, mode=mode, secrets_path=secrets_path, wallet_path=wallet_path, icap=False)
        fields.update(overrides)
        return Session(**fields)

    return _make


@pytest.fixture
def run(make_session):
    """Execute one operation with a scripted prompter; returns the prompter."""

    def _run(mode: OperationMode, passwords=(), lines=(), **overrides) -> ScriptedPrompter:
        prompter = ScriptedPrompter(passwords, lines)
        Executor(make_session(mode, **overrides), prompter,
                 wallet_kdf_iters=FAST_WALLET_ITERS).execute()
        return prompter

    return _run


@pytest.fixture
def wallet(wallet_path, secrets_path) -> Wallet:
    """A freshly created wallet unlocked with master password 'master'."""
    w = Wallet(wallet_path, secrets_path, kdf_iters=FAST_WALLET_ITERS)
    w.create("master")
    return w


@pytest.fixture(autouse=True)
def _reset_logging():
    """cli.main installs a stderr handler; don't let it outlive the test."""
    yield
    logger = logging.getLogger("ethkey")
    logger.handlers[:] = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
