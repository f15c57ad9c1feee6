import re
from getpass import getpass
from typing import Callable, Optional, Tuple

from . import utils

CONFIRM_PROMPT = "Please confirm the password by entering it again: "
HINT_PROMPT = "Enter a hint to help you remember this password: "


class Prompter:
    """Where passwords and free-text answers come from.

    Defaults to the terminal; tests hand in scripted callables.
    """

    def __init__(self, get_password: Optional[Callable[[str], str]] = None,
                 read_line: Optional[Callable[[str], str]] = None):
        self._get_password = get_password or getpass
        self._read_line = read_line or input

    def password(self, prompt: str) -> str:
        return self._get_password(prompt)

    def line(self, prompt: str) -> str:
        return self._read_line(prompt)


def create_password(prompter: Prompter, prompt: str) -> str:
    while True:
        pw1 = prompter.password(prompt)
        pw2 = prompter.password(CONFIRM_PROMPT)
        if pw1 == pw2:
            return pw1
        print("Passwords were different. Try again.")


def create_password_with_hint(prompter: Prompter, wallet, prompt: str) -> Tuple[str, str]:
    """Confirm-twice creation, plus a hint when the wallet has none for it."""
    pw = create_password(prompter, prompt)
    hint = ""
    if pw and not wallet.have_hint(pw):
        hint = prompter.line(HINT_PROMPT).strip()
    return pw, hint


def account_password(prompter: Prompter, wallet, address: bytes) -> str:
    name, hint = wallet.account_details().get(address, ("", ""))
    return prompter.password(
        f"Enter password for address {name} ({utils.abridged(address)}; hint:{hint}): ")


def strength_label(pw: str) -> Tuple[int, str]:
    score = 0
    if len(pw) >= 12: score += 1
    if len(pw) >= 16: score += 1
    if re.search(r"[A-Z]", pw): score += 1
    if re.search(r"[a-z]", pw): score += 1
    if re.search(r"\d", pw): score += 1
    if re.search(r"[!@#$%^&*()\-\_=+\[\]{};:,.?/\\|]", pw): score += 1
    if re.search(r"(.)\1{2,}", pw): score -= 1

    if score <= 2: return score, "weak"
    elif score <= 4: return score, "medium"
    else: return score, "strong"
