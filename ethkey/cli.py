import sys
from typing import List, Optional

from . import utils
from .executor import Executor
from .resolver import OperationMode, Outcome, Resolver

VERSION = "0.1.0"

HELP = f"""Usage: ethkey [OPTIONS]
Secret-store ("bare") operation modes:
    --list-bare  List all secrets available in secret-store.
    --new-bare  Generate a key without interacting with the wallet and store it.
    --import-bare [ <file>|<secret-hex> , ... ]  Import keys from given sources.
    --recode-bare [ <uuid> , ... ]  Decrypt and re-encrypt given keys.
Secret-store configuration:
    --secrets-path <path>  Specify Web3 secret-store path (default: {utils.DEFAULT_SECRETS_PATH})

Wallet operating modes:
    -l,--list  List all keys available in wallet.
    -n,--new <name>  Create a new key with given name and add it in the wallet.
    -i,--import [<uuid>|<file>|<secret-hex>] <name>  Import a key from given source and place it in the wallet.
    -e,--export [ <address>|<uuid> , ... ]  Export given keys.
    -r,--recode [ <address>|<uuid> , ... ]  Decrypt and re-encrypt given keys.
    --kill <address>|<uuid>  Remove a key from the wallet and the secret-store (asks first).
Wallet configuration:
    --create-wallet  Create an Ethereum master wallet.
    --wallet-path <path>  Specify Ethereum wallet path (default: {utils.DEFAULT_WALLET_PATH})
    -m, --master <password>  Specify wallet (master) password.

Encryption configuration:
    --kdf <kdfname>  Specify KDF to use when encrypting (default: scrypt)
    --kdf-param <name> <value>  Specify a parameter for the KDF.
    --lock <password>  Specify password for when encrypting a (the) key.

Decryption configuration:
    --unlock <password>  Specify password for a (the) key.
Key generation configuration:
    --no-icap  Don't bother to make a direct-ICAP capable key.

General options:
    -h,--help  Show this help message and exit.
    -V,--version  Show the version and exit.
"""


def main(argv: Optional[List[str]] = None):
    args = sys.argv[1:] if argv is None else list(argv)
    resolver = Resolver()
    for i, arg in enumerate(args):
        if resolver.interpret(arg, len(args) - i - 1) is not Outcome.UNRECOGNIZED:
            continue
        if arg in ("-h", "--help"):
            print(HELP, end="")
            return
        if arg in ("-V", "--version"):
            print(f"ethkey {VERSION}")
            return
        raise SystemExit(f"Invalid argument: {arg}")

    session = resolver.result()
    if session.mode == OperationMode.NONE:
        print(HELP, end="")
        return
    utils.configure_logging()
    Executor(session).execute()
