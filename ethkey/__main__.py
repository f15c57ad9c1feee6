import sys
from .cli import main as run

"""
ethkey: command-line manager for Ethereum account keys:
- Web3 secret-store ("bare") keys: one encrypted JSON key file per key
- a wallet of named accounts, sealed with a single master password
Usage examples:
    python -m ethkey --create-wallet
    python -m ethkey --new alice
    python -m ethkey --list
    python -m ethkey --new-bare --lock p@ssw0rd
    python -m ethkey --import-bare ./key.json 4c0883a6...
    python -m ethkey --recode-bare 3198bc9c-6672-5ab3-d995-4942343ae5b6 --kdf pbkdf2
"""

def main():
    try:
        run()
    except KeyboardInterrupt:
        print("\nAborted by user.")
        sys.exit(1)

if __name__ == "__main__":
    main()
