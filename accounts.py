import logging
from pathlib import Path

import bcrypt
import yaml

logger = logging.getLogger(__name__)


class CredentialFileError(Exception): pass


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class CredentialStore:
    """Read-only `username: bcrypt-hash` mapping kept in a YAML file.

    The file is parsed again on every call so edits take effect without a
    restart.
    """

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> dict:
        if not self.path.is_file():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CredentialFileError(f"{self.path.name} must map usernames to password hashes")
        return {str(k): str(v) for k, v in data.items()}

    def verify(self, username: str, password: str) -> bool:
        stored = self.load().get(username)
        if stored is None:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            logger.warning("stored password hash for %r is not a valid bcrypt hash", username)
            return False


if __name__ == "__main__":
    import getpass
    import sys

    if len(sys.argv) != 2:
        sys.exit("usage: python accounts.py <username>")
    name = sys.argv[1]
    password = getpass.getpass(f"Password for {name}: ")
    if password != getpass.getpass("Repeat password: "):
        sys.exit("Passwords do not match.")
    print(yaml.safe_dump({name: hash_password(password)}, default_flow_style=False), end="")
