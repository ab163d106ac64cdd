import secrets
import string

from typing import NamedTuple

USERNAME_PREFIX = 'user'
PASSWORD_LENGTH = 16
PASSWORD_ALPHABET = string.ascii_letters + string.digits


class Credentials(NamedTuple):
    username: str
    password: str

    def __repr__(self) -> str:
        return f'Credentials(username={self.username!r}, password=***)'


class CredentialGenerator:
    """Random proxy credentials: ``user`` plus four digits, and a 16 character password.

    Usernames are not checked for uniqueness.
    """

    def generate(self) -> Credentials:
        username = f'{USERNAME_PREFIX}{1000 + secrets.randbelow(9000)}'
        password = ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))
        return Credentials(username, password)
