import hmac
from abc import ABC, abstractmethod
from passlib.context import CryptContext

from ..db.store import ConfigurationMissingError


class CredentialVerifier(ABC):
    """Turns a security key into its stored form and checks a candidate against it."""

    @abstractmethod
    def hash_key(self, security_key: str) -> str:
        ...

    @abstractmethod
    def verify(self, security_key: str, stored_key: str) -> bool:
        ...


class PlaintextVerifier(CredentialVerifier):
    """
    Stores keys as typed and compares them for equality.
    This is how the portal has always worked; keys are not protected at rest.
    """

    def hash_key(self, security_key: str) -> str:
        return security_key

    def verify(self, security_key: str, stored_key: str) -> bool:
        return hmac.compare_digest(security_key.encode(), stored_key.encode())


class PasslibVerifier(CredentialVerifier):
    """Salted hashes through passlib; login(course_code, key) is unchanged for callers."""

    def __init__(self, scheme: str = "pbkdf2_sha256"):
        self._context = CryptContext(schemes=[scheme], deprecated="auto")

    def hash_key(self, security_key: str) -> str:
        return self._context.hash(security_key)

    def verify(self, security_key: str, stored_key: str) -> bool:
        try:
            return self._context.verify(security_key, stored_key)
        except ValueError:
            # Stored value is not a hash of this scheme (e.g. a legacy plaintext key).
            return False


def get_verifier(scheme: str) -> CredentialVerifier:
    if scheme == "plaintext":
        return PlaintextVerifier()
    if scheme == "pbkdf2_sha256":
        return PasslibVerifier(scheme)
    raise ConfigurationMissingError(f"CREDENTIAL_SCHEME '{scheme}' is not supported.")
