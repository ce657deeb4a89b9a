"""Public key parsing and challenge signature verification.

Supported key types and what the algorithm name controls:

    RSA:        PKCS#1 v1.5 padding with the named digest.
    EC (ECDSA): DER-encoded signature over the named digest.
    Ed25519:    Pure EdDSA; the digest name is ignored.

Signatures travel base64 encoded; the signed message is the challenge
string encoded as UTF-8.
"""

from __future__ import annotations

import base64
import hashlib
import binascii

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa, ed448, padding, ed25519

from ..errors import InvalidPublicKeyError
from ..config.auth import SUPPORTED_SIGNATURE_ALGORITHMS

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}

PublicKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey | ed25519.Ed25519PublicKey | ed448.Ed448PublicKey
PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey | ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey


def normalize_algorithm(name: str | None, default: str = "SHA256") -> str:
    """Canonicalize names like ``sha256`` or ``RSA-SHA256`` to ``SHA256``."""
    value = (name or default).strip().upper().replace("_", "-")
    if value.startswith("RSA-"):
        value = value[4:]
    value = value.replace("-", "")
    if value not in SUPPORTED_SIGNATURE_ALGORITHMS:
        raise InvalidPublicKeyError(f"unsupported signature algorithm: {name}")
    return value


def load_public_key(pem: str) -> PublicKey:
    """Parse a PEM SubjectPublicKeyInfo.

    Raises:
        InvalidPublicKeyError: The PEM is malformed or the key type is not
            usable for challenge signatures.
    """
    try:
        key = serialization.load_pem_public_key(pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidPublicKeyError(f"invalid public key: {exc}") from exc
    if not isinstance(
        key,
        (rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey, ed448.Ed448PublicKey),
    ):
        raise InvalidPublicKeyError(f"unsupported public key type: {type(key).__name__}")
    return key


def load_private_key(pem: str) -> PrivateKey:
    """Parse an unencrypted PEM private key (PKCS#8 or traditional).

    Raises:
        ValueError: The PEM is malformed, encrypted or of an unusable type.
    """
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (TypeError, UnsupportedAlgorithm) as exc:
        raise ValueError(f"invalid private key: {exc}") from exc
    if not isinstance(
        key,
        (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey),
    ):
        raise ValueError(f"unsupported private key type: {type(key).__name__}")
    return key


def verify_signature(public_key_pem: str, message: str, signature_b64: str, algorithm: str) -> bool:
    """Return True when ``signature_b64`` is a valid signature of ``message``.

    Malformed base64, malformed DER and mismatched keys all return False.
    Invalid public keys raise InvalidPublicKeyError.
    """
    key = load_public_key(public_key_pem)
    digest = _HASHES[normalize_algorithm(algorithm)]()
    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError):
        return False
    data = message.encode("utf-8")

    try:
        if isinstance(key, rsa.RSAPublicKey):
            key.verify(signature, data, padding.PKCS1v15(), digest)
        elif isinstance(key, ec.EllipticCurvePublicKey):
            key.verify(signature, data, ec.ECDSA(digest))
        else:
            key.verify(signature, data)
    except (InvalidSignature, ValueError):
        return False
    return True


def sign_message(private_key: PrivateKey, message: str, algorithm: str = "SHA256") -> str:
    """Sign ``message`` the way clients answer a challenge; returns base64."""
    digest = _HASHES[normalize_algorithm(algorithm)]()
    data = message.encode("utf-8")
    if isinstance(private_key, rsa.RSAPrivateKey):
        signature = private_key.sign(data, padding.PKCS1v15(), digest)
    elif isinstance(private_key, ec.EllipticCurvePrivateKey):
        signature = private_key.sign(data, ec.ECDSA(digest))
    else:
        signature = private_key.sign(data)
    return base64.b64encode(signature).decode("ascii")


def public_key_pem(private_key: PrivateKey) -> str:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def private_key_pem(private_key: PrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def key_fingerprint(public_key_pem_text: str) -> str:
    """SHA-256 of the DER public key as colon-separated hex pairs."""
    der = load_public_key(public_key_pem_text).public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashlib.sha256(der).hexdigest()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def generate_private_key(key_type: str = "rsa", *, bits: int = 2048) -> PrivateKey:
    """Create a new client key pair (``rsa``, ``ec`` or ``ed25519``)."""
    kind = key_type.lower()
    if kind == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=bits)
    if kind == "ec":
        return ec.generate_private_key(ec.SECP256R1())
    if kind == "ed25519":
        return ed25519.Ed25519PrivateKey.generate()
    raise ValueError(f"unsupported key type: {key_type}")


__all__ = [
    "normalize_algorithm",
    "load_public_key",
    "load_private_key",
    "verify_signature",
    "sign_message",
    "public_key_pem",
    "private_key_pem",
    "key_fingerprint",
    "generate_private_key",
]
