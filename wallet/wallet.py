import logging, hashlib
from typing import Optional
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PrivateFormat, PublicFormat, NoEncryption
import base58

from config.config import SIGNATURE_SCHEME, ADDRESS_PREFIX
from errors.exceptions import SigningError

logger = logging.getLogger(__name__)

ED25519          = "Ed25519"
ML_DSA_87        = "ML-DSA-87"
_CHECKSUM_LEN    = 4

# Raw public key length identifies the scheme on verification
_PUBKEY_LENGTHS  = {32: ED25519, 2592: ML_DSA_87}


def _as_bytes(buf) -> bytes:
    """Convert any liboqs buffer to real bytes."""
    if isinstance(buf, (bytes, bytearray)):
        return bytes(buf)
    if isinstance(buf, memoryview):
        return buf.tobytes()
    if hasattr(buf, "tobytes"):
        return buf.tobytes()
    return bytes(buf)

def _oqs():
    # liboqs loads its native library on import
    import oqs
    return oqs

def derive_address(pub: bytes) -> str:
    h = hashlib.sha3_256(pub).digest()
    versioned = bytes([0x00]) + h[:20]
    chk = hashlib.sha3_256(versioned).digest()[:_CHECKSUM_LEN]
    return ADDRESS_PREFIX + base58.b58encode(versioned + chk).decode()


def generate_keypair(scheme: str = SIGNATURE_SCHEME) -> dict:
    """Generate a key-pair for ``scheme`` and derive its address."""
    if scheme == ED25519:
        priv = Ed25519PrivateKey.generate()
        secret_key = priv.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        public_key = priv.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    elif scheme == ML_DSA_87:
        with _oqs().Signature(ML_DSA_87) as signer:
            public_key = _as_bytes(signer.generate_keypair())
            secret_key = _as_bytes(signer.export_secret_key())
    else:
        raise ValueError(f"Unsupported signature scheme: {scheme}")

    return {
        "scheme":     scheme,
        "privateKey": secret_key.hex(),
        "publicKey":  public_key.hex(),
        "address":    derive_address(public_key),
    }

def sign_message(message: bytes, priv_hex: str, scheme: str = SIGNATURE_SCHEME) -> bytes:
    """Sign raw message bytes; return the signature bytes."""
    try:
        if scheme == ED25519:
            priv = Ed25519PrivateKey.from_private_bytes(bytes.fromhex(priv_hex))
            return priv.sign(message)
        if scheme == ML_DSA_87:
            with _oqs().Signature(ML_DSA_87, secret_key=bytes.fromhex(priv_hex)) as signer:
                return _as_bytes(signer.sign(message))
    except Exception as e:
        logger.error(f"Failed to sign: {e}")
        raise SigningError(f"Failed to sign message with {scheme}") from e
    raise SigningError(f"Unsupported signature scheme: {scheme}")

def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify ``signature`` over ``message`` under ``public_key``.

    The scheme is picked from the public key length. Unknown key sizes and
    malformed keys or signatures verify as False.
    """
    scheme: Optional[str] = _PUBKEY_LENGTHS.get(len(public_key))
    if scheme is None:
        logger.debug(f"No signature scheme for {len(public_key)}-byte public key")
        return False

    try:
        if scheme == ED25519:
            Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
            return True
        with _oqs().Signature(ML_DSA_87) as verifier:
            return bool(verifier.verify(message, signature, public_key))
    except InvalidSignature:
        return False
    except Exception as e:
        logger.error(f"Failed to verify: {e}")
        return False
