"""
Passphrase-based authenticated encryption for store files.

Container layout::

    magic        b"alex-vault/v1\\n"
    log_n, r, p  3 bytes, scrypt parameters
    salt         16 bytes
    wrap nonce   12 bytes
    wrapped key  48 bytes  AES-256-GCM(kek, file key), kek = scrypt(passphrase, salt)
    body nonce   12 bytes
    body         AES-256-GCM(file key, plaintext, aad=header)

The file key is random per write. A failure to unwrap it means the passphrase
is wrong; a failure to open the body with a correctly unwrapped key means the
file was damaged.
"""

import os
import struct

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import CorruptedError, WrongPassphraseError

MAGIC = b"alex-vault/v1\n"

DEFAULT_LOG_N = 15
MIN_LOG_N = 10
MAX_LOG_N = 20
SCRYPT_R = 8
SCRYPT_P = 1

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

_PARAMS = struct.Struct(">BBB")
_WRAPPED_KEY_SIZE = KEY_SIZE + TAG_SIZE

# Everything before the wrap nonce is bound to the wrapped key
_KDF_HEADER_SIZE = len(MAGIC) + _PARAMS.size + SALT_SIZE
HEADER_SIZE = _KDF_HEADER_SIZE + NONCE_SIZE + _WRAPPED_KEY_SIZE
MIN_CONTAINER_SIZE = HEADER_SIZE + NONCE_SIZE + TAG_SIZE


def _derive_kek(passphrase: str, salt: bytes, log_n: int, r: int, p: int) -> bytes:
    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=2 ** log_n, r=r, p=p)
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt(plaintext: bytes, passphrase: str, log_n: int = None) -> bytes:
    """Encrypt ``plaintext`` into a self-describing container."""
    log_n = DEFAULT_LOG_N if log_n is None else log_n
    if not MIN_LOG_N <= log_n <= MAX_LOG_N:
        raise ValueError(f"scrypt log_n must be between {MIN_LOG_N} and {MAX_LOG_N}")

    salt = os.urandom(SALT_SIZE)
    kdf_header = MAGIC + _PARAMS.pack(log_n, SCRYPT_R, SCRYPT_P) + salt
    kek = _derive_kek(passphrase, salt, log_n, SCRYPT_R, SCRYPT_P)

    file_key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
    wrap_nonce = os.urandom(NONCE_SIZE)
    wrapped_key = AESGCM(kek).encrypt(wrap_nonce, file_key, kdf_header)

    header = kdf_header + wrap_nonce + wrapped_key
    body_nonce = os.urandom(NONCE_SIZE)
    body = AESGCM(file_key).encrypt(body_nonce, bytes(plaintext), header)

    return header + body_nonce + body


def decrypt(container: bytes, passphrase: str) -> bytes:
    """
    Decrypt a container produced by :func:`encrypt`.

    Raises:
        CorruptedError: not a container, or the payload fails authentication
        WrongPassphraseError: the passphrase does not unlock the file key
    """
    if len(container) < MIN_CONTAINER_SIZE or not container.startswith(MAGIC):
        raise CorruptedError("corrupted secrets file (not a valid encrypted file)")

    offset = len(MAGIC)
    log_n, r, p = _PARAMS.unpack_from(container, offset)
    if not MIN_LOG_N <= log_n <= MAX_LOG_N or (r, p) != (SCRYPT_R, SCRYPT_P):
        raise CorruptedError("corrupted secrets file (invalid key derivation parameters)")
    offset += _PARAMS.size

    salt = container[offset:offset + SALT_SIZE]
    offset += SALT_SIZE
    kdf_header = container[:offset]

    wrap_nonce = container[offset:offset + NONCE_SIZE]
    offset += NONCE_SIZE
    wrapped_key = container[offset:offset + _WRAPPED_KEY_SIZE]
    offset += _WRAPPED_KEY_SIZE
    header = container[:offset]

    body_nonce = container[offset:offset + NONCE_SIZE]
    body = container[offset + NONCE_SIZE:]

    try:
        kek = _derive_kek(passphrase, salt, log_n, r, p)
    except (MemoryError, ValueError):
        raise CorruptedError("corrupted secrets file (key derivation failed)") from None

    try:
        file_key = AESGCM(kek).decrypt(wrap_nonce, wrapped_key, kdf_header)
    except InvalidTag:
        raise WrongPassphraseError("wrong passphrase") from None

    try:
        return AESGCM(file_key).decrypt(body_nonce, body, header)
    except InvalidTag:
        raise CorruptedError("corrupted secrets file (payload failed authentication)") from None
