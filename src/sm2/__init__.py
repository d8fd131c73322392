"""
SM2 Engine

Self-contained SM2 public-key cryptography over the sm2p256v1 curve.

Modules:
- curve: Modular arithmetic, points and group law
- sm3: SM3 256-bit hash
- kdf: SM3 counter-mode key derivation
- keys: Key generation and key encodings
- cipher: SM2 public-key encryption (C1C3C2)
- signature: Identity-bound SM2 signatures

All operations take and return raw bytes; encoding text is left to the
caller (see the sm2tool package).
"""

from .errors import (
    SM2Error,
    FormatError,
    IntegrityError,
    SigningError,
)

from .curve import (
    SM2Params,
    SM2Curve,
    Point,
    mod,
    mod_inverse,
    mod_pow,
    mod_sqrt,
)

from .sm3 import SM3, sm3_hash
from .kdf import kdf

from .keys import (
    SM2KeyPair,
    generate_keypair,
    keypair_from_private,
    public_key_from_private,
    private_key_to_bytes,
    private_key_from_bytes,
    public_key_to_bytes,
    public_key_from_bytes,
)

from .cipher import (
    SM2Cipher,
    CipherConfig,
    CipherMode,
    encrypt,
    decrypt,
)

from .signature import (
    SM2Signer,
    SignatureConfig,
    DEFAULT_USER_ID,
    compute_za,
    message_digest,
    sign,
    verify,
)

__all__ = [
    # Errors
    'SM2Error',
    'FormatError',
    'IntegrityError',
    'SigningError',

    # Curve
    'SM2Params',
    'SM2Curve',
    'Point',
    'mod',
    'mod_inverse',
    'mod_pow',
    'mod_sqrt',

    # Hash and KDF
    'SM3',
    'sm3_hash',
    'kdf',

    # Keys
    'SM2KeyPair',
    'generate_keypair',
    'keypair_from_private',
    'public_key_from_private',
    'private_key_to_bytes',
    'private_key_from_bytes',
    'public_key_to_bytes',
    'public_key_from_bytes',

    # Encryption
    'SM2Cipher',
    'CipherConfig',
    'CipherMode',
    'encrypt',
    'decrypt',

    # Signatures
    'SM2Signer',
    'SignatureConfig',
    'DEFAULT_USER_ID',
    'compute_za',
    'message_digest',
    'sign',
    'verify',
]

__version__ = "0.1.0"
