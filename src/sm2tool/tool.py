"""
SM2 Tool: Text Boundary

Drives the SM2 engine from text the way an application front end does:
messages arrive as str and are UTF-8 encoded here, keys travel as hex
strings, and binary results are rendered as hex or base64.

The engine itself only ever sees bytes.
"""

from __future__ import annotations

import base64
import binascii
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from sm2 import (
    CipherConfig,
    CipherMode,
    FormatError,
    Point,
    SM2Cipher,
    SM2Signer,
    generate_keypair,
    private_key_from_bytes,
    public_key_from_bytes,
    sm3_hash,
)
from sm2.signature import DEFAULT_USER_ID


logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    """Rendering of binary results."""
    HEX = "hex"
    BASE64 = "base64"


class ToolOptions(BaseModel):
    """Tool settings."""
    output_format: OutputFormat = OutputFormat.BASE64
    user_id: str = DEFAULT_USER_ID.decode()
    cipher_mode: CipherMode = CipherMode.C1C3C2


class KeyStrings(BaseModel):
    """Key pair rendered as hex strings."""
    public_key: str   # "04" + X + Y, 130 hex chars
    private_key: str  # 64 hex chars


class SM2Tool:
    """
    Text front end for SM2 encryption and signatures.

    Usage:
        tool = SM2Tool(ToolOptions(output_format=OutputFormat.HEX))
        keys = tool.generate_keys()
        ciphertext = tool.encrypt("hello", keys.public_key)
        assert tool.decrypt(ciphertext, keys.private_key) == "hello"
    """

    def __init__(self, options: Optional[ToolOptions] = None):
        self.options = options or ToolOptions()
        self.cipher = SM2Cipher(CipherConfig(mode=self.options.cipher_mode))
        self.signer = SM2Signer()

    # ========== Keys ==========

    def generate_keys(self) -> KeyStrings:
        """Generate a key pair and render it as hex."""
        keypair = generate_keypair()
        logger.info(f"Generated key pair {keypair.key_id}")
        return KeyStrings(
            public_key=keypair.public_bytes().hex(),
            private_key=keypair.private_bytes().hex(),
        )

    @staticmethod
    def parse_public_key(text: str) -> Point:
        """Parse a 04-prefixed hex public key."""
        text = _strip(text)
        if not text.lower().startswith("04"):
            raise FormatError("Invalid public key format")
        return public_key_from_bytes(_from_hex(text))

    @staticmethod
    def parse_private_key(text: str) -> int:
        """Parse a 64-character hex private key."""
        return private_key_from_bytes(_from_hex(_strip(text)))

    # ========== Encryption ==========

    def encrypt(self, text: str, public_key: str) -> str:
        """Encrypt UTF-8 text and render the ciphertext."""
        q = self.parse_public_key(public_key)
        ciphertext = self.cipher.encrypt(text.encode("utf-8"), q)
        return self._render(ciphertext)

    def decrypt(self, data: str, private_key: str) -> str:
        """
        Decrypt rendered ciphertext.

        Returns the plaintext as text, or as base64 when the plaintext is
        not valid UTF-8.
        """
        d = self.parse_private_key(private_key)
        plaintext = self.cipher.decrypt(self._parse(data), d)

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            logger.info("Plaintext is not UTF-8, returning base64")
            return base64.b64encode(plaintext).decode("ascii")

    # ========== Signatures ==========

    def sign(self, text: str, private_key: str, user_id: Optional[str] = None) -> str:
        """Sign UTF-8 text and render r || s."""
        d = self.parse_private_key(private_key)
        signature = self.signer.sign(text.encode("utf-8"), d, self._user_id(user_id))
        return self._render(signature)

    def verify(self,
               text: str,
               signature: str,
               public_key: str,
               user_id: Optional[str] = None) -> bool:
        """Verify a rendered signature; malformed input verifies as False."""
        try:
            q = self.parse_public_key(public_key)
            sig = self._parse(signature)
        except FormatError as e:
            logger.warning(f"Verification input rejected: {e}")
            return False
        return self.signer.verify(text.encode("utf-8"), sig, q, self._user_id(user_id))

    def hash(self, text: str) -> str:
        """SM3 digest of UTF-8 text as hex."""
        return sm3_hash(text.encode("utf-8")).hex()

    # ========== Helpers ==========

    def _user_id(self, user_id: Optional[str]) -> bytes:
        if user_id is None:
            user_id = self.options.user_id
        return user_id.encode("utf-8")

    def _render(self, data: bytes) -> str:
        if self.options.output_format == OutputFormat.HEX:
            return data.hex()
        return base64.b64encode(data).decode("ascii")

    def _parse(self, text: str) -> bytes:
        text = _strip(text)
        if self.options.output_format == OutputFormat.HEX:
            return _from_hex(text)
        try:
            return base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise FormatError("Invalid base64 input") from e


def _strip(text: str) -> str:
    return "".join(text.split())


def _from_hex(text: str) -> bytes:
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise FormatError("Invalid hex input") from e


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("SM2 Tool")
    print("=" * 50)

    tool = SM2Tool()
    keys = tool.generate_keys()
    print(f"Public key:  {keys.public_key[:40]}...")

    message = "Hello, SM2!"
    ciphertext = tool.encrypt(message, keys.public_key)
    print(f"\nCiphertext: {ciphertext[:40]}...")
    print(f"Decrypted:  {tool.decrypt(ciphertext, keys.private_key)}")

    signature = tool.sign(message, keys.private_key)
    print(f"\nSignature: {signature[:40]}...")
    print(f"Valid:     {tool.verify(message, signature, keys.public_key)}")

    print(f"\nSM3(\"abc\") = {tool.hash('abc')}")
