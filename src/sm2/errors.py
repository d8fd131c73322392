"""
SM2 Engine: Error Taxonomy

Exceptions raised by the engine. Invalid signatures are reported as a
``False`` return from ``verify()`` and have no exception type.
"""


class SM2Error(Exception):
    """Base exception for SM2 engine errors."""
    pass


class FormatError(SM2Error):
    """Exception raised for malformed ciphertext, point or key encodings."""
    pass


class IntegrityError(SM2Error):
    """Exception raised when a ciphertext fails its C3 integrity check."""
    pass


class SigningError(SM2Error):
    """Exception raised when signing exhausts its nonce attempts."""
    pass
