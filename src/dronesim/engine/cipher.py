"""Repeating-key XOR used to obscure payloads on the wire.

This is an obfuscation step, not security: applying the same key twice gives
back the input, for any non-empty key.
"""

from __future__ import annotations

DEFAULT_KEY = "USMC-COMMS-KEY"


def xor_cipher(data: bytes, key: bytes) -> bytes:
    """XOR every byte of ``data`` with ``key`` repeated to the same length.

    Raises:
        ValueError: If ``key`` is empty.
    """
    if not key:
        raise ValueError("XOR key must not be empty")
    key_len = len(key)
    return bytes(b ^ key[i % key_len] for i, b in enumerate(data))


def _key_bytes(key: str | bytes) -> bytes:
    return key.encode("utf-8") if isinstance(key, str) else key


def encrypt(text: str, key: str | bytes) -> bytes:
    """UTF-8 encode ``text`` and XOR it with ``key``."""
    return xor_cipher(text.encode("utf-8"), _key_bytes(key))


def decrypt(cipher_text: bytes, key: str | bytes) -> str:
    """Reverse ``encrypt``."""
    return xor_cipher(cipher_text, _key_bytes(key)).decode("utf-8")
