from __future__ import annotations

import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes


IV_SIZE = 16
AES_KEY_SIZES = (16, 24, 32)


@dataclass(frozen=True, slots=True)
class SourceEncryptor:
    """AES-CBC encryption of source URLs as expected by imgproxy's ``/enc/`` sources.

    Every call draws a fresh IV from ``os.urandom`` and prepends it to the
    ciphertext, so encrypting the same URL twice yields different blobs.
    """

    _key: bytes

    @classmethod
    def from_key(cls, key: bytes | None) -> "SourceEncryptor":
        if not key:
            raise ValueError("IMGPROXY_ENCRYPTION_KEY is required")
        if len(key) not in AES_KEY_SIZES:
            raise ValueError("Invalid IMGPROXY_ENCRYPTION_KEY")
        return cls(_key=bytes(key))

    def encrypt(self, plaintext: str, *, iv: bytes | None = None) -> bytes:
        if not isinstance(plaintext, str):
            raise TypeError("plaintext must be str")
        iv = os.urandom(IV_SIZE) if iv is None else iv
        if len(iv) != IV_SIZE:
            raise ValueError("iv must be 16 bytes")

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, blob: bytes) -> str:
        if not isinstance(blob, (bytes, bytearray)):
            raise TypeError("blob must be bytes")
        if len(blob) < IV_SIZE * 2 or len(blob) % IV_SIZE:
            raise ValueError("Invalid encrypted value")

        iv, ciphertext = bytes(blob[:IV_SIZE]), bytes(blob[IV_SIZE:])
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except ValueError as exc:
            raise ValueError("Invalid encrypted value") from exc
