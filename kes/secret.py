"""256-bit secrets that wrap and unwrap data encryption keys."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import struct
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

SIZE = 32
"""The size of a secret in bytes."""

AES_256_GCM_HMAC_SHA_256 = "AES-256-GCM-HMAC-SHA-256"
CHACHA20_POLY1305 = "ChaCha20Poly1305"

_IV_SIZE = 16
_NONCE_SIZE = 12


class MalformedSecretError(ValueError):
    """The textual form of a secret could not be parsed."""

    def __init__(self) -> None:
        super().__init__("secret is malformed")


class UnwrapError(ValueError):
    """A wrapped key is invalid, unsupported or not authentic."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


_MASK = 0xFFFFFFFF
_DOUBLE_ROUND = (
    (0, 4, 8, 12),
    (1, 5, 9, 13),
    (2, 6, 10, 14),
    (3, 7, 11, 15),
    (0, 5, 10, 15),
    (1, 6, 11, 12),
    (2, 7, 8, 13),
    (3, 4, 9, 14),
)


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) & _MASK) | (value >> (32 - shift))


def _quarter_round(state: list[int], a: int, b: int, c: int, d: int) -> None:
    state[a] = (state[a] + state[b]) & _MASK
    state[d] = _rotl(state[d] ^ state[a], 16)
    state[c] = (state[c] + state[d]) & _MASK
    state[b] = _rotl(state[b] ^ state[c], 12)
    state[a] = (state[a] + state[b]) & _MASK
    state[d] = _rotl(state[d] ^ state[a], 8)
    state[c] = (state[c] + state[d]) & _MASK
    state[b] = _rotl(state[b] ^ state[c], 7)


def _hchacha20(key: bytes, nonce: bytes) -> bytes:
    """Derive a 32-byte subkey from a 32-byte key and a 16-byte nonce."""
    state = [
        0x61707865,
        0x3320646E,
        0x79622D32,
        0x6B206574,
        *struct.unpack("<8I", key),
        *struct.unpack("<4I", nonce),
    ]
    for _ in range(10):
        for quarter in _DOUBLE_ROUND:
            _quarter_round(state, *quarter)
    return struct.pack("<8I", *state[:4], *state[12:])


def _hmac_key(key: bytes, iv: bytes) -> bytes:
    return hmac.new(key, iv, hashlib.sha256).digest()


def _lookup(obj: dict[str, Any], name: str) -> Any:
    """Return the value of the last key that matches ``name`` ignoring case."""
    value = None
    for key, item in obj.items():
        if key.casefold() == name:
            value = item
    return value


def _decode_b64(value: Any, what: str) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a base64 string")
    cleaned = value.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"{what} is not valid base64") from exc


def _encode_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class Secret:
    """A 256-bit key that encrypts and decrypts data encryption keys."""

    key: bytes = field(default=bytes(SIZE), repr=False)

    def __post_init__(self) -> None:
        key = bytes(self.key)
        if len(key) != SIZE:
            raise ValueError(f"secret must be {SIZE} bytes, got {len(key)}")
        object.__setattr__(self, "key", key)

    def __bytes__(self) -> bytes:
        return self.key

    def __str__(self) -> str:
        return '{"bytes":"' + _encode_b64(self.key) + '"}'

    def wrap(self, plaintext: bytes, associated_data: bytes | None = None) -> bytes:
        """Encrypt ``plaintext``, authenticate ``associated_data``, return JSON bytes.

        The sealing key is derived with HMAC-SHA-256 from the secret and a
        random IV; the plaintext is sealed with AES-256-GCM.
        """
        iv = os.urandom(_IV_SIZE)
        aead = AESGCM(_hmac_key(self.key, iv))
        nonce = os.urandom(_NONCE_SIZE)
        sealed = aead.encrypt(nonce, bytes(plaintext or b""), associated_data or None)
        document = {
            "aead": AES_256_GCM_HMAC_SHA_256,
            "iv": _encode_b64(iv),
            "nonce": _encode_b64(nonce),
            "bytes": _encode_b64(sealed),
        }
        return json.dumps(document, separators=(",", ":")).encode("ascii")

    def unwrap(self, ciphertext: bytes | str, associated_data: bytes | None = None) -> bytes:
        """Decrypt and verify a key produced by :meth:`wrap`.

        Malformed JSON raises :class:`ValueError`; a bad IV or nonce size, an
        unsupported algorithm or an inauthentic ciphertext raise
        :class:`UnwrapError`.
        """
        value = json.loads(ciphertext)
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ValueError("wrapped key must be a JSON object")

        algorithm = _lookup(value, "aead")
        if algorithm is None:
            algorithm = ""
        if not isinstance(algorithm, str):
            raise ValueError("aead must be a string")
        iv = _decode_b64(_lookup(value, "iv"), "iv")
        nonce = _decode_b64(_lookup(value, "nonce"), "nonce")
        sealed = _decode_b64(_lookup(value, "bytes"), "bytes")

        if len(iv) != _IV_SIZE:
            raise UnwrapError(400, f"invalid iv size {len(iv)}")

        aead: AESGCM | ChaCha20Poly1305
        if algorithm == AES_256_GCM_HMAC_SHA_256:
            aead = AESGCM(_hmac_key(self.key, iv))
        elif algorithm == CHACHA20_POLY1305:
            aead = ChaCha20Poly1305(_hchacha20(self.key, iv))
        else:
            raise UnwrapError(422, "unsupported cryptographic algorithm")

        if len(nonce) != _NONCE_SIZE:
            raise UnwrapError(400, f"invalid nonce size {len(nonce)}")
        try:
            return aead.decrypt(nonce, sealed, associated_data or None)
        except InvalidTag as exc:
            raise UnwrapError(400, "ciphertext is not authentic") from exc


def parse_secret(s: str) -> Secret:
    """Parse a secret from its textual form ``{"bytes":"<base64>"}``.

    Data after the first JSON value is ignored.
    """
    text = s.lstrip(" \t\n\r")
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ValueError("secret must be a JSON object")
        key = _decode_b64(_lookup(value, "bytes"), "bytes")
    except ValueError as exc:
        raise MalformedSecretError() from exc
    if len(key) != SIZE:
        raise MalformedSecretError()
    return Secret(key)