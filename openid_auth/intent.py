"""
Intent scopes and intent messages.

Every signature is computed over an intent message: a three byte intent
prefix (scope, version, app id) followed by the serialized value. The scope
byte keeps signing contexts apart, so a personal-message signature can never
be replayed as a transaction authorization and vice versa.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum

from openid_auth.errors import MalformedEncoding


class IntentScope(IntEnum):
    TRANSACTION_DATA = 0
    TRANSACTION_EFFECTS = 1
    CHECKPOINT_SUMMARY = 2
    PERSONAL_MESSAGE = 3


class IntentVersion(IntEnum):
    V0 = 0


class AppId(IntEnum):
    SUI = 0


@dataclass(frozen=True)
class Intent:
    scope: IntentScope
    version: IntentVersion = IntentVersion.V0
    app_id: AppId = AppId.SUI

    def __post_init__(self):
        try:
            object.__setattr__(self, "scope", IntentScope(self.scope))
            object.__setattr__(self, "version", IntentVersion(self.version))
            object.__setattr__(self, "app_id", AppId(self.app_id))
        except ValueError as e:
            raise MalformedEncoding(f"Unknown intent: {e}") from e

    @classmethod
    def transaction(cls) -> Intent:
        return cls(IntentScope.TRANSACTION_DATA)

    @classmethod
    def personal_message(cls) -> Intent:
        return cls(IntentScope.PERSONAL_MESSAGE)

    def to_bytes(self) -> bytes:
        return bytes([self.scope, self.version, self.app_id])

    @classmethod
    def from_bytes(cls, data: bytes) -> Intent:
        if len(data) != 3:
            raise MalformedEncoding(f"Intent must be 3 bytes, got {len(data)}")
        return cls(data[0], data[1], data[2])


@dataclass(frozen=True)
class IntentMessage:
    """An intent paired with the already-serialized bytes it applies to."""

    intent: Intent
    value: bytes

    def to_bytes(self) -> bytes:
        return self.intent.to_bytes() + self.value

    @classmethod
    def from_bytes(cls, data: bytes) -> IntentMessage:
        if len(data) < 3:
            raise MalformedEncoding("Intent message shorter than its intent prefix")
        return cls(Intent.from_bytes(data[:3]), bytes(data[3:]))

    def digest(self) -> bytes:
        """Blake2b-256 of the message bytes; this is what keys actually sign."""
        return hashlib.blake2b(self.to_bytes(), digest_size=32).digest()
