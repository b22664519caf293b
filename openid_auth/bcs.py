"""
Binary Canonical Serialization (BCS) helpers.

Only the subset needed by the authenticator wire form is implemented:
unsigned integers, ULEB128 lengths, byte vectors, strings and sequences.
"""

from __future__ import annotations

import io
import typing

from openid_auth.errors import MalformedEncoding

MAX_U8 = 2**8 - 1
MAX_U64 = 2**64 - 1
MAX_ULEB128 = 2**32 - 1


class Serializer:
    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def u8(self, value: int):
        self._write_int(value, 1, MAX_U8)

    def u64(self, value: int):
        self._write_int(value, 8, MAX_U64)

    def uleb128(self, value: int):
        if value < 0 or value > MAX_ULEB128:
            raise ValueError(f"Cannot encode {value} as ULEB128")
        while value >= 0x80:
            self._output.write(bytes([(value & 0x7F) | 0x80]))
            value >>= 7
        self._output.write(bytes([value & 0x7F]))

    def fixed_bytes(self, value: bytes):
        self._output.write(value)

    def to_bytes(self, value: bytes):
        self.uleb128(len(value))
        self._output.write(value)

    def str(self, value: str):
        self.to_bytes(value.encode("utf-8"))

    def sequence(
        self,
        values: typing.Sequence[typing.Any],
        encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.uleb128(len(values))
        for value in values:
            encoder(self, value)

    def _write_int(self, value: int, length: int, maximum: int):
        if value < 0 or value > maximum:
            raise ValueError(f"{value} does not fit in {length} byte(s)")
        self._output.write(value.to_bytes(length, "little", signed=False))


class Deserializer:
    """Reads BCS values; every decoding problem is a MalformedEncoding."""

    def __init__(self, data: bytes):
        self._input = io.BytesIO(data)
        self._length = len(data)

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def assert_finished(self):
        if self.remaining() != 0:
            raise MalformedEncoding(f"{self.remaining()} trailing byte(s)")

    def u8(self) -> int:
        return int.from_bytes(self._read(1), "little")

    def u64(self) -> int:
        return int.from_bytes(self._read(8), "little")

    def uleb128(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self._read(1)[0]
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                # A zero final group after a continuation byte is redundant.
                if byte == 0 and shift > 0:
                    raise MalformedEncoding("Non-canonical ULEB128 encoding")
                break
            shift += 7
            if value > MAX_ULEB128 or shift > 32:
                raise MalformedEncoding("ULEB128 value overflows u32")
        if value > MAX_ULEB128:
            raise MalformedEncoding("ULEB128 value overflows u32")
        return value

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def to_bytes(self) -> bytes:
        return self._read(self.uleb128())

    def str(self) -> str:
        raw = self.to_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEncoding(f"Invalid UTF-8 string: {e}") from e

    def sequence(
        self, decoder: typing.Callable[[Deserializer], typing.Any]
    ) -> typing.List[typing.Any]:
        count = self.uleb128()
        return [decoder(self) for _ in range(count)]

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if len(value) != length:
            raise MalformedEncoding(
                f"Unexpected end of input: wanted {length} byte(s), got {len(value)}"
            )
        return value
