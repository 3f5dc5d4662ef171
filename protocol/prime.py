"""
Primality queries over line-delimited JSON.

Request:  {"method": "isPrime", "number": 123}
Response: {"method": "isPrime", "prime": false}

Anything malformed gets the literal response `invalid`.
"""

import json
import math
from typing import Optional


METHOD = "isPrime"
INVALID_RESPONSE = b"invalid"

_MAX_EXACT_INT = 2 ** 53


class PrimeRequest:
    def __init__(self, method: str, number, bignumber: bool = False):
        self.method = method          # must be "isPrime"
        self.number = number          # int or float, never bool
        self.bignumber = bignumber    # marks numbers too big to test

        self._validate()

    def _validate(self):
        if self.method != METHOD:
            raise ValueError(f"Unsupported method: {self.method!r}")

        if isinstance(self.number, bool) or not isinstance(self.number, (int, float)):
            raise ValueError(f"number must be a number, got {type(self.number)}")

        if isinstance(self.number, float) and not math.isfinite(self.number):
            raise ValueError(f"number must be finite, got {self.number}")

        if not isinstance(self.bignumber, bool):
            raise ValueError(f"bignumber must be bool, got {type(self.bignumber)}")

    @classmethod
    def from_json(cls, raw):
        if not isinstance(raw, dict):
            raise ValueError("JSON request must be an object")

        if "method" not in raw:
            raise ValueError("Missing field: method")

        number = raw.get("number")
        if number is None:
            raise ValueError("Missing field: number")

        return cls(
            method=raw["method"],
            number=number,
            bignumber=raw.get("bignumber", False),
        )

    @classmethod
    def decode(cls, line: bytes):
        try:
            raw = json.loads(line.decode("utf-8"), parse_constant=_reject_constant)
        except ValueError as exc:
            raise ValueError(f"Malformed JSON: {exc}") from exc
        return cls.from_json(raw)

    def is_prime(self) -> bool:
        # Numbers flagged big are all composite: skip testing them
        if self.bignumber:
            return False

        if isinstance(self.number, float):
            if not self.number.is_integer():
                return False
            return is_prime(int(self.number))

        # Numbers travel as doubles, and every double past 2**53 is even
        if abs(self.number) > _MAX_EXACT_INT:
            return False

        return is_prime(self.number)


def _reject_constant(name):
    raise ValueError(f"Unsupported JSON constant: {name}")


def is_prime(n: int) -> bool:
    """Deterministic trial division over 6k +/- 1 candidates."""
    if n == 2 or n == 3:
        return True

    if n <= 1 or n % 2 == 0 or n % 3 == 0:
        return False

    i = 5
    while i * i <= n:
        if n % i == 0 or n % (i + 2) == 0:
            return False
        i += 6

    return True


def encode_response(prime: bool) -> bytes:
    return json.dumps({"method": METHOD, "prime": prime}, separators=(",", ":")).encode("utf-8")


def handle_prime_request(line: bytes) -> Optional[bytes]:
    try:
        request = PrimeRequest.decode(line)
    except ValueError:
        return INVALID_RESPONSE

    return encode_response(request.is_prime())
