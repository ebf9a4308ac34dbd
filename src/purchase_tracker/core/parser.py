"""Event parsing for inbound purchase payloads.

Payloads have the form "<customer>, <quantity>, <product>".
"""

from __future__ import annotations

from .errors import (
    FieldCountError,
    InvalidProductIdError,
    InvalidQuantityError,
    PayloadDecodeError,
)
from .types import ParsedEvent, ProductIdMode

FIELD_COUNT = 3
MAX_INT64 = 2**63 - 1


def _parse_int64(token: str, signed: bool = False) -> int | None:
    """Parse plain ASCII decimal digits, with a leading "-" only if signed."""
    # int() alone would accept "+3", "٣" and "1_000"
    digits = token[1:] if signed and token.startswith("-") else token
    if not digits.isascii() or not digits.isdigit():
        return None
    value = int(token)
    return value if -MAX_INT64 - 1 <= value <= MAX_INT64 else None


class EventParser:
    """Validates and decodes raw event payloads.

    Args:
        product_id_mode: STRING keeps the product token as is, NUMERIC
            requires it to be an integer

    Identifiers are not validated beyond field count, so empty customer or
    product strings are accepted.
    """

    def __init__(self, product_id_mode: ProductIdMode = ProductIdMode.STRING):
        self.product_id_mode = product_id_mode

    def parse(self, payload: bytes) -> ParsedEvent:
        """Return the validated fields of payload.

        Raises:
            PayloadDecodeError: payload is not UTF-8
            FieldCountError: payload does not have exactly three fields
            InvalidQuantityError: quantity is not a non-negative integer
            InvalidProductIdError: product is not an integer in NUMERIC mode
        """
        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadDecodeError(f"Payload is not valid UTF-8: {e}", payload) from e

        tokens = [token.strip() for token in body.split(",")]
        if len(tokens) != FIELD_COUNT:
            raise FieldCountError(
                f"Expected {FIELD_COUNT} fields, got {len(tokens)}: {body!r}", payload
            )

        customer_id, quantity_token, product_token = tokens

        quantity = _parse_int64(quantity_token)
        if quantity is None:
            raise InvalidQuantityError(f"Invalid quantity: {quantity_token!r}", payload)

        if self.product_id_mode is ProductIdMode.NUMERIC:
            return ParsedEvent(customer_id, quantity, self._parse_product_id(product_token, payload))

        return ParsedEvent(customer_id, quantity, product_token)

    @staticmethod
    def _parse_product_id(token: str, payload: bytes) -> int:
        product_id = _parse_int64(token, signed=True)
        if product_id is None:
            raise InvalidProductIdError(f"Invalid numeric product id: {token!r}", payload)
        return product_id
