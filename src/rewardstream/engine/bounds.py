"""Checked narrowing of unbounded ints into fixed-width unsigned storage."""

from .errors import ArithmeticOverflow


def uint_max(bits: int) -> int:
    """Largest value representable in an unsigned integer of `bits` width."""
    if bits <= 0:
        raise ValueError(f"bits must be positive, got {bits}")
    return (1 << bits) - 1


def narrow(value: int, bits: int, what: str = "value") -> int:
    """
    Return `value` unchanged if it fits in `bits` unsigned bits.

    Args:
        value: Integer to check
        bits: Storage width in bits
        what: Name of the quantity, used in the error

    Returns:
        The same value

    Raises:
        ArithmeticOverflow: If value is negative or wider than `bits`
    """
    if value < 0 or value > uint_max(bits):
        raise ArithmeticOverflow(
            f"{what} does not fit in uint{bits}",
            value=value,
            bits=bits,
        )
    return value
