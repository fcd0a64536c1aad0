import hashlib
from decimal import Decimal, ROUND_DOWN
from typing import Union

from config.config import COIN


def sha256d(b: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(b).digest()).digest()

def to_base_units(amount: Union[Decimal, str, int]) -> int:
    """
    Convert a coin amount to integer base units, truncating anything below
    one unit. Floats are rejected.
    """
    if isinstance(amount, float):
        raise TypeError("Amounts must be Decimal, str or int, not float")
    units = (Decimal(amount) * COIN).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return int(units)

def from_base_units(units: int) -> Decimal:
    return (Decimal(units) / COIN).quantize(Decimal("0.00000001"))
