"""Integer arithmetic utilities for stakes and oracle prices.

Stakes are ints in the smallest unit of the stake currency (18 decimals).
Prices are ints with 8 implied decimal places. No float, no Decimal.
"""

from src.pp_common.errors import InvalidPriceError

AMOUNT_DECIMALS = 18
PRICE_DECIMALS = 8

# Column limits: NUMERIC(78, 0) for amounts, BIGINT for prices
MAX_AMOUNT = 10**78 - 1
MAX_PRICE = 2**63 - 1


def _to_display(value: int, decimals: int, places: int) -> str:
    sign = "-" if value < 0 else ""
    value = abs(value)
    scale = 10**decimals
    whole, frac = divmod(value, scale)
    frac_str = f"{frac:0{decimals}d}"[:places]
    return f"{sign}{whole:,}.{frac_str}"


def amount_to_display(amount: int, places: int = 4) -> str:
    """Format a stake amount: 10**18 -> '1.0000', 15 * 10**15 -> '0.0150'."""
    return _to_display(amount, AMOUNT_DECIMALS, places)


def price_to_display(price: int) -> str:
    """Format an oracle price: 3_000_000_000_000 -> '$30,000.00'."""
    if price < 0:
        return f"-${_to_display(-price, PRICE_DECIMALS, 2)}"
    return f"${_to_display(price, PRICE_DECIMALS, 2)}"


def validate_price(price: int) -> None:
    """Prices come from the oracle as positive fixed-point ints that fit a BIGINT."""
    if not 0 < price <= MAX_PRICE:
        raise InvalidPriceError(price)
