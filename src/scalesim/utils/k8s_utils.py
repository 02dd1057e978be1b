from decimal import Decimal, InvalidOperation
from typing import Optional, Union

# Binary suffixes must be checked before their one-letter decimal counterparts.
_QUANTITY_SUFFIXES = (
    ("Ki", Decimal(1024)),
    ("Mi", Decimal(1024) ** 2),
    ("Gi", Decimal(1024) ** 3),
    ("Ti", Decimal(1024) ** 4),
    ("Pi", Decimal(1024) ** 5),
    ("Ei", Decimal(1024) ** 6),
    ("n", Decimal("0.000000001")),
    ("u", Decimal("0.000001")),
    ("m", Decimal("0.001")),
    ("k", Decimal(1000)),
    ("M", Decimal(1000) ** 2),
    ("G", Decimal(1000) ** 3),
    ("T", Decimal(1000) ** 4),
    ("P", Decimal(1000) ** 5),
    ("E", Decimal(1000) ** 6),
)


def parse_quantity(quantity: Optional[Union[str, int, float, Decimal]]) -> Decimal:
    """
    Parse a Kubernetes resource quantity ('16Gi', '500m', '2') to a Decimal.
    Unparseable input yields 0.
    """
    if quantity is None:
        return Decimal(0)
    if isinstance(quantity, (int, float, Decimal)):
        return Decimal(quantity)

    text = str(quantity).strip()
    multiplier = Decimal(1)
    for suffix, factor in _QUANTITY_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            multiplier = factor
            break

    try:
        return Decimal(text) * multiplier
    except InvalidOperation:
        return Decimal(0)


def parse_cpu_request(cpu: Optional[str]) -> int:
    """Converts K8s CPU string to millicores (int)."""
    if not cpu:
        return 0
    return int(parse_quantity(cpu) * 1000)


def parse_memory_request(memory: Optional[str]) -> int:
    """Converts K8s memory string to bytes (int)."""
    if not memory:
        return 0
    return int(parse_quantity(memory))
