from typing import cast

PREFIX_MAP: dict[str, int] = {
    "K": 1,
    "Ki": 1,
    "M": 2,
    "Mi": 2,
    "G": 3,
    "Gi": 3,
    "T": 4,
    "Ti": 4,
    "P": 5,
    "Pi": 5,
    "E": 6,
    "Ei": 6,
    "Z": 7,
    "Zi": 7,
}


def valid_storage_units() -> list[str]:
    """
    Return a list of valid units of storage.
    """
    return list(PREFIX_MAP.keys()) + ["auto"]


def pad_float(number: float = 0.0, round_int: bool = False) -> str:
    """
    Pad a float to two decimal places.
    """
    if isinstance(number, int) and round_int:
        return str(int(number))
    else:
        return f"{number:.2f}"


def auto_unit(number: float) -> str:
    """
    Pick the largest binary prefix that keeps the number at or above one.
    """
    unit = ""
    for unit_prefix in ["Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"]:
        if abs(number) < 1024.0:
            break
        number /= 1024
        unit = unit_prefix
    return unit


def scale_bytes(number: float, unit: str | None = "auto") -> tuple[float, str]:
    """
    Convert bytes to the given unit, returning the value and its suffix, e.g. (8.0, "GiB").
    """
    suffix = "B"
    if unit is None or unit == "auto":
        unit = auto_unit(number)

    if unit not in PREFIX_MAP:
        return float(number), suffix

    divisor: int = 1000
    if len(unit) == 2 and unit.endswith("i"):
        divisor = 1024

    value = cast(float, number / (divisor ** PREFIX_MAP[unit]))
    return value, f"{unit}{suffix}"


def byte_converter(number: float, unit: str | None = "auto", use_int: bool = False) -> str:
    """
    Convert bytes to the given unit.
    """
    value, suffix = scale_bytes(number=number, unit=unit)
    if use_int:
        return f"{int(value)} {suffix}"
    return f"{pad_float(value, round_int=False)} {suffix}"
