import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Iterable

from dacite import Config, from_dict

from memdev.errors import DeviceCountMissingError, DeviceCountParseError
from memdev.properties import (
    DMI_SYSPATH,
    PropertySource,
    UdevPropertySource,
    collect_properties,
)

logger = logging.getLogger(__name__)

DEVICE_COUNT_MARKER = "MEMORY_ARRAY_NUM_DEVICES"
DEVICE_PREFIX = "MEMORY_DEVICE_{index}_"

MANUFACTURER_KEY = "MANUFACTURER"
FREQUENCY_KEY = "CONFIGURED_SPEED_MTS"
FORM_FACTOR_KEY = "FORM_FACTOR"
TYPE_KEY = "TYPE"

U64_MAX = 2**64 - 1

_unsigned_re = re.compile(r"\+?[0-9]+")


class MemKind(str, Enum):
    DDR5 = "DDR5"
    DDR4 = "DDR4"
    DDR3 = "DDR3"
    UNKNOWN = "Unknown"
    OTHER = "Other"


@dataclass(frozen=True)
class MemType:
    """
    Memory technology of a single module.

    Every raw TYPE string maps to exactly one value. Known literals map to
    their kind, the literal "Unknown" and a missing key map to UNKNOWN, and
    anything else is kept verbatim in `raw` under OTHER.
    """

    kind: MemKind = MemKind.UNKNOWN
    raw: str | None = None

    @classmethod
    def classify(cls, value: str | None) -> "MemType":
        if value is None:
            return cls(MemKind.UNKNOWN)
        for kind in MemKind:
            if kind is not MemKind.OTHER and kind.value == value:
                return cls(kind)
        return cls(MemKind.OTHER, raw=value)

    def __str__(self) -> str:
        if self.kind is MemKind.OTHER and self.raw is not None:
            return self.raw
        return self.kind.value


def parse_unsigned(value: str, limit: int = U64_MAX) -> int:
    """
    Parse a non-negative decimal integer, raising ValueError on anything else.
    """
    if not _unsigned_re.fullmatch(value):
        raise ValueError(f"invalid digit found in {value!r}")
    number = int(value)
    if number > limit:
        raise ValueError(f"{value!r} is too large")
    return number


def device_properties(props: dict[str, str], index: int) -> dict[str, str]:
    """
    Return the properties belonging to slot `index`, with the slot prefix stripped.
    """
    prefix = DEVICE_PREFIX.format(index=index)
    return {
        key[len(prefix) :]: value
        for key, value in props.items()
        if key.startswith(prefix)
    }


def resolve_device_count(props: dict[str, str], match: str = "exact") -> int:
    """
    Find the number of memory slots in a property snapshot.

    With match="contains" the first property whose name contains the marker
    is used, for property tables that do not carry the exact name.
    """
    name: str | None = None
    if match == "exact":
        if DEVICE_COUNT_MARKER in props:
            name = DEVICE_COUNT_MARKER
    elif match == "contains":
        name = next((key for key in props if DEVICE_COUNT_MARKER in key), None)
    else:
        raise ValueError(f"unknown match mode {match!r}")

    if name is None:
        raise DeviceCountMissingError(DEVICE_COUNT_MARKER)

    try:
        count = parse_unsigned(props[name])
    except ValueError as e:
        raise DeviceCountParseError(name=name, value=props[name]) from e

    logger.debug(f"[resolve_device_count] - {name}={count}")
    return count


@dataclass(eq=True, frozen=True, unsafe_hash=False)
class MemDevice:
    """
    One physical memory slot.

    Fields cannot be reassigned, but `extra_props` is a plain dict that is
    not copied on access; callers must treat it as read-only. Instances are
    unhashable because of that dict.
    """

    manufacturer: str | None = None
    frequency: int | None = None
    form_factor: str | None = None
    mem_type: MemType = field(default_factory=MemType)
    extra_props: dict[str, str] = field(default_factory=dict)

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def from_properties(cls, index: int, props: dict[str, str]) -> "MemDevice":
        return build_device(device_properties(props, index))

    @property
    def populated(self) -> bool:
        size = self.extra_props.get("SIZE")
        return size is not None and size != "0"


def build_device(slot_props: dict[str, str]) -> MemDevice:
    """
    Turn one slot's properties into a MemDevice.

    Named fields are taken out of a copy of `slot_props`; whatever is left
    over becomes `extra_props`. Malformed values degrade to None, never raise.
    """
    extra_props = dict(slot_props)

    manufacturer = extra_props.pop(MANUFACTURER_KEY, None)

    frequency: int | None = None
    raw_frequency = extra_props.pop(FREQUENCY_KEY, None)
    if raw_frequency is not None:
        try:
            frequency = parse_unsigned(raw_frequency)
        except ValueError:
            logger.debug(
                f"[build_device] - ignoring {FREQUENCY_KEY}={raw_frequency!r}"
            )

    form_factor = extra_props.pop(FORM_FACTOR_KEY, None)
    mem_type = MemType.classify(extra_props.pop(TYPE_KEY, None))

    return MemDevice(
        manufacturer=manufacturer,
        frequency=frequency,
        form_factor=form_factor,
        mem_type=mem_type,
        extra_props=extra_props,
    )


def avg_frequency(frequencies: list[int]) -> int:
    if len(frequencies) == 0:
        return 0
    return sum(frequencies) // len(frequencies)


def _distinct(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


@dataclass(eq=True, frozen=True, unsafe_hash=False)
class Memory:
    """
    The memory inventory of one host, built from a single property snapshot.

    Like MemDevice the immutability is shallow: `devices` is a plain list
    that callers must not modify. Take a fresh snapshot instead.
    """

    devices: list[MemDevice] = field(default_factory=list)

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def from_properties(cls, props: dict[str, str], match: str = "exact") -> "Memory":
        count = resolve_device_count(props, match=match)
        devices = [MemDevice.from_properties(i, props) for i in range(count)]
        logger.info(f"[from_properties] - built {len(devices)} memory device(s)")
        return cls(devices=devices)

    @classmethod
    def probe(
        cls,
        syspath: str = DMI_SYSPATH,
        match: str = "exact",
        source: PropertySource | None = None,
    ) -> "Memory":
        """
        Take a fresh property snapshot and build the inventory from it.

        `source` is any iterable of (name, value) pairs; by default the udev
        properties of `syspath` are queried.
        """
        if source is None:
            source = UdevPropertySource(syspath=syspath)
        return cls.from_properties(collect_properties(source), match=match)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Memory":
        return from_dict(
            data_class=cls,
            data=data,
            config=Config(cast=[MemKind], strict=False),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for device in data["devices"]:
            kind = device["mem_type"]["kind"]
            device["mem_type"]["kind"] = kind.value
        return data

    def avg_frequency(self) -> int:
        return avg_frequency(
            [dev.frequency for dev in self.devices if dev.frequency is not None]
        )

    def mem_types(self) -> list[str]:
        return _distinct(str(dev.mem_type) for dev in self.devices)

    def form_factors(self) -> list[str]:
        return _distinct(
            dev.form_factor for dev in self.devices if dev.form_factor is not None
        )

    def manufacturers(self) -> list[str]:
        return _distinct(
            dev.manufacturer for dev in self.devices if dev.manufacturer is not None
        )

    def populated(self) -> list[MemDevice]:
        return [dev for dev in self.devices if dev.populated]

    def display_unit(self, used: float, total: float, unit: str) -> str:
        """
        Render "<used> / <total>" followed by the types, form factors and
        average frequency of the installed modules, skipping empty parts.
        """
        text = f"{used:.2f}{unit} / {total:.2f}{unit}"

        mem_types = self.mem_types()
        if mem_types:
            text += " " + ", ".join(mem_types)

        form_factors = self.form_factors()
        if form_factors:
            text += f" ({', '.join(form_factors)})"

        frequency = self.avg_frequency()
        if frequency != 0:
            text += f" @ {frequency} MHz"

        return text
