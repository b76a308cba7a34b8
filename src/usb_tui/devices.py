"""USB device records parsed from enumeration output."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from .osutils import DEFAULT_COMMAND, DEFAULT_TIMEOUT, EnumerationError, read_device_listing

LOGGER = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_FIELD = "???"
UNKNOWN_ID = "????:????"

# Indicator words for bootloader / firmware-update modes.
FIRMWARE_INDICATORS: tuple[str, ...] = ("dfu", "download", "boot")

_LINE_PATTERN = re.compile(
    r"^\s*bus\s+(?P<bus>\S+)\s+device\s+(?P<device>[^\s:]+)\s*:\s*id\s+(?P<id>\S+)(?:\s+(?P<name>.*))?$",
    re.IGNORECASE,
)
_ID_PATTERN = re.compile(r"^[0-9a-f]{1,4}:[0-9a-f]{1,4}$", re.IGNORECASE)


class DeviceKind(enum.Enum):
    NORMAL = "normal"
    FIRMWARE = "firmware"


@dataclass(frozen=True, slots=True)
class DeviceRecord:
    """One line of enumeration output."""

    bus: str
    device: str
    vendor_product_id: str
    description: str
    kind: DeviceKind = DeviceKind.NORMAL

    @property
    def vendor_id(self) -> str:
        return self.vendor_product_id.partition(":")[0]

    @property
    def product_id(self) -> str:
        return self.vendor_product_id.partition(":")[2]

    @property
    def is_firmware_mode(self) -> bool:
        return self.kind is DeviceKind.FIRMWARE

    @property
    def key(self) -> str:
        """Bus/device pair identifying the device within one listing."""
        return f"{self.bus}:{self.device}"

    @property
    def dev_path(self) -> str | None:
        if UNKNOWN_FIELD in (self.bus, self.device):
            return None
        return f"/dev/bus/usb/{self.bus}/{self.device}"


def classify_device(text: str) -> DeviceKind:
    """Return FIRMWARE if *text* mentions any firmware-mode indicator."""

    lowered = text.lower()
    if any(word in lowered for word in FIRMWARE_INDICATORS):
        return DeviceKind.FIRMWARE
    return DeviceKind.NORMAL


def _normalize_id(raw: str) -> str:
    if not _ID_PATTERN.match(raw):
        return UNKNOWN_ID
    return raw.lower()


def parse_device_line(line: str) -> DeviceRecord:
    """Parse a single enumeration line.

    Lines that do not look like ``Bus 001 Device 002: ID 1d6b:0002 Name`` still
    produce a record: bus/device/id are set to sentinels and the description
    holds the line unchanged.
    """

    match = _LINE_PATTERN.match(line)
    if match is None:
        return DeviceRecord(
            bus=UNKNOWN_FIELD,
            device=UNKNOWN_FIELD,
            vendor_product_id=UNKNOWN_ID,
            description=line,
            kind=classify_device(line),
        )
    name = (match.group("name") or "").strip() or UNKNOWN_NAME
    return DeviceRecord(
        bus=match.group("bus"),
        device=match.group("device"),
        vendor_product_id=_normalize_id(match.group("id")),
        description=name,
        kind=classify_device(name),
    )


def parse_device_listing(output: str) -> list[DeviceRecord]:
    """Parse enumeration *output* into records, one per non-blank line, in order."""

    return [parse_device_line(line) for line in output.splitlines() if line.strip()]


def filter_devices(devices: Iterable[DeviceRecord], firmware_only: bool) -> list[DeviceRecord]:
    """Return *devices* in their original order, keeping only firmware-mode ones if requested."""

    if not firmware_only:
        return list(devices)
    return [device for device in devices if device.kind is DeviceKind.FIRMWARE]


def count_firmware(devices: Iterable[DeviceRecord]) -> int:
    return sum(1 for device in devices if device.kind is DeviceKind.FIRMWARE)


def fetch_devices(
    command: Sequence[str] = DEFAULT_COMMAND,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[DeviceRecord]:
    """Run the enumeration command and parse its output.

    A failing command yields an empty list rather than an exception.
    """

    try:
        output = read_device_listing(command, timeout=timeout)
    except EnumerationError as exc:
        LOGGER.debug("Enumeration failed: %s", exc)
        return []
    return parse_device_listing(output)


__all__ = [
    "DeviceKind",
    "DeviceRecord",
    "FIRMWARE_INDICATORS",
    "UNKNOWN_FIELD",
    "UNKNOWN_ID",
    "UNKNOWN_NAME",
    "classify_device",
    "count_firmware",
    "fetch_devices",
    "filter_devices",
    "parse_device_line",
    "parse_device_listing",
]
