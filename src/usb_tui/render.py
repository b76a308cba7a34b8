"""Render-state derivation for the device table.

Everything here is pure: the same devices, counts and width always produce the
same :class:`RenderState`, which keeps the widgets dumb and the output easy to
snapshot in tests.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Sequence

from rich.cells import cell_len, set_cell_size
from rich.text import Text

from .devices import DeviceRecord
from .stats import RefreshStats

BUS_WIDTH = 5
ID_WIDTH = 11
NAME_MIN_WIDTH = 30
COLUMN_GAP = " "
ELLIPSIS = "…"
RULE = "─"

TITLE = "USB Devices"
EMPTY_PLACEHOLDER = "No USB devices found"
EMPTY_FILTERED_PLACEHOLDER = "No DFU devices found"
NO_SELECTION = "No device selected"
DFU_MARKER = "⚡ DFU Mode"


class RowStyle(enum.Enum):
    EMPHASIZED = "emphasized"
    DIMMED = "dimmed"


@dataclass(frozen=True, slots=True)
class RenderStyles:
    """Rich style strings used when colorizing the table."""

    title: str = "bold deep_sky_blue1"
    muted: str = "dim"
    badge: str = "bold bright_white on magenta"
    header: str = "bold"
    rule: str = "dim"
    emphasized: str = "bold bright_yellow"
    bus: str = "dim"
    device_id: str = "cyan"
    selected: str = "bold on grey23"
    placeholder: str = "dim"
    label: str = "dim"
    path: str = "green"
    indicator: str = "green"
    latency_ok: str = "green"
    latency_slow: str = "yellow"
    latency_bad: str = "red"


DEFAULT_STYLES = RenderStyles()


@dataclass(frozen=True, slots=True)
class ColumnWidths:
    bus: int
    device_id: int
    name: int


def compute_column_widths(width: int) -> ColumnWidths:
    """Give the name column whatever *width* is left, but never less than the floor."""

    fixed = BUS_WIDTH + ID_WIDTH + 2 * len(COLUMN_GAP)
    return ColumnWidths(bus=BUS_WIDTH, device_id=ID_WIDTH, name=max(NAME_MIN_WIDTH, width - fixed))


def clip_cell(text: str, width: int) -> str:
    """Fit *text* into *width* terminal cells.

    Short text is padded; long text is cut to ``width - 1`` cells plus an
    ellipsis. Wide (e.g. CJK) characters count as two cells.
    """

    if width <= 0:
        return ""
    if cell_len(text) > width:
        return set_cell_size(text, width - 1) + ELLIPSIS
    return set_cell_size(text, width)


@dataclass(frozen=True, slots=True)
class RenderRow:
    """Display-ready cells for one device."""

    bus: str
    vendor_product_id: str
    name: str
    style: RowStyle
    selected: bool = False

    def plain(self) -> str:
        return COLUMN_GAP.join((self.bus, self.vendor_product_id, self.name))

    def to_text(self, styles: RenderStyles = DEFAULT_STYLES) -> Text:
        text = Text(no_wrap=True, overflow="crop")
        if self.style is RowStyle.EMPHASIZED:
            text.append(self.plain(), style=styles.emphasized)
        else:
            text.append(self.bus, style=styles.bus)
            text.append(COLUMN_GAP)
            text.append(self.vendor_product_id, style=styles.device_id)
            text.append(COLUMN_GAP)
            text.append(self.name)
        if self.selected:
            text.stylize(styles.selected)
        return text


@dataclass(frozen=True, slots=True)
class RenderState:
    """Everything the widgets need for one frame."""

    title: Text
    table_header: Text
    rows: tuple[RenderRow, ...]
    placeholder: str | None
    summary: str
    widths: ColumnWidths
    details: Text
    selected_index: int | None = None
    styles: RenderStyles = DEFAULT_STYLES

    def body(self) -> Text:
        if self.placeholder is not None:
            text = Text(no_wrap=True, overflow="crop")
            text.append(self.placeholder, style=self.styles.placeholder)
            return text
        body = Text("\n").join(row.to_text(self.styles) for row in self.rows)
        body.no_wrap = True
        body.overflow = "crop"
        return body


def resolve_selection(
    devices: Sequence[DeviceRecord],
    selected_key: str | None,
    previous_index: int | None,
) -> int | None:
    """Index of the selected device in *devices*.

    The device with *selected_key* wins; if it is gone the previous index is
    kept, clamped to the new list.
    """

    if not devices:
        return None
    if selected_key is not None:
        for index, device in enumerate(devices):
            if device.key == selected_key:
                return index
    if previous_index is None:
        return 0
    return min(max(previous_index, 0), len(devices) - 1)


def build_device_details(device: DeviceRecord | None, styles: RenderStyles = DEFAULT_STYLES) -> Text:
    """Labelled fields for the selected *device*."""

    details = Text()
    if device is None:
        details.append(NO_SELECTION, style=styles.placeholder)
        return details
    fields = (
        ("Name", device.description, "bold"),
        ("ID", device.vendor_product_id, styles.device_id),
        ("Bus", device.bus, None),
        ("Device", device.device, None),
        ("Vendor", device.vendor_id, None),
        ("Product", device.product_id, None),
        ("Path", device.dev_path or "--", styles.path),
    )
    for index, (label, value, style) in enumerate(fields):
        if index:
            details.append("\n")
        details.append(label.ljust(9), style=styles.label)
        details.append(value, style=style)
    if device.is_firmware_mode:
        details.append("\n")
        details.append(DFU_MARKER, style=styles.emphasized)
    return details


def build_row(device: DeviceRecord, widths: ColumnWidths, *, selected: bool = False) -> RenderRow:
    return RenderRow(
        bus=clip_cell(device.bus, widths.bus),
        vendor_product_id=clip_cell(device.vendor_product_id, widths.device_id),
        name=clip_cell(device.description, widths.name),
        style=RowStyle.EMPHASIZED if device.is_firmware_mode else RowStyle.DIMMED,
        selected=selected,
    )


def _build_title(
    summary: str,
    *,
    firmware_count: int,
    filter_active: bool,
    styles: RenderStyles,
) -> Text:
    title = Text()
    title.append(TITLE, style=styles.title)
    title.append("  ")
    title.append(f"({summary})", style=styles.muted)
    if firmware_count > 0:
        title.append("  ")
        title.append(f" {firmware_count} DFU ", style=styles.badge)
    if filter_active:
        title.append("  ")
        title.append("DFU only", style=styles.emphasized)
    return title


def _build_table_header(widths: ColumnWidths, styles: RenderStyles) -> Text:
    header = Text(no_wrap=True, overflow="crop")
    labels = (clip_cell("BUS", widths.bus), clip_cell("ID", widths.device_id), clip_cell("NAME", widths.name))
    header.append(COLUMN_GAP.join(labels), style=styles.header)
    header.append("\n")
    rules = (RULE * widths.bus, RULE * widths.device_id, RULE * widths.name)
    header.append(COLUMN_GAP.join(rules), style=styles.rule)
    return header


def build_render_state(
    devices: Sequence[DeviceRecord],
    *,
    total: int,
    width: int,
    firmware_count: int = 0,
    filter_active: bool = False,
    selected_index: int | None = None,
    styles: RenderStyles = DEFAULT_STYLES,
) -> RenderState:
    """Build the frame for the already-filtered *devices*.

    *total* is the unfiltered device count used for the summary and
    *firmware_count* the number of attached firmware-mode devices.
    *selected_index* points into *devices*; out-of-range values select nothing.
    """

    widths = compute_column_widths(width)
    summary = f"{len(devices)}/{total}"
    if selected_index is not None and not 0 <= selected_index < len(devices):
        selected_index = None
    rows = tuple(
        build_row(device, widths, selected=index == selected_index)
        for index, device in enumerate(devices)
    )
    placeholder = None
    if not rows:
        placeholder = EMPTY_FILTERED_PLACEHOLDER if filter_active else EMPTY_PLACEHOLDER
    selected = devices[selected_index] if selected_index is not None else None
    return RenderState(
        title=_build_title(summary, firmware_count=firmware_count, filter_active=filter_active, styles=styles),
        table_header=_build_table_header(widths, styles),
        rows=rows,
        placeholder=placeholder,
        summary=summary,
        widths=widths,
        details=build_device_details(selected, styles),
        selected_index=selected_index,
        styles=styles,
    )


def format_status(stats: RefreshStats, now: float, styles: RenderStyles = DEFAULT_STYLES) -> Text:
    """Status line with refresh counters, latency, uptime and peak device count."""

    latency_ms = stats.last_duration * 1000.0
    if latency_ms < 10.0:
        latency_style = styles.latency_ok
    elif latency_ms < 50.0:
        latency_style = styles.latency_slow
    else:
        latency_style = styles.latency_bad
    status = Text()
    status.append("●" if stats.refresh_count % 2 == 0 else "○", style=styles.indicator)
    status.append(f" {stats.refresh_count} refreshes ")
    status.append(f"({stats.refresh_rate(now):.1f}/s)", style=styles.muted)
    status.append("  latency ")
    status.append(f"{latency_ms:.2f}ms", style=latency_style)
    status.append(f"  uptime {stats.format_uptime(now)}")
    status.append(f"  peak {stats.peak_devices} devices", style=styles.muted)
    return status


__all__ = [
    "BUS_WIDTH",
    "ColumnWidths",
    "DEFAULT_STYLES",
    "DFU_MARKER",
    "ELLIPSIS",
    "EMPTY_FILTERED_PLACEHOLDER",
    "EMPTY_PLACEHOLDER",
    "ID_WIDTH",
    "NAME_MIN_WIDTH",
    "NO_SELECTION",
    "RenderRow",
    "RenderState",
    "RenderStyles",
    "RowStyle",
    "build_device_details",
    "build_render_state",
    "build_row",
    "clip_cell",
    "compute_column_widths",
    "format_status",
    "resolve_selection",
]
