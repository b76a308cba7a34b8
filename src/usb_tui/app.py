"""Textual entry point for usb-tui."""

from __future__ import annotations

import enum
import logging
import threading
from pathlib import Path
from time import monotonic
from typing import Sequence

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.events import Resize
from textual.geometry import Region
from textual.timer import Timer
from textual.widgets import Footer, Static

from .devices import DeviceRecord, count_firmware, fetch_devices, filter_devices
from .osutils import DEFAULT_COMMAND, DEFAULT_TIMEOUT
from .persistence import AppConfig, load_config, save_config
from .render import RenderState, build_render_state, format_status, resolve_selection
from .stats import RefreshStats

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.2
SCROLLBAR_WIDTH = 1
# Border and padding on each side of the content area, plus the scrollbar gutter.
TABLE_CHROME = 4 + SCROLLBAR_WIDTH


class LoopState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RENDERING = "rendering"


class TitlePanel(Static):
    """Title bar with device counts and the DFU badge."""

    DEFAULT_CSS = """
    TitlePanel {
        height: 3;
        border: round $accent;
        content-align: center middle;
    }
    """


class DeviceTableHeader(Static):
    DEFAULT_CSS = """
    DeviceTableHeader {
        height: 2;
    }
    """


class DeviceTableBody(Static):
    """Table rows, or a placeholder when nothing matches."""


class DeviceDetailPanel(Static):
    """Fields of the highlighted device."""

    DEFAULT_CSS = """
    DeviceDetailPanel {
        height: 10;
        border: round $accent;
        padding: 0 1;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "Details"


class StatusPanel(Static):
    DEFAULT_CSS = """
    StatusPanel {
        height: 1;
        padding: 0 1;
    }
    """


class UsbTuiApp(App[None]):
    """usb-tui Textual application shell."""

    CSS = f"""
    #content-area {{
        height: 1fr;
        border: round $panel;
        padding: 0 1;
    }}

    #table-scroll {{
        height: 1fr;
        scrollbar-gutter: stable;
        scrollbar-size-vertical: {SCROLLBAR_WIDTH};
    }}
    """

    BINDINGS = [
        Binding("d", "toggle_dfu_filter", "DFU filter", show=True),
        Binding("r", "refresh_devices", "Refresh", show=True),
        Binding("down,j", "select_next", "Next", show=False, priority=True),
        Binding("up,k", "select_previous", "Previous", show=False, priority=True),
        Binding("q", "quit", "Quit", show=True),
        Binding("escape", "quit", "Quit", show=False),
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        command: Sequence[str] = DEFAULT_COMMAND,
        interval: float = DEFAULT_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__()
        self._config_path = config_path
        self._config: AppConfig = load_config(config_path)
        self._command = tuple(command)
        self._scan_interval = interval
        self._scan_timeout = timeout
        self._state_lock = threading.Lock()
        self._loop_state = LoopState.IDLE
        self._mounted = False
        self._devices: list[DeviceRecord] = []
        self._selected_key: str | None = None
        self._selected_index: int | None = None
        self._scan_stats = RefreshStats(started_at=monotonic())
        self._scan_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        yield TitlePanel(id="title")
        with Vertical(id="content-area"):
            yield DeviceTableHeader(id="table-header")
            with VerticalScroll(id="table-scroll"):
                yield DeviceTableBody("Scanning for USB devices…", id="table-body")
        yield DeviceDetailPanel(id="details")
        yield StatusPanel(id="status")
        yield Footer()

    def on_mount(self) -> None:
        self._mounted = True
        self._redraw_devices()
        # Redraw again once layout has sized the table.
        self.call_after_refresh(self._redraw_devices)
        self._schedule_scan()
        self._scan_timer = self.set_interval(self._scan_interval, self._schedule_scan)

    def on_unmount(self) -> None:
        if self._scan_timer:
            self._scan_timer.stop()
        self._mounted = False

    def on_resize(self, event: Resize) -> None:
        if self._mounted:
            self.call_after_refresh(self._redraw_devices)

    @property
    def loop_state(self) -> LoopState:
        return self._loop_state

    @property
    def filter_dfu(self) -> bool:
        return self._config.filter_dfu

    @property
    def selected_device(self) -> DeviceRecord | None:
        visible = self._visible_devices()
        index = resolve_selection(visible, self._selected_key, self._selected_index)
        return visible[index] if index is not None else None

    def action_toggle_dfu_filter(self) -> None:
        self._config.filter_dfu = not self._config.filter_dfu
        LOGGER.info("DFU filter %s", "enabled" if self._config.filter_dfu else "disabled")
        self._persist_config()
        # Redraws from already-fetched data; the loop state is left untouched.
        if self._mounted:
            self._redraw_devices()

    def action_refresh_devices(self) -> None:
        LOGGER.debug("Manual refresh requested")
        self._schedule_scan()

    def action_select_next(self) -> None:
        self._move_selection(1)

    def action_select_previous(self) -> None:
        self._move_selection(-1)

    def _schedule_scan(self) -> bool:
        """Start a background scan unless one is already running."""
        with self._state_lock:
            if self._loop_state is not LoopState.IDLE:
                return False
            self._loop_state = LoopState.FETCHING
        threading.Thread(target=self._scan_worker, daemon=True).start()
        return True

    def _scan_worker(self) -> None:
        started = monotonic()
        devices: list[DeviceRecord] | None
        try:
            devices = fetch_devices(self._command, timeout=self._scan_timeout)
        except Exception:
            LOGGER.exception("Device scan failed; keeping previous listing")
            devices = None
        duration = monotonic() - started
        try:
            self.call_from_thread(self._complete_scan, devices, duration)
        except RuntimeError:
            # App is shutting down or not running.
            self._set_loop_state(LoopState.IDLE)

    def _complete_scan(self, devices: list[DeviceRecord] | None, duration: float) -> None:
        try:
            if devices is None:
                return
            # RENDERING covers scan results only; toggles and selection redraw in place.
            self._set_loop_state(LoopState.RENDERING)
            self._devices = devices
            self._scan_stats.record(len(devices), duration)
            if self._mounted:
                self._redraw_devices()
        finally:
            self._set_loop_state(LoopState.IDLE)

    def _set_loop_state(self, state: LoopState) -> None:
        with self._state_lock:
            self._loop_state = state

    def _visible_devices(self) -> list[DeviceRecord]:
        return filter_devices(self._devices, self._config.filter_dfu)

    def _sync_selection(self, visible: Sequence[DeviceRecord]) -> int | None:
        index = resolve_selection(visible, self._selected_key, self._selected_index)
        if index is not None:
            self._selected_index = index
            self._selected_key = visible[index].key
        return index

    def _move_selection(self, step: int) -> None:
        visible = self._visible_devices()
        index = self._sync_selection(visible)
        if index is None:
            return
        index = (index + step) % len(visible)
        self._selected_index = index
        self._selected_key = visible[index].key
        if self._mounted:
            self._redraw_devices()

    def _build_render_state(self, width: int) -> RenderState:
        visible = self._visible_devices()
        return build_render_state(
            visible,
            total=len(self._devices),
            width=width,
            firmware_count=count_firmware(self._devices),
            filter_active=self._config.filter_dfu,
            selected_index=self._sync_selection(visible),
        )

    def _redraw_devices(self) -> None:
        state = self._build_render_state(self._table_width())
        self._apply_render_state(state)

    def _table_width(self) -> int:
        scroll = self.query_one("#table-scroll", VerticalScroll)
        width = scroll.scrollable_content_region.width
        if width > 0:
            return width
        return max(0, self.size.width - TABLE_CHROME)

    def _apply_render_state(self, state: RenderState) -> None:
        self.query_one(TitlePanel).update(state.title)
        self.query_one(DeviceTableHeader).update(state.table_header)
        self.query_one(DeviceTableBody).update(state.body())
        self.query_one(DeviceDetailPanel).update(state.details)
        self.query_one(StatusPanel).update(format_status(self._scan_stats, monotonic()))
        if state.selected_index is not None:
            scroll = self.query_one("#table-scroll", VerticalScroll)
            region = Region(0, state.selected_index, 1, 1)
            self.call_after_refresh(scroll.scroll_to_region, region, animate=False)

    def _persist_config(self) -> None:
        try:
            save_config(self._config, self._config_path)
        except OSError as exc:
            LOGGER.warning("Could not save configuration: %s", exc)


def run(
    config_path: Path | None = None,
    *,
    command: Sequence[str] = DEFAULT_COMMAND,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """Convenience shim to launch the Textual app; returns the exit status."""

    app = UsbTuiApp(config_path=config_path, command=command, interval=interval, timeout=timeout)
    app.run()
    return app.return_code or 0


if __name__ == "__main__":
    raise SystemExit(run())
