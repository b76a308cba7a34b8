"""Refresh counters shown in the status line."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RefreshStats:
    """Aggregate numbers about completed scans; no per-device history."""

    started_at: float
    refresh_count: int = 0
    last_duration: float = 0.0
    peak_devices: int = 0

    def record(self, device_count: int, duration: float) -> None:
        self.refresh_count += 1
        self.last_duration = duration
        self.peak_devices = max(self.peak_devices, device_count)

    def uptime(self, now: float) -> float:
        return max(0.0, now - self.started_at)

    def format_uptime(self, now: float) -> str:
        secs = int(self.uptime(now))
        hours, rem = divmod(secs, 3600)
        mins, secs = divmod(rem, 60)
        if hours:
            return f"{hours:02d}:{mins:02d}:{secs:02d}"
        return f"{mins:02d}:{secs:02d}"

    def refresh_rate(self, now: float) -> float:
        elapsed = self.uptime(now)
        if elapsed <= 0.0:
            return 0.0
        return self.refresh_count / elapsed
