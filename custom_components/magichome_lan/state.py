"""Cached light state and the pending target of unapplied host requests."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, NamedTuple

from .color import HSL, RGB, WhiteValues, clamp, rgb_to_hsl, whites_to_color_temperature
from .const import OperatingMode
from .protocol import DeviceState


class _UnsetType:
    """Marks a pending field with no request since the last commit."""

    _instance: _UnsetType | None = None

    def __new__(cls) -> _UnsetType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _UnsetType()


@dataclass
class PendingTarget:
    """Sparse set of requested changes.

    A field holding UNSET has not been requested; any other value (including
    0 and False) is a real request.
    """

    hue: Any = UNSET
    saturation: Any = UNSET
    luminance: Any = UNSET
    brightness: Any = UNSET
    mode: Any = UNSET
    on: Any = UNSET
    color_temperature: Any = UNSET

    def set_fields(self) -> set[str]:
        """Return the names of the requested fields."""
        return {f.name for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        """Return True if nothing is requested."""
        return not self.set_fields()

    def merge(self, delta: PendingTarget) -> None:
        """Overwrite fields with the ones requested in delta (last wins)."""
        for name in delta.set_fields():
            setattr(self, name, getattr(delta, name))

    def copy(self) -> PendingTarget:
        """Return an independent copy."""
        return replace(self)

    def clear(self) -> None:
        """Reset every field to UNSET."""
        for f in fields(self):
            setattr(self, f.name, UNSET)

    def discard(self, applied: PendingTarget) -> None:
        """Clear the fields that still hold the values in applied.

        Fields re-requested with a different value since applied was taken
        are kept for the next commit.
        """
        for name in applied.set_fields():
            if getattr(self, name) == getattr(applied, name):
                setattr(self, name, UNSET)


class LightReport(NamedTuple):
    """Refreshed state pushed to the host after a read-back."""

    is_on: bool
    hue: float
    saturation: float
    brightness: int
    color_temperature_mired: int | None


@dataclass
class LightState:
    """Last known state of one bulb."""

    is_on: bool = True
    operating_mode: OperatingMode = OperatingMode.COLOR
    hsl: HSL = HSL(0, 100, 50)
    rgb: RGB = RGB(0, 0, 0)
    white_values: WhiteValues = WhiteValues(0, 0)
    color_temperature_mired: int | None = None
    brightness: int = 100
    pending: PendingTarget = field(default_factory=PendingTarget)
    snapshot: HSL | None = None

    def refresh_brightness(self) -> int:
        """Recompute brightness from luminance and power state."""
        if self.is_on and self.hsl.luminance > 0:
            self.brightness = round(clamp(self.hsl.luminance * 2, 0, 100))
        else:
            self.brightness = 0
        return self.brightness

    def apply_device_state(self, device_state: DeviceState) -> None:
        """Overwrite the authoritative fields from a genuine device read."""
        self.rgb = device_state.rgb
        self.white_values = device_state.white_values
        self.is_on = device_state.is_on
        self.operating_mode = device_state.operating_mode
        self.color_temperature_mired = whites_to_color_temperature(
            *device_state.white_values
        )
        if self.operating_mode is OperatingMode.COLOR:
            self.hsl = rgb_to_hsl(*device_state.rgb)
        else:
            # White bank: color channels are dark, so keep the last hue and
            # saturation and take luminance from the brighter white channel.
            luminance = max(device_state.white_values) / 255 * 50
            self.hsl = self.hsl._replace(luminance=luminance)
        self.refresh_brightness()

    def report(self) -> LightReport:
        """Build the host-facing view of this state."""
        return LightReport(
            is_on=self.is_on,
            hue=round(self.hsl.hue, 1),
            saturation=round(self.hsl.saturation, 1),
            brightness=self.brightness,
            color_temperature_mired=self.color_temperature_mired,
        )

    def cache_snapshot(self) -> HSL:
        """Save the current HSL for a later restore."""
        self.snapshot = self.hsl
        return self.snapshot

    def restore_snapshot(self) -> HSL | None:
        """Put back the saved HSL, if any."""
        if self.snapshot is not None:
            self.hsl = self.snapshot
        return self.snapshot
