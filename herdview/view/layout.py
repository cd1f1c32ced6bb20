"""
Window Layout Engine - numbers a scene's camera windows.

Eligible sources (visible, of an allow-listed kind) are ranked:

1. by area, largest first, where areas within the fudge band of the
   band's largest member count as equal
2. then by distance from the canvas origin, with X scaled by 9/16
3. then by X, then by Y, then by name

Rank ``i`` becomes window slot ``i`` ("cam<i>"). The result never depends
on the order the sources are handed in.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from herdview.core.logging_utils import get_module_logger

from .models import Source, WindowSlot

logger = get_module_logger("WindowLayout")

DEFAULT_FUDGE_FACTOR = 0.8
ASPECT_CORRECTION = 9.0 / 16.0


class WindowLayoutEngine:

    def __init__(self, window_kinds: Iterable[str], fudge_factor: float = DEFAULT_FUDGE_FACTOR):
        if not 0.0 < fudge_factor <= 1.0:
            raise ValueError(f"fudge_factor must be in (0, 1], got {fudge_factor}")
        self.window_kinds = frozenset(window_kinds)
        self.fudge_factor = fudge_factor

    def accepts_kind(self, kind: str) -> bool:
        return kind in self.window_kinds

    def is_eligible(self, source: Source) -> bool:
        return source.enabled and self.accepts_kind(source.kind)

    @staticmethod
    def origin_distance(slot: WindowSlot) -> float:
        # squared; only the ordering matters
        x = slot.x * ASPECT_CORRECTION
        return x * x + slot.y * slot.y

    def _area_bands(self, sources: List[Source]) -> List[List[Source]]:
        """Group sources (sorted by area, descending) into tie bands.

        A band opens at its largest member; any later source whose area is
        at least ``fudge_factor`` times that member's joins it.
        """
        bands: List[List[Source]] = []
        band_area: Optional[float] = None
        for source in sources:
            area = source.geometry.area
            if band_area is not None and area >= band_area * self.fudge_factor:
                bands[-1].append(source)
                continue
            bands.append([source])
            band_area = area
        return bands

    def _tie_key(self, source: Source) -> Tuple[float, float, float, str]:
        geometry = source.geometry
        return (self.origin_distance(geometry), geometry.x, geometry.y, source.name)

    def rank(self, sources: Iterable[Source]) -> List[Source]:
        """Eligible sources in slot order."""
        eligible = [s for s in sources if self.is_eligible(s)]
        # full canonical key first, so band grouping sees a fixed order
        eligible.sort(key=lambda s: (-s.geometry.area,) + self._tie_key(s))

        ranked: List[Source] = []
        for band in self._area_bands(eligible):
            ranked.extend(sorted(band, key=self._tie_key))
        return ranked

    def compute(self, sources: Iterable[Source]) -> Tuple[List[WindowSlot], List[Optional[str]]]:
        """Return the parallel ``(windows, cams)`` lists for a scene."""
        ranked = self.rank(sources)
        windows = [source.geometry for source in ranked]
        cams: List[Optional[str]] = [source.name for source in ranked]
        logger.debug("Computed %d windows: %s", len(cams), cams)
        return windows, cams


__all__ = ["ASPECT_CORRECTION", "DEFAULT_FUDGE_FACTOR", "WindowLayoutEngine"]
