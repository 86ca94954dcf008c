"""
Label placement for tracked aircraft.

Each label starts one cell up and to the right of its marker and is pushed
away from nearby markers (and from labels already placed this frame) by an
inverse-distance force. The direction it ends up pushed picks one of four
quadrants around the marker. This is a single relaxation step per label, not
an iterative solver; labels that would leave the frame margin or cover a
marker or another label are dropped.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from adsb_data import Label, TrackedObject
from errors import InvalidCoordinate
from radar_geometry import clamp_cell, project
from radar_state import RadarConfig

logger = logging.getLogger(__name__)

# Labels must keep this many cells clear of every frame edge
LABEL_MARGIN = 3

# Repellers closer than this (squared cells) are ignored
MIN_SQUARED_DISTANCE = 0.1


class Quadrant(Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def is_top(self) -> bool:
        return self in (Quadrant.TOP_LEFT, Quadrant.TOP_RIGHT)

    @property
    def is_right(self) -> bool:
        return self in (Quadrant.TOP_RIGHT, Quadrant.BOTTOM_RIGHT)

    @property
    def connector(self) -> str:
        # The connector leans from the marker toward the text
        return '/' if self.is_top == self.is_right else '\\'

    @classmethod
    def from_displacement(cls, dx: float, dy: float) -> 'Quadrant':
        """Rows grow downward, so a negative dy means up; zero picks top-right"""
        if dy <= 0:
            return cls.TOP_RIGHT if dx >= 0 else cls.TOP_LEFT
        return cls.BOTTOM_RIGHT if dx >= 0 else cls.BOTTOM_LEFT


@dataclass(frozen=True)
class PlacedLabel:
    """A label block; bounds are inclusive and include the connector column"""
    quadrant: Quadrant
    left: int
    top: int
    lines: Tuple[str, ...]

    @property
    def width(self) -> int:
        return len(self.lines[0]) if self.lines else 0

    @property
    def height(self) -> int:
        return len(self.lines)

    @property
    def right(self) -> int:
        return self.left + self.width - 1

    @property
    def bottom(self) -> int:
        return self.top + self.height - 1

    @property
    def anchor(self) -> Tuple[int, int]:
        """Cell holding the connector glyph"""
        col = self.left if self.quadrant.is_right else self.right
        row = self.bottom if self.quadrant.is_top else self.top
        return col, row

    def contains(self, cell: Tuple[int, int]) -> bool:
        col, row = cell
        return self.left <= col <= self.right and self.top <= row <= self.bottom

    def overlaps(self, other: 'PlacedLabel') -> bool:
        return not (self.right < other.left or other.right < self.left or
                    self.bottom < other.top or other.bottom < self.top)

    def draw_ops(self) -> List[Tuple[int, int, str]]:
        """(column, row, character) for every visible character"""
        ops = []
        for row_offset, line in enumerate(self.lines):
            for col_offset, char in enumerate(line):
                if char != ' ':
                    ops.append((self.left + col_offset, self.top + row_offset, char))
        return ops


def layout_label(cell: Tuple[int, int], label: Label, quadrant: Quadrant) -> Optional[PlacedLabel]:
    """
    Build the text block for a label on one side of a marker.

    The block sits diagonally off the marker with the connector filling the
    gap cell. Text is left-justified on the right side and right-justified on
    the left side. Returns None for a label with no populated fields.
    """
    fields = label.fields()
    if not fields:
        return None

    col, row = cell
    width = label.width
    height = len(fields)
    nearest = height - 1 if quadrant.is_top else 0

    lines = []
    for index, text in enumerate(fields):
        connector = quadrant.connector if index == nearest else ' '
        if quadrant.is_right:
            lines.append(connector + text.ljust(width))
        else:
            lines.append(text.rjust(width) + connector)

    left = col + 1 if quadrant.is_right else col - 1 - width
    top = row - height if quadrant.is_top else row + 1
    return PlacedLabel(quadrant, left, top, tuple(lines))


def within_margin(placed: PlacedLabel, config: RadarConfig) -> bool:
    return (placed.left >= LABEL_MARGIN and
            placed.top >= LABEL_MARGIN and
            placed.right <= config.terminal_cols - 1 - LABEL_MARGIN and
            placed.bottom <= config.terminal_rows - 1 - LABEL_MARGIN)


def _repel(pushed: Tuple[float, float], source: Tuple[float, float], force: float) -> Tuple[float, float]:
    dx = source[0] - pushed[0]
    dy = source[1] - pushed[1]
    squared = dx * dx + dy * dy
    if squared <= MIN_SQUARED_DISTANCE:
        return pushed
    return pushed[0] - force * dx / squared, pushed[1] - force * dy / squared


def choose_quadrant(index: int, points: Sequence[Optional[Tuple[float, float]]],
                    placed: Sequence[PlacedLabel], config: RadarConfig) -> Quadrant:
    """Single relaxation step for the label of points[index]"""
    origin = points[index]
    pushed = (origin[0] + 1.0, origin[1] - 1.0)

    for other_index, other in enumerate(points):
        if other_index == index or other is None:
            continue
        pushed = _repel(pushed, other, config.label_point_force)

    snap_squared = config.label_snap_radius ** 2
    for other_label in placed:
        anchor = other_label.anchor
        dx = anchor[0] - pushed[0]
        dy = anchor[1] - pushed[1]
        if dx * dx + dy * dy <= snap_squared:
            pushed = _repel(pushed, anchor, config.label_label_force)

    return Quadrant.from_displacement(pushed[0] - origin[0], pushed[1] - origin[1])


def place_labels(objects: Sequence[TrackedObject], config: RadarConfig) -> List[PlacedLabel]:
    """
    Place a label for every object that has room for one.

    Objects whose position cannot be projected are skipped without affecting
    the others.
    """
    points: List[Optional[Tuple[float, float]]] = []
    cells: List[Optional[Tuple[int, int]]] = []
    for tracked in objects:
        try:
            point = project(tracked.position, config)
            cell = clamp_cell(point[0], point[1], config)
        except (InvalidCoordinate, ArithmeticError) as e:
            logger.debug(f"Cannot project {tracked.position}: {e}")
            point, cell = None, None
        points.append(point)
        cells.append(cell)

    marker_cells = [cell for cell in cells if cell is not None]
    placed: List[PlacedLabel] = []

    for index, tracked in enumerate(objects):
        if cells[index] is None or not tracked.label.height:
            continue
        try:
            quadrant = choose_quadrant(index, points, placed, config)
        except ArithmeticError as e:
            logger.debug(f"Label relaxation failed for {tracked.position}: {e}")
            continue

        candidate = layout_label(cells[index], tracked.label, quadrant)
        if candidate is None or not within_margin(candidate, config):
            continue
        if any(candidate.contains(cell) for cell in marker_cells):
            continue
        if any(candidate.overlaps(other) for other in placed):
            continue
        placed.append(candidate)

    return placed
