"""
Geographic to terminal coordinate conversion.

Columns grow eastward and rows grow southward, with the view origin at the
middle of the grid. ``project`` keeps the fractional part so braille dots can
be placed inside a cell; ``to_cell`` clamps and truncates to a cell index.
"""

import math
from typing import Tuple

from adsb_data import Position
from errors import InvalidCoordinate
from radar_state import DISTANCE_PER_DEGREE, RadarConfig

# Positions closer than this on both axes count as the same place (nm)
APPROX_EQUAL_DISTANCE = 0.1


def scale_factors(config: RadarConfig) -> Tuple[float, float]:
    """
    Cells per degree along each axis.

    The radius maps to half the wider grid dimension. Rows are taller than
    columns, so the latitude axis is divided by the character aspect ratio.

    Returns:
        (columns per degree of longitude, rows per degree of latitude)
    """
    if not config.radius > 0:
        raise InvalidCoordinate(f"Radius must be positive, got {config.radius}")
    if config.terminal_cols <= 0 or config.terminal_rows <= 0:
        raise InvalidCoordinate(
            f"Empty grid {config.terminal_cols}x{config.terminal_rows}")

    half_span = max(config.terminal_cols, config.terminal_rows) / 2
    col_scale = half_span / config.radius * config.distance_per_degree
    row_scale = col_scale / config.char_aspect_ratio
    return col_scale, row_scale


def project(position: Position, config: RadarConfig) -> Tuple[float, float]:
    """Unclamped (column, row) of a position, with sub-cell precision"""
    col_scale, row_scale = scale_factors(config)
    delta_lat = position.lat - config.origin.lat
    delta_lon = position.lon - config.origin.lon

    col = config.terminal_cols / 2 + delta_lon * col_scale
    row = config.terminal_rows / 2 - delta_lat * row_scale
    return col, row


def clamp_cell(col: float, row: float, config: RadarConfig) -> Tuple[int, int]:
    """Clamp a projected point to the grid and truncate it to a cell"""
    if math.isnan(col) or math.isnan(row):
        raise InvalidCoordinate(f"Projection is not a number: ({col}, {row})")

    col = max(0, min(config.terminal_cols, col))
    row = max(0, min(config.terminal_rows, row))
    return int(col), int(row)


def to_cell(position: Position, config: RadarConfig) -> Tuple[int, int]:
    """Cell (column, row) of a position, clamped to [0, cols] x [0, rows]"""
    col, row = project(position, config)
    return clamp_cell(col, row, config)


def approx_equal(a: Position, b: Position,
                 distance_per_degree: float = DISTANCE_PER_DEGREE) -> bool:
    """True when both axis deltas are under APPROX_EQUAL_DISTANCE"""
    return (abs(a.lat - b.lat) * distance_per_degree < APPROX_EQUAL_DISTANCE and
            abs(a.lon - b.lon) * distance_per_degree < APPROX_EQUAL_DISTANCE)


def pan_deltas(config: RadarConfig) -> Tuple[float, float]:
    """Degrees covered by one row and by one column: (lat per row, lon per col)"""
    col_scale, row_scale = scale_factors(config)
    return 1.0 / row_scale, 1.0 / col_scale
