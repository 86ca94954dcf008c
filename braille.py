"""
Braille compositing: several sub-cell points sharing one terminal cell become
a single 2x4 dot braille glyph.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

BRAILLE_BASE = 0x2800

# BRAILLE_DOTS[row][col] for a 2-wide x 4-tall cell
BRAILLE_DOTS = [
    [0x01, 0x08],
    [0x02, 0x10],
    [0x04, 0x20],
    [0x40, 0x80],
]

Point = Tuple[float, float]


def _fraction(value: float) -> float:
    return value - math.floor(value)


def dot_bit(col: float, row: float) -> int:
    """Bit of the dot a sub-cell point falls on"""
    dot_col = min(int(_fraction(col) * 2), 1)
    dot_row = min(int(_fraction(row) * 4), 3)
    return BRAILLE_DOTS[dot_row][dot_col]


def composite(points: Iterable[Point]) -> str:
    """
    Merge points that share a cell into one braille glyph.

    Points landing on the same dot cannot be told apart.
    """
    mask = 0
    count = 0
    for col, row in points:
        mask |= dot_bit(col, row)
        count += 1
    if not count:
        raise ValueError("Cannot composite an empty cell")
    return chr(BRAILLE_BASE + mask)


def group_by_cell(points: Iterable[Tuple[Tuple[int, int], Point]]) -> Dict[Tuple[int, int], List[Point]]:
    """Group (cell, sub-cell point) pairs by cell"""
    cells = defaultdict(list)
    for cell, point in points:
        cells[cell].append(point)
    return dict(cells)
