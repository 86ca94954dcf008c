"""
Radar Renderer
Draws one frame of the radar: border and title, braille aircraft markers,
labels and the center indicator
"""

import logging
import time
from typing import Dict, List, Optional, Sequence

from colorama import Fore, Style

from adsb_data import Position, TrackedObject
from braille import composite, group_by_cell
from config import DISPLAY_CONFIG
from errors import InvalidCoordinate
from label_engine import place_labels
from radar_geometry import APPROX_EQUAL_DISTANCE, approx_equal, clamp_cell, project
from radar_state import RadarConfig, RadarView
from terminal_handler import move_to

logger = logging.getLogger(__name__)

CENTER_SYMBOL = '+'

# Arrow for (north/south, east/west) sign of the offset back to the start origin
CENTER_ARROWS = {
    (1, 0): '↑',
    (1, 1): '↗',
    (0, 1): '→',
    (-1, 1): '↘',
    (-1, 0): '↓',
    (-1, -1): '↙',
    (0, -1): '←',
    (1, -1): '↖',
    (0, 0): CENTER_SYMBOL,
}

HELP_TEXT = ' arrows/wasd pan | scroll zoom | r recenter | q quit '

COLOR_CODES = {
    'black': Fore.BLACK,
    'red': Fore.RED,
    'green': Fore.GREEN,
    'yellow': Fore.YELLOW,
    'blue': Fore.BLUE,
    'magenta': Fore.MAGENTA,
    'cyan': Fore.CYAN,
    'white': Fore.WHITE,
}


def _sign(value: float, threshold: float) -> int:
    if value > threshold:
        return 1
    if value < -threshold:
        return -1
    return 0


def center_indicator(origin: Position, start_origin: Position, distance_per_degree: float) -> str:
    """'+' while centered on the start origin, otherwise an arrow pointing back to it"""
    if approx_equal(origin, start_origin, distance_per_degree):
        return CENTER_SYMBOL
    north = _sign((start_origin.lat - origin.lat) * distance_per_degree, APPROX_EQUAL_DISTANCE)
    east = _sign((start_origin.lon - origin.lon) * distance_per_degree, APPROX_EQUAL_DISTANCE)
    return CENTER_ARROWS[(north, east)]


class RadarRenderer:
    """Renders a radar view into a character grid and then into terminal output"""

    def __init__(self, display_config: Optional[Dict] = None):
        self.display = display_config or DISPLAY_CONFIG
        self.colors = self.display.get('colors', DISPLAY_CONFIG['colors'])
        self.use_colors = self.display.get('use_colors', True)
        self.title = self.display.get('title', DISPLAY_CONFIG['title'])
        self.cols = 0
        self.rows = 0
        self.grid: List[List[str]] = []
        self.color_grid: List[List[Optional[str]]] = []

    def clear_grid(self, cols: int, rows: int):
        """Reset the grid to blanks at the given size"""
        self.cols = max(0, cols)
        self.rows = max(0, rows)
        self.grid = [[' ' for _ in range(self.cols)] for _ in range(self.rows)]
        self.color_grid = [[None for _ in range(self.cols)] for _ in range(self.rows)]

    def put(self, col: int, row: int, char: str, color: Optional[str] = None):
        if 0 <= col < self.cols and 0 <= row < self.rows:
            self.grid[row][col] = char
            self.color_grid[row][col] = color

    def put_text(self, col: int, row: int, text: str, color: Optional[str] = None):
        for offset, char in enumerate(text):
            self.put(col + offset, row, char, color)

    def is_interior(self, col: int, row: int) -> bool:
        """Inside the border"""
        return 1 <= col <= self.cols - 2 and 1 <= row <= self.rows - 2

    def render_border(self, title: str):
        """Box-drawing frame with the title in the top edge and key help in the bottom edge"""
        if self.cols < 2 or self.rows < 2:
            return
        color = self.colors.get('border')
        right, bottom = self.cols - 1, self.rows - 1

        for col in range(1, right):
            self.put(col, 0, '─', color)
            self.put(col, bottom, '─', color)
        for row in range(1, bottom):
            self.put(0, row, '│', color)
            self.put(right, row, '│', color)
        self.put(0, 0, '┌', color)
        self.put(right, 0, '┐', color)
        self.put(0, bottom, '└', color)
        self.put(right, bottom, '┘', color)

        room = self.cols - 4
        if room > 0:
            self.put_text(2, 0, title[:room], self.colors.get('title'))
        if len(HELP_TEXT) <= room:
            self.put_text(self.cols - 2 - len(HELP_TEXT), bottom, HELP_TEXT, color)

    def render_markers(self, objects: Sequence[TrackedObject], config: RadarConfig) -> int:
        """
        Draw every aircraft as a braille dot, merging aircraft that share a cell.

        Aircraft that project outside the frame are not drawn.

        Returns:
            Number of cells drawn
        """
        points = []
        for tracked in objects:
            try:
                col, row = project(tracked.position, config)
                cell = clamp_cell(col, row, config)
            except (InvalidCoordinate, ArithmeticError) as e:
                logger.debug(f"Skipping marker at {tracked.position}: {e}")
                continue
            if self.is_interior(*cell) and cell == (int(col), int(row)):
                points.append((cell, (col, row)))

        cells = group_by_cell(points)
        color = self.colors.get('marker')
        for (col, row), cell_points in cells.items():
            self.put(col, row, composite(cell_points), color)
        return len(cells)

    def render_labels(self, objects: Sequence[TrackedObject], config: RadarConfig) -> int:
        """Draw decluttered labels; returns how many were placed"""
        try:
            placed = place_labels(objects, config)
        except InvalidCoordinate as e:
            logger.warning(f"Label placement skipped: {e}")
            return 0

        color = self.colors.get('label')
        for label in placed:
            for col, row, char in label.draw_ops():
                if self.is_interior(col, row):
                    self.put(col, row, char, color)
        return len(placed)

    def render_center(self, config: RadarConfig, start_origin: Position):
        """Center indicator, drawn only when no marker or label occupies the center cell"""
        col, row = clamp_cell(config.terminal_cols / 2, config.terminal_rows / 2, config)
        if not self.is_interior(col, row) or self.grid[row][col] != ' ':
            return
        symbol = center_indicator(config.origin, start_origin, config.distance_per_degree)
        self.put(col, row, symbol, self.colors.get('center'))

    def build_title(self, view: RadarView, now: Optional[float] = None) -> str:
        config = view.config
        snapshot = view.snapshot
        if snapshot.captured_at:
            now = time.time() if now is None else now
            age = f"{max(0.0, now - snapshot.captured_at):.0f}s ago"
        else:
            age = "waiting for data"
        return (f" {self.title} | {config.radius:.1f}nm | "
                f"{config.origin.lat:.4f},{config.origin.lon:.4f} | "
                f"{len(snapshot)} aircraft | {age} ")

    def compose(self, view: RadarView, now: Optional[float] = None) -> List[List[str]]:
        """Fill the grid for one frame and return it"""
        config = view.config
        self.clear_grid(config.terminal_cols, config.terminal_rows)
        if self.cols < 3 or self.rows < 3:
            return self.grid

        objects = view.snapshot.objects
        self.render_border(self.build_title(view, now))
        self.render_markers(objects, config)
        self.render_labels(objects, config)
        self.render_center(config, view.start_origin)
        return self.grid

    def get_color_code(self, color_name: Optional[str]) -> str:
        """Convert color name to ANSI color code"""
        if not self.use_colors or color_name is None:
            return ''
        return COLOR_CODES.get(color_name, '')

    def render_line(self, row: int) -> str:
        """One grid row with color codes, switching color only between runs"""
        line = ''
        current = ''
        for char, color in zip(self.grid[row], self.color_grid[row]):
            code = self.get_color_code(color)
            if code != current:
                line += Style.RESET_ALL if not code else code
                current = code
            line += char
        if current:
            line += Style.RESET_ALL
        return line

    def render_to_string(self, view: RadarView, now: Optional[float] = None) -> str:
        """Render the complete frame as absolutely positioned rows"""
        self.compose(view, now)
        return ''.join(move_to(0, row) + self.render_line(row) for row in range(self.rows))

    def text_rows(self) -> List[str]:
        """Grid rows as plain strings, without colors"""
        return [''.join(row) for row in self.grid]
