#!/usr/bin/env python3
"""
ADS-B Braille Radar
Live terminal radar for aircraft near a point, with pan, zoom and labels
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from typing import Dict, Optional

import colorama

from adsb_api import AIRPORTS, ADSBFeedClient, DemoFeedClient, airport_position
from adsb_data import Position, Snapshot
from config import DEFAULT_CONFIG_FILE, load_config
from errors import FeedTimeout, LockFailure, ParseFailed, RequestFailed, TerminalIOFailure
from radar_geometry import pan_deltas
from radar_renderer import RadarRenderer
from radar_state import Lifecycle, RadarConfig, RadarState
from terminal_handler import CLEAR_SCREEN, KeyEvent, ResizeEvent, ScrollEvent, Terminal

logger = logging.getLogger(__name__)

QUIT_KEYS = {'q', 'esc', 'delete', 'end', 'ctrl-c'}

# key -> (rows north, columns east)
PAN_KEYS = {
    'up': (1, 0), 'w': (1, 0),
    'down': (-1, 0), 's': (-1, 0),
    'left': (0, -1), 'a': (0, -1),
    'right': (0, 1), 'd': (0, 1),
}

ZOOM_IN_FACTOR = 0.8
ZOOM_OUT_FACTOR = 1.25
MIN_RADIUS = 0.5  # nautical miles
MIN_POLL_INTERVAL = 0.1  # seconds


def pan(config: RadarConfig, rows: int, cols: int):
    """Move the origin by whole rows/columns of screen space"""
    lat_per_row, lon_per_col = pan_deltas(config)
    config.origin = Position(config.origin.lat + rows * lat_per_row,
                             config.origin.lon + cols * lon_per_col)


def zoom(config: RadarConfig, factor: float):
    config.radius = max(MIN_RADIUS, config.radius * factor)


class ADSBRadarApp:
    """Runs the poller, input handler and renderer against one shared RadarState"""

    def __init__(self, state: RadarState, feed, terminal: Terminal,
                 renderer: Optional[RadarRenderer] = None):
        self.state = state
        self.feed = feed
        self.terminal = terminal
        self.renderer = renderer or RadarRenderer()
        self.events: Optional[asyncio.Queue] = None
        self.needs_clear = False

    def request_shutdown(self):
        """Shared path for quit keys and signals"""
        if self.state.shutdown():
            self.terminal.restore()

    async def _pace(self, started: float, interval: float):
        """Sleep for what is left of interval since started"""
        remaining = interval - (time.monotonic() - started)
        if remaining > 0:
            await asyncio.sleep(remaining)

    # --- Poller ---

    async def poll_once(self) -> bool:
        """
        Fetch one snapshot and publish it.

        Returns True when a snapshot was published. FeedTimeout propagates so
        the caller can retry without waiting.
        """
        config = self.state.config_copy()
        try:
            objects = await self.feed.fetch(config.origin.lat, config.origin.lon,
                                            config.radius, config.effective_timeout)
        except RequestFailed as e:
            logger.warning(f"Skipping poll cycle: {e}")
            return False
        except ParseFailed as e:
            logger.error(f"Skipping poll cycle, bad feed payload: {e}")
            return False

        published = self.state.publish(Snapshot.capture(objects))
        if published:
            logger.info(f"Published snapshot with {len(objects)} aircraft")
        return published

    async def poll_loop(self):
        while self.state.is_running():
            started = time.monotonic()
            try:
                await self.poll_once()
            except FeedTimeout as e:
                logger.debug(f"{e}, retrying")
                await asyncio.sleep(0)
                continue
            await self._pace(started, self.state.config_copy().poll_interval)

    # --- Input handler ---

    def handle_event(self, event) -> bool:
        """Apply one input event; returns True when it changed anything"""
        if isinstance(event, KeyEvent):
            key = event.key.lower() if len(event.key) == 1 else event.key
            if key in QUIT_KEYS:
                self.request_shutdown()
                return True
            if key in PAN_KEYS:
                rows, cols = PAN_KEYS[key]
                return self.state.update_config(lambda config: pan(config, rows, cols))
            if key == 'r':
                start = self.state.start_origin
                return self.state.update_config(lambda config: setattr(config, 'origin', start))
            return False

        if isinstance(event, ScrollEvent):
            factor = ZOOM_IN_FACTOR if event.direction < 0 else ZOOM_OUT_FACTOR
            return self.state.update_config(lambda config: zoom(config, factor))

        if isinstance(event, ResizeEvent):
            if event.cols <= 0 or event.rows <= 0:
                return False

            def resize(config: RadarConfig):
                config.terminal_cols = event.cols
                config.terminal_rows = event.rows

            changed = self.state.update_config(resize)
            if changed:
                self.needs_clear = True
                logger.info(f"Terminal resized to {event.cols}x{event.rows}")
            return changed

        logger.debug(f"Ignoring input event {event!r}")
        return False

    async def input_loop(self):
        while self.state.is_running():
            interval = self.state.config_copy().input_interval
            try:
                event = await asyncio.wait_for(self.events.get(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            self.handle_event(event)

    def on_resize(self):
        cols, rows = self.terminal.size()
        self.events.put_nowait(ResizeEvent(cols, rows))

    # --- Renderer ---

    def render_frame(self) -> bool:
        """Draw one frame; returns False once shutdown has started"""
        view = self.state.view()
        if view.lifecycle is not Lifecycle.RUNNING:
            return False
        frame = self.renderer.render_to_string(view)
        if self.needs_clear:
            frame = CLEAR_SCREEN + frame
            self.needs_clear = False
        self.terminal.write(frame)
        self.terminal.flush()
        return True

    async def render_loop(self):
        while True:
            started = time.monotonic()
            if not self.render_frame():
                break
            await self._pace(started, self.state.config_copy().frame_interval)

    # --- Lifecycle ---

    async def _supervise(self):
        tasks = [
            asyncio.ensure_future(self.poll_loop()),
            asyncio.ensure_future(self.input_loop()),
            asyncio.ensure_future(self.render_loop()),
        ]
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    error = task.exception()
                    if error is not None:
                        raise error
                if not self.state.is_running():
                    break
        finally:
            self.state.shutdown()
            # Anything still running (an in-flight fetch, a pacing sleep) is abandoned
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> bool:
        try:
            loop.add_signal_handler(signal.SIGINT, self.request_shutdown)
            loop.add_signal_handler(signal.SIGTERM, self.request_shutdown)
            loop.add_signal_handler(signal.SIGWINCH, self.on_resize)
        except (NotImplementedError, RuntimeError, AttributeError) as e:
            logger.warning(f"Signal handlers unavailable: {e}")
            return False
        return True

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop):
        for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGWINCH):
            loop.remove_signal_handler(sig)

    async def run(self, install_signals: bool = True):
        """Run all actors until shutdown; the terminal is restored on every exit path"""
        loop = asyncio.get_running_loop()
        self.events = asyncio.Queue()
        signals_installed = False

        async with self.feed:
            try:
                self.terminal.enter()
                self.terminal.start_reader(loop, self.events)
                if install_signals:
                    signals_installed = self._install_signal_handlers(loop)
                await self._supervise()
            finally:
                if signals_installed:
                    self._remove_signal_handlers(loop)
                self.terminal.stop_reader(loop)
                self.state.shutdown()
                self.terminal.restore()


def build_radar_config(radar: Dict, cols: int, rows: int,
                       request_timeout: Optional[float] = None) -> RadarConfig:
    """RadarConfig from the 'radar' settings section and the terminal size"""
    origin = None
    if radar.get('airport'):
        origin = airport_position(radar['airport'])
        if origin is None:
            raise ValueError(f"Unknown airport code: {radar['airport']}")
    if origin is None:
        origin = Position(float(radar['latitude']), float(radar['longitude']))

    radius = float(radar['radius'])
    if radius <= 0:
        raise ValueError("Radius must be positive")

    frame_interval = float(radar['frame_interval'])
    input_interval = float(radar['input_interval'])
    if frame_interval <= 0 or input_interval <= 0:
        raise ValueError("frame_interval and input_interval must be positive")
    if request_timeout is not None and float(request_timeout) <= 0:
        raise ValueError("request_timeout must be positive")

    return RadarConfig(
        origin=origin,
        radius=max(MIN_RADIUS, radius),
        poll_interval=max(MIN_POLL_INTERVAL, float(radar['poll_interval'])),
        frame_interval=frame_interval,
        input_interval=input_interval,
        terminal_cols=cols,
        terminal_rows=rows,
        label_label_force=float(radar['label_label_force']),
        label_point_force=float(radar['label_point_force']),
        label_snap_radius=float(radar['label_snap_radius']),
        history_capacity=int(radar['history_capacity']),
        request_timeout=None if request_timeout is None else float(request_timeout),
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="ADS-B Braille Radar - live aircraft radar in the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --demo                         # Simulated traffic, no network
  python main.py --airport JFK --radius 30      # Center on a known airport
  python main.py --lat 51.47 --lon -0.4543      # Center on a coordinate
  python main.py --config my_radar.yaml -v      # Custom config, verbose log

Keys: arrows/WASD pan, mouse wheel zooms, r re-centers, q/Esc quits
        """
    )

    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE,
                        help='YAML config file')
    parser.add_argument('--airport', type=str.upper, choices=sorted(AIRPORTS),
                        help='Center on a known airport')
    parser.add_argument('--lat', type=float, help='Center latitude')
    parser.add_argument('--lon', type=float, help='Center longitude')
    parser.add_argument('--radius', type=float,
                        help='Display radius in nautical miles')
    parser.add_argument('--interval', type=float,
                        help='Seconds between feed requests')
    parser.add_argument('--fps', type=float,
                        help='Frames per second')
    parser.add_argument('--url', type=str,
                        help='Feed URL template with {lat}, {lon} and {radius}')
    parser.add_argument('--demo', action='store_true',
                        help='Run with simulated aircraft')
    parser.add_argument('--speed', type=float, default=1.0,
                        help='Movement speed multiplier for demo mode')
    parser.add_argument('--log-file', type=str,
                        help='Write the log here instead of the configured file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be given together")
    if args.fps is not None and args.fps <= 0:
        parser.error("--fps must be positive")
    return args


def apply_overrides(settings: Dict, args: argparse.Namespace) -> Dict:
    """Fold command line flags into the loaded settings"""
    radar = settings['radar']
    if args.lat is not None:
        radar['airport'] = None
        radar['latitude'] = args.lat
        radar['longitude'] = args.lon
    elif args.airport:
        radar['airport'] = args.airport
    if args.radius is not None:
        radar['radius'] = args.radius
    if args.interval is not None:
        radar['poll_interval'] = max(MIN_POLL_INTERVAL, args.interval)
    if args.fps is not None:
        radar['frame_interval'] = 1.0 / args.fps
    if args.url:
        settings['feed']['api_url'] = args.url
    if args.log_file:
        settings['display']['log_file'] = args.log_file
    return settings


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    try:
        settings = apply_overrides(load_config(args.config), args)
    except (ValueError, OSError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    # The terminal belongs to the display, so the log goes to a file
    logging.basicConfig(
        filename=settings['display']['log_file'],
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    terminal = Terminal()
    cols, rows = terminal.size()
    try:
        config = build_radar_config(settings['radar'], cols, rows,
                                    settings['feed'].get('request_timeout'))
        state = RadarState(config)
    except (KeyError, TypeError, ValueError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    if args.demo:
        feed = DemoFeedClient(config.origin, speed_multiplier=args.speed)
    else:
        feed = ADSBFeedClient(settings['feed']['api_url'])

    colorama.init()
    app = ADSBRadarApp(state, feed, terminal, RadarRenderer(settings['display']))
    logger.info(f"Starting radar at {config.origin.lat},{config.origin.lon} "
                f"radius {config.radius}nm, {cols}x{rows}")

    try:
        asyncio.run(app.run())
    except (TerminalIOFailure, LockFailure) as e:
        logger.error(f"Fatal radar error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Application error: {e}")
        return 1
    finally:
        terminal.restore()
        colorama.deinit()

    return 0


if __name__ == "__main__":
    sys.exit(main())
