#!/usr/bin/env python3
"""
=============================================================================
little-bat - Minimal Terminal Battery Display
=============================================================================

Description:
    Shows the host's battery charge and charging state centered in the
    terminal, redrawn once per second until you quit. Uses curses for the
    display and psutil for battery telemetry.

Features:
    - Charge percentage colored by level (green > 50%, yellow > 20%, red)
    - Optional 10-cell bar graphic
    - Optional "Battery" label and charging state line
    - "No battery found" on desktops or when the battery cannot be read

Data Sources:
    - psutil.sensors_battery()          : Charge percentage and AC status
    - /sys/class/power_supply/*/status  : Exact charging state (Linux)
    - pmset -g batt                     : Exact charging state (macOS)

Usage:
    little-bat [-g|--graphic] [-l|--label]

Controls:
    q, Q, Esc : Quit the application
    Ctrl+C    : Exit

Requirements:
    - Python 3.9+
    - psutil (plus windows-curses on Windows)

=============================================================================
"""

import argparse
import curses
import enum
import locale
import logging
import math
import re
import subprocess
import sys
from collections import namedtuple
from pathlib import Path

import psutil

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


# =============================================================================
# Data Model
# =============================================================================

class PowerState(enum.Enum):
    CHARGING = "charging"
    DISCHARGING = "discharging"
    FULL = "full"
    EMPTY = "empty"
    UNKNOWN = "unknown"


class Tone(enum.Enum):
    """Abstract text colors, mapped to curses attributes at draw time."""
    HEALTHY = "green"
    WARNING = "yellow"
    CRITICAL = "red"
    MUTED = "dim"
    PLAIN = "default"


BatteryStatus = namedtuple("BatteryStatus", ["charge", "state"])
DisplayConfig = namedtuple("DisplayConfig", ["graphic", "label"])
Span = namedtuple("Span", ["text", "tone"])


class BatteryError(Exception):
    """Base class for battery telemetry failures."""


class BatteryUnavailableError(BatteryError):
    """The platform offers no way to query batteries at all."""


class BatteryReadError(BatteryError):
    """A single battery query failed."""


# =============================================================================
# Shell Command Execution
# =============================================================================

def run_cmd(cmd, timeout=5):
    """
    Execute a shell command and return its stdout.

    Args:
        cmd (str): Shell command to execute
        timeout (float): Seconds to wait before giving up

    Returns:
        str: Command stdout, or empty string on error/timeout
    """
    try:
        result = subprocess.run(cmd, shell=True, capture_output=True, text=True, timeout=timeout)
        return result.stdout
    except subprocess.TimeoutExpired:
        return ""
    except OSError:
        return ""


# =============================================================================
# Battery Reader
# =============================================================================

# pmset runs every tick, so it must not outlast the key wait
PMSET_TIMEOUT = 0.5

SYSFS_POWER_SUPPLY = Path("/sys/class/power_supply")

SYSFS_STATES = {
    "Charging": PowerState.CHARGING,
    "Discharging": PowerState.DISCHARGING,
    "Full": PowerState.FULL,
    "Empty": PowerState.EMPTY,
}


def read_sysfs_state(root=SYSFS_POWER_SUPPLY):
    """
    Read the charging state of the first battery under /sys/class/power_supply.

    Returns:
        PowerState or None: None when no battery device or status file exists
    """
    try:
        devices = sorted(root.iterdir())
    except OSError:
        return None

    for device in devices:
        try:
            if (device / "type").read_text().strip() != "Battery":
                continue
            status = (device / "status").read_text().strip()
        except OSError:
            continue
        return SYSFS_STATES.get(status, PowerState.UNKNOWN)
    return None


def parse_pmset_state(output):
    """
    Derive the charging state from `pmset -g batt` output.

    pmset reports e.g. "85%; charging; 1:02 remaining" or
    "100%; charged; 0:00 remaining present: true".

    Returns:
        PowerState or None: None when pmset lists no internal battery
    """
    if not re.search(r'\d+%', output):
        return None

    lowered = output.lower()
    if 'discharging' in lowered:
        return PowerState.DISCHARGING
    # "not charging" shows up when AC is attached but charging is paused
    if 'not charging' in lowered:
        return PowerState.UNKNOWN
    if 'charging' in lowered:
        return PowerState.CHARGING
    if 'charged' in lowered:
        return PowerState.FULL
    return PowerState.UNKNOWN


def state_from_plugged(percent, power_plugged):
    """Best-effort state when the OS only tells us whether AC is attached."""
    if power_plugged is None:
        return PowerState.UNKNOWN
    if power_plugged:
        return PowerState.FULL if percent >= 100 else PowerState.CHARGING
    return PowerState.EMPTY if percent <= 0 else PowerState.DISCHARGING


class BatteryReader:
    """
    Reads the primary battery through psutil.

    Raises:
        BatteryUnavailableError: If psutil has no battery support on this platform
    """

    def __init__(self):
        if not hasattr(psutil, "sensors_battery"):
            raise BatteryUnavailableError(
                f"battery information is not supported on {sys.platform}")

    def read(self):
        """
        Query the current charge and state of the primary battery.

        Returns:
            BatteryStatus or None: None when no battery is installed

        Raises:
            BatteryReadError: If the OS query itself failed
        """
        try:
            batt = psutil.sensors_battery()
        except (OSError, psutil.Error) as exc:
            raise BatteryReadError(str(exc)) from exc

        if batt is None:
            return None

        state = self.read_state()
        if state is None:
            state = state_from_plugged(batt.percent, batt.power_plugged)
        return BatteryStatus(float(batt.percent), state)

    def read_state(self):
        """Exact charging state from the OS, or None if it cannot say."""
        if psutil.LINUX:
            return read_sysfs_state()
        if psutil.MACOS:
            return parse_pmset_state(run_cmd("pmset -g batt", timeout=PMSET_TIMEOUT))
        return None


# =============================================================================
# Presentation
# =============================================================================

BAR_CELLS = 10
BAR_FILL = '█'
BAR_EMPTY = '░'

NO_BATTERY_TEXT = "No battery found"
NO_BATTERY_BLOCK = ((Span(NO_BATTERY_TEXT, Tone.PLAIN),),)

STATE_TEXT = {
    PowerState.CHARGING: "Charging",
    PowerState.DISCHARGING: "Discharging",
    PowerState.FULL: "Full",
    PowerState.EMPTY: "Empty",
}


def round_half_up(value):
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    magnitude = abs(value)
    whole = math.floor(magnitude)
    if magnitude - whole >= 0.5:
        whole += 1
    return int(math.copysign(whole, value))


def charge_tone(charge):
    if charge > 50.0:
        return Tone.HEALTHY
    if charge > 20.0:
        return Tone.WARNING
    return Tone.CRITICAL


def state_text(state):
    return STATE_TEXT.get(state, "Unknown")


def bar_cells(charge):
    """
    Split the bar into filled and empty cells.

    Returns:
        tuple: (filled, empty), always summing to BAR_CELLS
    """
    filled = max(0, min(BAR_CELLS, round_half_up(charge / 10.0)))
    return filled, BAR_CELLS - filled


def make_bar(charge):
    """
    Build the bracketed bar graphic.

    Example:
        >>> make_bar(75)
        '[████████░░]'
    """
    filled, empty = bar_cells(charge)
    return "[" + BAR_FILL * filled + BAR_EMPTY * empty + "]"


def format_percent(charge):
    return f"{round_half_up(charge)}%"


def format_battery(charge, state, config):
    """
    Turn one battery reading into the lines of a frame.

    Args:
        charge (float): Charge percentage (0-100)
        state (PowerState): Current charging state
        config (DisplayConfig): Display flags

    Returns:
        tuple: Lines, each a tuple of Span
    """
    tone = charge_tone(charge)
    lines = []

    if config.label:
        lines.append((Span("Battery", Tone.PLAIN),))

    if config.graphic:
        lines.append((Span(make_bar(charge), tone),))

    lines.append((Span(format_percent(charge), tone),))

    if config.label:
        lines.append((Span(state_text(state), Tone.MUTED),))

    return tuple(lines)


def build_block(status, config):
    if status is None:
        return NO_BATTERY_BLOCK
    return format_battery(status.charge, status.state, config)


# =============================================================================
# Layout / Rendering
# =============================================================================

BLOCK_PADDING = 2


def line_width(line):
    return sum(len(span.text) for span in line)


def block_size(block):
    """Return (height, width) of a block, width including side padding."""
    width = max((line_width(line) for line in block), default=0)
    return len(block), width + BLOCK_PADDING


def centered_rect(rows, cols, height, width):
    """
    Center a height x width rectangle in a rows x cols screen.

    A block larger than the screen is clipped to it and anchored at the
    top-left corner on that axis.

    Returns:
        tuple: (y, x, height, width)
    """
    height = min(height, rows)
    width = min(width, cols)
    return (rows - height) // 2, (cols - width) // 2, height, width


def init_palette():
    """
    Set up curses color pairs and map every Tone to a curses attribute.

    Must be called after curses has been initialized.
    """
    palette = {tone: curses.A_NORMAL for tone in Tone}
    palette[Tone.MUTED] = curses.A_DIM
    if not curses.has_colors():
        return palette

    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(1, curses.COLOR_GREEN, -1)   # Green - healthy charge
    curses.init_pair(2, curses.COLOR_YELLOW, -1)  # Yellow - warning
    curses.init_pair(3, curses.COLOR_RED, -1)     # Red - critical

    palette[Tone.HEALTHY] = curses.color_pair(1)
    palette[Tone.WARNING] = curses.color_pair(2)
    palette[Tone.CRITICAL] = curses.color_pair(3)
    return palette


def draw_block(screen, block, palette):
    """
    Clear the screen and paint the block centered, one frame.

    Text falling outside the screen is clipped. The last column is never
    written since curses errors on the bottom-right cell.
    """
    screen.erase()
    rows, cols = screen.getmaxyx()
    usable_cols = cols - 1
    height, width = block_size(block)
    top, left, height, width = centered_rect(rows, usable_cols, height, width)

    for row, line in enumerate(block[:height]):
        x = left + (width - line_width(line)) // 2
        for span in line:
            if x >= usable_cols:
                break
            start = max(x, 0)
            text = span.text[start - x:usable_cols - x]
            if text:
                screen.addstr(top + row, start, text, palette[span.tone])
            x += len(span.text)

    screen.refresh()


# =============================================================================
# Event Loop
# =============================================================================

POLL_TIMEOUT_MS = 1000
KEY_ESCAPE = 27
QUIT_KEYS = frozenset({ord('q'), ord('Q'), KEY_ESCAPE})


class KeyKind(enum.Enum):
    PRESS = "press"
    REPEAT = "repeat"
    RELEASE = "release"


KeyEvent = namedtuple("KeyEvent", ["code", "kind"])


def is_quit(event):
    """Only a genuine press of q/Q/Esc quits; repeats and releases never do."""
    return event.kind is KeyKind.PRESS and event.code in QUIT_KEYS


def wait_for_key(screen, timeout_ms=POLL_TIMEOUT_MS):
    """
    Block for up to timeout_ms waiting for a key.

    curses only reports key presses, so everything it returns is a PRESS.

    Returns:
        KeyEvent or None: None if the timeout elapsed
    """
    screen.timeout(timeout_ms)
    key = screen.getch()
    if key == -1:
        return None
    return KeyEvent(key, KeyKind.PRESS)


def read_status(reader):
    """Read the battery, collapsing read failures into "no battery"."""
    try:
        return reader.read()
    except BatteryReadError as exc:
        logger.debug("battery read failed: %s", exc)
        return None


def run_loop(screen, reader, config, palette):
    """
    Draw, wait up to a second for input, repeat until a quit key is pressed.

    Args:
        screen: Curses window (or anything with the same drawing methods)
        reader (BatteryReader): Battery source
        config (DisplayConfig): Display flags
        palette (dict): Tone -> curses attribute
    """
    while True:
        block = build_block(read_status(reader), config)
        draw_block(screen, block, palette)

        event = wait_for_key(screen)
        if event is not None and is_quit(event):
            logger.debug("quit key %r pressed", event.code)
            return


def setup_screen(stdscr):
    """Prepare the curses window for the display and return the palette."""
    try:
        curses.curs_set(0)  # Hide cursor
    except curses.error:
        pass  # Terminal cannot hide the cursor
    stdscr.keypad(True)
    curses.set_escdelay(25)
    return init_palette()


def show_battery(stdscr, reader, config):
    """curses.wrapper target: owns the terminal for the loop's lifetime."""
    palette = setup_screen(stdscr)
    run_loop(stdscr, reader, config, palette)


# =============================================================================
# Configuration
# =============================================================================

def build_parser():
    parser = argparse.ArgumentParser(
        prog="little-bat",
        description="A minimal TUI battery status display",
    )
    parser.add_argument(
        "-g", "--graphic", action="store_true",
        help="show a battery bar graphic instead of just the percentage",
    )
    parser.add_argument(
        "-l", "--label", action="store_true",
        help='show a "Battery" label and the charging status',
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv=None):
    """Parse command-line flags into a DisplayConfig."""
    args = build_parser().parse_args(argv)
    return DisplayConfig(graphic=args.graphic, label=args.label)


# =============================================================================
# Main Entry Point
# =============================================================================

def main(argv=None):
    """
    Application entry point.

    Resolves flags and the battery backend before touching the terminal,
    then hands the terminal to curses.wrapper, which restores it on every
    exit path.

    Returns:
        int: Process exit code
    """
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(name)s: %(message)s")
    config = parse_args(argv)

    try:
        reader = BatteryReader()
    except BatteryUnavailableError as exc:
        logger.error("cannot read battery: %s", exc)
        return 1

    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error as exc:
        logger.warning("falling back to the C locale: %s", exc)
    try:
        curses.wrapper(show_battery, reader, config)
    except KeyboardInterrupt:
        pass
    except curses.error as exc:
        logger.error("terminal error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
