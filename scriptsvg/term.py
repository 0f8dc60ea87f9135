"""Replay of a recorded terminal session

This module exposes:
    - `TerminalEmulator`, a thin wrapper around pyte which interprets the
    data written to the terminal and reports the content of the screen cell
    by cell (`rescan`)
    - `replay`, which feeds a typescript to the emulator following the
    timing records and decides when the screen is sampled
    - `record_session`, which combines both to compute the timeline of the
    rows of the screen
"""
import logging
from collections import namedtuple

import pyte
import pyte.graphics

from scriptsvg.timeline import Cell, RowRecorder
from scriptsvg.typescript import read_chunks, skip_header

logger = logging.getLogger(__name__)

# Replace the first 16 colors rgb values by their names so that scriptsvg can
# distinguish FG_BG_256[0] (which defaults to black #000000 but is styled by
# the theme) from FG_BG_256[16] (which is also black #000000 but should be
# displayed as is).
_COLORS = ['black', 'red', 'green', 'brown', 'blue', 'magenta', 'cyan', 'white']
_BRIGHTCOLORS = ['bright{}'.format(color) for color in _COLORS]
NAMED_COLORS = _COLORS + _BRIGHTCOLORS
pyte.graphics.FG_BG_256 = NAMED_COLORS + pyte.graphics.FG_BG_256[16:]

# Data written to the terminal separated by less than FRAME_INTERVAL seconds
# is rendered in a single frame
FRAME_INTERVAL = 0.01

# Time in seconds during which the last frame is displayed before the
# animation loops
FINAL_FRAME_DURATION = 1

BUFFER_SIZE = 1024

Session = namedtuple('Session', ['timeline', 'duration'])
Session.__doc__ = 'Finalized RowRecorder and duration of the animation loop'


def color_reference(color, default):
    """Convert a pyte color to a color reference

    :param color: Color of a pyte character ('default', color name or
    hexadecimal code)
    :param default: Color reference returned for the 'default' color
    """
    if color == 'default':
        return default
    if color in NAMED_COLORS:
        return 'color{}'.format(NAMED_COLORS.index(color))
    if len(color) == 6:
        # Raise ValueError if color is not an hexadecimal number
        int(color, 16)
        return '#{}'.format(color.lower())
    raise ValueError('Invalid color: {}'.format(color))


class TerminalEmulator:
    """Virtual terminal fed with the raw data written to a real terminal"""
    def __init__(self, columns, rows):
        self.screen = pyte.Screen(columns, rows)
        self.stream = pyte.ByteStream(self.screen)

    @property
    def geometry(self):
        return self.screen.columns, self.screen.lines

    def resize(self, columns, rows):
        self.screen.resize(lines=rows, columns=columns)

    def feed(self, data):
        logger.debug('[term input] %r', data)
        self.stream.feed(data)

    def rescan(self, callback):
        """Report every cell of the screen to `callback`

        callback is called with the arguments (column, row, char, foreground,
        background, bold, underline, inverse). The cell under the cursor is
        reported with its inverse flag toggled unless the cursor is hidden.
        """
        screen = self.screen
        cursor = None
        if not screen.cursor.hidden:
            cursor = (screen.cursor.x, screen.cursor.y)

        for row in range(screen.lines):
            line = screen.buffer[row]
            for column in range(screen.columns):
                char = line[column]
                inverse = char.reverse
                if (column, row) == cursor:
                    inverse = not inverse
                callback(column, row, char.data,
                         color_reference(char.fg, 'foreground'),
                         color_reference(char.bg, 'background'),
                         char.bold, char.underscore, inverse)


class ScreenGrid:
    """Rescan callback storing the cells of the screen in a grid"""
    def __init__(self, columns, rows):
        self.rows = [[Cell(' ')] * columns for _ in range(rows)]

    def __call__(self, column, row, char, foreground, background, bold,
                 underline, inverse):
        # Cells outside of the grid are ignored
        if not 0 <= row < len(self.rows):
            return
        if not 0 <= column < len(self.rows[row]):
            return

        if inverse:
            foreground, background = background, foreground
        self.rows[row][column] = Cell(char, foreground, background, bold,
                                      underline)


def replay(script_file, timings, emulator, sample, max_delay=None,
           buffer_size=BUFFER_SIZE):
    """Feed the typescript to the emulator and sample its screen

    Data written in quick succession is coalesced: the screen is sampled
    only once the output has been quiet for more than FRAME_INTERVAL
    seconds. The screen is always sampled at the end of the session.

    :param script_file: Typescript opened in binary mode, header included
    :param timings: Iterable of TimingRecord
    :param emulator: TerminalEmulator
    :param sample: Callable taking the current time in seconds, called each
    time the screen must be sampled
    :param max_delay: Maximum delay between two records in seconds (None for
    no maximum)
    :param buffer_size: Maximum number of bytes fed to the emulator at once
    :return: Time of the last sample
    """
    skip_header(script_file)

    time = 0
    last_sample = 0
    pending = None
    for record in timings:
        delay = record.delay
        if max_delay is not None:
            delay = min(delay, max_delay)

        if pending is None and time - last_sample > FRAME_INTERVAL:
            pending = time

        if pending is not None and time + delay > pending + FRAME_INTERVAL:
            logger.debug('[term sample] %.6f', time)
            sample(time)
            pending = None
            last_sample = time

        time += delay
        for data in read_chunks(script_file, record.byte_count, buffer_size):
            emulator.feed(data)

    logger.debug('[term sample] %.6f', time)
    sample(time)
    return time


def record_session(script_file, timings, columns, rows, max_delay=None):
    """Replay a session and return the timeline of the rows of the screen

    :param script_file: Typescript opened in binary mode
    :param timings: Iterable of TimingRecord
    :param columns: Width of the screen
    :param rows: Height of the screen
    :param max_delay: Maximum delay between two records in seconds
    :return: Session
    """
    emulator = TerminalEmulator(columns, rows)
    timeline = RowRecorder()
    sample_count = 0

    def sample(time):
        nonlocal sample_count
        grid = ScreenGrid(columns, rows)
        emulator.rescan(grid)
        timeline.sample(grid.rows, time)
        sample_count += 1

    last_sample = replay(script_file, timings, emulator, sample, max_delay)
    duration = last_sample + FINAL_FRAME_DURATION
    timeline.finalize(duration)
    logger.info('Replayed {:.3f}s of terminal session ({} frames)'
                .format(last_sample, sample_count))
    return Session(timeline, duration)
