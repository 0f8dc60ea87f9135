"""Visible state of the screen over time

The screen of the replayed terminal is sampled at irregular instants. This
module turns the successive samples into, for each visual unit, an ordered
list of time intervals during which the unit displayed a given value:
    - `Timeline` is the generic recorder, the value of a unit can be
    anything comparable
    - `RowRecorder` tracks two timelines per row of the screen, one for the
    text and its attributes (`row_text`) and one for the background colors
    (`row_background`)
    - `CellRecorder` tracks every character cell individually
"""
from collections import defaultdict, namedtuple
from itertools import groupby
from operator import attrgetter

_Cell = namedtuple('_Cell', ['char', 'foreground', 'background', 'bold',
                             'underline'])
# Set default values for last 4 arguments
_Cell.__new__.__defaults__ = ('foreground', 'background', False, False)


class Cell(_Cell):
    """Character cell of the screen

    char: Character displayed in the cell ('' for the right half of a
          double width character)
    foreground: Color reference of the text
    background: Color reference of the background
    bold: Bold flag
    underline: Underline flag

    Color references are either 'foreground' or 'background' for the default
    colors of the terminal, 'color0' to 'color15' for the 16 indexed colors
    or an hexadecimal code such as '#a8a8a8' for any other color.
    """
    __slots__ = ()

    def is_blank(self):
        return self == BLANK_CELL


BLANK_CELL = Cell(' ')

TimedInterval = namedtuple('TimedInterval', ['value', 'begin', 'end'])
TimedInterval.__doc__ = 'Value displayed by a visual unit from begin to end'
TimedInterval.end.__doc__ = 'End of the interval or None if still open'

TextRun = namedtuple('TextRun', ['text', 'color', 'bold', 'underline'])
TextRun.__doc__ = 'Consecutive characters of a row sharing the same style'

BackgroundRun = namedtuple('BackgroundRun', ['start', 'end', 'color'])
BackgroundRun.__doc__ = 'Consecutive columns [start, end) of a row sharing ' \
                        'the same background color'

DEFAULT_STYLE = ('foreground', False, False)


class Timeline:
    """Record the successive values of a collection of visual units

    For each unit, intervals are ordered by begin time and never overlap.
    Only the last interval of a unit may be open. Values for which
    `is_default` returns True are not recorded: the absence of interval
    means nothing is displayed.
    """
    def __init__(self, is_default=None):
        if is_default is None:
            is_default = _is_empty
        self.is_default = is_default
        self._intervals = defaultdict(list)

    def observe(self, unit, value, now):
        """Record that `unit` displays `value` at time `now`"""
        intervals = self._intervals[unit]
        if intervals and intervals[-1].end is None:
            last = intervals[-1]
            if last.value == value:
                return
            if now < last.begin:
                raise ValueError('Observations must be chronologically '
                                 'sorted ({} < {})'.format(now, last.begin))
            intervals.pop()
            if now > last.begin:
                intervals.append(last._replace(end=now))

        if not self.is_default(value):
            intervals.append(TimedInterval(value, now, None))

    def finalize(self, now):
        """Close every open interval at time `now`"""
        for intervals in self._intervals.values():
            if intervals and intervals[-1].end is None:
                last = intervals.pop()
                if now < last.begin:
                    raise ValueError('Cannot close an interval before it '
                                     'begins ({} < {})'.format(now, last.begin))
                if now > last.begin:
                    intervals.append(last._replace(end=now))

    def intervals(self, unit):
        return list(self._intervals.get(unit, ()))

    def units(self):
        return sorted(unit for unit, intervals in self._intervals.items()
                      if intervals)

    def __iter__(self):
        for unit in self.units():
            yield unit, self._intervals[unit]

    def __len__(self):
        return sum(len(intervals) for intervals in self._intervals.values())


def _is_empty(value):
    return not value


def row_text(cells):
    """Return the text layer of a row as a tuple of TextRun

    Spaces do not change the current style so that a row is split in as few
    runs as possible. As a consequence, spaces following underlined text are
    underlined too, up to the next character using another style or up to
    the end of the row. Trailing spaces are only dropped when the last run is
    not underlined. An empty tuple is returned for a blank row.

    :param cells: Sequence of Cell making up the row
    """
    runs = []
    chars = []
    style = DEFAULT_STYLE
    blank = True
    for cell in cells:
        if cell.char == ' ':
            chars.append(' ')
            continue
        if not cell.char:
            # Right half of a double width character
            continue

        blank = False
        cell_style = (cell.foreground, cell.bold, cell.underline)
        if cell_style != style:
            if chars:
                runs.append(TextRun(''.join(chars), *style))
            chars = []
            style = cell_style
        chars.append(cell.char)

    if blank:
        return ()

    last_run = TextRun(''.join(chars), *style)
    if not last_run.underline:
        last_run = last_run._replace(text=last_run.text.rstrip(' '))
    runs.append(last_run)
    return tuple(runs)


def row_background(cells):
    """Return the background layer of a row as a tuple of BackgroundRun

    Consecutive cells with the same background color are grouped in a single
    run. Runs of the default background color are omitted.

    :param cells: Sequence of Cell making up the row
    """
    runs = []
    column = 0
    for color, group in groupby(cells, key=attrgetter('background')):
        length = sum(1 for _ in group)
        if color != 'background':
            runs.append(BackgroundRun(column, column + length, color))
        column += length

    return tuple(runs)


class RowRecorder:
    """Record the text and background layers of each row of the screen

    A change in any cell of a row results in a single new interval for the
    row instead of one per cell.
    """
    def __init__(self):
        self.text = Timeline()
        self.background = Timeline()

    def sample(self, grid, now):
        """Observe every row of `grid` (a sequence of rows of Cell)"""
        for row, cells in enumerate(grid):
            self.text.observe(row, row_text(cells), now)
            self.background.observe(row, row_background(cells), now)

    def finalize(self, now):
        self.text.finalize(now)
        self.background.finalize(now)


class CellRecorder:
    """Record each character cell of the screen independently"""
    def __init__(self):
        self.cells = Timeline(is_default=Cell.is_blank)

    def sample(self, grid, now):
        for row, cells in enumerate(grid):
            for column, cell in enumerate(cells):
                self.cells.observe((row, column), cell, now)

    def finalize(self, now):
        self.cells.finalize(now)
