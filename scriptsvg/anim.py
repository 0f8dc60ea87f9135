"""SVG rendering of the timeline of a terminal session

The animation does not rely on any script: each row of the screen is
rendered once per interval of its timeline as an hidden element which is
displayed during the interval by a SMIL <set> element. All <set> elements
begin relatively to the same element (the loop trigger) which restarts each
time the progress bar reaches its end, so the animation loops forever.
"""
import sys

from lxml import etree
from wcwidth import wcswidth

# Id of the element whose beginning starts all the animations of the document
LOOP_TRIGGER_ID = 'start'

# Id of the animation of the progress bar. The loop trigger restarts when
# this animation ends.
PROGRESS_ID = 'progress'

# XML namespaces
SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'

NAMESPACES = {
    'svg': SVG_NS,
    'xlink': XLINK_NS,
}


def _tag(name):
    return '{{{}}}{}'.format(SVG_NS, name)


def _milliseconds(seconds):
    return int(round(seconds * 1000))


def _clock_value(seconds):
    return '{}ms'.format(_milliseconds(seconds))


def _make_set_tag(begin, end):
    """Return a <set> element displaying its parent from `begin` to `end`

    Times are relative to the beginning of the loop trigger. Both ends are
    rounded to the millisecond before computing the duration so that an
    interval never ends after the beginning of the next one."""
    if end is None:
        raise ValueError('Cannot render an interval that was never closed')

    attributes = {
        'attributeName': 'display',
        'to': 'inline',
        'begin': '{}.begin+{}'.format(LOOP_TRIGGER_ID, _clock_value(begin)),
        'dur': '{}ms'.format(_milliseconds(end) - _milliseconds(begin)),
    }
    return etree.Element(_tag('set'), attributes)


def _is_rendered(interval):
    """Intervals shorter than a millisecond once rounded are not rendered"""
    return (interval.end is None
            or _milliseconds(interval.begin) < _milliseconds(interval.end))


def _color_attributes(color):
    """Use the theme classes for named colors and a fill for other ones"""
    if color.startswith('#'):
        return {'fill': color}
    return {'class': color}


def _style(configuration):
    font = configuration.font
    theme = configuration.theme
    rules = [
        """#screen {{
            font-family: '{family}', monospace;
            font-style: normal;
            font-size: {size}px;
        }}

        text {{
            dominant-baseline: text-before-edge;
            white-space: pre;
        }}
        """.format(family=font.family, size=font.size),
        '.foreground {{fill: {}}}'.format(theme.foreground),
        '.background {{fill: {}}}'.format(theme.background),
    ]
    for index, color in enumerate(theme.palette):
        rules.append('.color{} {{fill: {}}}'.format(index, color))

    return '\n'.join(rules)


def _render_header(configuration, width, height):
    """Return the root element with style and loop trigger"""
    font = configuration.font
    root = etree.Element(_tag('svg'), {
        'id': 'screen',
        'width': str(width + font.size + 1),
        'height': str(height + 1),
    }, nsmap={None: SVG_NS, 'xlink': XLINK_NS})

    defs = etree.SubElement(root, _tag('defs'))
    style = etree.SubElement(defs, _tag('style'), {'type': 'text/css'})
    style.text = etree.CDATA(_style(configuration))

    # The loop trigger is displayed at the beginning of the document and
    # every time the progress bar is full
    trigger = etree.SubElement(root, _tag('text'))
    etree.SubElement(trigger, _tag('set'), {
        'id': LOOP_TRIGGER_ID,
        'attributeName': 'visibility',
        'to': 'visible',
        'begin': '0s; {}.end'.format(PROGRESS_ID),
        'dur': _clock_value(0.001),
    })
    return root


def _render_advertisement(advertisement, x, y, font_size):
    link = etree.Element(_tag('a'), {
        '{{{}}}href'.format(XLINK_NS): advertisement.url,
        '{{{}}}show'.format(XLINK_NS): 'new',
    })
    text = etree.SubElement(link, _tag('text'), {
        'x': str(x),
        'y': str(y),
        'transform': 'rotate(-90, {}, {})'.format(x, y),
        'font-size': str(font_size),
        'class': 'foreground',
    })
    text.text = advertisement.text
    return link


def _make_rect_tag(run, row, cell_width, cell_height):
    attributes = {
        'x': str(1 + run.start * cell_width),
        'y': str(1 + row * cell_height),
        'width': str((run.end - run.start) * cell_width),
        'height': str(cell_height),
    }
    attributes.update(_color_attributes(run.color))
    return etree.Element(_tag('rect'), attributes)


def _render_row_background(row, interval, cell_width, cell_height):
    """Return a group of rectangles displayed during `interval`

    :param row: Row number
    :param interval: TimedInterval whose value is a tuple of BackgroundRun
    """
    group = etree.Element(_tag('g'), {'display': 'none'})
    for run in interval.value:
        group.append(_make_rect_tag(run, row, cell_width, cell_height))
    group.append(_make_set_tag(interval.begin, interval.end))
    return group


def _text_width(text):
    width = wcswidth(text)
    if width < 0:
        # Non printable characters
        width = len(text)
    return width


def _render_row_text(row, interval, cell_width, cell_height):
    """Return a text element displayed during `interval`

    Runs of characters using the default style are added as plain text to
    the element while other runs are wrapped in <tspan> elements.

    :param row: Row number
    :param interval: TimedInterval whose value is a tuple of TextRun
    """
    runs = interval.value
    text = ''.join(run.text for run in runs)
    text_tag = etree.Element(_tag('text'), {
        'x': '1',
        'y': str(1 + row * cell_height),
        'textLength': str(_text_width(text) * cell_width),
        'lengthAdjust': 'spacingAndGlyphs',
        'class': 'foreground',
        'display': 'none',
    })

    last_tspan = None
    for run in runs:
        is_default = (run.color, run.bold, run.underline) == ('foreground',
                                                             False, False)
        if is_default:
            if last_tspan is None:
                text_tag.text = (text_tag.text or '') + run.text
            else:
                last_tspan.tail = (last_tspan.tail or '') + run.text
            continue

        attributes = _color_attributes(run.color)
        if run.bold:
            attributes['font-weight'] = 'bold'
        if run.underline:
            attributes['text-decoration'] = 'underline'
        last_tspan = etree.SubElement(text_tag, _tag('tspan'), attributes)
        last_tspan.text = run.text

    text_tag.append(_make_set_tag(interval.begin, interval.end))
    return text_tag


def _render_progress_bar(x, y, width, height, color, duration):
    outline = etree.Element(_tag('rect'), {
        'x': str(x),
        'y': str(y),
        'width': str(width),
        'height': str(height),
        'style': 'stroke:{}; fill:none'.format(color),
    })
    bar = etree.Element(_tag('rect'), {
        'x': str(x),
        'y': str(y),
        'height': str(height),
        'fill': color,
    })
    etree.SubElement(bar, _tag('animate'), {
        'id': PROGRESS_ID,
        'attributeName': 'width',
        'from': '0',
        'to': str(width),
        'fill': 'freeze',
        'begin': '{}.begin'.format(LOOP_TRIGGER_ID),
        'dur': _clock_value(duration),
    })
    return outline, bar


def render_animation(session, configuration):
    """Return the root element of the SVG animation of a session

    :param session: term.Session whose timeline is finalized
    :param configuration: config.Configuration
    """
    if session.duration <= 0:
        raise ValueError('Animation duration must be greater than 0')

    columns, rows = configuration.columns, configuration.rows
    font = configuration.font
    dx, dy = font.cell_width, font.cell_height
    width = int(1 + dx * (0.5 + columns))
    height = int(1 + dy * (0.5 + rows) + configuration.progress.height)

    root = _render_header(configuration, width, height)

    if configuration.advertisement is not None:
        root.append(_render_advertisement(configuration.advertisement,
                                          width, height,
                                          int(font.size * 0.75)))

    # Backgrounds must be drawn before the text they are behind
    background = etree.SubElement(root, _tag('g'), {'id': 'background'})
    etree.SubElement(background, _tag('rect'), {
        'class': 'background',
        'x': '0',
        'y': '0',
        'width': str(dx * columns + 2),
        'height': str(dy * rows + 2),
    })
    for row, intervals in session.timeline.background:
        for interval in filter(_is_rendered, intervals):
            background.append(_render_row_background(row, interval, dx, dy))

    text = etree.SubElement(root, _tag('g'), {'id': 'text'})
    for row, intervals in session.timeline.text:
        for interval in filter(_is_rendered, intervals):
            text.append(_render_row_text(row, interval, dx, dy))

    for tag in _render_progress_bar(1, 1 + dy * (rows + 0.5), dx * columns,
                                    configuration.progress.height,
                                    configuration.progress.color,
                                    session.duration):
        root.append(tag)

    return root


def write_document(root, output):
    """Write the document to the file named `output` or to the standard
    output if `output` is '-'"""
    document = etree.tostring(root, xml_declaration=True, encoding='utf-8')
    if output == '-':
        sys.stdout.buffer.write(document)
        sys.stdout.buffer.flush()
    else:
        with open(output, 'wb') as output_file:
            output_file.write(document)
