"""Command line interface of scriptsvg"""

import argparse
import logging
import sys
import tempfile

import scriptsvg.anim
import scriptsvg.config
import scriptsvg.term
from scriptsvg.config import ConfigError
from scriptsvg.typescript import ScriptError, read_timings

logger = logging.getLogger('scriptsvg')

USAGE = """scriptsvg typescript timing [output_path] [-g GEOMETRY] [-t THEME]
                 [-f FONT] [-M MAX_DELAY] [-a TEXT] [-u URL] [-v] [-h]

Render a terminal session recorded with 'script --timing' as an SVG animation
"""
EPILOG = "Record a session with: script --timing=session.timing session.script"


def integral_duration_validation(duration):
    if duration.lower().endswith('ms'):
        duration = duration[:-len('ms')]

    if duration.isdigit() and int(duration) >= 1:
        return int(duration)
    raise ValueError('duration must be an integer greater than 0')


def parse(args, themes):
    """Parse command line arguments

    :param args: Arguments to parse
    :param themes: Names of the available color themes
    :return: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog='scriptsvg',
        usage=USAGE,
        epilog=EPILOG
    )
    parser.add_argument(
        'typescript',
        help='file holding the data written to the terminal (first line is '
             'a header and is ignored)'
    )
    parser.add_argument(
        'timing',
        help='timing file of the session'
    )
    parser.add_argument(
        'output_path',
        nargs='?',
        help="optional filename of the SVG animation, or '-' for the standard "
             "output. If missing, a random filename will be automatically "
             "generated.",
        metavar='output_path'
    )
    parser.add_argument(
        '-g', '--screen-geometry',
        help='geometry of the terminal screen used for replaying the session.'
             ' The geometry must be given as the number of columns and the '
             'number of rows on the screen separated by the character "x". '
             'For example "82x19" for an 82 columns by 19 rows screen.',
        metavar='GEOMETRY',
        type=scriptsvg.config.validate_geometry
    )
    parser.add_argument(
        '-t', '--theme',
        help='color theme used to render the terminal session ({})'.format(
            ', '.join(themes)),
        metavar='THEME'
    )
    parser.add_argument(
        '-f', '--font',
        help="font to specify in the CSS portion of the SVG animation (DejaVu "
             "Sans Mono, Monaco...). If the font is not installed on the "
             "viewer's machine, the browser will display a default monospaced "
             "font instead.",
        metavar='FONT'
    )
    parser.add_argument(
        '-M', '--max-delay',
        type=integral_duration_validation,
        metavar='MAX_DELAY',
        help='maximum delay between two updates of the screen in '
             'milliseconds (default: no maximum value)'
    )
    parser.add_argument(
        '-a', '--advertisement',
        help='text displayed vertically on the right side of the animation',
        metavar='TEXT'
    )
    parser.add_argument(
        '-u', '--advertisement-url',
        help='link opened when clicking on the advertisement',
        metavar='URL'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='log debug messages to a temporary file'
    )
    return parser.parse_args(args)


def render_subcommand(configuration, script_filename, timing_filename,
                      output_path, max_delay):
    """Render the animation from a typescript and its timing file"""
    logger.info('Rendering started')
    if max_delay is not None:
        max_delay /= 1000

    with open(script_filename, 'rb') as script_file, \
            open(timing_filename, 'rb') as timing_file:
        session = scriptsvg.term.record_session(script_file,
                                                read_timings(timing_file),
                                                configuration.columns,
                                                configuration.rows,
                                                max_delay)

    root = scriptsvg.anim.render_animation(session, configuration)
    if output_path is None:
        _, output_path = tempfile.mkstemp(prefix='scriptsvg_', suffix='.svg')
    scriptsvg.anim.write_document(root, output_path)
    if output_path != '-':
        logger.info('Rendering ended, SVG animation is {}'.format(output_path))


def main(args=None):
    if args is None:
        args = sys.argv

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)
    logger.handlers = [console_handler]
    logger.setLevel(logging.INFO)

    try:
        config_dict = scriptsvg.config.init_read_conf()
    except ConfigError as exc:
        logger.error('Invalid configuration: {}'.format(exc))
        return 1

    themes = sorted(name for name in config_dict if name != 'global')
    args = parse(args[1:], themes)

    if args.verbose:
        _, log_filename = tempfile.mkstemp(prefix='scriptsvg_', suffix='.log')
        file_handler = logging.FileHandler(filename=log_filename, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.handlers.append(file_handler)
        logger.setLevel(logging.DEBUG)
        logger.info('Logging to {}'.format(log_filename))

    try:
        configuration = scriptsvg.config.make_configuration(
            config_dict,
            theme=args.theme,
            font=args.font,
            geometry=args.screen_geometry,
            advertisement=args.advertisement,
            advertisement_url=args.advertisement_url
        )

        render_subcommand(configuration, args.typescript, args.timing,
                          args.output_path, args.max_delay)
    except (ConfigError, ScriptError, OSError) as exc:
        logger.error('Rendering failed: {}'.format(exc))
        return 1
    finally:
        for handler in logger.handlers:
            handler.close()

    return 0
