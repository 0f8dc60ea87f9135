"""Configuration of scriptsvg

The configuration is read from an INI file located in the configuration
directory of the user ($XDG_CONFIG_HOME/scriptsvg/scriptsvg.ini). This file
is created from the default configuration shipped with the package the first
time scriptsvg is run.
"""
import configparser
import logging
import os
import pkgutil
from collections import namedtuple

logger = logging.getLogger(__name__)

PKG_CONF_PATH = 'data/scriptsvg.ini'
CONFIG_FILENAME = 'scriptsvg.ini'


class ConfigError(Exception):
    pass


class CaseInsensitiveDict(dict):
    """Dictionary with case insensitive string keys"""
    def __init__(self, *args, **kwargs):
        super().__init__()
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def __setitem__(self, key, value):
        super().__setitem__(key.lower(), value)

    def __getitem__(self, key):
        return super().__getitem__(key.lower())

    def __delitem__(self, key):
        super().__delitem__(key.lower())

    def __contains__(self, key):
        return super().__contains__(key.lower())

    def get(self, key, default=None):
        if key is None:
            return default
        return super().get(key.lower(), default)


Font = namedtuple('Font', ['family', 'size', 'cell_width', 'cell_height'])
Progress = namedtuple('Progress', ['height', 'color'])
Advertisement = namedtuple('Advertisement', ['text', 'url'])

_Theme = namedtuple('_Theme', ['foreground', 'background', 'palette'])


class Theme(_Theme):
    """Color theme of the terminal

    All colors must use the '#rrggbb' format

    foreground: default text color
    background: default background color
    palette: tuple of the 16 colors of the terminal
    """
    def __new__(cls, foreground, background, palette):
        if not cls.is_color(foreground):
            raise ConfigError('Invalid foreground color: {}'.format(foreground))
        if not cls.is_color(background):
            raise ConfigError('Invalid background color: {}'.format(background))

        palette = tuple(palette)
        if len(palette) == 8:
            palette = palette + palette
        if len(palette) != 16:
            raise ConfigError('Invalid palette: 8 or 16 colors expected')
        for color in palette:
            if not cls.is_color(color):
                raise ConfigError('Invalid palette color: {}'.format(color))

        return super().__new__(cls, foreground, background, palette)

    @staticmethod
    def is_color(color):
        if isinstance(color, str) and len(color) == 7 and color[0] == '#':
            try:
                int(color[1:], 16)
            except ValueError:
                return False
            return True
        return False


_Configuration = namedtuple('_Configuration', ['columns', 'rows', 'font',
                                               'theme', 'progress',
                                               'advertisement'])


class Configuration(_Configuration):
    """Rendering options

    columns, rows: Size of the terminal
    font: Font
    theme: Theme
    progress: Progress
    advertisement: Advertisement or None
    """
    __slots__ = ()


def validate_geometry(screen_geometry):
    """Raise ValueError if 'screen_geometry' does not conform to <integer>x<integer> format"""
    columns, rows = [int(value) for value in screen_geometry.lower().split('x')]
    if columns <= 0 or rows <= 0:
        raise ValueError('Invalid value for screen-geometry option: "{}"'.format(screen_geometry))
    return columns, rows


def _positive_integer(section, option):
    try:
        value = section.getint(option)
    except ValueError as exc:
        raise ConfigError('Invalid value for option "{}": "{}"'
                          .format(option, section[option])) from exc
    if value is None or value <= 0:
        raise ConfigError('Missing or invalid value for option "{}"'
                          .format(option))
    return value


def _parse_global_section(section):
    global_options = {}
    for option in ('theme', 'font'):
        value = section.get(option)
        if not value:
            raise ConfigError('Missing option "{}" in section "GLOBAL"'
                              .format(option))
        global_options[option] = value

    for option in ('font-size', 'cell-width', 'cell-height', 'progress-height'):
        global_options[option] = _positive_integer(section, option)

    try:
        global_options['geometry'] = validate_geometry(section.get('geometry', ''))
    except ValueError as exc:
        raise ConfigError('Invalid value for option "geometry": "{}"'
                          .format(section.get('geometry'))) from exc

    progress_color = section.get('progress-color')
    if not Theme.is_color(progress_color):
        raise ConfigError('Invalid value for option "progress-color": "{}"'
                          .format(progress_color))
    global_options['progress-color'] = progress_color

    global_options['advertisement'] = section.get('advertisement')
    global_options['advertisement-url'] = section.get('advertisement-url')
    return global_options


def _parse_theme_section(name, section):
    try:
        foreground = section['foreground']
        background = section['background']
        palette = [section['color{}'.format(i)] for i in range(8)]
    except KeyError as exc:
        raise ConfigError('Missing option {} in theme "{}"'
                          .format(exc, name)) from exc

    for i in range(8, 16):
        palette.append(section.get('color{}'.format(i), palette[i - 8]))

    return Theme(foreground, background, palette)


def conf_to_dict(configuration):
    """Read configuration from a string and return a mapping between section
    names and their content

    The GLOBAL section is mapped to a dictionary of options, any other section
    is mapped to a Theme.
    Raise ConfigError if the configuration is invalid"""
    parser = configparser.ConfigParser(comment_prefixes=(';',))
    try:
        parser.read_string(configuration)
    except configparser.Error as exc:
        raise ConfigError('Invalid configuration file') from exc

    config_dict = CaseInsensitiveDict()
    for name in parser.sections():
        if name.lower() == 'global':
            config_dict['GLOBAL'] = _parse_global_section(parser[name])
        else:
            config_dict[name] = _parse_theme_section(name, parser[name])

    if 'GLOBAL' not in config_dict:
        raise ConfigError('Missing section "GLOBAL"')

    theme_name = config_dict['GLOBAL']['theme']
    if theme_name.lower() == 'global' or theme_name not in config_dict:
        raise ConfigError('Unknown theme: "{}"'.format(theme_name))

    return config_dict


def default_configuration():
    return pkgutil.get_data(__name__, PKG_CONF_PATH).decode('utf-8')


def config_directory():
    """Return the configuration directory of scriptsvg"""
    try:
        config_home = os.environ['XDG_CONFIG_HOME']
    except KeyError:
        try:
            config_home = os.path.join(os.environ['HOME'], '.config')
        except KeyError:
            return None
    return os.path.join(config_home, 'scriptsvg')


def init_read_conf():
    """Read the configuration file of the user, creating it if needed

    The default configuration is used if the configuration file of the user
    can't be created or read.
    """
    directory = config_directory()
    if directory is None:
        logger.debug('No configuration directory found, using default '
                     'configuration')
        return conf_to_dict(default_configuration())

    config_path = os.path.join(directory, CONFIG_FILENAME)
    try:
        with open(config_path, 'r') as config_file:
            configuration = config_file.read()
    except FileNotFoundError:
        configuration = default_configuration()
        try:
            os.makedirs(directory, exist_ok=True)
            with open(config_path, 'w') as config_file:
                config_file.write(configuration)
        except OSError as exc:
            logger.warning('Unable to create configuration file {}: {}'
                           .format(config_path, exc))
        else:
            logger.info('Created configuration file {}'.format(config_path))
    except OSError as exc:
        logger.warning('Unable to read configuration file {}: {}'
                       .format(config_path, exc))
        configuration = default_configuration()

    return conf_to_dict(configuration)


def make_configuration(config_dict, theme=None, font=None, geometry=None,
                       advertisement=None, advertisement_url=None):
    """Build the Configuration used for rendering

    Arguments other than `config_dict` override the options of the GLOBAL
    section when they are not None.
    """
    global_options = config_dict['GLOBAL']
    if theme is None:
        theme = global_options['theme']
    if theme.lower() == 'global' or theme not in config_dict:
        raise ConfigError('Unknown theme: "{}"'.format(theme))

    if geometry is None:
        geometry = global_options['geometry']
    columns, rows = geometry

    text = global_options['advertisement'] if advertisement is None else advertisement
    url = global_options['advertisement-url'] if advertisement_url is None else advertisement_url
    ad = Advertisement(text, url or '') if text else None

    return Configuration(
        columns=columns,
        rows=rows,
        font=Font(family=global_options['font'] if font is None else font,
                  size=global_options['font-size'],
                  cell_width=global_options['cell-width'],
                  cell_height=global_options['cell-height']),
        theme=config_dict[theme],
        progress=Progress(height=global_options['progress-height'],
                          color=global_options['progress-color']),
        advertisement=ad
    )
