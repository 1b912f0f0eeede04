import os
import re
import argparse
import logging
from typing import NamedTuple, Optional
from configobj import ConfigObj, ConfigObjError, flatten_errors
from validate import Validator, VdtValueError, VdtTypeError, VdtValueTooLongError, \
        VdtValueTooShortError, VdtValueTooBigError, VdtValueTooSmallError

from batchAccumulator import DEFAULT_TERMINATOR, compileTerminator
from error import SettingsError
from errorManager import bqErrorManager as em, ReturnCode

logger = logging.getLogger(__name__)

VERSION = '0.2.0'
THEMES = ('ASCIICompact', 'UtfCompact')

# Validation spec for the settings file. Every key has a default so that a
# missing file (or a missing section) still yields a complete configuration.
configSpec = [
    '[Settings]',
    'terminator = string(default="%s")' % DEFAULT_TERMINATOR,
    'pageSize = integer(min=1, default=3000)',
    'columnSeparator = string(default=" ")',
    'echoInput = boolean(default=False)',
    'noPromptInEcho = boolean(default=False)',
    'noHeader = boolean(default=False)',
    "theme = option('ASCIICompact', 'UtfCompact', default='UtfCompact')",
    'historyFile = string(default="")',
    '[Connection]',
    'url = string(default="")',
    'dialect = string(default="")',
    'driver = string(default="")',
    'user = string(default="")',
    'password = string(default="")',
    'server = string(default="")',
    'database = string(default="")',
    'options = string(default="")',
]

class ConnectionSettings(NamedTuple):
    url: str = ''
    dialect: str = ''
    driver: str = ''
    user: str = ''
    password: str = ''
    server: str = ''
    database: str = ''
    options: str = ''

class Settings(NamedTuple):
    '''
    The complete, immutable program configuration. It is built once in main()
    and handed to the components that need it.
    '''
    terminator: re.Pattern = compileTerminator(DEFAULT_TERMINATOR)
    pageSize: int = 3000
    columnSeparator: str = ' '
    echoInput: bool = False
    noPromptInEcho: bool = False
    noHeader: bool = False
    theme: str = 'UtfCompact'
    inputFile: Optional[str] = None
    outputFile: Optional[str] = None
    historyFile: str = ''
    connection: ConnectionSettings = ConnectionSettings()


def findSettingsFile(env, settingsFile=None):
    '''
    Returns the settings file to use: the explicitly named one, else the
    user-specific file, else the global one. None if nothing is found.
    '''
    if settingsFile:
        return settingsFile
    for candidate in (os.path.join(env.HOME, '.bqrc'),
                      os.path.join(env.BQ_CONFIG, 'bq.cfg')):
        if os.path.isfile(candidate):
            return candidate
    return None

def loadSettingsFile(settingsFile=None):
    '''
    Reads and validates a settings file. With no file, returns the defaults.
    '''
    try:
        if settingsFile:
            config = ConfigObj(settingsFile, configspec=configSpec, file_error=True)
        else:
            config = ConfigObj(configspec=configSpec)
    except (ConfigObjError, IOError) as e:
        raise SettingsError('Formatting error with settings file {}: {}'.format(settingsFile, e))

    results = config.validate(Validator(), preserve_errors=True)
    if results is True:
        return config

    # See http://www.voidspace.org.uk/python/articles/configobj.shtml
    msg = 'Validation failures in {}:\n'.format(settingsFile)
    for (section_list, key, error) in flatten_errors(config, results):
        section_path = '.'.join(section_list)
        if key is None:
            msg += '  Missing section: {}\n'.format(section_path)
            continue
        if error is False:
            msg += '  Missing value: {}[{}]\n'.format(section_path, key)
            continue

        if isinstance(error, VdtTypeError):
            desc = 'Incorrect data type'
        elif type(error) is VdtValueError:
            desc = 'Invalid option choice'
        elif isinstance(error, (VdtValueTooLongError, VdtValueTooShortError)):
            desc = 'String length outside legal range'
        elif isinstance(error, (VdtValueTooBigError, VdtValueTooSmallError)):
            desc = 'Numeric value is outside legal range'
        else:
            desc = 'Invalid value'
        msg += '  {}: {}[{}] (error = {})\n'.format(desc, section_path, key, error)
    raise SettingsError(msg)


def positiveInt(s):
    value = int(s)
    if value < 1:
        raise argparse.ArgumentTypeError('must be a positive integer')
    return value

class BqArgumentParser(argparse.ArgumentParser):

    def error(self, message):
        em.setError(ReturnCode.USAGE, message, self.prog)
        em.doExit()

def argumentParser():
    parser = BqArgumentParser(prog='bq',
            description='Run SQL batches interactively or from a script.')
    # Flags default to None so that the settings file is only overridden
    # by options that were actually given.
    parser.add_argument('-b', dest='noHeader', action='store_true', default=None,
            help='disable headers')
    parser.add_argument('-e', dest='echoInput', action='store_true', default=None,
            help='print commands before execution')
    parser.add_argument('-n', dest='noPromptInEcho', action='store_true', default=None,
            help='no prompt is printed when displaying commands')
    parser.add_argument('-v', dest='printVersion', action='store_true',
            help='print version and exit')
    parser.add_argument('-c', dest='terminator',
            help='the terminator used to determine the end of a command. Can contain regex.')
    parser.add_argument('-p', dest='pageSize', type=positiveInt, help='paging size')
    parser.add_argument('-s', dest='columnSeparator', help='column separator')
    parser.add_argument('-T', dest='theme', choices=THEMES, help='display theme')
    parser.add_argument('-i', dest='inputFile', help='file to read commands from')
    parser.add_argument('-o', dest='outputFile', help='file to output to')
    parser.add_argument('-U', dest='user', help='user name')
    parser.add_argument('-P', dest='password', help='password')
    parser.add_argument('-S', dest='server', help='host[:port]')
    parser.add_argument('-D', dest='database', help='database to use')
    parser.add_argument('--dialect', help='SQLAlchemy dialect, e.g. mssql or sqlite')
    parser.add_argument('--driver', help='SQLAlchemy driver, e.g. pytds or pyodbc')
    parser.add_argument('--url', help='full SQLAlchemy connection URL')
    parser.add_argument('--settings', dest='settingsFile', help='settings file to read')
    parser.add_argument('--debug', action='store_true', help='debug logging on stderr')
    return parser

def parseArguments(argv):
    return argumentParser().parse_args(argv)


def buildSettings(config, args=None):
    '''
    Merge a validated ConfigObj and the parsed command line into a Settings value.
    Command-line options win.
    '''
    def pick(value, default):
        return default if value is None else value

    s = config['Settings']
    c = config['Connection']
    a = args if args is not None else argparse.Namespace()
    get = lambda name: getattr(a, name, None)

    terminator = pick(get('terminator'), s['terminator'])
    try:
        pattern = compileTerminator(terminator)
    except re.error as e:
        raise SettingsError('Invalid terminator expression "{}": {}'.format(terminator, e))

    connection = ConnectionSettings(
        url=pick(get('url'), c['url']),
        dialect=pick(get('dialect'), c['dialect']),
        driver=pick(get('driver'), c['driver']),
        user=pick(get('user'), c['user']),
        password=pick(get('password'), c['password']),
        server=pick(get('server'), c['server']),
        database=pick(get('database'), c['database']),
        options=c['options'],
    )

    settings = Settings(
        terminator=pattern,
        pageSize=pick(get('pageSize'), s['pageSize']),
        columnSeparator=pick(get('columnSeparator'), s['columnSeparator']),
        echoInput=pick(get('echoInput'), s['echoInput']),
        noPromptInEcho=pick(get('noPromptInEcho'), s['noPromptInEcho']),
        noHeader=pick(get('noHeader'), s['noHeader']),
        theme=pick(get('theme'), s['theme']),
        inputFile=get('inputFile'),
        outputFile=get('outputFile'),
        historyFile=s['historyFile'],
        connection=connection,
    )
    logger.debug('settings: terminator=%r pageSize=%d theme=%s',
            terminator, settings.pageSize, settings.theme)
    return settings

def loadSettings(env, args):
    '''
    Convenience wrapper: find, read and validate the settings file, then apply
    the command line on top.
    '''
    settingsFile = findSettingsFile(env, getattr(args, 'settingsFile', None))
    return buildSettings(loadSettingsFile(settingsFile), args)
