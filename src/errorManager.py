import sys
import platform
from enum import Enum
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText

class ReturnCode(Enum):
    SUCCESS = 0
    USAGE = 1
    CONNECTION = 2
    SETTINGS = 3
    SOURCE_READ = 4
    RESULT_SET_ADVANCE = 5
    OUTPUT_FILE = 6

errorMsgDict = {
    0 : '',
    1 : 'USAGE: {0}\nType {1} -h or --help for detailed help.',
    2 : 'Database connection error: {0}',
    3 : 'Settings file {0}:\n{1}',
    4 : 'Unable to read input: {0}',
    5 : 'Unable to fetch the next result set: {0}',
    6 : 'Unable to open output file "{0}": {1}',
    }

class ErrorManager:
    '''
    Formats and prints the program's own error messages on the diagnostic stream.
    Engine messages do not come through here; see messageHandler.py.
    '''

    def __init__(self, errOutputStream=None):
        self._errMsg = ''
        self._exception = None
        self._returnCode = ReturnCode.SUCCESS
        self._stream = errOutputStream

    @property
    def _errOutputStream(self):
        # Resolved late so that a redirected sys.stderr is honoured
        return self._stream or sys.stderr

    def setException(self, exc, code=None):
        '''
        Record an exception object. Exceptions carry their own message, so the
        template table is bypassed unless a return code is given.
        '''
        self._exception = exc
        if code is None:
            self._errMsg = '{}: {}'.format(type(exc).__name__, exc)
        else:
            self._errMsg = errorMsgDict[code.value].format(exc, type(exc).__name__)
            self._returnCode = code
        return self._returnCode

    def setError(self, code, *args, msgOverride=''):
        if msgOverride:
            self._errMsg = msgOverride
        else:
            template = errorMsgDict[code.value]
            self._errMsg = template.format(*args) if args else template
        self._returnCode = code
        return self._returnCode

    def getError(self):
        return self._returnCode

    def getMessage(self):
        return self._errMsg

    def _print(self, msg, color):
        if self._errOutputStream.isatty():
            print_formatted_text(FormattedText([(color, msg)]),
                                file=self._errOutputStream)
        else:
            print(msg, file=self._errOutputStream)

    def doExit(self, msg=None):
        msg = msg or self._errMsg
        if msg:
            if self._returnCode == ReturnCode.SUCCESS:
                color = 'green' if platform.system() == 'Windows' else 'lightgreen'
            else:
                color = 'red'
            self._print(msg, color)

        sys.exit(self._returnCode.value)

    # Warn: For error conditions or warnings that should be nonfatal
    def doWarn(self, msg=None):
        msg = msg or self._errMsg
        if msg:
            self._print(msg, 'yellow' if self._returnCode == ReturnCode.SUCCESS else 'red')
        self.resetError()

    def resetError(self):
        self._returnCode = ReturnCode.SUCCESS
        self._exception = None
        self._errMsg = ''


bqErrorManager = ErrorManager()
