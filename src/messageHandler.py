import sys
from collections import namedtuple

# A server-side message: informational notices as well as errors
Diagnostic = namedtuple('Diagnostic', ['severity', 'code', 'text'])

INFORMATIONAL = 10
ERROR = 16

# Showplan and statistics messages already carry their own line breaks
_preformattedRanges = ((3612, 3615), (6201, 6299), (10201, 10299))

def isPreformatted(code):
    return any(low <= code <= high for (low, high) in _preformattedRanges)

class MessagePrinter:
    '''
    The handler registered on the database session. It is called for every
    server message and returns True when the current operation has failed.
    '''

    def __init__(self, outputStream=None):
        self._stream = outputStream

    @property
    def stream(self):
        return self._stream or sys.stdout

    def __call__(self, diagnostic):
        out = self.stream
        if diagnostic.severity <= INFORMATIONAL:
            if diagnostic.severity == INFORMATIONAL and isPreformatted(diagnostic.code):
                out.write(diagnostic.text)
            else:
                out.write(diagnostic.text.rstrip() + '\n')
            return False

        out.write('Msg {}, Level {}:\n{}\n'.format(
            diagnostic.code, diagnostic.severity, diagnostic.text.rstrip('\n')))
        return True
