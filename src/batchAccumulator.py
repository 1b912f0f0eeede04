import re

DEFAULT_TERMINATOR = ';|^go'

def compileTerminator(terminator):
    '''
    Compile a user-supplied terminator expression. The whole expression is
    grouped before anchoring so that alternations such as ";|^go" are anchored
    as a unit rather than only in their last branch.
    '''
    if isinstance(terminator, re.Pattern):
        return terminator
    return re.compile('(?:' + terminator + r')\Z')

def matchTerminator(pattern, line):
    '''
    Return (line stripped of the terminator, True) when the line ends a batch,
    (line, False) otherwise. Zero-length matches do not end a batch.
    '''
    m = compileTerminator(pattern).search(line)
    if m and m.end() > m.start():
        return line[:m.start()], True
    return line, False

class BatchAccumulator:
    '''
    Folds lines into a batch until a line matches the terminator.
    '''

    def __init__(self, terminator=DEFAULT_TERMINATOR):
        self._pattern = compileTerminator(terminator)
        self._lines = []

    @property
    def buffer(self):
        return '\n'.join(self._lines)

    @property
    def pending(self):
        return bool(self._lines)

    def reset(self):
        self._lines = []

    def feed(self, line):
        stripped, found = matchTerminator(self._pattern, line)
        if not found:
            self._lines.append(line)
            return self.buffer, False

        # Finalize. A bare separator line ("go") adds nothing, not even a newline.
        # The caller starts over with reset().
        if stripped or not self._lines:
            self._lines.append(stripped)
        return self.buffer, True
