'''
Batch sources. A BatchReader hands out one finished batch per readBatch() call
and raises EOFError when its input is exhausted. The script reader reads a file
or stream; the interactive reader reads through a prompt_toolkit session and
restarts the current batch on Ctrl-C.
'''
import sys
import abc
import logging
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory

from batchAccumulator import BatchAccumulator, DEFAULT_TERMINATOR
from errorManager import bqErrorManager as em, ReturnCode
from error import SourceReadError
from prompts import batchPrompt, promptStyle

logger = logging.getLogger(__name__)

class BatchReader(abc.ABC):

    @abc.abstractmethod
    def readBatch(self):
        '''
        Return the next batch with its terminator removed. Raise EOFError at
        end of input.
        '''

    @abc.abstractmethod
    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ScriptBatchReader(BatchReader):
    '''
    Reads batches from a finite text stream. A batch left unterminated at the
    end of the stream is returned as the last batch.
    '''

    def __init__(self, stream, terminator=DEFAULT_TERMINATOR, echo=False,
                 promptInEcho=True, echoStream=None, ownsStream=False):
        self._stream = stream
        self._accumulator = BatchAccumulator(terminator)
        self._echo = echo
        self._promptInEcho = promptInEcho
        self._echoStream = echoStream
        self._ownsStream = ownsStream
        self.lineNo = 1

    @classmethod
    def open(cls, fileName, settings, echoStream=None):
        try:
            stream = open(fileName, 'r')
        except OSError as e:
            raise SourceReadError('Cannot read file {}: {}'.format(fileName, e.strerror)) from e
        return cls(stream, settings.terminator,
                   echo=settings.echoInput,
                   promptInEcho=not settings.noPromptInEcho,
                   echoStream=echoStream,
                   ownsStream=True)

    def _echoLine(self, line):
        out = self._echoStream or sys.stdout
        if self._promptInEcho:
            out.write('{}> {}\n'.format(self.lineNo, line))
        else:
            out.write(line + '\n')

    def readBatch(self):
        self._accumulator.reset()
        self.lineNo = 1
        while True:
            try:
                raw = self._stream.readline()
            except (OSError, UnicodeDecodeError) as e:
                raise SourceReadError(str(e)) from e

            if raw == '':
                if self._accumulator.pending:
                    batch = self._accumulator.buffer
                    self._accumulator.reset()
                    logger.debug('unterminated batch at end of input')
                    return batch
                raise EOFError

            line = raw.rstrip('\r\n')
            if self._echo:
                self._echoLine(line)

            batch, done = self._accumulator.feed(line)
            if done:
                self._accumulator.reset()
                self.lineNo = 1
                return batch
            self.lineNo += 1

    def close(self):
        if self._ownsStream:
            self._stream.close()


class BatchHistory(FileHistory):
    '''
    A FileHistory that records finished batches only, not every line accepted
    by the prompt, and handles file access issues gracefully.
    '''

    def __init__(self, filename):
        self._doStore = True
        self._saving = False
        super().__init__(filename)

    def append_string(self, string):
        if self._saving:
            super().append_string(string)

    def saveBatch(self, batch):
        self._saving = True
        try:
            self.append_string(batch)
        finally:
            self._saving = False

    def store_string(self, string):
        if self._doStore:
            try:
                FileHistory.store_string(self, string)
            except PermissionError as ex:
                self._doStore = False
                em.setError(ReturnCode.SUCCESS,
                        msgOverride='History file {} is not writable ({}). Batches will not be saved.'
                        .format(self.filename, ex.strerror))
                em.doWarn()


class InteractiveBatchReader(BatchReader):

    def __init__(self, session, terminator=DEFAULT_TERMINATOR, history=None,
                 promptSession=None):
        self._session = session
        self._accumulator = BatchAccumulator(terminator)
        self._history = history
        self._promptSession = promptSession or PromptSession(history=history)
        self._server = None
        self.lineNo = 1

    def serverLabel(self):
        # Resolved on first use, then cached
        if self._server is None:
            self._server = self._session.serverLabel()
        return self._server

    def _restart(self):
        self._accumulator.reset()
        self.lineNo = 1

    def readBatch(self):
        self._restart()
        while True:
            message = batchPrompt(self.serverLabel(), self._session.database,
                                  self.lineNo, self._session.serverType)
            try:
                line = self._promptSession.prompt(message, style=promptStyle)
            except KeyboardInterrupt:
                logger.debug('interrupt: discarding %d line(s)', self.lineNo - 1)
                self._restart()
                continue
            except EOFError:
                self._restart()
                raise
            except OSError as e:
                self._restart()
                raise SourceReadError(str(e)) from e

            batch, done = self._accumulator.feed(line)
            if done:
                self._restart()
                if self._history is not None:
                    self._history.saveBatch(batch)
                return batch
            self.lineNo += 1

    def close(self):
        pass
