import sys
import logging

from cancellation import CancellationBridge, CancellationToken
from controlCommands import ControlCommandDispatcher
from error import EngineError, SourceReadError, ResultSetAdvanceError
from errorManager import bqErrorManager, ReturnCode
from resultRenderer import ResultRenderer

logger = logging.getLogger(__name__)

class QueryProcessor:
    '''
    The batch loop: read a batch, intercept the transaction shortcuts, submit
    everything else under a cancellation bridge and render each result set
    the engine returns, strictly one batch at a time.
    '''

    def __init__(self, session, settings, outputStream=None, bridge=None,
                 errorManager=None):
        self._session = session
        self._settings = settings
        self._stream = outputStream
        self._renderer = ResultRenderer(settings, outputStream)
        self._dispatcher = ControlCommandDispatcher(session)
        self._bridge = bridge or CancellationBridge()
        self._em = errorManager or bqErrorManager

    @property
    def out(self):
        return self._stream or sys.stdout

    def run(self, reader):
        '''
        Process batches until the reader is exhausted. Returns a ReturnCode;
        for anything but SUCCESS the error manager holds the message.
        '''
        while True:
            try:
                batch = reader.readBatch()
            except EOFError:
                return ReturnCode.SUCCESS
            except SourceReadError as e:
                return self._em.setError(ReturnCode.SOURCE_READ, e)

            if self._dispatcher.dispatch(batch):
                continue

            try:
                self.process(batch)
            except ResultSetAdvanceError as e:
                return self._em.setError(ReturnCode.RESULT_SET_ADVANCE, e)

    def submit(self, batch):
        '''
        Submit a batch with an interrupt listener armed for exactly the
        duration of the call. Returns the first result set, or None on error.
        '''
        token = CancellationToken()
        try:
            resultSet = self._bridge.run(token, self._session.submit, batch, token)
        except EngineError:
            # Already shown by the message handler
            return None
        except Exception as e:
            logger.debug('submission failed', exc_info=True)
            self._em.setException(e)
            self._em.doWarn()
            return None
        finally:
            if token.cancelled:
                logger.debug('batch cancelled')
        return resultSet

    def process(self, batch):
        if not batch.strip():
            logger.debug('skipping empty batch')
            return

        logger.debug('submitting batch of %d line(s)', batch.count('\n') + 1)
        resultSet = self.submit(batch)
        if resultSet is None:
            return

        first = resultSet
        try:
            while True:
                if resultSet.columns() is None:
                    # Nothing to render for the rest of this batch
                    break
                self._renderer.render(resultSet)

                if not resultSet.hasNextResultSet():
                    break
                resultSet = resultSet.advanceToNextResultSet()
                logger.debug('next result set')
                self.out.write('\n')
        except KeyboardInterrupt:
            # The listener is retired by now. Only this batch's output is abandoned.
            logger.debug('interrupted while reading results')
            self.out.write('\n')
        finally:
            try:
                self._session.complete(first)
            except EngineError:
                pass
