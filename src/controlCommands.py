import logging

from error import EngineError

logger = logging.getLogger(__name__)

BEGIN = '\\b'
COMMIT = '\\c'
ROLLBACK = '\\r'

# Format of the command list: [literal, session primitive]
controlCommandList = [
    [BEGIN,    'begin'],
    [COMMIT,   'commit'],
    [ROLLBACK, 'rollback'],
]

class ControlCommandDispatcher:
    '''
    Intercepts the transaction shortcuts before a batch reaches the engine.
    The literals are matched exactly and are never sent as SQL.
    '''

    def __init__(self, session):
        self._session = session
        self._callbacks = {cmd[0]: cmd[1] for cmd in controlCommandList}

    def dispatch(self, batch):
        '''
        Returns True when the batch was a control command and has been handled.
        '''
        name = self._callbacks.get(batch)
        if name is None:
            return False
        logger.debug('control command %s', name)
        try:
            getattr(self._session, name)()
        except EngineError:
            # The session's message handler has shown the error already
            pass
        return True
