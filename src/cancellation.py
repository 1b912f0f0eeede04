'''
Cancellation of an in-flight batch submission.

A CancellationToken is created for every submission. The CancellationBridge
arms an interrupt listener for exactly the lifetime of one submission: the
submission runs on a worker thread while the main thread waits, so that the
Python-level signal handler (which only ever runs on the main thread) gets a
chance to run while the driver is blocked. When SIGINT or SIGTERM arrives the
token is cancelled; the bridge then keeps waiting until the submission has
actually returned before it restores the previous handlers.
'''
import signal
import logging
import threading

logger = logging.getLogger(__name__)

class CancellationToken:

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks = []

    @property
    def cancelled(self):
        return self._event.is_set()

    def onCancel(self, callback):
        '''
        Register a function to run on cancellation. Runs immediately if the
        token has already been cancelled.
        '''
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self):
        '''
        Signal the token. Only the first call has any effect; returns whether
        this call was the one that cancelled.
        '''
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def wait(self, timeout=None):
        return self._event.wait(timeout)


class CancellationBridge:

    DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)
    POLL_INTERVAL = 0.05

    def __init__(self, signals=None):
        self._signals = tuple(signals) if signals else self.DEFAULT_SIGNALS
        self._previous = {}
        self._token = None

    @property
    def armed(self):
        return self._token is not None

    def _listen(self, signum, frame):
        token = self._token
        if token is None:
            return
        try:
            if token.cancel():
                logger.debug('signal %d: submission cancelled', signum)
        except Exception:
            # The driver refused to cancel; the submission will run to completion.
            logger.warning('Unable to cancel the running batch', exc_info=True)

    def _arm(self, token):
        self._token = token
        if threading.current_thread() is not threading.main_thread():
            logger.debug('not on the main thread; interrupts will not cancel this batch')
            return
        for signum in self._signals:
            self._previous[signum] = signal.signal(signum, self._listen)

    def _retire(self):
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous = {}
        self._token = None

    def run(self, token, fn, *args, **kwargs):
        '''
        Call fn(*args, **kwargs) with the listener armed, and return its result
        or raise its exception once the listener has been retired.
        '''
        outcome = {}
        done = threading.Event()

        def submit():
            try:
                outcome['result'] = fn(*args, **kwargs)
            except BaseException as e:
                outcome['error'] = e
            finally:
                done.set()

        self._arm(token)
        try:
            worker = threading.Thread(target=submit, name='bq-submit', daemon=True)
            worker.start()
            # Waiting in short slices lets the signal handler run in between.
            # An interrupt does not end the wait: the submission has to come back first.
            while not done.wait(self.POLL_INTERVAL):
                pass
            worker.join()
        finally:
            self._retire()

        if 'error' in outcome:
            raise outcome['error']
        return outcome.get('result')
