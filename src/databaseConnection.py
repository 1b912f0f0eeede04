import re
import logging
from urllib.parse import parse_qsl
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError, ArgumentError

from error import EngineError, ResultSetAdvanceError, ConnectionFailure
from messageHandler import Diagnostic, INFORMATIONAL, ERROR

logger = logging.getLogger(__name__)

# Engines that know their own name through @@servername
serverNameEngines = ('mssql', 'sybase')

FETCH_SIZE = 500

def buildUrl(connection):
    '''
    Construct the connection URL, either from the full URL string or from its
    parts. See https://docs.sqlalchemy.org/en/20/core/engines.html
    '''
    if connection.url:
        try:
            return make_url(connection.url)
        except ArgumentError as e:
            raise ConnectionFailure(str(e))

    if not connection.dialect:
        raise ConnectionFailure('No connection URL or dialect was given.')

    # odbc, pytds, ...
    if connection.driver:
        drivername = '{}+{}'.format(connection.dialect, connection.driver)
    else:
        drivername = connection.dialect

    host, port = connection.server.strip() or None, None
    if host and ':' in host:
        host, _, portPart = host.rpartition(':')
        if not portPart.isdigit():
            raise ConnectionFailure('Invalid port "{}" in server "{}".'.format(
                    portPart, connection.server))
        port = int(portPart)

    return URL.create(drivername,
            username=connection.user or None,
            password=connection.password or None,
            host=host,
            port=port,
            database=connection.database or None,
            query=dict(parse_qsl(connection.options)))

def connect(connection):
    url = buildUrl(connection)
    connectArgs = {}
    if url.get_backend_name() == 'sqlite':
        # Submissions run on a worker thread, see cancellation.py
        connectArgs['check_same_thread'] = False
    try:
        engine = create_engine(url, connect_args=connectArgs)
        session = DatabaseSession(engine)
        session.open()
    except (SQLAlchemyError, ImportError) as e:
        raise ConnectionFailure(str(e))
    logger.debug('connected to %s', url.render_as_string(hide_password=True))
    return session


def _messageCode(*candidates):
    for c in candidates:
        if isinstance(c, int):
            return c
        if isinstance(c, str):
            m = re.search(r'\((\d+)\)', c)
            if m:
                return int(m.group(1))
    return 0

def engineDiagnostic(exc):
    '''
    Describe a DBAPI exception as a server message. Drivers that speak TDS
    expose the message number and severity; the others get a generic error level.
    '''
    code = getattr(exc, 'number', None) or getattr(exc, 'msg_no', None)
    if not isinstance(code, int):
        code = _messageCode(*exc.args)
    severity = getattr(exc, 'severity', None)
    if not isinstance(severity, int) or severity <= INFORMATIONAL:
        severity = ERROR
    text = getattr(exc, 'text', None) or str(exc)
    return Diagnostic(severity, code, text)

def noticeDiagnostic(message):
    '''
    Describe an entry of cursor.messages. pyodbc stores (state, text) string
    pairs; pytds stores (class, message object) pairs.
    '''
    kind, body = message if isinstance(message, tuple) and len(message) == 2 else ('', message)
    text = getattr(body, 'text', body)
    code = getattr(body, 'msg_no', None)
    if not isinstance(code, int):
        code = _messageCode(kind, text)
    severity = getattr(body, 'severity', INFORMATIONAL)
    if not isinstance(severity, int):
        severity = INFORMATIONAL
    return Diagnostic(severity, code, str(text))


class DatabaseSession:
    '''
    A session on one DBAPI connection obtained from a SQLAlchemy engine.
    Batches go straight to the driver so that multiple result sets, return
    status and cancellation are available. Outside an explicit transaction
    every batch is committed once its results have been consumed.
    '''

    def __init__(self, engine):
        self._engine = engine
        self._cxn = None
        self._handler = None
        self._inTransaction = False
        self._server = None
        self.database = engine.url.database

    def open(self):
        self._cxn = self._engine.raw_connection()
        return self

    def close(self):
        if self._cxn is not None:
            self._cxn.close()
            self._cxn = None
        self._engine.dispose()

    @property
    def serverType(self):
        return self._engine.dialect.name

    @property
    def inTransaction(self):
        return self._inTransaction

    @property
    def _dbapiError(self):
        return self._engine.dialect.loaded_dbapi.Error

    def setMessageHandler(self, handler):
        self._handler = handler

    def _report(self, diagnostic):
        if self._handler is None:
            logger.warning('no message handler: %s', diagnostic.text)
            return diagnostic.severity > INFORMATIONAL
        return self._handler(diagnostic)

    def _fail(self, exc):
        diagnostic = engineDiagnostic(exc)
        self._report(diagnostic)
        raise EngineError(diagnostic) from exc

    def _drainMessages(self, cursor):
        '''
        Report the messages the driver has queued on the cursor. Returns the first
        one the handler failed, or None.
        '''
        messages = getattr(cursor, 'messages', None)
        if not messages:
            return None
        failed = None
        for message in list(messages):
            diagnostic = noticeDiagnostic(message)
            if self._report(diagnostic) and failed is None:
                failed = diagnostic
        if isinstance(messages, list):
            del messages[:]
        return failed

    def _interrupt(self, cursor):
        dbapiConnection = self._cxn.dbapi_connection
        for target, name in ((dbapiConnection, 'interrupt'),
                             (dbapiConnection, 'cancel'),
                             (cursor, 'cancel')):
            method = getattr(target, name, None)
            if callable(method):
                logger.debug('cancelling through %s.%s()', type(target).__name__, name)
                method()
                return
        logger.warning('The %s driver cannot cancel a running batch.', self.serverType)

    def submit(self, batch, token=None):
        '''
        Execute a batch and return its first result set. Engine errors are
        reported through the message handler and raised as EngineError.
        '''
        cursor = self._cxn.cursor()
        if token is not None:
            token.onCancel(lambda: self._interrupt(cursor))
        try:
            cursor.execute(batch)
        except self._dbapiError as e:
            self._drainMessages(cursor)
            cursor.close()
            if not self._inTransaction:
                self._cxn.rollback()
            self._fail(e)
        failed = self._drainMessages(cursor)
        if failed is not None:
            cursor.close()
            if not self._inTransaction:
                self._cxn.rollback()
            raise EngineError(failed)
        self._trackDatabase(batch)
        return DbapiResultSet(self, cursor)

    def complete(self, resultSet=None):
        '''
        Called once all result sets of a batch have been consumed.
        '''
        if resultSet is not None:
            resultSet.close()
        if not self._inTransaction:
            try:
                self._cxn.commit()
            except self._dbapiError as e:
                self._fail(e)

    def begin(self):
        if self._inTransaction:
            self._report(Diagnostic(ERROR, 0, 'A transaction is already in progress.'))
            return
        self._inTransaction = True
        logger.debug('transaction started')

    def commit(self):
        self._inTransaction = False
        try:
            self._cxn.commit()
        except self._dbapiError as e:
            self._fail(e)
        logger.debug('transaction committed')

    def rollback(self):
        self._inTransaction = False
        try:
            self._cxn.rollback()
        except self._dbapiError as e:
            self._fail(e)
        logger.debug('transaction rolled back')

    def introspect(self, query):
        '''
        Run an "under the hood" query and return the first column of its first row.
        '''
        cursor = self._cxn.cursor()
        try:
            cursor.execute(query)
            row = cursor.fetchone()
        except self._dbapiError as e:
            self._fail(e)
        finally:
            cursor.close()
        return row[0] if row else None

    def serverLabel(self):
        if self._server:
            return self._server
        url = self._engine.url
        if self.serverType in serverNameEngines:
            try:
                self._server = self.introspect('select @@servername')
            except EngineError:
                logger.debug('unable to resolve @@servername')
            if self._server:
                return self._server
            return url.host or self.serverType
        self._server = url.host or self.serverType
        return self._server

    def _trackDatabase(self, batch):
        m = re.match(r'\s*use\s+[\[`"]?([\w$#@.-]+)', batch, re.IGNORECASE)
        if m:
            self.database = m.group(1)


class DbapiResultSet:

    def __init__(self, session, cursor):
        self._session = session
        self._cursor = cursor
        self._hasNext = None
        self._advanceError = None

    def columns(self):
        description = self._cursor.description
        return [d[0] for d in description] if description else []

    def rows(self):
        if not self._cursor.description:
            return
        while True:
            try:
                rows = self._cursor.fetchmany(FETCH_SIZE)
            except self._session._dbapiError as e:
                self._session._fail(e)
            if not rows:
                break
            yield from rows
        failed = self._session._drainMessages(self._cursor)
        if failed is not None:
            raise EngineError(failed)

    def rowsAffected(self):
        if self._cursor.description:
            return None
        count = self._cursor.rowcount
        return count if isinstance(count, int) and count >= 0 else None

    def returnStatus(self):
        status = getattr(self._cursor, 'return_value', None)
        return status if isinstance(status, int) else None

    def hasNextResultSet(self):
        if self._hasNext is None:
            nextset = getattr(self._cursor, 'nextset', None)
            if nextset is None:
                self._hasNext = False
            else:
                try:
                    self._hasNext = bool(nextset())
                except self._session._engine.dialect.loaded_dbapi.NotSupportedError:
                    self._hasNext = False
                except self._session._dbapiError as e:
                    # Surfaced by advanceToNextResultSet()
                    self._hasNext, self._advanceError = True, e
                self._session._drainMessages(self._cursor)
        return self._hasNext

    def advanceToNextResultSet(self):
        if not self.hasNextResultSet():
            raise ResultSetAdvanceError('No further result set.')
        if self._advanceError is not None:
            raise ResultSetAdvanceError(str(self._advanceError)) from self._advanceError
        return DbapiResultSet(self._session, self._cursor)

    def close(self):
        self._cursor.close()
