'''
Main entry point for BATCHQUERY
'''
import os
import sys
import logging
from prompt_toolkit import prompt
from prompt_toolkit.formatted_text import FormattedText

from appSettings import VERSION, parseArguments, loadSettings
from batchReader import ScriptBatchReader, InteractiveBatchReader, BatchHistory
from bqEnv import readEnv
from databaseConnection import connect
from error import SettingsError, ConnectionFailure, SourceReadError
from errorManager import bqErrorManager as em, ReturnCode
from messageHandler import MessagePrinter
from queryProcessor import QueryProcessor

logger = logging.getLogger(__name__)

def configureLogging(env, debug=False):
    level = logging.DEBUG if debug else getattr(logging, env.BQ_LOG_LEVEL, logging.WARNING)
    logging.basicConfig(level=level, stream=sys.stderr,
            format='%(asctime)s %(name)s %(levelname)s: %(message)s')

def askPassword(settings):
    '''
    In a tty situation, ask for the password of a user given without one.
    '''
    cxn = settings.connection
    if cxn.url or not cxn.user or cxn.password or not sys.stdin.isatty():
        return settings
    msg = 'Please enter password for user "{}": '.format(cxn.user)
    password = prompt(message=FormattedText([('yellow', msg)]), is_password=True)
    return settings._replace(connection=cxn._replace(password=password))

def openOutput(outputFile):
    # Truncates an existing file, creates a missing one
    return open(outputFile, 'w') if outputFile else sys.stdout

def openReader(settings, session, env):
    if settings.inputFile:
        return ScriptBatchReader.open(settings.inputFile, settings)

    # If the standard input has been redirected, execute its commands and exit
    if not sys.stdin.isatty():
        return ScriptBatchReader(sys.stdin, settings.terminator,
                echo=settings.echoInput, promptInEcho=not settings.noPromptInEcho)

    historyFile = os.path.expanduser(settings.historyFile) if settings.historyFile \
            else os.path.join(env.HOME, '.bq_history')
    return InteractiveBatchReader(session, settings.terminator,
            history=BatchHistory(historyFile))

def main(argv=None):
    em.resetError()
    args = parseArguments(sys.argv[1:] if argv is None else argv)
    if args.printVersion:
        print('bq version ' + VERSION)
        return 0

    env = readEnv()
    configureLogging(env, args.debug)

    try:
        settings = askPassword(loadSettings(env, args))
    except SettingsError as e:
        em.setError(ReturnCode.SETTINGS, msgOverride=str(e))
        em.doExit()

    try:
        session = connect(settings.connection)
    except ConnectionFailure as e:
        em.setError(ReturnCode.CONNECTION, e)
        em.doExit()
    session.setMessageHandler(MessagePrinter())

    try:
        out = openOutput(settings.outputFile)
    except OSError as e:
        session.close()
        em.setError(ReturnCode.OUTPUT_FILE, settings.outputFile, e.strerror)
        em.doExit()

    try:
        reader = openReader(settings, session, env)
    except SourceReadError as e:
        session.close()
        em.setError(ReturnCode.SOURCE_READ, e)
        em.doExit()

    try:
        with reader:
            retValue = QueryProcessor(session, settings, out).run(reader)
    finally:
        session.close()
        if out is not sys.stdout:
            out.close()

    if retValue != ReturnCode.SUCCESS:
        em.doExit()
    return 0

if __name__ == '__main__':
    sys.exit(main())
