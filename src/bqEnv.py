import os
import platform
from collections import namedtuple

# The environment as seen by BATCHQUERY
BqEnv = namedtuple('BqEnv', ['HOME', 'BQ_HOME', 'BQ_CONFIG', 'BQ_LOG_LEVEL'])

def readEnv(environ=None):
    environ = os.environ if environ is None else environ

    homeVariable = 'USERPROFILE' if platform.system() == 'Windows' else 'HOME'
    home = environ.get(homeVariable) or os.path.expanduser('~')
    bqHome = environ.get('BQ_HOME', os.path.join(home, 'batchquery'))
    bqConfig = environ.get('BQ_CONFIG', os.path.join(bqHome, 'config'))
    logLevel = environ.get('BQ_LOG_LEVEL', 'WARNING').upper()

    return BqEnv(home, bqHome, bqConfig, logLevel)
