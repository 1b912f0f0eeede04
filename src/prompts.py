import platform
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style

from databaseConnection import serverNameEngines

# Style objects are order-agnostic
promptStyle = Style.from_dict({
    'server' : 'ansiyellow bold',
    'db'     : 'ansicyan',
    'sep'    : '',
    'lineno' : 'ansigreen',
    'symbol' : 'ansired bold' if platform.system() == 'Windows' else 'ansibrightgreen bold',
})

def batchPrompt(server, database, lineNo, serverType=None):
    '''
    "server.db 3 $ " for engines with a current database in their environment,
    "server 3 $ " for the others. Prompt objects are order-sensitive.
    '''
    fragments = [('class:server', str(server))]
    if serverType in serverNameEngines and database:
        fragments += [('class:sep', '.'), ('class:db', str(database))]
    fragments += [
        ('class:sep', ' '),
        ('class:lineno', str(lineNo)),
        ('class:symbol', ' $ '),
    ]
    return FormattedText(fragments)
