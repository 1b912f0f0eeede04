'''
Exception types raised by the BATCHQUERY components.
'''

class BatchQueryError(Exception):
    pass

class SourceReadError(BatchQueryError):
    '''
    Failure to read the next line from a batch source, other than end-of-input.
    '''
    pass

class EngineError(BatchQueryError):
    '''
    An error reported by the database engine. By the time one of these is raised
    the diagnostic has already been routed through the session's message handler,
    so callers should not print it a second time.
    '''
    def __init__(self, diagnostic):
        super().__init__(diagnostic.text)
        self.diagnostic = diagnostic

class ResultSetAdvanceError(BatchQueryError):
    pass

class ConnectionFailure(BatchQueryError):
    pass

class SettingsError(BatchQueryError):
    pass
