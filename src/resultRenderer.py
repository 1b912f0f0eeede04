import sys
import logging
import datetime
from enum import Enum
from tabulate import tabulate, TableFormat, Line, DataRow

from error import EngineError

logger = logging.getLogger(__name__)

class ValueKind(Enum):
    NULL = 0
    TIMESTAMP = 1
    BINARY = 2
    OTHER = 3

def valueKind(value):
    if value is None:
        return ValueKind.NULL
    if isinstance(value, datetime.datetime):
        return ValueKind.TIMESTAMP
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    return ValueKind.OTHER

def formatValue(value):
    kind = valueKind(value)
    if kind == ValueKind.NULL:
        return 'NULL'
    elif kind == ValueKind.TIMESTAMP:
        return value.strftime('%Y-%m-%d %H:%M:%S')
    elif kind == ValueKind.BINARY:
        return '0x' + bytes(value).hex()
    return str(value).strip()

def summaryLine(rowsAffected=None, returnStatus=None):
    '''
    The trailer printed after a result set, e.g. "(3 rows affected)".
    None when the engine reported neither count.
    '''
    parts = []
    if rowsAffected is not None:
        parts.append('{} {} affected'.format(rowsAffected,
                'row' if rowsAffected == 1 else 'rows'))
    if returnStatus is not None:
        parts.append('return status = {}'.format(returnStatus))
    if not parts:
        return None
    return '(' + ', '.join(parts) + ')'


def tableFormat(theme, columnSeparator=' '):
    '''
    The compact themes: a header, one rule below it, no outer border.
    '''
    rule = '-' if theme == 'ASCIICompact' else '─'
    row = DataRow('', columnSeparator, '')
    return TableFormat(lineabove=None,
                       linebelowheader=Line('', rule, columnSeparator, ''),
                       linebetweenrows=None,
                       linebelow=None,
                       headerrow=row,
                       datarow=row,
                       padding=0,
                       with_header_hide=None)

class RowPage:
    '''
    A bounded group of formatted rows rendered together under one header.
    '''

    def __init__(self, header, pageSize, fmt, showHeader=True):
        self.header = list(header)
        self.pageSize = pageSize
        self._fmt = fmt
        self._showHeader = showHeader
        self._rows = []

    def __len__(self):
        return len(self._rows)

    @property
    def full(self):
        return len(self._rows) >= self.pageSize

    def append(self, row):
        self._rows.append(row)

    def render(self, out):
        headers = self.header if self._showHeader else ()
        out.write(tabulate(self._rows, headers=headers, tablefmt=self._fmt,
                           disable_numparse=True, stralign='left') + '\n')
        self._rows = []


class ResultRenderer:

    def __init__(self, settings, outputStream=None):
        self._settings = settings
        self._stream = outputStream
        self._fmt = tableFormat(settings.theme, settings.columnSeparator)
        self.pagesRendered = 0

    @property
    def out(self):
        return self._stream or sys.stdout

    def _newPage(self, columns):
        return RowPage(columns, self._settings.pageSize, self._fmt,
                       showHeader=not self._settings.noHeader)

    def _flush(self, page):
        page.render(self.out)
        self.pagesRendered += 1

    def render(self, resultSet):
        '''
        Render every row of a result set, page by page, then its summary line.
        Returns the number of rows rendered.
        '''
        columns = resultSet.columns() or []
        page = self._newPage(columns)
        count = 0
        if columns:
            try:
                for row in resultSet.rows():
                    page.append([formatValue(v) for v in row])
                    count += 1
                    if page.full:
                        self._flush(page)
                        page = self._newPage(columns)
            except EngineError as e:
                # Already reported by the message handler. Go on to the summary.
                logger.debug('row fetch failed after %d rows: %s', count, e)

            if len(page) > 0:
                self._flush(page)

        summary = summaryLine(resultSet.rowsAffected(), resultSet.returnStatus())
        if summary:
            self.out.write(summary + '\n')
        self.out.flush()
        return count
