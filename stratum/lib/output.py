'''
Hookable output for the stratum tools.
'''
import sys

import msgspec.json as m_json

import stratum.lib.tags as s_tags

class OutPut:
    '''
    Print lines and resolved tag values to a file object (sys.stdout by default).
    '''
    def __init__(self, fd=None):
        self.fd = fd

    def printf(self, mesg, addnl=True):

        if addnl:
            mesg += '\n'

        return self._rawOutPut(mesg)

    def printValu(self, valu):
        '''
        Print a get() or collect() result.

        Scopes are summarized by path, dicts and lists are printed as sorted JSON.
        '''
        if isinstance(valu, s_tags.Scope):
            if valu.valus is not None:
                return self.printf(f'{valu.path()}: {len(valu.valus)} contributing sources')
            return self.printf(f'{valu.path()}: (structure)')

        if isinstance(valu, (dict, list, tuple)):
            return self.printf(m_json.encode(valu, order='sorted').decode())

        return self.printf(str(valu))

    def _rawOutPut(self, mesg):
        fd = self.fd
        if fd is None:
            fd = sys.stdout
        fd.write(mesg)

class OutPutStr(OutPut):

    def __init__(self):
        OutPut.__init__(self)
        self.mesgs = []

    def _rawOutPut(self, mesg):
        self.mesgs.append(mesg)

    def __str__(self):
        return ''.join(self.mesgs)

stdout = OutPut()
