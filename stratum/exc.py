'''
Exceptions used by stratum, all inheriting from StratErr
'''

class StratErr(Exception):

    def __init__(self, *args, **info):
        self.errinfo = info
        self.errname = self.__class__.__name__
        Exception.__init__(self, self._getExcMsg())

    def _getExcMsg(self):
        props = sorted(self.errinfo.items())
        displ = ' '.join(['%s=%r' % (p, v) for (p, v) in props])
        return '%s: %s' % (self.__class__.__name__, displ)

    def _setExcMesg(self):
        '''Should be called when self.errinfo is modified.'''
        self.args = (self._getExcMsg(),)

    def items(self):
        return {k: v for k, v in self.errinfo.items()}

    def get(self, name, defv=None):
        '''
        Return a value from the errinfo dict.

        Example:

            try:
                await tagres.get('my_tag.nope')
            except NoSuchPath as e:
                path = e.get('path')

        '''
        return self.errinfo.get(name, defv)

    def set(self, name, valu):
        '''
        Set a value in the errinfo dict.
        '''
        self.errinfo[name] = valu
        self._setExcMesg()

    def setdefault(self, name, valu):
        '''
        Set a value in errinfo dict if it is not already set.
        '''
        if name in self.errinfo:
            return
        self.errinfo[name] = valu
        self._setExcMesg()

class BadArg(StratErr):
    ''' Improper function arguments '''
    pass

class BadConfValu(StratErr):
    '''
    The configuration value provided is not valid.

    This should contain the config name, valu and mesg.
    '''
    pass

class NeedConfValu(StratErr): pass

class BadModelDef(StratErr):
    '''
    A model field descriptor is malformed or produces a conflicting name.
    '''
    pass

class BadScript(StratErr):
    '''
    A notetag script could not be evaluated.
    '''
    pass

class BadTypeValu(StratErr): pass
class BadSyntax(StratErr): pass

class IsFini(StratErr): pass

class NoSuchPath(StratErr):
    '''
    The requested field does not exist at the given path of the model.
    '''
    pass

class NoSuchSubj(StratErr): pass
class NoSuchType(StratErr): pass

class ParserExit(StratErr):
    ''' Raised by stratum.lib.cmd.Parser on Parser exit() '''
    pass

class SchemaViolation(StratErr): pass

# names used by the attribute resolution taxonomy
PathNotFoundError = NoSuchPath
InvalidModelError = BadModelDef
