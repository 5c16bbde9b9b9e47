'''
An API to derive, validate and index attribute models.

An author model is a plain dict of field descriptors::

    model = {
        'my_tag': {
            'type': 'structure',
            'fields': {
                'nbr': {'type': 'number'},
                'str': {'type': 'string', 'default': 'hello'},
            },
        },
    }

Adapting the model produces an immutable Model where every number/map field
gains ``<name>Plus`` and ``<name>Rate`` siblings and every string/list/text
field gains a ``<name>Plus`` sibling.  The author dict is never modified.
'''
import types
import logging

import stratum.exc as s_exc

import stratum.lib.const as s_const
import stratum.lib.config as s_config
import stratum.lib.aggregate as s_aggregate

logger = logging.getLogger(__name__)

modeldef = {
    'definitions': {
        'field': {
            'type': 'object',
            'properties': {
                'type': {'type': 'string', 'enum': list(s_const.FTYPES)},
                'doc': {'type': 'string'},
                'default': {},
                'fields': {'$ref': '#/definitions/fields'},
            },
            'required': ['type'],
        },
        'fields': {
            'type': 'object',
            'propertyNames': {'pattern': '^[A-Za-z_][A-Za-z0-9_]*$'},
            'additionalProperties': {'$ref': '#/definitions/field'},
        },
    },
    '$ref': '#/definitions/fields',
}

# id(mdef) -> (mdef, Model).  the author dict is held so its id can not be reused.
# entries live as long as the process, Registry keeps its own memo instead.
_adapted = {}

def adapt(mdef, memo=None):
    '''
    Return the derived Model for an author model dict.

    Args:
        mdef (dict): The author model or an already derived Model.
        memo (dict): Optional memo to use instead of the process wide one.

    Notes:
        The result is memoized by the identity of ``mdef``.  Passing a Model
        returns it unchanged, so ``adapt(adapt(mdef)) is adapt(mdef)``.

    Returns:
        Model: The derived model.

    Raises:
        BadModelDef: If the model is malformed or a synthetic field name
        collides with an author field.
    '''
    if isinstance(mdef, Model):
        return mdef

    if memo is None:
        memo = _adapted

    item = memo.get(id(mdef))
    if item is not None:
        return item[1]

    modl = Model(mdef)
    memo[id(mdef)] = (mdef, modl)

    logger.debug('Adapted model with %d indexed fields.', len(modl.patterns))
    return modl

def channame(name, chan):
    '''
    Return the synthetic field name for a modifier channel ("plus" or "rate").
    '''
    if chan == 'plus':
        return name + s_const.PLUS
    if chan == 'rate':
        return name + s_const.RATE
    raise s_exc.BadArg(mesg=f'Unknown modifier channel: {chan}', chan=chan)

class Field:
    '''
    A single field of a derived Model.
    '''
    def __init__(self, name, ftype, path, info, base=None, chan=None):

        self.name = name
        self.type = ftype
        self.path = path
        self.info = info

        self.full = f'{path}.{name}'

        # synthetic channels point back at the field they modify
        self.base = base
        self.chan = chan

        self.default = None
        if chan is None:
            self.default = info.get('default')

        self.fields = None

    def __repr__(self):
        return f'Model Field: {self.full} ({self.type})'

    def isSynthetic(self):
        return self.chan is not None

    def chans(self):
        '''
        Return the synthetic channel names of this field.
        '''
        if self.chan is not None:
            return ()

        if self.type in s_const.PLUS_RATE_TYPES:
            return ('plus', 'rate')

        if self.type in s_const.PLUS_TYPES:
            return ('plus',)

        return ()

    def pack(self):
        info = {
            'id': self.name,
            'path': self.path,
            'type': self.type,
            'fields': None,
        }
        if self.fields is not None:
            info['fields'] = {name: fild.pack() for name, fild in self.fields.items()}
        return info

class Model:
    '''
    The derived (and indexed) form of an author model.

    Note:
        Construct via adapt() to benefit from memoization.
    '''
    def __init__(self, mdef):

        if not isinstance(mdef, dict):
            raise s_exc.BadModelDef(mesg='Model definitions must be a dict.', valu=repr(mdef))

        try:
            s_config.getJsValidator(modeldef, use_default=False)(mdef)
        except s_exc.SchemaViolation as e:
            raise s_exc.BadModelDef(mesg=f'Invalid model definition: {e.get("mesg")}',
                                    name=e.get('name')) from e

        self.mdef = mdef

        self.patterns = []
        self.fieldsbypath = {}

        self.fields = self._initFields(mdef, s_const.ROOT)

    def _initFields(self, fdefs, path):

        fields = {}

        for name, fdef in fdefs.items():

            ftype = fdef.get('type')
            self._reqFieldDef(name, fdef, path)

            fild = Field(name, ftype, path, fdef)
            self._addField(fields, fild)

            if ftype == 'structure':
                fild.fields = self._initFields(fdef.get('fields'), fild.full)
                continue

            for chan in fild.chans():

                synname = channame(name, chan)
                if synname in fdefs:
                    mesg = f'Field {name} at {path} produces a {chan} channel named {synname} ' \
                           'which is already defined by the model.'
                    raise s_exc.BadModelDef(mesg=mesg, name=synname, path=path)

                syn = Field(synname, ftype, path, fdef, base=name, chan=chan)
                self._addField(fields, syn)

        return types.MappingProxyType(fields)

    def _addField(self, fields, fild):
        fields[fild.name] = fild
        self.fieldsbypath[(fild.path, fild.name)] = fild
        self.patterns.append(fild)

    def _reqFieldDef(self, name, fdef, path):

        ftype = fdef.get('type')
        hasfields = fdef.get('fields') is not None

        if ftype == 'structure' and not hasfields:
            mesg = f'Structure field {name} at {path} requires nested fields.'
            raise s_exc.BadModelDef(mesg=mesg, name=name, path=path)

        if ftype != 'structure' and hasfields:
            mesg = f'Field {name} at {path} is a {ftype} and may not declare nested fields.'
            raise s_exc.BadModelDef(mesg=mesg, name=name, path=path)

        defv = fdef.get('default')
        if defv is None:
            return

        if ftype == 'number' and s_aggregate.tonum(defv) is None:
            mesg = f'Number field {name} at {path} has an invalid default: {defv!r}'
            raise s_exc.BadModelDef(mesg=mesg, name=name, path=path)

        if ftype == 'map' and not isinstance(defv, dict):
            mesg = f'Map field {name} at {path} requires a dict default.'
            raise s_exc.BadModelDef(mesg=mesg, name=name, path=path)

        if ftype == 'structure' and not isinstance(defv, dict):
            mesg = f'Structure field {name} at {path} requires a dict default.'
            raise s_exc.BadModelDef(mesg=mesg, name=name, path=path)

    def getField(self, name, path=s_const.ROOT):
        '''
        Return the Field for name at the given dotted parent path or None.
        '''
        return self.fieldsbypath.get((path, name))

    def reqField(self, name, path=s_const.ROOT):
        '''
        Return the Field for name at the given dotted parent path.

        Raises:
            NoSuchPath: If the model does not define the field at the path.
        '''
        fild = self.fieldsbypath.get((path, name))
        if fild is None:
            mesg = f"Can't find {name} in the model. Path is {path}"
            raise s_exc.NoSuchPath(mesg=mesg, name=name, path=path)
        return fild

    def reqFields(self, names):
        '''
        Validate a list of segment names from the root and return their Fields.
        '''
        retn = []

        path = s_const.ROOT
        for name in names:
            fild = self.reqField(name, path)
            retn.append(fild)
            path = fild.full

        return retn

    def getPatterns(self):
        '''
        Return the flat path index as a list of dicts.
        '''
        return [fild.pack() for fild in self.patterns]
