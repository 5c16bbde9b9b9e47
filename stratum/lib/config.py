import os
import json
import logging
import collections.abc as c_abc

import yaml
import fastjsonschema

import stratum.exc as s_exc
import stratum.common as s_common

from fastjsonschema.exceptions import JsonSchemaValueException

logger = logging.getLogger(__name__)

# compiled validators by schema guid
_JsValidators = {}  # type: ignore

def getJsSchema(confdefs):
    '''
    Wrap a dict of property schemas into a draft 7 object schema.

    The generated schema does not allow additional properties.
    '''
    return {
        '$schema': 'http://json-schema.org/draft-07/schema#',
        'additionalProperties': False,
        'properties': dict(confdefs),
        'type': 'object',
    }

def getJsValidator(schema, use_default=True):
    '''
    Get a cached fastjsonschema validator which raises SchemaViolation.

    Args:
        schema (dict): A JSON Schema object.
        use_default (bool): Whether to insert "default" values into the validated data.

    Returns:
        callable: The validator function.
    '''
    if schema.get('$schema') is None:
        schema['$schema'] = 'http://json-schema.org/draft-07/schema#'

    key = s_common.guid((json.dumps(schema, sort_keys=True), use_default))
    func = _JsValidators.get(key)
    if func:
        return func

    func = fastjsonschema.compile(schema, use_default=use_default)

    def wrap(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except JsonSchemaValueException as e:
            raise s_exc.SchemaViolation(mesg=e.message, name=e.name) from e

    _JsValidators[key] = wrap
    return wrap

def make_envar_name(key, prefix=None):
    '''
    Convert a config key such as ``observe:errors`` into ``PREFIX_OBSERVE_ERRORS``.
    '''
    nk = key.replace(':', '_')
    if prefix:
        nk = f'{prefix}_{nk}'
    return nk.upper()

class Config(c_abc.MutableMapping):
    '''
    A dict-like set of configuration values checked against a JSON Schema.

    Args:
        schema (dict): The JSON Schema (draft 7) for the configuration.
        conf (dict): Optional values to preload.  Each one is validated.
        envar_prefixes (list): Optional prefixes used by setConfFromEnvs().

    Notes:
        Defaults are only filled in by reqConfValid().
    '''
    def __init__(self, schema, conf=None, envar_prefixes=None):

        if envar_prefixes is None:
            envar_prefixes = ('', )

        self.conf = {}
        self.json_schema = schema
        self.envar_prefixes = envar_prefixes
        self.validator = getJsValidator(schema)

        self._prop_validators = {}
        for name, info in schema.get('properties').items():
            self._prop_validators[name] = getJsValidator(dict(info))

        if conf is not None:
            for name, valu in conf.items():
                self[name] = valu

    def setConfFromEnvs(self):
        '''
        Set unset configuration values from environment variables.

        Notes:
            With the prefix ``stratum`` the value of ``repo:key`` is read from
            ``STRATUM_REPO_KEY`` and parsed with ``yaml.safe_load()``.  Values
            which are already set are never replaced.

        Returns:
            dict: The values which were set from environment variables.
        '''
        updates = {}
        for prefix in self.envar_prefixes:
            for name, info in self.json_schema.get('properties', {}).items():

                if info.get('hideconf'):
                    continue

                envar = make_envar_name(name, prefix=prefix)
                envv = os.getenv(envar)
                if envv is None:
                    continue

                envv = yaml.safe_load(envv)

                curv = self.get(name, s_common.novalu)
                if curv is not s_common.novalu:
                    if curv != envv:
                        logger.warning(f'Config from envar [{envar}] skipped due to already being set!')
                    continue

                self[name] = envv
                logger.debug(f'Set config valu from envar: [{envar}]')
                updates[name] = envv

        return updates

    def reqConfValid(self):
        '''
        Validate the configuration data, filling in schema defaults.

        Raises:
            BadConfValu: If the data does not match the schema.
        '''
        try:
            self.validator(self.conf)
        except s_exc.SchemaViolation as e:
            logger.exception('Configuration is invalid.')
            raise s_exc.BadConfValu(mesg=f'Invalid configuration found: [{str(e)}]') from None

    def reqKeyValid(self, key, value):
        '''
        Raise BadArg for an unknown key or BadConfValu for an invalid value.
        '''
        validator = self._prop_validators.get(key)
        if validator is None:
            raise s_exc.BadArg(mesg=f'Key {key} is not a valid config', name=key)
        try:
            validator(value)
        except s_exc.SchemaViolation as e:
            raise s_exc.BadConfValu(mesg=f'Invalid config for {key}, {e.get("mesg")}', name=key, value=value) from None

    def __repr__(self):
        return f'<{self.__class__.__module__}.{self.__class__.__name__} conf={self.conf}>'

    def __len__(self):
        return len(self.conf)

    def __iter__(self):
        return iter(self.conf)

    def __delitem__(self, key):
        del self.conf[key]

    def __setitem__(self, key, value):
        self.reqKeyValid(key, value)
        self.conf[key] = value

    def __getitem__(self, item):
        return self.conf[item]
