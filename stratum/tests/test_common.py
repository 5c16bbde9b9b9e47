import io
import json
import logging

import stratum.exc as s_exc
import stratum.common as s_common

import stratum.lib.structlog as s_structlog

import stratum.tests.utils as s_t_utils

logger = logging.getLogger(__name__)

class CommonTest(s_t_utils.StratTest):

    def test_common_guid(self):
        iden0 = s_common.guid()
        iden1 = s_common.guid('foo bar baz')
        iden2 = s_common.guid('foo bar baz')
        self.ne(iden0, iden1)
        self.eq(iden1, iden2)
        self.len(32, iden0)
        self.eq(s_common.guid({'a': 1, 'b': 2}), s_common.guid({'b': 2, 'a': 1}))

    def test_common_yaml(self):

        obj = {
            'my_tag': {
                'type': 'structure',
                'fields': {'nbr': {'type': 'number', 'default': 0.5}},
            },
            'list': ['duck', False, 'zero'],
        }

        with self.getTestDir() as dirn:
            path = self.writeYamlFile(dirn, 'test.yaml', obj)
            self.eq(obj, s_common.yamlload(path))
            self.eq(obj, s_common.yamlload(dirn, 'test.yaml'))
            self.none(s_common.yamlload(dirn, 'newp.yaml'))

        byts = s_common.yamldump(obj)
        self.isinstance(byts, bytes)
        self.eq(obj, s_common.yamlloads(byts))
        self.eq({'a': 100}, s_common.yamlloads('{a: 100}'))

    def test_common_envbool(self):

        with self.setTstEnvars(STRATUM_TEST_BOOL='true'):
            self.true(s_common.envbool('STRATUM_TEST_BOOL'))

        with self.setTstEnvars(STRATUM_TEST_BOOL='0'):
            self.false(s_common.envbool('STRATUM_TEST_BOOL'))

        self.false(s_common.envbool('STRATUM_TEST_NEWP'))
        self.true(s_common.envbool('STRATUM_TEST_NEWP', defval='1'))

    def test_common_loglevel(self):

        self.eq(logging.DEBUG, s_common.normLogLevel('debug'))
        self.eq(logging.INFO, s_common.normLogLevel(' INFO '))
        self.eq(logging.WARNING, s_common.normLogLevel('30'))
        self.eq(logging.ERROR, s_common.normLogLevel(40))

        with self.raises(s_exc.BadArg):
            s_common.normLogLevel('newp')

        with self.raises(s_exc.BadArg):
            s_common.normLogLevel(42)

        with self.raises(s_exc.BadArg):
            s_common.normLogLevel(None)

    def test_common_logconf(self):

        with self.setTstEnvars(STRATUM_LOG_LEVEL='DEBUG', STRATUM_LOG_STRUCT='1', STRATUM_LOG_DATEFORMAT='%Y'):
            conf = s_common._getLogConfFromEnv()

        self.eq(conf, {'defval': 'DEBUG', 'structlog': True, 'datefmt': '%Y'})

        conf = s_common._getLogConfFromEnv(defval='WARNING', structlog=True)
        self.eq('WARNING', conf.get('defval'))
        self.true(conf.get('structlog'))
        self.none(conf.get('datefmt'))

    def test_structlog_base(self):

        stream = io.StringIO()
        handler = logging.StreamHandler(stream=stream)
        handler.setFormatter(s_structlog.JsonFormatter())
        logger.addHandler(handler)

        try:
            logger.warning('Test message 1')

            iden = s_common.guid()
            logger.error('Extra test', extra={'stratum': {'iden': iden, 'time': 0}})

            try:
                raise s_exc.NoSuchPath(mesg='newp', name='nope', path='__root__')
            except s_exc.StratErr:
                logger.exception('Exception handling')

        finally:
            logger.removeHandler(handler)

        mesgs = [json.loads(m) for m in stream.getvalue().split('\n') if m]
        self.len(3, mesgs)

        mesg = mesgs[0]
        self.eq(set(mesg.keys()), {'message', 'logger', 'level', 'time'})
        self.eq(set(mesg.get('logger').keys()), {'name', 'process', 'filename', 'func'})
        self.eq('Test message 1', mesg.get('message'))
        self.eq('WARNING', mesg.get('level'))

        mesg = mesgs[1]
        self.eq(iden, mesg.get('iden'))
        self.ne(0, mesg.get('time'))

        mesg = mesgs[2]
        erfo = mesg.get('err')
        self.eq('NoSuchPath', erfo.get('errname'))
        self.eq('nope', erfo.get('name'))
        self.eq('__root__', erfo.get('path'))
        self.isin('Traceback', erfo.get('etb'))
