'''
This contains the core test helper code used in stratum.

This gives the opportunity for third-party users of stratum to test their
code using some of the same helpers used to test stratum.

The core class, stratum.tests.utils.StratTest is a subclass of unittest.TestCase,
with several wrapper functions to allow for easier calls to assert* functions,
with less typing.

Async test methods are wrapped to run on the global ioloop.
'''
import io
import os
import json
import shutil
import typing
import inspect
import logging
import tempfile
import unittest
import threading
import contextlib

import stratum.exc as s_exc
import stratum.glob as s_glob
import stratum.common as s_common

import stratum.lib.tags as s_tags
import stratum.lib.chain as s_chain
import stratum.lib.output as s_output

logger = logging.getLogger(__name__)

testmodel = {
    'my_tag': {
        'type': 'structure',
        'fields': {
            'nbr': {'type': 'number'},
            'str': {'type': 'string'},
            'list': {'type': 'list'},
            'obj': {'type': 'map'},
            'bio': {'type': 'text'},
            'stats': {
                'type': 'structure',
                'fields': {
                    'atk': {'type': 'number', 'default': 5},
                    'tags': {'type': 'list'},
                },
            },
        },
    },
    'title': {'type': 'string', 'default': 'nobody'},
    'formula': {'type': 'code'},
}

actornote = '''
  <my_tag>
  <!nbr>
  return 500 + context.a;
  </nbr>
  nbr+: 65
  nbr%: 200
  str: hello
  str+: world
  list+: 10
  obj(b): 20
  obj(a)+: 100
  </my_tag>
'''

statenote = '''
    <my_tag>
    str+: world
    obj(b): 5
    </my_tag>
'''

def norm(z):
    if isinstance(z, (list, tuple)):
        return tuple([norm(n) for n in z])
    if isinstance(z, dict):
        return {norm(k): norm(v) for (k, v) in z.items()}
    return z

def jsonlines(text: str):
    lines = [k for k in text.split('\n') if k]
    return [json.loads(line) for line in lines]

class Data:
    '''
    A database record (actor, class, state or item) with a note.
    '''
    def __init__(self, iden, note=''):
        self.id = iden
        self.note = note

    def __repr__(self):
        return f'Data: {self.id}'

class Battler:
    '''
    A battler whose note lives on its data record.
    '''
    def __init__(self, data, states=None, equips=None, klass=None):
        self.data = data
        self.stateitems = states if states is not None else []
        self.equipitems = equips if equips is not None else []
        self.klass = klass

    def actor(self):
        return self.data

    def states(self):
        return self.stateitems

    def equips(self):
        return self.equipitems

    def currentClass(self):
        return self.klass

class Subject:
    '''
    A subject with a note which names its own sources.
    '''
    def __init__(self, note='', sources=()):
        self.note = note
        self.sorcs = list(sources)

    def getTagSources(self):
        return self.sorcs

class TstOutPut(s_output.OutPutStr):

    def expect(self, substr, throw=True):
        '''
        Check if a string is present in the messages captured by the OutPutStr object.

        Args:
            substr (str): String to check for the existence of.
            throw (bool): If True, a missing substr results in a Exception being thrown.

        Returns:
            bool: True if the string is present; False if the string is not present and throw is False.
        '''
        outs = str(self)
        if outs.find(substr) == -1:
            if throw:
                mesg = 'TestOutPut.expect(%s) not in %s' % (substr, outs)
                raise s_exc.StratErr(mesg=mesg)
            return False
        return True

    def clear(self):
        self.mesgs.clear()

class StreamEvent(io.StringIO, threading.Event):
    '''
    A combination of a io.StringIO object and a threading.Event object.
    '''
    def __init__(self, *args, **kwargs):
        io.StringIO.__init__(self, *args, **kwargs)
        threading.Event.__init__(self)
        self.mesg = ''

    def setMesg(self, mesg):
        '''
        Clear the internal event and set a new message that is used to set the event.
        '''
        self.mesg = mesg
        self.clear()

    def write(self, s):
        io.StringIO.write(self, s)
        if self.mesg and self.mesg in s:
            self.set()

    def jsonlines(self) -> typing.List[dict]:
        '''Get the messages as jsonlines. May throw Json errors if the captured stream is not jsonlines.'''
        return jsonlines(self.getvalue())

class StratTest(unittest.TestCase):
    '''
    Mark all async test methods as s_glob.synchelp decorated.

    Note:
        This precludes running a single unit test via path using the unittest module.
    '''
    def __init__(self, *args, **kwargs):
        unittest.TestCase.__init__(self, *args, **kwargs)

        for s in dir(self):
            attr = getattr(self, s, None)
            # If s is an instance method and starts with 'test_', synchelp wrap it
            if inspect.iscoroutinefunction(attr) and s.startswith('test_') and inspect.ismethod(attr):
                setattr(self, s, s_glob.synchelp(attr))

    def getTestRegistry(self, conf=None, chain=None):
        '''
        Get a Registry which is isolated from the process wide default.
        '''
        return s_tags.Registry(conf=conf, chain=chain)

    def getTestBattler(self, note=actornote, states=()):
        '''
        Get a Battler using the test actor note, its registry and TagResult.

        Returns:
            (Battler, Registry, TagResult)
        '''
        regi = self.getTestRegistry(chain=s_chain.BattlerChain())
        states = [Data(i + 1, n) for i, n in enumerate(states)]
        battler = Battler(Data(1, note), states=states)
        return battler, regi, regi.get(battler, testmodel)

    def getTestOutp(self):
        '''
        Get a Output instance with a expects() function.

        Returns:
            TstOutPut: A TstOutPut instance.
        '''
        return TstOutPut()

    @contextlib.contextmanager
    def getTestDir(self):
        '''
        Get a temporary directory for test purposes.
        This destroys the directory afterwards.

        Returns:
            str: The path to a temporary directory.
        '''
        tempdir = tempfile.mkdtemp()

        try:
            yield tempdir

        finally:
            shutil.rmtree(tempdir, ignore_errors=True)

    def writeYamlFile(self, dirn, name, item):
        path = os.path.join(dirn, name)
        with open(path, 'wb') as fd:
            s_common.yamldump(item, stream=fd)
        return path

    @contextlib.contextmanager
    def getLoggerStream(self, logname, mesg=''):
        '''
        Get a logger and attach a io.StringIO object to the logger to capture log messages.

        Args:
            logname (str): Name of the logger to get.
            mesg (str): A string which, if provided, sets the StreamEvent event if a message
            containing the string is written to the log.

        Examples:
            Do an action and get the stream of log messages to check against::

                with self.getLoggerStream('stratum.lib.tags') as stream:
                    # Do something that triggers a log message
                    await tagres.checkObservables()

                stream.seek(0)
                mesgs = stream.read()

        Notes:
            This **only** captures logs for the current process.

        Yields:
            StreamEvent: A StreamEvent object
        '''
        stream = StreamEvent()
        stream.setMesg(mesg)
        handler = logging.StreamHandler(stream)
        slogger = logging.getLogger(logname)
        slogger.addHandler(handler)
        level = slogger.level
        slogger.setLevel('DEBUG')
        try:
            yield stream
        except Exception:  # pragma: no cover
            raise
        finally:
            slogger.removeHandler(handler)
            slogger.setLevel(level)

    @contextlib.contextmanager
    def setTstEnvars(self, **props):
        '''
        Set Environment variables for the purposes of running a specific test.

        Args:
            **props: A kwarg list of envars to set. The values set are run
            through str() to ensure we're setting strings.

        Yields:
            None. Upon exiting, envars are either removed from os.environ or
            reset to their previous values.
        '''
        old_data = {}
        pop_data = set()
        for key, valu in props.items():
            v = str(valu)
            oldv = os.environ.get(key, None)
            if oldv:
                if oldv == v:
                    continue
                else:
                    old_data[key] = oldv
                    os.environ[key] = v
            else:
                pop_data.add(key)
                os.environ[key] = v

        try:
            yield None
        except Exception:  # pragma: no cover
            raise
        finally:
            for key in pop_data:
                del os.environ[key]
            for key, valu in old_data.items():
                os.environ[key] = valu

    async def execToolMain(self, func, argv):
        outp = self.getTestOutp()
        retn = await func(argv, outp=outp)
        return retn, outp

    def eq(self, x, y, msg=None):
        '''
        Assert X is equal to Y
        '''
        self.assertEqual(norm(x), norm(y), msg=msg)

    def eqish(self, x, y, places=6, msg=None):
        '''
        Assert X is equal to Y within places decimal places
        '''
        self.assertAlmostEqual(x, y, places, msg=msg)

    def ne(self, x, y):
        '''
        Assert X is not equal to Y
        '''
        self.assertNotEqual(norm(x), norm(y))

    def true(self, x, msg=None):
        '''
        Assert X is True
        '''
        self.assertTrue(x, msg=msg)

    def false(self, x, msg=None):
        '''
        Assert X is False
        '''
        self.assertFalse(x, msg=msg)

    def nn(self, x, msg=None):
        '''
        Assert X is not None
        '''
        self.assertIsNotNone(x, msg=msg)
        return x

    def none(self, x, msg=None):
        '''
        Assert X is None
        '''
        self.assertIsNone(x, msg=msg)

    def raises(self, *args, **kwargs):
        '''
        Assert a function raises an exception.
        '''
        return self.assertRaises(*args, **kwargs)

    async def asyncraises(self, exc, coro):
        with self.assertRaises(exc) as cm:
            await coro
        return cm.exception

    def isinstance(self, obj, cls, msg=None):
        '''
        Assert a object is the instance of a given class or tuple of classes.
        '''
        self.assertIsInstance(obj, cls, msg=msg)

    def isin(self, member, container, msg=None):
        '''
        Assert a member is inside of a container.
        '''
        self.assertIn(member, container, msg=msg)

    def notin(self, member, container, msg=None):
        '''
        Assert a member is not inside of a container.
        '''
        self.assertNotIn(member, container, msg=msg)

    def len(self, x, obj, msg=None):
        '''
        Assert that the length of an object is equal to X
        '''
        self.eq(x, len(obj), msg=msg)
