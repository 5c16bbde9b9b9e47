import asyncio
import inspect
import logging
import collections

import stratum.glob as s_glob

import stratum.lib.coro as s_coro

logger = logging.getLogger(__name__)

class Base:
    '''
    An async constructed object which distributes events and runs teardown hooks.

    Example:

        class Watcher(Base):

            async def __anit__(self, tagres):
                await Base.__anit__(self)
                self.tagres = tagres

        watcher = await Watcher.anit(tagres)
        watcher.on('tag:change', func)

    Note:
        Instances must be created with the anit() class method, never Base().
    '''
    def __init__(self):
        self.anitted = False
        assert inspect.stack()[1].function == 'anit', 'Objects from Base must be constructed solely via "anit"'

    @classmethod
    async def anit(cls, *args, **kwargs):

        if s_glob._glob_loop is None:
            s_glob.initloop()

        self = cls()

        try:
            await self.__anit__(*args, **kwargs)

        except (asyncio.CancelledError, Exception):
            if self.anitted:
                await self.fini()
            raise

        return self

    async def __anit__(self):

        self.isfini = False
        self.anitted = True

        self._evnt_funcs = collections.defaultdict(list)
        self._fini_funcs = []

    def onfini(self, func):
        '''
        Add a function or coroutine function to be called by fini().
        '''
        assert self.anitted
        self._fini_funcs.append(func)

    def on(self, evnt, func):
        '''
        Add a callback for an event name.

        The callback receives the (name, info) event tuple and may be a coroutine function.

        Example:

            def onchange(mesg):
                print(mesg[1].get('after'))

            base.on('tag:change', onchange)
            await base.fire('tag:change', before=1, after=2)
        '''
        funcs = self._evnt_funcs[evnt]
        if func not in funcs:
            funcs.append(func)

    def off(self, evnt, func):
        '''
        Remove a callback added with on().
        '''
        funcs = self._evnt_funcs.get(evnt)
        if funcs is not None and func in funcs:
            funcs.remove(func)

    async def fire(self, evtname, **info):
        '''
        Build an event tuple and distribute it.

        Returns:
            (str, dict): The event tuple.
        '''
        event = (evtname, info)
        if not self.isfini:
            await self.dist(event)
        return event

    async def dist(self, mesg):
        '''
        Call every callback of an event tuple.  Callback errors are logged, not raised.

        Returns:
            list: The callback return values.
        '''
        if self.isfini:
            return ()

        ret = []
        for func in list(self._evnt_funcs.get(mesg[0], ())):

            try:
                ret.append(await s_coro.ornot(func, mesg))
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception('base %s error with mesg %s', self, mesg)

        return ret

    async def fini(self):
        '''
        Mark the object fini and run its onfini() functions once.
        '''
        assert self.anitted, f'{self.__class__.__name__} initialized improperly.  Must use Base.anit class method.'

        if self.isfini:
            return

        self.isfini = True

        for func in self._fini_funcs:
            try:
                await s_coro.ornot(func)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f'{self} - fini function failed: {func}')

        self._evnt_funcs.clear()
        self._fini_funcs.clear()
