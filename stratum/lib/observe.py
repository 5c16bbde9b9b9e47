'''
Change observation for resolved tag values.

Observables do not poll.  Their check() method is called by the owning
TagResult (see TagResult.checkObservables()) or manually.
'''
import asyncio
import logging
import weakref

import stratum.exc as s_exc
import stratum.common as s_common

import stratum.lib.base as s_base
import stratum.lib.coro as s_coro

logger = logging.getLogger(__name__)

class ObsBase(s_base.Base):
    '''
    Shared behavior of leaf and bulk observables.

    Change callbacks are registered as ``tag:change`` event handlers and
    receive ``(tagres, before, after)``.
    '''
    async def __anit__(self, tagres, iden=None):

        await s_base.Base.__anit__(self)

        if iden is None:
            iden = s_common.guid()

        self.iden = iden
        self.path = None
        self.tagres = tagres

        self.valu = None
        self.prev = None

        # bulk observables which check this one
        self.owners = weakref.WeakSet()

    def onChange(self, func):
        '''
        Add a callback fired with (tagres, before, after) when a check reports a change.
        '''
        async def onchange(mesg):
            info = mesg[1]
            return await s_coro.ornot(func, self.tagres, info.get('before'), info.get('after'))

        self.on('tag:change', onchange)
        return self

    async def _fireChange(self, before, after):
        self.prev = before
        self.valu = after
        await self.fire('tag:change', iden=self.iden, before=before, after=after)

    async def dispose(self):
        '''
        Remove this observable from its TagResult.  Does not interrupt a running check().
        '''
        await self.fini()

    async def check(self):  # pragma: no cover
        raise NotImplementedError()

class Observable(ObsBase):
    '''
    Watches the resolved value of one leaf path.
    '''
    async def __anit__(self, tagres, path, valu=None, iden=None):

        await ObsBase.__anit__(self, tagres, iden=iden)

        self.path = path
        self.names = path.split('.')
        self.valu = valu

        self.ctxfunc = None

    def __repr__(self):
        return f'Observable: {self.iden} ({self.path})'

    def onGetContext(self, func):
        '''
        Set the callback returning the context dict of each path segment.

        The callback receives the segment name.
        '''
        self.ctxfunc = func
        return self

    async def getContexts(self):

        if self.ctxfunc is None:
            return [{} for name in self.names]

        retn = []
        for name in self.names:
            ctx = await s_coro.ornot(self.ctxfunc, name)
            if ctx is None:
                ctx = {}
            retn.append(ctx)
        return retn

    async def check(self):
        '''
        Resolve the path again and fire the change callbacks if the value changed.

        Returns:
            bool: True if the value changed.
        '''
        if self.isfini or self.tagres.isfini:
            return False

        ctxs = await self.getContexts()
        valu = await self.tagres.get(self.path, ctxs)

        if valu == self.valu:
            return False

        logger.debug('Observable %s (%s) changed: %r -> %r', self.iden, self.path, self.valu, valu)

        await self._fireChange(self.valu, valu)
        return True

class BulkObservable(ObsBase):
    '''
    Checks a list of child observables concurrently.

    Modes:
        any: Fires (with the first changed child's before and after values) as
             soon as one child reports a change.  Returns True if any child changed.
        all: Waits for every child check to settle, then always fires (with lists
             of the children before and after values) and returns True.
    '''
    async def __anit__(self, tagres, children, mode, iden=None):

        await ObsBase.__anit__(self, tagres, iden=iden)

        if mode not in ('any', 'all'):
            raise s_exc.BadArg(mesg=f'Invalid bulk observable mode: {mode}', mode=mode)

        children = list(children)
        for kid in children:
            if not isinstance(kid, ObsBase):
                raise s_exc.BadArg(mesg=f'Bulk observable children must be observables: {kid!r}')
            if kid is self:
                raise s_exc.BadArg(mesg='A bulk observable may not observe itself.')

        self.mode = mode
        self.children = children

        for kid in self.children:
            kid.owners.add(self)

        self.valu = [kid.valu for kid in self.children]

        async def fini():
            for kid in self.children:
                kid.owners.discard(self)

        self.onfini(fini)

    def __repr__(self):
        return f'BulkObservable: {self.iden} ({self.mode}, {len(self.children)} children)'

    async def check(self):
        '''
        Check every live child.  Disposed children are skipped.
        '''
        if self.isfini or self.tagres.isfini:
            return False

        kids = [kid for kid in self.children if not kid.isfini]

        if self.mode == 'any':
            return await self._checkAny(kids)

        return await self._checkAll(kids)

    async def _checkKid(self, kid):
        return kid, await kid.check()

    async def _checkAny(self, kids):

        changed = False

        for futu in asyncio.as_completed([self._checkKid(kid) for kid in kids]):

            try:
                kid, ok = await futu

            except asyncio.CancelledError:
                raise

            except Exception:
                logger.warning('Bulk observable %s child check failed.', self.iden, exc_info=True)
                continue

            if ok and not changed:
                changed = True
                await self._fireChange(kid.prev, kid.valu)

        return changed

    async def _checkAll(self, kids):

        befores = [kid.valu for kid in kids]

        rets = await asyncio.gather(*[kid.check() for kid in kids], return_exceptions=True)

        for kid, retn in zip(kids, rets):

            if isinstance(retn, asyncio.CancelledError):
                raise retn

            if isinstance(retn, Exception):
                logger.warning('Bulk observable %s child %s check failed.', self.iden, kid.iden, exc_info=retn)

        await self._fireChange(befores, [kid.valu for kid in kids])
        return True
