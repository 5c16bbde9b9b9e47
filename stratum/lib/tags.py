'''
Resolve layered tag values for a subject and its sources.

Example:

    tagres = s_tags.resolve(actor, model)

    # flat form, one context per path segment
    nbr = await tagres.get('my_tag.nbr', ({}, {'a': 100}))

    # chained form
    nbr = await tagres.getter().field('my_tag').field('nbr', {'a': 100})

    # every contributing value, highest priority first
    nbrs = await tagres.collect('my_tag.nbr', ({}, {'a': 100}))

    # watch for changes
    obs = await tagres.observable('my_tag.nbr')
    obs.onGetContext(lambda name: {'a': 100})
    obs.onChange(func)

    # when the sources of actor change
    await tagres.checkObservables()
'''
import asyncio
import logging
import weakref

import stratum.exc as s_exc
import stratum.common as s_common
import stratum.datamodel as s_datamodel

import stratum.lib.coro as s_coro
import stratum.lib.chain as s_chain
import stratum.lib.const as s_const
import stratum.lib.config as s_config
import stratum.lib.notetag as s_notetag
import stratum.lib.observe as s_observe
import stratum.lib.aggregate as s_aggregate

logger = logging.getLogger(__name__)

confdefs = {
    'repo:key': {
        'type': 'string',
        'default': 'item',
        'description': 'The template repository key used to store subject notes.',
    },
    'observe:errors': {
        'type': 'string',
        'enum': ['log', 'raise'],
        'default': 'log',
        'description': 'Log or raise errors from individual observables during checkObservables().',
    },
}

def _getCtx(ctxs, indx):
    if indx < len(ctxs) and ctxs[indx] is not None:
        return ctxs[indx]
    return {}

def _splitPath(path):
    if not path:
        raise s_exc.BadArg(mesg='A tag path may not be empty.', path=path)
    return path.split('.')

class Scope:
    '''
    A lazy, schema validated position within a TagResult.

    Each field() call validates the segment and returns a new Scope.  Awaiting
    a Scope resolves it: a structure resolves to a Scope and a leaf resolves
    to its value (get mode) or to every contributed value (collect mode).
    '''
    def __init__(self, tagres, mode, ctx=None, names=(), ctxs=(), flds=()):
        self.tagres = tagres
        self.mode = mode
        self.ctx = ctx
        self.names = names
        self.ctxs = ctxs
        self.flds = flds

        # the contributing sub-items of a collected structure
        self.valus = None

    def __repr__(self):
        return f'Tag Scope: {self.path()} ({self.mode})'

    def path(self):
        return '.'.join(self.names)

    def field(self, name, ctx=None):
        '''
        Return the Scope for a child field.

        Raises:
            NoSuchPath: If the field is not defined at this position of the model.
        '''
        path = s_const.ROOT
        if self.flds:
            path = self.flds[-1].full

        fild = self.tagres.modl.reqField(name, path)
        return Scope(self.tagres, self.mode, ctx=self.ctx,
                     names=self.names + (name,),
                     ctxs=self.ctxs + (ctx,),
                     flds=self.flds + (fild,))

    def __await__(self):
        return self._resolve().__await__()

    async def _resolve(self):

        if not self.flds:
            return self

        fild = self.flds[-1]
        if fild.type == 'structure':
            if self.mode == 'collect':
                self.valus = await self.tagres._getAllValues(self.names, self.ctxs, ctx=self.ctx)
            return self

        if self.mode == 'collect':
            return await self.tagres._getAllValues(self.names, self.ctxs, ctx=self.ctx)

        return await self.tagres._getLeaf(self.names, self.flds, self.ctxs, ctx=self.ctx)

class TagResult:
    '''
    The resolution context binding one subject to one derived Model.

    Note:
        Obtain instances through Registry.get() (or resolve()) so there is
        exactly one per subject and model.
    '''
    def __init__(self, registry, subj, modl):

        self.iden = s_common.guid()
        self.isfini = False

        self.modl = modl
        self.registry = registry

        self._subj_ref = weakref.ref(subj)

        self.repo = registry.repoctor(modl)
        self.observables = {}

    def __repr__(self):
        return f'TagResult: {self.iden}'

    def getSubj(self):
        return self._subj_ref()

    def reqSubj(self):
        subj = self._subj_ref()
        if subj is None:
            raise s_exc.NoSuchSubj(mesg='The subject of this tag result no longer exists.', iden=self.iden)
        return subj

    def exists(self, valu):
        return self.repo.exists(valu)

    async def raw(self, ctx=None):
        '''
        Interpret the subject's own note (without any other source).
        '''
        subj = self.reqSubj()
        key = self.registry.conf.get('repo:key')

        self.repo.set(key, self.registry.getNote(subj))
        return await self.repo.interpret(key, ctx)

    async def rawFromPath(self, names, ctxs=(), ctx=None):
        '''
        Walk the subject's own note along names, one context per segment.
        '''
        item = await self.raw(ctx)
        for indx, name in enumerate(names):
            if item is None or not self.exists(item):
                return None
            item = await item.field(name, _getCtx(ctxs, indx))
        return item

    def sources(self):
        '''
        Return the TagResults of the source chain, highest priority first.
        '''
        subj = self.reqSubj()
        retn = []
        for sorc in s_chain.sources(subj, chain=self.registry.chain):
            if sorc is subj:
                retn.append(self)
                continue
            retn.append(self.registry.get(sorc, self.modl))
        return retn

    async def _getMainValue(self, names, ctxs, ctx=None):
        for tres in self.sources():
            valu = await tres.rawFromPath(names, ctxs, ctx=ctx)
            if valu is not None:
                return valu
        return None

    async def _getAllValues(self, names, ctxs, ctx=None):
        retn = []
        for tres in self.sources():
            valu = await tres.rawFromPath(names, ctxs, ctx=ctx)
            if valu is not None:
                retn.append(valu)
        return retn

    async def _getLeaf(self, names, flds, ctxs, ctx=None):

        fild = flds[-1]
        names = list(names)

        if fild.type == 'map':
            mains = await self._getAllValues(names, ctxs, ctx=ctx)
        else:
            mains = [await self._getMainValue(names, ctxs, ctx=ctx)]

        plus = ()
        rate = ()

        chans = fild.chans()
        if 'plus' in chans:
            plusnames = names[:-1] + [s_datamodel.channame(fild.name, 'plus')]
            plus = await self._getAllValues(plusnames, ctxs, ctx=ctx)

        if 'rate' in chans:
            ratenames = names[:-1] + [s_datamodel.channame(fild.name, 'rate')]
            rate = await self._getAllValues(ratenames, ctxs, ctx=ctx)

        return s_aggregate.aggregate(fild, mains, plus, rate)

    def getter(self, ctx=None):
        '''
        Return the root Scope for resolving values.
        '''
        return Scope(self, 'get', ctx=ctx)

    def collector(self, ctx=None):
        '''
        Return the root Scope for collecting every contributed value.
        '''
        return Scope(self, 'collect', ctx=ctx)

    def _getPathScope(self, scope, path, ctxs):
        for indx, name in enumerate(_splitPath(path)):
            scope = scope.field(name, _getCtx(ctxs, indx))
        return scope

    async def get(self, path, ctxs=()):
        '''
        Resolve a dotted path.

        Args:
            path (str): The dotted field path (for example ``my_tag.nbr``).
            ctxs (list): One context dict per path segment.

        Returns:
            The aggregated value, or a Scope for structure fields.
        '''
        return await self._getPathScope(self.getter(), path, ctxs)

    async def collect(self, path, ctxs=()):
        '''
        Return every value contributed for a dotted path, highest priority first.
        '''
        return await self._getPathScope(self.collector(), path, ctxs)

    def reqLeafPath(self, path):
        flds = self.modl.reqFields(_splitPath(path))
        if flds[-1].type == 'structure':
            raise s_exc.BadArg(mesg=f'Observables require a leaf field path: {path}', path=path)
        return flds

    async def observable(self, path, valu=None, iden=None):
        '''
        Create and register an Observable for a leaf path.

        Args:
            path (str): The dotted field path.
            valu: The initial value the first check() compares against.
            iden (str): An optional iden; registering an existing iden replaces it.

        Returns:
            Observable: The registered observable.
        '''
        self.reqLeafPath(path)
        obs = await s_observe.Observable.anit(self, path, valu=valu, iden=iden)
        await self._regObservable(obs)
        return obs

    async def observeAny(self, children, func=None, iden=None):
        '''
        Register a BulkObservable which changes when any child changes.
        '''
        return await self._observeBulk(children, 'any', func, iden)

    async def observeAll(self, children, func=None, iden=None):
        '''
        Register a BulkObservable which fires after every child has been checked.
        '''
        return await self._observeBulk(children, 'all', func, iden)

    async def _observeBulk(self, children, mode, func, iden):
        bulk = await s_observe.BulkObservable.anit(self, children, mode, iden=iden)
        if func is not None:
            bulk.onChange(func)
        await self._regObservable(bulk)
        return bulk

    async def _regObservable(self, obs):

        if self.isfini:
            await obs.fini()
            raise s_exc.IsFini(mesg='The tag result has been dropped.', iden=self.iden)

        oldv = self.observables.get(obs.iden)
        self.observables[obs.iden] = obs

        if oldv is not None and oldv is not obs:
            await oldv.fini()

        def fini():
            if self.observables.get(obs.iden) is obs:
                self.observables.pop(obs.iden, None)

        obs.onfini(fini)

    def getObservable(self, iden):
        return self.observables.get(iden)

    async def checkObservables(self):
        '''
        Check every registered observable not owned by a BulkObservable.

        Returns:
            int: The number of observables which reported a change.
        '''
        count = 0
        for obs in list(self.observables.values()):

            if obs.isfini or obs.owners:
                continue

            try:
                if await obs.check():
                    count += 1

            except asyncio.CancelledError:
                raise

            except Exception:
                if self.registry.conf.get('observe:errors') == 'raise':
                    raise
                logger.exception('Observable %s (%s) check failed.', obs.iden, obs.path)

        return count

    async def fini(self):
        '''
        Dispose every registered observable.
        '''
        self.isfini = True
        for obs in list(self.observables.values()):
            await obs.fini()

class Registry:
    '''
    The identity keyed association between subjects and their TagResults.

    Args:
        conf (dict): Optional configuration (see confdefs).
        chain (callable): Optional source chain policy (see stratum.lib.chain).
        repoctor (callable): Optional template repository constructor taking a Model.

    Notes:
        Subjects are referenced weakly; when a subject is garbage collected its
        TagResults are dropped.  Use drop() for an explicit teardown.
    '''
    def __init__(self, conf=None, chain=None, repoctor=None):

        self.conf = s_config.Config(s_config.getJsSchema(confdefs), conf=conf,
                                    envar_prefixes=('STRATUM',))
        self.conf.setConfFromEnvs()
        self.conf.reqConfValid()

        self.chain = chain

        if repoctor is None:
            repoctor = s_notetag.NoteRepo
        self.repoctor = repoctor

        # id(subj) -> (weakref, {id(modl): TagResult})
        self.tagresbyid = {}

        # id(mdef) -> (mdef, Model) for the models of live TagResults
        self.models = {}

    def __len__(self):
        return len(self.tagresbyid)

    def getNote(self, subj):
        '''
        Return the note text of a subject or source.
        '''
        meth = getattr(self.chain, 'getNoteSubj', None)
        if meth is not None:
            subj = meth(subj)
        return getattr(subj, 'note', None) or ''

    def get(self, subj, mdef):
        '''
        Return the TagResult for a subject and model, creating it if needed.
        '''
        modl = s_datamodel.adapt(mdef, memo=self.models)

        subjid = id(subj)
        item = self.tagresbyid.get(subjid)
        if item is None or item[0]() is not subj:
            item = (self._getSubjRef(subj), {})
            self.tagresbyid[subjid] = item

        tagres = item[1].get(id(modl))
        if tagres is None:
            tagres = TagResult(self, subj, modl)
            item[1][id(modl)] = tagres
            logger.debug('Created tag result %s for %r', tagres.iden, subj)

        return tagres

    def _getSubjRef(self, subj):

        subjid = id(subj)

        def fini(ref):
            item = self.tagresbyid.get(subjid)
            if item is None or item[0] is not ref:
                return

            self.tagresbyid.pop(subjid, None)
            self._finiTagResults(item[1].values())
            self._pruneModels()

        try:
            return weakref.ref(subj, fini)
        except TypeError:
            mesg = f'Tag subjects must support weak references: {type(subj).__name__}'
            raise s_exc.BadArg(mesg=mesg) from None

    def _finiTagResults(self, tagreses):

        for tagres in tagreses:
            tagres.isfini = True

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return

        for tagres in tagreses:
            if tagres.observables:
                s_coro.create_task(tagres.fini())

    def _pruneModels(self):
        # release the author models no TagResult uses anymore
        live = set()
        for ref, tagresbymodl in list(self.tagresbyid.values()):
            live.update(tagresbymodl.keys())

        for key, (mdef, modl) in list(self.models.items()):
            if id(modl) not in live:
                self.models.pop(key, None)

    def getTagResults(self, subj):
        item = self.tagresbyid.get(id(subj))
        if item is None or item[0]() is not subj:
            return []
        return list(item[1].values())

    async def drop(self, subj):
        '''
        Remove and fini every TagResult of a subject.
        '''
        tagreses = self.getTagResults(subj)
        if tagreses:
            self.tagresbyid.pop(id(subj), None)

        for tagres in tagreses:
            await tagres.fini()
            logger.debug('Dropped tag result %s', tagres.iden)

        self._pruneModels()

        return len(tagreses)

    async def refresh(self, subj):
        '''
        Check the observables of a subject after its sources changed.
        '''
        count = 0
        for tagres in self.getTagResults(subj):
            count += await tagres.checkObservables()
        return count

_registry = None

def getRegistry():
    '''
    Return the process wide default Registry.
    '''
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry

def resolve(subj, mdef, registry=None):
    '''
    Return the TagResult of a subject for a model.
    '''
    if registry is None:
        registry = getRegistry()
    return registry.get(subj, mdef)
