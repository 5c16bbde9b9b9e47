import stratum.lib.chain as s_chain

import stratum.tests.utils as s_t_utils

from stratum.tests.utils import Data, Battler, Subject

class ChainTest(s_t_utils.StratTest):

    def test_chain_sources(self):

        sorc = Subject('a')
        subj = Subject('b', sources=(sorc, None))

        self.eq([sorc, subj], s_chain.sources(subj))
        self.eq([sorc, None], s_chain.getSubjSources(subj))

        # the subject appears once, always last
        subj.sorcs.insert(0, subj)
        srcs = s_chain.sources(subj)
        self.len(2, srcs)
        self.true(srcs[-1] is subj)

        # subjects without sources
        item = Data(1, 'title: Hero')
        self.eq([item], s_chain.sources(item))
        self.eq([], s_chain.getSubjSources(item))

        self.eq([sorc, sorc, item], s_chain.sources(item, chain=lambda x: [sorc, None, sorc]))

    def test_chain_battler(self):

        data = Data(1, 'actor')
        klass = Data(2, 'class')
        states = [Data(3, 'state0'), Data(4, 'state1')]
        equips = [Data(5, 'weapon'), None]

        battler = Battler(data, states=states, equips=equips, klass=klass)

        chain = s_chain.BattlerChain()
        srcs = s_chain.sources(battler, chain=chain)
        self.eq(['state0', 'state1', 'weapon', 'class'], [s.note for s in srcs[:-1]])
        self.true(srcs[-1] is battler)

        self.true(chain.getNoteSubj(battler) is data)
        self.true(chain.getNoteSubj(klass) is klass)

        # the chain is recomputed every time
        states.pop(0)
        battler.klass = None
        srcs = s_chain.sources(battler, chain=chain)
        self.eq(['state1', 'weapon'], [s.note for s in srcs[:-1]])

        # missing accessors are skipped
        self.eq([], chain(Data(6, 'newp')))
