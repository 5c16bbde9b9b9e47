'''
Source chain policies.

A chain policy is a callable which receives a subject and returns the
objects contributing tag values, highest priority first.  The subject is
always appended as the lowest priority source by sources().
'''
import logging

logger = logging.getLogger(__name__)

def getSubjSources(subj):
    '''
    The default chain policy: ask the subject via getTagSources().

    Subjects without a getTagSources() method have no other sources.
    '''
    meth = getattr(subj, 'getTagSources', None)
    if meth is None:
        return []
    return list(meth())

class BattlerChain:
    '''
    A chain policy for battler-like subjects: states > equipment > class.

    The battler itself contributes through its data object (the object
    returned by ``actor()`` or ``enemy()``), which carries the note.  Any
    missing accessor is skipped.
    '''
    def __call__(self, subj):

        retn = []

        states = getattr(subj, 'states', None)
        if states is not None:
            retn.extend(states())

        equips = getattr(subj, 'equips', None)
        if equips is not None:
            retn.extend(equips())

        currentClass = getattr(subj, 'currentClass', None)
        if currentClass is not None:
            retn.append(currentClass())

        return retn

    def getNoteSubj(self, subj):
        '''
        Return the data object holding the notes of a battler.
        '''
        for name in ('actor', 'enemy'):
            meth = getattr(subj, name, None)
            if meth is not None:
                return meth()
        return subj

def sources(subj, chain=None):
    '''
    Return the ordered sources of a subject, highest priority first.

    Args:
        subj: The subject whose chain should be produced.
        chain (callable): An optional chain policy (defaults to getSubjSources).

    Notes:
        The chain is recomputed on every call and None entries are dropped.
        The subject is always the final element.

    Returns:
        list: The sources followed by the subject.
    '''
    if chain is None:
        chain = getSubjSources

    retn = [s for s in chain(subj) if s is not None and s is not subj]
    retn.append(subj)
    return retn
