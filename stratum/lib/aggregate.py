'''
Pure functions which combine the values contributed by a source chain.

Every function receives the raw values in priority order (highest first).
'''
import math
import logging

import stratum.exc as s_exc

import stratum.lib.const as s_const

logger = logging.getLogger(__name__)

def tonum(valu):
    '''
    Return valu as an int/float or None if it is not a finite number.
    '''
    if isinstance(valu, bool):
        return None

    if isinstance(valu, int):
        return valu

    if isinstance(valu, float):
        if not math.isfinite(valu):
            return None
        return valu

    if isinstance(valu, str):
        text = valu.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            numb = float(text)
        except ValueError:
            return None
        if not math.isfinite(numb):
            return None
        return numb

    return None

def isnum(valu):
    return tonum(valu) is not None

def defval(fild):
    '''
    Return the default value for a Field.

    An explicit default wins, otherwise the type default is used.
    '''
    if fild.default is not None:
        return fild.default

    if fild.type == 'number':
        return 0

    if fild.type == 'map':
        return {}

    if fild.type == 'structure':
        return {name: defval(sub) for name, sub in fild.fields.items() if not sub.isSynthetic()}

    return ''

def first(valus, fild):
    '''
    Return the first non-None value or the default of the field.
    '''
    for valu in valus:
        if valu is not None:
            return valu
    return defval(fild)

def _items(valus):
    for valu in valus:
        if valu is None:
            continue
        if isinstance(valu, (list, tuple)):
            yield from valu
            continue
        yield valu

def _strs(valus):
    retn = []
    for valu in _items(valus):
        if valu == '' or valu is None:
            continue
        retn.append(str(valu))
    return retn

def number(main, plus=(), rate=()):
    '''
    Combine a numeric main value with additive and percentage modifiers.

    (main + sum(plus)) * (1 + sum(rate) * 0.01)
    '''
    base = tonum(main)
    if base is None:
        raise s_exc.BadTypeValu(mesg=f'Invalid number value: {main!r}', valu=main)

    valu = base + sum(_reqnums(plus))

    ratesum = sum(_reqnums(rate))
    if not ratesum:
        return valu

    return valu * (1 + ratesum * s_const.RATE_SCALE)

def _reqnums(valus):
    for valu in valus:
        if valu is None:
            continue
        numb = tonum(valu)
        if numb is None:
            raise s_exc.BadTypeValu(mesg=f'Invalid number modifier: {valu!r}', valu=valu)
        yield numb

def strings(main, plus=()):
    '''
    Concatenate the main value and the additive values as a comma list.

    List values are flattened one level and empty items are dropped.
    '''
    return ','.join(_strs([main, *plus]))

def _splitcomma(valu):
    if valu is None:
        return []
    if isinstance(valu, (list, tuple)):
        return _strs(valu)
    return [v for v in str(valu).split(',') if v]

def _mergemods(maps):
    retn = {}
    for item in maps:
        if not item:
            continue
        for key, valu in item.items():
            numb = tonum(valu)
            if numb is not None:
                retn[key] = (tonum(retn.get(key)) or 0) + numb
                continue

            curv = retn.get(key)
            retn[key] = ','.join(_splitcomma(curv) + _splitcomma(valu))
    return retn

def maps(bases, plus=(), rate=()):
    '''
    Merge the map values contributed by a source chain.

    Base entries are kept from the first (highest priority) source defining
    each key; plus and rate entries are summed when numeric or concatenated as
    comma lists.  Each key of any contributing map appears once in the result.
    '''
    basemap = {}
    for item in bases:
        if not item:
            continue
        for key, valu in item.items():
            if key not in basemap:
                basemap[key] = valu

    plusmap = _mergemods(plus)
    ratemap = _mergemods(rate)

    keys = list(basemap)
    keys.extend(k for k in plusmap if k not in basemap)
    keys.extend(k for k in ratemap if k not in basemap and k not in plusmap)

    retn = {}
    for key in keys:

        base = basemap.get(key)
        plusv = plusmap.get(key)
        ratev = ratemap.get(key)

        if isnum(base) or isnum(plusv) or isnum(ratev):
            numb = (tonum(base) or 0) + (tonum(plusv) or 0)
            ratesum = tonum(ratev) or 0
            if ratesum:
                numb = numb * (1 + ratesum * s_const.RATE_SCALE)
            retn[key] = numb
            continue

        retn[key] = ','.join(_splitcomma(base) + _splitcomma(plusv))

    return retn

def code(main):
    return main

def aggregate(fild, mains, plus=(), rate=()):
    '''
    Resolve a leaf Field from the values contributed by a source chain.

    Args:
        fild (Field): The (non-structure) field being resolved.
        mains (list): The main field values in priority order.
        plus (list): Every Plus channel value of the chain.
        rate (list): Every Rate channel value of the chain.
    '''
    if fild.type == 'number':
        return number(first(mains, fild), plus, rate)

    if fild.type in ('string', 'list', 'text'):
        return strings(first(mains, fild), plus)

    if fild.type == 'map':
        bases = [m for m in mains if m is not None]
        if not bases:
            bases = [defval(fild)]
        return maps(bases, plus, rate)

    if fild.type == 'code':
        return code(first(mains, fild))

    raise s_exc.NoSuchType(mesg=f'Field type {fild.type} can not be aggregated.', name=fild.type)
