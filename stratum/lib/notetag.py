'''
A template repository for RPG style notetag text.

Given a model with a ``my_tag`` structure, the following note::

    <my_tag>
    <!nbr>
    return 500 + context.a;
    </nbr>
    nbr+: 65
    nbr%: 200
    str: hello
    list+: 10
    obj(b): 20
    obj(a)+: 100
    <bio>
    I am a simple adventurer.
    </bio>
    </my_tag>

    title: Hero

is parsed once into a tree shaped like the derived model.  A ``+`` suffix
targets the ``<name>Plus`` channel and a ``%`` suffix the ``<name>Rate``
channel.  Script blocks (``<!name>``) hold a single expression which is
evaluated by simpleeval each time the field is read, with the read context
available as ``context`` (and as bare names).
'''
import logging
import textwrap
import collections.abc as c_abc

import regex

from simpleeval import simple_eval, InvalidExpression

import stratum.exc as s_exc
import stratum.datamodel as s_datamodel

import stratum.lib.aggregate as s_aggregate

logger = logging.getLogger(__name__)

scriptre = regex.compile(r'^\s*<!(\w+)>\s*$')
openre = regex.compile(r'^\s*<(\w+)>\s*$')
closere = regex.compile(r'^\s*</(\w+)>\s*$')
inlinere = regex.compile(r'^\s*<(\w+)>(.*)</\1>\s*$')
linere = regex.compile(r'^\s*(\w+)(?:\(([^)]+)\))?([+%])?:(.*)$')

chans = {
    '+': 'plus',
    '%': 'rate',
}

class Script:
    '''
    A notetag expression evaluated on read.
    '''
    def __init__(self, name, text):
        self.name = name
        self.text = text
        self.expr = self._getExpr(text)

    def _getExpr(self, text):
        expr = ' '.join(line.strip() for line in text.splitlines() if line.strip())
        if expr.startswith('return '):
            expr = expr[7:]
        return expr.rstrip(';').strip()

    def eval(self, ctx):
        if ctx is None:
            ctx = {}

        # mapping contexts are also exposed as bare names
        names = {}
        if isinstance(ctx, c_abc.Mapping):
            names.update(ctx)
        names['context'] = ctx

        try:
            return simple_eval(self.expr, names=names)
        except (InvalidExpression, SyntaxError) as e:
            mesg = f'Notetag script {self.name} failed: {e}'
            raise s_exc.BadScript(mesg=mesg, name=self.name, expr=self.expr) from e

    def __repr__(self):
        return f'Script({self.name}: {self.expr})'

def _reqClose(lines, offs, name):
    '''
    Return the offset of the line closing the block opened before offs.
    '''
    depth = 0
    for i in range(offs, len(lines)):
        line = lines[i]

        mesg = openre.match(line) or scriptre.match(line)
        if mesg is not None and mesg.group(1) == name:
            depth += 1
            continue

        mesg = closere.match(line)
        if mesg is not None and mesg.group(1) == name:
            if depth == 0:
                return i
            depth -= 1

    raise s_exc.BadSyntax(mesg=f'Unclosed notetag block <{name}>.', name=name, line=offs)

def parse(text, fields):
    '''
    Parse notetag text into a tree for the given Model fields.

    Args:
        text (str): The raw note text.
        fields (dict): The Field objects of the level being parsed.

    Returns:
        dict: A mapping of field name to literal, Script, map dict or sub-tree.
    '''
    if not text:
        return {}
    return _parseLines(text.splitlines(), fields)

def _parseLines(lines, fields):

    tree = {}

    offs = 0
    size = len(lines)

    while offs < size:

        line = lines[offs]
        offs += 1

        if not line.strip():
            continue

        mesg = inlinere.match(line)
        if mesg is not None:
            name, body = mesg.groups()
            fild = fields.get(name)
            if fild is not None and fild.type != 'structure':
                tree[name] = body.strip()
            continue

        mesg = scriptre.match(line)
        if mesg is not None:
            name = mesg.group(1)
            end = _reqClose(lines, offs, name)
            body = '\n'.join(lines[offs:end])
            offs = end + 1

            fild = fields.get(name)
            if fild is None or fild.type == 'structure':
                logger.debug('Ignoring script for unknown or structure notetag field: %s', name)
                continue

            tree[name] = Script(name, body)
            continue

        mesg = openre.match(line)
        if mesg is not None:
            name = mesg.group(1)
            end = _reqClose(lines, offs, name)
            body = lines[offs:end]
            offs = end + 1

            fild = fields.get(name)
            if fild is None:
                logger.debug('Ignoring unknown notetag block: %s', name)
                continue

            if fild.type == 'structure':
                tree[name] = _parseLines(body, fild.fields)
                continue

            tree[name] = textwrap.dedent('\n'.join(body)).strip('\n')
            continue

        mesg = linere.match(line)
        if mesg is None:
            continue

        name, key, oper, valu = mesg.groups()
        if oper is not None:
            name = s_datamodel.channame(name, chans.get(oper))

        fild = fields.get(name)
        if fild is None or fild.type == 'structure':
            logger.debug('Ignoring unknown notetag field: %s', name)
            continue

        valu = valu.strip()

        if key is not None:
            if fild.type != 'map':
                logger.debug('Ignoring keyed value for non-map notetag field: %s', name)
                continue

            item = tree.get(name)
            if not isinstance(item, dict):
                item = tree[name] = {}
            item[key.strip()] = valu
            continue

        tree[name] = valu

    return tree

def norm(fild, valu):
    '''
    Normalize a raw notetag value for a Field.
    '''
    if valu is None:
        return None

    if fild.type == 'number':
        numb = s_aggregate.tonum(valu)
        if numb is None:
            raise s_exc.BadTypeValu(mesg=f'Invalid number for {fild.full}: {valu!r}',
                                    name=fild.full, valu=valu)
        return numb

    if fild.type == 'string':
        return str(valu).strip()

    if fild.type == 'list':
        if isinstance(valu, (list, tuple)):
            return [str(v).strip() for v in valu]
        return [v.strip() for v in str(valu).split(',') if v.strip()]

    if fild.type == 'map':
        if not isinstance(valu, dict):
            raise s_exc.BadTypeValu(mesg=f'Invalid map for {fild.full}: {valu!r}',
                                    name=fild.full, valu=valu)
        retn = {}
        for key, item in valu.items():
            numb = s_aggregate.tonum(item)
            if numb is None:
                numb = str(item).strip()
            retn[key] = numb
        return retn

    # text and code values are kept verbatim
    return valu

class Item:
    '''
    One interpreted level of a notetag tree.
    '''
    def __init__(self, repo, fields, tree, ctx=None):
        self.ctx = ctx
        self.repo = repo
        self.tree = tree
        self.fields = fields

    def __repr__(self):
        return f'Notetag Item: {list(self.tree)}'

    async def field(self, name, ctx=None):
        '''
        Return the value of a field (or an Item for structures), None if absent.
        '''
        entry = self.tree.get(name)
        if entry is None:
            return None

        fild = self.fields.get(name)
        if fild is None:
            return None

        if fild.type == 'structure':
            return Item(self.repo, fild.fields, entry, ctx)

        if isinstance(entry, Script):
            entry = entry.eval(ctx)

        return norm(fild, entry)

class NoteRepo:
    '''
    Stores parsed notetag trees by key and interprets them on demand.
    '''
    def __init__(self, modl):
        self.modl = s_datamodel.adapt(modl)
        self.texts = {}
        self.trees = {}

    def set(self, key, text):
        '''
        Parse and store the note text under key.  Unchanged text is not reparsed.
        '''
        if self.texts.get(key) == text and key in self.trees:
            return

        self.trees[key] = parse(text, self.modl.fields)
        self.texts[key] = text

    def pop(self, key):
        self.texts.pop(key, None)
        return self.trees.pop(key, None)

    async def interpret(self, key, ctx=None):
        '''
        Return the root Item stored under key or None.
        '''
        tree = self.trees.get(key)
        if tree is None:
            return None
        return Item(self, self.modl.fields, tree, ctx)

    def exists(self, valu):
        return isinstance(valu, Item)
