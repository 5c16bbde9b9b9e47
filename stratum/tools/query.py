import sys
import asyncio
import logging

import stratum.exc as s_exc
import stratum.common as s_common

import stratum.lib.cmd as s_cmd
import stratum.lib.tags as s_tags
import stratum.lib.output as s_output

logger = logging.getLogger(__name__)

descr = '''
Resolve a tag path for a subject described in YAML.

The notes file holds the subject note and its sources (highest priority first):

    note: |
      <my_tag>
      nbr: 10
      </my_tag>
    sources:
      - |
        <my_tag>
        nbr+: 5
        </my_tag>

Examples:

    python -m stratum.tools.query model.yaml notes.yaml my_tag.nbr
    python -m stratum.tools.query model.yaml notes.yaml my_tag.nbr --ctx '{}' --ctx '{a: 100}'
'''

class Note:
    '''
    A source object carrying only a note.
    '''
    def __init__(self, note):
        self.note = note

class Subject(Note):

    def __init__(self, note, sources=()):
        Note.__init__(self, note)
        self.sorcs = [Note(n) for n in sources]

    def getTagSources(self):
        return self.sorcs

def loadYamlFile(path):
    item = s_common.yamlload(path)
    if item is None:
        raise s_exc.BadArg(mesg=f'No such file: {path}', path=path)
    return item

def getSubject(info):

    if isinstance(info, str):
        return Subject(info)

    if not isinstance(info, dict):
        raise s_exc.BadArg(mesg='The notes file must hold a note string or a dict.')

    return Subject(info.get('note', ''), sources=info.get('sources', ()))

def getCtxs(ctxs):

    retn = []
    for text in ctxs:
        ctx = s_common.yamlloads(text)
        if ctx is None:
            ctx = {}
        if not isinstance(ctx, dict):
            raise s_exc.BadArg(mesg=f'Context values must be YAML mappings: {text}', valu=text)
        retn.append(ctx)

    return retn

async def main(argv, outp=s_output.stdout):

    pars = s_cmd.Parser(prog='stratum.tools.query', outp=outp, description=descr)
    pars.add_argument('model', help='A YAML file containing the model definition.')
    pars.add_argument('notes', help='A YAML file containing the subject note and its sources.')
    pars.add_argument('path', help='The dotted tag path to resolve.')
    pars.add_argument('--ctx', default=[], action='append',
                      help='A YAML mapping used as the context of the next path segment.')
    pars.add_argument('--collect', default=False, action='store_true',
                      help='Print every contributed value instead of the aggregated value.')
    pars.addResolveArgs()

    try:
        opts = pars.parse_args(argv)
    except s_exc.ParserExit as e:
        return e.get('status')

    s_common.setlogging(logger, defval=opts.log_level)

    try:
        mdef = loadYamlFile(opts.model)
        subj = getSubject(loadYamlFile(opts.notes))
        ctxs = getCtxs(opts.ctx)

        conf = None
        if opts.conf is not None:
            conf = loadYamlFile(opts.conf)

        tagres = s_tags.Registry(conf=conf).get(subj, mdef)

        if opts.collect:
            valu = await tagres.collect(opts.path, ctxs)
        else:
            valu = await tagres.get(opts.path, ctxs)

    except s_exc.StratErr as e:
        outp.printf(f'ERROR: {e.get("mesg")}')
        return 1

    outp.printValu(valu)
    return 0

if __name__ == '__main__':  # pragma: no cover
    sys.exit(asyncio.run(main(sys.argv[1:])))
