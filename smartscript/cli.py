import os
import sys
import time
import argparse

if 'TRACE' in os.environ:
    import logging

    log = logging.getLogger('smartscript')
    log.setLevel(logging.DEBUG)
    log.addHandler(logging.FileHandler('smartscript_cli.log', 'w', 'utf-8'))

from .lex import ParseError
from .nodes import Document, tree_lines
from .parser import parse
from .engine import Engine
from .context import LRUDict, RequestContext


def parse_pairs(pairs: list[str]) -> dict[str, str]:
    r = {}
    for pair in pairs:
        name, sep, value = pair.partition('=')
        if not sep or not name:
            raise argparse.ArgumentTypeError(f'expected NAME=VALUE, got {pair!r}')
        r[name] = value
    return r


def main():
    parser = argparse.ArgumentParser(
        prog='smartscript', description='Run a smart script document.'
    )
    parser.add_argument('file', help="script file, or '-' for stdin")
    parser.add_argument(
        'params', nargs='*', metavar='NAME=VALUE', help='request parameters'
    )
    parser.add_argument(
        '-P',
        '--persistent',
        action='append',
        default=[],
        metavar='NAME=VALUE',
        help='seed a persistent parameter (repeatable)',
    )
    parser.add_argument(
        '-t', '--tree', action='store_true', help='Print the parsed tree and exit'
    )
    parser.add_argument(
        '-r',
        '--rewrite',
        action='store_true',
        help='Print the canonical text of the parsed document and exit',
    )
    parser.add_argument('-p', '--profile', action='store_true', help='Enable cProfile')
    parser.add_argument(
        '-i',
        '--instrument',
        action='store_true',
        help='Enable pyinstrument',
    )
    parser.add_argument(
        '-c', '--dump-ctx', action='store_true', help='Dump parameters after running'
    )
    args = parser.parse_args()

    try:
        params = parse_pairs(args.params)
        persistent = LRUDict()
        persistent.update(parse_pairs(args.persistent))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    file = args.file
    if file == '-':
        text = sys.stdin.read()
    else:
        with open(file, encoding='utf-8') as fp:
            text = fp.read()

    try:
        doc = parse(text)
    except ParseError as e:
        print('Error: ParseError:', e, file=sys.stderr)
        sys.exit(1)

    if args.tree:
        for line in tree_lines(doc):
            print(line)
        return
    if args.rewrite:
        print(doc.as_text())
        return

    sink = RequestContext(sys.stdout.buffer, params, persistent)

    if args.instrument:
        import pyinstrument

        out_file = 'pyinstrument_report.html'
        fd = os.open(out_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_EXCL)

        with pyinstrument.Profiler() as profiler:
            err, dt = run(doc, sink)

        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(profiler.output_html())
    elif args.profile:
        import cProfile
        import pstats

        with cProfile.Profile() as pr:
            err, dt = run(doc, sink)

        sortby = 'ncalls'
        ps = pstats.Stats(pr, stream=sys.stderr).sort_stats(sortby)
        ps.print_stats()
    else:
        err, dt = run(doc, sink)

    sys.stdout.flush()

    if err is not None:
        print(f'Error: {type(err).__name__}: {err}', file=sys.stderr)

    if args.dump_ctx:
        print('  mime =', sink.mime_type, file=sys.stderr)
        for k, v in sink.persistent.items():
            print('  (pm)', k, '=', repr(v), file=sys.stderr)
        for k, v in sink.temporary.items():
            print('  (tm)', k, '=', repr(v), file=sys.stderr)

    print(f'Time cost: {dt:.3f} secs', file=sys.stderr)

    sys.exit(err is not None)


def run(doc: Document, sink: RequestContext) -> tuple[Exception | None, float]:
    t0 = time.perf_counter()
    err = None
    try:
        Engine(sink).execute(doc)
    except (TypeError, ValueError, ArithmeticError, LookupError) as e:
        err = e
    dt = time.perf_counter() - t0
    return err, dt


if __name__ == '__main__':
    main()
