import os
import sys
import json
import time
import logging
import argparse

from .engine import Tracery
from .options import Options
from .text import parse_rules
from .modifiers import base_english, base_methods
from .util import log, init_logging, is_tracing


def load(file: str) -> dict:
    if file == '-':
        text = sys.stdin.read()
    else:
        with open(file, encoding='utf-8') as fp:
            text = fp.read()

    # Tracery's usual JSON grammars, or the plain-text format.
    if file.endswith('.json') or text.lstrip().startswith('{'):
        return json.loads(text)
    return parse_rules(text)


def main():
    parser = argparse.ArgumentParser(prog='tracery')
    parser.add_argument('file', help="Rule file, plain text or JSON, '-' for stdin")
    parser.add_argument('text', nargs='?', default='#origin#', help='Text to expand')
    parser.add_argument('-n', '--count', type=int, default=1, help='Number of expansions')
    parser.add_argument('-s', '--seed', type=int, help='Seed for reproducible output')
    parser.add_argument(
        '-H', '--hierarchical', action='store_true', help='Scope tags by rule depth'
    )
    parser.add_argument('-d', '--max-depth', type=int, help='Max rule recursion depth')
    parser.add_argument('-g', '--max-gas', type=int, help='Max evaluation steps per expansion')
    parser.add_argument(
        '-l',
        '--log-level',
        choices=('none', 'errors', 'warnings', 'info', 'verbose'),
        help='Engine log level',
    )
    parser.add_argument(
        '-k', '--keep', action='store_true', help='Keep tags between expansions'
    )
    parser.add_argument('-p', '--profile', action='store_true', help='Enable cProfile')
    parser.add_argument(
        '-i',
        '--instrument',
        action='store_true',
        help='Enable pyinstrument',
    )
    args = parser.parse_args()

    init_logging()
    # Traces need both `TRACE=1` and `DEBUG=1`.
    if is_tracing:
        log.addHandler(logging.FileHandler('tracery_cli.log', 'w', 'utf-8'))

    overrides = {}
    if args.seed is not None:
        overrides['seed'] = args.seed
    if args.hierarchical:
        overrides['tag_storage'] = 'hierarchical'
    if args.max_depth is not None:
        overrides['max_depth'] = args.max_depth
    if args.max_gas is not None:
        overrides['max_gas'] = args.max_gas
    if args.log_level is not None:
        overrides['log_level'] = args.log_level

    t = Tracery(load(args.file), Options.from_env(**overrides))
    t.add_modifiers(base_english)
    t.add_methods(base_methods)

    if args.instrument:
        import pyinstrument

        out_file = 'pyinstrument_report.html'
        fd = os.open(out_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_EXCL)

        with pyinstrument.Profiler() as profiler:
            results, dt = emit(t, args.text, args.count, args.keep)

        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(profiler.output_html())
    elif args.profile:
        import cProfile
        import pstats

        with cProfile.Profile() as pr:
            results, dt = emit(t, args.text, args.count, args.keep)

        sortby = 'ncalls'
        ps = pstats.Stats(pr, stream=sys.stderr).sort_stats(sortby)
        ps.print_stats()
    else:
        results, dt = emit(t, args.text, args.count, args.keep)

    for r in results:
        print(r)

    for err in t.errors:
        print('Error:', err, file=sys.stderr)

    print(f'Time cost: {dt:.3f} secs', file=sys.stderr)

    sys.exit(any(r.startswith('error: ') for r in results))


def emit(t: Tracery, text: str, count: int, keep: bool) -> tuple[list[str], float]:
    t0 = time.perf_counter()
    results = [t.expand(text, preserve_context=keep) for _ in range(count)]
    dt = time.perf_counter() - t0
    return results, dt


if __name__ == '__main__':
    main()
