import os
from os import PathLike

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

from .util import log, trace

parser = Lark.open(
    os.path.join(os.path.dirname(__file__), 'rules.lark'),
    parser='lalr',
)


class RuleFileError(ValueError):
    pass


class RuleBlocks(Transformer):
    '''
    Each block is scanned for its first `[name]` header. Lines before it are
    ignored, every line after it is a candidate, header-shaped or not.
    '''

    def block(self, lines: list[Token]) -> tuple[str, list[str]] | None:
        for i, line in enumerate(lines):
            if line.type == 'HEADER':
                name = line.value[1:-1]
                candidates = [str(l) for l in lines[i + 1 :]]
                # A header alone defines an empty rule.
                return name, candidates or ['']
            trace('Ignoring stray line: %r', line.value)
        return None

    def start(self, blocks: list[tuple[str, list[str]] | None]) -> dict[str, list[str]]:
        rules: dict[str, list[str]] = {}
        for block in blocks:
            if block is None:
                continue
            name, candidates = block
            if name in rules:
                log.warning("rule '%s' defined twice, will be overwritten", name)
            rules[name] = candidates
        return rules


def parse_rules(text: str) -> dict[str, list[str]]:
    text = text.replace('\r\n', '\n').strip('\n')
    try:
        tree = parser.parse(text)
    except LarkError as e:
        raise RuleFileError(f'bad rule file: {type(e).__name__}: {e}') from e
    return RuleBlocks().transform(tree)


def load_rules(path: str | PathLike) -> dict[str, list[str]]:
    with open(path, encoding='utf-8') as fp:
        return parse_rules(fp.read())
