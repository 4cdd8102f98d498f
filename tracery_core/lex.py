from dataclasses import dataclass

from .util import trace

RESERVED = frozenset('[]:#,.(){}')
DUAL_OPS = ('==', '!=')

# Suffix matching order matters: 'not in' must win over 'in'.
KEYWORDS = ('not in', 'while', 'then', 'else', 'if', 'do', 'in')

# Keywords that may directly follow a '[' instead of whitespace.
OPENING_KEYWORDS = frozenset(('if', 'while'))

DIGITS = frozenset('0123456789')


@dataclass(frozen=True, slots=True)
class Text:
    text: str

    @property
    def raw(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f'{self.text!r}'


@dataclass(frozen=True, slots=True)
class Op:
    op: str

    @property
    def raw(self) -> str:
        return self.op

    def __repr__(self) -> str:
        return f'op{self.op}'


@dataclass(frozen=True, slots=True)
class Keyword:
    word: str

    @property
    def raw(self) -> str:
        return self.word

    def __repr__(self) -> str:
        return f'key_{self.word}'


# `text` is the digit run as written, so "007" stays "007" wherever the
# number is read as text instead of a weight.
@dataclass(frozen=True, slots=True)
class Number:
    value: int
    text: str

    @property
    def raw(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f'num{self.text}'


type Token = Text | Op | Keyword | Number

LEFT_SQUARE_BRACKET = Op('[')
RIGHT_SQUARE_BRACKET = Op(']')
COLON = Op(':')
HASH = Op('#')
COMMA = Op(',')
DOT = Op('.')
LEFT_ROUND_BRACKET = Op('(')
RIGHT_ROUND_BRACKET = Op(')')
LEFT_CURLY_BRACKET = Op('{')
RIGHT_CURLY_BRACKET = Op('}')
EQUAL_TO = Op('==')
NOT_EQUAL_TO = Op('!=')

SPACE = Text(' ')

KEYWORD_IF = Keyword('if')
KEYWORD_THEN = Keyword('then')
KEYWORD_ELSE = Keyword('else')
KEYWORD_WHILE = Keyword('while')
KEYWORD_DO = Keyword('do')
KEYWORD_IN = Keyword('in')
KEYWORD_NOT_IN = Keyword('not in')


def tokenize(text: str) -> list[Token]:
    r'''
    Splits `text` into tokens. Never fails: anything unrecognized is `Text`.

    Keywords are context-sensitive. They are only found as a suffix of a text
    run that is preceded by whitespace (or '[' for `if` and `while`) and
    followed by a space, so plain prose like "if you know me" stays text.
    A keyword found in the middle of a run splits the run, and scanning
    rewinds to the start of the keyword.

    The single space following a keyword or a '=='/'!=' operator is emitted as
    its own `Text(' ')` token, which the parser consumes as a separator.

    `\X` escapes any character, including reserved ones.
    '''
    tokens: list[Token] = []
    n = len(text)
    i = 0

    def emit_space():
        nonlocal i
        if i < n and text[i] == ' ':
            tokens.append(SPACE)
            i += 1

    while i < n:
        c = text[i]

        if text.startswith(DUAL_OPS, i):
            tokens.append(Op(text[i : i + 2]))
            i += 2
            emit_space()
            continue

        if c in RESERVED:
            tokens.append(Op(c))
            i += 1
            continue

        if c in DIGITS:
            start = i
            while i < n and text[i] in DIGITS:
                i += 1
            digits = text[start:i]
            tokens.append(Number(int(digits), digits))
            continue

        buf: list[str] = []
        # Chars in `buf` from here on map 1:1 to the input, i.e. are not escaped.
        plain_from = 0
        keyword = None

        while i < n:
            c = text[i]
            if c in RESERVED:
                break
            if buf and text.startswith(DUAL_OPS, i):
                break

            if c == '\\':
                if i + 1 < n:
                    buf.append(text[i + 1])
                i += 2
                plain_from = len(buf)
                continue

            buf.append(c)
            i += 1

            if (keyword := _keyword_suffix(text, i, buf, plain_from)) is not None:
                break

        if keyword is None:
            if buf:
                tokens.append(Text(''.join(buf)))
            continue

        if len(buf) > len(keyword):
            # Split: emit the text before the keyword, and rescan the keyword.
            tokens.append(Text(''.join(buf[: -len(keyword)])))
            i -= len(keyword)
            continue

        tokens.append(Keyword(keyword))
        emit_space()

    trace('Lexed: %r -> %s', text, tokens)
    return tokens


def _keyword_suffix(text: str, end: int, buf: list[str], plain_from: int) -> str | None:
    # A keyword must be followed by a space.
    if end >= len(text) or text[end] != ' ':
        return None

    for keyword in KEYWORDS:
        size = len(keyword)
        start = len(buf) - size
        if start < plain_from or text[end - size : end] != keyword:
            continue

        if start > 0:
            before = buf[start - 1]
        elif end - size > 0:
            # The keyword starts the run, so look at what ended the previous token.
            before = text[end - size - 1]
        else:
            continue

        if before.isspace() or (start == 0 and before == '[' and keyword in OPENING_KEYWORDS):
            return keyword

    return None
