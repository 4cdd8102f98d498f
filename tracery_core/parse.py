import random
import functools
from typing import Sequence, override

from . import lex
from .lex import Token, tokenize
from .nodes import (
    Condition,
    ConditionOp,
    CreateRule,
    IfBlock,
    InlineRule,
    Modifier,
    Node,
    Rule,
    Tag,
    Text,
    ValueCandidate,
    Weight,
    WhileBlock,
    debug_nodes,
)
from .selectors import selector_for
from .util import trace, is_tracing


class ParseError(Exception):
    def __init__(self, message: str, diagnostic: str = ''):
        super().__init__(message)
        self.message = message
        self.diagnostic = diagnostic

    @override
    def __str__(self) -> str:
        if self.diagnostic:
            return f'{self.message}\n{self.diagnostic}'
        return self.message


# Raised inside the parser, turned into a `ParseError` with a diagnostic once
# the failure offset is known.
class _Failure(Exception):
    pass


RULE_OPEN = (lex.HASH, lex.LEFT_CURLY_BRACKET)
RULE_CLOSE = (lex.HASH, lex.RIGHT_CURLY_BRACKET)


class Parser:
    '''
    Recursive descent over the tokens of one text.

    Anything that does not start a construct is coerced into literal text, as
    long as it is not a stopper of the list being parsed, so "hello world." or
    "a, b" need no escaping. Commas only split candidate lists at the top
    level of the list, since nested rules and tags consume their own tokens.
    '''

    def __init__(self, tokens: Sequence[Token], rng: random.Random | None = None):
        self.tokens = tokens
        self.rng = rng
        self.i = 0

    @property
    def current(self) -> Token | None:
        return self.tokens[self.i] if self.i < len(self.tokens) else None

    @property
    def next(self) -> Token | None:
        return self.tokens[self.i + 1] if self.i + 1 < len(self.tokens) else None

    def advance(self):
        self.i += 1

    def expect(self, *tokens: Token, error: str | None = None):
        c = self.current
        if c is None:
            raise _Failure(error or 'unexpected end of input')
        if c not in tokens:
            expected = ' or '.join(repr(t.raw) for t in tokens)
            raise _Failure(error or f'expected {expected}, got {c.raw!r}')
        self.advance()

    def optional(self, token: Token):
        if self.current == token:
            self.advance()

    def optional_name(self) -> str | None:
        match self.current:
            case lex.Text(text):
                self.advance()
                return text
            case lex.Number() as n:
                self.advance()
                return n.raw
        return None

    def name(self, error: str) -> str:
        if (name := self.optional_name()) is None:
            raise _Failure(error)
        return name

    def run(self) -> list[Node]:
        try:
            return self.sequence_until(())
        except _Failure as e:
            raise ParseError(str(e), self.diagnostic()) from None

    def diagnostic(self) -> str:
        end = min(self.i, len(self.tokens))
        location = sum(len(t.raw) for t in self.tokens[:end])
        text = ''.join(t.raw for t in self.tokens)
        marked = text[:location] + '❌' + text[location:]
        return f'    {marked}\n    {"." * location}^'

    # Fragments

    def fragment(self) -> list[Node] | None:
        token = self.current
        match token:
            case None:
                return None
            case lex.Op('#' | '{'):
                return self.rule()
            case lex.Op('['):
                match self.next:
                    case None:
                        return None
                    case lex.KEYWORD_IF:
                        return [self.if_block()]
                    case lex.KEYWORD_WHILE:
                        return [self.while_block()]
                    case _:
                        return self.tag()
            case lex.Op(':'):
                return [self.weight()]
            case lex.Text() | lex.Number():
                self.advance()
                return [Text(token.raw)]
        return None

    # Stops at the first token that does not start a fragment.
    def sequence(self) -> list[Node]:
        nodes = []
        while (fragment := self.fragment()) is not None:
            nodes.extend(fragment)
        return nodes

    # Stops only at `stoppers`, other stray tokens become text.
    def sequence_until(self, stoppers: tuple[Token, ...]) -> list[Node]:
        nodes = []
        while self.current is not None:
            nodes.extend(self.sequence())
            token = self.current
            if token is None or token in stoppers:
                break
            nodes.append(Text(token.raw))
            self.advance()
        return flatten_text(nodes) if len(nodes) > 1 else nodes

    def fragment_list(self, context: str, closing: Token) -> list[list[Node]]:
        stoppers = (lex.COMMA, closing)
        items = [self.sequence_until(stoppers)]
        while self.current == lex.COMMA:
            self.advance()
            item = self.sequence_until(stoppers)
            if not item:
                raise _Failure(f'expected {context} after ,')
            items.append(item)
        return items

    def candidates(self, context: str, closing: Token) -> tuple[ValueCandidate, ...]:
        return tuple(
            ValueCandidate(tuple(nodes)) for nodes in self.fragment_list(context, closing)
        )

    # Constructs

    def modifiers(self, rule: str) -> tuple[Modifier, ...]:
        mods = []
        while self.current == lex.DOT:
            self.advance()
            name = self.name(f"expected modifier name after . in rule '{rule}'")
            params = ()
            if self.current == lex.LEFT_ROUND_BRACKET:
                self.advance()
                params = self.candidates('parameter', lex.RIGHT_ROUND_BRACKET)
                self.expect(lex.RIGHT_ROUND_BRACKET, error='expected ) to close modifier call')
            mods.append(Modifier(name, params))
        return tuple(mods)

    def bracketed_candidates(self, context: str) -> tuple[ValueCandidate, ...]:
        self.expect(lex.LEFT_ROUND_BRACKET)
        values = self.candidates(context, lex.RIGHT_ROUND_BRACKET)
        self.expect(lex.RIGHT_ROUND_BRACKET, error=f'expected ) after {context} list')
        return values

    def rule(self) -> list[Node]:
        nodes: list[Node] = []
        self.expect(*RULE_OPEN)

        # Tags set before the rule is referenced: `#[tag:x]rule#`.
        while self.current == lex.LEFT_SQUARE_BRACKET:
            nodes.extend(self.tag())

        # `##` and `{}`
        if self.current in RULE_CLOSE:
            self.advance()
            nodes.append(Text(''))
            return nodes

        name = self.optional_name()
        if self.current == lex.LEFT_ROUND_BRACKET:
            if name is None:
                values = self.bracketed_candidates('inline rule candidate')
                mods = self.modifiers('inline rule')
                nodes.append(InlineRule(values, selector_for(values, self.rng), mods))
                self.expect(*RULE_CLOSE, error='expected # or } after inline rule definition')
            else:
                values = self.bracketed_candidates('rule candidate')
                nodes.append(CreateRule(name, values))
                self.expect(*RULE_CLOSE, error='expected # or } after new rule definition')
            return nodes

        name = name or ''
        mods = self.modifiers(name)
        nodes.append(Rule(name, mods))
        self.expect(*RULE_CLOSE, error=f"closing # or }} not found for rule '{name}'")
        return nodes

    def tag(self) -> list[Node]:
        nodes: list[Node] = []
        self.expect(lex.LEFT_SQUARE_BRACKET)
        if self.current == lex.RIGHT_SQUARE_BRACKET:
            raise _Failure('empty [] not allowed')

        while (token := self.current) is not None:
            match token:
                case lex.Op('#' | '{'):
                    nodes.extend(self.rule())
                case lex.Op('['):
                    nodes.extend(self.tag())
                case lex.Op(']'):
                    break
                case _:
                    name = self.name('expected tag name')
                    self.expect(lex.COLON, error=f"expected : after tag '{name}'")
                    values = self.fragment_list('tag value', lex.RIGHT_SQUARE_BRACKET)
                    if not values[0]:
                        raise _Failure('expected a tag value')
                    nodes.append(Tag(name, tuple(ValueCandidate(tuple(v)) for v in values)))

        self.expect(lex.RIGHT_SQUARE_BRACKET)
        return nodes

    def weight(self) -> Node:
        self.expect(lex.COLON)
        # A colon not followed by a number is just text.
        if isinstance(n := self.current, lex.Number):
            self.advance()
            return Weight(n.value)
        return Text(':')

    def condition(self) -> Condition:
        lhs = strip_trailing_space(self.sequence())

        match self.current:
            case lex.EQUAL_TO | lex.NOT_EQUAL_TO as token:
                self.advance()
                self.optional(lex.SPACE)
                rhs = self.sequence()
                if not rhs:
                    raise _Failure(f'expected rule or text after {token.raw} in condition')
                op = ConditionOp.EQUAL_TO if token == lex.EQUAL_TO else ConditionOp.NOT_EQUAL_TO
            case lex.KEYWORD_IN | lex.KEYWORD_NOT_IN as token:
                self.advance()
                self.optional(lex.SPACE)
                rhs = self.sequence()
                if not rhs:
                    raise _Failure('expected rule after in/not in keyword')
                positive = token == lex.KEYWORD_IN
                # Membership only means something against a rule or a tag.
                if isinstance(rhs[0], Text):
                    op = ConditionOp.EQUAL_TO if positive else ConditionOp.NOT_EQUAL_TO
                else:
                    op = ConditionOp.VALUE_IN if positive else ConditionOp.VALUE_NOT_IN
            case _:
                # `[if #x# then ...]` checks that x is not empty.
                rhs = [Text('')]
                op = ConditionOp.NOT_EQUAL_TO

        return Condition(tuple(lhs), tuple(strip_trailing_space(rhs)), op)

    def if_block(self) -> IfBlock:
        self.expect(lex.LEFT_SQUARE_BRACKET)
        self.expect(lex.KEYWORD_IF)
        self.expect(lex.SPACE, error='expected space after if')
        condition = self.condition()
        self.expect(lex.KEYWORD_THEN, error="expected 'then' after condition")
        self.expect(lex.SPACE, error="expected space after 'then'")
        then = self.sequence()
        if not then:
            raise _Failure("'then' must be followed by rule(s)")

        else_ = None
        if self.current == lex.KEYWORD_ELSE:
            then = strip_trailing_space(then)
            self.advance()
            self.expect(lex.SPACE, error='expected space after else')
            else_ = self.sequence()
            if not else_:
                raise _Failure("'else' must be followed by rule(s)")
            else_ = tuple(else_)

        self.expect(lex.RIGHT_SQUARE_BRACKET)
        return IfBlock(condition, tuple(then), else_)

    def while_block(self) -> WhileBlock:
        self.expect(lex.LEFT_SQUARE_BRACKET)
        self.expect(lex.KEYWORD_WHILE)
        self.expect(lex.SPACE, error='expected space after while')
        condition = self.condition()
        self.expect(lex.KEYWORD_DO, error="expected 'do' after condition")
        self.expect(lex.SPACE, error="expected space after 'do'")
        body = self.sequence()
        if not body:
            raise _Failure("'do' must be followed by rule(s)")
        self.expect(lex.RIGHT_SQUARE_BRACKET)
        return WhileBlock(condition, tuple(body))


def flatten_text(nodes: list[Node]) -> list[Node]:
    out: list[Node] = []
    for node in nodes:
        if isinstance(node, Text) and out and isinstance(last := out[-1], Text):
            out[-1] = Text(last.text + node.text)
        else:
            out.append(node)
    return out


def strip_trailing_space(nodes: list[Node]) -> list[Node]:
    if nodes and isinstance(last := nodes[-1], Text):
        if last.text == ' ':
            return nodes[:-1]
        if last.text.endswith(' '):
            return nodes[:-1] + [Text(last.text[:-1])]
    return nodes


def parse(tokens: Sequence[Token], rng: random.Random | None = None) -> list[Node]:
    return Parser(tokens, rng).run()


@functools.lru_cache(maxsize=1024)
def parse_text(text: str, rng: random.Random | None = None) -> tuple[Node, ...]:
    nodes = tuple(parse(tokenize(text), rng))
    if is_tracing:
        trace('Parsed: %r -> %s', text, debug_nodes(nodes))
    return nodes
