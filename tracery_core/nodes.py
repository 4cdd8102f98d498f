from enum import Enum, auto
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence, override

if TYPE_CHECKING:
    from .selectors import Selector


class ConditionOp(Enum):
    EQUAL_TO = auto()
    NOT_EQUAL_TO = auto()
    VALUE_IN = auto()
    VALUE_NOT_IN = auto()

    @override
    def __str__(self) -> str:
        return _OP_TEXT[self]


_OP_TEXT = {
    ConditionOp.EQUAL_TO: '==',
    ConditionOp.NOT_EQUAL_TO: '!=',
    ConditionOp.VALUE_IN: 'in',
    ConditionOp.VALUE_NOT_IN: 'not in',
}


@dataclass(frozen=True, slots=True)
class Text:
    text: str

    @override
    def __repr__(self) -> str:
        return f'txt({self.text})'


@dataclass(frozen=True, slots=True)
class Weight:
    value: int

    @override
    def __repr__(self) -> str:
        return f'weight({self.value})'


@dataclass(frozen=True, slots=True)
class ValueCandidate:
    nodes: tuple['Node', ...]

    @property
    def has_weight(self) -> bool:
        return bool(self.nodes) and isinstance(self.nodes[-1], Weight)

    @property
    def weight(self) -> int:
        if self.nodes and isinstance(last := self.nodes[-1], Weight):
            return last.value
        return 1

    @override
    def __repr__(self) -> str:
        return debug_nodes(self.nodes)


@dataclass(frozen=True, slots=True)
class Modifier:
    name: str
    params: tuple[ValueCandidate, ...] = ()

    @override
    def __repr__(self) -> str:
        if self.params:
            return f'{self.name}({",".join(map(repr, self.params))})'
        return self.name


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    mods: tuple[Modifier, ...] = ()

    @override
    def __repr__(self) -> str:
        chain = ''.join('.' + repr(m) for m in self.mods)
        return f'rule({self.name}{chain})'


@dataclass(frozen=True, slots=True)
class Tag:
    name: str
    values: tuple[ValueCandidate, ...]

    @override
    def __repr__(self) -> str:
        return f'tag({self.name}={",".join(map(repr, self.values))})'


@dataclass(frozen=True, slots=True)
class CreateRule:
    name: str
    values: tuple[ValueCandidate, ...]

    @override
    def __repr__(self) -> str:
        return f'new_rule({self.name}={",".join(map(repr, self.values))})'


# Anonymous rule: `#(a,b,c)#`, `{(a,b).mod}`.
@dataclass(frozen=True, slots=True, eq=False)
class InlineRule:
    values: tuple[ValueCandidate, ...]
    selector: 'Selector'
    mods: tuple[Modifier, ...] = ()

    @override
    def __repr__(self) -> str:
        chain = ''.join('.' + repr(m) for m in self.mods)
        return f'any({",".join(map(repr, self.values))}){chain}'


@dataclass(frozen=True, slots=True)
class Condition:
    lhs: tuple['Node', ...]
    rhs: tuple['Node', ...]
    op: ConditionOp

    @override
    def __repr__(self) -> str:
        return f'{debug_nodes(self.lhs)} {self.op} {debug_nodes(self.rhs)}'


@dataclass(frozen=True, slots=True)
class IfBlock:
    condition: Condition
    then: tuple['Node', ...]
    else_: tuple['Node', ...] | None = None

    @override
    def __repr__(self) -> str:
        r = f'if({self.condition} then {debug_nodes(self.then)}'
        if self.else_ is not None:
            r += f' else {debug_nodes(self.else_)}'
        return r + ')'


@dataclass(frozen=True, slots=True)
class WhileBlock:
    condition: Condition
    body: tuple['Node', ...]

    @override
    def __repr__(self) -> str:
        return f'while({self.condition} do {debug_nodes(self.body)})'


# Instructions below are never produced by the parser. The evaluator lowers
# rules, tags and control blocks into them on the fly.


@dataclass(frozen=True, slots=True)
class EvaluateArg:
    nodes: tuple['Node', ...]

    @override
    def __repr__(self) -> str:
        return f'eval_arg{debug_nodes(self.nodes)}'


@dataclass(frozen=True, slots=True)
class ClearArgs:
    @override
    def __repr__(self) -> str:
        return 'clear_args'


@dataclass(frozen=True, slots=True)
class RunMod:
    name: str

    @override
    def __repr__(self) -> str:
        return f'run_mod({self.name})'


@dataclass(frozen=True, slots=True, eq=False)
class CreateTag:
    name: str
    selector: 'Selector'

    @override
    def __repr__(self) -> str:
        return f'create_tag({self.name})'


@dataclass(frozen=True, slots=True)
class Branch:
    op: ConditionOp
    then: tuple['Node', ...]
    else_: tuple['Node', ...] | None = None

    @override
    def __repr__(self) -> str:
        r = f'branch({self.op} then {debug_nodes(self.then)}'
        if self.else_ is not None:
            r += f' else {debug_nodes(self.else_)}'
        return r + ')'


CLEAR_ARGS = ClearArgs()

type Node = (
    Text
    | Weight
    | Rule
    | Tag
    | CreateRule
    | InlineRule
    | IfBlock
    | WhileBlock
    | EvaluateArg
    | ClearArgs
    | RunMod
    | CreateTag
    | Branch
)


def debug_nodes(nodes: Sequence[Node] | None) -> str:
    if nodes is None:
        return '/'
    return '[' + ', '.join(map(repr, nodes)) + ']'
