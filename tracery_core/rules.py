from dataclasses import dataclass
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from .lex import Number, Text, tokenize
from .nodes import ValueCandidate
from .selectors import Selector


@dataclass(frozen=True, slots=True)
class RuleCandidate:
    text: str
    value: ValueCandidate


@dataclass(slots=True)
class RuleMapping:
    candidates: tuple[RuleCandidate, ...]
    selector: Selector

    def select(self) -> RuleCandidate | None:
        i = self.selector.pick(len(self.candidates))
        if 0 <= i < len(self.candidates):
            return self.candidates[i]
        return None


@runtime_checkable
class CandidateProvider(Protocol):
    '''Host object supplying the candidate texts of a rule.'''

    @property
    def candidates(self) -> Sequence[str]: ...


# A single candidate, a list of candidates (any values, stringified), or a
# provider. A provider that is also a `Selector` picks its own candidates.
type RuleDefinition = str | Sequence[Any] | CandidateProvider


def candidate_texts(definition: RuleDefinition) -> list[str]:
    match definition:
        case str():
            return [definition]
        case CandidateProvider():
            return [str(c) for c in definition.candidates]
        case Sequence():
            return [str(c) for c in definition]
        case _:
            return [str(definition)]


def is_plain_name(name: str) -> bool:
    '''Rule names must lex to a single literal, so `#name#` can reach them.'''
    tokens = tokenize(name)
    return len(tokens) == 1 and isinstance(tokens[0], (Text, Number)) and tokens[0].raw == name
