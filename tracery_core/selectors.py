import random
import itertools
from bisect import bisect_right
from typing import Mapping, Protocol, Sequence, override, runtime_checkable

from .nodes import ValueCandidate


@runtime_checkable
class Selector(Protocol):
    '''
    Picks which candidate to use. `pick` is given the number of candidates and
    should return an index in `range(count)`. Anything else is treated as "no
    candidate" by the engine, instead of raising.
    '''

    def pick(self, count: int) -> int: ...


class PickFirst:
    @override
    def __repr__(self) -> str:
        return 'PickFirst'

    def pick(self, count: int) -> int:
        return 0


PICK_FIRST = PickFirst()


class UniformSelector:
    '''
    Shuffle bag: every index is returned exactly once per `count` picks, and the
    bag is reshuffled only after it runs dry.
    '''

    def __init__(self, count: int, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self._fill(count)

    def _fill(self, count: int):
        self._indices = list(range(count))
        self._rng.shuffle(self._indices)
        self._next = 0

    def pick(self, count: int) -> int:
        if count != len(self._indices):
            self._fill(count)
        elif self._next >= count:
            self._rng.shuffle(self._indices)
            self._next = 0
        i = self._indices[self._next]
        self._next += 1
        return i

    @override
    def __repr__(self) -> str:
        return f'Uniform({len(self._indices)})'


class WeightedSelector:
    def __init__(self, weights: Sequence[int], rng: random.Random | None = None):
        self._rng = rng or random.Random()
        self.weights = tuple(max(w, 0) for w in weights)
        self._cumulative = list(itertools.accumulate(self.weights))
        self._total = self._cumulative[-1] if self._cumulative else 0

    def pick(self, count: int) -> int:
        if self._total <= 0:
            # Every candidate weighs zero.
            return self._rng.randrange(count) if count > 0 else 0
        choice = self._rng.randrange(self._total)
        # The first slot whose cumulative weight exceeds `choice`; zero weights
        # never own a slot.
        return bisect_right(self._cumulative, choice)

    @override
    def __repr__(self) -> str:
        return f'Weighted{self.weights}'


def selector_for(
    candidates: Sequence[ValueCandidate], rng: random.Random | None = None
) -> Selector:
    if len(candidates) == 1:
        return PICK_FIRST
    if any(c.has_weight for c in candidates):
        return WeightedSelector([c.weight for c in candidates], rng)
    return UniformSelector(len(candidates), rng)


class WeightedCandidateSet:
    '''
    Host-side rule definition mapping each candidate text to its weight. Acts as
    both the candidate provider and the selector of the rule:

        t.add_rule('coin', WeightedCandidateSet({'heads': 3, 'tails': 1}))
    '''

    def __init__(self, distribution: Mapping[str, int], rng: random.Random | None = None):
        self._candidates = list(distribution.keys())
        self._selector = WeightedSelector(list(distribution.values()), rng)

    @property
    def candidates(self) -> list[str]:
        return self._candidates

    def pick(self, count: int) -> int:
        return self._selector.pick(count)

    @override
    def __repr__(self) -> str:
        return f'WeightedCandidateSet({dict(zip(self._candidates, self._selector.weights))})'
