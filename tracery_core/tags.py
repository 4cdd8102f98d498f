from dataclasses import dataclass
from typing import Literal, Protocol, override

from .selectors import Selector

type TagStoragePolicy = Literal['unilevel', 'hierarchical']


@dataclass(slots=True)
class TagMapping:
    candidates: list[str]
    selector: Selector

    def select(self) -> str | None:
        i = self.selector.pick(len(self.candidates))
        if 0 <= i < len(self.candidates):
            return self.candidates[i]
        return None

    @override
    def __str__(self) -> str:
        return ','.join(self.candidates)


class TagStorage(Protocol):
    '''
    Tag variables of one engine. The current evaluation depth is passed in by
    the evaluator on every call, storages never look it up themselves.
    '''

    def store(self, name: str, mapping: TagMapping, depth: int) -> None: ...

    def get(self, name: str, depth: int) -> TagMapping | None: ...

    # Called when a rule expansion finishes and the depth drops to `depth`.
    def leave(self, depth: int) -> None: ...

    def clear(self) -> None: ...

    def names(self) -> set[str]: ...


class UnilevelTagStorage:
    def __init__(self):
        self._tags: dict[str, TagMapping] = {}

    def store(self, name: str, mapping: TagMapping, depth: int = 0):
        self._tags[name] = mapping

    def get(self, name: str, depth: int = 0) -> TagMapping | None:
        return self._tags.get(name)

    def leave(self, depth: int):
        pass

    def clear(self):
        self._tags.clear()

    def names(self) -> set[str]:
        return set(self._tags)

    @override
    def __repr__(self) -> str:
        return f'Unilevel({self._tags})'


class HierarchicalTagStorage:
    '''
    Tags scoped by the rule evaluation depth. A tag is stored at the current
    depth, and a read searches from the current depth down to the root, so a
    sub-rule sees its callers' tags but never the other way round.

    Levels deeper than the depth a finished rule returns to are dropped, so a
    sibling rule expanded later at the same depth starts from scratch.
    '''

    def __init__(self):
        self._levels: dict[int, dict[str, TagMapping]] = {}

    def store(self, name: str, mapping: TagMapping, depth: int):
        self._levels.setdefault(depth, {})[name] = mapping

    def get(self, name: str, depth: int) -> TagMapping | None:
        for level in range(depth, -1, -1):
            tags = self._levels.get(level)
            if tags is not None and (mapping := tags.get(name)) is not None:
                return mapping
        return None

    def leave(self, depth: int):
        for level in [l for l in self._levels if l > depth]:
            del self._levels[level]

    def clear(self):
        self._levels.clear()

    def names(self) -> set[str]:
        return {name for tags in self._levels.values() for name in tags}

    @override
    def __repr__(self) -> str:
        return f'Hierarchical({self._levels})'


def new_tag_storage(policy: TagStoragePolicy) -> TagStorage:
    match policy:
        case 'unilevel':
            return UnilevelTagStorage()
        case 'hierarchical':
            return HierarchicalTagStorage()
        case _:
            raise ValueError(f'bad tag storage policy: {policy!r}')
