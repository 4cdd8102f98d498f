import os
from dataclasses import dataclass, replace
from typing import cast

from .tags import TagStoragePolicy
from .util import LEVELS, LogLevel

MAX_DEPTH = 256
MAX_GAS = 100000


@dataclass(frozen=True, slots=True)
class Options:
    tag_storage: TagStoragePolicy = 'unilevel'
    analyze_rules: bool = True
    # Nested rule expansions allowed before giving up with a stack overflow.
    max_depth: int = MAX_DEPTH
    # Evaluation steps allowed per `expand` call, bounds loops that never end.
    max_gas: int = MAX_GAS
    log_level: LogLevel = 'errors'
    seed: int | None = None

    def __post_init__(self):
        if self.tag_storage not in ('unilevel', 'hierarchical'):
            raise ValueError(f'bad tag storage policy: {self.tag_storage!r}')
        if self.log_level not in LEVELS:
            raise ValueError(f'bad log level: {self.log_level!r}')
        if self.max_depth < 1:
            raise ValueError(f'max_depth must be positive: {self.max_depth}')
        if self.max_gas < 1:
            raise ValueError(f'max_gas must be positive: {self.max_gas}')

    @classmethod
    def from_env(cls, **overrides) -> 'Options':
        '''
        Reads `TRACERY_TAG_STORAGE`, `TRACERY_MAX_DEPTH`, `TRACERY_MAX_GAS`,
        `TRACERY_LOG_LEVEL`, `TRACERY_SEED` and `TRACERY_ANALYZE_RULES`.
        Keyword arguments win.
        '''
        env = os.environ
        kw = {}
        if v := env.get('TRACERY_TAG_STORAGE'):
            kw['tag_storage'] = cast(TagStoragePolicy, v)
        if v := env.get('TRACERY_MAX_DEPTH'):
            kw['max_depth'] = int(v)
        if v := env.get('TRACERY_MAX_GAS'):
            kw['max_gas'] = int(v)
        if v := env.get('TRACERY_LOG_LEVEL'):
            kw['log_level'] = cast(LogLevel, v)
        if v := env.get('TRACERY_SEED'):
            kw['seed'] = int(v)
        if v := env.get('TRACERY_ANALYZE_RULES'):
            kw['analyze_rules'] = v != '0'
        kw.update(overrides)
        return cls(**kw)

    def but(self, **changes) -> 'Options':
        return replace(self, **changes)
