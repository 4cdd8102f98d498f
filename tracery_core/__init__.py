from .engine import Tracery, Abort, StackOverflow, OutOfGas, ConditionError
from .options import Options
from .parse import ParseError, parse, parse_text
from .lex import tokenize
from .rules import CandidateProvider, RuleCandidate, RuleMapping
from .selectors import (
    Selector,
    PickFirst,
    UniformSelector,
    WeightedSelector,
    WeightedCandidateSet,
)
from .tags import TagMapping, UnilevelTagStorage, HierarchicalTagStorage
from .text import parse_rules, load_rules, RuleFileError
from .modifiers import base_english, base_methods

__all__ = [
    'Tracery',
    'Abort',
    'StackOverflow',
    'OutOfGas',
    'ConditionError',
    'Options',
    'ParseError',
    'parse',
    'parse_text',
    'tokenize',
    'CandidateProvider',
    'RuleCandidate',
    'RuleMapping',
    'Selector',
    'PickFirst',
    'UniformSelector',
    'WeightedSelector',
    'WeightedCandidateSet',
    'TagMapping',
    'UnilevelTagStorage',
    'HierarchicalTagStorage',
    'parse_rules',
    'load_rules',
    'RuleFileError',
    'base_english',
    'base_methods',
]
