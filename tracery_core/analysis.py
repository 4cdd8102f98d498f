'''
Checks run over a freshly built rule set. They only warn: a rule set that
trips them still expands, recursion is caught at runtime anyway.
'''

from typing import Iterable, Iterator, Mapping

from .nodes import (
    Condition,
    CreateRule,
    IfBlock,
    InlineRule,
    Node,
    Rule,
    Tag,
    WhileBlock,
)
from .rules import RuleMapping
from .util import EngineLog


def walk(nodes: Iterable[Node]) -> Iterator[Node]:
    '''Yields `nodes` and every node nested in them, depth first.'''
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        yield node
        children: list[Node] = []
        match node:
            case Rule(_, mods) | InlineRule(_, _, mods) if mods:
                for mod in mods:
                    for param in mod.params:
                        children.extend(param.nodes)
        match node:
            case Tag(_, values) | CreateRule(_, values) | InlineRule(values, _, _):
                for value in values:
                    children.extend(value.nodes)
            case IfBlock(condition, then, else_):
                children.extend(_condition_nodes(condition))
                children.extend(then)
                children.extend(else_ or ())
            case WhileBlock(condition, body):
                children.extend(_condition_nodes(condition))
                children.extend(body)
        stack.extend(reversed(children))


def _condition_nodes(condition: Condition) -> list[Node]:
    return [*condition.lhs, *condition.rhs]


def references(mapping: RuleMapping) -> set[str]:
    return {
        node.name
        for candidate in mapping.candidates
        for node in walk(candidate.value.nodes)
        if isinstance(node, Rule) and node.name
    }


def strongly_connected(graph: Mapping[str, set[str]]) -> list[list[str]]:
    '''Tarjan's algorithm, iterative so deep rule chains cannot hit the recursion limit.'''
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []

    for root in graph:
        if root in index:
            continue
        work = [(root, iter(sorted(graph.get(root, ()))))]
        index[root] = low[root] = len(index)
        stack.append(root)
        on_stack.add(root)

        while work:
            v, successors = work[-1]
            for w in successors:
                if w not in index:
                    index[w] = low[w] = len(index)
                    stack.append(w)
                    on_stack.add(w)
                    work.append((w, iter(sorted(graph.get(w, ())))))
                    break
                if w in on_stack:
                    low[v] = min(low[v], index[w])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    low[parent] = min(low[parent], low[v])
                if low[v] == index[v]:
                    component = []
                    while True:
                        w = stack.pop()
                        on_stack.discard(w)
                        component.append(w)
                        if w == v:
                            break
                    components.append(component[::-1])

    return components


def check_empty(rules: Mapping[str, RuleMapping], log: EngineLog):
    if not rules:
        log.warning('no expandable rules were found')


def check_self_references(rules: Mapping[str, RuleMapping], log: EngineLog):
    found = [
        (name, candidate.text)
        for name, mapping in rules.items()
        for candidate in mapping.candidates
        if any(isinstance(n, Rule) and n.name == name for n in walk(candidate.value.nodes))
    ]
    if not found:
        return
    log.warning('%s self referencing %s found', len(found), 'rule' if len(found) == 1 else 'rules')
    for name, text in found:
        log.warning("      '%s' - %s", name, text)


def check_cycles(rules: Mapping[str, RuleMapping], log: EngineLog):
    graph = {name: references(mapping) for name, mapping in rules.items()}
    # Single rules referencing themselves are reported on their own.
    cycles = [c for c in strongly_connected(graph) if len(c) > 1]
    if not cycles:
        return
    log.warning('cyclic references were detected in the following rules:')
    for cycle in cycles:
        log.warning('      %s', ' -> '.join(cycle + cycle[:1]))


def check_tag_overrides(rules: Mapping[str, RuleMapping], log: EngineLog):
    for name, mapping in rules.items():
        tags = {
            node.name
            for candidate in mapping.candidates
            for node in walk(candidate.value.nodes)
            if isinstance(node, Tag)
        }
        for tag in sorted(tags & rules.keys()):
            log.warning(
                "tag override in rule '%s', creating tag '%s' overrides pre-defined rule '%s'",
                name,
                tag,
                tag,
            )


CHECKS = (check_cycles, check_self_references, check_tag_overrides, check_empty)


def analyze(rules: Mapping[str, RuleMapping], log: EngineLog):
    log.info('analyzing %s rules', len(rules))
    for check in CHECKS:
        check(rules, log)
