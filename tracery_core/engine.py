import random
import traceback
import logging
from os import PathLike
from typing import Any, Callable, Iterable, Mapping, Sequence, override

from .context import ContextStack, ExecutionContext, PopAction
from .nodes import (
    CLEAR_ARGS,
    Branch,
    ClearArgs,
    Condition,
    ConditionOp,
    CreateRule,
    CreateTag,
    EvaluateArg,
    IfBlock,
    InlineRule,
    Modifier,
    Node,
    Rule,
    RunMod,
    Tag,
    Text,
    ValueCandidate,
    Weight,
    WhileBlock,
    debug_nodes,
)
from .options import Options
from .parse import ParseError, parse_text
from .rules import (
    RuleCandidate,
    RuleDefinition,
    RuleMapping,
    candidate_texts,
    is_plain_name,
)
from .selectors import Selector, selector_for
from .tags import TagMapping, TagStorage, new_tag_storage
from .util import EngineLog, shorten

type Mod = Callable[[str, list[str]], str]


# Aborts the whole `expand` call, rendered as "error: <message>".
class Abort(Exception):
    message = 'aborted'

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class StackOverflow(Abort):
    message = 'stack overflow'


class OutOfGas(Abort):
    message = 'out of gas'


class ConditionError(Abort):
    pass


EMPTY: tuple[Node, ...] = (Text(''),)


class Evaluator:
    '''
    Expands a node list without recursing on the host stack.

    Each pending piece of work is an `ExecutionContext` on `stack`. Only real
    rule expansions count towards `depth`, which is what the recursion limit
    and hierarchical tags are based on. Control flow, tags and inline rules are
    depth-neutral.
    '''

    def __init__(self, tracery: 'Tracery'):
        self.t = tracery
        self.log = tracery.log
        self.stack = ContextStack()
        self.depth = 0
        self.gas = 0

    def run(self, nodes: Sequence[Node], depth: int = 0) -> str:
        stack = self.stack
        stack.reset()
        self.depth = depth
        self.gas = 0
        self.max_depth = self.t.options.max_depth
        self.max_gas = self.t.options.max_gas

        stack.push(nodes, PopAction.APPEND, False)

        while True:
            if self.log.tracing:
                self._trace_stack()

            if stack.is_complete:
                break

            top = stack.current
            if top.is_empty:
                self._pop()
                continue

            self._consume_gas()
            self._dispatch(top.pop(), top)

        return stack.pop().result

    def _consume_gas(self):
        if self.gas >= self.max_gas:
            self.log.error('out of gas after %s steps', self.gas)
            raise OutOfGas()
        self.gas += 1

    def _push(
        self,
        nodes: Sequence[Node],
        pop_action: PopAction = PopAction.APPEND,
        affects_depth: bool = False,
    ):
        stack = self.stack
        top = stack.current
        # Tail call: a finished frame that would only hand its result up can go
        # first, so loops run in constant stack space.
        if (
            top.is_empty
            and not top.affects_depth
            and top.pop_action is PopAction.APPEND
            and len(stack) > 1
        ):
            stack.pop()

        if affects_depth:
            self.depth += 1
            if self.depth > self.max_depth:
                self.log.error('stack overflow at depth %s', self.depth)
                raise StackOverflow()

        stack.push(nodes, pop_action, affects_depth)

    def _pop(self):
        context = self.stack.pop()
        if context.affects_depth:
            self.depth -= 1
            self.t.tags.leave(self.depth)

    def _trace_stack(self):
        self.log.trace('---------- depth %s gas %s', self.depth, self.gas)
        for i, context in enumerate(self.stack.live()):
            self.log.trace('%s %s', i, context)

    def _dispatch(self, node: Node, top: ExecutionContext):
        match node:
            case Text(text):
                top.result += text

            case Weight():
                pass

            case EvaluateArg(nodes):
                self._push(nodes, PopAction.ADD_ARG)

            case ClearArgs():
                top.args = []

            case RunMod(name):
                self._run_mod(name, top)

            case Rule(name, mods):
                self._expand_rule(name, mods, top)

            case InlineRule(values, selector, mods):
                i = self._host_call('inline rule selector', selector.pick, len(values))
                if i is None or not 0 <= i < len(values):
                    self.log.warning('inline rule selector picked %s of %s candidates', i, len(values))
                    return
                self._push(self._apply_mods(values[i].nodes, mods))

            case Tag(name, values):
                # The tag is created in a depth-neutral frame, i.e. at the same
                # level as the rule it appears in.
                nodes: list[Node] = [EvaluateArg(v.nodes) for v in values]
                nodes.append(CreateTag(name, selector_for(values, self.t.rng)))
                self._push(nodes, PopAction.NOTHING)

            case CreateTag(name, selector):
                mapping = TagMapping(top.args, selector)
                if self.log.tracing and self.t.tags.get(name, self.depth) is not None:
                    self.log.trace('overwriting tag [%s]', name)
                self.t.tags.store(name, mapping, self.depth)
                self.log.trace('set tag [%s] <- %s', name, mapping)

            case CreateRule(name, values):
                mapping = RuleMapping(
                    tuple(RuleCandidate('', v) for v in values),
                    selector_for(values, self.t.rng),
                )
                if name in self.t.runtime_rules:
                    self.log.info("overwriting runtime rule '%s'", name)
                self.t.runtime_rules[name] = mapping

            case IfBlock(condition, then, else_):
                nodes = self._condition_args(condition)
                nodes.append(Branch(condition.op, then, else_))
                self._push(nodes)

            case WhileBlock(condition, body):
                nodes = self._condition_args(condition)
                # Looping is running the block again after its body.
                nodes.append(Branch(condition.op, body + (node,)))
                self._push(nodes)

            case Branch(op, then, else_):
                if self._check(op, top.args):
                    self._push(then)
                elif else_ is not None:
                    self._push(else_)

            case _:
                raise TypeError(f'unknown node: {node!r}')

    def _run_mod(self, name: str, top: ExecutionContext):
        mod = self.t.mods.get(name)
        if mod is None:
            self.log.warning("modifier '%s' not defined", name)
            return
        self.log.trace('run mod %s(%r, %s)', name, top.result, top.args)
        r = self._host_call(f"modifier '{name}'", mod, top.result, list(top.args))
        if r is not None:
            top.result = str(r)

    # A failing host callback leaves its node as if the callback did nothing.
    # `Abort` is how hooks end the expansion on purpose, so it goes through.
    def _host_call(self, what: str, fn: Callable, *args):
        try:
            return fn(*args)
        except Abort:
            raise
        except Exception as e:
            self.log.error('%s: %s: %s', what, type(e).__name__, e)
            if self.log.tracing:
                self.log.trace('%s', traceback.format_exc())
            return None

    # Lowers `.mod1(a).mod2` into `eval_arg(a), run_mod(mod1), clear_args,
    # run_mod(mod2), clear_args` after the expansion.
    def _apply_mods(self, nodes: Sequence[Node], mods: Sequence[Modifier]) -> Sequence[Node]:
        if not mods:
            return nodes
        out = list(nodes)
        for mod in mods:
            if mod.name not in self.t.mods:
                self.log.warning("modifier '%s' not defined", mod.name)
                continue
            out.extend(EvaluateArg(p.nodes) for p in mod.params)
            out.append(RunMod(mod.name))
            out.append(CLEAR_ARGS)
        return out

    def _expand_rule(self, name: str, mods: Sequence[Modifier], top: ExecutionContext):
        t = self.t
        if not name:
            value = ''
        elif (tag := t.tags.get(name, self.depth)) is not None:
            value = self._host_call(f"selector of tag '{name}'", tag.select)
            if value is None:
                return self._passthrough(name, 'tag selector out of range', top)
            self.log.trace('get tag [%s] -> %s', name, value)
        elif name in t._objects:
            value = self._host_call(f"object '{name}'", str, t._objects[name])
            if value is None:
                return self._passthrough(name, 'object not printable', top)
        else:
            mapping = t.runtime_rules.get(name) or t._rules.get(name)
            if mapping is None:
                return self._passthrough(name, 'not defined', top)
            candidate = self._host_call(f"selector of rule '{name}'", mapping.select)
            if candidate is None:
                return self._passthrough(name, 'no candidates found', top)
            self.log.trace('eval rule %s -> %s', name, candidate.value)
            self._push(self._apply_mods(candidate.value.nodes, mods), affects_depth=True)
            return

        if mods:
            self._push(self._apply_mods((Text(value),), mods))
        else:
            top.result += value

    def _passthrough(self, name: str, reason: str, top: ExecutionContext):
        self.log.warning('rule #%s# expansion failed - %s', name, reason)
        top.result += f'#{name}#'

    def _condition_args(self, condition: Condition) -> list[Node]:
        nodes: list[Node] = [EvaluateArg(condition.lhs)]
        rhs = condition.rhs

        # `x in #y#` tests x against every candidate of y, not a single sample.
        if (
            condition.op in (ConditionOp.VALUE_IN, ConditionOp.VALUE_NOT_IN)
            and len(rhs) == 1
            and isinstance(ref := rhs[0], Rule)
        ):
            if (tag := self.t.tags.get(ref.name, self.depth)) is not None:
                nodes.extend(EvaluateArg((Text(v),)) for v in tag.candidates)
                return nodes
            mapping = self.t.runtime_rules.get(ref.name) or self.t._rules.get(ref.name)
            if mapping is not None:
                nodes.extend(EvaluateArg(c.value.nodes) for c in mapping.candidates)
                return nodes

        nodes.append(EvaluateArg(rhs))
        return nodes

    def _check(self, op: ConditionOp, args: list[str]) -> bool:
        match op:
            case ConditionOp.EQUAL_TO | ConditionOp.NOT_EQUAL_TO:
                if len(args) != 2:
                    raise ConditionError(f'condition {op} needs 2 values, got {len(args)}')
                return (args[0] == args[1]) == (op is ConditionOp.EQUAL_TO)
            case ConditionOp.VALUE_IN | ConditionOp.VALUE_NOT_IN:
                if not args:
                    raise ConditionError(f'condition {op} needs a value')
                found = args[0] in args[1:]
                return found == (op is ConditionOp.VALUE_IN)


class Tracery:
    '''
    A set of rules and the host hooks available to them.

        t = Tracery({'origin': '#hello.caps#, #name#!', 'hello': 'hi'})
        t.add_modifier('caps', str.upper)
        t.add_object('name', 'world')
        t.expand('#origin#')  # 'HI, world!'

    `expand` never raises: errors are returned as "error: <message>" and
    warnings are collected in `errors`.
    '''

    def __init__(
        self,
        rules: Mapping[str, RuleDefinition] | None = None,
        options: Options | None = None,
        *,
        logger: logging.Logger | None = None,
        rng: random.Random | None = None,
    ):
        self.options = options or Options()
        self.log = EngineLog(logger, self.options.log_level)
        self.rng = rng or random.Random(self.options.seed)
        # Parsed inline rules hold selectors, which only need the engine's own
        # generator when the output must be reproducible.
        self._parse_rng = self.rng if rng is not None or self.options.seed is not None else None

        self._rules: dict[str, RuleMapping] = {}
        self.runtime_rules: dict[str, RuleMapping] = {}
        self.mods: dict[str, Mod] = {}
        self._objects: dict[str, Any] = {}
        self.tags: TagStorage = new_tag_storage(self.options.tag_storage)

        self._active: list[Evaluator] = []
        self._idle: list[Evaluator] = []

        if rules:
            for name, definition in rules.items():
                self.add_rule(name, definition)

        if self.options.analyze_rules:
            from .analysis import analyze

            analyze(self._rules, self.log)

        self.log.info('tracery ready with %s rules', len(self._rules))

    @classmethod
    def from_lines(cls, lines: Iterable[str], options: Options | None = None, **kwargs) -> 'Tracery':
        from .text import parse_rules

        return cls(parse_rules('\n'.join(lines)), options, **kwargs)

    @classmethod
    def from_file(cls, path: str | PathLike, options: Options | None = None, **kwargs) -> 'Tracery':
        from .text import load_rules

        return cls(load_rules(path), options, **kwargs)

    @property
    def errors(self) -> list[str]:
        return self.log.errors

    @property
    def rule_names(self) -> list[str]:
        return list(self._rules)

    @property
    def objects(self) -> dict[str, Any]:
        return dict(self._objects)

    def rule(self, name: str) -> RuleMapping | None:
        return self._rules.get(name)

    def _parse(self, text: str) -> tuple[Node, ...]:
        return parse_text(text, self._parse_rng)

    # Rules

    def add_rule(self, name: str, definition: RuleDefinition) -> bool:
        if not is_plain_name(name):
            self.log.error("rule '%s' ignored - names must be plain text", name)
            return False

        candidates = []
        for text in candidate_texts(definition):
            try:
                nodes = self._parse(text) or EMPTY
            except ParseError as e:
                self.log.error("rule '%s' parse error - %s", name, e)
                continue
            candidates.append(RuleCandidate(text, ValueCandidate(nodes)))

        if not candidates:
            self.log.warning("rule '%s' ignored - no expansion candidates found", name)
            return False

        if isinstance(definition, Selector):
            selector = definition
        else:
            selector = selector_for([c.value for c in candidates], self.rng)

        if name in self._rules:
            self.log.warning("rule '%s' will be re-written", name)
        self._rules[name] = RuleMapping(tuple(candidates), selector)
        self.log.info("added rule '%s' with %s candidates", name, len(candidates))
        return True

    def remove_rule(self, name: str):
        self._rules.pop(name, None)

    def set_selector(self, name: str, selector: Selector):
        mapping = self._rules.get(name)
        if mapping is None:
            self.log.warning("rule '%s' not found to set selector", name)
            return
        mapping.selector = selector

    # Host hooks

    def _add_mod(self, kind: str, name: str, mod: Mod):
        if name in self.mods:
            self.log.warning("overwriting %s '%s'", kind, name)
        self.mods[name] = mod

    def add_modifier(self, name: str, transform: Callable[[str], str]):
        self._add_mod('modifier', name, lambda s, _: transform(s))

    def add_modifiers(self, modifiers: Mapping[str, Callable[[str], str]]):
        for name, transform in modifiers.items():
            self.add_modifier(name, transform)

    def add_method(self, name: str, transform: Mod):
        self._add_mod('method', name, transform)

    def add_methods(self, methods: Mapping[str, Mod]):
        for name, transform in methods.items():
            self.add_method(name, transform)

    def add_call(self, name: str, call: Callable[[], Any]):
        def run(s: str, _: list[str]) -> str:
            call()
            return s

        self._add_mod('call', name, run)

    def add_object(self, name: str, value: Any):
        self._objects[name] = value

    def remove_object(self, name: str):
        self._objects.pop(name, None)

    # Expansion

    def expand(self, text: str, preserve_context: bool = False) -> str:
        '''
        Expands `text` against the rules. Tags and runtime rules start empty on
        each call, unless `preserve_context` keeps them from earlier calls.
        '''
        if not preserve_context:
            self.runtime_rules.clear()
            self.tags.clear()

        self.log.trace('input: %s', shorten(text))
        try:
            nodes = self._parse(text)
            if self.log.tracing:
                self.log.trace('nodes: %s', debug_nodes(nodes))
            r = self._evaluate(nodes)
        except ParseError as e:
            self.log.error('parse error - %s', e.message)
            return f'error: {e}'
        except Abort as e:
            return f'error: {e.message}'

        self.log.trace('output: %s', shorten(r))
        return r

    def _evaluate(self, nodes: Sequence[Node]) -> str:
        # A hook may expand again while we are evaluating: continue from the
        # current depth so tags and the depth limit stay consistent.
        depth = self._active[-1].depth if self._active else 0
        ev = self._idle.pop() if self._idle else Evaluator(self)
        self._active.append(ev)
        try:
            return ev.run(nodes, depth)
        finally:
            self._active.pop()
            self._idle.append(ev)
            self.tags.leave(depth)

    @override
    def __repr__(self) -> str:
        return f'Tracery({len(self._rules)} rules, {self.options.tag_storage} tags)'
