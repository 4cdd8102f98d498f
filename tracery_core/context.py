from enum import Enum, auto
from typing import Sequence, override

from .nodes import Node, debug_nodes


class PopAction(Enum):
    APPEND = auto()
    ADD_ARG = auto()
    NOTHING = auto()


class ExecutionContext:
    '''
    One frame of the evaluator. Pending nodes are kept reversed, so the next
    node to run is at the end.
    '''

    __slots__ = ('nodes', 'result', 'args', 'pop_action', 'affects_depth')

    def __init__(self):
        self.nodes: list[Node] = []
        self.result: str = ''
        self.args: list[str] = []
        self.pop_action = PopAction.NOTHING
        self.affects_depth = False

    def reset(self, nodes: Sequence[Node], pop_action: PopAction, affects_depth: bool):
        self.nodes = list(reversed(nodes))
        self.result = ''
        if self.args:
            self.args = []
        self.pop_action = pop_action
        self.affects_depth = affects_depth

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def pop(self) -> Node:
        return self.nodes.pop()

    @override
    def __repr__(self) -> str:
        flag = ' +depth' if self.affects_depth else ''
        return (
            f'{debug_nodes(self.nodes[::-1])} {self.pop_action.name}{flag} '
            f'args{self.args} result:{self.result!r}'
        )


class ContextStack:
    '''
    Pool of frames indexed by `top`, the number of live frames. Frames above
    `top` are kept around and reused by later pushes.
    '''

    INITIAL_SIZE = 32

    def __init__(self):
        self.contexts = [ExecutionContext() for _ in range(self.INITIAL_SIZE)]
        self.top = 0

    def __len__(self) -> int:
        return self.top

    def reset(self):
        self.top = 0

    @property
    def current(self) -> ExecutionContext:
        return self.contexts[self.top - 1]

    @property
    def is_complete(self) -> bool:
        return self.top == 1 and self.contexts[0].is_empty

    def push(self, nodes: Sequence[Node], pop_action: PopAction, affects_depth: bool):
        if self.top == len(self.contexts):
            self.contexts.extend(ExecutionContext() for _ in range(len(self.contexts)))
        self.contexts[self.top].reset(nodes, pop_action, affects_depth)
        self.top += 1

    def pop(self) -> ExecutionContext:
        '''Pops the current frame, handing its result to the frame below.'''
        self.top -= 1
        context = self.contexts[self.top]
        if self.top > 0:
            parent = self.contexts[self.top - 1]
            match context.pop_action:
                case PopAction.APPEND:
                    parent.result += context.result
                case PopAction.ADD_ARG:
                    parent.args.append(context.result)
                case PopAction.NOTHING:
                    pass
        return context

    def live(self) -> Sequence[ExecutionContext]:
        return self.contexts[: self.top]
