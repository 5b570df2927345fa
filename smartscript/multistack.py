from collections import defaultdict

from .context import trace
from .value import Value


class MultiStack:
    '''
    Maps each variable name to its own stack of values.

    Pushing under a name shadows the previous binding until it is popped, which
    is all nested loops reusing a variable name need. A name whose stack is
    empty counts as unbound.
    '''

    def __init__(self):
        self._stacks: defaultdict[str, list[Value]] = defaultdict(list)

    def push(self, name: str, value: Value):
        trace('Push %s = %r (depth %d)', name, value, len(self._stacks[name]))
        self._stacks[name].append(value)

    def pop(self, name: str) -> Value:
        if not (stack := self._stacks.get(name)):
            raise KeyError(name)
        value = stack.pop()
        trace('Pop %s = %r', name, value)
        return value

    def peek(self, name: str) -> Value:
        if not (stack := self._stacks.get(name)):
            raise KeyError(name)
        return stack[-1]

    def is_empty(self, name: str) -> bool:
        return not self._stacks.get(name)

    def __contains__(self, name: str) -> bool:
        return not self.is_empty(name)
