import math
from typing import Callable, TypeAlias
from contextlib import contextmanager

from .util import log
from .context import is_tracing, trace, ExecutionSink, RequestContext
from .decfmt import decfmt
from .multistack import MultiStack
from .nodes import Document, Echo, ForLoop, Node, Text, debug_node
from .parser import parse_cached
from .value import Value, format_value
from .tokens import (
    Token,
    Operator,
    Function,
    Variable,
    IntegerConstant,
    DoubleConstant,
    StringConstant,
)

DEFAULT_STEP = 1

StackValue: TypeAlias = int | float | str


def _pop(stack: list[StackValue], token: Token) -> StackValue:
    if not stack:
        raise IndexError(f'echo stack underflow: {token.as_text()}')
    return stack.pop()


def _or_default(value: str | None, default: StackValue) -> StackValue:
    return default if value is None else value


def _bound(token: Token) -> Value:
    # Bounds are taken from the canonical text of numeric constants.
    match token:
        case IntegerConstant() | DoubleConstant() | StringConstant():
            return Value.parse(token.as_text())
    raise TypeError(f'bad for loop bound: {token.as_text()}')


class Engine:
    '''
    Executes compiled documents against an `ExecutionSink`.

    Loop variables live in a `MultiStack` owned by the engine, so an engine
    must not be shared between concurrent executions. The documents themselves
    are immutable and can be.
    '''

    def __init__(self, sink: ExecutionSink):
        self._sink = sink
        self._scope = MultiStack()
        self._depth = 0

        # Built-in echo functions, keyed by lowercased name.
        self._funcs: dict[str, Callable[[list[StackValue], Function], None]] = {
            'sin': self._sin_func,
            'decfmt': self._decfmt_func,
            'dup': self._dup_func,
            'swap': self._swap_func,
            'setmimetype': self._set_mime_type_func,
            'paramget': self._param_get_func,
            'pparamget': self._pparam_get_func,
            'pparamset': self._pparam_set_func,
            'pparamdel': self._pparam_del_func,
            'tparamget': self._tparam_get_func,
            'tparamset': self._tparam_set_func,
            'tparamdel': self._tparam_del_func,
        }

    def execute(self, document: Document):
        # Loop bindings never outlive one execution.
        self._scope = MultiStack()
        self._depth = 0
        self.visit(document)

    def render(self, text: str):
        self.execute(parse_cached(text))

    def visit(self, node: Node):
        if is_tracing:
            trace('[%d] %s', self._depth, debug_node(node))

        match node:
            case Document(children=chs):
                for ch in chs:
                    self.visit(ch)
            case Text(content=s):
                self._sink.write(s)
            case ForLoop():
                self._for_loop(node)
            case Echo(tokens=tokens):
                self._echo(tokens)
            case _:
                raise TypeError(f'bad node: {node!r}')

    def _for_loop(self, node: ForLoop):
        key = node.variable.name
        current = _bound(node.start)
        end = _bound(node.end)
        step = Value(DEFAULT_STEP) if node.step is None else _bound(node.step)
        trace('for %s: %r..%r step %r', key, current, end, step)

        # Nothing compares greater than NaN, so such a loop would never end.
        if end.is_nan:
            return

        with self._bind(key, current):
            while current.compare(end) <= 0:
                for ch in node.children:
                    self.visit(ch)
                current = self._scope.pop(key).increment(step)
                self._scope.push(key, current)

    @contextmanager
    def _bind(self, key: str, value: Value):
        self._depth += 1
        self._scope.push(key, value)
        try:
            yield
        finally:
            # Restores any outer binding of the same name.
            self._scope.pop(key)
            self._depth -= 1
            trace('Unbind %s (depth %d)', key, self._depth)

    def _echo(self, tokens: tuple[Token, ...]):
        stack: list[StackValue] = []
        for t in tokens:
            match t:
                case IntegerConstant(value=v) | DoubleConstant(value=v):
                    stack.append(v)
                case StringConstant(value=s):
                    stack.append(s)
                case Variable(name=name):
                    stack.append(self._scope.peek(name).raw)
                case Operator(symbol=op):
                    # The operand pushed last is the right-hand side.
                    right = _pop(stack, t)
                    left = _pop(stack, t)
                    stack.append(Value.parse(left).apply(op, right).raw)
                case Function(name=name):
                    if (func := self._funcs.get(name.lower())) is None:
                        log.warning('Unknown echo function: %s', name)
                        stack.append(f'unknown function name: {name}')
                    else:
                        func(stack, t)
                case _:
                    raise TypeError(f'bad token: {t!r}')

        trace('Echo result: %r', stack)
        # Bottom to top, in push order.
        for val in stack:
            self._sink.write(format_value(val))

    def _sin_func(self, stack: list[StackValue], t: Function):
        x = Value.parse(_pop(stack, t)).raw
        stack.append(math.sin(float(x) * math.pi / 180))

    def _decfmt_func(self, stack: list[StackValue], t: Function):
        pattern = format_value(_pop(stack, t))
        value = Value.parse(_pop(stack, t)).raw
        stack.append(decfmt(value, pattern))

    def _dup_func(self, stack: list[StackValue], t: Function):
        x = _pop(stack, t)
        stack.append(x)
        stack.append(x)

    def _swap_func(self, stack: list[StackValue], t: Function):
        a = _pop(stack, t)
        b = _pop(stack, t)
        stack.append(a)
        stack.append(b)

    def _set_mime_type_func(self, stack: list[StackValue], t: Function):
        self._sink.set_mime_type(format_value(_pop(stack, t)))

    def _param_get_func(self, stack: list[StackValue], t: Function):
        default = _pop(stack, t)
        name = format_value(_pop(stack, t))
        stack.append(_or_default(self._sink.get_parameter(name), default))

    def _pparam_get_func(self, stack: list[StackValue], t: Function):
        default = _pop(stack, t)
        name = format_value(_pop(stack, t))
        stack.append(_or_default(self._sink.get_persistent_parameter(name), default))

    def _pparam_set_func(self, stack: list[StackValue], t: Function):
        name = format_value(_pop(stack, t))
        value = format_value(_pop(stack, t))
        self._sink.set_persistent_parameter(name, value)

    def _pparam_del_func(self, stack: list[StackValue], t: Function):
        self._sink.remove_persistent_parameter(format_value(_pop(stack, t)))

    def _tparam_get_func(self, stack: list[StackValue], t: Function):
        default = _pop(stack, t)
        name = format_value(_pop(stack, t))
        stack.append(_or_default(self._sink.get_temporary_parameter(name), default))

    def _tparam_set_func(self, stack: list[StackValue], t: Function):
        name = format_value(_pop(stack, t))
        value = format_value(_pop(stack, t))
        self._sink.set_temporary_parameter(name, value)

    def _tparam_del_func(self, stack: list[StackValue], t: Function):
        self._sink.remove_temporary_parameter(format_value(_pop(stack, t)))


def execute(document: Document, sink: ExecutionSink):
    Engine(sink).execute(document)


def render(text: str, sink: ExecutionSink):
    Engine(sink).render(text)


def render_to_str(text: str, parameters: dict[str, str] | None = None) -> str:
    '''Renders `text` into a fresh in-memory sink and returns the output.'''
    sink = RequestContext(parameters=parameters)
    render(text, sink)
    return sink.getvalue()
