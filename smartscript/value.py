'''
Dynamically typed numbers used by loops and echo arithmetic.

A `Value` is either an Integer (a Python `int` kept within signed 64 bits) or a
Double (a Python `float`). Anything else is parsed by its text form, so numeric
strings coming from parameters or string constants behave like numbers.
Mixed operations coerce both operands to Double.
'''

import re
import math
from typing import Any, Callable, TypeAlias

INT_RE = re.compile(r'[+-]?[0-9]+')
DOUBLE_RE = re.compile(r'[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?')
# Non-finite doubles as printed by `format_value()`.
SPECIAL_RE = re.compile(r'[+-]?(?:inf|infinity|nan)', re.IGNORECASE)

INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1
_INT_MASK = (1 << 64) - 1

Number: TypeAlias = int | float


def parse_int(s: str) -> int | None:
    if INT_RE.fullmatch(s) and INT_MIN <= (v := int(s)) <= INT_MAX:
        return v


def parse_double(s: str) -> float | None:
    if DOUBLE_RE.fullmatch(s) or SPECIAL_RE.fullmatch(s):
        return float(s)


def wrap_int(v: int) -> int:
    return ((v - INT_MIN) & _INT_MASK) + INT_MIN


def format_value(v: Any) -> str:
    if isinstance(v, Value):
        v = v.raw
    if isinstance(v, float):
        return repr(v)
    return str(v)


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError('integer division by zero')
    # Truncates toward zero, unlike `//`.
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _double_div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _double_compare(a: float, b: float) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    # NaN sorts above everything and equals itself; -0.0 sorts below 0.0.
    a_nan, b_nan = math.isnan(a), math.isnan(b)
    if a_nan or b_nan:
        return int(a_nan) - int(b_nan)
    sa, sb = math.copysign(1.0, a), math.copysign(1.0, b)
    return (sa > sb) - (sa < sb)


_INT_OPS: dict[str, Callable[[int, int], int]] = {
    '+': lambda a, b: a + b,
    '-': lambda a, b: a - b,
    '*': lambda a, b: a * b,
    '/': _int_div,
}

_DOUBLE_OPS: dict[str, Callable[[float, float], float]] = {
    '+': lambda a, b: a + b,
    '-': lambda a, b: a - b,
    '*': lambda a, b: a * b,
    '/': _double_div,
}


class Value:
    __slots__ = ('raw',)

    def __init__(self, raw: Number = 0):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise TypeError(f'bad raw value type: {type(raw)}: {raw!r}')
        self.raw: Number = wrap_int(raw) if isinstance(raw, int) else raw

    @classmethod
    def parse(cls, obj: Any) -> 'Value':
        if obj is None:
            return cls(0)
        if isinstance(obj, Value):
            return obj

        s = format_value(obj)
        if (i := parse_int(s)) is not None:
            return cls(i)
        if (d := parse_double(s)) is not None:
            return cls(d)
        raise TypeError(f'value must be integer, double, or a numeric string: {obj!r}')

    @property
    def is_double(self) -> bool:
        return isinstance(self.raw, float)

    @property
    def is_nan(self) -> bool:
        return self.is_double and math.isnan(self.raw)

    def _apply(self, other: Any, op: str) -> 'Value':
        other = Value.parse(other)
        if self.is_double or other.is_double:
            return Value(_DOUBLE_OPS[op](float(self.raw), float(other.raw)))
        return Value(_INT_OPS[op](self.raw, other.raw))

    def apply(self, op: str, other: Any) -> 'Value':
        '''Applies one of the `+ - * /` operators with `self` on the left.'''
        if op not in _INT_OPS:
            raise ValueError(f'unknown operator: {op}')
        return self._apply(other, op)

    def increment(self, other: Any) -> 'Value':
        return self._apply(other, '+')

    def decrement(self, other: Any) -> 'Value':
        return self._apply(other, '-')

    def multiply(self, other: Any) -> 'Value':
        return self._apply(other, '*')

    def divide(self, other: Any) -> 'Value':
        return self._apply(other, '/')

    def compare(self, other: Any) -> int:
        other = Value.parse(other)
        if self.is_double or other.is_double:
            return _double_compare(float(self.raw), float(other.raw))
        a, b = self.raw, other.raw
        return (a > b) - (a < b)

    # Same variant and same number; Integer(1) and Double(1.0) differ.
    def __eq__(self, other) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return type(self.raw) is type(other.raw) and self.raw == other.raw

    def __hash__(self) -> int:
        return hash((type(self.raw), self.raw))

    def __str__(self) -> str:
        return format_value(self.raw)

    def __repr__(self) -> str:
        kind = 'Double' if self.is_double else 'Integer'
        return f'{kind}({self.raw!r})'
