import re
import math
from typing import Final, TypeAlias
from dataclasses import dataclass

OPERATORS: Final = ('+', '-', '*', '/')

IDEN_RE = re.compile(r'[A-Za-z][A-Za-z0-9_]*')

_ESCAPES = str.maketrans({'\r': r'\r', '\n': r'\n', '\t': r'\t'})


def is_iden(s: str) -> bool:
    return IDEN_RE.fullmatch(s) is not None


# Inverse of the escapes resolved by the lexer inside string literals.
def escape_string(s: str) -> str:
    return s.translate(_ESCAPES)


@dataclass(frozen=True, slots=True)
class Operator:
    symbol: str

    def as_text(self) -> str:
        return self.symbol


@dataclass(frozen=True, slots=True)
class Function:
    name: str

    def as_text(self) -> str:
        return '@' + self.name


@dataclass(frozen=True, slots=True)
class Variable:
    name: str

    def as_text(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class IntegerConstant:
    value: int

    def as_text(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class DoubleConstant:
    value: float

    def as_text(self) -> str:
        # `inf` would read back as a variable name.
        if math.isinf(self.value):
            return '-1e999' if self.value < 0 else '1e999'
        return repr(self.value)


@dataclass(frozen=True, slots=True)
class StringConstant:
    value: str

    def as_text(self) -> str:
        return '"' + escape_string(self.value) + '"'


Token: TypeAlias = (
    Operator | Function | Variable | IntegerConstant | DoubleConstant | StringConstant
)
