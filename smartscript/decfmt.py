'''
Number formatting for the `@decfmt` echo function.

Patterns use the usual decimal format notation: `#` for an optional digit,
`0` for a required one, `,` for grouping, `.` before the fraction digits, `E0`
for scientific notation, `%` and `‰` as multipliers, and single quotes around
literal text. Rounding is half-even.
'''

import os
import math
import functools
import decimal
from decimal import Decimal
from dataclasses import dataclass

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

from .context import trace

parser = Lark.open(
    os.path.join(os.path.dirname(__file__), 'decfmt.lark'),
    parser='lalr',
)

INFINITY = '∞'
NAN = 'NaN'
# Fraction digits kept by the empty pattern, enough for any double.
MAX_FRACTION_DIGITS = 340


@dataclass(frozen=True, slots=True)
class DecimalPattern:
    prefix: str = ''
    suffix: str = ''
    neg_prefix: str = '-'
    neg_suffix: str = ''
    min_int: int = 1
    grouping: int = 0
    min_frac: int = 0
    max_frac: int = 0
    # Minimum exponent digits, 0 if not in scientific notation.
    min_exp: int = 0
    multiplier: int = 1

    def format(self, value: int | float) -> str:
        if isinstance(value, float) and math.isnan(value):
            return NAN

        negative = value < 0
        if isinstance(value, float) and math.isinf(value):
            body = INFINITY
        else:
            d = Decimal(value) if isinstance(value, int) else Decimal(repr(value))
            d = abs(d) * self.multiplier
            with decimal.localcontext() as ctx:
                ctx.prec = 400 + self.max_frac
                body = self._scientific(d) if self.min_exp else self._fixed(d)

        if negative:
            return self.neg_prefix + body + self.neg_suffix
        return self.prefix + body + self.suffix

    def _round(self, d: Decimal) -> tuple[str, str]:
        q = d.quantize(Decimal(1).scaleb(-self.max_frac), decimal.ROUND_HALF_EVEN)
        int_part, _, frac_part = f'{q:f}'.partition('.')
        frac_part = frac_part.rstrip('0').ljust(self.min_frac, '0')
        int_part = int_part.lstrip('0').rjust(self.min_int, '0')
        if not int_part and not frac_part:
            int_part = '0'
        return int_part, frac_part

    def _group(self, digits: str) -> str:
        if not self.grouping or len(digits) <= self.grouping:
            return digits
        head = len(digits) % self.grouping or self.grouping
        groups = [digits[:head]]
        for i in range(head, len(digits), self.grouping):
            groups.append(digits[i : i + self.grouping])
        return ','.join(groups)

    def _fixed(self, d: Decimal) -> str:
        int_part, frac_part = self._round(d)
        int_part = self._group(int_part)
        return f'{int_part}.{frac_part}' if frac_part else int_part

    def _scientific(self, d: Decimal) -> str:
        int_digits = max(self.min_int, 1)
        exponent = 0 if d.is_zero() else d.adjusted() - (int_digits - 1)
        int_part, frac_part = self._round(d.scaleb(-exponent))
        if len(int_part) > int_digits:
            # Rounding carried into a new digit, e.g. 9.99 -> 10.0.
            exponent += 1
            int_part, frac_part = self._round(d.scaleb(-exponent))

        mantissa = f'{int_part}.{frac_part}' if frac_part else int_part
        sign = '-' if exponent < 0 else ''
        return f'{mantissa}E{sign}{str(abs(exponent)).zfill(self.min_exp)}'


class _PatternBuilder(Transformer):
    def affix(self, items: list[Token]) -> tuple[str, int]:
        text = []
        multiplier = 1
        for tok in items:
            match tok.type:
                case 'QUOTED':
                    s = tok.value[1:-1]
                    text.append(s.replace("''", "'") if s else "'")
                case 'PERCENT':
                    multiplier = 100
                    text.append(tok.value)
                case 'PERMILLE':
                    multiplier = 1000
                    text.append(tok.value)
                case _:
                    text.append(tok.value)
        return ''.join(text), multiplier

    def number(self, items: list[Token]) -> dict[str, int]:
        r = {}
        zeros = 0
        for tok in items:
            s = tok.value
            match tok.type:
                case 'INTEGER':
                    if s.endswith(','):
                        raise ValueError(f'grouping separator at the end: {s}')
                    r['min_int'] = s.count('0')
                    if ',' in s:
                        r['grouping'] = len(s) - s.rindex(',') - 1
                case 'FRACTION':
                    r['min_frac'] = s.count('0')
                    r['max_frac'] = len(s) - 1
                case 'EXPONENT':
                    r['min_exp'] = len(s) - 1
            if tok.type != 'EXPONENT':
                zeros += s.count('0')

        if 'max_frac' in r and not zeros:
            # Without any `0`, the digit next to the point becomes required:
            # `#.##` prints `0.5`, `.##` prints `.5` and `.0`.
            if 'min_int' in r:
                r['min_int'] = 1
            else:
                r['min_frac'] = min(1, r['max_frac'])
        if 'min_int' not in r:
            # A pattern like `.00` prints no integer digits for zero.
            r['min_int'] = 0
        return r

    def subpattern(self, items) -> tuple[tuple[str, int], dict[str, int], tuple[str, int]]:
        prefix, number, suffix = items
        return prefix, number, suffix

    def start(self, items) -> DecimalPattern:
        (prefix, pm), number, (suffix, sm) = items[0]
        if len(items) > 1:
            (neg_prefix, _), _, (neg_suffix, _) = items[1]
        else:
            neg_prefix, neg_suffix = '-' + prefix, suffix
        return DecimalPattern(
            prefix=prefix,
            suffix=suffix,
            neg_prefix=neg_prefix,
            neg_suffix=neg_suffix,
            multiplier=max(pm, sm),
            **number,
        )


@functools.lru_cache
def compile_pattern(pattern: str) -> DecimalPattern:
    if not pattern:
        # Plain digits: no grouping, no forced zeros, every fraction digit.
        return DecimalPattern(min_int=0, max_frac=MAX_FRACTION_DIGITS)
    try:
        tree = parser.parse(pattern)
        r = _PatternBuilder().transform(tree)
    except LarkError as e:
        raise ValueError(f'malformed decimal format pattern: {pattern!r}: {e}') from e
    trace('Compiled pattern: %r -> %s', pattern, r)
    return r


def decfmt(value: int | float, pattern: str) -> str:
    return compile_pattern(pattern).format(value)
