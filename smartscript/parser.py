import functools

from .util import shorten
from .context import is_tracing, trace
from .lex import lex, Lexeme, Tag, ParseError
from .nodes import Document, Echo, ForLoop, Node, Text, tree_lines
from .value import DOUBLE_RE, parse_int
from .tokens import (
    OPERATORS,
    Token,
    Operator,
    Function,
    Variable,
    IntegerConstant,
    DoubleConstant,
    StringConstant,
    is_iden,
)


def classify(lexeme: Lexeme) -> Token:
    if lexeme.quoted:
        return StringConstant(lexeme.text)

    s = lexeme.text
    if s in OPERATORS:
        return Operator(s)
    if s.startswith('@'):
        if is_iden(name := s[1:]):
            return Function(name)
        raise ParseError(f'invalid function name: {s}')
    if is_iden(s):
        return Variable(s)
    if (i := parse_int(s)) is not None:
        return IntegerConstant(i)
    # Integers out of the 64-bit range end up here as well.
    if DOUBLE_RE.fullmatch(s):
        return DoubleConstant(float(s))
    raise ParseError(f'unknown data: {s}')


class _Frame:
    '''An open `for` tag collecting its children until the matching `end`.'''

    __slots__ = ('header', 'children')

    def __init__(self, header: tuple[Variable, Token, Token, Token | None]):
        self.header = header
        self.children: list[Node] = []

    def close(self) -> ForLoop:
        return ForLoop(*self.header, children=tuple(self.children))


def _for_header(tag: Tag) -> tuple[Variable, Token, Token, Token | None]:
    if not 3 <= len(tag.lexemes) <= 4:
        raise ParseError(
            f'for tag takes 3 or 4 arguments, got {len(tag.lexemes)} at {tag.pos}'
        )
    tokens = [classify(lexeme) for lexeme in tag.lexemes]
    variable = tokens[0]
    if not isinstance(variable, Variable):
        raise ParseError(f'bad for loop variable: {variable.as_text()} at {tag.pos}')
    step = tokens[3] if len(tokens) == 4 else None
    return variable, tokens[1], tokens[2], step


def parse(text: str) -> Document:
    '''
    Compiles document text into a tree.

    `Document` is the always-open root frame. Each `for` tag opens a frame
    nested in the innermost open one, and each `end` closes it into a `ForLoop`
    child of its parent. Any syntax error raises `ParseError` and no partial
    tree is returned.
    '''
    root: list[Node] = []
    frames: list[_Frame] = []

    def children() -> list[Node]:
        return frames[-1].children if frames else root

    for item in lex(text):
        if isinstance(item, str):
            children().append(Text(item))
            continue

        match item.name:
            case '=':
                tokens = tuple(classify(lexeme) for lexeme in item.lexemes)
                children().append(Echo(tokens))
            case 'for':
                frames.append(_Frame(_for_header(item)))
            case 'end':
                if item.lexemes:
                    raise ParseError(f'end tag takes no arguments at {item.pos}')
                if not frames:
                    raise ParseError(f'too many end tags at {item.pos}')
                node = frames.pop().close()
                children().append(node)
            case _:
                raise ParseError(f'unknown command: {item.name} at {item.pos}')

    if frames:
        raise ParseError(f'missing end tags: {len(frames)} for loop(s) left open')

    doc = Document(tuple(root))
    if is_tracing:
        trace('Parsed tree (%s):\n%s', len(text), '\n'.join(tree_lines(doc)))
    return doc


# Trees are immutable, so the same text can share one compiled document.
@functools.lru_cache
def parse_cached(text: str) -> Document:
    trace('Parsing uncached: %r', shorten(text))
    return parse(text)
