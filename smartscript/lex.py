from enum import Enum, auto
from typing import Iterator, NamedTuple

from .util import shorten
from .context import trace


class ParseError(Exception):
    pass


class Lexeme(NamedTuple):
    text: str
    # Quoted lexemes are string literals with escapes already resolved.
    quoted: bool = False


class Tag(NamedTuple):
    # '=' for echo tags, otherwise the lowercased command name.
    name: str
    lexemes: tuple[Lexeme, ...]
    pos: int


class State(Enum):
    TEXT = auto()
    ESCAPE = auto()
    TAG_OPEN = auto()
    TAG_NAME = auto()
    NAME = auto()
    ARGS = auto()
    STRING = auto()
    STRING_ESCAPE = auto()
    STRING_END = auto()
    TAG_CLOSE = auto()


WHITESPACE = frozenset(' \t\n\r\f\v')

ESCAPES = {'r': '\r', 'n': '\n', 't': '\t'}


def _is_letter(c: str) -> bool:
    return c.isascii() and c.isalpha()


def lex(text: str) -> Iterator[str | Tag]:
    r'''
    Splits `text` into text fragments and `{$ ... $}` tags.

    Text fragments are yielded as plain strings with `\r`, `\n` and `\t`
    resolved; a backslash before any other character drops both of them. Tags
    are yielded as `Tag` tuples carrying the whitespace separated lexemes of the
    tag body. Quoted strings inside a tag form a single lexeme, may contain
    whitespace and `$`, use the same escapes as text, and end at whitespace or
    the closing `$}`.

    The command name is not validated here, that is up to the parser.
    '''
    trace('Lexing text: %r', shorten(text))

    state = State.TEXT

    # Text being accumulated, or the current tag name or lexeme.
    buf: list[str] = []

    name = ''
    lexemes: list[Lexeme] = []
    tag_start = 0

    p = 0
    n = len(text)
    while p < n:
        c = text[p]
        match state:
            case State.TEXT:
                if c == '{':
                    if buf:
                        yield ''.join(buf)
                        buf.clear()
                    tag_start = p
                    state = State.TAG_OPEN
                elif c == '\\':
                    state = State.ESCAPE
                else:
                    buf.append(c)

            case State.ESCAPE | State.STRING_ESCAPE:
                if (e := ESCAPES.get(c)) is not None:
                    buf.append(e)
                else:
                    trace('Dropped escape at %d: \\%s', p, c)
                state = State.TEXT if state is State.ESCAPE else State.STRING

            case State.TAG_OPEN:
                if c == '$':
                    state = State.TAG_NAME
                elif c not in WHITESPACE:
                    raise ParseError(f"expected '$' after '{{' at {p}")

            case State.TAG_NAME:
                if c == '=':
                    name = '='
                    state = State.ARGS
                elif _is_letter(c):
                    buf.append(c)
                    state = State.NAME
                elif c not in WHITESPACE:
                    raise ParseError(f'missing tag name at {p}')

            case State.NAME:
                if _is_letter(c):
                    buf.append(c)
                else:
                    name = ''.join(buf).lower()
                    buf.clear()
                    state = State.ARGS
                    # Reprocess `c` as the start of the arguments.
                    continue

            case State.ARGS:
                if c in WHITESPACE or c == '$':
                    if buf:
                        lexemes.append(Lexeme(''.join(buf)))
                        buf.clear()
                    if c == '$':
                        state = State.TAG_CLOSE
                elif c == '"' and not buf:
                    state = State.STRING
                else:
                    buf.append(c)

            case State.STRING:
                if c == '"':
                    lexemes.append(Lexeme(''.join(buf), quoted=True))
                    buf.clear()
                    state = State.STRING_END
                elif c == '\\':
                    state = State.STRING_ESCAPE
                else:
                    buf.append(c)

            case State.STRING_END:
                if c in WHITESPACE:
                    state = State.ARGS
                elif c == '$':
                    state = State.TAG_CLOSE
                else:
                    raise ParseError(f'expected whitespace after a string at {p}')

            case State.TAG_CLOSE:
                if c == '}':
                    tag = Tag(name, tuple(lexemes), tag_start)
                    trace('Lexed tag: %s', tag)
                    yield tag
                    lexemes.clear()
                    state = State.TEXT
                elif c not in WHITESPACE:
                    raise ParseError(f"missing '$}}' to close the tag at {tag_start}")

        p += 1

    match state:
        case State.TEXT | State.ESCAPE:
            # A trailing lone backslash is dropped.
            if buf:
                yield ''.join(buf)
        case State.STRING | State.STRING_ESCAPE:
            raise ParseError(f'unterminated string in the tag at {tag_start}')
        case _:
            raise ParseError(f'unclosed tag at {tag_start}')
