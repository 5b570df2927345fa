from typing import Iterator, TypeAlias
from dataclasses import dataclass

from .tokens import Token, Variable


@dataclass(frozen=True, slots=True)
class Text:
    content: str

    def as_text(self) -> str:
        return self.content


@dataclass(frozen=True, slots=True)
class Echo:
    tokens: tuple[Token, ...]

    def as_text(self) -> str:
        # `{$= $}` for an empty echo.
        return ''.join(['{$= ', *(t.as_text() + ' ' for t in self.tokens), '$}'])


@dataclass(frozen=True, slots=True)
class ForLoop:
    variable: Variable
    start: Token
    end: Token
    step: Token | None
    children: tuple['Node', ...] = ()

    def header(self) -> str:
        parts = [self.variable, self.start, self.end]
        if self.step is not None:
            parts.append(self.step)
        return ' '.join(t.as_text() for t in parts)

    def as_text(self) -> str:
        body = ''.join(ch.as_text() for ch in self.children)
        return f'{{$ FOR {self.header()} $}}{body}{{$END$}}'


@dataclass(frozen=True, slots=True)
class Document:
    children: tuple['Node', ...] = ()

    def as_text(self) -> str:
        return ''.join(ch.as_text() for ch in self.children)


Node: TypeAlias = Document | Text | ForLoop | Echo


def debug_node(node: Node) -> str:
    match node:
        case Document(children=chs):
            return f'Document[{len(chs)}]'
        case Text(content=s):
            return f'Text({s!r})'
        case ForLoop(children=chs):
            return f'ForLoop({node.header()})[{len(chs)}]'
        case Echo(tokens=tokens):
            return f'Echo({" ".join(t.as_text() for t in tokens)})'
    raise TypeError(f'bad node: {node!r}')


def tree_lines(node: Node, depth: int = 0) -> Iterator[str]:
    '''Yields an indented one-line summary of every node, parents first.'''
    yield '  ' * depth + debug_node(node)
    if isinstance(node, (Document, ForLoop)):
        for ch in node.children:
            yield from tree_lines(ch, depth + 1)
