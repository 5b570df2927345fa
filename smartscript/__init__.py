from .context import ExecutionSink, RequestContext, LRUDict
from .lex import ParseError
from .nodes import Node, Document, Text, ForLoop, Echo
from .parser import parse, parse_cached
from .value import Value
from .multistack import MultiStack
from .engine import Engine, execute, render, render_to_str
