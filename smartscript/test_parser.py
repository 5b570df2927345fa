import unittest

from smartscript.lex import lex, Lexeme, Tag, ParseError
from smartscript.parser import classify, parse
from smartscript.nodes import Document, Echo, ForLoop, Text, tree_lines
from smartscript.tokens import (
    Operator,
    Function,
    Variable,
    IntegerConstant,
    DoubleConstant,
    StringConstant,
)

test_text = r'''This is sample text.
{$ FOR i 1 10 1 $}
 This is {$= i $}-th time this message is generated.
{$END$}
{$FOR i 0 10 2 $}
 sin({$=i$}^2) = {$= i i * @sin "0.000" @decfmt $}
{$END$}
'''


class TestLex(unittest.TestCase):
    def lex_it(self, text: str) -> list:
        return list(lex(text))

    def test_plain_text(self):
        self.assertEqual(self.lex_it('Hello $ world }'), ['Hello $ world }'])
        self.assertEqual(self.lex_it(''), [])

    def test_text_escapes(self):
        self.assertEqual(self.lex_it('a\\rb'), ['a\rb'])
        self.assertEqual(self.lex_it('a\\nb\\tc'), ['a\nb\tc'])
        self.assertEqual(self.lex_it('a\\qb'), ['ab'])
        self.assertEqual(self.lex_it('a\\\\b'), ['ab'])
        self.assertEqual(self.lex_it('a\\{$= 1 $}'), ['a$= 1 $}'])
        # Trailing lone backslash.
        self.assertEqual(self.lex_it('ab\\'), ['ab'])
        self.assertEqual(self.lex_it('\\q'), [])

    def test_tags(self):
        r = self.lex_it('a{$= x 1 "s" $}b')
        self.assertEqual(
            r,
            [
                'a',
                Tag('=', (Lexeme('x'), Lexeme('1'), Lexeme('s', True)), 1),
                'b',
            ],
        )

        r = self.lex_it('{  $  FoR  i 1\t2\n$  }{$END$}')
        self.assertEqual(r[0].name, 'for')
        self.assertEqual([l.text for l in r[0].lexemes], ['i', '1', '2'])
        self.assertEqual(r[1], Tag('end', (), 21))

        self.assertEqual(self.lex_it('{$=$}'), [Tag('=', (), 0)])

    def test_strings(self):
        (tag,) = self.lex_it(r'{$= "a b\n\"c$}" $}')
        self.assertEqual(tag.lexemes, (Lexeme('a b\nc$}', True),))

        (tag,) = self.lex_it('{$= "a" "b"\t""$}')
        self.assertEqual(
            tag.lexemes,
            (Lexeme('a', True), Lexeme('b', True), Lexeme('', True)),
        )

    def test_errors(self):
        for text, msg in (
            ('{ a', "expected '$'"),
            ('{$ 1 $}', 'missing tag name'),
            ('{$= 1 $ x', "missing '$}'"),
            ('{$= 1 ', 'unclosed tag'),
            ('{$end', 'unclosed tag'),
            ('{$= "abc $}', 'unterminated string'),
            ('{$= "a"b $}', 'expected whitespace after a string'),
            ('{$= "a""b" $}', 'expected whitespace after a string'),
            ('{$= "a"', 'unclosed tag'),
        ):
            with self.assertRaises(ParseError, msg=text) as cm:
                self.lex_it(text)
            self.assertIn(msg, str(cm.exception))


class TestClassify(unittest.TestCase):
    def test_precedence(self):
        for s, token in (
            ('+', Operator('+')),
            ('-', Operator('-')),
            ('*', Operator('*')),
            ('/', Operator('/')),
            ('@sin', Function('sin')),
            ('@dec_fmt2', Function('dec_fmt2')),
            ('i', Variable('i')),
            ('a_1', Variable('a_1')),
            ('inf', Variable('inf')),
            ('42', IntegerConstant(42)),
            ('-42', IntegerConstant(-42)),
            ('+7', IntegerConstant(7)),
            ('3.5', DoubleConstant(3.5)),
            ('-.5', DoubleConstant(-0.5)),
            ('1e3', DoubleConstant(1000.0)),
            ('99999999999999999999', DoubleConstant(1e20)),
        ):
            self.assertEqual(classify(Lexeme(s)), token, s)

        self.assertEqual(classify(Lexeme('1', True)), StringConstant('1'))

    def test_bad_lexemes(self):
        for s in ('@1a', '@', '_a', '1a', '--1', '1_000', '"', '#', 'a-b'):
            with self.assertRaises(ParseError, msg=s):
                classify(Lexeme(s))


class TestParse(unittest.TestCase):
    def test_structure(self):
        doc = parse(test_text)
        self.assertIsInstance(doc, Document)
        self.assertEqual(len(doc.children), 5)

        text, loop, nl, loop2, nl2 = doc.children
        self.assertEqual(text, Text('This is sample text.\n'))
        self.assertEqual(nl, Text('\n'))
        self.assertEqual(nl2, Text('\n'))

        assert isinstance(loop, ForLoop)
        self.assertEqual(loop.variable, Variable('i'))
        self.assertEqual(loop.start, IntegerConstant(1))
        self.assertEqual(loop.end, IntegerConstant(10))
        self.assertEqual(loop.step, IntegerConstant(1))
        self.assertEqual(len(loop.children), 3)
        self.assertEqual(loop.children[1], Echo((Variable('i'),)))

        assert isinstance(loop2, ForLoop)
        echo = loop2.children[3]
        self.assertEqual(
            echo,
            Echo(
                (
                    Variable('i'),
                    Variable('i'),
                    Operator('*'),
                    Function('sin'),
                    StringConstant('0.000'),
                    Function('decfmt'),
                )
            ),
        )

    def test_nesting(self):
        doc = parse('{$for i 1 2$}a{$FOR j 1 2 $}b{$end$}c{$END$}d')
        outer, d = doc.children
        assert isinstance(outer, ForLoop)
        self.assertEqual(d, Text('d'))
        self.assertIsNone(outer.step)
        a, inner, c = outer.children
        self.assertEqual((a, c), (Text('a'), Text('c')))
        assert isinstance(inner, ForLoop)
        self.assertEqual(inner.variable, Variable('j'))
        self.assertEqual(inner.children, (Text('b'),))

    def test_errors(self):
        for text, msg in (
            ('{$END$}', 'too many end tags'),
            ('{$FOR i 1 2$}{$END$}{$END$}', 'too many end tags'),
            ('{$FOR i 1 2$}', 'missing end tags'),
            ('{$FOR i 1 2$}{$FOR j 1 2$}{$END$}', 'missing end tags'),
            ('{$ IF x $}', 'unknown command'),
            ('{$FOR i 1$}{$END$}', '3 or 4 arguments'),
            ('{$FOR i 1 2 3 4$}{$END$}', '3 or 4 arguments'),
            ('{$FOR 1 1 2$}{$END$}', 'bad for loop variable'),
            ('{$FOR i 1 2 x-1$}{$END$}', 'unknown data'),
            ('{$END x$}', 'no arguments'),
            ('{$= 1a $}', 'unknown data'),
            ('{$= @1 $}', 'invalid function name'),
        ):
            with self.assertRaises(ParseError, msg=text) as cm:
                parse(text)
            self.assertIn(msg, str(cm.exception), text)

    def test_as_text(self):
        doc = parse('{$ for i -1 10.5 "2" $}{$= i "a\\tb" @f + $}{$end$}x')
        self.assertEqual(
            doc.as_text(),
            '{$ FOR i -1 10.5 "2" $}{$= i "a\\tb" @f + $}{$END$}x',
        )
        self.assertEqual(parse('{$=$}').as_text(), '{$= $}')
        self.assertEqual(parse('{$= 1e999 $}').as_text(), '{$= 1e999 $}')

    def test_round_trip(self):
        for text in (
            test_text,
            '{$FOR i 1 3$}{$ FOR i 1 2 $}{$= i "\\r\\n" $}{$END$}{$END$}',
            'a\\nb{$= "x y" 1.25 -3 @dup $}',
        ):
            doc = parse(text)
            again = parse(doc.as_text())
            self.assertEqual(doc, again)
            self.assertEqual(again.as_text(), doc.as_text())

    def test_tree_lines(self):
        doc = parse('a{$FOR i 1 2$}{$= i $}{$END$}')
        self.assertEqual(
            list(tree_lines(doc)),
            [
                'Document[2]',
                "  Text('a')",
                '  ForLoop(i 1 2)[1]',
                '    Echo(i)',
            ],
        )


if __name__ == '__main__':
    unittest.main()
