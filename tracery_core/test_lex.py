import unittest

from tracery_core.lex import Keyword, Number, Op, Text, tokenize


class TestLex(unittest.TestCase):
    def test_text(self):
        self.assertEqual(tokenize('hello world'), [Text('hello world')])
        self.assertEqual(tokenize(''), [])

    def test_ops(self):
        self.assertEqual(
            tokenize('#a.b#'),
            [Op('#'), Text('a'), Op('.'), Text('b'), Op('#')],
        )
        self.assertEqual(
            tokenize('[t:x,y]'),
            [Op('['), Text('t'), Op(':'), Text('x'), Op(','), Text('y'), Op(']')],
        )
        self.assertEqual(tokenize('{()}'), [Op('{'), Op('('), Op(')'), Op('}')])

    def test_dual_ops(self):
        self.assertEqual(tokenize('a==b'), [Text('a'), Op('=='), Text('b')])
        self.assertEqual(
            tokenize('a != b'), [Text('a '), Op('!='), Text(' '), Text('b')]
        )
        # A lone '=' or '!' is text.
        self.assertEqual(tokenize('a=b!'), [Text('a=b!')])

    def test_numbers(self):
        self.assertEqual(tokenize('12ab'), [Number(12, '12'), Text('ab')])
        self.assertEqual(tokenize('ab12'), [Text('ab12')])
        self.assertEqual(tokenize('a:10'), [Text('a'), Op(':'), Number(10, '10')])

    def test_leading_zeros(self):
        (n,) = tokenize('007')
        self.assertEqual(n, Number(7, '007'))
        self.assertEqual(n.raw, '007')
        self.assertEqual(''.join(t.raw for t in tokenize('0042 is 00')), '0042 is 00')

    def test_escapes(self):
        self.assertEqual(tokenize(r'\#rule\#'), [Text('#rule#')])
        self.assertEqual(tokenize(r'a\,b'), [Text('a,b')])
        self.assertEqual(tokenize('abc\\'), [Text('abc')])

    def test_keywords(self):
        self.assertEqual(tokenize(' if '), [Text(' '), Keyword('if'), Text(' ')])
        self.assertEqual(tokenize('[if '), [Op('['), Keyword('if'), Text(' ')])
        self.assertEqual(tokenize('[while '), [Op('['), Keyword('while'), Text(' ')])
        # Only `if` and `while` may follow a bracket.
        self.assertEqual(tokenize('[then '), [Op('['), Text('then ')])

    def test_keywords_need_surrounding_space(self):
        self.assertEqual(tokenize('if you know'), [Text('if you know')])
        self.assertEqual(tokenize('a if'), [Text('a if')])
        self.assertEqual(tokenize('begin end'), [Text('begin end')])
        self.assertEqual(tokenize('[value:in]'), [Op('['), Text('value'), Op(':'), Text('in'), Op(']')])

    def test_keyword_split(self):
        self.assertEqual(
            tokenize('x not in y'),
            [Text('x '), Keyword('not in'), Text(' '), Text('y')],
        )
        self.assertEqual(
            tokenize('a then b else c'),
            [
                Text('a '),
                Keyword('then'),
                Text(' '),
                Text('b '),
                Keyword('else'),
                Text(' '),
                Text('c'),
            ],
        )

    def test_escaped_keyword(self):
        self.assertEqual(tokenize(r'a \then b'), [Text('a then b')])

    def test_raw(self):
        tokens = tokenize('[if #a# == 1 then b]')
        self.assertEqual(''.join(t.raw for t in tokens), '[if #a# == 1 then b]')


if __name__ == '__main__':
    unittest.main()
