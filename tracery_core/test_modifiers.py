import unittest

from tracery_core import Abort, Options, Tracery
from tracery_core.modifiers import a, base_english, base_methods, calc, ed, replace, s


class TestModifiers(unittest.TestCase):
    def test_english(self):
        self.assertEqual(a('cat'), 'a cat')
        self.assertEqual(a('owl'), 'an owl')
        self.assertEqual(a('unicorn'), 'a unicorn')
        self.assertEqual(a('umbrella'), 'an umbrella')
        self.assertEqual(a(''), '')

        self.assertEqual(s('cat'), 'cats')
        self.assertEqual(s('box'), 'boxes')
        self.assertEqual(s('city'), 'cities')
        self.assertEqual(s('day'), 'days')

        self.assertEqual(ed('walk'), 'walked')
        self.assertEqual(ed('bake'), 'baked')
        self.assertEqual(ed('cry'), 'cried')

    def test_replace(self):
        self.assertEqual(replace('a-b-c', ['-', '+']), 'a+b+c')
        with self.assertRaises(Abort):
            replace('x', ['y'])

    def test_calc(self):
        self.assertEqual(calc('2', ['x + 1']), '3')
        self.assertEqual(calc('3', ['x / 2']), '1.5')
        self.assertEqual(calc('4', ['x / 2']), '2')
        self.assertEqual(calc('4', ['x > 3']), '1')
        self.assertEqual(calc('', ['7 * 6']), '42')
        with self.assertRaises(Abort):
            calc('1', ['x / 0'])
        with self.assertRaises(Abort):
            calc('1', ['nope + 1'])

    def test_in_rules(self):
        t = Tracery(
            {
                'animal': 'owl',
                'origin': '#animal.a.capitalize#, #animal.s.caps#! #n.calc(x * 2)#',
            },
            Options(log_level='none'),
        )
        t.add_modifiers(base_english)
        t.add_methods(base_methods)
        t.add_object('n', 21)
        self.assertEqual(t.expand('#origin#'), 'An owl, OWLS! 42')
        self.assertEqual(t.expand('#animal.replace(w,ff).capitalizeAll#'), 'Offl')
        self.assertEqual(t.expand('#(hello world).capitalizeAll.reverse#'), 'dlroW olleH')
        self.assertEqual(t.errors, [])

    def test_method_errors_abort(self):
        t = Tracery(None, Options(analyze_rules=False, log_level='none'))
        t.add_methods(base_methods)
        self.assertEqual(t.expand('#(x).replace(y)#'), 'error: replace takes 2 parameters, got 1')
        self.assertTrue(t.expand('#(1).calc(x / 0)#').startswith('error: calc: x / 0'))


if __name__ == '__main__':
    unittest.main()
