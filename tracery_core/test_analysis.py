import unittest

from tracery_core import Options, Tracery
from tracery_core.analysis import strongly_connected, walk
from tracery_core.nodes import Rule, Tag
from tracery_core.parse import parse_text


def analyzed(rules: dict) -> list[str]:
    return Tracery(rules, Options(log_level='none')).errors


class TestAnalysis(unittest.TestCase):
    def assertReported(self, errors: list[str], *expected: str):
        for e in expected:
            self.assertTrue(any(e in err for err in errors), f'errors: {errors}\nexpected: {e}')

    def test_clean(self):
        self.assertEqual(analyzed({'origin': '#a# #b#', 'a': 'x', 'b': '#a#'}), [])

    def test_empty(self):
        self.assertReported(analyzed({}), 'no expandable rules were found')

    def test_self_reference(self):
        errors = analyzed({'r': ['x', '#r#y'], 's': 'z'})
        self.assertReported(errors, '1 self referencing rule found', "'r' - #r#y")

        errors = analyzed({'r': '[if #r# == a then b]', 's': '#s.m(#s#)#'})
        self.assertReported(errors, '2 self referencing rules found')

    def test_cycles(self):
        errors = analyzed({'a': '#b#', 'b': '#c#', 'c': '#a#', 'd': '#a#'})
        self.assertReported(
            errors,
            'cyclic references were detected in the following rules:',
            'a -> b -> c -> a',
        )
        self.assertFalse(any('d ->' in err for err in errors), errors)

    def test_self_reference_is_not_a_cycle(self):
        errors = analyzed({'a': '#a#'})
        self.assertFalse(any('cyclic' in err for err in errors), errors)

    def test_tag_override(self):
        errors = analyzed({'origin': '[name:x]#name#', 'name': 'y'})
        self.assertReported(
            errors,
            "tag override in rule 'origin', creating tag 'name' overrides pre-defined rule 'name'",
        )

    def test_disabled(self):
        t = Tracery({'a': '#a#'}, Options(analyze_rules=False, log_level='none'))
        self.assertEqual(t.errors, [])

    def test_walk(self):
        nodes = parse_text('[if #a# in #b# then [t:#c.m(#d#)#] else #(x,#e#)#]')
        names = [n.name for n in walk(nodes) if isinstance(n, (Rule, Tag))]
        self.assertEqual(names, ['a', 'b', 't', 'c', 'd', 'e'])

    def test_strongly_connected(self):
        graph = {'a': {'b'}, 'b': {'a', 'c'}, 'c': set(), 'd': {'d'}}
        components = sorted(sorted(c) for c in strongly_connected(graph))
        self.assertEqual(components, [['a', 'b'], ['c'], ['d']])

    def test_deep_chain(self):
        graph = {f'r{i}': {f'r{i + 1}'} for i in range(5000)}
        graph['r5000'] = {'r0'}
        (component,) = strongly_connected(graph)
        self.assertEqual(len(component), 5001)


if __name__ == '__main__':
    unittest.main()
