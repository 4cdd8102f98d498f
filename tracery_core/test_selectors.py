import random
import unittest
from collections import Counter

from tracery_core.nodes import Text, ValueCandidate, Weight
from tracery_core.selectors import (
    PICK_FIRST,
    PickFirst,
    Selector,
    UniformSelector,
    WeightedCandidateSet,
    WeightedSelector,
    selector_for,
)
from tracery_core.rules import CandidateProvider


class TestSelectors(unittest.TestCase):
    def test_pick_first(self):
        self.assertEqual(PickFirst().pick(5), 0)
        self.assertIsInstance(PICK_FIRST, Selector)

    def test_uniform_bag(self):
        s = UniformSelector(5, random.Random(1))
        for _ in range(4):
            self.assertEqual(sorted(s.pick(5) for _ in range(5)), [0, 1, 2, 3, 4])

    def test_uniform_count_change(self):
        s = UniformSelector(2, random.Random(1))
        s.pick(2)
        self.assertEqual(sorted(s.pick(3) for _ in range(3)), [0, 1, 2])

    def test_weighted(self):
        s = WeightedSelector([0, 3, 0, 1], random.Random(2))
        picks = Counter(s.pick(4) for _ in range(1000))
        self.assertEqual(set(picks), {1, 3})
        self.assertGreater(picks[1], picks[3])

    def test_weighted_frequencies(self):
        s = WeightedSelector([1, 3], random.Random(5))
        picks = Counter(s.pick(2) for _ in range(8000))
        self.assertAlmostEqual(picks[0] / 8000, 0.25, delta=0.03)
        self.assertAlmostEqual(picks[1] / 8000, 0.75, delta=0.03)

        s = WeightedSelector([2, 0, 5, 3], random.Random(6))
        picks = Counter(s.pick(4) for _ in range(10000))
        for i, w in enumerate((2, 0, 5, 3)):
            self.assertAlmostEqual(picks[i] / 10000, w / 10, delta=0.03)

    def test_weighted_all_zero(self):
        s = WeightedSelector([0, 0], random.Random(3))
        self.assertEqual({s.pick(2) for _ in range(100)}, {0, 1})

    def test_negative_weights_count_as_zero(self):
        s = WeightedSelector([-5, 1])
        self.assertEqual(s.weights, (0, 1))
        self.assertEqual({s.pick(2) for _ in range(50)}, {1})

    def test_selector_for(self):
        plain = ValueCandidate((Text('a'),))
        heavy = ValueCandidate((Text('b'), Weight(4)))
        self.assertIs(selector_for([plain]), PICK_FIRST)
        self.assertIsInstance(selector_for([plain, plain]), UniformSelector)
        s = selector_for([plain, heavy])
        assert isinstance(s, WeightedSelector)
        self.assertEqual(s.weights, (1, 4))

    def test_weighted_candidate_set(self):
        c = WeightedCandidateSet({'x': 1, 'y': 0}, random.Random(4))
        self.assertIsInstance(c, CandidateProvider)
        self.assertIsInstance(c, Selector)
        self.assertEqual(c.candidates, ['x', 'y'])
        self.assertEqual({c.pick(2) for _ in range(20)}, {0})
        self.assertEqual(repr(c), "WeightedCandidateSet({'x': 1, 'y': 0})")


if __name__ == '__main__':
    unittest.main()
