import unittest

from tracery_core.selectors import PICK_FIRST
from tracery_core.tags import (
    HierarchicalTagStorage,
    TagMapping,
    UnilevelTagStorage,
    new_tag_storage,
)


def mapping(*values: str) -> TagMapping:
    return TagMapping(list(values), PICK_FIRST)


class TestTags(unittest.TestCase):
    def test_mapping(self):
        self.assertEqual(mapping('a', 'b').select(), 'a')
        self.assertIsNone(mapping().select())
        self.assertEqual(str(mapping('a', 'b')), 'a,b')

    def test_unilevel(self):
        tags = UnilevelTagStorage()
        tags.store('t', mapping('a'), 3)
        self.assertEqual(tags.get('t', 0).select(), 'a')
        tags.leave(0)
        self.assertEqual(tags.names(), {'t'})
        tags.clear()
        self.assertIsNone(tags.get('t', 3))

    def test_hierarchical_lookup(self):
        tags = HierarchicalTagStorage()
        tags.store('t', mapping('root'), 0)
        tags.store('t', mapping('inner'), 2)
        tags.store('u', mapping('u'), 2)

        self.assertEqual(tags.get('t', 0).select(), 'root')
        self.assertEqual(tags.get('t', 1).select(), 'root')
        self.assertEqual(tags.get('t', 2).select(), 'inner')
        self.assertEqual(tags.get('t', 5).select(), 'inner')
        self.assertIsNone(tags.get('u', 1))
        self.assertEqual(tags.names(), {'t', 'u'})

    def test_hierarchical_leave(self):
        tags = HierarchicalTagStorage()
        tags.store('t', mapping('root'), 0)
        tags.store('t', mapping('one'), 1)
        tags.store('t', mapping('two'), 2)

        tags.leave(1)
        self.assertEqual(tags.get('t', 2).select(), 'one')
        tags.leave(0)
        self.assertEqual(tags.get('t', 2).select(), 'root')
        tags.clear()
        self.assertEqual(tags.names(), set())

    def test_policy(self):
        self.assertIsInstance(new_tag_storage('unilevel'), UnilevelTagStorage)
        self.assertIsInstance(new_tag_storage('hierarchical'), HierarchicalTagStorage)
        with self.assertRaises(ValueError):
            new_tag_storage('flat')  # type: ignore


if __name__ == '__main__':
    unittest.main()
