import logging
import unittest

from tracery_core.util import EngineLog, init_logging, log, shorten


class TestUtil(unittest.TestCase):
    def test_library_logger_reaches_host_handlers(self):
        self.assertTrue(log.propagate)
        self.assertFalse(any(type(h) is logging.StreamHandler for h in log.handlers))

        with self.assertLogs('tracery', 'WARNING') as cm:
            EngineLog(level='warnings').warning('rule %s missing', 'x')
        self.assertEqual(cm.output, ['WARNING:tracery:rule x missing'])

    def test_init_logging(self):
        logger = logging.getLogger('tracery.test_init_logging')
        init_logging(logger)
        init_logging(logger)
        handlers = [h for h in logger.handlers if type(h) is logging.StreamHandler]
        self.assertEqual(len(handlers), 1)
        self.assertFalse(logger.propagate)

    def test_engine_log(self):
        el = EngineLog(logging.getLogger('tracery.test_engine_log'), 'none')
        el.error('bad %s', 1)
        el.warning('odd')
        el.info('fine')
        self.assertEqual(el.errors, ['bad 1', 'odd'])
        self.assertFalse(el.tracing)
        el.set_level('verbose')
        self.assertTrue(el.tracing)
        with self.assertRaises(ValueError):
            el.set_level('loud')  # type: ignore

    def test_shorten(self):
        self.assertEqual(shorten('abc'), 'abc')
        self.assertEqual(shorten('a' * 10 + 'b' * 10, 8), 'aaaa...bbbb')


if __name__ == '__main__':
    unittest.main()
