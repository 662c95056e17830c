import logging
import unittest
from unittest.mock import patch, MagicMock

from connPool.logging_manager import setup_logging


class TestLoggingManager(unittest.TestCase):

    @patch('connPool.logging_manager.structlog.configure')
    @patch('os.makedirs')
    @patch('connPool.logging_manager.RotatingFileHandler')
    @patch('logging.getLogger')
    def test_setup_logging(self, mock_get_logger, mock_rotating_file_handler, mock_makedirs, mock_configure):
        """
        Test that logging is set up correctly.
        """
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger
        mock_rotating_file_handler.return_value = MagicMock()

        setup_logging("/fake/log/path", "INFO")

        mock_makedirs.assert_called_once_with("/fake/log/path", exist_ok=True)
        mock_rotating_file_handler.assert_any_call(
            "/fake/log/path/connpool.log", maxBytes=10 * 1024 * 1024, backupCount=5
        )
        mock_rotating_file_handler.assert_any_call(
            "/fake/log/path/connpool.err", maxBytes=10 * 1024 * 1024, backupCount=5
        )
        mock_logger.setLevel.assert_called_once_with("INFO")
        mock_rotating_file_handler.return_value.setLevel.assert_any_call(logging.ERROR)

        # Main log handler, error log handler and console handler
        self.assertEqual(mock_logger.addHandler.call_count, 3)
        console = mock_logger.addHandler.call_args_list[2].args[0]
        self.assertIsInstance(console, logging.StreamHandler)

        mock_configure.assert_called_once()
        self.assertTrue(mock_configure.call_args.kwargs["cache_logger_on_first_use"])


if __name__ == '__main__':
    unittest.main()
