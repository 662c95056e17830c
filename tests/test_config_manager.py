import unittest

from connPool.config_manager import validate_config


class TestConfigManager(unittest.TestCase):
    def test_defaults(self):
        config = validate_config({"target": {"host": "localhost", "port": 8080}})
        self.assertEqual(config.pool.max_connections, 5)
        self.assertIsNone(config.pool.acquire_timeout)
        self.assertEqual(config.global_config.log_level, "INFO")
        self.assertEqual(config.probe.workers, 1)

    def test_full_config(self):
        config = validate_config(
            {
                "global_config": {"log_level": "DEBUG", "log_path": "/tmp/logs"},
                "pool": {"max_connections": 3, "acquire_timeout": 2.5},
                "target": {"host": "db", "port": 5432, "connect_timeout": 1},
                "probe": {"workers": 4, "rounds": 2, "payload": "PING"},
            }
        )
        self.assertEqual(config.pool.max_connections, 3)
        self.assertEqual(config.pool.acquire_timeout, 2.5)
        self.assertEqual(config.target.connect_timeout, 1)
        self.assertEqual(config.probe.payload, "PING")

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            validate_config({"target": {"host": "h", "port": 1}, "pool": {"max_connections": 0}})

    def test_invalid_port(self):
        with self.assertRaises(ValueError):
            validate_config({"target": {"host": "h", "port": 70000}})

    def test_missing_target(self):
        with self.assertRaises(ValueError):
            validate_config({})


if __name__ == "__main__":
    unittest.main()
