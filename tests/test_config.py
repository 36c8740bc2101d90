import unittest

from exabeam_mcp.config import ExabeamConfig, ServerSettings
from exabeam_mcp.errors import ConfigError

FULL_ENV = {
    "EXABEAM_URL": "https://example.exabeam.cloud",
    "EXABEAM_API_KEY": "key",
    "EXABEAM_API_SECRET": "secret",
}


class TestExabeamConfig(unittest.TestCase):

    def test_from_env(self):
        config = ExabeamConfig.from_env(FULL_ENV)

        self.assertEqual(config.base_url, "https://example.exabeam.cloud")
        self.assertEqual(config.api_key, "key")
        self.assertEqual(config.api_secret, "secret")

    def test_missing_url(self):
        env = dict(FULL_ENV, EXABEAM_URL="")

        with self.assertRaises(ConfigError) as ctx:
            ExabeamConfig.from_env(env)

        self.assertEqual(str(ctx.exception), "EXABEAM_URL environment variable is required")

    def test_missing_key_or_secret(self):
        for missing in ("EXABEAM_API_KEY", "EXABEAM_API_SECRET"):
            env = {k: v for k, v in FULL_ENV.items() if k != missing}

            with self.assertRaises(ConfigError) as ctx:
                ExabeamConfig.from_env(env)

            self.assertEqual(
                str(ctx.exception),
                "Both EXABEAM_API_KEY and EXABEAM_API_SECRET environment variables are required",
            )

    def test_url_checked_first(self):
        with self.assertRaises(ConfigError) as ctx:
            ExabeamConfig.from_env({})

        self.assertIn("EXABEAM_URL", str(ctx.exception))

    def test_immutable(self):
        config = ExabeamConfig.from_env(FULL_ENV)

        with self.assertRaises(AttributeError):
            config.api_key = "other"


class TestServerSettings(unittest.TestCase):

    def test_defaults(self):
        settings = ServerSettings.from_env({})

        self.assertEqual(settings.transport, "stdio")
        self.assertEqual(settings.host, "0.0.0.0")
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.log_level, "INFO")

    def test_overrides(self):
        settings = ServerSettings.from_env({
            "EXABEAM_MCP_TRANSPORT": "HTTP",
            "EXABEAM_MCP_HOST": "127.0.0.1",
            "EXABEAM_MCP_PORT": "8080",
            "EXABEAM_MCP_LOG_LEVEL": "debug",
        })

        self.assertEqual(settings.transport, "http")
        self.assertEqual(settings.host, "127.0.0.1")
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_invalid_values(self):
        for env in (
            {"EXABEAM_MCP_TRANSPORT": "carrier-pigeon"},
            {"EXABEAM_MCP_PORT": "ninety"},
            {"EXABEAM_MCP_LOG_LEVEL": "loud"},
        ):
            with self.assertRaises(ConfigError):
                ServerSettings.from_env(env)


if __name__ == '__main__':
    unittest.main()
