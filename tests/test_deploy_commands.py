from __future__ import annotations

import io
import os
import unittest
from contextlib import redirect_stdout
from types import SimpleNamespace
from unittest import mock

try:
    from scripts.deploy_commands import error_hint
    from scripts.deploy_commands import main
    from scripts.deploy_commands import parse_guild_arg
except ModuleNotFoundError:
    parse_guild_arg = None


@unittest.skipIf(parse_guild_arg is None, "discord.py not installed")
class DeployArgumentTests(unittest.TestCase):
    def test_guild_argument(self):
        self.assertIsNone(parse_guild_arg(["deploy"]))
        self.assertIsNone(parse_guild_arg(["deploy", "  "]))
        self.assertEqual(parse_guild_arg(["deploy", "123456789012345678"]), 123456789012345678)
        with self.assertRaises(ValueError):
            parse_guild_arg(["deploy", "my-server"])

    def test_error_hints(self):
        self.assertIn("applications.commands", error_hint(SimpleNamespace(code=50001)))
        self.assertIn("guild id", error_hint(SimpleNamespace(code=10004)))
        self.assertIsNone(error_hint(SimpleNamespace(code=1)))
        self.assertIsNone(error_hint(ValueError("x")))

    def test_missing_token_fails_fast(self):
        buf = io.StringIO()
        with mock.patch.dict(os.environ, {"DISCORD_TOKEN": ""}), redirect_stdout(buf):
            self.assertEqual(main(["deploy"]), 1)
        self.assertIn("Missing DISCORD_TOKEN", buf.getvalue())

    def test_bad_guild_id_fails_before_connecting(self):
        buf = io.StringIO()
        with mock.patch.dict(os.environ, {"DISCORD_TOKEN": "abc"}), redirect_stdout(buf):
            with mock.patch("scripts.deploy_commands.deploy") as deploy:
                self.assertEqual(main(["deploy", "nope"]), 1)
        deploy.assert_not_called()
        self.assertIn("must be numeric", buf.getvalue())


if __name__ == "__main__":
    unittest.main()
