from __future__ import annotations

import pytest

from kitchen_screen import config
from kitchen_screen.main import build_parser, run_composer, run_screen, run_server


class TestParser:
    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])
        assert args.func is run_server
        assert args.port == config.PORT
        assert args.verbose is False

    def test_screen_url(self):
        args = build_parser().parse_args(["screen", "--url", "http://kitchen:3000"])
        assert args.func is run_screen
        assert args.url == "http://kitchen:3000"

    def test_composer_user(self):
        args = build_parser().parse_args(["-v", "composer", "--user", "chef", "--port", "8080"])
        assert args.func is run_composer
        assert args.user == "chef"
        assert args.port == 8080
        assert args.verbose is True

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
