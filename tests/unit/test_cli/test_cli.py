"""Tests for CLI argument parsing and component wiring."""

from __future__ import annotations

from pydantic import SecretStr

from adroast.analyzer.anthropic import AnthropicAnalyzer
from adroast.analyzer.openai import OpenAIAnalyzer
from adroast.analyzer.proxy import ProxyAnalyzer
from adroast.capture.folder import ImageFolderSource
from adroast.capture.webcam import WebcamCapture
from adroast.cli import build_analyzer, build_loop, build_source, parse_args
from adroast.config.settings import Settings
from adroast.session.segmentation import BrandChangePolicy, DisabledSegmentation


class TestParseArgs:

    def test_watch_options(self) -> None:
        args = parse_args(["-v", "watch", "--duration", "30", "--segmentation", "signal"])
        assert args.verbose is True
        assert args.command == "watch"
        assert args.duration == 30.0
        assert args.segmentation == "signal"

    def test_no_command(self) -> None:
        assert parse_args([]).command is None


class TestWiring:

    def test_default_source_is_webcam(self) -> None:
        source = build_source(Settings())
        assert isinstance(source, WebcamCapture)
        assert source._resolution == (1280, 720)

    def test_folder_source(self, tmp_path) -> None:
        settings = Settings(capture={"source": "folder", "folder": str(tmp_path)})
        assert isinstance(build_source(settings), ImageFolderSource)

    def test_analyzer_per_provider(self) -> None:
        assert isinstance(build_analyzer(Settings()), OpenAIAnalyzer)
        assert isinstance(build_analyzer(Settings(analyzer={"provider": "proxy"})), ProxyAnalyzer)
        assert isinstance(build_analyzer(Settings(analyzer={"provider": "anthropic"})), AnthropicAnalyzer)

    def test_openrouter_key_sets_base_url(self) -> None:
        settings = Settings(openrouter_api_key=SecretStr("sk-or"))
        analyzer = build_analyzer(settings)
        assert analyzer._api_key == "sk-or"
        assert analyzer._base_url == "https://openrouter.ai/api/v1"

    def test_build_loop_uses_settings(self) -> None:
        settings = Settings(loop={"session_limit_seconds": 40, "tick_interval": 4})
        loop = build_loop(settings, build_source(settings), build_analyzer(settings))
        assert isinstance(loop.segmentation.policy, DisabledSegmentation)
        assert loop.governor.ceiling == 40

    def test_build_loop_policy_override(self) -> None:
        settings = Settings()
        loop = build_loop(settings, build_source(settings), build_analyzer(settings), "brand_change")
        assert isinstance(loop.segmentation.policy, BrandChangePolicy)
