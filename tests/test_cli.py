"""
Tests for the command line interface
"""

import pytest
from typer.testing import CliRunner

from panelmotion import __version__
from panelmotion.cli import app, parse_character
from panelmotion.models import Scene, Storyboard, VideoModelId

runner = CliRunner()


@pytest.fixture
def storyboard_dir(tmp_path):
    scene = Scene(
        id="scene-1",
        description="Mina stands on a rainy rooftop",
        narrative="Mina turns",
        duration=4,
        source_page_index=0,
        recommended_model=VideoModelId.KLING,
        reasoning="Keeps the raincoat consistent.",
        prompts={VideoModelId.VEO: "VEO PROMPT", VideoModelId.KLING: "KLING PROMPT"},
        is_loading=False,
    )
    Storyboard(project_name="rooftop", scenes=[scene]).save(tmp_path)
    return tmp_path


class TestCli:
    """Tests for CLI commands that do not call external services."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_parse_character(self):
        character = parse_character("Mina = yellow raincoat")
        assert character.name == "Mina"
        assert character.description == "yellow raincoat"
        assert parse_character("Joon").description is None

    def test_status(self, storyboard_dir):
        result = runner.invoke(app, ["status", "--storyboard", str(storyboard_dir)])
        assert result.exit_code == 0
        assert "rooftop" in result.stdout
        assert "scene-1" in result.stdout
        assert "Kling" in result.stdout

    def test_status_without_storyboard(self, tmp_path):
        result = runner.invoke(app, ["status", "--storyboard", str(tmp_path / "missing")])
        assert result.exit_code == 1

    def test_prompts_filtered_by_model(self, storyboard_dir):
        result = runner.invoke(
            app, ["prompts", "--storyboard", str(storyboard_dir), "--model", "kling"]
        )
        assert result.exit_code == 0
        assert "KLING PROMPT" in result.stdout
        assert "VEO PROMPT" not in result.stdout

    def test_prompts_unknown_scene(self, storyboard_dir):
        result = runner.invoke(
            app, ["prompts", "--storyboard", str(storyboard_dir), "--scene", "scene-x"]
        )
        assert result.exit_code == 1
