from __future__ import annotations

from pathlib import Path

import pytest

from kickoff.tools.manifest import GemfileManifest, format_declaration
from kickoff.tools.mutator import TextMutator


@pytest.fixture()
def gemfile(tmp_path: Path) -> GemfileManifest:
    (tmp_path / "Gemfile").write_text(
        "source 'https://rubygems.org'\n\ngem 'rails', '~> 6.0.2'\ngem 'jbuilder', '~> 2.7'\n",
        encoding="utf-8",
    )
    return GemfileManifest(TextMutator(tmp_path))


def _content(manifest: GemfileManifest) -> str:
    return manifest.mutator.read("Gemfile")


def test_format_declaration_quotes_requirements_and_comment() -> None:
    assert format_declaration("discard", "~> 1.0", comment="soft delete") == "gem 'discard', '~> 1.0' # soft delete"
    assert format_declaration("oj") == "gem 'oj'"


def test_add_appends_once(gemfile: GemfileManifest) -> None:
    assert gemfile.add("jb", comment="jbuilder alternative") is True
    assert gemfile.add("discard", "~> 1.0") is True
    assert gemfile.add("jb") is False

    content = _content(gemfile)
    assert content.endswith("gem 'jb' # jbuilder alternative\ngem 'discard', '~> 1.0'\n")
    assert gemfile.declared("jb")
    assert gemfile.declared("jbuilder")
    assert not gemfile.declared("sidekiq")


def test_group_collects_indented_declarations(gemfile: GemfileManifest) -> None:
    with gemfile.group("development", "test"):
        gemfile.add("rspec-rails")
        gemfile.add("factory_bot_rails")
        gemfile.add("rspec-rails")

    assert _content(gemfile).endswith(
        "\ngroup :development, :test do\n  gem 'rspec-rails'\n  gem 'factory_bot_rails'\nend\n"
    )
    assert gemfile.declared("factory_bot_rails")


def test_group_discards_declarations_when_the_block_fails(gemfile: GemfileManifest) -> None:
    before = _content(gemfile)

    with pytest.raises(KeyError):
        with gemfile.group("test"):
            gemfile.add("capybara")
            raise KeyError("boom")

    assert _content(gemfile) == before
    with gemfile.group("production"):
        gemfile.add("rack-timeout")
    assert "group :production do\n  gem 'rack-timeout'\nend\n" in _content(gemfile)


def test_groups_cannot_nest_or_be_empty(gemfile: GemfileManifest) -> None:
    with pytest.raises(ValueError):
        with gemfile.group():
            pass

    with pytest.raises(RuntimeError):
        with gemfile.group("development"):
            with gemfile.group("test"):
                pass


def test_remove_comments_out_the_declaration(gemfile: GemfileManifest) -> None:
    assert gemfile.remove("jbuilder") == 1
    assert "# gem 'jbuilder', '~> 2.7'\n" in _content(gemfile)
    assert not gemfile.declared("jbuilder")
    assert gemfile.remove("jbuilder") == 0
