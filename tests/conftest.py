from __future__ import annotations

import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from kickoff.config import RunOptions, load_options  # noqa: E402
from kickoff.context import RunContext  # noqa: E402
from kickoff.tools.commands import (  # noqa: E402
    CommandResult,
    CommandRunner,
    ExternalCommandError,
    split_command,
)

MIGRATION_NAME = "db/migrate/20200101000000_enable_uuid_extensions.rb"

README_TEMPLATE = textwrap.dedent(
    """\
    # Project

    ## Setup

    ### Sidekiq
    Run Sidekiq with `bundle exec sidekiq`.
    Sidekiq needs Redis.

    ### Testing
    Run `bin/rspec`.

    Background jobs use Sidekiq in production.
    """
)

SKELETON: Dict[str, str] = {
    "Gemfile": """\
source 'https://rubygems.org'
git_source(:github) { |repo| "https://github.com/#{repo}.git" }

ruby '2.6.3'

gem 'rails', '~> 6.0.2', '>= 6.0.2.1'
gem 'pg', '>= 0.18', '< 2.0'
gem 'puma', '~> 4.1'
# Build JSON APIs with ease. Read more: https://github.com/rails/jbuilder
gem 'jbuilder', '~> 2.7'
gem 'bootsnap', '>= 1.4.2', require: false
""",
    "config/database.yml": """\
default: &default
  adapter: postgresql
  encoding: unicode
  pool: <%= ENV.fetch("RAILS_MAX_THREADS") { 5 } %>

development:
  <<: *default
  database: demo_development
""",
    "config/puma.rb": """\
max_threads_count = ENV.fetch("RAILS_MAX_THREADS") { 5 }
min_threads_count = ENV.fetch("RAILS_MIN_THREADS") { max_threads_count }
threads min_threads_count, max_threads_count

# Workers are forked webserver processes. If using threads and workers together
# the concurrency of the application would be max `threads` * `workers`.
#
# workers ENV.fetch("WEB_CONCURRENCY") { 2 }

# Use the `preload_app!` method when specifying a `workers` number.
#
# preload_app!

plugin :tmp_restart
""",
    "config/application.rb": """\
require_relative 'boot'

require 'rails/all'

Bundler.require(*Rails.groups)

module Demo
  class Application < Rails::Application
    # Initialize configuration defaults for originally generated Rails version.
    config.load_defaults 6.0
  end
end
""",
    "config/routes.rb": """\
Rails.application.routes.draw do
  # For details on the DSL available within this file, see https://guides.rubyonrails.org/routing.html
end
""",
    "app/models/application_record.rb": """\
class ApplicationRecord < ActiveRecord::Base
  self.abstract_class = true
end
""",
    "app/controllers/application_controller.rb": """\
class ApplicationController < ActionController::Base
end
""",
    "config/environments/development.rb": """\
Rails.application.configure do
  config.cache_classes = false

  if Rails.root.join('tmp', 'caching-dev.txt').exist?
    config.action_controller.perform_caching = true
  end

  config.file_watcher = ActiveSupport::EventedFileUpdateChecker
end
""",
    "config/environments/test.rb": """\
Rails.application.configure do
  config.cache_classes = false
  config.eager_load = false
end
""",
    "config/environments/production.rb": """\
Rails.application.configure do
  config.cache_classes = true
  config.log_level = :debug
  config.log_tags = [ :request_id ]
end
""",
    "package.json": """\
{
  "name": "demo",
  "private": true,
  "dependencies": {
    "@rails/webpacker": "4.2.2"
  },
  "version": "0.1.0",
  "devDependencies": {
    "webpack-dev-server": "^3.10.3"
  }
}
""",
    "app/javascript/packs/application.js": """\
require("@rails/ujs").start()
require("turbolinks").start()
require("@rails/activestorage").start()
require("channels")
""",
    "config/webpacker.yml": """\
development:
  compile: true

  dev_server:
    https: false
    host: localhost
    port: 3035
    public: localhost:3035
    hmr: false
""",
    "config/webpack/environment.js": """\
const { environment } = require('@rails/webpacker')

module.exports = environment
""",
    "app/views/layouts/application.html.erb": """\
<!DOCTYPE html>
<html>
  <head>
    <title>Demo</title>
    <%= stylesheet_link_tag 'application', media: 'all', 'data-turbolinks-track': 'reload' %>
    <%= javascript_pack_tag 'application', 'data-turbolinks-track': 'reload' %>
  </head>
  <body>
    <%= yield %>
  </body>
</html>
""",
    "README.md": """\
# README

This README would normally document whatever steps are necessary to get the
application up and running.
""",
    ".gitignore": """\
/.bundle
/log/*
/node_modules
""",
}

SPEC_HELPER = """\
RSpec.configure do |config|
  config.expect_with :rspec do |expectations|
    expectations.include_chain_clauses_in_custom_matcher_descriptions = true
  end

=begin
  config.filter_run_when_matching :focus
  config.example_status_persistence_file_path = "spec/examples.txt"
=end
end
"""

RAILS_HELPER = """\
require 'spec_helper'
ENV['RAILS_ENV'] ||= 'test'
require File.expand_path('../config/environment', __dir__)
require 'rspec/rails'
# Add additional requires below this line. Rails is not loaded until this point!

# Dir[Rails.root.join('spec', 'support', '**', '*.rb')].sort.each { |f| require f }

RSpec.configure do |config|
  config.fixture_path = "#{::Rails.root}/spec/fixtures"
  config.use_transactional_fixtures = true
end
"""

MIGRATION = """\
class EnableUuidExtensions < ActiveRecord::Migration[6.0]
  def change
  end
end
"""


class FakeRunner(CommandRunner):
    """Record commands instead of running them, simulating generator output."""

    def __init__(
        self,
        root: Path | str,
        *,
        rails_version: str = "6.0.2.1",
        ruby_version: str = "2.6.3",
        failing: Iterable[str] = (),
    ) -> None:
        super().__init__(root)
        self.rails_version = rails_version
        self.ruby_version = ruby_version
        self.failing = tuple(failing)
        self.commands: List[tuple[str, ...]] = []

    @property
    def command_lines(self) -> List[str]:
        return [" ".join(command) for command in self.commands]

    def ran(self, line: str) -> bool:
        return line in self.command_lines

    def run(self, command: str | Sequence[str], *, capture: bool = False) -> CommandResult:
        args = tuple(split_command(command))
        self.commands.append(args)
        line = " ".join(args)
        if any(line.startswith(prefix) for prefix in self.failing):
            raise ExternalCommandError(f"`{line}` exited with status 1", command=args, returncode=1)
        return CommandResult(command=args, returncode=0, stdout=self._simulate(line))

    def _write(self, relative: str, content: str) -> None:
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def _simulate(self, line: str) -> str:
        if line == "rails --version":
            return f"Rails {self.rails_version}\n"
        if line == "ruby --version":
            return f"ruby {self.ruby_version}p62 (2019-04-16 revision 67580) [x86_64-linux]\n"
        if line == "bundle install":
            self._write("Gemfile.lock", "GEM\n  remote: https://rubygems.org/\n")
        elif line.endswith("generate migration enable_uuid_extensions"):
            self._write(MIGRATION_NAME, MIGRATION)
        elif line.endswith("generate rspec:install"):
            self._write("spec/spec_helper.rb", SPEC_HELPER)
            self._write("spec/rails_helper.rb", RAILS_HELPER)
            self._write(".rspec", "--require spec_helper\n")
        elif line.startswith("erb2slim"):
            for erb in sorted((self.root / "app" / "views").rglob("*.erb")):
                slim = erb.with_suffix(".slim")
                content = erb.read_text(encoding="utf-8").replace("<%= ", "= ").replace(" %>", "")
                slim.write_text(content, encoding="utf-8")
                erb.unlink()
        elif line.endswith("db:create db:migrate"):
            self._write("db/schema.rb", "ActiveRecord::Schema.define(version: 2020_01_01_000000) do\nend\n")
        return ""


@dataclass(slots=True)
class ScriptedResolver:
    """Answer questions from a table, falling back to ``default``."""

    answers: Mapping[str, bool] = field(default_factory=dict)
    default: bool = True
    asked: List[str] = field(default_factory=list)

    def ask_yes_no(self, question: str) -> bool:
        self.asked.append(question)
        return self.answers.get(question, self.default)


@dataclass(slots=True)
class RailsApp:
    """Freshly generated application tree used as the template target."""

    root: Path
    template_repository: str

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def options(self, **overrides: object) -> RunOptions:
        overrides.setdefault("template_repository", self.template_repository)
        return load_options(self.root, environ={}, **overrides)

    def context(
        self,
        *,
        runner: CommandRunner | None = None,
        resolver: object | None = None,
        **overrides: object,
    ) -> RunContext:
        overrides.setdefault("use_git", False)
        return RunContext.create(
            self.options(**overrides),
            runner=runner or FakeRunner(self.root),
            resolver=resolver or ScriptedResolver(),
        )


@pytest.fixture()
def rails_app(tmp_path: Path) -> RailsApp:
    """Create the file layout ``rails new`` leaves behind, without git."""

    root = tmp_path / "demo"
    for relative, content in SKELETON.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    template_repo = tmp_path / "template-repo"
    (template_repo / "templates").mkdir(parents=True)
    (template_repo / "templates" / "README.md").write_text(README_TEMPLATE, encoding="utf-8")

    return RailsApp(root=root.resolve(), template_repository=template_repo.resolve().as_uri())
