"""Template steps applied, in order, to a freshly generated Rails application.

Each step receives the :class:`~kickoff.context.RunContext`. Work that needs
the installed bundle is registered with ``context.after_install`` and runs
once the install phase has finished.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Tuple

from kickoff.context import RunContext
from kickoff.structured import MutationStep
from kickoff.tools.remote import fetch_text

from . import templates

LOGGER = logging.getLogger(__name__)

PipelineStep = Callable[[RunContext], None]

SIDEKIQ_QUESTION = "Do you want to setup Sidekiq?"
BOOTSTRAP_QUESTION = "Configure Simpleform to use bootstrap?"


def setup_sidekiq(context: RunContext) -> None:
    if not context.resolve_flag("using_sidekiq", SIDEKIQ_QUESTION):
        return

    context.gemfile.add("sidekiq")

    @context.after_install("setup_sidekiq")
    def _configure() -> None:
        mutator = context.mutator
        mutator.insert_after(
            "config/application.rb",
            "class Application < Rails::Application\n",
            templates.SIDEKIQ_QUEUE_ADAPTER,
        )
        mutator.append_file("Procfile", templates.SIDEKIQ_PROCFILE_WORKER)
        mutator.insert_after("config/routes.rb", templates.ROUTES_ANCHOR, templates.SIDEKIQ_ROUTES)
        context.checkpoint("Setup Sidekiq")


def add_gems(context: RunContext) -> None:
    gemfile = context.gemfile
    gemfile.remove("jbuilder")

    for name, requirements, comment in templates.RUNTIME_GEMS:
        gemfile.add(name, *requirements, comment=comment)

    for environments, gems in templates.GEM_GROUPS:
        with gemfile.group(*environments):
            for name, comment in gems:
                gemfile.add(name, comment=comment)

    context.checkpoint("Add custom gems")


def main_config_files(context: RunContext) -> None:
    mutator = context.mutator
    mutator.insert_after("config/database.yml", "default: &default\n", templates.DATABASE_POOL_SETTINGS)

    mutator.uncomment_lines("config/puma.rb", "workers ENV.fetch")
    mutator.uncomment_lines("config/puma.rb", re.compile(r"preload_app!$"))

    mutator.create_file("Procfile", templates.PROCFILE)
    mutator.create_file(".editorconfig", templates.EDITORCONFIG)
    mutator.append_file(".gitignore", templates.GITIGNORE_ADDITIONS)
    mutator.create_file(".env", templates.DOTENV)

    context.checkpoint("Setup config files")


def heroku_ci_file(context: RunContext) -> None:
    context.mutator.create_file("app.json", templates.APP_JSON)
    context.mutator.create_file("lib/tasks/scheduler.rake", templates.SCHEDULER_RAKE)
    context.checkpoint("Add Heroku CI and scheduler files")


def enable_uuid_extensions(context: RunContext) -> None:
    mutator = context.mutator
    context.rails("generate", "migration", "enable_uuid_extensions")

    # The generator prefixes the file name with a timestamp.
    migration = mutator.find_one("db/migrate/*enable_uuid_extensions.rb")
    mutator.insert_after(migration, re.compile(r"def change\n"), templates.UUID_EXTENSIONS)
    mutator.inject_into_class(
        "app/models/application_record.rb",
        "ApplicationRecord",
        templates.IMPLICIT_ORDER_COLUMN,
    )
    context.checkpoint("Enable UUID extensions")


def setup_testing(context: RunContext) -> None:
    @context.after_install("setup_testing")
    def _install() -> None:
        mutator = context.mutator
        context.rails("generate", "rspec:install")
        context.run(["bundle", "binstubs", "rspec-core"])
        context.checkpoint("RSpec install")

        mutator.create_file("spec/support/chromedriver.rb", templates.CHROMEDRIVER_SUPPORT)
        mutator.create_file("spec/support/shoulda_matchers.rb", templates.SHOULDA_MATCHERS_SUPPORT)
        mutator.create_file("spec/lint_spec.rb", templates.LINT_SPEC)

        mutator.uncomment_lines("spec/rails_helper.rb", templates.SUPPORT_FILES_LOADER)
        mutator.replace("spec/spec_helper.rb", "=begin\n", "")
        mutator.replace("spec/spec_helper.rb", "=end\n", "")
        mutator.comment_lines("spec/rails_helper.rb", "config.fixture_path =")

        mutator.insert_after(
            "spec/rails_helper.rb", templates.RSPEC_CONFIGURE_ANCHOR, templates.FACTORY_BOT_SYNTAX
        )
        mutator.insert_after(
            "spec/rails_helper.rb", templates.ADDITIONAL_REQUIRES_ANCHOR, templates.CAPYBARA_REQUIRE
        )
        context.checkpoint("Finish setting up testing")


def setup_slim(context: RunContext) -> None:
    @context.after_install("setup_slim")
    def _convert() -> None:
        context.run("gem install html2slim --no-document")
        context.run("erb2slim app/views/ -d")
        context.run("gem uninstall html2slim -x")
        context.checkpoint("Use Slim")


def enable_discard(context: RunContext) -> None:
    context.mutator.create_file("config/initializers/timestamp_changes.rb", templates.TIMESTAMP_CHANGES)
    context.checkpoint("Add discarded_at to default timestamps")


def setup_oj(context: RunContext) -> None:
    context.mutator.create_file("config/initializers/oj.rb", templates.OJ_INITIALIZER)
    context.checkpoint("Setup Oj")


def setup_newrelic(context: RunContext) -> None:
    mutator = context.mutator
    mutator.inject_into_class(
        "app/controllers/application_controller.rb",
        "ApplicationController",
        templates.NEW_RELIC_CONTROLLER_HOOK,
    )
    mutator.create_file("config/newrelic.yml", templates.new_relic_config(context.options.app_name))
    context.checkpoint("Setup Newrelic")


ENVIRONMENT_CHANGES: Tuple[Tuple[str, Tuple[MutationStep, ...]], ...] = (
    (
        "Configure Bullet in development & console permissions",
        (
            MutationStep(
                kind="insert-before",
                path="config/environments/development.rb",
                anchor=templates.ENVIRONMENT_END,
                text=templates.BULLET_CONFIG,
            ),
        ),
    ),
    (
        "Sendgrid email setup",
        (
            MutationStep(
                kind="insert-before",
                path="config/environments/development.rb",
                anchor=templates.ENVIRONMENT_END,
                text=templates.SENDGRID_CONFIG,
            ),
        ),
    ),
    (
        "Whitelist console permissions",
        (
            MutationStep(
                kind="insert-before",
                path="config/environments/development.rb",
                anchor=templates.ENVIRONMENT_END,
                text=templates.DEVELOPMENT_HOSTS,
            ),
        ),
    ),
    (
        "Make :info the default log_level in production",
        (
            MutationStep(
                kind="replace",
                path="config/environments/production.rb",
                pattern=templates.PRODUCTION_LOG_LEVEL,
                replacement=templates.PRODUCTION_LOG_LEVEL_FROM_ENV,
            ),
        ),
    ),
    (
        "Raise an error when unpermitted parameters in development",
        tuple(
            MutationStep(
                kind="insert-before",
                path=f"config/environments/{env}.rb",
                anchor=templates.ENVIRONMENT_END,
                text=templates.UNPERMITTED_PARAMETERS,
            )
            for env in ("development", "test")
        ),
    ),
)


def setup_environments(context: RunContext) -> None:
    for message, mutations in ENVIRONMENT_CHANGES:
        for mutation in mutations:
            context.mutator.apply(mutation)
        context.checkpoint(message)


def setup_generators(context: RunContext) -> None:
    context.mutator.create_file("config/initializers/generators.rb", templates.GENERATORS_INITIALIZER)
    context.checkpoint("Configured generators (UUIDs, less files)")


def setup_readme(context: RunContext) -> None:
    mutator = context.mutator
    readme = fetch_text(context.options.readme_url)
    mutator.remove_file("README.md")
    mutator.create_file("README.md", readme)

    if not context.options.using_sidekiq:
        mutator.replace("README.md", templates.README_SIDEKIQ_SECTION, "###")
        mutator.replace("README.md", templates.README_SIDEKIQ_LINES, "", count=0)

    context.checkpoint("Add README")


def setup_simple_form(context: RunContext) -> None:
    @context.after_install("setup_simple_form")
    def _install() -> None:
        mutator = context.mutator
        if context.resolve_flag("use_bootstrap", BOOTSTRAP_QUESTION):
            context.rails("generate", "simple_form:install", "--bootstrap")
            context.run("yarn add bootstrap --save")
            mutator.create_file("app/javascript/stylesheets/application.scss", templates.BOOTSTRAP_STYLESHEET)
            mutator.append_file("app/javascript/packs/application.js", templates.BOOTSTRAP_PACK_IMPORT)
            mutator.replace(
                "app/views/layouts/application.html.slim",
                "stylesheet_link_tag",
                "stylesheet_pack_tag",
                count=0,
            )
        else:
            context.rails("generate", "simple_form:install")

        context.run("yarn add resolve-url-loader --save")
        mutator.insert_before(
            "config/webpack/environment.js",
            re.compile(r"^module\.exports", re.MULTILINE),
            templates.RESOLVE_URL_LOADER,
        )
        context.checkpoint("Initialized simpleform")


def setup_pghero_annotate_and_blazer(context: RunContext) -> None:
    context.rails("generate", "pghero:query_stats")
    context.rails("generate", "pghero:space_stats")
    context.rails("generate", "annotate:install")
    context.rails("generate", "blazer:install")
    context.mutator.insert_after("config/routes.rb", templates.ROUTES_ANCHOR, templates.ENGINE_MOUNTS)
    context.checkpoint("Setup PgHero, annotate and Blazer")


def setup_commit_hooks(context: RunContext) -> None:
    @context.after_install("setup_commit_hooks")
    def _install() -> None:
        context.mutator.insert_before(
            "package.json", templates.PACKAGE_DEPENDENCIES_ANCHOR, templates.HUSKY_CONFIG
        )
        context.run("yarn add --dev husky npm-run-all")
        context.checkpoint("Install Husky")


WEBPACKER_CHANGES = (
    MutationStep(
        kind="replace",
        path="config/webpacker.yml",
        pattern=templates.WEBPACKER_DEV_SERVER_HOST,
        replacement="0.0.0.0",
        count=0,
    ),
    MutationStep(
        kind="replace",
        path="config/webpacker.yml",
        pattern=templates.WEBPACKER_HMR,
        replacement="hmr: true",
        count=0,
    ),
)

DISABLE_CHANNELS = MutationStep(
    kind="replace",
    path="app/javascript/packs/application.js",
    pattern=templates.CHANNELS_REQUIRE,
    replacement='// require("channels")',
)


def setup_linters(context: RunContext) -> None:
    @context.after_install("setup_linters")
    def _install() -> None:
        mutator = context.mutator
        mutator.create_file(".eslintrc.yml", templates.ESLINTRC)
        mutator.create_file(".rubocop.yml", templates.RUBOCOP)
        mutator.create_file(".stylelintrc", templates.STYLELINTRC)
        mutator.insert_before("package.json", templates.PACKAGE_DEPENDENCIES_ANCHOR, templates.PACKAGE_SCRIPTS)

        context.run("yarn add typescript")
        context.run(["yarn", "add", "--dev", *templates.LINT_DEV_DEPENDENCIES])
        context.checkpoint("Setup styleguide and linters")

        for mutation in WEBPACKER_CHANGES:
            mutator.apply(mutation)
        context.checkpoint("cleanup webpacker.yml")

        mutator.apply(DISABLE_CHANNELS)
        context.run("yarn validate")
        context.checkpoint("automatically format code with linters")


def create_database(context: RunContext) -> None:
    @context.after_install("create_database")
    def _create() -> None:
        context.rails("db:create", "db:migrate")
        context.checkpoint("Create and migrate database")


def generate_tmp_dirs(context: RunContext) -> None:
    # `heroku local` fails to write tmp/pids/server.pid without it
    context.mutator.empty_directory("tmp/pids")
    context.checkpoint("Add tmp/pids")


def output_final_instructions(context: RunContext) -> None:
    @context.after_install("output_final_instructions")
    def _say() -> None:
        context.say(templates.FINAL_INSTRUCTIONS)


DEFAULT_STEPS: Tuple[PipelineStep, ...] = (
    setup_sidekiq,
    add_gems,
    main_config_files,
    heroku_ci_file,
    enable_uuid_extensions,
    setup_testing,
    setup_slim,
    enable_discard,
    setup_oj,
    setup_newrelic,
    setup_environments,
    setup_generators,
    setup_readme,
    setup_simple_form,
    setup_pghero_annotate_and_blazer,
    setup_commit_hooks,
    setup_linters,
    create_database,
    generate_tmp_dirs,
    output_final_instructions,
)


__all__ = ["DEFAULT_STEPS", "ENVIRONMENT_CHANGES", "PipelineStep"]
