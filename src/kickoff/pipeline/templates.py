"""File bodies and code fragments written into the generated application."""

from __future__ import annotations

import re

# ------------------------------------------------------------------ gems
RUNTIME_GEMS: tuple[tuple[str, tuple[str, ...], str | None], ...] = (
    ("slim-rails", (), None),
    ("simple_form", (), None),
    ("jb", (), "jbuilder alternative https://github.com/amatsuda/jb"),
    ("discard", ("~> 1.0",), "soft delete"),
    ("oj", (), "fast json - see oj.rb in initializers"),
    ("goldiloader", (), None),
    ("enum_help", (), "only needed if you're using rails views & enums"),
    ("blazer", (), "https://github.com/ankane/blazer"),
    ("pghero", (), "https://github.com/ankane/pghero/blob/master/guides/Rails.md"),
    ("sendgrid-actionmailer", (), "email"),
)

GEM_GROUPS: tuple[tuple[tuple[str, ...], tuple[tuple[str, str | None], ...]], ...] = (
    (("production",), (("rack-timeout", None),)),
    (
        ("development", "test"),
        (("rspec-rails", None), ("factory_bot_rails", None), ("dotenv-rails", None)),
    ),
    (
        ("development",),
        (
            ("bullet", None),
            ("brakeman", "static security scanner"),
            ("bundler-audit", "security issues"),
            ("bundler-leak", "memory issues"),
            ("annotate", None),
        ),
    ),
    (
        ("test",),
        (("capybara", None), ("capybara-selenium", None), ("shoulda-matchers", None)),
    ),
)

# ---------------------------------------------------------------- config
DATABASE_POOL_SETTINGS = """\
  reaping_frequency: <%= ENV["DB_REAP_FREQ"] || 10 %> # https://devcenter.heroku.com/articles/concurrency-and-database-connections#bad-connections
  connect_timeout: 1 # raises PG::ConnectionBad
  checkout_timeout: 1 # raises ActiveRecord::ConnectionTimeoutError
  variables:
    statement_timeout: 10000 # manually override on a per-query basis
"""

PROCFILE = """\
web: bundle exec puma -C config/puma.rb
release: bundle exec rake db:migrate
"""

SIDEKIQ_PROCFILE_WORKER = (
    "worker: RAILS_MAX_THREADS=${SIDEKIQ_CONCURRENCY:-25} bundle exec sidekiq -t 25 -q default -q mailers\n"
)

SIDEKIQ_QUEUE_ADAPTER = "    config.active_job.queue_adapter = :sidekiq\n\n"

SIDEKIQ_ROUTES = '    require "sidekiq/web"\n    mount Sidekiq::Web => "/sidekiq"\n\n'

EDITORCONFIG = """\
# This file is for unifying the coding style for different editors and IDEs
# editorconfig.org

root = true

[*]
charset = utf-8
trim_trailing_whitespace = true
insert_final_newline = true
indent_style = space
indent_size = 2
end_of_line = lf
"""

GITIGNORE_ADDITIONS = """\

spec/examples.txt

.env.development.local
.env.local
.env.test.local

/.idea/
/package-lock.json
"""

DOTENV = """\
WEB_CONCURRENCY=1 # set to 1 in dev most of the time for easy testing
SEND_EMAIL=false # change to true to send email via sendgrid
"""

# ---------------------------------------------------------------- heroku
APP_JSON = """\
{
  "environments": {
    "test": {
      "addons": ["heroku-redis:hobby-dev", "heroku-postgresql:in-dyno"],
      "env": {
        "RAILS_ENV": "test",
        "DISABLE_SPRING": "true",
        "CAPYBARA_WAIT_TIME": "10"
      },
      "scripts": {
        "test-setup": "bundle exec rails assets:precompile",
        "test": "yarn test:suite",
        "brakeman": "bundle exec brakeman -w2 --exit-on-warn",
        "bundle-audit": "bundle exec bundle audit check --update --ignore CVE-2015-9284",
        "bundle-leak": "bundle exec bundle leak check --update"
      },
      "formation": {
        "test": {
          "quantity": 1
        }
      },
      "buildpacks": [
        { "url": "heroku/nodejs" },
        { "url": "heroku/ruby" },
        { "url": "https://github.com/heroku/heroku-buildpack-google-chrome" },
        { "url": "https://github.com/heroku/heroku-buildpack-chromedriver" }
      ]
    }
  }
}
"""

SCHEDULER_RAKE = """\
# frozen_string_literal: true

desc 'This task is called by the Heroku scheduler add-on'

task db_maintenance: :environment do
  start_time = Time.zone.now
  PgHero.capture_space_stats
  PgHero.clean_query_stats

  # https://www.postgresql.org/docs/9.4/static/routine-vacuuming.html#VACUUM-FOR-SPACE-RECOVERY
  ActiveRecord::Base.connection.execute('vacuum analyze') unless Rails.env.test? # can't run vacuum inside of a transaction block

  # reindex needs a table lock, so it stays disabled until it becomes a problem.
  # https://www.postgresql.org/docs/9.4/static/sql-reindex.html
  # ActiveRecord::Base.connection.execute("reindex database #{ActiveRecord::Base.connection.current_database}")

  puts "runtime of #{(Time.zone.now - start_time).to_i}"
end
"""

# ------------------------------------------------------------------ uuid
UUID_EXTENSIONS = """\
    enable_extension "uuid-ossp"
    enable_extension "pgcrypto"
"""

IMPLICIT_ORDER_COLUMN = (
    "  self.implicit_order_column = 'created_at' # used in place of uuid column since it isn't numeric\n"
)

# --------------------------------------------------------------- testing
CHROMEDRIVER_SUPPORT = """\
require 'selenium/webdriver'

Capybara.register_driver :chrome do |app|
  Capybara::Selenium::Driver.new(app, browser: :chrome)
end

Capybara.register_driver :headless_chrome do |app|
  capabilities = Selenium::WebDriver::Remote::Capabilities.chrome(
    chromeOptions: { args: %w[headless disable-gpu] }
  )

  Capybara::Selenium::Driver.new(
    app,
    browser: :chrome,
    desired_capabilities: capabilities
  )
end

Capybara.javascript_driver = :headless_chrome
"""

SHOULDA_MATCHERS_SUPPORT = """\
Shoulda::Matchers.configure do |config|
  config.integrate do |with|
    with.test_framework :rspec
    with.library :rails
  end
end
"""

LINT_SPEC = """\
# consider switching to rake task in the future: https://github.com/thoughtbot/factory_bot/blob/master/GETTING_STARTED.md#linting-factories
require 'rails_helper'
RSpec.describe "Factories" do
  it 'lints successfully' do
    FactoryBot.lint
  end
end
"""

SUPPORT_FILES_LOADER = re.compile(r"Dir\[Rails\.root\.join")
RSPEC_CONFIGURE_ANCHOR = "RSpec.configure do |config|\n"
FACTORY_BOT_SYNTAX = "  config.include FactoryBot::Syntax::Methods\n\n"
ADDITIONAL_REQUIRES_ANCHOR = "Add additional requires below this line. Rails is not loaded until this point!\n"
CAPYBARA_REQUIRE = 'require "capybara/rails"\n'

# ---------------------------------------------------------- initializers
TIMESTAMP_CHANGES = """\
# frozen_string_literal: true

# http://millarian.com/rails/migration-timestamps-with-deleted_at-magic-field/ plus
# http://stackoverflow.com/questions/20956526/rails-migration-generates-default-timestamps-created-at-updated-at-as-nullabl
# Force t.timestamps to always be null: false & add discarded_at to default timestamps for tables
module ActiveRecord
  module ConnectionAdapters
    module TimeStampChanges
      def timestamps(*args)
        options = args.extract_options!
        options[:null] = false
        super(*args, options)
        column(:discarded_at, :datetime) # Adds a discarded_at column when timestamps is called from a migration.
      end
    end
    TableDefinition.send(:prepend, TimeStampChanges)
  end
end
"""

OJ_INITIALIZER = """\
# frozen_string_literal: true

# https://github.com/ohler55/oj/blob/57d4465bef8138fd4d83b239b77b1ef8883a4429/pages/Rails.md

require 'oj'
Oj.optimize_rails
"""

GENERATORS_INITIALIZER = """\
Rails.application.config.generators do |g|
  # use UUIDs by default
  g.orm :active_record, primary_key_type: :uuid

  # limit default generation
  g.test_framework(
    :rspec,
    fixtures: true,
    view_specs: false,
    controller_specs: false,
    routing_specs: false,
    request_specs: false,
  )

  # prevent generating js/css/helper files
  g.assets false
  g.helper false
  g.jbuilder false

  g.fixture_replacement :factory_bot, dir: 'spec/factories'
  g.factory_bot suffix: 'factory'
end
"""

# -------------------------------------------------------------- newrelic
NEW_RELIC_CONTROLLER_HOOK = """\
  before_action :new_relic_user_info

  private

  def new_relic_user_info
    return unless current_user # just capturing info for logged in users right now

    ::NewRelic::Agent.add_custom_attributes(
      user_id: current_user.id,
      user_email: current_user.email
    )
  end
"""

_NEW_RELIC_CONFIG = """\
#
# This file configures the New Relic Agent.  New Relic monitors Ruby, Java,
# .NET, PHP, Python, Node, and Go applications with deep visibility and low
# overhead.  For more information, visit www.newrelic.com.
#
# This configuration file is custom generated for <PROJECT_NAME>
#
# For full documentation of agent configuration options, please refer to
# https://docs.newrelic.com/docs/agents/ruby-agent/installation-configuration/ruby-agent-configuration

common: &default_settings
  # Required license key associated with your New Relic account.
  license_key: Setup New Account!

  # Your application name. Renaming here affects where data displays in New
  # Relic.  For more details, see https://docs.newrelic.com/docs/apm/new-relic-apm/maintenance/renaming-applications
  app_name: <PROJECT_NAME>

  # To disable the agent regardless of other settings, uncomment the following:
  # agent_enabled: false

  # Logging level for log/newrelic_agent.log
  log_level: info

  # capture job arguments for sidekiq jobs https://docs.newrelic.com/docs/agents/ruby-agent/background-jobs/sidekiq-instrumentation
  attributes.include: job.sidekiq.args.*

  # capture controller params for reproduction https://docs.newrelic.com/docs/agents/ruby-agent/configuration/ruby-agent-configuration#capture_params
  capture_params: true

  # capture the actual sql that is slow rather than the obfuscated stuff
  slow_sql.record_sql: raw # https://docs.newrelic.com/docs/agents/ruby-agent/configuration/ruby-agent-configuration#slow_sql
  transaction_tracer.record_sql: raw # https://docs.newrelic.com/docs/agents/ruby-agent/configuration/ruby-agent-configuration#transaction_tracer

  # https://docs.newrelic.com/docs/agents/ruby-agent/installation-configuration/ignoring-specific-transactions#ignore-rails
  # ignore health check URLs to keep our new relic throughput clean & more likely to return error messages
  rules:
    ignore_url_regexes: ["^/health_check"]


# Environment-specific settings are in this section.
# RAILS_ENV or RACK_ENV (as appropriate) is used to determine the environment.
# If your application has other named environments, configure them here.
development:
  <<: *default_settings
  app_name: <PROJECT_NAME> (Development)
  developer_mode: true

test:
  <<: *default_settings
  # It doesn't make sense to report to New Relic from automated test runs.
  monitor_mode: false

staging:
  <<: *default_settings
  app_name: <PROJECT_NAME> (Staging)

production:
  <<: *default_settings
"""


def new_relic_config(app_name: str) -> str:
    """Return ``config/newrelic.yml`` with the application name filled in."""

    return _NEW_RELIC_CONFIG.replace("<PROJECT_NAME>", app_name)


# ---------------------------------------------------------- environments
ENVIRONMENT_END = re.compile(r"^end\n", re.MULTILINE)

BULLET_CONFIG = """\
  config.after_initialize do
    # https://github.com/flyerhzm/bullet#configuration
    Bullet.enable = true
    Bullet.rails_logger = true
  end
"""

SENDGRID_CONFIG = """\
  if ENV['SEND_EMAIL'] && ENV['SEND_EMAIL'] == 'true'
    config.action_mailer.delivery_method = :sendgrid_actionmailer
    config.action_mailer.sendgrid_actionmailer_settings = {
      api_key: ENV['SENDGRID_API_KEY'],
      raise_delivery_errors: true
    }
    config.action_mailer.perform_deliveries = true
  else
    config.action_mailer.perform_deliveries = false
  end
"""

DEVELOPMENT_HOSTS = """\
  # whitelist testing domain
  config.hosts << 'app.test'

  config.web_console.permissions = '0.0.0.0/0'
"""

PRODUCTION_LOG_LEVEL = re.compile(r"config\.log_level = :debug")
PRODUCTION_LOG_LEVEL_FROM_ENV = 'config.log_level = ENV.fetch("LOG_LEVEL", "info").to_sym'

UNPERMITTED_PARAMETERS = "\n  config.action_controller.action_on_unpermitted_parameters = :raise\n"

# ---------------------------------------------------------------- readme
README_SIDEKIQ_SECTION = re.compile(r"### Sidekiq.*?###", re.DOTALL)
README_SIDEKIQ_LINES = re.compile(r"^.*Sidekiq.*\n", re.MULTILINE)

# ----------------------------------------------------------- simple form
BOOTSTRAP_STYLESHEET = """\
// ~ to tell webpack that this is not a relative import:
@import '~bootstrap/dist/css/bootstrap';
"""

BOOTSTRAP_PACK_IMPORT = "import '../stylesheets/application.scss'\n"

RESOLVE_URL_LOADER = """\
// resolve-url-loader must be used before sass-loader
environment.loaders.get('sass').use.splice(-1, 0, {
  loader: 'resolve-url-loader',
});
"""

# ----------------------------------------------------------------- routes
ROUTES_ANCHOR = "Rails.application.routes.draw do\n"
ENGINE_MOUNTS = '    mount PgHero::Engine, at: "pghero"\n    mount Blazer::Engine, at: "blazer"\n\n'

# ------------------------------------------------------------- package.json
PACKAGE_DEPENDENCIES_ANCHOR = '  "dependencies": {'

HUSKY_CONFIG = """\
  "husky": {
    "hooks": {
      "pre-commit": "yarn validate"
    }
  },
"""

PACKAGE_SCRIPTS = r"""  "scripts": {
    "lint": "eslint \"app/**/*.{tsx,js,jsx}\" --fix",
    "lint:style": "stylelint \"app/**/*.less\" \"app/**/*.css\" \"app/**/*.scss\" \"app/**/*.sass\" --fix",
    "lint:ruby": "rubocop -a",
    "lint:ci": "npm-run-all -p lint lint:style",
    "test": "jest",
    "test:watch": "yarn test -- --watch",
    "test:ruby": "rails test",
    "validate": "npm-run-all -p -c lint lint:style lint:ruby",
    "validate:all": "npm-run-all -p lint lint:style lint:ruby test test:ruby",
    "test:suite": "npm-run-all -p test:ruby",
    "build:prod": "RAILS_ENV=production rails assets:precompile",
    "build:prod-profile": "PROFILE=true RAILS_ENV=production rails assets:precompile",
    "build:prod-prep": "RAILS_ENV=production rails assets:clobber"
  },
"""

LINT_DEV_DEPENDENCIES = (
    "eslint",
    "stylelint",
    "@typescript-eslint/eslint-plugin",
    "eslint-import-resolver-webpack",
    "@typescript-eslint/parser",
    "babel-eslint",
    "eslint-config-airbnb",
    "eslint-plugin-import",
    "eslint-plugin-jest",
    "eslint-plugin-jsx-a11y",
    "eslint-plugin-react",
    "eslint-plugin-react-hooks",
    "stylelint-config-standard",
)

# ---------------------------------------------------------------- linters
ESLINTRC = """\
env:
  browser: true
  es6: true
extends:
  [# skip screen reader usability for now https://github.com/airbnb/javascript/issues/1665#issuecomment-466318869
  airbnb-base,
  airbnb/rules/react,
  "plugin:@typescript-eslint/recommended",
  plugin:import/typescript
  ]
parser: "@typescript-eslint/parser"
globals:
  Atomics: readonly
  SharedArrayBuffer: readonly
parserOptions:
  ecmaFeatures:
    jsx: true
  ecmaVersion: 2018
  sourceType: module
plugins:
  - react
  - react-hooks
  - "@typescript-eslint"
settings:
  "import/resolver": webpack
rules: {
         max-len: [ 2, { code: 120, ignoreUrls: true} ], # increase line length from 100 to 120
         react/prop-types: off,
         react/destructuring-assignment: off,
         react/prefer-stateless-function: off,
         no-unused-expressions: ['error', allowTernary: true ],
         import/no-cycle: off,
         no-shadow: off,
         react-hooks/exhaustive-deps: off,
         '@typescript-eslint/explicit-function-return-type': off,
         '@typescript-eslint/no-explicit-any': off
}
overrides:
  [
  { # jest specs: *.test.{js,ts,tsx} only, no jsx extension
    files: [
      "*.test.{js,ts,tsx}"
    ],
    env: {
      jest: true
    },
      extends: [plugin:jest/recommended],
      plugins: [jest],
    rules: {
      "jest/no-disabled-tests": "warn",
      "jest/no-focused-tests": "error",
      "jest/no-identical-title": "error",
      "jest/prefer-to-have-length": "warn",
      "jest/valid-expect": "error",
      "react/jsx-filename-extension": [1, { "extensions": [".js"] }],
    }
  },
  { # storybook .stories.js files
    files: [
      "*.stories.js"
    ],
    rules: {
      "react/jsx-filename-extension": [1, { "extensions": [".js"] }],
    }
  },
  { # typescript files
    files: [
      "*.tsx"
    ],
    rules: {
      "react/jsx-filename-extension": [1, { "extensions": [".tsx"] }],
    }
  }
  ]
"""

RUBOCOP = """\
AllCops:
  Exclude:
    - 'node_modules/**/*'
    - 'pkg/**/*'
    - 'bin/**/*'
    - 'db/schema.rb'
    - lib/templates/active_record/model/model.rb
    - lib/templates/rails/**/*
    - lib/generators/component_generator.rb
    - config/initializers/simple_form_bootstrap.rb
    - config/initializers/devise.rb
    - lib/tasks/auto_annotate_models.rake # auto genned from gem
    - 'vendor/**/*'
    - data_import/notes.rb
  TargetRubyVersion: 2.6
  DisplayCopNames: true # so we know which cop to disable when it annoys us

Metrics/LineLength:
  Max: 140

Style/Documentation:
  Enabled: false

Style/ClassAndModuleChildren:
  Enabled: false

Metrics/BlockLength:
  ExcludedMethods:
    - included # for concerns
  Exclude:
    - config/**/**
"""

STYLELINTRC = """\
{
  "extends": "stylelint-config-standard"
}
"""

WEBPACKER_DEV_SERVER_HOST = re.compile(r"localhost")
WEBPACKER_HMR = re.compile(r"hmr: false")
CHANNELS_REQUIRE = re.compile(r'require\("channels"\)')

# ----------------------------------------------------------------- closing
FINAL_INSTRUCTIONS = """\
Template Completed!

Please review the above output for issues.

To finish setup, you must prepare Heroku with at minimum the following steps
1) Configure Newrelic
2) Setup Redis (if using Sidekiq)
3) Setup Sendgrid add-in in Heroku
4) Setup lib/tasks/scheduler.rake in Heroku Scheduler to run nightly!
5) Review your README.md file for needed updates
6) Review your Gemfile for formatting
7) If you ran the install command with webpack=react, you also need to run: `rails webpacker:install:react`
"""
