# templated

`templated` is a small HTTP server platform for publishing built web
applications (for example WebAssembly bundles) from a workspace's
artifacts directory. It combines layered settings, logging setup and a
command-line front end, built on `aiohttp`.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Command line

`templated` loads the settings, installs logging as they describe, then
runs the requested subcommand. Run without arguments it prints the help
and exits with status 2.

```
templated serve
templated serve --host 0.0.0.0 --port 8080
templated serve --workdir ./site run --prefix /app
templated build wasm
templated --version
```

Global options:

| Option | Meaning |
| --- | --- |
| `-C`, `--config` | configuration file name (default `Puzzled.toml`) |
| `-r`, `--release` | release flag |
| `-u`, `--update` | update flag |
| `-v`, `--verbose` | verbose flag |
| `-V`, `--version` | print the version and exit |

The global flags are parsed and kept on the `Cli` object, but no command
acts on them yet; settings are always read as described under
*Configuration*.

`serve` options:

| Option | Meaning |
| --- | --- |
| `-H`, `--host` | address to bind to, overriding the settings |
| `-p`, `--port` | port to bind to (0–65535), overriding the settings |
| `-w`, `--workdir` | workspace directory, overriding the settings |

`serve run` additionally accepts `-p`/`--prefix`, which is recorded but
not used.

The server publishes the files of the workspace's artifacts directory
(`<workdir>/artifacts` by default) under the configured base path. A
request for a directory serves its `index.html`; paths outside the
directory and missing files answer 404. Responses other than files are
compressed when the client sends `Accept-Encoding`. Request logging hides
the `Authorization` header. The server stops cleanly on Ctrl-C. The host
must be an IP address; a host name such as `localhost` is rejected.

`build` accepts `-p`/`--platform`, `-t`/`--target`, `-u`/`--update` and
the target `wasm`.

`templated-sand` is a demonstration: it starts three named workers
(Alice, Bob and Charlie), prints them and waits for each to finish its
simulated work. `--delay SECONDS` sets how long each one works (default 2).

## Configuration

`Settings.build()` assembles the settings in layers, later layers winning:

1. built-in defaults: mode `debug`, name `templated`, host `127.0.0.1`,
   port `8080`, base path `/`, log level `info`, workspace `dist`;
2. optional files in the configuration directory (`APP_CONFIG_DIR`,
   default `.config`): `default.config`, `server.config`,
   `docker.config`, `app.config`, `prod.config` and the file named by
   `APP_CONFIG_FILE` (default `Templated.toml`). A name may carry its
   `.toml` or `.json` extension, or have one added;
3. environment variables starting with `APP_`, lower-cased and split on
   `_` into nested keys (`APP_NETWORK_BASEPATH` sets `network.basepath`);
4. the `APP_CONFIG_FILE` file again, relative to the current directory;
5. the overrides `APP_MODE`, `APP_NAME`, `APP_HOST`, `APP_PORT` and
   `APP_WORKDIR`.

The mode accepts `debug` (also `d`, `dev`, `development`) or `release`
(also `r`, `prod`, `production`). Log levels are `trace`, `debug`,
`info`, `warn`, `error` and `off`. Setting `APP_LOG` to a filter such as
`templated=debug,aiohttp=info` replaces the default log filter.

An unreadable or malformed file, or a value of the wrong kind, raises
`PlatformError` with kind `config`.

## Library use

```python
from templated.settings import Settings
from templated.platform import Platform
from templated.server import Server

settings = Settings.build()
settings.set_port(9000)

platform = Platform.from_config(settings).with_tracing().init()
server = Server.from_config(settings)
app = server.create_app()      # an aiohttp web.Application
# await server.start(shutdown) serves until the awaitable completes
```

- `templated.settings`: `Settings` (`network`, `scope`, `services`,
  `workspace`, `mode`, `name`, `version`; `build`, `from_dict`,
  `to_dict`, `debug`, `release`, `set_port`, `set_workdir`,
  `set_log_level`, `init_tracing`) and `load_settings_data`.
- `templated.kinds`: `NetworkConfig`, `Scope`, `ServicesConfig`,
  `DatabaseConfig`, `TracingConfig`, `WorkspaceConfig`.
- `templated.types`: `NetAddr`, `LogLevel`, `Mode`, `init_tracing`,
  `fmt_as_env_filter`.
- `templated.platform`: `Platform`, `Initializer`, `PlatformContext`,
  `PlatformState`.
- `templated.server`: `Server`, `ServerConfig`, `ServerContext`,
  `ServerState`, `graceful_shutdown`, and the `Builder` placeholders.
- `templated.cli`: `Cli`, `BuildCmd`, `ServeCmd`, `DeployCmd`,
  `build_parser`, `main`.
- `templated.workforce`: `Worker`, `WorkerManager`, `Message`, `main`.
- `templated.serialization`: `to_data`, `to_json`, `to_pretty_json`.
- `templated.errors`: `PlatformError` and `ErrorKind`.

## What it does not do

- `build wasm` only logs "Building for WebAssembly..."; nothing is built.
- There is no `deploy` command; `DeployCmd` exists only as a data type.
- `DatabaseConfig` holds connection settings but no database is opened.
- `Builder` and its context and config hold no behaviour.