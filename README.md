# gotenberg

The core of a document conversion service. It provides a small module
system and typed command-line flags that environment variables can
override. It also has a supervisor for long-running helper processes and
a few utilities that modules share.

## What this package does not do

This package has no conversion modules, no HTTP server and no PDF engine
of its own. `PdfEngine` and `PdfEngineProvider` only describe the
interface such a module would implement. The installed `gotenberg`
command starts with no modules registered. It parses its flags, waits
for a signal and exits. To get a working service, register your own
modules and call `gotenberg.app.main()` from your own entry point.

## Running the application

`gotenberg.app.main(argv=None)` runs the application and returns its
exit code. It works through these steps:

1. Prints a banner and the IDs of the registered modules.
2. Parses the flags: `argv`, or `sys.argv[1:]` when `argv` is not given.
3. Applies environment overrides.
4. Provisions the modules and starts every `App` module in its own thread.
5. Prints the messages of every `SystemLogger` module.
6. Builds the debug data, if that is enabled.
7. Waits for `SIGINT` or `SIGTERM`.
8. Stops the applications within the graceful shutdown duration. A
   second `SIGINT` cancels the wait.

The `gotenberg` command runs the same function:

```
gotenberg --gotenberg-graceful-shutdown-duration=10s
```

The root flag set always holds these flags:

| Flag | Default | Meaning |
| --- | --- | --- |
| `--gotenberg-graceful-shutdown-duration` | `30s` | Time allowed for the applications to stop |
| `--gotenberg-build-debug-data` | `true` | Gather debug data once the modules are loaded |

Flags are written as `--name=value` or `--name value`. A boolean flag
given alone means `true`. An unknown flag or a bad value ends the run
with exit code 2.

You can also set any flag from the environment. Upper-case the flag's
name and replace its dashes with underscores:
`GOTENBERG_GRACEFUL_SHUTDOWN_DURATION=5s` overrides
`--gotenberg-graceful-shutdown-duration`. For string list flags, the
value is split on commas and replaces the whole list. An invalid value
prints a `[FATAL]` line and ends the run with exit code 1.
`apply_env_overrides(flag_set, environ)` performs this step on its own,
and `build_flag_set(descriptors)` builds the root flag set.

## Writing modules

A module implements `descriptor()` and returns a `ModuleDescriptor`. The
descriptor holds three things:

- `id`: a unique snake-case ID.
- `flag_set`: an optional `FlagSet` with the module's flags.
- `new`: a factory that returns a fresh instance.

```python
from gotenberg.flags import FlagSet
from gotenberg.modules import ModuleDescriptor, must_register_module


class Greeter:
    def descriptor(self):
        flag_set = FlagSet("greeter")
        flag_set.add_string("greeter-name", "world", "Who to greet")
        return ModuleDescriptor(id="greeter", flag_set=flag_set, new=Greeter)

    def provision(self, ctx):
        self.name = ctx.parsed_flags.must_string("greeter-name")

    def start(self):
        pass

    def startup_message(self):
        return f"hello {self.name}"

    def stop(self, timeout):
        pass


must_register_module(Greeter())
```

`must_register_module` raises `RegistrationError` in four cases: an
empty ID, a missing factory, a factory that returns `None`, and an ID
that is already registered. `get_module_descriptors` returns the
registered descriptors sorted by ID.

Roles are protocols, checked with `isinstance`:

- `Provisioner`: `provision(ctx)` is called with the `Context`.
- `Validator`: `validate()` is called right after provisioning.
- `App`: `start()`, `startup_message()` and `stop(timeout)`. An empty
  startup message gives the default "application started" line.
- `SystemLogger`: `system_messages()` returns lines to print at startup.
- `Debuggable`: `debug()` returns extra entries for the debug data.
- `LoggerProvider`, `MetricsProvider` and `PdfEngineProvider` supply
  loggers, `Metric` values and `PdfEngine` implementations to other
  modules.

`Context(flags, descriptors)` does three jobs:

- It provisions and validates each module once.
- It keeps the instances and returns them from `loaded_modules()`.
- It hands modules to one another. `modules(kind)` returns every module
  that fills a role. `module(kind)` returns the single one. Any error
  while provisioning or validating raises `ModuleError`, and so does
  `module(kind)` when no module or more than one fills the role.

## Flags

`FlagSet` declares typed flags with these methods:

- `add_string`
- `add_string_slice`
- `add_bool`
- `add_int`
- `add_int64`
- `add_float64`
- `add_duration`

Durations are written like `1h30m`, `2m` or `1.5s` and read back as
`datetime.timedelta`.

`ParsedFlags` reads values back with `must_string`, `must_bool`,
`must_duration` and the other `must_*` methods. They raise `FlagError`
for an unknown flag or a flag of another type. Each
`must_deprecated_*(deprecated, new_name)` method reads the deprecated flag
when it was set explicitly, and the new one otherwise.

`must_human_readable_bytes` reads sizes such as `1MB` (1,000,000 bytes)
or `512KiB`, and returns `0` for an empty value. `must_regexp` compiles
the value as a regular expression. `parse_duration` and `parse_bytes`
are also available on their own.

## Utilities

- **Environment variables.** `string_env` and `int_env` read a required
  variable. They raise `EnvError` when it is missing, empty or not an
  integer.
- **Sorting.** `alphanumeric_sort` orders file names by a leading number,
  then by a number just before the extension, then by a trailing number.
  Names without a number come last, in plain order:

  ```python
  from gotenberg.sort import alphanumeric_sort

  alphanumeric_sort(["sample1_10.pdf", "sample1_2.pdf", "sample1_1.pdf"])
  # ['sample1_1.pdf', 'sample1_2.pdf', 'sample1_10.pdf']
  ```

- **Filtering.** `filter_deadline(allowed, denied, s, deadline)` checks a
  string against an allow expression and a deny expression. Empty
  expressions are ignored. It raises `FilteredError` when the string is
  rejected, and `DeadlineExceededError` when the deadline has passed.
- **Working directories.** `FileSystem` keeps a unique working directory
  under the system temporary directory. `mkdir_all()` creates a fresh
  sub-directory in it and returns its path.
- **Cleanup.** `garbage_collect(logger, root_path, include_substr,
  expiration_time)` removes entries directly under `root_path` that were
  modified before `expiration_time` and match one of `include_substr`. An
  entry matches when its name contains the substring or its path equals
  it.
- **Child processes.** `command` and `command_context(timeout, ...)` run a
  child process in its own session. `Cmd.kill` removes the child and
  everything it started.
  - `Cmd.exec` returns 0 on success.
  - Otherwise it raises `CommandError` with an `exit_code`: 131 if the
    process could not start, 62 if the timeout passed, or the process's
    own exit code.
  - When debug logging is on, the child's output goes to the logger.
- **Process supervision.** `ProcessSupervisor(logger, process,
  max_req_limit, max_queue_size)` runs tasks against a `Process` one at a
  time with `run(logger, task, timeout)`.
  - It starts the process on first use.
  - It restarts the process when it is unhealthy, or after
    `max_req_limit` tasks.
  - It raises `MaximumQueueSizeExceededError` when the queue is full.
  - It raises `DeadlineExceededError` when the timeout runs out.
  - `req_queue_size()` and `restarts_count()` report its state.
- **Debug data.** `build_debug(ctx)` collects a `DebugInfo` snapshot and
  `debug()` returns it. The snapshot holds:
  - the version;
  - the architecture;
  - the loaded modules, in alphanumeric order;
  - each module's additional data;
  - the value of every flag.
- **Logging.** `LeveledLogger` adapts a `logging.Logger` for clients
  that log a message followed by key/value pairs.