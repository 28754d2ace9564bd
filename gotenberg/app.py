"""The application command: flags, module start-up and graceful shutdown."""

from __future__ import annotations

import os
import signal
import sys
import threading
import time
from datetime import timedelta
from typing import Any, Iterable, Mapping, Optional

import gotenberg.debug as debug_data
from gotenberg.context import Context, ModuleError
from gotenberg.flags import FlagError, FlagSet, ParsedFlags
from gotenberg.modules import App, ModuleDescriptor, SystemLogger, get_module_descriptors

VERSION = "snapshot"

GRACEFUL_SHUTDOWN_FLAG = "gotenberg-graceful-shutdown-duration"
BUILD_DEBUG_DATA_FLAG = "gotenberg-build-debug-data"

_BANNER = r"""
  _____     __           __               
 / ___/__  / /____ ___  / /  ___ _______ _
/ (_ / _ \/ __/ -_) _ \/ _ \/ -_) __/ _ '/
\___/\___/\__/\__/_//_/_.__/\__/_/  \_, / 
                                   /___/

A containerized API for seamless PDF conversion.
Version: {version}
-------------------------------------------------------
"""


def banner(version: str) -> str:
    """Return the start-up banner for ``version``."""
    return _BANNER.format(version=version)


def build_flag_set(descriptors: Iterable[ModuleDescriptor]) -> FlagSet:
    """Create the root flag set holding the application and module flags."""
    flag_set = FlagSet("gotenberg")
    flag_set.add_duration(
        GRACEFUL_SHUTDOWN_FLAG, timedelta(seconds=30), "Set the graceful shutdown duration"
    )
    flag_set.add_bool(BUILD_DEBUG_DATA_FLAG, True, "Set if build data is needed")
    for desc in descriptors:
        flag_set.add_flag_set(desc.flag_set)
    return flag_set


def apply_env_overrides(flag_set: FlagSet, environ: Optional[Mapping[str, str]] = None) -> None:
    """Override flag values from environment variables named after the flags.

    ``--foo-bar`` is overridden by ``FOO_BAR``; slice flags take a
    comma-separated list that replaces their whole value.
    """
    env = os.environ if environ is None else environ
    for flag in flag_set:
        env_name = flag.name.replace("-", "_").upper()
        if env_name not in env:
            continue
        value = env[env_name]
        try:
            if flag.kind == "stringSlice":
                flag.replace(value.split(","))
            else:
                flag.set(value)
        except FlagError as err:
            raise FlagError(
                f"invalid overriding value '{value}' from {env_name}: {err}"
            ) from err


def _module_id(mod: Any) -> str:
    return mod.descriptor().id


def _say(message: str) -> None:
    print(message, flush=True)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the application until SIGINT or SIGTERM; return the exit code."""
    print(banner(VERSION), end="", flush=True)
    debug_data.VERSION = VERSION

    descriptors = get_module_descriptors()
    try:
        flag_set = build_flag_set(descriptors)
    except FlagError as err:
        _say(f"[FATAL] {err}")
        return 1
    _say("[SYSTEM] modules: " + "".join(f"{desc.id} " for desc in descriptors))

    try:
        flag_set.parse(sys.argv[1:] if argv is None else argv)
    except FlagError as err:
        _say(str(err))
        return 2

    try:
        apply_env_overrides(flag_set)
    except FlagError as err:
        _say(f"[FATAL] {err}")
        return 1

    parsed_flags = ParsedFlags(flag_set)
    graceful = parsed_flags.must_duration(GRACEFUL_SHUTDOWN_FLAG)
    graceful_text = str(flag_set.lookup(GRACEFUL_SHUTDOWN_FLAG))

    ctx = Context(parsed_flags, descriptors)

    quit_event = threading.Event()
    fatal: list[str] = []
    fatal_lock = threading.Lock()
    handled = (signal.SIGINT, signal.SIGTERM)
    previous = {sig: signal.getsignal(sig) for sig in handled}

    def on_quit(signum: int, frame: Any) -> None:
        quit_event.set()

    def fail(message: str) -> None:
        with fatal_lock:
            fatal.append(message)
        quit_event.set()

    try:
        for sig in handled:
            signal.signal(sig, on_quit)

        try:
            apps = ctx.modules(App)
        except ModuleError as err:
            _say(f"[FATAL] {err}")
            return 1

        def start_app(app: Any) -> None:
            module_id = _module_id(app)
            try:
                app.start()
            except Exception as err:
                fail(f"[FATAL] starting {module_id}: {err}")
                return
            message = app.startup_message()
            if message == "":
                _say(f"[SYSTEM] {module_id}: application started")
            else:
                _say(f"[SYSTEM] {module_id}: {message}")

        for app in apps:
            threading.Thread(target=start_app, args=(app,), daemon=True).start()

        try:
            sys_loggers = ctx.modules(SystemLogger)
        except ModuleError as err:
            _say(f"[FATAL] {err}")
            return 1

        def print_messages(logger: Any) -> None:
            module_id = _module_id(logger)
            for message in logger.system_messages():
                _say(f"[SYSTEM] {module_id}: {message}")

        for sys_logger in sys_loggers:
            threading.Thread(target=print_messages, args=(sys_logger,), daemon=True).start()

        if parsed_flags.must_bool(BUILD_DEBUG_DATA_FLAG):
            debug_data.build_debug(ctx)

        while not quit_event.wait(0.2):
            pass

        with fatal_lock:
            if fatal:
                _say(fatal[0])
                return 1

        force = threading.Event()
        signal.signal(signal.SIGINT, lambda signum, frame: force.set())

        _say(f"[SYSTEM] graceful shutdown of {graceful_text}")

        deadline = time.monotonic() + graceful.total_seconds()
        errors: list[str] = []

        def stop_app(app: Any) -> None:
            module_id = _module_id(app)
            try:
                app.stop(max(0.0, deadline - time.monotonic()))
            except Exception as err:
                with fatal_lock:
                    errors.append(f"stopping {module_id}: {err}")
                return
            _say(f"[SYSTEM] {module_id}: application stopped")

        stoppers = [threading.Thread(target=stop_app, args=(app,), daemon=True) for app in apps]
        for stopper in stoppers:
            stopper.start()
        for stopper in stoppers:
            while stopper.is_alive() and not force.is_set():
                stopper.join(0.1)

        if force.is_set() and any(stopper.is_alive() for stopper in stoppers):
            _say("[FATAL] stopping: context canceled")
            return 1

        with fatal_lock:
            if errors:
                _say(f"[FATAL] {errors[0]}")
                return 1
        return 0
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


if __name__ == "__main__":
    raise SystemExit(main())