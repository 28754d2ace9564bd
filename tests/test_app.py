import os
import signal
import threading
import time
from datetime import timedelta

import pytest

from gotenberg.app import apply_env_overrides, banner, build_flag_set, main
from gotenberg.flags import FlagError, FlagSet, ParsedFlags
from gotenberg.modules import ModuleDescriptor


def _module_flag_set():
    fs = FlagSet("foo")
    fs.add_string("foo-name", "bar", "Set the name")
    fs.add_string_slice("foo-list", ["x"], "Set the list")
    return fs


def test_banner_carries_version():
    text = banner("1.2.3")
    assert "Version: 1.2.3" in text
    assert "A containerized API for seamless PDF conversion." in text
    assert text.startswith("\n")


def test_build_flag_set_defaults():
    parsed = ParsedFlags(build_flag_set([]))
    assert parsed.must_duration("gotenberg-graceful-shutdown-duration") == timedelta(seconds=30)
    assert parsed.must_bool("gotenberg-build-debug-data") is True


def test_build_flag_set_includes_module_flags():
    descriptors = [
        ModuleDescriptor(id="foo", flag_set=_module_flag_set(), new=object),
        ModuleDescriptor(id="bar", flag_set=None, new=object),
    ]
    parsed = ParsedFlags(build_flag_set(descriptors))
    assert parsed.must_string("foo-name") == "bar"
    assert parsed.must_string_slice("foo-list") == ["x"]


def test_env_overrides_scalar_flag():
    fs = build_flag_set([])
    apply_env_overrides(fs, {"GOTENBERG_BUILD_DEBUG_DATA": "false"})
    assert ParsedFlags(fs).must_bool("gotenberg-build-debug-data") is False


def test_env_overrides_replace_slice():
    fs = build_flag_set([ModuleDescriptor(id="foo", flag_set=_module_flag_set(), new=object)])
    apply_env_overrides(fs, {"FOO_LIST": "a,b", "FOO_NAME": "qux"})
    parsed = ParsedFlags(fs)
    assert parsed.must_string_slice("foo-list") == ["a", "b"]
    assert parsed.must_string("foo-name") == "qux"


def test_env_overrides_ignore_unrelated_variables():
    fs = build_flag_set([])
    apply_env_overrides(fs, {"UNRELATED": "value"})
    assert ParsedFlags(fs).must_duration("gotenberg-graceful-shutdown-duration") == timedelta(
        seconds=30
    )


def test_env_overrides_invalid_value():
    fs = build_flag_set([])
    with pytest.raises(FlagError, match="invalid overriding value 'maybe' from GOTENBERG_BUILD_DEBUG_DATA"):
        apply_env_overrides(fs, {"GOTENBERG_BUILD_DEBUG_DATA": "maybe"})


def test_main_unknown_flag(capsys):
    assert main(["--nope"]) == 2
    assert "unknown flag: --nope" in capsys.readouterr().out


def test_main_invalid_env_override(monkeypatch, capsys):
    monkeypatch.setenv("GOTENBERG_BUILD_DEBUG_DATA", "maybe")
    assert main([]) == 1
    out = capsys.readouterr().out
    assert "[FATAL] invalid overriding value 'maybe' from GOTENBERG_BUILD_DEBUG_DATA" in out


def test_main_graceful_shutdown_on_sigterm(monkeypatch, capsys):
    monkeypatch.delenv("GOTENBERG_BUILD_DEBUG_DATA", raising=False)
    monkeypatch.delenv("GOTENBERG_GRACEFUL_SHUTDOWN_DURATION", raising=False)
    original = signal.getsignal(signal.SIGTERM)

    def send_sigterm():
        end = time.monotonic() + 5
        while time.monotonic() < end:
            if signal.getsignal(signal.SIGTERM) is not original:
                os.kill(os.getpid(), signal.SIGTERM)
                return
            time.sleep(0.01)

    sender = threading.Thread(target=send_sigterm, daemon=True)
    sender.start()
    code = main(
        ["--gotenberg-graceful-shutdown-duration=1s", "--gotenberg-build-debug-data=false"]
    )
    sender.join(5)
    out = capsys.readouterr().out
    assert code == 0
    assert "[SYSTEM] graceful shutdown of 1s" in out
    assert signal.getsignal(signal.SIGTERM) is original