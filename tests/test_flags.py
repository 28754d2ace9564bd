from datetime import timedelta

import pytest

from gotenberg.flags import FlagError, FlagSet, ParsedFlags, parse_bytes, parse_duration


def _parsed(setup, args):
    fs = FlagSet("tests")
    setup(fs)
    parsed = ParsedFlags(fs)
    parsed.parse(args)
    return parsed


def test_must_string():
    parsed = _parsed(lambda fs: fs.add_string("foo", "", ""), ["--foo=foo"])
    assert parsed.must_string("foo") == "foo"
    with pytest.raises(FlagError):
        parsed.must_string("bar")


@pytest.mark.parametrize(
    "raw, expected",
    [(["--foo=foo"], "foo"), (["--bar=bar"], "bar"), (["--foo=foo", "--bar=bar"], "foo")],
)
def test_must_deprecated_string(raw, expected):
    def setup(fs):
        fs.add_string("foo", "", "")
        fs.add_string("bar", "", "")

    assert _parsed(setup, raw).must_deprecated_string("foo", "bar") == expected


def test_must_string_slice():
    parsed = _parsed(lambda fs: fs.add_string_slice("foo", [], ""), ["--foo=foo", "--foo=bar", "--foo=baz"])
    assert parsed.must_string_slice("foo") == ["foo", "bar", "baz"]
    with pytest.raises(FlagError):
        parsed.must_string_slice("bar")


@pytest.mark.parametrize(
    "raw, expected",
    [(["--foo=foo"], ["foo"]), (["--bar=bar"], ["bar"]), (["--foo=foo", "--bar=bar"], ["foo"])],
)
def test_must_deprecated_string_slice(raw, expected):
    def setup(fs):
        fs.add_string_slice("foo", [], "")
        fs.add_string_slice("bar", [], "")

    assert _parsed(setup, raw).must_deprecated_string_slice("foo", "bar") == expected


def test_must_bool():
    parsed = _parsed(lambda fs: fs.add_bool("foo", False, ""), ["--foo=true"])
    assert parsed.must_bool("foo") is True
    with pytest.raises(FlagError):
        parsed.must_bool("bar")


@pytest.mark.parametrize(
    "raw, expected",
    [(["--foo=true"], True), (["--bar=false"], False), (["--foo=true", "--bar=false"], True)],
)
def test_must_deprecated_bool(raw, expected):
    def setup(fs):
        fs.add_bool("foo", False, "")
        fs.add_bool("bar", True, "")

    assert _parsed(setup, raw).must_deprecated_bool("foo", "bar") is expected


def test_must_int64():
    parsed = _parsed(lambda fs: fs.add_int64("foo", 0, ""), ["--foo=1"])
    assert parsed.must_int64("foo") == 1
    with pytest.raises(FlagError):
        parsed.must_int64("bar")


@pytest.mark.parametrize(
    "raw, expected", [(["--foo=1"], 1), (["--bar=2"], 2), (["--foo=1", "--bar=2"], 1)]
)
def test_must_deprecated_int64(raw, expected):
    def setup(fs):
        fs.add_int64("foo", 0, "")
        fs.add_int64("bar", 0, "")

    assert _parsed(setup, raw).must_deprecated_int64("foo", "bar") == expected


def test_must_int():
    parsed = _parsed(lambda fs: fs.add_int("foo", 0, ""), ["--foo=1"])
    assert parsed.must_int("foo") == 1
    with pytest.raises(FlagError):
        parsed.must_int("bar")


@pytest.mark.parametrize(
    "raw, expected", [(["--foo=1"], 1), (["--bar=2"], 2), (["--foo=1", "--bar=2"], 1)]
)
def test_must_deprecated_int(raw, expected):
    def setup(fs):
        fs.add_int("foo", 0, "")
        fs.add_int("bar", 0, "")

    assert _parsed(setup, raw).must_deprecated_int("foo", "bar") == expected


def test_must_float64():
    parsed = _parsed(lambda fs: fs.add_float64("foo", 1.0, ""), ["--foo=2.0"])
    assert parsed.must_float64("foo") == 2.0
    with pytest.raises(FlagError):
        parsed.must_float64("bar")


@pytest.mark.parametrize(
    "raw, expected", [(["--foo=1.0"], 1.0), (["--bar=2.0"], 2.0), (["--foo=1.0", "--bar=2.0"], 1.0)]
)
def test_must_deprecated_float64(raw, expected):
    def setup(fs):
        fs.add_float64("foo", 0, "")
        fs.add_float64("bar", 0, "")

    assert _parsed(setup, raw).must_deprecated_float64("foo", "bar") == expected


def test_must_duration():
    parsed = _parsed(lambda fs: fs.add_duration("foo", timedelta(seconds=1), ""), ["--foo=2m"])
    assert parsed.must_duration("foo") == timedelta(minutes=2)
    with pytest.raises(FlagError):
        parsed.must_duration("bar")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (["--foo=1s"], timedelta(seconds=1)),
        (["--bar=2s"], timedelta(seconds=2)),
        (["--foo=1s", "--bar=2s"], timedelta(seconds=1)),
    ],
)
def test_must_deprecated_duration(raw, expected):
    def setup(fs):
        fs.add_duration("foo", timedelta(0), "")
        fs.add_duration("bar", timedelta(0), "")

    assert _parsed(setup, raw).must_deprecated_duration("foo", "bar") == expected


def test_must_human_readable_bytes():
    def setup(fs):
        fs.add_string("foo", "1MB", "")
        fs.add_string("bar", "1MB", "")
        fs.add_string("qux", "", "")

    parsed = _parsed(setup, ["--foo=1GB", "--bar=foo"])
    assert parsed.must_human_readable_bytes("foo") == 1000000000
    assert parsed.must_human_readable_bytes("qux") == 0
    with pytest.raises(FlagError):
        parsed.must_human_readable_bytes("bar")


@pytest.mark.parametrize(
    "raw, expected",
    [(["--foo=1MB"], 1000000), (["--bar=2MB"], 2000000), (["--foo=1MB", "--bar=2MB"], 1000000)],
)
def test_must_deprecated_human_readable_bytes(raw, expected):
    def setup(fs):
        fs.add_string("foo", "", "")
        fs.add_string("bar", "", "")

    assert _parsed(setup, raw).must_deprecated_human_readable_bytes("foo", "bar") == expected


def test_must_regexp():
    def setup(fs):
        fs.add_string("foo", "", "")
        fs.add_string("bar", "", "")

    parsed = _parsed(setup, ["--foo=", "--bar=*"])
    assert parsed.must_regexp("foo").pattern == ""
    with pytest.raises(FlagError):
        parsed.must_regexp("bar")


@pytest.mark.parametrize(
    "raw, expected", [(["--foo=foo"], "foo"), (["--bar=bar"], "bar"), (["--foo=foo", "--bar=bar"], "foo")]
)
def test_must_deprecated_regexp(raw, expected):
    def setup(fs):
        fs.add_string("foo", "", "")
        fs.add_string("bar", "", "")

    assert _parsed(setup, raw).must_deprecated_regexp("foo", "bar").pattern == expected


def test_parse_separate_value_and_positionals():
    fs = FlagSet("tests")
    fs.add_string("foo", "", "")
    fs.add_bool("verbose", False, "")
    positional = fs.parse(["one", "--foo", "value", "--verbose", "--", "--foo=x"])
    assert positional == ["one", "--foo=x"]
    assert fs.get("foo", "string") == "value"
    assert fs.get("verbose", "bool") is True
    assert fs.changed("foo") and not fs.changed("missing")


def test_parse_errors():
    fs = FlagSet("tests")
    fs.add_int("count", 0, "")
    with pytest.raises(FlagError, match="unknown flag"):
        fs.parse(["--nope=1"])
    with pytest.raises(FlagError, match="needs an argument"):
        fs.parse(["--count"])
    with pytest.raises(FlagError, match="invalid argument"):
        fs.parse(["--count=abc"])
    with pytest.raises(FlagError):
        fs.parse(["-c"])


def test_redefinition_and_type_mismatch():
    fs = FlagSet("tests")
    fs.add_string("foo", "", "")
    with pytest.raises(FlagError, match="redefined"):
        fs.add_string("foo", "", "")
    with pytest.raises(FlagError, match="trying to get"):
        fs.get("foo", "int")


def test_slice_replace_and_set():
    fs = FlagSet("tests")
    flag = fs.add_string_slice("items", ["default"], "")
    flag.set("a,b")
    assert fs.get("items", "stringSlice") == ["a", "b"]
    flag.set("c")
    assert fs.get("items", "stringSlice") == ["a", "b", "c"]
    flag.replace(["x", "y"])
    assert fs.get("items", "stringSlice") == ["x", "y"]
    with pytest.raises(FlagError):
        fs.add_string("plain", "", "").replace(["a"])


def test_flag_string_values():
    fs = FlagSet("tests")
    fs.add_duration("shutdown", timedelta(seconds=30), "")
    fs.add_bool("debug", True, "")
    fs.add_string_slice("list", [], "")
    fs.add_float64("ratio", 2.0, "")
    values = {flag.name: str(flag) for flag in fs}
    assert values == {"debug": "true", "list": "[]", "ratio": "2", "shutdown": "30s"}
    assert [flag.name for flag in fs] == ["debug", "list", "ratio", "shutdown"]


def test_add_flag_set_keeps_existing():
    first = FlagSet("a")
    first.add_string("foo", "a", "")
    second = FlagSet("b")
    second.add_string("foo", "b", "")
    second.add_string("bar", "b", "")
    first.add_flag_set(second)
    assert first.get("foo", "string") == "a"
    assert first.get("bar", "string") == "b"


def test_parse_duration_values():
    assert parse_duration("1h30m") == timedelta(hours=1, minutes=30)
    assert parse_duration("1.5s") == timedelta(seconds=1.5)
    assert parse_duration("-2m") == timedelta(minutes=-2)
    assert parse_duration("0") == timedelta(0)
    for bad in ["", "5", "1x", "."]:
        with pytest.raises(ValueError):
            parse_duration(bad)


def test_parse_bytes_values():
    assert parse_bytes("1MB") == 1000000
    assert parse_bytes("1GB") == 1000000000
    with pytest.raises(ValueError):
        parse_bytes("foo")


def test_default_parsed_flags_is_empty():
    parsed = ParsedFlags()
    assert list(parsed) == []
    with pytest.raises(FlagError):
        parsed.must_string("foo")