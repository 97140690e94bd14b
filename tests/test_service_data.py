import pytest

from svcdata.options import FlagRegistry, SetOptionResult
from svcdata.service_data import ServiceData, get_service_data

INT64_MAX = (1 << 63) - 1
INT64_MIN = -(1 << 63)


@pytest.fixture
def data():
    return ServiceData(FlagRegistry())


def test_increment_creates_and_accumulates(data):
    first = data.increment_counter("requests", 5)
    assert first == 5
    second = data.increment_counter("requests", 3)
    assert second == data.get_counter("requests")
    assert second - first == 3


def test_increment_default_amount(data):
    data.set_counter("hits", 41)
    assert data.increment_counter("hits") == data.get_counter("hits")
    assert data.get_counter("hits") - 41 == 1


def test_set_counter_returns_value(data):
    assert data.set_counter("x", 17) == 17
    assert data.get_counter("x") == 17


def test_counter_wraps_like_int64(data):
    data.set_counter("big", INT64_MAX)
    assert data.increment_counter("big", 1) == INT64_MIN


def test_missing_counter_raises(data):
    with pytest.raises(KeyError):
        data.get_counter("nope")
    assert data.get_counter_if_exists("nope") is None


def test_clear_counter(data):
    data.set_counter("a", 2)
    data.clear_counter("a")
    assert not data.has_counter("a")
    data.clear_counter("a")
    assert data.get_counters() == {}


def test_dynamic_counter_overrides_flat(data):
    data.set_counter("k", 1)
    data.register_dynamic_counter("k", lambda: 99)
    data.register_dynamic_counter("d", lambda: 7)
    assert data.get_counter("k") == 99
    assert data.get_counters() == {"k": 99, "d": 7}
    assert data.get_selected_counters(["k", "d", "zzz"]) == {"k": 99, "d": 7}
    data.unregister_dynamic_counter("k")
    assert data.get_counter("k") == 1


def test_counter_keys_and_count(data):
    data.set_counter("a", 1)
    data.set_counter("b", 2)
    data.register_dynamic_counter("c", lambda: 3)
    assert data.get_counter_keys() == ["a", "b", "c"]
    assert data.num_counters() == len(data.get_counters())
    assert data.has_counter("c")


def test_regex_counters_match_whole_name(data):
    data.set_counter("foo.a", 1)
    data.set_counter("foo.b", 2)
    data.set_counter("bar", 3)
    data.register_dynamic_counter("foo.dyn", lambda: 4)
    assert data.get_regex_counters(r"foo\..*") == {"foo.a": 1, "foo.b": 2, "foo.dyn": 4}
    assert data.get_regex_counters("foo") == {}


def test_zero_stats_keeps_keys(data):
    data.set_counter("a", 10)
    data.set_counter("b", 20)
    data.zero_stats()
    assert data.get_counters() == {"a": 0, "b": 0}


def test_exported_values_round_trip(data):
    data.set_exported_value("name", "alpha")
    assert data.get_exported_value("name") == "alpha"
    data.set_exported_value("name", "beta")
    assert data.get_exported_values() == {"name": "beta"}
    data.delete_exported_key("name")
    assert data.get_exported_value("name") == ""
    data.delete_exported_key("name")
    assert data.get_exported_values() == {}


def test_dynamic_strings_override_exported(data):
    data.set_exported_value("s", "static")
    data.register_dynamic_string("s", lambda: "dynamic")
    data.register_dynamic_string("t", lambda: "other")
    assert data.get_exported_value("s") == "dynamic"
    assert data.get_selected_exported_values(["s", "missing"]) == {"s": "dynamic"}
    assert data.get_exported_values() == {"s": "dynamic", "t": "other"}
    data.unregister_dynamic_string("s")
    assert data.get_exported_value("s") == "static"


def test_regex_exported_values(data):
    data.set_exported_value("build.rev", "r1")
    data.set_exported_value("build.host", "h1")
    data.set_exported_value("other", "o")
    assert data.get_regex_exported_values(r"build\..*") == {
        "build.rev": "r1",
        "build.host": "h1",
    }


def test_reset_all_data(data):
    data.set_counter("a", 1)
    data.register_dynamic_counter("d", lambda: 2)
    data.set_exported_value("e", "v")
    data.register_dynamic_string("ds", lambda: "v")
    data.set_option("opt", "val")
    data.reset_all_data()
    assert data.get_counters() == {}
    assert data.get_exported_values() == {}
    with pytest.raises(KeyError):
        data.get_option("opt")


def test_static_option_round_trip(data):
    assert data.set_option_with_result("color", "blue") is SetOptionResult.CMDLINE_DISABLED
    assert data.get_option("color") == "blue"
    assert data.get_options()["color"] == "blue"


def test_verbosity_option_updates_flag(data):
    assert data.set_option_with_result("v", "2") is SetOptionResult.CMDLINE_UPDATED
    assert data.flags.get("v") == "2"


def test_blacklisted_option(data):
    data.use_options_as_flags = True
    assert data.set_option_with_result("logmailer", "x") is SetOptionResult.CMDLINE_BLACKLISTED


def test_dynamic_option(data):
    store = {}

    def setter(value):
        store["dyn"] = value

    data.register_dynamic_option("dyn", lambda: store.get("dyn", ""), setter)
    assert data.set_option_with_result("dyn", "on") is SetOptionResult.DYNAMIC
    assert data.get_option("dyn") == "on"
    assert store == {"dyn": "on"}


def test_missing_option_raises(data):
    with pytest.raises(KeyError):
        data.get_option("does_not_exist")


def test_get_service_data_is_singleton():
    key = "svcdata.test.singleton_counter"
    first = get_service_data()
    first.set_counter(key, 123)
    try:
        assert get_service_data().get_counter(key) == 123
        assert get_service_data().increment_counter(key, 2) == 125
        assert first.get_counter(key) == 125
    finally:
        first.clear_counter(key)
    assert get_service_data().get_counter_if_exists(key) is None