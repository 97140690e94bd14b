# svcdata

A small in-process registry for service statistics and runtime settings.
It keeps:

- **flat counters**: named 64-bit integers that you increment, set or clear
  (arithmetic wraps around like a signed 64-bit integer);
- **dynamic counters and strings**: values computed by a callback each
  time they are read;
- **exported values**: named strings that describe the running service;
- **options**: static key/value settings, dynamic options backed by
  getter/setter callbacks, and a bridge to a registry of command-line
  style flags.

It has no dependencies outside the standard library. All operations are
thread-safe.

## Installation

```
pip install svcdata
```

## Counters

```python
from svcdata.service_data import ServiceData, get_service_data

data = get_service_data()          # process-wide shared instance

data.increment_counter("requests")     # 1
data.increment_counter("requests", 4)  # 5
data.set_counter("queue_depth", 17)

data.get_counter("requests")           # 5
data.get_counter_if_exists("missing")  # None
data.get_counter("missing")            # raises KeyError

data.register_dynamic_counter("uptime", lambda: 42)
data.unregister_dynamic_counter("uptime")

data.get_counters()                    # every counter, by name
data.get_counter_keys()                # flat names, then dynamic names
data.get_selected_counters(["requests", "queue_depth"])
data.get_regex_counters(r"req.*")      # names matching the whole pattern
data.has_counter("queue_depth")        # True
data.num_counters()

data.zero_stats()                      # flat counters back to 0, keys kept
data.clear_counter("queue_depth")      # forget one counter
```

When a dynamic counter and a flat counter share a name, the dynamic one
is reported.

`ServiceData()` creates an independent instance; pass a `FlagRegistry`
to `ServiceData(flags)` to share one flag registry between instances.
`alive_since` holds the creation time in whole seconds since the epoch.

## Exported values

```python
data.set_exported_value("build", "2024-01-01")
data.register_dynamic_string("status", lambda: "alive")

data.get_exported_value("build")       # "2024-01-01"; "" when unknown
data.get_exported_values()
data.get_selected_exported_values(["build", "status"])
data.get_regex_exported_values(r"b.*")
data.delete_exported_key("build")
data.unregister_dynamic_string("status")
```

## Options

```python
from svcdata.options import FlagRegistry, SetOptionResult
from svcdata.service_data import ServiceData

flags = FlagRegistry()                 # defines v, vmodule and minloglevel
flags.define("workers", 4)             # the default fixes the flag's type
data = ServiceData(flags)

data.set_option("mode", "fast")
data.get_option("mode")                # "fast"
data.get_option("workers")             # "4", read from the flag
data.get_option("nope")                # raises KeyError

data.set_option_with_result("v", "2")        # SetOptionResult.CMDLINE_UPDATED
data.set_option_with_result("mode", "slow")  # SetOptionResult.CMDLINE_DISABLED
data.set_option_with_result("vmodule", "net=3,db=1")
flags.module_levels()                  # {"net": 3, "db": 1}

state = {"value": "on"}
data.register_dynamic_option(
    "feature",
    lambda: state["value"],
    lambda new: state.update(value=new),
)
data.set_option_with_result("feature", "off")  # SetOptionResult.DYNAMIC
data.get_options()                     # static and dynamic options
```

Every option set through `set_option` is stored as a static option unless
a dynamic option of that name is registered. Only the `v` and `vmodule`
options are also passed on to flags by default; setting
`data.use_options_as_flags = True` passes every option on and makes
`get_options()` include all flags. The names `logmailer` and
`whitelist_flags` are never passed on. A flag update that names an
unknown flag or a value of the wrong type gives
`SetOptionResult.CMDLINE_NO_UPDATE`. Setting `v` or `vmodule` also sets
the `minloglevel` flag to 0.

In `get_options()`, a dynamic getter that raises is reported as
`<error: message>` instead of failing the whole listing.

`reset_all_data()` forgets every counter, exported value, static option
and dynamic counter or string callback; dynamic options stay registered.

## What it does not do

The package keeps only flat counters, callbacks, strings and options.
It has no timeseries statistics (sums, averages or rates over time
windows), no histograms or percentiles, and no quantile estimators. It
does not serve its data over a network and provides no command-line
program: reading the values out is left to the application.