"""All the boiler plate / init code for defining metrics.

Meta metrics describe how the conversation with the router is going: latency, status
codes, retries and session resets.
The rest mirror what the poller reads: client count, client churn and the modem
temperatures.
Nothing is exposed unless METRICS_PORT is set; the metrics are still updated so they
cost nothing to keep.
"""

from prometheus_client import Counter, Gauge, Info, Summary, disable_created_metrics

# By default, client will automatically create a "_created" meta metric for
#   each metric defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()


METRICS_NS = "connectbox"
META_NS = f"{METRICS_NS}_meta"

##
# Meta Metrics
##
# The devices query routinely takes several seconds; a change in that is the first sign
#   the router is struggling.
##
# summary comes with both a count and a sum so we don't need to count the number of
#   requests ourselves
s_meta_request_time = Summary(
    f"{META_NS}_request_duration_seconds",
    "Time spent waiting for router to respond",
    # Only three endpoints: login page, getter and setter
    labelnames=["endpoint"],
)

c_meta_request_result = Counter(
    f"{META_NS}_request_result",
    "Count of responses by HTTP status",
    # Bounded: a few endpoints and the handful of codes the router ever sends
    labelnames=["http_code", "endpoint"],
)

c_meta_retries = Counter(
    f"{META_NS}_request_retries",
    "Count of requests retried after a transient network failure",
    labelnames=["endpoint"],
)

c_meta_session_resets = Counter(
    f"{META_NS}_session_resets",
    "Count of times the router dropped our session and we had to log in again",
)

c_meta_parse_result = Counter(
    f"{META_NS}_parse_result",
    "Count of successful vs failed parse attempts",
    labelnames=["parse_target", "parse_result"],
)

##
# LAN clients
##
g_lan_clients = Gauge(
    f"{METRICS_NS}_lan_clients",
    "Number of WIFI clients in the last LAN table read.",
)

c_client_changes = Counter(
    f"{METRICS_NS}_client_changes",
    "Clients added, removed or changed between consecutive polls.",
    labelnames=["change"],
)

##
# Cable modem
##
g_tuner_temperature = Gauge(
    f"{METRICS_NS}_tuner_temperature",
    "Tuner temperature as reported by the modem.",
)

g_modem_temperature = Gauge(
    f"{METRICS_NS}_modem_temperature",
    "Modem temperature as reported by the modem.",
)

# Info() is perfect for key/value pairs that are not expected to change often.
i_modem_state = Info(
    f"{METRICS_NS}_modem",
    "Modem operating state",
)
