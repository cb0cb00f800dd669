"""Property-based tests for alert rule parameterization."""

from hypothesis import given
from hypothesis import strategies as st

from mgr_assembler.alerts import BUILTIN_ALERTS, parameterize_alert_rules, render_alert_rules

alert_names = st.sampled_from(BUILTIN_ALERTS.names())
durations = st.builds(lambda n, u: f"{n}{u}", st.integers(0, 120), st.sampled_from("smh"))
severities = st.sampled_from(["warning", "error", "critical"])

overrides = st.dictionaries(
    alert_names,
    st.fixed_dictionaries({}, optional={"for": durations, "severityLevel": severities}),
    max_size=5,
)


@given(overrides=overrides)
def test_parameterize_is_idempotent(overrides):
    """
    Property: Applying the same overrides twice gives the same rule set as
    applying them once.
    """
    once = parameterize_alert_rules(overrides)
    twice = parameterize_alert_rules(overrides, catalog=once)

    assert once == twice


@given(overrides=overrides)
def test_only_overridden_fields_change(overrides):
    """
    Property: Fields not named in the overrides keep their catalog values.
    """
    result = render_alert_rules(parameterize_alert_rules(overrides))["alerts"]
    defaults = render_alert_rules(BUILTIN_ALERTS)["alerts"]

    assert list(result) == list(defaults)
    for name, fields in defaults.items():
        changed = overrides.get(name, {})
        for field, value in fields.items():
            assert result[name][field] == changed.get(field, value)


def test_empty_overrides_give_catalog():
    assert parameterize_alert_rules({}) == BUILTIN_ALERTS
    assert parameterize_alert_rules(None) == BUILTIN_ALERTS
