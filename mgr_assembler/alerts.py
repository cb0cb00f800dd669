"""Built-in alert catalog and its parameterization.

The catalog is closed: overrides may only tune the alerts listed here. The
rendered document feeds the Prometheus rule template, so its field names
(``limit``, ``for``, ``severity``, ``severityLevel``, ``osdUpRate``) must not
change.
"""

from pydantic import ValidationError as PydanticValidationError

from mgr_assembler.exceptions import ValidationError
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.alerts import AlertRule, AlertRuleSet

logger = get_logger(__name__)

DEFAULT_RULE_LABELS = {"prometheus": "rook-prometheus", "role": "alert-rules"}

# Alerts whose limit is a count rather than a ratio
INTEGER_LIMIT_ALERTS = frozenset({"cephOSDFlapping"})

# Attribute name -> document name, so both spellings override the same field
_FIELD_ALIASES = {
    name: field.alias or name for name, field in AlertRule.model_fields.items()
}


def _rule(duration: str, severity_level: str, severity: str, limit: float | None = None, **extra):
    return AlertRule(
        threshold=limit,
        duration=duration,
        severity=severity,
        severity_level=severity_level,
        **extra,
    )


BUILTIN_ALERTS = AlertRuleSet(
    alerts={
        "cephMgrIsAbsent": _rule("5m", "critical", "critical"),
        "cephMgrIsMissingReplicas": _rule("5m", "warning", "warning"),
        "cephMdsMissingReplicas": _rule("5m", "warning", "warning"),
        "cephMonQuorumAtRisk": _rule("15m", "error", "critical"),
        "cephMonQuorumLost": _rule("5m", "critical", "critical"),
        "cephMonHighNumberOfLeaderChanges": _rule("5m", "warning", "warning", limit=0.95),
        "cephNodeDown": _rule("30s", "error", "critical"),
        "cephOSDCriticallyFull": _rule("40s", "error", "critical", limit=0.80),
        "cephOSDFlapping": _rule("0s", "error", "critical", limit=5, osd_up_rate="5m"),
        "cephOSDNearFull": _rule("40s", "warning", "warning", limit=0.75),
        "cephOSDDiskNotResponding": _rule("15m", "error", "critical"),
        "cephOSDDiskUnavailable": _rule("1m", "error", "critical"),
        "cephOSDSlowOps": _rule("30s", "warning", "warning"),
        "cephDataRecoveryTakingTooLong": _rule("2h", "warning", "warning"),
        "cephPGRepairTakingTooLong": _rule("1h", "warning", "warning"),
        "PersistentVolumeUsageNearFull": _rule("5s", "warning", "warning", limit=0.75),
        "PersistentVolumeUsageCritical": _rule("5s", "error", "critical", limit=0.85),
        "cephClusterErrorState": _rule("10m", "error", "critical"),
        "cephClusterWarningState": _rule("15m", "warning", "warning"),
        "cephOSDVersionMismatch": _rule("10m", "warning", "warning"),
        "cephMonVersionMismatch": _rule("10m", "warning", "warning"),
        "cephClusterNearFull": _rule("5s", "warning", "warning", limit=0.75),
        "cephClusterCriticallyFull": _rule("5s", "error", "critical", limit=0.80),
        "cephClusterReadOnly": _rule("0s", "error", "critical", limit=0.85),
        "cephPoolQuotaBytesNearExhaustion": _rule("1m", "warning", "warning", limit=0.70),
        "cephPoolQuotaBytesCriticallyExhausted": _rule("1m", "critical", "critical", limit=0.90),
    }
)


def _check_override_shape(name: str, rule: AlertRule, fields: dict) -> None:
    """Overrides may only retune fields the catalog record already carries."""
    present = rule.model_dump(by_alias=True, exclude_none=True)
    missing = sorted(key for key in fields if key not in present)
    if missing:
        raise ValidationError(
            f"Alert '{name}' has no field(s) {', '.join(missing)}",
            f"Fields that can be overridden: {', '.join(present)}",
        )
    cleared = sorted(key for key, value in fields.items() if value is None)
    if cleared:
        raise ValidationError(f"Alert '{name}' field(s) {', '.join(cleared)} cannot be null")

    limit = fields.get("limit")
    if name in INTEGER_LIMIT_ALERTS and limit is not None:
        if isinstance(limit, bool) or not (
            isinstance(limit, int) or (isinstance(limit, float) and limit.is_integer())
        ):
            raise ValidationError(f"Alert '{name}' limit must be an integer, got {limit!r}")


def parameterize_alert_rules(
    overrides: dict[str, dict] | None, catalog: AlertRuleSet = BUILTIN_ALERTS
) -> AlertRuleSet:
    """Apply per-alert overrides on top of the catalog.

    Fields missing from an override keep their catalog value. Fields may be
    given by their document name (``limit``, ``for``) or attribute name
    (``threshold``, ``duration``). An override cannot add a field the catalog
    record lacks, nor clear one it has.

    Args:
        overrides: Mapping of alert name to the fields to change
        catalog: The rule set to start from

    Returns:
        A new AlertRuleSet; the catalog itself is never modified

    Raises:
        ValidationError: If an alert name is unknown, an override is invalid or
            it would change the shape of a record
    """
    overrides = overrides or {}

    unknown = [name for name in overrides if name not in catalog]
    if unknown:
        raise ValidationError(
            f"Unknown alert(s): {', '.join(sorted(unknown))}",
            f"Known alerts: {', '.join(catalog.names())}",
        )

    alerts = {}
    for name, rule in catalog.alerts.items():
        fields = overrides.get(name)
        if fields is not None and not isinstance(fields, dict):
            raise ValidationError(
                f"Override for alert '{name}' must be a mapping of fields, got {fields!r}"
            )
        if not fields:
            alerts[name] = rule
            continue
        fields = {_FIELD_ALIASES.get(key, key): value for key, value in fields.items()}
        _check_override_shape(name, rule, fields)
        try:
            alerts[name] = AlertRule.model_validate(
                {**rule.model_dump(by_alias=True, exclude_none=True), **fields}
            )
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValidationError(f"Invalid override for alert '{name}'", problems)
        logger.debug(f"Alert {name} overridden with {sorted(fields)}")

    return AlertRuleSet(alerts=alerts)


def render_alert_rules(
    rule_set: AlertRuleSet, labels: dict[str, str] | None = None
) -> dict[str, dict]:
    """Render the rule document consumed by the Prometheus rule template."""
    return {
        "labels": dict(labels or DEFAULT_RULE_LABELS),
        "alerts": rule_set.to_document(),
    }
