"""Data models for the parameterized alert rule catalog.

Field aliases (``limit``, ``for``, ``severityLevel``, ``osdUpRate``) are the
names consumed by the Prometheus rule template and existing dashboards.
"""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

SEVERITIES = ["critical", "error", "warning", "info"]

_DURATION_PATTERN = re.compile(r"^(\d+(ms|s|m|h|d|w|y))+$")


def _check_duration(v: str) -> str:
    if not _DURATION_PATTERN.match(v):
        raise ValueError(f"'{v}' is not a Prometheus duration (e.g. 30s, 5m, 1h30m)")
    return v


class AlertRule(BaseModel):
    """One named alert: optional threshold plus duration and severity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    threshold: float | None = Field(default=None, alias="limit")
    duration: str = Field(alias="for")
    severity: str
    severity_level: str = Field(alias="severityLevel")
    osd_up_rate: str | None = Field(default=None, alias="osdUpRate")

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: str) -> str:
        return _check_duration(v)

    @field_validator("osd_up_rate")
    @classmethod
    def validate_osd_up_rate(cls, v: str | None) -> str | None:
        return v if v is None else _check_duration(v)

    @field_validator("severity", "severity_level")
    @classmethod
    def validate_severity(cls, v: str) -> str:
        """Validate severity is one of the alertmanager severities."""
        if v not in SEVERITIES:
            raise ValueError(f"severity must be one of {SEVERITIES}, got '{v}'")
        return v

    def to_document(self) -> dict:
        """Render with the external field names, omitting absent fields."""
        doc = self.model_dump(by_alias=True, exclude_none=True)
        # Integral limits (e.g. flap counts) stay integers in the rendered rules
        if self.threshold is not None and self.threshold.is_integer():
            doc["limit"] = int(self.threshold)
        return doc


class AlertRuleSet(BaseModel):
    """Ordered mapping from alert name to its rule record."""

    model_config = ConfigDict(frozen=True)

    alerts: dict[str, AlertRule]

    def __getitem__(self, name: str) -> AlertRule:
        return self.alerts[name]

    def __contains__(self, name: str) -> bool:
        return name in self.alerts

    def __len__(self) -> int:
        return len(self.alerts)

    def names(self) -> list[str]:
        return list(self.alerts)

    def to_document(self) -> dict[str, dict]:
        return {name: rule.to_document() for name, rule in self.alerts.items()}
