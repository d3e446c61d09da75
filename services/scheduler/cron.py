"""
Cron expression helpers.

Only the interval shapes the autopilot is configured with are
schedulable: ``*/N * * * *`` (every N minutes) and ``M */N * * *``
(every N hours at minute M). Times are UTC.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.errors import ConfigurationError

STEP = re.compile(r"\*/(\d+)")


def describe_cron_schedule(expression: str) -> str:
    """Human readable form of a cron expression, or the expression itself."""
    parts = expression.split()
    if len(parts) != 5:
        return expression

    minute, hour = parts[0], parts[1]
    if hour.startswith("*/"):
        return f"Every {hour[2:]} hours"
    if minute.startswith("*/"):
        return f"Every {minute[2:]} minutes"
    return expression


@dataclass(frozen=True)
class CronSchedule:
    expression: str
    unit: str
    step: int
    minute: int = 0

    @classmethod
    def parse(cls, expression: str) -> "CronSchedule":
        parts = expression.split()
        if len(parts) != 5 or parts[2:] != ["*", "*", "*"]:
            raise ConfigurationError(f"Unsupported cron expression: {expression}")

        minute, hour = parts[0], parts[1]
        minute_step = STEP.fullmatch(minute)
        if minute_step and hour == "*":
            step = int(minute_step.group(1))
            if 1 <= step <= 59:
                return cls(expression, "minutes", step)

        if minute.isdigit() and int(minute) < 60:
            if hour == "*":
                return cls(expression, "hours", 1, int(minute))
            hour_step = STEP.fullmatch(hour)
            if hour_step and 1 <= int(hour_step.group(1)) <= 23:
                return cls(expression, "hours", int(hour_step.group(1)), int(minute))

        raise ConfigurationError(f"Unsupported cron expression: {expression}")

    def next_after(self, now: datetime) -> datetime:
        """First firing time strictly after ``now``."""
        if self.unit == "minutes":
            candidate = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
            while candidate.minute % self.step:
                candidate += timedelta(minutes=1)
            return candidate

        candidate = now.replace(minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(hours=1)
        while candidate.hour % self.step:
            candidate += timedelta(hours=1)
        return candidate

    @property
    def description(self) -> str:
        return describe_cron_schedule(self.expression)
