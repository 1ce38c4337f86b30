"""Retention policy applied by ``restic forget``."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetentionPolicy:
    """How many periodic snapshots to keep per tag and path set.

    Attributes:
        daily: Number of daily snapshots to keep
        weekly: Number of weekly snapshots to keep
        monthly: Number of monthly snapshots to keep
        yearly: Number of yearly snapshots to keep
    """

    daily: int = 7
    weekly: int = 8
    monthly: int = 1
    yearly: int = 1

    def __post_init__(self):
        for name, value in self.as_dict().items():
            # bool is an int subclass but never a sensible count
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Retention '{name}' must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"Retention '{name}' must not be negative, got {value}")

    def as_dict(self) -> dict[str, int]:
        return {
            "daily": self.daily,
            "weekly": self.weekly,
            "monthly": self.monthly,
            "yearly": self.yearly,
        }

    @property
    def keeps_nothing(self) -> bool:
        """True when every counter is zero, so forget would drop every snapshot."""
        return not any(self.as_dict().values())

    def to_args(self) -> list[str]:
        """Render the counters as restic ``--keep-*`` arguments."""
        args = []
        for name, value in self.as_dict().items():
            args.extend([f"--keep-{name}", str(value)])
        return args

    def describe(self) -> str:
        return ", ".join(f"{name}={value}" for name, value in self.as_dict().items())
