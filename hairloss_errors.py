"""Error and warning types for the hair-loss analysis."""

from dataclasses import dataclass, field


class FileError(Exception):
    """Input file missing, unreadable or not a table."""


class SchemaError(ValueError):
    """Expected column missing or holding values of the wrong kind."""


class FormulaError(KeyError):
    """Predictor or outcome named in a model is not in the table."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class ConvergenceWarning(UserWarning):
    """Sampler diagnostics suggest the chains have not mixed."""


@dataclass(frozen=True)
class DataQualityIssue:
    """Rows the cleaner removes instead of repairing."""
    kind: str  # "sentinel", "duplicate_id", "missing"
    column: str
    count: int
    ids: tuple = field(default=())

    def describe(self):
        s = f"{self.kind:<13} {self.column:<26} {self.count:>5}"
        if self.ids:
            s += "  ids=" + ",".join(str(i) for i in self.ids[:10])
            if len(self.ids) > 10:
                s += ",..."
        return s
