from enum import Enum


class SeverityLevel(str, Enum):
    """Vulnerability severity, declared from most to least severe."""
    CRITICAL = 'CRITICAL'
    HIGH = 'HIGH'
    MEDIUM = 'MEDIUM'
    LOW = 'LOW'
    NONE = 'NONE'

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        """Position in the total order; 0 is the most severe."""
        return list(SeverityLevel).index(self)

    def is_more_severe_than(self, other: 'SeverityLevel') -> bool:
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: 'str | SeverityLevel | None') -> 'SeverityLevel | None':
        """Case-insensitive lookup; returns None for unknown values."""
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None

    @classmethod
    def from_cvss(cls, score: float | None) -> 'SeverityLevel':
        if score is None:
            return cls.NONE
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MEDIUM
        if score > 0.0:
            return cls.LOW
        return cls.NONE


class FailPolicy(str, Enum):
    ALWAYS = 'ALWAYS'
    PULL_REQUEST = 'PULL_REQUEST'
    NEVER = 'NEVER'

    def __str__(self) -> str:
        return self.value
