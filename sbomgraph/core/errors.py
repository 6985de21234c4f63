class PolicyViolationError(Exception):
    """Raised when violations are found and the fail policy says the build must stop."""

    def __init__(self, message: str, violations: list | None = None):
        super().__init__(message)
        self.violations = violations or []
