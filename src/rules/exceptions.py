"""Scoring engine exceptions."""


class EngineException(Exception):
    """Base exception for scoring engine errors."""

    pass


class RuleConfigurationError(EngineException):
    """Raised when a rule's config does not match the schema for its type."""

    def __init__(self, rule_id: str | None, rule_type: str, detail: str):
        self.rule_id = rule_id
        self.rule_type = rule_type
        self.detail = detail
        super().__init__(f"Rule {rule_id} ({rule_type}) is misconfigured: {detail}")


class UnknownRuleType(EngineException):
    """Raised when a rule carries a type outside the supported set."""

    def __init__(self, rule_id: str | None, rule_type: str):
        self.rule_id = rule_id
        self.rule_type = rule_type
        super().__init__(f"Rule {rule_id} has unknown type {rule_type!r}")


class CorruptRecordError(EngineException):
    """Raised when a stored record cannot be interpreted (e.g. event ends before it starts)."""

    pass
