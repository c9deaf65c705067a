"""Custom exceptions for the categorization and anomaly engine"""


class SpendCoreError(Exception):
    """Base exception for spendcore errors

    Attributes:
        error_code: Stable identifier for callers and service layers
        action: Suggested next step for the end user
    """

    error_code = "INTERNAL_ERROR"
    action = "Please try again in a few moments."

    def __init__(self, message: str, **details):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.error_code,
            "message": self.message,
            "action": self.action,
            **({"details": self.details} if self.details else {}),
        }


class ValidationError(SpendCoreError):
    """Malformed rule input (empty keyword, unknown category)"""
    error_code = "VALIDATION_ERROR"
    action = "Check the keyword and category and try again."


class ProtectedRuleError(SpendCoreError):
    """Mutation attempted on a system rule"""
    error_code = "PROTECTED_RULE"
    action = "System rules cannot be changed. Add a higher-priority rule instead."


class NotFoundError(SpendCoreError):
    """Operation on an unknown id"""
    error_code = "RESOURCE_NOT_FOUND"
    action = "Check the ID and try again."


class AlreadyResolvedError(SpendCoreError):
    """Review action on an anomaly that is no longer open"""
    error_code = "ALREADY_RESOLVED"
    action = "Refresh the anomaly list; this item was already reviewed."


class ConfigurationError(SpendCoreError):
    """Configuration loading errors"""
    error_code = "CONFIGURATION_ERROR"
    action = "Fix the configuration file and restart."


class IngestionError(SpendCoreError):
    """Normalized transaction rows could not be read"""
    error_code = "INGESTION_ERROR"
    action = "Check the file for malformed rows and upload again."
