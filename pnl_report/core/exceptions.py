from typing import List, Optional


class AppError(Exception):
    """Base class for all application errors"""
    pass

class ConfigurationError(AppError):
    """Invalid configuration (bad environment variable value)"""
    pass

class DataSourceError(AppError):
    """Input data problem (malformed CSV, unknown enum string, price API failure)"""
    pass

class DataDestinationError(AppError):
    """Output could not be written"""
    pass

class BusinessLogicError(AppError):
    """Accounting cannot continue with the given data"""
    pass

class InvalidArgumentError(BusinessLogicError, ValueError):
    """Invalid argument for a domain operation (bad merge, bad subscription setup)"""
    pass

class InconsistentTransactionError(BusinessLogicError):
    """The raw changes of a transaction contradict each other"""
    pass

class UnknownTransactionError(BusinessLogicError):
    """A transaction does not match any known shape"""

    def __init__(self, message: str, operations: Optional[dict] = None):
        super().__init__(message)
        self.operations = operations or {}

class MissingExtraInfoError(BusinessLogicError):
    """Prices, exchange rates or proportions must be supplied by the user"""

    def __init__(self, message: str, missing: Optional[List] = None):
        super().__init__(message)
        self.missing = missing or []
