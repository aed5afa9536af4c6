"""
Error types raised while turning user input into attacker / defender models.

ParseError means a field has to be fixed. The capacity errors mean the input
is well formed but describes a simulation larger than we support; callers
report those as a result message rather than a field error.
"""

from typing import Optional


class CalculatorError(Exception):
    pass


class ParseError(CalculatorError, ValueError):
    def __init__(self, message: str, text: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.text = text
        self.field = field


class CapacityError(CalculatorError):
    message = "Capacity exceeded"

    def __init__(self, limit: int, actual: int):
        super().__init__(self.message)
        self.limit = limit
        self.actual = actual


class TooManyAttacks(CapacityError):
    message = "Too many attacks"


class TooManyAdditionalHits(CapacityError):
    message = "Too many additional hits"
