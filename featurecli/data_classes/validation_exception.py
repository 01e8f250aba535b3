from beartype.typing import List, Optional


class ValidationException(Exception):
    """Exception raised for validation errors in dataclass.

    Attributes:
        field_name: input field name that didn't pass validation
        class_name: input class name that didn't pass validation
        reason: reason of validation error
    """

    def __init__(self, field_name: str, class_name: str, reason=""):
        self.field_name = field_name
        self.class_name = class_name
        self.reason = reason
        super().__init__(f"Invalid {field_name} in {class_name}. {reason}")


class GherkinError(Exception):
    """Base class for errors raised while compiling feature files.

    Attributes:
        message: description of the problem
        line: 1-based line number, when known
        column: 1-based column number, when known
        source_path: path of the feature file, when known
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        source_path: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.source_path = source_path
        super().__init__(self.describe())

    def describe(self) -> str:
        location = [str(part) for part in (self.source_path, self.line, self.column) if part not in (None, "")]
        if location:
            return f"{':'.join(location)}: {self.message}"
        return self.message

    def locate(self, line: Optional[int] = None, column: Optional[int] = None, source_path: Optional[str] = None):
        """Fill in location fields that are still unknown and return the error"""
        if self.line is None:
            self.line = line
        if self.column is None:
            self.column = column
        if not self.source_path:
            self.source_path = source_path
        self.args = (self.describe(),)
        return self

    def __str__(self):
        return self.describe()


class LexError(GherkinError):
    """Raised by the lexer for a line that cannot be tokenized."""


class ParseError(GherkinError):
    """Raised by the parser when the token stream breaks Gherkin structure."""


class DataTableError(GherkinError):
    """Raised for tables that are empty or not rectangular."""


class DocStringError(GherkinError):
    """Raised for doc strings without a valid opening or closing delimiter."""


class ExamplesError(GherkinError):
    """Raised when a Scenario Outline cannot be expanded with its Examples."""


class TagExpressionError(GherkinError):
    """Raised for tag filter expressions that cannot be parsed."""


class FeatureValidationError(GherkinError):
    """Raised when a parsed Feature breaks one or more structural rules."""

    def __init__(self, errors: List, source_path: Optional[str] = None):
        self.errors = list(errors)
        message = "Feature validation failed: " + "; ".join(error.message for error in self.errors)
        super().__init__(message, source_path=source_path)
