import enum
from dataclasses import dataclass
from beartype.typing import Dict, List, Optional

from serde import field, serialize, deserialize

from featurecli.data_classes.validation_exception import ValidationException


class TokenType(enum.Enum):
    FeatureLine = "FeatureLine"
    BackgroundLine = "BackgroundLine"
    ScenarioLine = "ScenarioLine"
    ScenarioOutlineLine = "ScenarioOutlineLine"
    ExamplesLine = "ExamplesLine"
    StepLine = "StepLine"
    TagLine = "TagLine"
    TableRow = "TableRow"
    DocStringSeparator = "DocStringSeparator"
    Comment = "Comment"
    Empty = "Empty"
    Description = "Description"
    Language = "Language"


class ScenarioType:

    BACKGROUND = "background"
    SCENARIO = "scenario"
    SCENARIO_OUTLINE = "scenario_outline"


class StepKeyword:

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"

    ALL = (GIVEN, WHEN, THEN, AND, BUT)


@dataclass(frozen=True)
class Token:
    """Single classified line of a feature file.

    For step lines `keyword` holds the canonical step keyword (None for `*`),
    for doc string blocks it holds the content type written after the delimiter.
    """

    type: TokenType
    value: str
    line: int
    column: int = 1
    indent: int = 0
    keyword: Optional[str] = None


@serialize
@deserialize
@dataclass
class DataTable:
    """Rectangular matrix of string cells attached to a step"""

    rows: List[List[str]] = field(default_factory=list)

    def __post_init__(self):
        if self.rows:
            width = len(self.rows[0])
            for index, row in enumerate(self.rows, start=1):
                if len(row) != width:
                    raise ValidationException(
                        field_name="rows",
                        class_name=self.__class__.__name__,
                        reason=f"Row {index} has {len(row)} cells but expected {width}.",
                    )

    def raw(self) -> List[List[str]]:
        return [list(row) for row in self.rows]

    def hashes(self) -> List[Dict[str, str]]:
        """Rows after the first, keyed by the header row"""
        if len(self.rows) < 2:
            return []
        header = self.rows[0]
        return [dict(zip(header, row)) for row in self.rows[1:]]

    def rows_hash(self) -> Dict[str, str]:
        """First column as keys, second column as values"""
        return {row[0]: row[1] for row in self.rows if len(row) >= 2}

    def rows_without_header(self) -> List[List[str]]:
        return [list(row) for row in self.rows[1:]]

    @property
    def header(self) -> List[str]:
        return list(self.rows[0]) if self.rows else []


@serialize
@deserialize
@dataclass
class DocString:
    """Multi-line text block attached to a step"""

    content: str
    content_type: Optional[str] = field(default=None, skip_if_default=True)
    line: int = 0
    delimiter: str = '"""'


@serialize
@deserialize
@dataclass
class Step:
    keyword: str
    text: str
    line: int = 0
    data_table: Optional[DataTable] = field(default=None, skip_if_default=True)
    doc_string: Optional[DocString] = field(default=None, skip_if_default=True)

    def __post_init__(self):
        if self.data_table is not None and self.doc_string is not None:
            raise ValidationException(
                field_name="data_table",
                class_name=self.__class__.__name__,
                reason="A step can have either a data table or a doc string, not both.",
            )


@serialize
@deserialize
@dataclass
class Examples:
    name: str = "Examples"
    description: str = ""
    tags: List[str] = field(default_factory=list)
    header: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    line: int = 0


@serialize
@deserialize
@dataclass
class Scenario:
    type: str
    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)
    examples: Optional[List[Examples]] = field(default=None, skip_if_default=True)
    line: int = 0

    @property
    def is_outline(self) -> bool:
        return self.type == ScenarioType.SCENARIO_OUTLINE


@serialize
@deserialize
@dataclass
class Feature:
    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    language: str = "en"
    uri: str = ""
    background: Optional[Scenario] = field(default=None, skip_if_default=True)
    scenarios: List[Scenario] = field(default_factory=list)
    line: int = 0


@dataclass(frozen=True)
class Placeholder:
    """`<name>` occurrence inside an outline; step_index -1 is the outline name"""

    name: str
    step_index: int
    start: int
    end: int


@dataclass(frozen=True)
class TagNode:
    """Node of a parsed tag expression.

    `type` is one of "tag", "not", "and", "or"; tags carry `value`,
    negations carry `operand`, binary nodes carry `left` and `right`.
    """

    type: str
    value: Optional[str] = None
    operand: Optional["TagNode"] = None
    left: Optional["TagNode"] = None
    right: Optional["TagNode"] = None


@serialize
@dataclass
class ValidationError:
    message: str
    line: Optional[int] = field(default=None, skip_if_default=True)


@serialize
@dataclass
class ValidationResult:
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@serialize
@dataclass
class FileFailure:
    """Feature file excluded from a compile run"""

    path: str
    message: str
    line: Optional[int] = field(default=None, skip_if_default=True)
    column: Optional[int] = field(default=None, skip_if_default=True)


@serialize
@dataclass
class CompilationResult:
    features: List[Feature] = field(default_factory=list)
    scenarios: List[Scenario] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
