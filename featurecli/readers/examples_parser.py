import re
from beartype.typing import Any, Callable, Dict, List, Optional

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import (
    DataTable,
    DocString,
    Examples,
    Placeholder,
    Scenario,
    ScenarioType,
    Step,
)
from featurecli.data_classes.validation_exception import DataTableError, ExamplesError
from featurecli.logging import get_logger
from featurecli.readers.data_table_parser import DataTableParser

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"<([^<>]+)>")
EXAMPLES_KEYWORDS = ("Examples:", "Scenarios:")


class ExamplesParser:
    """Expands Scenario Outlines into concrete Scenarios, one per Examples row.

    :param max_examples_per_outline: expansion ceiling per outline; extra rows
        are dropped with a warning instead of failing the run
    :param strict: raise on placeholders that have no value in the row instead
        of leaving them literal
    """

    def __init__(
        self,
        max_examples_per_outline: int = settings.MAX_EXAMPLES_PER_OUTLINE,
        strict: bool = False,
        table_parser: DataTableParser = None,
    ):
        self.max_examples_per_outline = max_examples_per_outline
        self.strict = strict
        self.table_parser = table_parser or DataTableParser()

    def find_placeholders(self, outline: Scenario) -> List[Placeholder]:
        """Every `<name>` occurrence in the outline name, step text, table cells and doc strings"""
        placeholders = self._scan(outline.name, -1)
        for index, step in enumerate(outline.steps):
            placeholders.extend(self._scan(step.text, index))
            if step.data_table is not None:
                for row in step.data_table.rows:
                    for cell in row:
                        placeholders.extend(self._scan(cell, index))
            if step.doc_string is not None:
                placeholders.extend(self._scan(step.doc_string.content, index))
        return placeholders

    @staticmethod
    def _scan(text: str, step_index: int) -> List[Placeholder]:
        return [
            Placeholder(name=match.group(1), step_index=step_index, start=match.start(), end=match.end())
            for match in PLACEHOLDER_PATTERN.finditer(text or "")
        ]

    def expand_scenario_outline(self, outline: Scenario, warnings: Optional[List[str]] = None) -> List[Scenario]:
        """
        Expand an outline across all of its Examples blocks.

        :param outline: Scenario of type scenario_outline
        :param warnings: optional list that collects non-fatal diagnostics
        :return: concrete scenarios in Examples order, then row order
        :raises ExamplesError: on missing placeholders or malformed Examples
        """
        if not outline.examples:
            raise ExamplesError(f'Scenario Outline "{outline.name}" has no examples', outline.line)

        names = []
        for placeholder in self.find_placeholders(outline):
            if placeholder.name not in names:
                names.append(placeholder.name)

        scenarios = []
        total_rows = sum(len(examples.rows) for examples in outline.examples)
        for examples in outline.examples:
            self.validate_examples(examples)
            self._check_placeholders(outline, examples, names, warnings)

            for row in examples.rows:
                if len(scenarios) >= self.max_examples_per_outline:
                    break
                values = dict(zip(examples.header, row))
                scenarios.append(self._expand_row(outline, examples, values))

        if total_rows > len(scenarios):
            message = (
                f'Scenario Outline "{outline.name}" expands to {total_rows} scenarios; '
                f"kept the first {len(scenarios)} and dropped {total_rows - len(scenarios)}"
            )
            logger.warning(message, outline=outline.name, line=outline.line, limit=self.max_examples_per_outline)
            if warnings is not None:
                warnings.append(message)

        return scenarios

    def _check_placeholders(
        self, outline: Scenario, examples: Examples, names: List[str], warnings: Optional[List[str]]
    ):
        missing = [name for name in names if name not in examples.header]
        if missing:
            raise ExamplesError(
                f'Scenario Outline "{outline.name}" has placeholders not found in examples "{examples.name}": '
                + ", ".join(f"<{name}>" for name in missing),
                examples.line,
            )

        unused = [header for header in examples.header if header not in names]
        if unused:
            message = f'Examples "{examples.name}" has unused headers: {", ".join(unused)}'
            logger.warning(message, outline=outline.name, line=examples.line)
            if warnings is not None:
                warnings.append(message)

    def _expand_row(self, outline: Scenario, examples: Examples, values: Dict[str, str]) -> Scenario:
        tags = list(outline.tags)
        for tag in examples.tags:
            if tag not in tags:
                tags.append(tag)
        return Scenario(
            type=ScenarioType.SCENARIO,
            name=self.substitute(outline.name, values),
            description=self.substitute(outline.description, values),
            tags=tags,
            steps=[self._expand_step(step, values) for step in outline.steps],
            line=outline.line,
        )

    def _expand_step(self, step: Step, values: Dict[str, str]) -> Step:
        data_table = None
        if step.data_table is not None:
            data_table = DataTable(
                rows=[[self.substitute(cell, values) for cell in row] for row in step.data_table.rows]
            )
        doc_string = None
        if step.doc_string is not None:
            doc_string = DocString(
                content=self.substitute(step.doc_string.content, values),
                content_type=step.doc_string.content_type,
                line=step.doc_string.line,
                delimiter=step.doc_string.delimiter,
            )
        return Step(
            keyword=step.keyword,
            text=self.substitute(step.text, values),
            line=step.line,
            data_table=data_table,
            doc_string=doc_string,
        )

    def substitute(self, text: str, values: Dict[str, str]) -> str:
        def replace(match):
            name = match.group(1)
            if name in values:
                return values[name]
            if self.strict:
                raise ExamplesError(f"No value for placeholder <{name}>")
            return match.group(0)

        return PLACEHOLDER_PATTERN.sub(replace, text or "")

    @staticmethod
    def validate_examples(examples: Examples):
        seen = set()
        duplicates = []
        for header in examples.header:
            if not header or not header.strip():
                raise ExamplesError(f'Examples "{examples.name}" cannot have empty headers', examples.line)
            if header in seen and header not in duplicates:
                duplicates.append(header)
            seen.add(header)
        if duplicates:
            raise ExamplesError(
                f'Examples "{examples.name}" has duplicate headers: {", ".join(duplicates)}', examples.line
            )

        for index, row in enumerate(examples.rows, start=1):
            if len(row) != len(examples.header):
                raise ExamplesError(
                    f'Examples "{examples.name}" row {index} has {len(row)} cells but expected {len(examples.header)}',
                    examples.line,
                )

    def parse_examples(self, lines: List[str]) -> Examples:
        """Parse a standalone `Examples:` block followed by its table"""
        if not lines or not any(line.strip() for line in lines):
            raise ExamplesError("Examples section cannot be empty")

        name = "Examples"
        description = []
        start = 0
        first = lines[0].strip()
        for keyword in EXAMPLES_KEYWORDS:
            if first.startswith(keyword):
                name = first[len(keyword):].strip() or "Examples"
                start = 1
                while start < len(lines) and not lines[start].strip().startswith("|"):
                    if lines[start].strip():
                        description.append(lines[start].strip())
                    start += 1
                break

        try:
            table = self.table_parser.parse_table(lines[start:], convert_types=False)
        except DataTableError as e:
            raise ExamplesError(f"Invalid examples table: {e.message}")
        if len(table.rows) < 2:
            raise ExamplesError("Examples table must have a header row and at least one data row")

        examples = Examples(
            name=name, description="\n".join(description), header=table.header, rows=table.rows_without_header()
        )
        self.validate_examples(examples)
        return examples

    @staticmethod
    def generate_examples_table(
        headers: List[str], rows: List[List[str]], name: str = "Examples", tags: Optional[List[str]] = None
    ) -> Examples:
        if not headers:
            raise ExamplesError("Examples table must have at least one header")
        if not rows:
            raise ExamplesError("Examples table must have at least one data row")
        examples = Examples(name=name, tags=list(tags or []), header=list(headers), rows=[list(row) for row in rows])
        ExamplesParser.validate_examples(examples)
        return examples

    @staticmethod
    def merge_examples(first: Examples, second: Examples) -> Examples:
        """Union of both headers; cells a block has no column for are left empty"""
        header = list(first.header)
        for column in second.header:
            if column not in header:
                header.append(column)

        rows = []
        for examples in (first, second):
            for row in examples.rows:
                values = dict(zip(examples.header, row))
                rows.append([values.get(column, "") for column in header])

        tags = list(first.tags)
        for tag in second.tags:
            if tag not in tags:
                tags.append(tag)

        return Examples(
            name=f"{first.name} + {second.name}",
            description="\n".join(text for text in (first.description, second.description) if text),
            tags=tags,
            header=header,
            rows=rows,
            line=first.line,
        )

    def filter_examples(self, examples: Examples, predicate: Callable[[Dict[str, Any]], bool]) -> Examples:
        """Keep the rows whose typed object form satisfies `predicate`"""
        table = DataTable(rows=[list(examples.header)] + [list(row) for row in examples.rows])
        objects = self.table_parser.apply_transform(table, "objects")
        rows = [list(row) for row, obj in zip(examples.rows, objects) if predicate(obj)]
        if not rows:
            logger.warning("Filter resulted in an empty examples table", examples=examples.name)
        return Examples(
            name=examples.name,
            description=examples.description,
            tags=list(examples.tags),
            header=list(examples.header),
            rows=rows,
            line=examples.line,
        )
