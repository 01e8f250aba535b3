from beartype.typing import List, Optional

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import (
    DataTable,
    DocString,
    Examples,
    Feature,
    Scenario,
    ScenarioType,
    Step,
    StepKeyword,
    Token,
    TokenType,
)
from featurecli.data_classes.validation_exception import GherkinError, ParseError
from featurecli.logging import get_logger
from featurecli.readers.data_table_parser import DataTableParser
from featurecli.readers.doc_string_parser import DocStringParser

logger = get_logger(__name__)

SKIPPABLE = (TokenType.Comment, TokenType.Empty, TokenType.Language)
SCENARIO_LINES = (TokenType.ScenarioLine, TokenType.ScenarioOutlineLine)


class _TokenCursor:
    """Forward-only position over a token list"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def current(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.current()
        self.index += 1
        return token

    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def skip_ignored(self):
        while not self.at_end() and self.current().type in SKIPPABLE:
            self.index += 1

    def next_significant(self) -> Optional[Token]:
        """First token from the current position that is neither a tag nor ignorable"""
        index = self.index
        while index < len(self.tokens) and self.tokens[index].type in SKIPPABLE + (TokenType.TagLine,):
            index += 1
        return self.tokens[index] if index < len(self.tokens) else None


class GherkinParser:
    """Builds a Feature from the lexer's token stream.

    All cursor state lives in a per-call `_TokenCursor`, so one parser can be
    shared by callers without resetting it between files.
    """

    def __init__(self, table_parser: DataTableParser = None, doc_string_parser: DocStringParser = None):
        self.table_parser = table_parser or DataTableParser()
        self.doc_string_parser = doc_string_parser or DocStringParser()

    def parse(self, tokens: List[Token], source_path: str = "") -> Feature:
        """
        :param tokens: output of GherkinLexer.tokenize
        :param source_path: feature file path used in errors and as Feature.uri
        :return: parsed Feature
        :raises ParseError: when the token stream breaks Gherkin structure
        """
        cursor = _TokenCursor(tokens)
        try:
            return self._parse_feature(cursor, source_path)
        except GherkinError as e:
            raise e.locate(source_path=source_path)

    def _parse_feature(self, cursor: _TokenCursor, source_path: str) -> Feature:
        cursor.skip_ignored()
        feature_tags = self._parse_tags(cursor)
        feature_token = cursor.current()
        if feature_token is None or feature_token.type != TokenType.FeatureLine:
            line = feature_token.line if feature_token else 1
            column = feature_token.column if feature_token else 1
            raise ParseError("Expected Feature declaration", line, column, source_path)
        cursor.advance()

        feature = Feature(
            name=feature_token.value,
            description=self._parse_description(cursor),
            tags=feature_tags,
            language=self._find_language(cursor.tokens),
            uri=source_path,
            line=feature_token.line,
        )

        while not cursor.at_end():
            token = cursor.current()
            if token.type in SKIPPABLE:
                cursor.advance()
            elif token.type == TokenType.BackgroundLine:
                if feature.background is not None:
                    raise self._error("Multiple Background sections are not allowed", token, source_path)
                feature.background = self._parse_background(cursor, source_path)
            elif token.type in SCENARIO_LINES:
                feature.scenarios.append(self._parse_scenario(cursor, [], source_path))
            elif token.type == TokenType.TagLine:
                self._parse_tagged_block(cursor, feature, source_path)
            elif token.type == TokenType.FeatureLine:
                raise self._error("Multiple Feature declarations found", token, source_path)
            elif token.type == TokenType.StepLine:
                raise self._error("Step must appear within a Scenario or Background", token, source_path)
            elif token.type == TokenType.ExamplesLine:
                raise self._error("Examples must appear within a Scenario Outline", token, source_path)
            elif token.type == TokenType.TableRow:
                raise self._error("Data table must follow a step", token, source_path)
            elif token.type == TokenType.DocStringSeparator:
                raise self._error("Doc string must follow a step", token, source_path)
            else:
                logger.warning(
                    "Skipping text that is not a step or block keyword", uri=source_path, line=token.line, text=token.value
                )
                cursor.advance()

        if not feature.scenarios:
            raise self._error("Feature must have at least one Scenario", feature_token, source_path)
        return feature

    def _parse_tagged_block(self, cursor: _TokenCursor, feature: Feature, source_path: str):
        first_tag = cursor.current()
        tags = self._parse_tags(cursor)
        cursor.skip_ignored()
        token = cursor.current()
        if token is not None and token.type in SCENARIO_LINES:
            feature.scenarios.append(self._parse_scenario(cursor, tags, source_path))
        else:
            logger.warning(
                "Skipping tags that are not followed by a Scenario", uri=source_path, line=first_tag.line, tags=tags
            )

    @staticmethod
    def _parse_tags(cursor: _TokenCursor) -> List[str]:
        tags = []
        while not cursor.at_end() and cursor.current().type in (TokenType.TagLine,) + SKIPPABLE:
            if cursor.current().type == TokenType.TagLine and cursor.current().value not in tags:
                tags.append(cursor.current().value)
            cursor.advance()
        return tags

    @staticmethod
    def _parse_description(cursor: _TokenCursor) -> str:
        lines = []
        while not cursor.at_end():
            token = cursor.current()
            if token.type == TokenType.Description:
                lines.append(token.value)
            elif token.type not in SKIPPABLE:
                break
            cursor.advance()
        return "\n".join(lines).strip()

    @staticmethod
    def _find_language(tokens: List[Token]) -> str:
        for token in tokens:
            if token.type == TokenType.Language:
                return token.value
        return settings.DEFAULT_LANGUAGE

    def _parse_background(self, cursor: _TokenCursor, source_path: str) -> Scenario:
        background_token = cursor.advance()
        background = Scenario(
            type=ScenarioType.BACKGROUND,
            name=background_token.value or "Background",
            description=self._parse_description(cursor),
            line=background_token.line,
        )

        while not cursor.at_end():
            token = cursor.current()
            if token.type == TokenType.StepLine:
                background.steps.append(self._parse_step(cursor, source_path))
            elif token.type in SKIPPABLE:
                cursor.advance()
            elif token.type in (TokenType.TableRow, TokenType.DocStringSeparator):
                raise self._error("Step argument must directly follow its step", token, source_path)
            elif token.type == TokenType.ExamplesLine:
                raise self._error("Examples are not allowed in a Background", token, source_path)
            else:
                break

        if not background.steps:
            raise self._error("Background must have at least one step", background_token, source_path)
        return background

    def _parse_scenario(self, cursor: _TokenCursor, tags: List[str], source_path: str) -> Scenario:
        scenario_token = cursor.advance()
        is_outline = scenario_token.type == TokenType.ScenarioOutlineLine
        scenario = Scenario(
            type=ScenarioType.SCENARIO_OUTLINE if is_outline else ScenarioType.SCENARIO,
            name=scenario_token.value,
            description=self._parse_description(cursor),
            tags=list(tags),
            examples=[] if is_outline else None,
            line=scenario_token.line,
        )

        while not cursor.at_end():
            token = cursor.current()
            if token.type == TokenType.StepLine:
                if scenario.examples:
                    raise self._error("Steps must appear before Examples", token, source_path)
                scenario.steps.append(self._parse_step(cursor, source_path))
            elif token.type in SKIPPABLE:
                cursor.advance()
            elif token.type == TokenType.ExamplesLine:
                if not is_outline:
                    raise self._error("Examples are only allowed in a Scenario Outline", token, source_path)
                scenario.examples.append(self._parse_examples(cursor, [], source_path))
            elif token.type == TokenType.TagLine:
                following = cursor.next_significant()
                if not is_outline or following is None or following.type != TokenType.ExamplesLine:
                    break
                examples_tags = self._parse_tags(cursor)
                scenario.examples.append(self._parse_examples(cursor, examples_tags, source_path))
            elif token.type in (TokenType.TableRow, TokenType.DocStringSeparator):
                raise self._error("Step argument must directly follow its step", token, source_path)
            else:
                break

        if not scenario.steps:
            raise self._error("Scenario must have at least one step", scenario_token, source_path)
        if is_outline and not scenario.examples:
            raise self._error("Scenario Outline must have at least one Examples section", scenario_token, source_path)
        return scenario

    def _parse_step(self, cursor: _TokenCursor, source_path: str) -> Step:
        step_token = cursor.advance()
        keyword = step_token.keyword or self._infer_keyword(step_token, source_path)
        data_table = None
        doc_string = None

        self._skip_comments_and_blanks(cursor)
        token = cursor.current()
        if token is not None and token.type == TokenType.TableRow:
            data_table = self._parse_data_table(cursor, source_path)
        elif token is not None and token.type == TokenType.DocStringSeparator:
            doc_string = self._parse_doc_string(cursor, source_path)

        if data_table is not None or doc_string is not None:
            self._skip_comments_and_blanks(cursor)
            token = cursor.current()
            if token is not None and token.type in (TokenType.TableRow, TokenType.DocStringSeparator):
                if data_table is not None and token.type == TokenType.TableRow:
                    raise self._error("Data table rows must be contiguous", token, source_path)
                if doc_string is not None and token.type == TokenType.DocStringSeparator:
                    raise self._error("A step can have only one doc string", token, source_path)
                raise self._error("A step can have either a data table or a doc string, not both", token, source_path)

        return Step(
            keyword=keyword, text=step_token.value, line=step_token.line, data_table=data_table, doc_string=doc_string
        )

    @staticmethod
    def _skip_comments_and_blanks(cursor: _TokenCursor):
        while not cursor.at_end() and cursor.current().type in (TokenType.Comment, TokenType.Empty):
            cursor.advance()

    @staticmethod
    def _infer_keyword(token: Token, source_path: str) -> str:
        text = token.value.lower()
        for keyword in StepKeyword.ALL:
            if text.startswith(keyword.lower()):
                return keyword
        logger.warning(
            "Could not determine step keyword, defaulting to Given", uri=source_path, line=token.line, step=token.value
        )
        return StepKeyword.GIVEN

    def _collect_rows(self, cursor: _TokenCursor) -> List[Token]:
        rows = []
        while not cursor.at_end() and cursor.current().type in (TokenType.TableRow, TokenType.Comment):
            token = cursor.advance()
            if token.type == TokenType.TableRow:
                rows.append(token)
        return rows

    def _parse_data_table(self, cursor: _TokenCursor, source_path: str) -> DataTable:
        row_tokens = self._collect_rows(cursor)
        rows = [self._split_row(token) for token in row_tokens]
        width = len(rows[0])
        for index, (token, row) in enumerate(zip(row_tokens, rows), start=1):
            if len(row) != width:
                raise self._error(
                    f"Data table row {index} has {len(row)} cells but expected {width}", token, source_path
                )
        return DataTable(rows=rows)

    def _split_row(self, token: Token) -> List[str]:
        return self.table_parser.parse_row(token.value, convert_types=False)

    def _parse_doc_string(self, cursor: _TokenCursor, source_path: str) -> DocString:
        token = cursor.advance()
        try:
            return self.doc_string_parser.parse_doc_string(token.value.split("\n"), token.line)
        except GherkinError as e:
            raise e.locate(token.line, token.column, source_path)

    def _parse_examples(self, cursor: _TokenCursor, tags: List[str], source_path: str) -> Examples:
        examples_token = cursor.advance()
        examples = Examples(
            name=examples_token.value or "Examples",
            description=self._parse_description(cursor),
            tags=list(tags),
            line=examples_token.line,
        )

        row_tokens = self._collect_rows(cursor)
        if not row_tokens:
            raise self._error("Examples must have a table with a header row", examples_token, source_path)

        examples.header = self._split_row(row_tokens[0])
        if len(row_tokens) < 2:
            raise self._error("Examples table must have at least one data row", examples_token, source_path)

        for index, token in enumerate(row_tokens[1:], start=1):
            cells = self._split_row(token)
            if len(cells) != len(examples.header):
                raise self._error(
                    f"Examples row {index} has {len(cells)} cells but the header has {len(examples.header)}",
                    token,
                    source_path,
                )
            examples.rows.append(cells)
        return examples

    @staticmethod
    def _error(message: str, token: Token, source_path: str) -> ParseError:
        return ParseError(message, token.line, token.column, source_path)
