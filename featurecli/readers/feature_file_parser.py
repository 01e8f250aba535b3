from dataclasses import replace
from pathlib import Path
from beartype.typing import Iterable, List, Optional, Union

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import (
    CompilationResult,
    Feature,
    FileFailure,
    Scenario,
    TagNode,
    ValidationError,
    ValidationResult,
)
from featurecli.data_classes.validation_exception import FeatureValidationError, GherkinError, ParseError
from featurecli.logging import get_logger
from featurecli.readers.data_table_parser import DataTableParser
from featurecli.readers.doc_string_parser import DocStringParser
from featurecli.readers.examples_parser import ExamplesParser
from featurecli.readers.feature_validator import FeatureValidator
from featurecli.readers.file_parser import FileParser
from featurecli.readers.gherkin_lexer import GherkinLexer
from featurecli.readers.gherkin_parser import GherkinParser
from featurecli.readers.tag_parser import TagParser

logger = get_logger(__name__)


class FeatureFileParser(FileParser):
    """Compiles feature files into a flat list of concrete, tag-filtered Scenarios.

    Runs text through the lexer, parser and validator, expands Scenario
    Outlines and filters the result with a tag expression.
    """

    def __init__(
        self,
        max_examples_per_outline: int = settings.MAX_EXAMPLES_PER_OUTLINE,
        strict: bool = False,
        language: str = settings.DEFAULT_LANGUAGE,
        encoding: str = "utf-8",
    ):
        super().__init__(encoding)
        self.lexer = GherkinLexer(language)
        self.table_parser = DataTableParser()
        self.parser = GherkinParser(self.table_parser, DocStringParser())
        self.examples_parser = ExamplesParser(max_examples_per_outline, strict, self.table_parser)
        self.tag_parser = TagParser()
        self.validator = FeatureValidator(self.examples_parser, self.tag_parser)

    def parse_content(self, content: str, source_path: str = "", warnings: Optional[List[str]] = None) -> Feature:
        """
        Parse and validate feature text.

        :param content: raw feature file text
        :param source_path: path reported in errors and stored as Feature.uri
        :param warnings: optional list collecting validation warnings
        :raises GherkinError: on lexing, parsing or validation failures
        """
        text = self.lexer.normalize(content)
        if not text.strip():
            raise ParseError("Feature file is empty", source_path=source_path)

        tokens = self.lexer.tokenize(text, source_path)
        feature = self.parser.parse(tokens, source_path)
        if not feature.name and source_path:
            feature.name = Path(source_path).stem

        result = self.validator.validate(feature)
        if not result.valid:
            raise FeatureValidationError(result.errors, source_path)
        for warning in result.warnings:
            logger.debug(warning, uri=source_path)
            if warnings is not None:
                warnings.append(f"{source_path}: {warning}" if source_path else warning)
        return feature

    def check_feature_file(self, filepath: Union[str, Path]) -> Path:
        path = self.check_file(filepath)
        if path.suffix != settings.FEATURE_FILE_EXTENSION:
            raise ParseError(f"Expected a {settings.FEATURE_FILE_EXTENSION} file", source_path=str(path))
        return path

    def parse_file(self, filepath: Union[str, Path], warnings: Optional[List[str]] = None) -> Feature:
        path = self.check_feature_file(filepath)
        return self.parse_content(self.read_file(path), str(filepath), warnings)

    def validate_file(self, filepath: Union[str, Path]) -> ValidationResult:
        """Lint a feature file; syntax errors are reported as a single validation error"""
        source_path = str(filepath)
        try:
            path = self.check_feature_file(filepath)
            text = self.lexer.normalize(self.read_file(path))
            if not text.strip():
                raise ParseError("Feature file is empty", source_path=source_path)
            feature = self.parser.parse(self.lexer.tokenize(text, source_path), source_path)
        except GherkinError as e:
            return ValidationResult(valid=False, errors=[ValidationError(e.message, e.line)])
        if not feature.name:
            feature.name = Path(source_path).stem
        return self.validator.validate(feature)

    def compile_feature(
        self, feature: Feature, tag_expression: str = "", warnings: Optional[List[str]] = None
    ) -> List[Scenario]:
        """Expand outlines and keep the scenarios matching `tag_expression`; blank keeps all"""
        node = self._parse_filter(tag_expression)
        return self._compile(feature, node, warnings)

    def _parse_filter(self, tag_expression: Optional[str]) -> Optional[TagNode]:
        if not tag_expression or not tag_expression.strip():
            return None
        return self.tag_parser.parse_expression(tag_expression)

    def _compile(self, feature: Feature, node: Optional[TagNode], warnings: Optional[List[str]]) -> List[Scenario]:
        selected = []
        for scenario in feature.scenarios:
            if scenario.is_outline:
                try:
                    concrete = self.examples_parser.expand_scenario_outline(scenario, warnings)
                except GherkinError as e:
                    raise e.locate(scenario.line, source_path=feature.uri)
            else:
                concrete = [scenario]

            for item in concrete:
                tags = list(feature.tags)
                tags.extend(tag for tag in item.tags if tag not in tags)
                if node is None or self.tag_parser.evaluate_node(node, tags):
                    selected.append(replace(item, tags=tags))

        logger.info("Feature compiled", uri=feature.uri, scenarios=len(selected))
        return selected

    def compile_files(
        self, paths: Iterable[Union[str, Path]], tag_expression: str = "", progress_bar=None
    ) -> CompilationResult:
        """
        Compile several feature files; a file that fails is recorded and skipped.

        :raises TagExpressionError: when `tag_expression` cannot be parsed
        """
        node = self._parse_filter(tag_expression)
        result = CompilationResult()

        for path in paths:
            try:
                feature = self.parse_file(path, result.warnings)
                scenarios = self._compile(feature, node, result.warnings)
            except GherkinError as e:
                e.locate(source_path=str(path))
                logger.error("Skipping feature file", uri=str(path), error=e.message, line=e.line)
                result.failures.append(FileFailure(path=str(path), message=e.message, line=e.line, column=e.column))
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Could not read feature file", uri=str(path), error=str(e))
                result.failures.append(FileFailure(path=str(path), message=str(e)))
            else:
                result.features.append(feature)
                result.scenarios.extend(scenarios)
            if progress_bar is not None:
                progress_bar.update(1)

        return result
