from beartype.typing import List

from featurecli.data_classes.dataclass_gherkin import (
    Feature,
    Scenario,
    StepKeyword,
    ValidationError,
    ValidationResult,
)
from featurecli.readers.examples_parser import ExamplesParser
from featurecli.readers.tag_parser import TagParser


class FeatureValidator:
    """Structural checks over a parsed Feature.

    Problems are collected, never raised; the caller decides whether an
    invalid result rejects the Feature or is only reported.
    """

    def __init__(self, examples_parser: ExamplesParser = None, tag_parser: TagParser = None):
        self.examples_parser = examples_parser or ExamplesParser()
        self.tag_parser = tag_parser or TagParser()

    def validate(self, feature: Feature) -> ValidationResult:
        errors: List[ValidationError] = []
        warnings: List[str] = []

        if not feature.name or not feature.name.strip():
            errors.append(ValidationError("Feature must have a name", feature.line or None))
        if not feature.scenarios:
            errors.append(ValidationError("Feature must have at least one scenario", feature.line or None))
        if not feature.tags:
            warnings.append(f'Feature "{feature.name}" has no tags')

        if feature.background is not None and not feature.background.steps:
            errors.append(ValidationError("Background must have at least one step", feature.background.line or None))

        self._validate_tags(feature.tags, "feature", errors, feature.line)
        seen_names = set()
        for index, scenario in enumerate(feature.scenarios, start=1):
            if not scenario.name or not scenario.name.strip():
                errors.append(ValidationError(f"Scenario {index} must have a name", scenario.line or None))
            elif scenario.name in seen_names:
                errors.append(ValidationError(f'Duplicate scenario name: "{scenario.name}"', scenario.line or None))
            else:
                seen_names.add(scenario.name)

            self._validate_steps(scenario, errors)
            self._validate_tags(scenario.tags, f'scenario "{scenario.name}"', errors, scenario.line)
            if scenario.is_outline:
                self._validate_outline(scenario, errors, warnings)

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _validate_steps(scenario: Scenario, errors: List[ValidationError]):
        if not scenario.steps:
            errors.append(
                ValidationError(f'Scenario "{scenario.name}" must have at least one step', scenario.line or None)
            )
        for index, step in enumerate(scenario.steps, start=1):
            if not step.text or not step.text.strip():
                errors.append(
                    ValidationError(f'Step {index} in scenario "{scenario.name}" must have text', step.line or None)
                )
            if step.keyword not in StepKeyword.ALL:
                errors.append(
                    ValidationError(
                        f'Step {index} in scenario "{scenario.name}" has an unknown keyword "{step.keyword}"',
                        step.line or None,
                    )
                )

    def _validate_tags(self, tags: List[str], owner: str, errors: List[ValidationError], line: int):
        for tag in tags:
            if not self.tag_parser.is_valid_tag(tag):
                errors.append(ValidationError(f'Invalid tag format in {owner}: "{tag}"', line or None))

    def _validate_outline(self, scenario: Scenario, errors: List[ValidationError], warnings: List[str]):
        if not scenario.examples:
            errors.append(
                ValidationError(f'Scenario Outline "{scenario.name}" must have examples', scenario.line or None)
            )
            return

        placeholders = []
        for placeholder in self.examples_parser.find_placeholders(scenario):
            if placeholder.name not in placeholders:
                placeholders.append(placeholder.name)

        for examples in scenario.examples:
            self._validate_tags(examples.tags, f'examples "{examples.name}"', errors, examples.line)
            for name in placeholders:
                if name not in examples.header:
                    errors.append(
                        ValidationError(
                            f'Placeholder <{name}> in scenario "{scenario.name}" not found in examples "{examples.name}"',
                            examples.line or None,
                        )
                    )
            unused = [header for header in examples.header if header not in placeholders]
            if unused:
                warnings.append(f'Examples "{examples.name}" has unused headers: {", ".join(unused)}')
