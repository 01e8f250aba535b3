import json
import time

import click
import humanfriendly
from serde import to_dict

from featurecli.cli import pass_environment, Environment
from featurecli.commands.feature_command_helpers import (
    create_parser,
    feature_file_options,
    print_config,
    resolve_files,
)
from featurecli.constants import FAULT_MAPPING
from featurecli.data_classes.dataclass_gherkin import CompilationResult, FileFailure
from featurecli.data_classes.validation_exception import TagExpressionError
from featurecli.settings import MAX_EXAMPLES_PER_OUTLINE


@click.command()
@feature_file_options
@click.option("--tags", metavar="", help="Tag expression selecting scenarios, e.g. '@smoke and not @slow'.")
@click.option("--output", type=click.Path(), metavar="", help="Optional output file path to save compiled JSON.")
@click.option("--pretty", is_flag=True, help="Pretty print JSON output with indentation.")
@click.option("--strict", is_flag=True, help="Fail on outline placeholders that have no value in an Examples row.")
@click.option(
    "--max-examples",
    type=click.IntRange(min=1),
    default=MAX_EXAMPLES_PER_OUTLINE,
    show_default=str(MAX_EXAMPLES_PER_OUTLINE),
    metavar="",
    help="Maximum number of scenarios a single Scenario Outline may expand to.",
)
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, *args, **kwargs):
    """Compile .feature files into concrete scenarios

    Parses each feature file, expands Scenario Outlines with their Examples
    and keeps the scenarios matching the --tags expression. Files that fail
    to parse are reported and skipped.
    """
    environment.cmd = "parse_feature"
    environment.set_parameters(context)

    files = resolve_files(environment)
    if not files:
        environment.elog(FAULT_MAPPING["missing_file"])
        exit(1)

    print_config(environment)
    parser = create_parser(environment)
    tag_expression = environment.tags or ""
    start = time.time()
    try:
        with environment.get_progress_bar(len(files), "Compiling feature files") as progress_bar:
            result = parser.compile_files(files, tag_expression, progress_bar)
    except TagExpressionError as e:
        environment.elog(FAULT_MAPPING["invalid_tag_expression"].format(expression=tag_expression, error=e.message))
        exit(1)
    duration = time.time() - start

    for failure in result.failures:
        environment.elog(FAULT_MAPPING["parse_failure"].format(file_path=failure.path, error=describe_failure(failure)))
    for warning in result.warnings:
        environment.vlog(f"Warning: {warning}")

    output_data = build_output(result, files, tag_expression, duration)
    json_output = json.dumps(output_data, indent=2 if environment.pretty else None, ensure_ascii=False)

    if environment.output:
        with open(environment.output, "w", encoding="utf-8") as f:
            f.write(json_output)
        environment.log(f"✓ Compiled scenarios saved to: {environment.output}")
        environment.log(f"  Parsed files: {output_data['summary']['parsed_files']}/{len(files)}")
        environment.log(f"  Total scenarios: {output_data['summary']['total_scenarios']}")
        environment.log(f"  Duration: {output_data['summary']['duration']}")
    else:
        print(json_output)

    if not result.features:
        environment.elog(FAULT_MAPPING["all_files_failed"])
        exit(1)


def describe_failure(failure: FileFailure) -> str:
    location = ":".join(str(part) for part in (failure.line, failure.column) if part is not None)
    return f"{location}: {failure.message}" if location else failure.message


def build_output(result: CompilationResult, files: list, tag_expression: str, duration: float) -> dict:
    features = []
    for feature in result.features:
        features.append(
            {
                "name": feature.name,
                "uri": feature.uri,
                "language": feature.language,
                "tags": feature.tags,
                "background": to_dict(feature.background) if feature.background else None,
            }
        )
    return {
        "features": features,
        "scenarios": [to_dict(scenario) for scenario in result.scenarios],
        "failures": [to_dict(failure) for failure in result.failures],
        "warnings": result.warnings,
        "summary": {
            "total_files": len(files),
            "parsed_files": len(result.features),
            "failed_files": len(result.failures),
            "total_scenarios": len(result.scenarios),
            "tag_expression": tag_expression,
            "duration": humanfriendly.format_timespan(duration),
        },
    }
