import click

from featurecli.cli import pass_environment, Environment
from featurecli.commands.feature_command_helpers import create_parser, feature_file_options, resolve_files
from featurecli.constants import FAULT_MAPPING


@click.command()
@feature_file_options
@click.option("--fail-on-warnings", is_flag=True, help="Treat validation warnings as errors.")
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, *args, **kwargs):
    """Validate .feature files without compiling them"""
    environment.cmd = "validate"
    environment.set_parameters(context)

    files = resolve_files(environment)
    if not files:
        environment.elog(FAULT_MAPPING["missing_file"])
        exit(1)

    parser = create_parser(environment)
    failed = False
    for file in files:
        try:
            result = parser.validate_file(file)
        except (OSError, UnicodeDecodeError):
            environment.elog(FAULT_MAPPING["file_open_issue"].format(file_path=file))
            failed = True
            continue

        passed = result.valid and not (environment.fail_on_warnings and result.warnings)
        environment.log(f"{'✓' if passed else '✗'} {file}")
        for error in result.errors:
            prefix = f"line {error.line}: " if error.line else ""
            environment.log(f"  error: {prefix}{error.message}")
        for warning in result.warnings:
            environment.log(f"  warning: {warning}")
        if not passed:
            environment.elog(FAULT_MAPPING["validation_failed"].format(file_path=file))
            failed = True

    if failed:
        exit(1)
