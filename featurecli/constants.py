import featurecli

FAULT_MAPPING = dict(
    missing_file="Please provide a valid path to a .feature file with the -f argument.",
    invalid_tag_expression="Invalid tag expression '{expression}': {error}",
    parse_failure="Failed to parse {file_path}: {error}",
    all_files_failed="None of the provided feature files could be parsed.",
    validation_failed="Feature file {file_path} did not pass validation.",
    yaml_file_parse_issue="Error occurred while parsing yaml file ({file_path}). "
    "Make sure that structure of a file is correct.\nWe expect only `key: value`, `---` and `...`.",
    file_open_issue="Error occurred while opening the file ({file_path}). "
    "Make sure that the file exists or the path is correct.",
)

TOOL_VERSION = f"""Feature CLI v{featurecli.__version__}
Gherkin feature compiler"""
TOOL_USAGE = f"""Supported and loaded modules:
    - parse_feature: Compile .feature files into concrete scenarios
    - validate: Lint .feature files
    - tags: Inspect and evaluate tag expressions"""

MISSING_COMMAND_SLOGAN = """Usage: featurecli [OPTIONS] COMMAND [ARGS]...\nTry 'featurecli --help' for help.
\nError: Missing command."""
