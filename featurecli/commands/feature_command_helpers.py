import functools
from beartype.typing import List

import click

from featurecli.cli import Environment
from featurecli.readers.feature_file_parser import FeatureFileParser
from featurecli.settings import DEFAULT_LANGUAGE, MAX_EXAMPLES_PER_OUTLINE


def print_config(env: Environment):
    env.vlog(
        f"Feature Compiler Execution Parameters"
        f"\n> Feature files: {', '.join(resolve_files(env))}"
        f"\n> Config file: {env.config}"
        f"\n> Tag expression: {env.tags or '(none)'}"
        f"\n> Language: {env.language or DEFAULT_LANGUAGE}"
        f"\n> Max examples per outline: {env.max_examples}"
        f"\n> Strict placeholders: {'Yes' if env.strict else 'No'}"
    )


def resolve_files(env: Environment) -> List[str]:
    """Feature file paths from -f options or a `file` entry in the config file"""
    if not env.file:
        return []
    if isinstance(env.file, str):
        return [env.file]
    return [str(path) for path in env.file]


def create_parser(env: Environment) -> FeatureFileParser:
    return FeatureFileParser(
        max_examples_per_outline=env.max_examples or MAX_EXAMPLES_PER_OUTLINE,
        strict=bool(env.strict),
        language=env.language or DEFAULT_LANGUAGE,
    )


def feature_file_options(f):
    @click.option(
        "-f",
        "--file",
        type=click.Path(),
        multiple=True,
        metavar="",
        help="Path to a .feature file. Can be given multiple times.",
    )
    @functools.wraps(f)
    def wrapper_common_options(*args, **kwargs):
        return f(*args, **kwargs)

    return wrapper_common_options
