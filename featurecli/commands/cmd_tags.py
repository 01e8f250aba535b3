import json

import click

from featurecli.cli import pass_environment, Environment
from featurecli.constants import FAULT_MAPPING
from featurecli.data_classes.validation_exception import TagExpressionError
from featurecli.readers.tag_parser import TagParser


@click.command()
@click.argument("expression")
@click.option("--negate", is_flag=True, help="Print the negated expression.")
@click.option("--simplify", is_flag=True, help="Print the expression in canonical form.")
@click.option("--list-tags", is_flag=True, help="Print the tags referenced by the expression.")
@click.option(
    "--check",
    "check_tags",
    multiple=True,
    metavar="",
    help="Tag assigned to a sample scenario; the expression is evaluated against all given tags. "
    "Usage: --check @smoke --check @fast",
)
@click.pass_context
@pass_environment
def cli(environment: Environment, context: click.Context, expression: str, *args, **kwargs):
    """Inspect and evaluate tag expressions

    Prints a JSON document describing EXPRESSION, e.g.
    featurecli tags "@smoke and not @slow" --negate --check @smoke
    """
    environment.cmd = "tags"
    environment.set_parameters(context)
    tag_parser = TagParser()

    try:
        output_data = {"expression": expression, "canonical": tag_parser.simplify_expression(expression)}
        if kwargs.get("negate"):
            output_data["negated"] = tag_parser.negate_expression(expression)
        if kwargs.get("simplify"):
            output_data["simplified"] = output_data["canonical"]
        if kwargs.get("list_tags"):
            output_data["tags"] = tag_parser.get_all_tags_from_expression(expression)
        if kwargs.get("check_tags"):
            check_tags = list(kwargs["check_tags"])
            output_data["checked_tags"] = check_tags
            output_data["matches"] = tag_parser.evaluate_tag_expression(expression, check_tags)
    except TagExpressionError as e:
        environment.elog(FAULT_MAPPING["invalid_tag_expression"].format(expression=expression, error=e.message))
        exit(1)

    print(json.dumps(output_data, indent=2, ensure_ascii=False))
