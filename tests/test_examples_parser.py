import pytest

from featurecli.data_classes.dataclass_gherkin import (
    DataTable,
    DocString,
    Examples,
    Scenario,
    ScenarioType,
    Step,
)
from featurecli.data_classes.validation_exception import DataTableError, ExamplesError
from featurecli.readers.examples_parser import ExamplesParser


def login_outline(examples=None) -> Scenario:
    return Scenario(
        type=ScenarioType.SCENARIO_OUTLINE,
        name="try login",
        tags=["@login"],
        steps=[
            Step(keyword="Given", text='user "<user>"', line=3),
            Step(keyword="When", text='password is "<pass>"', line=4),
            Step(keyword="Then", text='result is "<outcome>"', line=5),
        ],
        examples=examples
        if examples is not None
        else [
            Examples(
                header=["user", "pass", "outcome"],
                rows=[["alice", "123", "success"], ["bob", "bad", "failure"]],
                line=6,
            )
        ],
        line=2,
    )


@pytest.fixture
def examples_parser():
    yield ExamplesParser()


class TestExpandScenarioOutline:
    @pytest.mark.examples
    def test_one_scenario_per_row(self, examples_parser):
        scenarios = examples_parser.expand_scenario_outline(login_outline())

        assert len(scenarios) == 2
        assert [step.text for step in scenarios[0].steps] == [
            'user "alice"',
            'password is "123"',
            'result is "success"',
        ]
        assert [step.text for step in scenarios[1].steps] == ['user "bob"', 'password is "bad"', 'result is "failure"']
        for scenario in scenarios:
            assert scenario.type == ScenarioType.SCENARIO
            assert scenario.examples is None
            assert scenario.line == 2
            assert scenario.tags == ["@login"]
            assert [step.keyword for step in scenario.steps] == ["Given", "When", "Then"]
            assert [step.line for step in scenario.steps] == [3, 4, 5]

    @pytest.mark.examples
    def test_outline_is_not_modified(self, examples_parser):
        outline = login_outline()

        examples_parser.expand_scenario_outline(outline)

        assert outline.steps[0].text == 'user "<user>"'
        assert outline.type == ScenarioType.SCENARIO_OUTLINE

    @pytest.mark.examples
    def test_name_description_tables_and_doc_strings(self, examples_parser):
        outline = Scenario(
            type=ScenarioType.SCENARIO_OUTLINE,
            name="Order <qty> <item>",
            description="Buys <item>",
            steps=[
                Step(keyword="Given", text="a cart", data_table=DataTable(rows=[["item", "qty"], ["<item>", "<qty>"]])),
                Step(
                    keyword="Then",
                    text="the payload is sent",
                    doc_string=DocString(content='{"item": "<item>"}', content_type="json", line=9),
                ),
            ],
            examples=[Examples(header=["item", "qty"], rows=[["pear", "2"]])],
        )

        scenario = examples_parser.expand_scenario_outline(outline)[0]

        assert scenario.name == "Order 2 pear"
        assert scenario.description == "Buys pear"
        assert scenario.steps[0].data_table.rows == [["item", "qty"], ["pear", "2"]]
        assert scenario.steps[1].doc_string.content == '{"item": "pear"}'
        assert scenario.steps[1].doc_string.content_type == "json"
        assert scenario.steps[1].doc_string.line == 9

    @pytest.mark.examples
    def test_examples_order_and_tags(self, examples_parser):
        outline = login_outline(
            [
                Examples(name="First", tags=["@a", "@login"], header=["user", "pass", "outcome"], rows=[["u1", "p", "o"]]),
                Examples(name="Second", tags=["@b"], header=["user", "pass", "outcome"], rows=[["u2", "p", "o"], ["u3", "p", "o"]]),
            ]
        )

        scenarios = examples_parser.expand_scenario_outline(outline)

        assert [scenario.steps[0].text for scenario in scenarios] == ['user "u1"', 'user "u2"', 'user "u3"']
        assert [scenario.tags for scenario in scenarios] == [["@login", "@a"], ["@login", "@b"], ["@login", "@b"]]

    @pytest.mark.examples
    def test_values_are_inserted_verbatim(self, examples_parser):
        outline = login_outline(
            [Examples(header=["user", "pass", "outcome"], rows=[["<pass>", "$1\\2", "ok"]])]
        )

        scenario = examples_parser.expand_scenario_outline(outline)[0]

        assert scenario.steps[0].text == 'user "<pass>"'
        assert scenario.steps[1].text == 'password is "$1\\2"'

    @pytest.mark.examples
    def test_missing_placeholder_column(self, examples_parser):
        outline = login_outline([Examples(name="Partial", header=["user", "pass"], rows=[["alice", "123"]], line=6)])

        with pytest.raises(ExamplesError) as exc_info:
            examples_parser.expand_scenario_outline(outline)

        assert exc_info.value.message == (
            'Scenario Outline "try login" has placeholders not found in examples "Partial": <outcome>'
        )
        assert exc_info.value.line == 6

    @pytest.mark.examples
    def test_unused_headers_are_reported(self, examples_parser):
        outline = login_outline(
            [Examples(header=["user", "pass", "outcome", "id"], rows=[["alice", "123", "success", "7"]])]
        )
        warnings = []

        scenarios = examples_parser.expand_scenario_outline(outline, warnings)

        assert len(scenarios) == 1
        assert warnings == ['Examples "Examples" has unused headers: id']

    @pytest.mark.examples
    def test_no_examples(self, examples_parser):
        with pytest.raises(ExamplesError, match='"try login" has no examples'):
            examples_parser.expand_scenario_outline(login_outline([]))

    @pytest.mark.examples
    def test_expansion_ceiling(self):
        rows = [[f"user{i}", "p", "o"] for i in range(5)]
        outline = login_outline(
            [
                Examples(name="A", header=["user", "pass", "outcome"], rows=rows[:3]),
                Examples(name="B", header=["user", "pass", "outcome"], rows=rows[3:]),
            ]
        )
        warnings = []

        scenarios = ExamplesParser(max_examples_per_outline=4).expand_scenario_outline(outline, warnings)

        assert [scenario.steps[0].text for scenario in scenarios] == [f'user "user{i}"' for i in range(4)]
        assert warnings == ['Scenario Outline "try login" expands to 5 scenarios; kept the first 4 and dropped 1']

    @pytest.mark.examples
    def test_ceiling_not_reached(self):
        warnings = []

        scenarios = ExamplesParser(max_examples_per_outline=2).expand_scenario_outline(login_outline(), warnings)

        assert len(scenarios) == 2
        assert warnings == []


class TestSubstitute:
    @pytest.mark.examples
    def test_unknown_placeholder_stays_literal(self, examples_parser):
        assert examples_parser.substitute("<a> and <b>", {"a": "1"}) == "1 and <b>"

    @pytest.mark.examples
    def test_strict_mode(self):
        with pytest.raises(ExamplesError) as exc_info:
            ExamplesParser(strict=True).substitute("<a> and <b>", {"a": "1"})

        assert exc_info.value.message == "No value for placeholder <b>"

    @pytest.mark.examples
    def test_find_placeholders(self, examples_parser):
        outline = login_outline()
        outline.name = "login <user>"

        placeholders = examples_parser.find_placeholders(outline)

        assert [(p.name, p.step_index) for p in placeholders] == [
            ("user", -1),
            ("user", 0),
            ("pass", 1),
            ("outcome", 2),
        ]
        assert (placeholders[1].start, placeholders[1].end) == (6, 12)


class TestExamplesTables:
    @pytest.mark.examples
    @pytest.mark.parametrize(
        "examples, message",
        [
            (Examples(name="E", header=["a", " "], rows=[]), 'Examples "E" cannot have empty headers'),
            (Examples(name="E", header=["a", "b", "a"], rows=[]), 'Examples "E" has duplicate headers: a'),
            (Examples(name="E", header=["a"], rows=[["1", "2"]]), 'Examples "E" row 1 has 2 cells but expected 1'),
        ],
        ids=["empty_header", "duplicate_header", "row_width"],
    )
    def test_validate_examples(self, examples_parser, examples, message):
        with pytest.raises(ExamplesError) as exc_info:
            examples_parser.validate_examples(examples)

        assert exc_info.value.message == message

    @pytest.mark.examples
    def test_parse_examples(self, examples_parser):
        examples = examples_parser.parse_examples(
            ["Examples: Valid users", "  active accounts only", "  | user  | role  |", "  | alice | admin |", "  | bob   | null  |"]
        )

        assert examples.name == "Valid users"
        assert examples.description == "active accounts only"
        assert examples.header == ["user", "role"]
        assert examples.rows == [["alice", "admin"], ["bob", "null"]]

    @pytest.mark.examples
    def test_parse_examples_without_keyword(self, examples_parser):
        examples = examples_parser.parse_examples(["| a |", "| 1 |"])

        assert examples.name == "Examples"
        assert examples.rows == [["1"]]

    @pytest.mark.examples
    @pytest.mark.parametrize(
        "lines, message",
        [
            ([], "Examples section cannot be empty"),
            (["Examples:", "| a |"], "Examples table must have a header row and at least one data row"),
            (["Scenarios:", "| a |", "| 1 | 2 |"], "Invalid examples table: Data table row 2 has 2 cells but expected 1"),
        ],
        ids=["empty", "header_only", "ragged"],
    )
    def test_parse_examples_errors(self, examples_parser, lines, message):
        with pytest.raises(ExamplesError) as exc_info:
            examples_parser.parse_examples(lines)

        assert exc_info.value.message == message

    @pytest.mark.examples
    def test_generate_examples_table(self, examples_parser):
        examples = examples_parser.generate_examples_table(["a", "b"], [["1", "2"]], name="Generated", tags=["@gen"])

        assert examples == Examples(name="Generated", tags=["@gen"], header=["a", "b"], rows=[["1", "2"]])
        with pytest.raises(ExamplesError, match="at least one header"):
            examples_parser.generate_examples_table([], [["1"]])
        with pytest.raises(ExamplesError, match="at least one data row"):
            examples_parser.generate_examples_table(["a"], [])

    @pytest.mark.examples
    def test_merge_examples(self, examples_parser):
        first = Examples(name="A", tags=["@x"], header=["user", "role"], rows=[["alice", "admin"]], line=3)
        second = Examples(name="B", tags=["@x", "@y"], header=["user", "team"], rows=[["bob", "qa"]])

        merged = examples_parser.merge_examples(first, second)

        assert merged.name == "A + B"
        assert merged.tags == ["@x", "@y"]
        assert merged.header == ["user", "role", "team"]
        assert merged.rows == [["alice", "admin", ""], ["bob", "", "qa"]]
        assert merged.line == 3

    @pytest.mark.examples
    def test_filter_examples(self, examples_parser):
        examples = Examples(
            name="Ages", header=["name", "age"], rows=[["alice", "30"], ["bob", "17"], ["carol", "041"]]
        )

        adults = examples_parser.filter_examples(examples, lambda row: row["age"] >= 18)

        assert adults.rows == [["alice", "30"], ["carol", "041"]]
        assert examples.rows[1] == ["bob", "17"]
        assert examples_parser.filter_examples(examples, lambda row: False).rows == []

    @pytest.mark.examples
    def test_filter_examples_with_conflicting_headers(self, examples_parser):
        examples = Examples(header=["user", "user.name"], rows=[["x", "alice"]])

        with pytest.raises(DataTableError, match="conflicts with header 'user'"):
            examples_parser.filter_examples(examples, lambda row: True)
