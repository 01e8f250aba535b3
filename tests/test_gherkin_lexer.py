import pytest

from featurecli.data_classes.dataclass_gherkin import TokenType
from featurecli.data_classes.validation_exception import LexError
from featurecli.readers.gherkin_lexer import GherkinLexer
from tests.helpers.cli_helpers import FEATURE_DIR


@pytest.fixture
def lexer():
    yield GherkinLexer()


def token_types(tokens):
    return [token.type for token in tokens if token.type != TokenType.Empty]


class TestGherkinLexer:
    @pytest.mark.lexer
    def test_classifies_outline_file(self, lexer):
        content = (FEATURE_DIR / "login_outline.feature").read_text(encoding="utf-8")

        tokens = lexer.tokenize(content)

        assert token_types(tokens) == [
            TokenType.FeatureLine,
            TokenType.ScenarioOutlineLine,
            TokenType.StepLine,
            TokenType.StepLine,
            TokenType.StepLine,
            TokenType.ExamplesLine,
            TokenType.TableRow,
            TokenType.TableRow,
            TokenType.TableRow,
        ]
        assert tokens[0].value == "Login"
        assert tokens[1].value == "try login"
        assert tokens[2].keyword == "Given"
        assert tokens[2].value == 'user "<user>"'
        assert [token.line for token in tokens[:3]] == [1, 2, 3]

    @pytest.mark.lexer
    def test_line_and_column(self, lexer):
        tokens = lexer.tokenize("Feature: F\n\n  Scenario: S\n    Given a step\n")

        step = tokens[3]
        assert step.type == TokenType.StepLine
        assert step.line == 4
        assert step.column == 5
        assert step.indent == 4
        assert tokens[1].type == TokenType.Empty

    @pytest.mark.lexer
    def test_crlf_and_bom_are_normalized(self, lexer):
        tokens = lexer.tokenize("\ufeffFeature: F\r\n  Scenario: S\r\n    Given x\r\n")

        assert tokens[0].type == TokenType.FeatureLine
        assert tokens[0].value == "F"
        assert tokens[2].value == "x"
        assert tokens[2].line == 3

    @pytest.mark.lexer
    def test_tags_become_one_token_each(self, lexer):
        tokens = lexer.tokenize("  @smoke @fast   @JIRA-12 # trailing comment\n")

        assert [(token.type, token.value, token.column) for token in tokens] == [
            (TokenType.TagLine, "@smoke", 3),
            (TokenType.TagLine, "@fast", 10),
            (TokenType.TagLine, "@JIRA-12", 18),
        ]

    @pytest.mark.lexer
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Feature: F", [(TokenType.FeatureLine, 1)]),
            ("Feature: F\n", [(TokenType.FeatureLine, 1)]),
            ("Feature: F\r\n", [(TokenType.FeatureLine, 1)]),
            ("Feature: F\n\n", [(TokenType.FeatureLine, 1), (TokenType.Empty, 2)]),
        ],
        ids=["no_newline", "trailing_newline", "trailing_crlf", "trailing_blank_line"],
    )
    def test_trailing_newline_adds_no_line(self, lexer, text, expected):
        tokens = lexer.tokenize(text)

        assert [(token.type, token.line) for token in tokens] == expected

    @pytest.mark.lexer
    def test_invalid_tag(self, lexer):
        with pytest.raises(LexError) as exc_info:
            lexer.tokenize("Feature: F\n@ok @bad!tag\n", "tags.feature")

        assert exc_info.value.line == 2
        assert exc_info.value.column == 5
        assert "@bad!tag" in exc_info.value.message
        assert str(exc_info.value).startswith("tags.feature:2:5:")

    @pytest.mark.lexer
    def test_doc_string_is_a_single_token(self, lexer):
        text = 'Given payload\n  """json\n  {"a": 1}\n\n  Scenario: not a keyword here\n  """\nThen done\n'

        tokens = lexer.tokenize(text)

        doc_string = tokens[1]
        assert doc_string.type == TokenType.DocStringSeparator
        assert doc_string.keyword == "json"
        assert doc_string.line == 2
        assert doc_string.value.split("\n")[0].strip() == '"""json'
        assert "Scenario: not a keyword here" in doc_string.value
        assert tokens[2].type == TokenType.StepLine
        assert tokens[2].line == 7

    @pytest.mark.lexer
    def test_backtick_doc_string(self, lexer):
        tokens = lexer.tokenize("```\ntext\n```\n")

        assert tokens[0].type == TokenType.DocStringSeparator
        assert tokens[0].keyword is None

    @pytest.mark.lexer
    def test_unclosed_doc_string(self, lexer):
        with pytest.raises(LexError) as exc_info:
            lexer.tokenize('Given x\n  """\n  never closed\n')

        assert exc_info.value.line == 2
        assert "Unclosed doc string" in exc_info.value.message

    @pytest.mark.lexer
    def test_table_rows(self, lexer):
        tokens = lexer.tokenize("| a | b \\| c |\n")

        assert tokens[0].type == TokenType.TableRow
        assert tokens[0].value == "| a | b \\| c |"

    @pytest.mark.lexer
    @pytest.mark.parametrize("row", ["| a | b", "| a | b \\|", "|"], ids=["open", "escaped_end", "single_pipe"])
    def test_unclosed_table_row(self, lexer, row):
        with pytest.raises(LexError) as exc_info:
            lexer.tokenize(row)

        assert "Table row must end" in exc_info.value.message

    @pytest.mark.lexer
    def test_comments_and_descriptions(self, lexer):
        tokens = lexer.tokenize("# a comment\nFeature: F\n  free text here\n")

        assert tokens[0].type == TokenType.Comment
        assert tokens[0].value == "a comment"
        assert tokens[2].type == TokenType.Description
        assert tokens[2].value == "free text here"

    @pytest.mark.lexer
    def test_star_step_has_no_keyword(self, lexer):
        tokens = lexer.tokenize("* the user is logged in\n")

        assert tokens[0].type == TokenType.StepLine
        assert tokens[0].keyword is None
        assert tokens[0].value == "the user is logged in"

    @pytest.mark.lexer
    def test_keyword_must_be_a_whole_word(self, lexer):
        tokens = lexer.tokenize("Givenness is not a step\n")

        assert tokens[0].type == TokenType.Description

    @pytest.mark.lexer
    def test_scenario_template_alias(self, lexer):
        tokens = lexer.tokenize("Scenario Template: t\nScenarios:\n")

        assert tokens[0].type == TokenType.ScenarioOutlineLine
        assert tokens[1].type == TokenType.ExamplesLine

    @pytest.mark.lexer
    def test_language_directive(self, lexer):
        content = (FEATURE_DIR / "spanish.feature").read_text(encoding="utf-8")

        tokens = lexer.tokenize(content)

        assert tokens[0].type == TokenType.Language
        assert tokens[0].value == "es"
        assert tokens[2].type == TokenType.FeatureLine
        assert tokens[2].value == "Inicio de sesión"
        steps = [token for token in tokens if token.type == TokenType.StepLine]
        assert [step.keyword for step in steps] == ["Given", "When", "Then"]

    @pytest.mark.lexer
    def test_unknown_language_falls_back(self, lexer):
        tokens = lexer.tokenize("# language: xx\nFeature: F\n")

        assert tokens[0].type == TokenType.Language
        assert tokens[0].value == "en"
        assert tokens[1].type == TokenType.FeatureLine

    @pytest.mark.lexer
    def test_default_language(self):
        tokens = GherkinLexer("fr").tokenize("Fonctionnalité: F\n  Scénario: S\n    Étant donné un pas\n")

        assert token_types(tokens) == [TokenType.FeatureLine, TokenType.ScenarioLine, TokenType.StepLine]
        assert tokens[2].keyword == "Given"
        assert tokens[2].value == "un pas"

    @pytest.mark.lexer
    def test_analyze_tokens(self, lexer):
        content = (FEATURE_DIR / "sample_login.feature").read_text(encoding="utf-8")

        analysis = lexer.analyze_tokens(lexer.tokenize(content))

        assert analysis["features"] == 1
        assert analysis["scenarios"] == 3
        assert analysis["steps"] == 8
        assert analysis["tags"] == {"@auth", "@web", "@smoke", "@regression", "@slow", "@positive", "@negative"}
        assert analysis["has_background"]
        assert analysis["has_examples"]

    @pytest.mark.lexer
    def test_validate_token_sequence(self, lexer):
        tokens = lexer.tokenize("Given orphan\nFeature: F\nExamples:\nFeature: G\n")

        errors = lexer.validate_token_sequence(tokens, "seq.feature")

        assert [error.message for error in errors] == [
            "Step must appear within a Scenario or Background",
            "Examples must appear within a Scenario Outline",
            "Multiple Feature declarations found",
        ]
        assert [error.line for error in errors] == [1, 3, 4]
