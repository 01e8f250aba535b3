import re
from beartype.typing import Dict, List, Optional, Tuple

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import Token, TokenType
from featurecli.data_classes.validation_exception import LexError, ParseError
from featurecli.logging import get_logger

logger = get_logger(__name__)

# Block keywords per language, each mapped to the token type it opens
BLOCK_KEYWORDS: Dict[str, List[Tuple[str, TokenType]]] = {
    "en": [
        ("Feature:", TokenType.FeatureLine),
        ("Background:", TokenType.BackgroundLine),
        ("Scenario Outline:", TokenType.ScenarioOutlineLine),
        ("Scenario Template:", TokenType.ScenarioOutlineLine),
        ("Scenario:", TokenType.ScenarioLine),
        ("Examples:", TokenType.ExamplesLine),
        ("Scenarios:", TokenType.ExamplesLine),
    ],
    "es": [
        ("Característica:", TokenType.FeatureLine),
        ("Antecedentes:", TokenType.BackgroundLine),
        ("Esquema del escenario:", TokenType.ScenarioOutlineLine),
        ("Escenario:", TokenType.ScenarioLine),
        ("Ejemplos:", TokenType.ExamplesLine),
    ],
    "fr": [
        ("Fonctionnalité:", TokenType.FeatureLine),
        ("Contexte:", TokenType.BackgroundLine),
        ("Plan du scénario:", TokenType.ScenarioOutlineLine),
        ("Scénario:", TokenType.ScenarioLine),
        ("Exemples:", TokenType.ExamplesLine),
    ],
    "de": [
        ("Funktionalität:", TokenType.FeatureLine),
        ("Hintergrund:", TokenType.BackgroundLine),
        ("Szenariogrundriss:", TokenType.ScenarioOutlineLine),
        ("Szenario:", TokenType.ScenarioLine),
        ("Beispiele:", TokenType.ExamplesLine),
    ],
}

# Step keywords per language, mapped to the canonical English keyword
STEP_KEYWORDS: Dict[str, List[Tuple[str, Optional[str]]]] = {
    "en": [("Given", "Given"), ("When", "When"), ("Then", "Then"), ("And", "And"), ("But", "But"), ("*", None)],
    "es": [("Dado", "Given"), ("Cuando", "When"), ("Entonces", "Then"), ("Y", "And"), ("Pero", "But")],
    "fr": [("Étant donné", "Given"), ("Quand", "When"), ("Alors", "Then"), ("Et", "And"), ("Mais", "But")],
    "de": [("Gegeben", "Given"), ("Wenn", "When"), ("Dann", "Then"), ("Und", "And"), ("Aber", "But")],
}

LANGUAGE_PATTERN = re.compile(r"^#\s*language\s*:\s*(\S+)\s*$")
TAG_PATTERN = re.compile(rf"^{settings.TAG_PATTERN}$")


class GherkinLexer:
    """Turns feature file text into a flat list of classified tokens.

    The lexer only classifies lines; ordering and nesting rules are enforced
    by the parser. Doc string blocks are emitted as a single token whose value
    holds the raw block, delimiters included.
    """

    comment_prefix = "#"
    tag_prefix = "@"
    table_delimiter = settings.DEFAULT_TABLE_DELIMITER
    doc_string_delimiters = settings.DOC_STRING_DELIMITERS

    def __init__(self, default_language: str = settings.DEFAULT_LANGUAGE):
        self.default_language = default_language

    @staticmethod
    def normalize(text: str) -> str:
        """Strip a UTF-8 BOM and convert CRLF/CR line endings to LF"""
        if text.startswith("\ufeff"):
            text = text[1:]
        return text.replace("\r\n", "\n").replace("\r", "\n")

    @staticmethod
    def supported_languages() -> List[str]:
        return sorted(BLOCK_KEYWORDS)

    def tokenize(self, text: str, source_path: str = "") -> List[Token]:
        lines = self.normalize(text).split("\n")
        if len(lines) > 1 and lines[-1] == "":
            # trailing newline ends the last line
            lines.pop()
        tokens: List[Token] = []
        language = self.default_language
        index = 0

        while index < len(lines):
            line_number = index + 1
            line = lines[index]
            stripped = line.strip()
            indent = len(line) - len(line.lstrip())
            column = indent + 1

            if not stripped:
                tokens.append(Token(TokenType.Empty, "", line_number, column, indent))
                index += 1
                continue

            delimiter = self._doc_string_delimiter(stripped)
            if delimiter:
                end = self._find_doc_string_end(lines, index, delimiter)
                if end is None:
                    raise LexError(
                        f"Unclosed doc string starting at line {line_number}", line_number, column, source_path
                    )
                content_type = stripped[len(delimiter):].strip() or None
                tokens.append(
                    Token(
                        TokenType.DocStringSeparator,
                        "\n".join(lines[index:end + 1]),
                        line_number,
                        column,
                        indent,
                        keyword=content_type,
                    )
                )
                index = end + 1
                continue

            if stripped.startswith(self.comment_prefix):
                match = LANGUAGE_PATTERN.match(stripped)
                if match:
                    language = self._select_language(match.group(1), line_number, source_path)
                    tokens.append(Token(TokenType.Language, language, line_number, column, indent))
                else:
                    tokens.append(Token(TokenType.Comment, stripped[1:].strip(), line_number, column, indent))
            elif stripped.startswith(self.tag_prefix):
                tokens.extend(self._tokenize_tags(line, line_number, indent, source_path))
            elif stripped.startswith(self.table_delimiter):
                if not self._is_closed_row(stripped):
                    raise LexError(
                        "Table row must end with an unescaped '|'", line_number, column + len(stripped) - 1, source_path
                    )
                tokens.append(Token(TokenType.TableRow, stripped, line_number, column, indent))
            else:
                tokens.append(self._tokenize_keyword_line(stripped, line_number, column, indent, language))
            index += 1

        return tokens

    def _doc_string_delimiter(self, stripped: str) -> Optional[str]:
        for delimiter in self.doc_string_delimiters:
            if stripped.startswith(delimiter):
                return delimiter
        return None

    @staticmethod
    def _find_doc_string_end(lines: List[str], start: int, delimiter: str) -> Optional[int]:
        for index in range(start + 1, len(lines)):
            if lines[index].strip() == delimiter:
                return index
        return None

    def _select_language(self, language: str, line_number: int, source_path: str) -> str:
        if language in BLOCK_KEYWORDS:
            logger.debug("Lexer language set", language=language, uri=source_path)
            return language
        logger.warning(
            f"Unsupported language '{language}', falling back to '{self.default_language}'",
            uri=source_path,
            line=line_number,
        )
        return self.default_language

    def _tokenize_tags(self, line: str, line_number: int, indent: int, source_path: str) -> List[Token]:
        tokens = []
        for match in re.finditer(r"\S+", line):
            word = match.group(0)
            if word.startswith(self.comment_prefix):
                break
            if not TAG_PATTERN.match(word):
                raise LexError(
                    f"Invalid tag '{word}'. Tags must match {settings.TAG_PATTERN}",
                    line_number,
                    match.start() + 1,
                    source_path,
                )
            tokens.append(Token(TokenType.TagLine, word, line_number, match.start() + 1, indent))
        return tokens

    def _is_closed_row(self, stripped: str) -> bool:
        if len(stripped) < 2 or not stripped.endswith(self.table_delimiter):
            return False
        backslashes = len(stripped[:-1]) - len(stripped[:-1].rstrip("\\"))
        return backslashes % 2 == 0

    def _tokenize_keyword_line(self, stripped: str, line_number: int, column: int, indent: int, language: str) -> Token:
        for keyword, token_type in self._block_keywords(language):
            if stripped.startswith(keyword):
                return Token(token_type, stripped[len(keyword):].strip(), line_number, column, indent)

        for keyword, canonical in self._step_keywords(language):
            if stripped == keyword or stripped.startswith(keyword + " "):
                return Token(
                    TokenType.StepLine, stripped[len(keyword):].strip(), line_number, column, indent, keyword=canonical
                )

        return Token(TokenType.Description, stripped, line_number, column, indent)

    @staticmethod
    def _block_keywords(language: str) -> List[Tuple[str, TokenType]]:
        if language == "en":
            return BLOCK_KEYWORDS["en"]
        return BLOCK_KEYWORDS.get(language, []) + BLOCK_KEYWORDS["en"]

    @staticmethod
    def _step_keywords(language: str) -> List[Tuple[str, Optional[str]]]:
        if language == "en":
            return STEP_KEYWORDS["en"]
        return STEP_KEYWORDS.get(language, []) + STEP_KEYWORDS["en"]

    @staticmethod
    def analyze_tokens(tokens: List[Token]) -> dict:
        """Count the structural elements of a token stream"""
        analysis = {
            "features": 0,
            "scenarios": 0,
            "steps": 0,
            "tags": set(),
            "has_background": False,
            "has_examples": False,
        }
        for token in tokens:
            if token.type == TokenType.FeatureLine:
                analysis["features"] += 1
            elif token.type in (TokenType.ScenarioLine, TokenType.ScenarioOutlineLine):
                analysis["scenarios"] += 1
            elif token.type == TokenType.StepLine:
                analysis["steps"] += 1
            elif token.type == TokenType.TagLine:
                analysis["tags"].add(token.value)
            elif token.type == TokenType.BackgroundLine:
                analysis["has_background"] = True
            elif token.type == TokenType.ExamplesLine:
                analysis["has_examples"] = True
        return analysis

    @staticmethod
    def validate_token_sequence(tokens: List[Token], source_path: str = "") -> List[ParseError]:
        """Report ordering problems without raising; the parser remains the authority"""
        errors = []
        seen_feature = False
        in_scenario = False
        in_outline = False
        in_background = False

        for token in tokens:
            if token.type == TokenType.FeatureLine:
                if seen_feature:
                    errors.append(ParseError("Multiple Feature declarations found", token.line, token.column, source_path))
                seen_feature = True
            elif token.type == TokenType.BackgroundLine:
                if not seen_feature:
                    errors.append(ParseError("Background must appear after Feature", token.line, token.column, source_path))
                if in_scenario:
                    errors.append(
                        ParseError("Background must appear before any Scenario", token.line, token.column, source_path)
                    )
                in_background = True
            elif token.type in (TokenType.ScenarioLine, TokenType.ScenarioOutlineLine):
                if not seen_feature:
                    errors.append(ParseError("Scenario must appear after Feature", token.line, token.column, source_path))
                in_scenario = True
                in_outline = token.type == TokenType.ScenarioOutlineLine
                in_background = False
            elif token.type == TokenType.ExamplesLine:
                if not in_outline:
                    errors.append(
                        ParseError("Examples must appear within a Scenario Outline", token.line, token.column, source_path)
                    )
            elif token.type == TokenType.StepLine:
                if not in_scenario and not in_background:
                    errors.append(
                        ParseError("Step must appear within a Scenario or Background", token.line, token.column, source_path)
                    )
        return errors
