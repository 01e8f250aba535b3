import csv
import io
import json
import re
import xml.etree.ElementTree as ElementTree
from beartype.typing import List, Optional, Tuple

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import DocString
from featurecli.data_classes.validation_exception import DocStringError
from featurecli.logging import get_logger

logger = get_logger(__name__)

ESCAPE_PATTERN = re.compile(r"\\([nrt\"'\\])")
ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "'": "'", "\\": "\\"}

HTML_BLOCK_OPEN = re.compile(r"<(div|p|h[1-6]|ul|ol|li|table|tr|td|th)\b[^>]*>", re.IGNORECASE)
HTML_BLOCK_CLOSE = re.compile(r"</(div|p|h[1-6]|ul|ol|li|table|tr|td|th)>", re.IGNORECASE)

# Longest keywords first so "ORDER BY" wins over "OR"
SQL_KEYWORDS = sorted(
    [
        "SELECT", "FROM", "WHERE", "AND", "OR", "ORDER BY", "GROUP BY", "HAVING", "JOIN",
        "LEFT JOIN", "RIGHT JOIN", "INNER JOIN", "ON", "INSERT INTO", "VALUES", "UPDATE",
        "SET", "DELETE FROM", "CREATE TABLE", "ALTER TABLE", "DROP TABLE",
    ],
    key=len,
    reverse=True,
)
SQL_PATTERN = re.compile(
    r"\b(" + "|".join(keyword.replace(" ", r"\s+") for keyword in SQL_KEYWORDS) + r")\b", re.IGNORECASE
)
SQL_STATEMENT_PREFIXES = ("SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP")


class DocStringParser:
    """Builds DocString objects from the raw lines of a delimited block"""

    def __init__(self):
        self.formatters = {
            "json": self._format_json,
            "xml": self._format_xml,
            "html": self._format_html,
            "sql": self._format_sql,
            "csv": self._format_csv,
        }

    def parse_doc_string(
        self,
        lines: List[str],
        start_line: int = 0,
        preserve_indent: bool = False,
        trim_lines: bool = True,
        process_escapes: bool = True,
    ) -> DocString:
        """Parse a doc string block.

        :param lines: block lines, opening and closing delimiter included
        :param start_line: line number of the opening delimiter, used in errors
        :return: DocString with processed content
        """
        if not lines:
            raise DocStringError("Doc string is empty", start_line)

        opening = lines[0].strip()
        delimiter = self._opening_delimiter(opening)
        if delimiter is None:
            raise DocStringError(
                f"Doc string must start with one of {', '.join(settings.DOC_STRING_DELIMITERS)}", start_line
            )
        content_type = opening[len(delimiter):].strip().lower() or None

        end = None
        for index in range(1, len(lines)):
            if lines[index].strip() == delimiter:
                end = index
                break
        if end is None:
            raise DocStringError(f"Unclosed doc string starting at line {start_line}", start_line)

        body = lines[1:end]
        if not preserve_indent:
            body = self._strip_common_indent(body)
        if trim_lines:
            body = [line.rstrip() for line in body]

        content = "\n".join(body)
        if process_escapes:
            content = self.process_escapes(content)
        content = self._strip_blank_edges(content)

        if content_type:
            content = self.process_content_type(content, content_type)

        return DocString(content=content, content_type=content_type, line=start_line, delimiter=delimiter)

    @staticmethod
    def _opening_delimiter(opening: str) -> Optional[str]:
        for delimiter in settings.DOC_STRING_DELIMITERS:
            if opening.startswith(delimiter):
                return delimiter
        return None

    @staticmethod
    def _strip_common_indent(lines: List[str]) -> List[str]:
        indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
        if not indents:
            return [""] * len(lines)
        common = min(indents)
        return [line[common:] if line.strip() else "" for line in lines]

    @staticmethod
    def process_escapes(text: str) -> str:
        return ESCAPE_PATTERN.sub(lambda match: ESCAPES[match.group(1)], text)

    @staticmethod
    def _strip_blank_edges(content: str) -> str:
        lines = content.split("\n")
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        return "\n".join(lines)

    def process_content_type(self, content: str, content_type: str) -> str:
        """Reformat content for known types; anything that fails to reformat is returned unchanged"""
        formatter = self.formatters.get(content_type.lower())
        if formatter is None:
            return content
        try:
            return formatter(content)
        except (ValueError, RecursionError, ElementTree.ParseError, csv.Error) as e:
            logger.warning(f"Could not format {content_type} doc string, keeping it as written", error=str(e))
            return content

    @staticmethod
    def _format_json(content: str) -> str:
        return json.dumps(json.loads(content), indent=2, ensure_ascii=False)

    @staticmethod
    def _format_xml(content: str) -> str:
        root = ElementTree.fromstring(content)
        ElementTree.indent(root, space="  ")
        return ElementTree.tostring(root, encoding="unicode")

    @staticmethod
    def _format_html(content: str) -> str:
        formatted = HTML_BLOCK_OPEN.sub(lambda match: "\n" + match.group(0), content)
        formatted = HTML_BLOCK_CLOSE.sub(lambda match: match.group(0) + "\n", formatted)
        formatted = re.sub(r"\n{3,}", "\n\n", formatted)
        return formatted.strip()

    @staticmethod
    def _format_sql(content: str) -> str:
        formatted = SQL_PATTERN.sub(lambda match: "\n" + " ".join(match.group(1).upper().split()), content)
        formatted = re.sub(r"[ \t]*\n[ \t]*", "\n", formatted)
        formatted = re.sub(r"\n{2,}", "\n", formatted)
        return formatted.strip()

    @staticmethod
    def _format_csv(content: str) -> str:
        rows = [row for row in csv.reader(io.StringIO(content)) if row]
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerows(rows)
        return output.getvalue().rstrip("\n")

    @staticmethod
    def detect_content_type(content: str) -> Optional[str]:
        """Guess the content type of an untyped doc string"""
        trimmed = content.strip()
        if not trimmed:
            return None

        if (trimmed.startswith("{") and trimmed.endswith("}")) or (trimmed.startswith("[") and trimmed.endswith("]")):
            try:
                json.loads(trimmed)
                return "json"
            except (ValueError, RecursionError):
                pass

        if trimmed.startswith("<") and trimmed.endswith(">"):
            lowered = trimmed.lower()
            if "<!doctype html" in lowered or "<html" in lowered:
                return "html"
            return "xml"

        if trimmed.upper().startswith(SQL_STATEMENT_PREFIXES):
            return "sql"

        lines = trimmed.split("\n")
        if len(lines) > 1:
            width = len(lines[0].split(","))
            if width > 1 and all(len(line.split(",")) == width or not line.strip() for line in lines):
                return "csv"

        return None

    @staticmethod
    def create_doc_string(content: str, content_type: Optional[str] = None) -> DocString:
        return DocString(content=content, content_type=content_type)

    @staticmethod
    def format_doc_string(doc_string: DocString, delimiter: str = '"""') -> str:
        """Render a DocString back to feature file syntax"""
        lines = [f"{delimiter}{doc_string.content_type}" if doc_string.content_type else delimiter]
        if doc_string.content:
            lines.extend(doc_string.content.split("\n"))
        lines.append(delimiter)
        return "\n".join(lines)

    @staticmethod
    def validate_doc_string(doc_string: DocString) -> Tuple[bool, List[str]]:
        errors = []
        if doc_string.content is None:
            errors.append("Doc string content cannot be empty")
        elif doc_string.content_type == "json":
            try:
                json.loads(doc_string.content)
            except (ValueError, RecursionError) as e:
                errors.append(f"Invalid JSON content: {e}")
        elif doc_string.content_type == "xml":
            try:
                ElementTree.fromstring(doc_string.content)
            except ElementTree.ParseError as e:
                errors.append(f"Invalid XML content: {e}")
        return not errors, errors
