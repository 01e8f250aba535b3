import re
from beartype.typing import Iterable, List, Optional, Tuple

from featurecli import settings
from featurecli.data_classes.dataclass_gherkin import TagNode
from featurecli.data_classes.validation_exception import TagExpressionError
from featurecli.logging import get_logger

logger = get_logger(__name__)

TAG = "tag"
NOT = "not"
AND = "and"
OR = "or"

PRECEDENCE = {OR: 1, AND: 2, NOT: 3}
OPERATORS = tuple(PRECEDENCE)


class TagParser:
    """Boolean tag filter expressions: `@smoke and not (@slow or @flaky)`.

    Expressions are tokenized, converted to postfix with a shunting-yard pass
    and built into a TagNode tree. `parse_expression` results can be kept and
    evaluated against many tag sets with `evaluate_node`.
    """

    tag_pattern = re.compile(rf"^{settings.TAG_PATTERN}$")

    def is_valid_tag(self, tag: str) -> bool:
        return bool(self.tag_pattern.match(tag))

    def parse_tags(self, tag_line: str) -> List[str]:
        """Valid tags of a tag line; malformed `@` words are skipped with a warning"""
        tags = []
        for part in (tag_line or "").split():
            if self.is_valid_tag(part):
                tags.append(part)
            elif part.startswith("@"):
                logger.warning(f"Invalid tag format: {part}", pattern=settings.TAG_PATTERN)
        return tags

    def evaluate_tag_expression(self, expression: str, scenario_tags: Iterable[str]) -> bool:
        if not expression or not expression.strip():
            return True
        return self.evaluate_node(self.parse_expression(expression), scenario_tags)

    def evaluate_node(self, node: TagNode, scenario_tags: Iterable[str]) -> bool:
        tags = scenario_tags if isinstance(scenario_tags, (set, frozenset)) else set(scenario_tags)
        if node.type == TAG:
            return node.value in tags
        if node.type == NOT:
            return not self.evaluate_node(node.operand, tags)
        if node.type == AND:
            return self.evaluate_node(node.left, tags) and self.evaluate_node(node.right, tags)
        if node.type == OR:
            return self.evaluate_node(node.left, tags) or self.evaluate_node(node.right, tags)
        raise TagExpressionError(f"Unknown tag expression node: {node.type}")

    def parse_expression(self, expression: str) -> TagNode:
        """
        :param expression: tag filter expression
        :return: root TagNode
        :raises TagExpressionError: for unbalanced parentheses, missing operands or invalid tags
        """
        if not expression or not expression.strip():
            raise TagExpressionError("Tag expression is empty")
        tokens = self.tokenize(expression)
        return self._build_tree(self._to_postfix(tokens))

    def tokenize(self, expression: str) -> List[str]:
        tokens = []
        current = []
        depth = 0

        def flush():
            if current:
                tokens.append(self._normalize_word("".join(current)))
                current.clear()

        for position, char in enumerate(expression, start=1):
            if char == "(":
                flush()
                tokens.append(char)
                depth += 1
            elif char == ")":
                flush()
                depth -= 1
                if depth < 0:
                    raise TagExpressionError(f"Unmatched closing parenthesis at position {position}", column=position)
                tokens.append(char)
            elif char.isspace():
                flush()
            else:
                current.append(char)
        flush()

        if depth > 0:
            raise TagExpressionError(f"Unmatched opening parenthesis in '{expression}'")
        return tokens

    def _normalize_word(self, word: str) -> str:
        if word.lower() in OPERATORS:
            return word.lower()
        tag = word if word.startswith("@") else f"@{word}"
        if not self.is_valid_tag(tag):
            raise TagExpressionError(f"Invalid tag format: {word}")
        return tag

    @staticmethod
    def _to_postfix(tokens: List[str]) -> List[str]:
        output = []
        stack = []
        expect_operand = True

        for token in tokens:
            if token == "(":
                if not expect_operand:
                    raise TagExpressionError("Missing operator before '('")
                stack.append(token)
            elif token == ")":
                if expect_operand:
                    raise TagExpressionError("Missing operand before ')'")
                while stack and stack[-1] != "(":
                    output.append(stack.pop())
                if not stack:
                    raise TagExpressionError("Mismatched parentheses")
                stack.pop()
            elif token == NOT:
                if not expect_operand:
                    raise TagExpressionError("'not' must be followed by an operand and cannot follow one")
                # unary prefix: nothing to its left can be popped
                stack.append(token)
            elif token in (AND, OR):
                if expect_operand:
                    raise TagExpressionError(f"Missing operand before '{token}'")
                while stack and stack[-1] != "(" and PRECEDENCE[stack[-1]] >= PRECEDENCE[token]:
                    output.append(stack.pop())
                stack.append(token)
                expect_operand = True
            else:
                if not expect_operand:
                    raise TagExpressionError(f"Missing operator before '{token}'")
                output.append(token)
                expect_operand = False

        if expect_operand:
            raise TagExpressionError("Tag expression ends without an operand")

        while stack:
            operator = stack.pop()
            if operator == "(":
                raise TagExpressionError("Mismatched parentheses")
            output.append(operator)
        return output

    @staticmethod
    def _build_tree(postfix: List[str]) -> TagNode:
        stack: List[TagNode] = []
        for token in postfix:
            if token == NOT:
                if not stack:
                    raise TagExpressionError("Not enough operands for 'not'")
                stack.append(TagNode(type=NOT, operand=stack.pop()))
            elif token in (AND, OR):
                if len(stack) < 2:
                    raise TagExpressionError(f"Not enough operands for '{token}'")
                right = stack.pop()
                left = stack.pop()
                stack.append(TagNode(type=token, left=left, right=right))
            else:
                stack.append(TagNode(type=TAG, value=token))

        if len(stack) != 1:
            raise TagExpressionError("Incomplete tag expression")
        return stack[0]

    def validate_tag_expression(self, expression: str) -> Tuple[bool, Optional[str]]:
        try:
            self.parse_expression(expression)
        except TagExpressionError as e:
            return False, e.message
        return True, None

    def get_all_tags_from_expression(self, expression: str) -> List[str]:
        """Tags referenced by the expression, in first-seen order"""
        if not expression or not expression.strip():
            return []
        tags = []
        self._collect_tags(self.parse_expression(expression), tags)
        return tags

    def _collect_tags(self, node: TagNode, tags: List[str]):
        if node.type == TAG:
            if node.value not in tags:
                tags.append(node.value)
        elif node.type == NOT:
            self._collect_tags(node.operand, tags)
        else:
            self._collect_tags(node.left, tags)
            self._collect_tags(node.right, tags)

    def simplify_expression(self, expression: str) -> str:
        """Canonical form: binary nodes fully parenthesized, operators lower-case"""
        if not expression or not expression.strip():
            return ""
        return self.to_string(self.parse_expression(expression))

    def to_string(self, node: TagNode) -> str:
        if node.type == TAG:
            return node.value
        if node.type == NOT:
            return f"not {self.to_string(node.operand)}"
        return f"({self.to_string(node.left)} {node.type} {self.to_string(node.right)})"

    def negate_expression(self, expression: str) -> str:
        if not expression or not expression.strip():
            return ""
        return self.to_string(self.negate_node(self.parse_expression(expression)))

    def negate_node(self, node: TagNode) -> TagNode:
        if node.type == TAG:
            return TagNode(type=NOT, operand=node)
        if node.type == NOT:
            return node.operand
        flipped = OR if node.type == AND else AND
        return TagNode(type=flipped, left=self.negate_node(node.left), right=self.negate_node(node.right))

    @staticmethod
    def combine_tag_expressions(expressions: Iterable[str]) -> str:
        parts = [expression.strip() for expression in expressions if expression and expression.strip()]
        if not parts:
            return ""
        if len(parts) == 1:
            return parts[0]
        return " or ".join(f"({part})" for part in parts)
