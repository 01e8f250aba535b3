TAG_UNIVERSE = ["@a", "@b", "@c"]

PRECEDENCE_TEST_DATA = [
    ("@a or @b and @c", lambda a, b, c: a or (b and c)),
    ("@a and @b or @c", lambda a, b, c: (a and b) or c),
    ("not @a and @b", lambda a, b, c: (not a) and b),
    ("not @a or @b", lambda a, b, c: (not a) or b),
    ("not (@a or @b) and @c", lambda a, b, c: (not (a or b)) and c),
    ("@a and not not @b", lambda a, b, c: a and b),
    ("(@a or @b) and (@b or @c)", lambda a, b, c: (a or b) and (b or c)),
    ("@a and @b and @c", lambda a, b, c: a and b and c),
    ("not @a and not @b or not @c", lambda a, b, c: ((not a) and (not b)) or (not c)),
]
PRECEDENCE_TEST_IDS = [
    "or_binds_looser_than_and",
    "and_before_or",
    "not_binds_tightest_with_and",
    "not_binds_tightest_with_or",
    "negated_group",
    "double_negation",
    "groups",
    "and_chain",
    "mixed_negations",
]

CANONICAL_FORM_TEST_DATA = [
    ("@smoke", "@smoke"),
    ("smoke", "@smoke"),
    ("@a AND @b", "(@a and @b)"),
    ("@a or @b and @c", "(@a or (@b and @c))"),
    ("@a and @b and @c", "((@a and @b) and @c)"),
    ("not(@a or @b)", "not (@a or @b)"),
    ("  (  @a  )  ", "@a"),
]
CANONICAL_FORM_TEST_IDS = ["tag", "bare_word", "upper_case_operator", "precedence", "left_assoc", "not_group", "spaces"]

INVALID_EXPRESSION_TEST_DATA = [
    ("", "Tag expression is empty"),
    ("   ", "Tag expression is empty"),
    ("@a)", "Unmatched closing parenthesis at position 3"),
    ("(@a", "Unmatched opening parenthesis in '(@a'"),
    ("@a and", "Tag expression ends without an operand"),
    ("and @a", "Missing operand before 'and'"),
    ("@a @b", "Missing operator before '@b'"),
    ("@a not @b", "'not' must be followed by an operand and cannot follow one"),
    ("()", "Missing operand before ')'"),
    ("@a (@b)", "Missing operator before '('"),
    ("@a and @b!", "Invalid tag format: @b!"),
    ("@a or not", "Tag expression ends without an operand"),
]
INVALID_EXPRESSION_TEST_IDS = [
    "empty",
    "blank",
    "unmatched_close",
    "unmatched_open",
    "trailing_operator",
    "leading_operator",
    "missing_operator",
    "not_after_operand",
    "empty_group",
    "group_after_operand",
    "invalid_tag",
    "dangling_not",
]
