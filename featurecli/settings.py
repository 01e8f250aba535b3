DEFAULT_LANGUAGE = "en"
FEATURE_FILE_EXTENSION = ".feature"
MAX_EXAMPLES_PER_OUTLINE = 1000
DEFAULT_TABLE_DELIMITER = "|"
DOC_STRING_DELIMITERS = ('"""', "```")
TAG_PATTERN = r"@[A-Za-z0-9_-]+"
