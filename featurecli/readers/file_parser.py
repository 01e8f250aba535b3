from pathlib import Path
from abc import abstractmethod
from beartype.typing import Union

from featurecli.data_classes.dataclass_gherkin import Feature


class FileParser:
    """
    Each new parser should inherit from this class, to make file reading modular.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    @staticmethod
    def check_file(filepath: Union[str, Path]) -> Path:
        filepath = Path(filepath)
        if not filepath.is_file():
            raise FileNotFoundError(f"File not found: {filepath}")
        return filepath

    def read_file(self, filepath: Union[str, Path]) -> str:
        with open(self.check_file(filepath), "r", encoding=self.encoding) as f:
            return f.read()

    @abstractmethod
    def parse_file(self, filepath: Union[str, Path]) -> Feature:
        raise NotImplementedError
