from setuptools import setup
from featurecli import __version__

setup(
    name="featurecli",
    long_description="The Feature CLI (featurecli) is a command line tool that compiles Gherkin feature files "
    "into a flat list of concrete, tag-filtered scenarios.",
    version=__version__,
    packages=[
        "featurecli",
        "featurecli.commands",
        "featurecli.readers",
        "featurecli.data_classes",
        "featurecli.logging",
    ],
    include_package_data=True,
    install_requires=[
        "click>=8.0.3,<9.0.0",
        "pyyaml>=6.0.0,<7.0.0",
        "pyserde>=0.12.0,<1.0.0",
        "tqdm>=4.65.0,<5.0.0",
        "humanfriendly>=10.0.0,<11.0.0",
        "beartype>=0.17.0,<1.0.0",
    ],
    extras_require={
        "tests": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
        ],
    },
    entry_points="""
        [console_scripts]
        featurecli=featurecli.cli:cli
    """,
)
